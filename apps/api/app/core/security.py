from __future__ import annotations

from fastapi import Header, HTTPException, status

from app.core.config import Settings


def verify_write_secret(settings: Settings, secret_header: str | None) -> None:
    """Reject graph mutations that do not carry the configured shared secret."""
    if not settings.write_api_secret:
        return
    if secret_header != settings.write_api_secret:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing write secret" if not secret_header else "Invalid write secret",
        )


def webhook_secret_header(x_webhook_secret: str | None = Header(default=None)) -> str | None:
    return x_webhook_secret
