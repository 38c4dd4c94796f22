from __future__ import annotations


class InstrumentServiceError(Exception):
    """Base class for errors raised by the financial instrument service."""


class InvalidRequestError(InstrumentServiceError):
    """A caller supplied a payload the service cannot act on.

    ``str()`` is deliberately generic; transport adapters expose ``details``
    in client-error responses.
    """

    def __init__(self, details: str) -> None:
        super().__init__("Invalid Request")
        self.details = details


class GraphExecutionError(InstrumentServiceError):
    """A statement batch failed inside the graph executor."""


class GraphUnavailableError(GraphExecutionError):
    """No graph connection is configured or the store cannot be reached."""
