"""Route package marker.

Keep this module import-light so services can import a single route module
without pulling in the whole application.
"""

__all__ = [
    "health",
    "instruments",
]
