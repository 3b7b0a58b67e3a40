"""Exceptions raised by property stores."""


class StoreError(Exception):
    """Base exception for store errors.

    Attributes:
        backend: Name of the store backend that raised the error
        message: Error description
    """

    def __init__(self, backend: str, message: str):
        self.backend = backend
        self.message = message
        super().__init__(f"[{backend}] {message}")


class StoreUnavailable(StoreError):
    """Raised when the backing database cannot be reached or fails a query."""
