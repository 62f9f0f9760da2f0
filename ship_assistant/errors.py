"""
Exception types for the Ship Network Assistant.
"""
from typing import Optional


class ConfigurationError(RuntimeError):
    """Raised when required process configuration is missing or malformed."""
    pass


class StoreError(Exception):
    """Raised by the store client when a request to the remote store fails."""

    def __init__(self, message: str, table: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.table = table
        self.status_code = status_code
