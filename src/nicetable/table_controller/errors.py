"""Exception types raised by the table controller."""

from __future__ import annotations


class NiceTableError(Exception):
    """Base class for all nicetable errors."""


class ConfigurationError(NiceTableError):
    """Invalid or insufficient configuration (bad option, missing url, unguessable id)."""


class ProtocolError(NiceTableError):
    """The server response does not follow the collection/page contract."""


class TransportError(NiceTableError):
    """The fetch request could not be completed (network failure, HTTP error status)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
