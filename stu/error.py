from __future__ import annotations


class StuError(Exception):
    pass


class RemoteCallError(StuError):
    """A Storage Client call failed (network, auth or service error)."""


class ValidationError(StuError):
    """An action was requested without a valid selection or context."""


class LocalIOError(StuError):
    """Writing to local storage failed."""


class FatalStartupError(StuError):
    """Setup failed before the interactive loop started."""
