from __future__ import annotations


class StudioError(Exception):
    """Base error. `message` is shown to the user as-is."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidAssetError(StudioError):
    pass


class ValidationError(StudioError):
    pass


class BusyError(StudioError):
    """Another batch or regeneration is still in flight."""


class NoImageReturnedError(StudioError):
    pass


class BatchGenerationError(StudioError):
    pass


class RegenerationError(StudioError):
    pass


class SessionNotFoundError(StudioError):
    pass
