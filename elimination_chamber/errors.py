"""
Error taxonomy for the map pipeline and session state machine

Network and storage errors are raised by the services and caught at the
pipeline / session boundary. They never reach the operator surface as-is.
"""
from typing import Any


class ChamberError(Exception):
    """
    Base exception for the elimination chamber

    Attributes:
        message: Human-readable error message
        context: Extra details (operation, map id, cause)
    """

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class RemoteUnavailable(ChamberError):
    """Transport error, timeout or non-2xx answer from the map exchange"""


class InvalidResponse(ChamberError):
    """Map exchange answered with an absent or malformed payload"""


class StorageFailure(ChamberError):
    """Reading or writing the local filesystem failed"""


class GameModeError(ChamberError):
    """The host server refused a game mode operation"""


class AlreadyActive(ChamberError):
    """A session is already running"""

    def __init__(self) -> None:
        super().__init__("EliminationChamber session already active")


class NotActive(ChamberError):
    """No session is running"""

    def __init__(self) -> None:
        super().__init__("No EliminationChamber session is active")
