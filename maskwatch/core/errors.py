"""Shared error types.

The goal is to make errors explicit and easy to handle at the component boundary
that produced them: device and detection failures become observer-visible status,
only contract violations propagate.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(eq=False)
class AppError(Exception):
    """Base error for application-level failures."""

    message: str
    cause: Exception | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.cause is None:
            return self.message
        return f"{self.message} (cause: {self.cause})"


class DomainError(AppError):
    """Domain rule violation."""


class ValidationError(AppError):
    """Invalid user input or configuration."""


class InfrastructureError(AppError):
    """IO/OS/driver failures."""


class InvalidStateTransition(DomainError):
    """Operation requested from a session state that does not allow it."""


class AccessDeniedError(DomainError):
    """Camera access was not granted. Terminal for the session until configured again."""


class DeviceOpenError(InfrastructureError):
    """Capture device could not be opened. Recoverable: retry configure/switch."""


class DetectionError(AppError):
    """Mask classifier failed on a single frame. Recoverable per frame."""

    @property
    def reason(self) -> str:
        return self.message
