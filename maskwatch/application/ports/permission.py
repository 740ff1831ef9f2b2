from __future__ import annotations

from typing import Protocol


class PermissionPort(Protocol):
    def request_access(self) -> bool:
        """Return whether camera access is granted. May block; call off the UI thread."""
        ...
