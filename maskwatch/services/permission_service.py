"""Camera access policy (implements PermissionPort).

Desktop platforms expose no runtime camera prompt to Python; access is a
deployment setting (``MW_CAMERA_ACCESS``).
"""

from __future__ import annotations

import logging

from maskwatch.config import CAMERA_ACCESS_ALLOWED

log = logging.getLogger(__name__)


class PolicyPermissionService:
    def __init__(self, allowed: bool = CAMERA_ACCESS_ALLOWED) -> None:
        self._allowed = allowed

    def request_access(self) -> bool:
        if not self._allowed:
            log.info("Camera access disabled by policy (MW_CAMERA_ACCESS)")
        return self._allowed
