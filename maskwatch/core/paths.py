from __future__ import annotations

import os
import sys
from pathlib import Path

from maskwatch.config import PROJECT_ROOT

APP_DIR_NAME = "maskwatch"


def get_app_state_dir(app_folder_name: str = ".app_state") -> Path:
    """Return a writable directory for app state (logs).

    Preference order:
    1) <PROJECT_ROOT>/.app_state if writable (dev / tests)
    2) OS user data dir (~/.local/share/maskwatch, %APPDATA%\\maskwatch, ...)
    """
    proj_dir = PROJECT_ROOT / app_folder_name
    try:
        proj_dir.mkdir(parents=True, exist_ok=True)
        probe = proj_dir / ".write_test"
        probe.write_text("ok", encoding="utf-8")
        probe.unlink(missing_ok=True)
        return proj_dir
    except OSError:
        import logging

        logging.getLogger(__name__).debug(
            "Project dir probe failed; falling back to user data dir", exc_info=True
        )
    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA") or Path.home() / "AppData" / "Roaming")
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        xdg = os.environ.get("XDG_DATA_HOME")
        base = Path(xdg) if xdg else (Path.home() / ".local" / "share")
    return (base / APP_DIR_NAME).resolve()
