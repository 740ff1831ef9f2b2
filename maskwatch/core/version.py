"""Build/version metadata.

Packaged builds inject metadata through environment variables because git
metadata is not shipped with them.
"""

from __future__ import annotations

import os

from maskwatch import __version__


def get_build_info() -> dict[str, str]:
    """Return build metadata.

    - MW_VERSION: human readable version, defaults to the package version
    - MW_GIT_SHA: short git sha
    - MW_BUILD_DATE: ISO date (YYYY-MM-DD)
    """

    return {
        "version": os.getenv("MW_VERSION", __version__),
        "git_sha": os.getenv("MW_GIT_SHA", "dev"),
        "build_date": os.getenv("MW_BUILD_DATE", ""),
    }


def get_version_string() -> str:
    info = get_build_info()
    ver = info["version"].strip() or __version__
    sha = info["git_sha"].strip() or "dev"
    date = info["build_date"].strip()
    if date:
        return f"v{ver} ({sha}, {date})"
    return f"v{ver} ({sha})"
