from __future__ import annotations

import os
from datetime import datetime, timezone
from functools import lru_cache

from ..constants import SNAPSHOT_VERSION

APP_VERSION = "1.0.0"


def _resolve_git_sha() -> str:
    return os.getenv("GIT_SHA") or os.getenv("RENDER_GIT_COMMIT") or "unknown"


@lru_cache
def get_version_info() -> dict[str, str]:
    return {
        "version": APP_VERSION,
        "snapshotVersion": SNAPSHOT_VERSION,
        "gitSha": _resolve_git_sha(),
        "buildTime": os.getenv("BUILD_TIME", datetime.now(timezone.utc).isoformat()),
        "env": os.getenv("APP_ENV", os.getenv("ENV", "unknown")),
    }
