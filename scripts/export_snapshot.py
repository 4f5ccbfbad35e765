#!/usr/bin/env python3
"""Write a JSON snapshot of the configured database into SNAPSHOT_DIR (backups/snapshots by default)."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from agreement_manager.config import get_settings  # noqa: E402
from agreement_manager.database import Database  # noqa: E402
from agreement_manager.services.backup import export_snapshot, write_snapshot_file  # noqa: E402


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--output-dir", default=settings.snapshot_dir)
    args = parser.parse_args()

    database = Database(settings.database_url)
    try:
        with database.session_scope() as session:
            snapshot = export_snapshot(session)
    finally:
        database.dispose()

    path = write_snapshot_file(snapshot, Path(args.output_dir))
    print(
        f"Snapshot with {len(snapshot.data.users)} users and "
        f"{len(snapshot.data.agreements)} agreements written to {path}"
    )


if __name__ == "__main__":
    main()
