"""JSON snapshot export and transactional restore.

A snapshot carries every user account (password hashes included) and every
agreement. Restoring one replaces the live data in a single transaction while
keeping the requesting account intact; nothing is applied unless everything is.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Set

from pydantic import ValidationError
from sqlalchemy import insert, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..constants import SNAPSHOT_VERSION, SUPPORTED_SNAPSHOT_VERSIONS
from ..core.errors import MalformedSnapshot, NotFound, TransactionFailure
from ..models.models import Agreement, User, utcnow
from ..schemas.schemas import Snapshot, SnapshotAgreement, SnapshotData, SnapshotUser

logger = logging.getLogger(__name__)

RESTORED_TABLES = ("users", "agreements")


@dataclass
class RestoreOutcome:
    users_restored: int
    agreements_restored: int
    merged_into_caller: List[int] = field(default_factory=list)


def export_snapshot(session: Session) -> Snapshot:
    users = session.query(User).order_by(User.id.asc()).all()
    agreements = session.query(Agreement).order_by(Agreement.id.asc()).all()

    snapshot = Snapshot(
        export_date=datetime.now(timezone.utc),
        version=SNAPSHOT_VERSION,
        data=SnapshotData(
            users=[
                SnapshotUser(
                    id=user.id,
                    username=user.username,
                    email=user.email,
                    password_hash=user.hashed_password,
                    full_name=user.full_name,
                    role=user.role,
                    created_at=user.created_at,
                    updated_at=user.updated_at,
                )
                for user in users
            ],
            agreements=[SnapshotAgreement.model_validate(agreement) for agreement in agreements],
        ),
    )
    logger.info("Exported snapshot with %d users and %d agreements", len(users), len(agreements))
    return snapshot


def parse_snapshot(payload: Any) -> Snapshot:
    """Validate an uploaded snapshot document without touching the store."""
    if not isinstance(payload, dict):
        raise MalformedSnapshot("Invalid backup file format: expected a JSON object.")
    data = payload.get("data")
    if not isinstance(data, dict) or not data:
        raise MalformedSnapshot("Invalid backup file format: missing 'data'.")
    if not payload.get("version"):
        raise MalformedSnapshot("Invalid backup file format: missing 'version'.")

    try:
        snapshot = Snapshot.model_validate(payload)
    except ValidationError as exc:
        raise MalformedSnapshot(
            "Backup file contains invalid entries.",
            errors=exc.errors(include_url=False, include_context=False),
        ) from exc

    if snapshot.version not in SUPPORTED_SNAPSHOT_VERSIONS:
        logger.warning("Restoring snapshot with unrecognised version %s", snapshot.version)
    return snapshot


def _caller_aliases(snapshot: Snapshot, caller: User) -> Set[int]:
    """Snapshot user ids that denote the caller's own account.

    A snapshot user is the caller when the username or the email matches. A
    snapshot user that only shares the caller's id is a different person (for
    example from another installation); replaying it would drop that account
    and hand its agreements to the caller, so the snapshot is rejected.
    """
    email = (caller.email or "").lower()
    aliases = set()
    for user in snapshot.data.users:
        if user.username == caller.username or user.email.lower() == email:
            aliases.add(user.id)
        elif user.id == caller.id:
            raise MalformedSnapshot(
                f"Snapshot user {user.id} ({user.username}) has the id of the restoring account "
                f"({caller.username}) but a different username and email."
            )
    return aliases


def _user_rows(snapshot: Snapshot, skip_ids: Set[int]) -> List[Dict[str, Any]]:
    now = utcnow()
    rows = []
    for user in snapshot.data.users:
        if user.id in skip_ids:
            continue
        rows.append(
            {
                "id": user.id,
                "username": user.username,
                "email": user.email,
                "hashed_password": user.password_hash,
                "full_name": user.full_name,
                "role": user.role,
                "created_at": user.created_at or now,
                "updated_at": user.updated_at or user.created_at or now,
            }
        )
    return rows


def _agreement_rows(snapshot: Snapshot, caller_id: int, caller_aliases: Set[int]) -> List[Dict[str, Any]]:
    now = utcnow()
    rows = []
    for agreement in snapshot.data.agreements:
        row = agreement.model_dump()
        if row["user_id"] in caller_aliases:
            row["user_id"] = caller_id
        row["notes"] = row.get("notes") or ""
        row["created_at"] = row.get("created_at") or now
        row["updated_at"] = row.get("updated_at") or row["created_at"]
        rows.append(row)
    return rows


def _advance_sequences(session: Session) -> None:
    for table in RESTORED_TABLES:
        session.execute(
            text(
                f"SELECT setval(pg_get_serial_sequence('{table}', 'id'), "
                f"COALESCE((SELECT MAX(id) FROM {table}), 1), "
                f"(SELECT MAX(id) FROM {table}) IS NOT NULL)"
            )
        )


def restore_snapshot(session: Session, snapshot: Snapshot, caller_id: int) -> RestoreOutcome:
    """Replace all agreements and all other accounts with the snapshot contents.

    The caller's account is kept as it is. Snapshot users that are the caller
    (same username or email) are not inserted; their agreements are
    re-owned by the caller. A different user holding the caller's id is
    rejected before anything is deleted. Any database error rolls the whole
    restore back.
    """
    caller = session.get(User, caller_id)
    if caller is None:
        raise NotFound("User", caller_id)

    aliases = _caller_aliases(snapshot, caller)
    user_rows = _user_rows(snapshot, aliases)
    agreement_rows = _agreement_rows(snapshot, caller.id, aliases)

    try:
        session.query(Agreement).delete(synchronize_session=False)
        session.query(User).filter(User.id != caller.id).delete(synchronize_session=False)
        if user_rows:
            session.execute(insert(User), user_rows)
        if agreement_rows:
            session.execute(insert(Agreement), agreement_rows)
        if session.get_bind().dialect.name == "postgresql":
            _advance_sequences(session)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        reason = getattr(exc, "orig", None) or exc
        logger.error("Snapshot restore by user %s rolled back: %s", caller_id, reason)
        raise TransactionFailure(f"Failed to restore backup: {reason}") from exc

    session.expire_all()
    logger.info(
        "Snapshot restored by user %s: %d users, %d agreements",
        caller_id,
        len(user_rows),
        len(agreement_rows),
    )
    return RestoreOutcome(
        users_restored=len(user_rows),
        agreements_restored=len(agreement_rows),
        merged_into_caller=sorted(aliases),
    )


def write_snapshot_file(snapshot: Snapshot, destination_dir: Path) -> Path:
    """Write a snapshot as a timestamped JSON file, the same document /api/backup returns."""
    destination_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    path = destination_dir / f"agreement-backup-{timestamp}.json"
    document = snapshot.model_dump(mode="json", by_alias=True)
    path.write_text(json.dumps(document, indent=2))
    logger.info("Snapshot written to %s", path)
    return path


def load_snapshot_file(path: Path) -> Snapshot:
    try:
        payload = json.loads(path.read_text())
    except json.JSONDecodeError as exc:
        raise MalformedSnapshot(f"{path} is not valid JSON: {exc}") from exc
    return parse_snapshot(payload)
