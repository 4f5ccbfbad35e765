import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..auth.jwt import require_roles
from ..constants import ROLE_ADMIN
from ..models.models import User
from ..schemas.schemas import RestoreResult
from ..services.backup import export_snapshot, parse_snapshot, restore_snapshot

logger = logging.getLogger(__name__)

router = APIRouter()

require_admin = require_roles(ROLE_ADMIN)


@router.get("/backup")
def download_backup(
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin),
) -> JSONResponse:
    snapshot = export_snapshot(db)
    filename = f"agreement-backup-{snapshot.export_date:%Y-%m-%d}.json"
    logger.info("Backup downloaded by user %s", actor.id)
    return JSONResponse(
        content=snapshot.model_dump(mode="json", by_alias=True),
        headers={"Content-Disposition": f'attachment; filename="{filename}"', "Cache-Control": "no-store"},
    )


@router.post("/restore", response_model=RestoreResult)
def upload_restore(
    payload: Any = Body(...),
    db: Session = Depends(get_db),
    actor: User = Depends(require_admin),
) -> RestoreResult:
    # Parsed by hand so a malformed document is reported as such, before anything is deleted
    snapshot = parse_snapshot(payload)
    outcome = restore_snapshot(db, snapshot, actor.id)
    if outcome.merged_into_caller:
        logger.info("Snapshot accounts %s were merged into user %s", outcome.merged_into_caller, actor.id)
    return RestoreResult(
        message="Backup restored successfully",
        users_restored=outcome.users_restored,
        agreements_restored=outcome.agreements_restored,
    )
