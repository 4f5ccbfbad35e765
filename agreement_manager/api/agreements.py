from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ..api.dependencies import get_db, get_settings_dependency
from ..auth.jwt import get_current_user
from ..config import Settings
from ..constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..models.models import Agreement, User
from ..schemas.schemas import (
    AgreementCreate,
    AgreementPage,
    AgreementRead,
    AgreementUpdate,
    MessageResponse,
    Pagination,
)
from ..services import agreements as agreement_service
from ..services.reports import generate_comprehensive_export

router = APIRouter()


def _csv_response(filename: str, content: str) -> Response:
    headers = {
        "Content-Disposition": f'attachment; filename="{filename}"',
        "Cache-Control": "no-store",
    }
    return Response(content=content, media_type="text/csv; charset=utf-8", headers=headers)


@router.get("/agreements", response_model=AgreementPage)
def list_agreements(
    agent: Optional[str] = None,
    from_date: Optional[date] = Query(None, alias="fromDate"),
    to_date: Optional[date] = Query(None, alias="toDate"),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
) -> AgreementPage:
    result = agreement_service.list_agreements(
        db,
        agent=agent,
        from_date=from_date,
        to_date=to_date,
        search=search,
        page=page,
        limit=limit,
    )
    return AgreementPage(
        agreements=[AgreementRead.model_validate(agreement) for agreement in result.agreements],
        pagination=Pagination(
            total=result.total,
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
        ),
    )


@router.get("/agreements/export/comprehensive")
def export_comprehensive(
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
) -> Response:
    report = generate_comprehensive_export(db)
    return _csv_response(report.filename, report.content)


@router.get("/agreements/{agreement_id}", response_model=AgreementRead)
def get_agreement(
    agreement_id: int,
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
) -> Agreement:
    return agreement_service.get_agreement_or_404(db, agreement_id)


@router.post("/agreements", response_model=AgreementRead, status_code=status.HTTP_201_CREATED)
def create_agreement(
    payload: AgreementCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dependency),
    current_user: User = Depends(get_current_user),
) -> Agreement:
    return agreement_service.create_agreement(db, payload, current_user, settings.default_cc_email)


@router.put("/agreements/{agreement_id}", response_model=AgreementRead)
def update_agreement(
    agreement_id: int,
    payload: AgreementUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Agreement:
    return agreement_service.update_agreement(db, agreement_id, payload, current_user)


@router.delete("/agreements/{agreement_id}", response_model=MessageResponse)
def delete_agreement(
    agreement_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> MessageResponse:
    agreement_service.delete_agreement(db, agreement_id, current_user)
    return MessageResponse(message="Agreement deleted successfully")


@router.get("/agents", response_model=List[str])
def list_agents(
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
) -> List[str]:
    return agreement_service.list_agents(db)
