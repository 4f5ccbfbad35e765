from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..auth.jwt import get_current_user
from ..models.models import User
from ..schemas.schemas import AgentReport, AgreementRead
from ..services.reports import generate_agent_report

router = APIRouter()


@router.get("/reports", response_model=AgentReport)
def agent_report(
    agent: str = Query(..., min_length=1),
    from_date: date = Query(..., alias="fromDate"),
    to_date: date = Query(..., alias="toDate"),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
) -> AgentReport:
    try:
        report = generate_agent_report(db, agent, from_date, to_date)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return AgentReport(
        agent=report.agent,
        from_date=report.from_date,
        to_date=report.to_date,
        agreements=[AgreementRead.model_validate(agreement) for agreement in report.agreements],
        total_due=report.total_due_display,
    )
