from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..auth.jwt import get_current_user
from ..models.models import User
from ..schemas.schemas import (
    AgreementRead,
    WhatsAppBulkSendRequest,
    WhatsAppBulkSendResponse,
    WhatsAppSendFailure,
    WhatsAppSendRequest,
    WhatsAppSendResponse,
)
from ..services.whatsapp import WhatsAppClient, list_clients_with_dues, send_bulk_reminders, send_reminder

router = APIRouter()


def get_whatsapp_client(request: Request) -> WhatsAppClient:
    return request.app.state.whatsapp


@router.get("/clients", response_model=List[AgreementRead])
def list_clients(
    agent: str = Query(..., min_length=1),
    from_date: date = Query(..., alias="fromDate"),
    to_date: date = Query(..., alias="toDate"),
    db: Session = Depends(get_db),
    _: User = Depends(get_current_user),
) -> List[AgreementRead]:
    if from_date > to_date:
        raise HTTPException(status_code=400, detail="fromDate must be on or before toDate.")
    return [AgreementRead.model_validate(agreement) for agreement in list_clients_with_dues(db, agent, from_date, to_date)]


@router.post("/send", response_model=WhatsAppSendResponse)
def send_one(
    payload: WhatsAppSendRequest,
    db: Session = Depends(get_db),
    client: WhatsAppClient = Depends(get_whatsapp_client),
    _: User = Depends(get_current_user),
) -> WhatsAppSendResponse:
    outcome = send_reminder(db, client, payload.agreement_id)
    return WhatsAppSendResponse(agreement_id=outcome.agreement_id, message_sid=outcome.message_sid)


@router.post("/send-bulk", response_model=WhatsAppBulkSendResponse)
def send_bulk(
    payload: WhatsAppBulkSendRequest,
    db: Session = Depends(get_db),
    client: WhatsAppClient = Depends(get_whatsapp_client),
    _: User = Depends(get_current_user),
) -> WhatsAppBulkSendResponse:
    outcome = send_bulk_reminders(db, client, payload.agreement_ids)
    return WhatsAppBulkSendResponse(
        sent=[
            WhatsAppSendResponse(agreement_id=item.agreement_id, message_sid=item.message_sid)
            for item in outcome.sent
        ],
        failed=[WhatsAppSendFailure(**item) for item in outcome.failed],
        total=outcome.total,
    )
