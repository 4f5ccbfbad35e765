from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from ..config import Settings
from ..core.errors import AppError, WhatsAppError
from ..models.models import Agreement
from .agreements import get_agreement_or_404, to_money

logger = logging.getLogger(__name__)

MESSAGE_TEMPLATE = """\U0001F44B *Dear {agent}*,

\U0001F4CB *Agreement Summary*:
   • Name: {name}
   • Location: {location}
   • Date: {date}

\U0001F4BC *Charges*:
   • Stamp Duty: ₹{stamp_duty}
   • Registration: ₹{registration}
   • DHC: ₹{dhc}
   • Service: ₹{service}
   • Police Verif.: ₹{police}

\U0001F4B0 *Total*: ₹{total}
✅ *Received*: ₹{received}
⚠️ *Due*: ₹{due}

Thanks,
\U0001F3E2 *{sender}*"""


def _amount(value: Any) -> str:
    return f"{to_money(value):.2f}"


def _display_date(value: Optional[date]) -> str:
    return value.strftime("%d/%m/%Y") if value else ""


def reminder_fields(agreement: Agreement) -> Dict[str, str]:
    received = to_money(agreement.payment_from_owner) + to_money(agreement.payment_from_tenant)
    return {
        "agent": agreement.agent_name or "",
        "name": agreement.owner_name,
        "location": agreement.location,
        "date": _display_date(agreement.agreement_date),
        "stamp_duty": _amount(agreement.stamp_duty),
        "registration": _amount(agreement.registration_charges),
        "dhc": _amount(agreement.dhc),
        "service": _amount(agreement.service_charge),
        "police": _amount(agreement.police_verification),
        "total": _amount(agreement.total_payment),
        "received": _amount(received),
        "due": _amount(agreement.payment_due),
    }


def template_variables(fields: Dict[str, str]) -> Dict[str, str]:
    """Numbered placeholders of the approved WhatsApp content template."""
    order = [
        "name",
        "name",
        "location",
        "date",
        "stamp_duty",
        "registration",
        "dhc",
        "service",
        "police",
        "total",
        "received",
        "due",
    ]
    return {str(index): fields[key] for index, key in enumerate(order, start=1)}


def render_message(fields: Dict[str, str], sender: str) -> str:
    return MESSAGE_TEMPLATE.format(sender=sender, **fields)


class WhatsAppClient:
    def __init__(self, settings: Settings, client: Optional[Client] = None) -> None:
        self._settings = settings
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client is not None or self._settings.twilio_is_configured

    def _twilio(self) -> Client:
        if self._client is None:
            if not self._settings.twilio_is_configured:
                raise WhatsAppError("WhatsApp integration is not configured.")
            self._client = Client(self._settings.twilio_account_sid, self._settings.twilio_auth_token)
        return self._client

    def format_phone(self, contact: str) -> str:
        cleaned = "".join(ch for ch in contact if ch.isdigit() or ch == "+")
        if not cleaned.strip("+"):
            raise WhatsAppError(f"Invalid contact number: {contact!r}")
        if cleaned.startswith("+"):
            return cleaned
        return f"{self._settings.whatsapp_country_code}{cleaned}"

    def send(self, contact: str, fields: Dict[str, str]) -> str:
        """Send one reminder and return the provider's message id."""
        twilio = self._twilio()
        phone = self.format_phone(contact)
        params: Dict[str, Any] = {
            "from_": f"whatsapp:{self._settings.twilio_whatsapp_number}",
            "to": f"whatsapp:{phone}",
        }
        if self._settings.twilio_content_sid:
            params["content_sid"] = self._settings.twilio_content_sid
            params["content_variables"] = json.dumps(template_variables(fields))
        else:
            params["body"] = render_message(fields, self._settings.whatsapp_sender_name)

        try:
            message = twilio.messages.create(**params)
        except TwilioException as exc:
            logger.error("WhatsApp dispatch to %s failed: %s", phone, exc)
            raise WhatsAppError(f"Failed to send WhatsApp: {exc}") from exc

        logger.info("WhatsApp sent to %s (sid=%s)", phone, message.sid)
        return message.sid


@dataclass
class SendOutcome:
    agreement_id: int
    message_sid: str


@dataclass
class BulkSendOutcome:
    sent: List[SendOutcome] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.sent) + len(self.failed)


def list_clients_with_dues(session: Session, agent: str, from_date: date, to_date: date) -> List[Agreement]:
    return (
        session.query(Agreement)
        .filter(
            Agreement.agent_name == agent,
            Agreement.agreement_date >= from_date,
            Agreement.agreement_date <= to_date,
            Agreement.payment_due > Decimal("0"),
        )
        .order_by(Agreement.payment_due.desc(), Agreement.id.asc())
        .all()
    )


def send_reminder(session: Session, client: WhatsAppClient, agreement_id: int) -> SendOutcome:
    agreement = get_agreement_or_404(session, agreement_id)
    if not agreement.owner_contact:
        raise WhatsAppError(f"Agreement {agreement_id} has no contact number.")
    sid = client.send(agreement.owner_contact, reminder_fields(agreement))
    return SendOutcome(agreement_id=agreement.id, message_sid=sid)


def send_bulk_reminders(session: Session, client: WhatsAppClient, agreement_ids: List[int]) -> BulkSendOutcome:
    """Send one reminder per agreement; a failure is recorded and the batch carries on."""
    outcome = BulkSendOutcome()
    for agreement_id in agreement_ids:
        try:
            outcome.sent.append(send_reminder(session, client, agreement_id))
        except AppError as exc:
            outcome.failed.append({"agreement_id": agreement_id, "error": exc.message})
    logger.info("Bulk WhatsApp: %d sent, %d failed", len(outcome.sent), len(outcome.failed))
    return outcome
