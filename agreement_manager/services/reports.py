from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterable, List

from sqlalchemy.orm import Session

from ..models.models import Agreement
from .agreements import ZERO, to_money

UTF8_BOM = "\ufeff"


@dataclass
class AgentReportResult:
    agent: str
    from_date: date
    to_date: date
    agreements: List[Agreement]
    total_due: Decimal

    @property
    def total_due_display(self) -> str:
        return f"{self.total_due:.2f}"


@dataclass
class CsvReport:
    filename: str
    content: str


def _render_csv(headers: List[str], rows: Iterable[Iterable[str]]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL)
    writer.writerow(headers)
    for row in rows:
        writer.writerow(row)
    return output.getvalue()


def sum_payment_due(agreements: Iterable[Agreement]) -> Decimal:
    total = ZERO
    for agreement in agreements:
        total += to_money(agreement.payment_due)
    return to_money(total)


def generate_agent_report(session: Session, agent: str, from_date: date, to_date: date) -> AgentReportResult:
    """Agreements for one agent dated within [from_date, to_date] with a positive total, plus their summed dues.

    The agent name must match exactly, including case.
    """
    if from_date > to_date:
        raise ValueError("fromDate must be on or before toDate.")

    agreements = (
        session.query(Agreement)
        .filter(
            Agreement.agent_name == agent,
            Agreement.agreement_date >= from_date,
            Agreement.agreement_date <= to_date,
            Agreement.total_payment > 0,
        )
        .order_by(Agreement.agreement_date.desc(), Agreement.id.desc())
        .all()
    )
    return AgentReportResult(
        agent=agent,
        from_date=from_date,
        to_date=to_date,
        agreements=agreements,
        total_due=sum_payment_due(agreements),
    )


COMPREHENSIVE_HEADERS = [
    "Name of Owner",
    "Location",
    "Token Number",
    "Agreement Date",
    "Owner Contact",
    "Tenant Contact",
    "Email",
    "Expiry Date",
    "Reminder Date",
    "CC Email",
    "Agent Name",
    "Total Payment",
    "Govt Charges",
    "Margin",
    "Payment from Owner",
    "Payment from Tenant",
    "Payment Received Date 1",
    "Payment Received Date 2",
    "Payment Due",
    "Agreement Status",
    "Biometric Date",
    "Police Verification Complete",
    "Created Date",
]


def _fmt_date(value) -> str:
    return value.isoformat() if value else ""


def generate_comprehensive_export(session: Session) -> CsvReport:
    agreements = (
        session.query(Agreement)
        .order_by(Agreement.agreement_date.desc(), Agreement.id.desc())
        .all()
    )
    rows: List[List[str]] = []
    for agreement in agreements:
        rows.append(
            [
                agreement.owner_name or "",
                agreement.location or "",
                agreement.token_number or "",
                _fmt_date(agreement.agreement_date),
                agreement.owner_contact or "",
                agreement.tenant_contact or "",
                agreement.email or "",
                _fmt_date(agreement.expiry_date),
                _fmt_date(agreement.reminder_date),
                agreement.cc_email or "",
                agreement.agent_name or "",
                f"{to_money(agreement.total_payment):.2f}",
                f"{to_money(agreement.govt_charges):.2f}",
                f"{to_money(agreement.margin):.2f}",
                f"{to_money(agreement.payment_from_owner):.2f}",
                f"{to_money(agreement.payment_from_tenant):.2f}",
                _fmt_date(agreement.payment_received_date1),
                _fmt_date(agreement.payment_received_date2),
                f"{to_money(agreement.payment_due):.2f}",
                agreement.agreement_status or "",
                _fmt_date(agreement.biometric_date),
                "Yes" if agreement.police_verification_complete else "No",
                _fmt_date(agreement.created_at),
            ]
        )

    csv_content = UTF8_BOM + _render_csv(COMPREHENSIVE_HEADERS, rows)
    filename = f"comprehensive-agreements-{datetime.now(timezone.utc).date().isoformat()}.csv"
    return CsvReport(filename=filename, content=csv_content)
