from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from ..core.errors import Forbidden, NotFound
from ..models.models import Agreement, User
from ..schemas.schemas import AgreementCreate, AgreementUpdate

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Placeholder the front end sends when no agent is chosen
AGENT_PLACEHOLDER = "-- Select Agent --"


def to_money(value: Any) -> Decimal:
    if value is None or value == "":
        return ZERO
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_payment_due(total_payment: Any, payment_from_owner: Any, payment_from_tenant: Any) -> Decimal:
    due = to_money(total_payment) - to_money(payment_from_owner) - to_money(payment_from_tenant)
    return max(ZERO, due)


@dataclass
class AgreementPageResult:
    agreements: List[Agreement]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def get_agreement_or_404(db: Session, agreement_id: int) -> Agreement:
    agreement = db.get(Agreement, agreement_id)
    if not agreement:
        raise NotFound("Agreement", agreement_id)
    return agreement


def ensure_can_modify(agreement: Agreement, actor: User) -> None:
    if actor.is_admin or agreement.user_id == actor.id:
        return
    raise Forbidden(f"Agreement {agreement.id} belongs to another user")


def _filtered_query(
    db: Session,
    agent: Optional[str] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    search: Optional[str] = None,
) -> Query:
    query = db.query(Agreement)
    if agent and agent != AGENT_PLACEHOLDER:
        query = query.filter(Agreement.agent_name == agent)
    if from_date and to_date:
        query = query.filter(Agreement.agreement_date.between(from_date, to_date))
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Agreement.owner_name.ilike(pattern),
                Agreement.location.ilike(pattern),
                Agreement.owner_contact.ilike(pattern),
                Agreement.tenant_contact.ilike(pattern),
                Agreement.agent_name.ilike(pattern),
                Agreement.token_number.ilike(pattern),
            )
        )
    return query


def list_agreements(
    db: Session,
    *,
    agent: Optional[str] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 200,
) -> AgreementPageResult:
    query = _filtered_query(db, agent=agent, from_date=from_date, to_date=to_date, search=search)
    total = query.count()
    agreements = (
        query.order_by(Agreement.agreement_date.desc(), Agreement.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return AgreementPageResult(agreements=agreements, total=total, page=page, limit=limit)


def list_agents(db: Session) -> List[str]:
    rows = (
        db.query(Agreement.agent_name)
        .filter(Agreement.agent_name.isnot(None), Agreement.agent_name != "")
        .distinct()
        .order_by(Agreement.agent_name.asc())
        .all()
    )
    return [row[0] for row in rows]


def _recompute_due(agreement: Agreement) -> None:
    agreement.payment_due = compute_payment_due(
        agreement.total_payment,
        agreement.payment_from_owner,
        agreement.payment_from_tenant,
    )


def create_agreement(db: Session, payload: AgreementCreate, owner: User, default_cc_email: str) -> Agreement:
    values: Dict[str, Any] = payload.model_dump()
    if not values.get("cc_email"):
        values["cc_email"] = default_cc_email
    agreement = Agreement(user_id=owner.id, **values)
    _recompute_due(agreement)
    db.add(agreement)
    db.commit()
    db.refresh(agreement)
    logger.info("Agreement %s created by user %s", agreement.id, owner.id)
    return agreement


def update_agreement(db: Session, agreement_id: int, payload: AgreementUpdate, actor: User) -> Agreement:
    agreement = get_agreement_or_404(db, agreement_id)
    ensure_can_modify(agreement, actor)
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(agreement, key, value)
    _recompute_due(agreement)
    db.add(agreement)
    db.commit()
    db.refresh(agreement)
    logger.info("Agreement %s updated by user %s", agreement.id, actor.id)
    return agreement


def delete_agreement(db: Session, agreement_id: int, actor: User) -> None:
    agreement = get_agreement_or_404(db, agreement_id)
    ensure_can_modify(agreement, actor)
    db.delete(agreement)
    db.commit()
    logger.info("Agreement %s deleted by user %s", agreement_id, actor.id)
