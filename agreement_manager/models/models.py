from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship as orm_relationship

from ..constants import DEFAULT_AGREEMENT_STATUS, ROLE_ADMIN, ROLE_USER
from ..database import Base


def utcnow():
    return datetime.now(timezone.utc)


def Money(**kwargs):
    return Column(Numeric(12, 2), default=Decimal("0.00"), nullable=False, **kwargs)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    full_name = Column(String, nullable=True)
    role = Column(String, default=ROLE_USER, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    agreements = orm_relationship("Agreement", back_populates="owner")

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class Agreement(Base):
    __tablename__ = "agreements"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    owner_name = Column(String, nullable=False)
    location = Column(String, nullable=False)
    token_number = Column(String, nullable=True)
    owner_contact = Column(String, nullable=True)
    tenant_contact = Column(String, nullable=True)
    agent_name = Column(String, nullable=True, index=True)
    email = Column(String, nullable=True)
    cc_email = Column(String, nullable=True)

    agreement_date = Column(Date, nullable=True, index=True)
    expiry_date = Column(Date, nullable=True)
    reminder_date = Column(Date, nullable=True)
    biometric_date = Column(Date, nullable=True)
    payment_received_date1 = Column(Date, nullable=True)
    payment_received_date2 = Column(Date, nullable=True)

    total_payment = Money()
    govt_charges = Money()
    margin = Money()
    payment_from_owner = Money()
    payment_from_tenant = Money()
    payment_due = Money()

    # Legacy charge breakdown
    stamp_duty = Money()
    registration_charges = Money()
    dhc = Money()
    service_charge = Money()
    police_verification = Money()
    outstation_charges = Money()

    agreement_status = Column(String, default=DEFAULT_AGREEMENT_STATUS, nullable=False)
    police_verification_complete = Column(Boolean, default=False, nullable=False)
    notes = Column(Text, default="", nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner = orm_relationship("User", back_populates="agreements")
