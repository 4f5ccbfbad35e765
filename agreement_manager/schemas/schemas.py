from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, condecimal, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..constants import AGREEMENT_STATUSES, DEFAULT_AGREEMENT_STATUS, DEFAULT_DHC, DEFAULT_REGISTRATION_CHARGES, ROLES

AgreementStatus = Literal[AGREEMENT_STATUSES]  # type: ignore[valid-type]
Role = Literal[ROLES]  # type: ignore[valid-type]

Amount = condecimal(ge=0, max_digits=12, decimal_places=2)
SignedAmount = condecimal(max_digits=12, decimal_places=2)

DATE_FIELDS = (
    "agreement_date",
    "expiry_date",
    "reminder_date",
    "biometric_date",
    "payment_received_date1",
    "payment_received_date2",
)

NON_NULLABLE_FIELDS = {
    "owner_name",
    "location",
    "total_payment",
    "govt_charges",
    "margin",
    "payment_from_owner",
    "payment_from_tenant",
    "stamp_duty",
    "registration_charges",
    "dhc",
    "service_charge",
    "police_verification",
    "outstation_charges",
    "agreement_status",
    "police_verification_complete",
    "notes",
}


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class RequestModel(ApiModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


# --- Auth ---


class RegisterRequest(RequestModel):
    username: str = Field(min_length=3, max_length=64)
    email: EmailStr
    password: str = Field(min_length=8)
    full_name: Optional[str] = None


class LoginRequest(RequestModel):
    username: str
    password: str


class UserRead(ApiModel):
    id: int
    username: str
    email: str
    full_name: Optional[str] = None
    role: Role
    created_at: datetime


class AuthResponse(ApiModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRead


# --- Agreements ---


class AgreementFields(RequestModel):
    owner_name: Optional[str] = Field(default=None, min_length=1)
    location: Optional[str] = Field(default=None, min_length=1)
    token_number: Optional[str] = None
    owner_contact: Optional[str] = None
    tenant_contact: Optional[str] = None
    agent_name: Optional[str] = None
    email: Optional[str] = None
    cc_email: Optional[str] = None

    agreement_date: Optional[date] = None
    expiry_date: Optional[date] = None
    reminder_date: Optional[date] = None
    biometric_date: Optional[date] = None
    payment_received_date1: Optional[date] = None
    payment_received_date2: Optional[date] = None

    total_payment: Optional[Amount] = None  # type: ignore[valid-type]
    govt_charges: Optional[Amount] = None  # type: ignore[valid-type]
    margin: Optional[SignedAmount] = None  # type: ignore[valid-type]
    payment_from_owner: Optional[Amount] = None  # type: ignore[valid-type]
    payment_from_tenant: Optional[Amount] = None  # type: ignore[valid-type]

    stamp_duty: Optional[Amount] = None  # type: ignore[valid-type]
    registration_charges: Optional[Amount] = None  # type: ignore[valid-type]
    dhc: Optional[Amount] = None  # type: ignore[valid-type]
    service_charge: Optional[Amount] = None  # type: ignore[valid-type]
    police_verification: Optional[Amount] = None  # type: ignore[valid-type]
    outstation_charges: Optional[Amount] = None  # type: ignore[valid-type]

    agreement_status: Optional[AgreementStatus] = None
    police_verification_complete: Optional[bool] = None
    notes: Optional[str] = None

    @field_validator(*DATE_FIELDS, mode="before")
    @classmethod
    def blank_date_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class AgreementCreate(AgreementFields):
    owner_name: str = Field(min_length=1)
    location: str = Field(min_length=1)

    total_payment: Amount = Decimal("0.00")  # type: ignore[valid-type]
    govt_charges: Amount = Decimal("0.00")  # type: ignore[valid-type]
    margin: SignedAmount = Decimal("0.00")  # type: ignore[valid-type]
    payment_from_owner: Amount = Decimal("0.00")  # type: ignore[valid-type]
    payment_from_tenant: Amount = Decimal("0.00")  # type: ignore[valid-type]

    stamp_duty: Amount = Decimal("0.00")  # type: ignore[valid-type]
    registration_charges: Amount = Decimal(DEFAULT_REGISTRATION_CHARGES)  # type: ignore[valid-type]
    dhc: Amount = Decimal(DEFAULT_DHC)  # type: ignore[valid-type]
    service_charge: Amount = Decimal("0.00")  # type: ignore[valid-type]
    police_verification: Amount = Decimal("0.00")  # type: ignore[valid-type]
    outstation_charges: Amount = Decimal("0.00")  # type: ignore[valid-type]

    agreement_status: AgreementStatus = DEFAULT_AGREEMENT_STATUS
    police_verification_complete: bool = False
    notes: str = ""


class AgreementUpdate(AgreementFields):
    @model_validator(mode="after")
    def reject_explicit_nulls(self) -> "AgreementUpdate":
        for name in self.model_fields_set & NON_NULLABLE_FIELDS:
            if getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self


class AgreementRead(ApiModel):
    id: int
    user_id: int
    owner_name: str
    location: str
    token_number: Optional[str] = None
    owner_contact: Optional[str] = None
    tenant_contact: Optional[str] = None
    agent_name: Optional[str] = None
    email: Optional[str] = None
    cc_email: Optional[str] = None

    agreement_date: Optional[date] = None
    expiry_date: Optional[date] = None
    reminder_date: Optional[date] = None
    biometric_date: Optional[date] = None
    payment_received_date1: Optional[date] = None
    payment_received_date2: Optional[date] = None

    total_payment: Decimal
    govt_charges: Decimal
    margin: Decimal
    payment_from_owner: Decimal
    payment_from_tenant: Decimal
    payment_due: Decimal

    stamp_duty: Decimal
    registration_charges: Decimal
    dhc: Decimal
    service_charge: Decimal
    police_verification: Decimal
    outstation_charges: Decimal

    agreement_status: str
    police_verification_complete: bool
    notes: str = ""

    created_at: datetime
    updated_at: datetime


class Pagination(ApiModel):
    total: int
    page: int
    limit: int
    total_pages: int


class AgreementPage(ApiModel):
    agreements: List[AgreementRead]
    pagination: Pagination


class MessageResponse(ApiModel):
    message: str


# --- Reports ---


class AgentReport(ApiModel):
    agent: str
    from_date: date
    to_date: date
    agreements: List[AgreementRead]
    total_due: str


# --- Snapshots ---


class SnapshotUser(RequestModel):
    id: int
    username: str = Field(min_length=1)
    email: str = Field(min_length=1)
    password_hash: str = Field(min_length=1)
    full_name: Optional[str] = None
    role: Role = "user"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SnapshotAgreement(AgreementRead):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True, extra="forbid")

    agreement_status: AgreementStatus  # type: ignore[assignment]
    notes: Optional[str] = ""  # type: ignore[assignment]
    created_at: Optional[datetime] = None  # type: ignore[assignment]
    updated_at: Optional[datetime] = None  # type: ignore[assignment]


class SnapshotData(RequestModel):
    users: List[SnapshotUser] = []
    agreements: List[SnapshotAgreement] = []


class Snapshot(RequestModel):
    export_date: Optional[datetime] = None
    version: str = Field(min_length=1)
    data: SnapshotData


class RestoreResult(ApiModel):
    message: str
    users_restored: int
    agreements_restored: int


# --- WhatsApp ---


class WhatsAppSendRequest(RequestModel):
    agreement_id: int


class WhatsAppSendResponse(ApiModel):
    success: bool = True
    agreement_id: int
    message_sid: str
    message: str = "WhatsApp sent successfully"


class WhatsAppBulkSendRequest(RequestModel):
    agreement_ids: List[int] = Field(min_length=1, max_length=500)


class WhatsAppSendFailure(ApiModel):
    agreement_id: int
    error: str


class WhatsAppBulkSendResponse(ApiModel):
    sent: List[WhatsAppSendResponse]
    failed: List[WhatsAppSendFailure]
    total: int
