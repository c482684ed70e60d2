"""Pydantic schemas for ledger I/O."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ContactType = Literal["whatsapp", "call", "email", "in_person"]
ContactStatus = Literal["not_contacted", "recently_contacted", "long_ago"]


# --- Patient ---

class PatientDraft(BaseModel):
    """Patient as submitted with a save; ``id`` present means update."""

    id: Optional[int] = None
    full_name: str
    doc_id: str = ""
    email: Optional[str] = None
    phone: str = ""
    emergency_phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    anamnesis: Optional[str] = None
    allergy_detail: Optional[str] = None
    status: Optional[str] = None

    def demographics(self) -> dict:
        data = self.model_dump(exclude={"id"})
        data["status"] = self.status or "active"
        return data


class PatientRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    full_name: str
    doc_id: str
    email: Optional[str] = None
    phone: str
    date_of_birth: Optional[date] = None
    status: str
    debt_opened_at: Optional[date] = None
    debt_archived: bool
    debt_archived_at: Optional[datetime] = None
    last_contact_at: Optional[datetime] = None
    last_contact_type: Optional[str] = None


# --- Session items ---

class SessionItemDraft(BaseModel):
    name: str = ""
    unit_price: float = 0.0
    quantity: int = 0
    subtotal: float = 0.0
    is_active: Optional[bool] = None
    tooth_number: Optional[str] = None
    procedure_notes: Optional[str] = None
    procedure_template_id: Optional[int] = None

    @property
    def counts_toward_budget(self) -> bool:
        if self.is_active is not None:
            return self.is_active
        return self.quantity > 0


class SessionItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    session_id: int
    name: str
    unit_price: float
    quantity: int
    subtotal: float
    is_active: bool
    tooth_number: Optional[str] = None
    procedure_notes: Optional[str] = None
    procedure_template_id: Optional[int] = None
    sort_order: int


# --- Sessions ---

class SessionDraft(BaseModel):
    """A session as submitted with a save; ``id`` present and > 0 means update.

    ``budget`` and ``balance`` are the caller's view only; the ledger
    recomputes both from ``items``.
    """

    id: Optional[int] = None
    date: date
    reason_type: Optional[str] = None
    reason_detail: Optional[str] = None
    diagnosis_text: Optional[str] = None
    clinical_notes: Optional[str] = None
    signer: Optional[str] = None
    budget: float = 0.0
    discount: float = 0.0
    payment: float = 0.0
    balance: float = 0.0
    payment_method_id: Optional[int] = None
    payment_notes: Optional[str] = None
    items: list[SessionItemDraft] = Field(default_factory=list)

    @property
    def persisted_id(self) -> Optional[int]:
        if self.id is not None and self.id > 0:
            return self.id
        return None


class SessionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    date: date
    reason_type: Optional[str] = None
    reason_detail: Optional[str] = None
    diagnosis_text: Optional[str] = None
    clinical_notes: Optional[str] = None
    signer: Optional[str] = None
    budget: float
    discount: float
    payment: float
    balance: float
    cumulative_balance: float
    payment_method_id: Optional[int] = None
    payment_notes: Optional[str] = None
    is_saved: bool


class SessionWithItems(BaseModel):
    session: SessionRead
    items: list[SessionItemRead] = Field(default_factory=list)


# --- Save ---

class SaveRequest(BaseModel):
    patient: PatientDraft
    sessions: list[SessionDraft] = Field(default_factory=list)


class SaveResult(BaseModel):
    patient_id: int
    last_session_id: Optional[int] = None


# --- Debt reporting ---

class ContactRequest(BaseModel):
    contact_type: ContactType


class PatientDebtSummary(BaseModel):
    patient_id: int
    full_name: str
    phone: Optional[str] = None
    doc_id: str
    current_balance: float
    debt_opened_at: Optional[date] = None
    debt_archived: bool = False
    last_contact_at: Optional[datetime] = None
    last_contact_type: Optional[str] = None
    days_overdue: int = 0
    contact_status: ContactStatus = "not_contacted"


class RepairResult(BaseModel):
    patients_fixed: int
