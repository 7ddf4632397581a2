"""
Pydantic schemas for the inquiry API.
"""
import re
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Type
from uuid import UUID

from pydantic import AliasChoices, BaseModel, EmailStr, Field, field_validator

from .models import InquiryPriority, InquiryStatus, ProductInterest

PHONE_PATTERN = re.compile(r"^[\d\s+\-()]+$")
EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")
MAX_VOLUME = 100_000_000


def check_enum(value, enum_cls: Type[Enum], label: str):
    """Reject values outside enum_cls with a message naming the value."""
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str) and value in {member.value for member in enum_cls}:
        return enum_cls(value)
    raise ValueError(f"'{value}' is not a valid {label}")


# --- Inquiry input schemas ---

class InquiryCreate(BaseModel):
    """Schema for a public inquiry submission."""

    company: str = Field(..., min_length=2, max_length=200)
    name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., max_length=255)
    phone: str = Field(..., min_length=1, max_length=50)
    interest: ProductInterest
    volume: Optional[int] = Field(default=None, ge=0, le=MAX_VOLUME)
    message: Optional[str] = Field(default=None, max_length=2000)

    class Config:
        str_strip_whitespace = True
        json_schema_extra = {
            "example": {
                "company": "Acme Agro",
                "name": "Jane Doe",
                "email": "jane@acme-agro.com",
                "phone": "+91 98765 43210",
                "interest": "biofertilizer",
                "volume": 25000,
                "message": "Looking for a supplier for our 2025 season.",
            }
        }

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Please provide a valid email")
        return value.lower()

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str) -> str:
        if not PHONE_PATTERN.match(value):
            raise ValueError("Please provide a valid phone number")
        return value

    @field_validator("interest", mode="before")
    @classmethod
    def check_interest(cls, value):
        return check_enum(value, ProductInterest, "product interest")

    @field_validator("message")
    @classmethod
    def empty_message_to_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class InquiryUpdate(BaseModel):
    """
    Admin update. Only these four fields can change after creation;
    anything else in the payload is ignored.
    """

    status: Optional[InquiryStatus] = None
    priority: Optional[InquiryPriority] = None
    assigned_to: Optional[str] = Field(
        default=None,
        max_length=64,
        validation_alias=AliasChoices("assigned_to", "assignedTo"),
    )
    follow_up_date: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("follow_up_date", "followUpDate"),
    )

    @field_validator("status", mode="before")
    @classmethod
    def check_status(cls, value):
        if value is None:
            raise ValueError("status cannot be empty")
        return check_enum(value, InquiryStatus, "status")

    @field_validator("priority", mode="before")
    @classmethod
    def check_priority(cls, value):
        if value is None:
            raise ValueError("priority cannot be empty")
        return check_enum(value, InquiryPriority, "priority")


class NoteCreate(BaseModel):
    """Schema for appending an admin note."""

    text: Optional[str] = None


# --- Inquiry output schemas ---

class AdminRef(BaseModel):
    """Resolved weak reference to an admin identity."""

    id: str
    name: Optional[str] = None
    email: Optional[str] = None


class NoteResponse(BaseModel):
    text: str
    added_by: Optional[str] = None
    added_at: datetime

    class Config:
        from_attributes = True


class ResolvedNoteResponse(BaseModel):
    text: str
    added_by: Optional[AdminRef] = None
    added_at: datetime


class InquiryListItem(BaseModel):
    """Inquiry as shown in the admin list (no request metadata)."""

    id: UUID
    company: str
    name: str
    email: str
    phone: str
    interest: ProductInterest
    volume: Optional[int] = None
    message: Optional[str] = None
    status: InquiryStatus
    priority: InquiryPriority
    source: str
    assigned_to: Optional[str] = None
    notes: List[NoteResponse] = []
    follow_up_date: Optional[datetime] = None
    email_sent: bool
    admin_notified: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InquiryDetail(InquiryListItem):
    """Full inquiry with resolved admin references."""

    assigned_to: Optional[AdminRef] = None
    notes: List[ResolvedNoteResponse] = []
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    age_in_days: int = 0


def to_detail(inquiry, resolve: Callable[[Optional[str]], Optional[AdminRef]]) -> InquiryDetail:
    """Build the detail view, resolving assigned_to and note authors with resolve."""
    data = InquiryListItem.model_validate(inquiry).model_dump()
    data["assigned_to"] = resolve(inquiry.assigned_to)
    data["notes"] = [
        ResolvedNoteResponse(text=note.text, added_by=resolve(note.added_by), added_at=note.added_at)
        for note in inquiry.notes
    ]
    data["ip_address"] = inquiry.ip_address
    data["user_agent"] = inquiry.user_agent
    data["age_in_days"] = inquiry.age_in_days
    return InquiryDetail(**data)


class InquirySummary(BaseModel):
    """What the public submitter gets back."""

    id: UUID
    company: str
    email: str
    interest: ProductInterest

    class Config:
        from_attributes = True


# --- Envelopes ---

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class InquiryCreatedResponse(BaseModel):
    success: bool = True
    message: str = "Inquiry submitted successfully"
    data: InquirySummary


class InquiryListResponse(BaseModel):
    success: bool = True
    data: List[InquiryListItem]
    pagination: Pagination


class InquiryDetailResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: InquiryDetail


class InquiryStats(BaseModel):
    total: int
    new: int
    in_progress: int
    converted: int
    recent_week: int
    by_interest: Dict[str, int]
    by_status: Dict[str, int]


class StatsResponse(BaseModel):
    success: bool = True
    data: InquiryStats


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# --- Auth schemas ---

class LoginRequest(BaseModel):
    """Schema for admin login."""
    email: EmailStr
    password: str


class AdminUser(BaseModel):
    """Identity carried in the admin JWT."""
    id: str
    email: str
    role: str = "admin"


class TokenResponse(BaseModel):
    """Schema for login response with JWT token."""
    success: bool = True
    message: str = "Login successful"
    token: str
    token_type: str = "bearer"
    user: AdminUser


class VerifyResponse(BaseModel):
    success: bool = True
    user: AdminUser
