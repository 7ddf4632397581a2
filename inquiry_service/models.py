"""
Inquiry models for the inquiry service.
"""
import enum
import math
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from .database import Base


class ProductInterest(str, enum.Enum):
    """Product line the inquiry is about."""

    BIOFERTILIZER = "biofertilizer"
    REACTOR = "reactor"
    BIOPLASTIC = "bioplastic"
    MULTIPLE = "multiple"
    CUSTOM = "custom"


class InquiryStatus(str, enum.Enum):
    """Status of an inquiry in the triage pipeline."""

    NEW = "new"
    CONTACTED = "contacted"
    IN_PROGRESS = "in-progress"
    CONVERTED = "converted"
    CLOSED = "closed"


class InquiryPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Inquiry(Base):
    """A business inquiry submitted through the website."""

    __tablename__ = "inquiries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company = Column(String(200), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, index=True)
    phone = Column(String(50), nullable=False)
    interest = Column(
        SQLEnum(ProductInterest, name="product_interest", values_callable=_enum_values),
        nullable=False,
        index=True,
    )
    volume = Column(Integer, nullable=True)  # tonnes/year
    message = Column(Text, nullable=True)
    status = Column(
        SQLEnum(InquiryStatus, name="inquiry_status", values_callable=_enum_values),
        default=InquiryStatus.NEW,
        nullable=False,
        index=True,
    )
    priority = Column(
        SQLEnum(InquiryPriority, name="inquiry_priority", values_callable=_enum_values),
        default=InquiryPriority.MEDIUM,
        nullable=False,
    )
    source = Column(String(50), default="website", nullable=False)

    # Captured from the originating request, never updated
    ip_address = Column(Text, nullable=True)
    user_agent = Column(Text, nullable=True)

    # Weak reference to an admin identity (no FK, lookup only)
    assigned_to = Column(String(64), nullable=True)
    follow_up_date = Column(DateTime, nullable=True)

    email_sent = Column(Boolean, default=False, nullable=False)
    admin_notified = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    notes = relationship(
        "InquiryNote",
        order_by="InquiryNote.id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self):
        return f"<Inquiry(id={self.id}, company='{self.company}', status='{self.status}')>"

    @property
    def age_in_days(self) -> int:
        """Days since creation, rounded up."""
        if not self.created_at:
            return 0
        elapsed = datetime.utcnow() - self.created_at
        return math.ceil(abs(elapsed.total_seconds()) / 86400)


class InquiryNote(Base):
    """
    Admin note attached to an inquiry.
    Notes are append-only; there is no API to edit or delete one.
    """

    __tablename__ = "inquiry_notes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    inquiry_id = Column(
        UUID(as_uuid=True),
        ForeignKey("inquiries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    text = Column(Text, nullable=False)
    added_by = Column(String(64), nullable=True)
    added_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<InquiryNote(id={self.id}, inquiry_id={self.inquiry_id}, by={self.added_by})>"
