"""
Inquiry lifecycle operations.

Every function takes a SQLAlchemy session and either commits its change in
full or rolls back and raises. HTTP concerns live in main.py.
"""
import logging
from datetime import datetime, timedelta
from typing import Optional, Union
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.orm import Session

from .exceptions import InquiryNotFound, InquiryValidationError, format_validation_errors
from .models import Inquiry, InquiryNote, InquiryPriority, InquiryStatus
from .queries import InquiryFilter, Page, paginate_inquiries
from .schemas import InquiryCreate, InquiryUpdate

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(days=7)

# (exclusive lower bound, tier), checked from the top
VOLUME_PRIORITY_TIERS = (
    (100_000, InquiryPriority.URGENT),
    (50_000, InquiryPriority.HIGH),
    (10_000, InquiryPriority.MEDIUM),
)

DISPATCH_FLAGS = ("email_sent", "admin_notified")


def derive_priority(volume: Optional[int], default: InquiryPriority = InquiryPriority.MEDIUM) -> InquiryPriority:
    """Map declared annual volume (tonnes) to a priority tier."""
    if not volume:
        return default
    for threshold, tier in VOLUME_PRIORITY_TIERS:
        if volume > threshold:
            return tier
    return default


def _validate(schema, data):
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data or {})
    except ValidationError as e:
        raise InquiryValidationError(format_validation_errors(e.errors())) from e


def _commit(db: Session, action: str):
    try:
        db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"❌ Failed to {action}")
        raise


def _parse_id(inquiry_id) -> Optional[UUID]:
    if isinstance(inquiry_id, UUID):
        return inquiry_id
    try:
        return UUID(str(inquiry_id))
    except (TypeError, ValueError):
        return None


def _load(db: Session, inquiry_id) -> Inquiry:
    parsed = _parse_id(inquiry_id)
    inquiry = db.get(Inquiry, parsed) if parsed else None
    if inquiry is None:
        raise InquiryNotFound(str(inquiry_id))
    return inquiry


def create_inquiry(
    db: Session,
    data: Union[InquiryCreate, dict],
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Inquiry:
    """
    Validate and store a new inquiry.
    Priority is derived from volume here and nowhere else.
    """
    payload = _validate(InquiryCreate, data)

    inquiry = Inquiry(
        **payload.model_dump(),
        status=InquiryStatus.NEW,
        priority=derive_priority(payload.volume),
        source="website",
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(inquiry)
    _commit(db, "create inquiry")
    db.refresh(inquiry)

    logger.info(f"✅ Created inquiry: {inquiry.company} (ID: {inquiry.id}, priority={inquiry.priority.value})")
    return inquiry


def get_inquiry(db: Session, inquiry_id) -> Inquiry:
    return _load(db, inquiry_id)


def list_inquiries(
    db: Session,
    status: Optional[str] = None,
    interest: Optional[str] = None,
    priority: Optional[str] = None,
    search: Optional[str] = None,
    page=None,
    limit=None,
) -> Page:
    filters = InquiryFilter(status=status, interest=interest, priority=priority, search=search)
    return paginate_inquiries(db, filters, page=page, limit=limit)


def update_inquiry(db: Session, inquiry_id, fields: Union[InquiryUpdate, dict]) -> Inquiry:
    """Apply allow-listed admin changes. Unknown keys are dropped by the schema."""
    changes = _validate(InquiryUpdate, fields).model_dump(exclude_unset=True)
    inquiry = _load(db, inquiry_id)

    for field, value in changes.items():
        setattr(inquiry, field, value)

    _commit(db, f"update inquiry {inquiry.id}")
    db.refresh(inquiry)

    logger.info(f"✅ Updated inquiry {inquiry.id}: {sorted(changes)}")
    return inquiry


def add_note(db: Session, inquiry_id, text: Optional[str], added_by: Optional[str] = None) -> Inquiry:
    """Append a note. added_by is a weak reference and may be None."""
    if not isinstance(text, str) or not text.strip():
        raise InquiryValidationError(["text: Note text is required"])
    text = text.strip()

    inquiry = _load(db, inquiry_id)
    now = datetime.utcnow()
    inquiry.notes.append(InquiryNote(text=text, added_by=added_by, added_at=now))
    inquiry.updated_at = now

    _commit(db, f"add note to inquiry {inquiry.id}")
    db.refresh(inquiry)

    logger.info(f"📝 Note added to inquiry {inquiry.id} by {added_by or 'anonymous'}")
    return inquiry


def delete_inquiry(db: Session, inquiry_id) -> None:
    inquiry = _load(db, inquiry_id)
    deleted_id = inquiry.id
    db.delete(inquiry)
    _commit(db, f"delete inquiry {deleted_id}")
    logger.info(f"🗑️ Deleted inquiry: {deleted_id}")


def _grouped_counts(db: Session, column) -> dict:
    rows = db.query(column, func.count(Inquiry.id)).group_by(column).all()
    return {getattr(value, "value", value): count for value, count in rows}


def get_stats(db: Session) -> dict:
    """Aggregate counts for the admin dashboard. Read-only."""

    def count(*criteria) -> int:
        return db.query(func.count(Inquiry.id)).filter(*criteria).scalar() or 0

    return {
        "total": count(),
        "new": count(Inquiry.status == InquiryStatus.NEW),
        "in_progress": count(Inquiry.status == InquiryStatus.IN_PROGRESS),
        "converted": count(Inquiry.status == InquiryStatus.CONVERTED),
        "recent_week": count(Inquiry.created_at >= datetime.utcnow() - RECENT_WINDOW),
        "by_interest": _grouped_counts(db, Inquiry.interest),
        "by_status": _grouped_counts(db, Inquiry.status),
    }


def mark_dispatched(db: Session, inquiry_id, flag: str) -> bool:
    """
    Set a dispatch flag with a single-column UPDATE so concurrent dispatches
    never overwrite each other. Returns False if the inquiry is gone.
    """
    if flag not in DISPATCH_FLAGS:
        raise ValueError(f"Unknown dispatch flag: {flag}")
    parsed = _parse_id(inquiry_id)
    if parsed is None:
        return False
    updated = (
        db.query(Inquiry)
        .filter(Inquiry.id == parsed)
        .update({flag: True}, synchronize_session=False)
    )
    _commit(db, f"set {flag} on inquiry {parsed}")
    return bool(updated)
