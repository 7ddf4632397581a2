"""
Admin list query builder.

Turns loosely-typed query parameters into a filtered, sorted, paginated
SQLAlchemy query. Missing or blank parameters never raise; they just mean
"no constraint".
"""
import math
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import false, or_
from sqlalchemy.orm import Session

from .models import Inquiry, InquiryPriority, InquiryStatus, ProductInterest

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


@dataclass
class InquiryFilter:
    status: Optional[str] = None
    interest: Optional[str] = None
    priority: Optional[str] = None
    search: Optional[str] = None


@dataclass
class Page:
    items: List[Inquiry]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def parse_positive_int(value, default: int, maximum: Optional[int] = None) -> int:
    """Parse a page/limit parameter, falling back to default on junk."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    if number < 1:
        return default
    if maximum is not None:
        number = min(number, maximum)
    return number


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def build_filter_query(db: Session, filters: InquiryFilter):
    """Apply exact-match filters and the free-text search to a base query."""
    query = db.query(Inquiry)

    exact_fields = {
        "status": (Inquiry.status, InquiryStatus),
        "interest": (Inquiry.interest, ProductInterest),
        "priority": (Inquiry.priority, InquiryPriority),
    }
    for key, (column, enum_cls) in exact_fields.items():
        value = _clean(getattr(filters, key))
        if value is None:
            continue
        if value not in {member.value for member in enum_cls}:
            # Unknown value: nothing can match
            return query.filter(false())
        query = query.filter(column == enum_cls(value))

    search = _clean(filters.search)
    if search:
        query = query.filter(
            or_(
                Inquiry.company.icontains(search, autoescape=True),
                Inquiry.email.icontains(search, autoescape=True),
                Inquiry.name.icontains(search, autoescape=True),
            )
        )

    return query


def paginate_inquiries(db: Session, filters: InquiryFilter, page=None, limit=None) -> Page:
    """Run the filtered query for one page, newest first."""
    page = parse_positive_int(page, DEFAULT_PAGE)
    limit = parse_positive_int(limit, DEFAULT_LIMIT, maximum=MAX_LIMIT)

    query = build_filter_query(db, filters)
    total = query.count()
    offset = (page - 1) * limit
    if offset >= total:
        # Past the last match; also keeps huge page numbers away from OFFSET
        return Page(items=[], page=page, limit=limit, total=total)

    items = (
        query.order_by(Inquiry.created_at.desc(), Inquiry.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return Page(items=items, page=page, limit=limit, total=total)
