"""
Tests for the inquiry lifecycle service (no HTTP layer).
"""
from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from inquiry_service import service
from inquiry_service.exceptions import InquiryNotFound, InquiryValidationError
from inquiry_service.models import InquiryPriority, InquiryStatus, ProductInterest

from conftest import VALID_INQUIRY


# =============================================================================
# Create & Validation
# =============================================================================

class TestCreate:
    def test_create_stores_normalized_fields(self, db):
        """Text fields are trimmed and the email is lowercased."""
        inquiry = service.create_inquiry(
            db,
            {
                **VALID_INQUIRY,
                "company": "  Acme Agro Pvt Ltd  ",
                "name": " Jane Doe ",
                "email": "  Jane.Doe@ACME-Agro.com ",
                "message": "  Hello there  ",
            },
            ip_address="203.0.113.7",
            user_agent="pytest-agent",
        )
        assert inquiry.id is not None
        assert inquiry.company == "Acme Agro Pvt Ltd"
        assert inquiry.name == "Jane Doe"
        assert inquiry.email == "jane.doe@acme-agro.com"
        assert inquiry.message == "Hello there"
        assert inquiry.interest == ProductInterest.BIOFERTILIZER
        assert inquiry.status == InquiryStatus.NEW
        assert inquiry.source == "website"
        assert inquiry.ip_address == "203.0.113.7"
        assert inquiry.user_agent == "pytest-agent"
        assert inquiry.email_sent is False
        assert inquiry.admin_notified is False
        assert inquiry.notes == []

    def test_ids_are_unique(self, make_inquiry):
        """Every created inquiry gets a fresh id."""
        ids = {make_inquiry().id for _ in range(5)}
        assert len(ids) == 5

    def test_optional_fields_can_be_omitted(self, make_inquiry):
        """Volume and message are optional; blank message is stored as None."""
        inquiry = make_inquiry(volume=None, message="   ")
        assert inquiry.volume is None
        assert inquiry.message is None

    def test_email_without_at_sign_is_rejected(self, db):
        """A missing @ fails validation and names the email field."""
        with pytest.raises(InquiryValidationError) as exc_info:
            service.create_inquiry(db, {**VALID_INQUIRY, "email": "jane.acme-agro.com"})
        assert any(msg.startswith("email") for msg in exc_info.value.errors)

    @pytest.mark.parametrize("email", ["ops@plant.local", "buyer@lab.test", "Sales@Intranet.Corp"])
    def test_internal_domains_are_accepted(self, make_inquiry, email):
        """Any local@domain.tld shape is accepted, including reserved TLDs."""
        assert make_inquiry(email=email).email == email.lower()

    @pytest.mark.parametrize("email", ["noat.example.com", "jane@acme", "jane doe@acme.com"])
    def test_malformed_email_is_rejected(self, db, email):
        with pytest.raises(InquiryValidationError) as exc_info:
            service.create_inquiry(db, {**VALID_INQUIRY, "email": email})
        assert "email: Please provide a valid email" in exc_info.value.errors

    def test_every_failing_field_is_reported(self, db):
        """Validation lists all offending fields, not just the first."""
        bad = {
            "company": "A",
            "name": "",
            "email": "nope",
            "phone": "call me maybe",
            "interest": "algae",
            "volume": -5,
            "message": "x" * 2001,
        }
        with pytest.raises(InquiryValidationError) as exc_info:
            service.create_inquiry(db, bad)

        fields = {msg.split(":", 1)[0] for msg in exc_info.value.errors}
        assert fields == {"company", "name", "email", "phone", "interest", "volume", "message"}

    def test_missing_required_fields(self, db):
        """Required fields are reported when absent."""
        with pytest.raises(InquiryValidationError) as exc_info:
            service.create_inquiry(db, {})
        fields = {msg.split(":", 1)[0] for msg in exc_info.value.errors}
        assert {"company", "name", "email", "phone", "interest"} <= fields

    def test_invalid_interest_message_names_value(self, db):
        """Enum rejection names the offending value."""
        with pytest.raises(InquiryValidationError) as exc_info:
            service.create_inquiry(db, {**VALID_INQUIRY, "interest": "algae"})
        assert "interest: 'algae' is not a valid product interest" in exc_info.value.errors

    def test_volume_upper_bound(self, db, make_inquiry):
        """Volume is capped at 100,000,000."""
        assert make_inquiry(volume=100_000_000).volume == 100_000_000
        with pytest.raises(InquiryValidationError):
            service.create_inquiry(db, {**VALID_INQUIRY, "volume": 100_000_001})

    def test_phone_allows_formatting_characters(self, make_inquiry):
        """Digits, spaces, + - ( ) are all accepted."""
        assert make_inquiry(phone="+1 (555) 010-9999").phone == "+1 (555) 010-9999"

    def test_failed_validation_stores_nothing(self, db):
        """Invalid input never reaches the database."""
        with pytest.raises(InquiryValidationError):
            service.create_inquiry(db, {**VALID_INQUIRY, "email": "bad"})
        assert service.list_inquiries(db).total == 0


# =============================================================================
# Priority Derivation
# =============================================================================

class TestPriorityDerivation:
    @pytest.mark.parametrize(
        "volume,expected",
        [
            (150_000, InquiryPriority.URGENT),
            (100_001, InquiryPriority.URGENT),
            (100_000, InquiryPriority.HIGH),
            (75_000, InquiryPriority.HIGH),
            (50_000, InquiryPriority.MEDIUM),
            (15_000, InquiryPriority.MEDIUM),
            (5_000, InquiryPriority.MEDIUM),
            (0, InquiryPriority.MEDIUM),
            (None, InquiryPriority.MEDIUM),
        ],
    )
    def test_priority_from_volume(self, make_inquiry, volume, expected):
        """Volume tiers map to priority at creation."""
        assert make_inquiry(volume=volume).priority == expected

    def test_priority_not_rederived_on_update(self, db, make_inquiry):
        """Later updates never touch the derived priority."""
        inquiry = make_inquiry(volume=150_000)
        service.update_inquiry(db, inquiry.id, {"priority": "low"})
        updated = service.update_inquiry(db, inquiry.id, {"status": "contacted"})
        assert updated.priority == InquiryPriority.LOW


# =============================================================================
# Get / Update / Delete
# =============================================================================

class TestGetUpdateDelete:
    def test_get_existing(self, db, make_inquiry):
        inquiry = make_inquiry()
        assert service.get_inquiry(db, str(inquiry.id)).company == inquiry.company

    def test_get_missing_and_malformed(self, db):
        """Unknown and malformed ids both read as not found."""
        with pytest.raises(InquiryNotFound):
            service.get_inquiry(db, uuid4())
        with pytest.raises(InquiryNotFound):
            service.get_inquiry(db, "not-a-uuid")

    def test_update_allowed_fields(self, db, make_inquiry):
        """Status, priority, assignee and follow-up date can change."""
        inquiry = make_inquiry()
        follow_up = datetime(2030, 1, 15, 9, 30)
        updated = service.update_inquiry(
            db,
            inquiry.id,
            {
                "status": "in-progress",
                "priority": "urgent",
                "assignedTo": "admin-001",
                "follow_up_date": follow_up.isoformat(),
            },
        )
        assert updated.status == InquiryStatus.IN_PROGRESS
        assert updated.priority == InquiryPriority.URGENT
        assert updated.assigned_to == "admin-001"
        assert updated.follow_up_date == follow_up

    def test_update_ignores_other_fields(self, db, make_inquiry):
        """Fields outside the allow-list are silently dropped."""
        inquiry = make_inquiry(volume=5000)
        updated = service.update_inquiry(
            db,
            inquiry.id,
            {
                "company": "Hijacked Inc",
                "email": "evil@attacker.com",
                "volume": 999_999,
                "email_sent": True,
                "status": "contacted",
            },
        )
        assert updated.company == "Acme Agro Pvt Ltd"
        assert updated.email == "jane@acme-agro.com"
        assert updated.volume == 5000
        assert updated.email_sent is False
        assert updated.priority == InquiryPriority.MEDIUM
        assert updated.status == InquiryStatus.CONTACTED

    def test_update_rejects_bad_enum_without_side_effects(self, db, make_inquiry):
        """An invalid status fails and leaves the record untouched."""
        inquiry = make_inquiry()
        with pytest.raises(InquiryValidationError) as exc_info:
            service.update_inquiry(db, inquiry.id, {"status": "archived", "priority": "high"})
        assert "status: 'archived' is not a valid status" in exc_info.value.errors

        db.expire_all()
        fresh = service.get_inquiry(db, inquiry.id)
        assert fresh.status == InquiryStatus.NEW
        assert fresh.priority == InquiryPriority.MEDIUM

    def test_update_rejects_null_status(self, db, make_inquiry):
        inquiry = make_inquiry()
        with pytest.raises(InquiryValidationError):
            service.update_inquiry(db, inquiry.id, {"status": None})

    def test_update_missing(self, db):
        with pytest.raises(InquiryNotFound):
            service.update_inquiry(db, uuid4(), {"status": "closed"})

    def test_delete_then_get(self, db, make_inquiry):
        """A deleted inquiry is indistinguishable from one that never existed."""
        inquiry = make_inquiry()
        service.add_note(db, inquiry.id, "to be removed with the inquiry")
        service.delete_inquiry(db, inquiry.id)

        with pytest.raises(InquiryNotFound):
            service.get_inquiry(db, inquiry.id)
        with pytest.raises(InquiryNotFound):
            service.delete_inquiry(db, inquiry.id)

    def test_delete_missing(self, db):
        with pytest.raises(InquiryNotFound):
            service.delete_inquiry(db, uuid4())


# =============================================================================
# Notes
# =============================================================================

class TestNotes:
    def test_notes_append_in_order(self, db, make_inquiry):
        """New notes go last; earlier notes are unchanged."""
        inquiry = make_inquiry()
        service.add_note(db, inquiry.id, "First call, left voicemail", added_by="admin-001")
        service.add_note(db, inquiry.id, "  Sent brochure  ")
        service.add_note(db, inquiry.id, "Meeting booked", added_by="admin-001")

        db.expire_all()
        notes = service.get_inquiry(db, inquiry.id).notes
        assert [n.text for n in notes] == ["First call, left voicemail", "Sent brochure", "Meeting booked"]
        assert [n.added_by for n in notes] == ["admin-001", None, "admin-001"]
        assert all(n.added_at is not None for n in notes)

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_note_rejected(self, db, make_inquiry, text):
        inquiry = make_inquiry()
        with pytest.raises(InquiryValidationError):
            service.add_note(db, inquiry.id, text)
        assert service.get_inquiry(db, inquiry.id).notes == []

    def test_note_on_missing_inquiry(self, db):
        with pytest.raises(InquiryNotFound):
            service.add_note(db, uuid4(), "hello")


# =============================================================================
# Stats & Dispatch Flags
# =============================================================================

class TestStats:
    def test_stats_counts(self, db, make_inquiry):
        """Counts by status, interest and recency."""
        a = make_inquiry(interest="reactor")
        b = make_inquiry(interest="reactor")
        make_inquiry(interest="bioplastic")
        make_inquiry(interest="custom", created_at=datetime.utcnow() - timedelta(days=10))
        service.update_inquiry(db, a.id, {"status": "in-progress"})
        service.update_inquiry(db, b.id, {"status": "converted"})

        stats = service.get_stats(db)
        assert stats["total"] == 4
        assert stats["new"] == 2
        assert stats["in_progress"] == 1
        assert stats["converted"] == 1
        assert stats["recent_week"] == 3
        assert stats["by_interest"] == {"reactor": 2, "bioplastic": 1, "custom": 1}
        assert stats["by_status"] == {"new": 2, "in-progress": 1, "converted": 1}

    def test_stats_empty(self, db):
        stats = service.get_stats(db)
        assert stats["total"] == 0
        assert stats["by_interest"] == {}
        assert stats["by_status"] == {}


class TestDispatchFlags:
    def test_mark_dispatched_sets_single_flag(self, db, make_inquiry):
        inquiry = make_inquiry()
        assert service.mark_dispatched(db, inquiry.id, "email_sent") is True

        db.expire_all()
        fresh = service.get_inquiry(db, inquiry.id)
        assert fresh.email_sent is True
        assert fresh.admin_notified is False

    def test_mark_dispatched_missing_inquiry(self, db):
        assert service.mark_dispatched(db, uuid4(), "admin_notified") is False

    def test_mark_dispatched_rejects_unknown_flag(self, db, make_inquiry):
        with pytest.raises(ValueError):
            service.mark_dispatched(db, make_inquiry().id, "status")
