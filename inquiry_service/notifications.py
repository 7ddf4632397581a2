"""
Notification dispatch hook.

Runs as a FastAPI background task AFTER the create response is sent.
The confirmation and the admin alert go out in parallel and independently:
each one sets its own flag on success and only logs on failure.
"""
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from . import database
from .email_service import send_admin_notification, send_inquiry_confirmation
from .exceptions import DispatchFailure
from .service import mark_dispatched

logger = logging.getLogger(__name__)


def notification_enabled(env_var: str) -> bool:
    return os.getenv(env_var, "false").strip().lower() == "true"


def inquiry_payload(inquiry) -> dict:
    """Snapshot of the fields the email templates need."""
    return {
        "company": inquiry.company,
        "name": inquiry.name,
        "email": inquiry.email,
        "phone": inquiry.phone,
        "interest": getattr(inquiry.interest, "value", inquiry.interest),
        "volume": inquiry.volume,
        "message": inquiry.message,
    }


def _run_dispatch(
    kind: str,
    sender: Callable[[dict], dict],
    flag: str,
    inquiry_id,
    inquiry_data: dict,
    session_factory,
) -> bool:
    try:
        result = sender(inquiry_data) or {}
        if not result.get("success"):
            raise DispatchFailure(kind, result.get("message", "unknown error"))
    except DispatchFailure as e:
        logger.warning(f"⚠️ {e} (inquiry {inquiry_id})")
        return False
    except Exception as e:
        logger.exception(f"❌ {kind} dispatch crashed for inquiry {inquiry_id}: {e}")
        return False

    db = session_factory()
    try:
        if not mark_dispatched(db, inquiry_id, flag):
            logger.warning(f"⚠️ Inquiry {inquiry_id} vanished before {flag} could be recorded")
            return False
    except Exception as e:
        logger.exception(f"❌ Could not record {flag} for inquiry {inquiry_id}: {e}")
        return False
    finally:
        db.close()

    logger.info(f"📧 {kind} delivered for inquiry {inquiry_id}")
    return True


def dispatch_inquiry_notifications(inquiry_id, inquiry_data: dict, session_factory: Optional[Callable] = None) -> dict:
    """
    Background task: send the enabled notifications for a new inquiry.

    Returns {kind: delivered} for the dispatches that were attempted.
    Disabled dispatches are skipped with no attempt and no flag change.
    """
    session_factory = session_factory or database.SessionLocal

    jobs = []
    if notification_enabled("SEND_EMAIL_NOTIFICATIONS"):
        jobs.append(("confirmation", send_inquiry_confirmation, "email_sent"))
    if notification_enabled("SEND_ADMIN_NOTIFICATIONS"):
        jobs.append(("admin alert", send_admin_notification, "admin_notified"))

    if not jobs:
        logger.info(f"ℹ️ Notifications disabled, nothing to send for inquiry {inquiry_id}")
        return {}

    with ThreadPoolExecutor(max_workers=len(jobs), thread_name_prefix="notify") as pool:
        futures = {
            kind: pool.submit(_run_dispatch, kind, sender, flag, inquiry_id, inquiry_data, session_factory)
            for kind, sender, flag in jobs
        }
    return {kind: future.result() for kind, future in futures.items()}
