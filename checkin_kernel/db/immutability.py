"""
ORM-level lock on approved bookings.

===============================================================================
WHY THIS EXISTS
===============================================================================

Approval is irreversible: the invoice raised at approval must keep matching
the booking it was billed from.  Once ``checkin_approved_at`` is set, the
booking's billing inputs and check-in markers are frozen.

The check-in state machine already refuses revisions of approved bookings.
These listeners enforce the same rule for any code path that writes through
SQLAlchemy directly.

===============================================================================
HOW IT WORKS
===============================================================================

    session.flush()
         |
         v
    [before_update] --> _check_booking_lock() --> BookingLockedError
         |
         v
    [before_delete] --> _check_booking_delete() --> BookingLockedError
         |
         v
    SQL sent to database (only if checks pass)

"Was approved" is judged from attribute history, not the current value: the
approval write itself sets ``checkin_approved_at`` together with the billing
snapshot and must be allowed through.

===============================================================================
USAGE
===============================================================================

    from checkin_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from checkin_kernel.exceptions import BookingLockedError
from checkin_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _was_approved(target) -> bool:
    history = get_history(target, "checkin_approved_at")
    if history.deleted:
        return history.deleted[0] is not None
    if history.added:
        return False
    return target.checkin_approved_at is not None


def _check_booking_lock(mapper, connection, target):
    """
    Prevent updates to billing fields of an approved BookingModel.

    Fields outside BOOKING_BILLING_FIELDS (status, labels, timestamps) stay
    mutable.
    """
    from checkin_kernel.models.booking import BOOKING_BILLING_FIELDS, BookingModel

    if not isinstance(target, BookingModel):
        return
    if not _was_approved(target):
        return

    insp = inspect(target)
    for attr in insp.attrs:
        if attr.key not in BOOKING_BILLING_FIELDS:
            continue
        if attr.history.has_changes():
            logger.error(
                "booking_lock_violation_blocked",
                extra={
                    "entity_type": "Booking",
                    "entity_id": target.id,
                    "operation": "UPDATE",
                    "field": attr.key,
                },
            )
            raise BookingLockedError(booking_id=target.id, field=attr.key)


def _check_booking_delete(mapper, connection, target):
    """Prevent deletion of an approved BookingModel."""
    from checkin_kernel.models.booking import BookingModel

    if not isinstance(target, BookingModel):
        return

    if _was_approved(target):
        logger.error(
            "booking_lock_violation_blocked",
            extra={
                "entity_type": "Booking",
                "entity_id": target.id,
                "operation": "DELETE",
            },
        )
        raise BookingLockedError(booking_id=target.id)


def register_immutability_listeners():
    """
    Register the approved-booking lock listeners.

    Safe to call more than once.
    """
    from checkin_kernel.models.booking import BookingModel

    if not event.contains(BookingModel, "before_update", _check_booking_lock):
        event.listen(BookingModel, "before_update", _check_booking_lock)
    if not event.contains(BookingModel, "before_delete", _check_booking_delete):
        event.listen(BookingModel, "before_delete", _check_booking_delete)


def _safe_remove_listener(target, event_name, listener_fn):
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove the lock listeners.

    WARNING: Only use this in tests that need to write forbidden state.
    """
    from checkin_kernel.models.booking import BookingModel

    _safe_remove_listener(BookingModel, "before_update", _check_booking_lock)
    _safe_remove_listener(BookingModel, "before_delete", _check_booking_delete)
