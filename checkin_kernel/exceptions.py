"""
Typed exception hierarchy for the check-in billing core.

Expected operator-facing conditions (missing rates, out-of-order meter
readings, stale drafts, unmet approval preconditions) are NOT exceptions:
the state machine reports them as ``Blocked`` values.  The classes here are
raised by collaborators and infrastructure (storage, invoicing) and are
converted to ``Blocked`` by ``CheckInService`` at the calculate / approve /
revise boundary.

Every exception carries a class-level ``code`` (machine-readable, API-safe)
and stores its context as attributes so it survives structured logging.

    CheckInError (base)
    |
    +-- BookingError
    |   +-- BookingNotFoundError
    |   +-- BookingLockedError
    |   +-- BookingSaveError
    |
    +-- InvoicingError
    |   +-- InvoiceCreationError
    |   +-- InvoiceAlreadyLinkedError
    |
    +-- ConfigurationError
        +-- ChargeRateConflictError

Code                      | When Raised
--------------------------|-------------------------------------------------
BOOKING_NOT_FOUND         | Booking id does not exist in storage
BOOKING_LOCKED            | Write to billing fields of an approved booking
BOOKING_SAVE_FAILED       | Storage failure while saving billing inputs
INVOICE_CREATION_FAILED   | Invoicing collaborator refused / failed the call
INVOICE_ALREADY_LINKED    | Booking already carries a check-in invoice
CHARGE_RATE_CONFLICT      | More than one stored rate for a party/flight type
"""


class CheckInError(Exception):
    """
    Base exception for all check-in billing errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "CHECKIN_ERROR"


# Booking-related exceptions


class BookingError(CheckInError):
    """Base exception for booking-related errors."""

    code: str = "BOOKING_ERROR"


class BookingNotFoundError(BookingError):
    """Booking with given ID was not found."""

    code: str = "BOOKING_NOT_FOUND"

    def __init__(self, booking_id: str):
        self.booking_id = booking_id
        super().__init__(f"Booking not found: {booking_id}")


class BookingLockedError(BookingError):
    """
    Attempted to modify billing fields of an approved booking.

    Once ``checkin_approved_at`` is set the booking's billing inputs and
    check-in markers are immutable.
    """

    code: str = "BOOKING_LOCKED"

    def __init__(self, booking_id: str, field: str | None = None):
        self.booking_id = booking_id
        self.field = field
        detail = f" (field '{field}')" if field else ""
        super().__init__(
            f"Booking check-in is approved and immutable: {booking_id}{detail}"
        )


class BookingSaveError(BookingError):
    """Storage refused the booking's billing inputs."""

    code: str = "BOOKING_SAVE_FAILED"

    def __init__(self, booking_id: str, reason: str):
        self.booking_id = booking_id
        self.reason = reason
        super().__init__(f"Failed to save booking {booking_id}: {reason}")


# Invoicing-related exceptions


class InvoicingError(CheckInError):
    """Base exception for invoicing collaborator errors."""

    code: str = "INVOICING_ERROR"


class InvoiceCreationError(InvoicingError):
    """The invoicing collaborator did not create the invoice."""

    code: str = "INVOICE_CREATION_FAILED"

    def __init__(self, booking_id: str, reason: str):
        self.booking_id = booking_id
        self.reason = reason
        super().__init__(reason)


class InvoiceAlreadyLinkedError(InvoicingError):
    """The booking already has a check-in invoice."""

    code: str = "INVOICE_ALREADY_LINKED"

    def __init__(self, booking_id: str, invoice_id: str):
        self.booking_id = booking_id
        self.invoice_id = invoice_id
        super().__init__(
            f"Booking {booking_id} already has check-in invoice {invoice_id}"
        )


# Configuration-related exceptions


class ConfigurationError(CheckInError):
    """Base exception for stored billing configuration defects."""

    code: str = "CONFIGURATION_ERROR"


class ChargeRateConflictError(ConfigurationError):
    """More than one charge rate is stored for the same party and flight type."""

    code: str = "CHARGE_RATE_CONFLICT"

    def __init__(self, party_type: str, party_id: str, flight_type_id: str):
        self.party_type = party_type
        self.party_id = party_id
        self.flight_type_id = flight_type_id
        super().__init__(
            f"Multiple {party_type} charge rates for {party_id} "
            f"and flight type {flight_type_id}"
        )
