# accounting/services/exceptions.py

"""
ACCOUNTING SERVICE ERRORS

Centralized domain errors for every service in the project
(ledger, journal, inventory, documents, partners, operations).

Each error:
- carries an ErrorKind (closed set) and its ErrorCategory
- carries its typed fields as attributes (e.g. InsufficientStockError.available)
- can be rendered with as_dict() for API responses and structured logs
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    VALIDATION = "validation"
    STATE = "state"
    CONCURRENCY = "concurrency"
    FATAL = "fatal"


class ErrorKind(str, Enum):
    DUPLICATE_CODE = "DUPLICATE_CODE"
    EMPTY_ENTRY = "EMPTY_ENTRY"
    ZERO_AMOUNT_LINE = "ZERO_AMOUNT_LINE"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    UNBALANCED = "UNBALANCED"
    INVALID_INPUT = "INVALID_INPUT"
    DUPLICATE_REFERENCE = "DUPLICATE_REFERENCE"

    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    ITEM_NOT_FOUND = "ITEM_NOT_FOUND"
    OVER_PAYMENT = "OVER_PAYMENT"
    CANNOT_CANCEL_WITH_PAYMENTS = "CANNOT_CANCEL_WITH_PAYMENTS"
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    DOCUMENT_NOT_DRAFT = "DOCUMENT_NOT_DRAFT"
    UNKNOWN_ACCOUNT = "UNKNOWN_ACCOUNT"
    INACTIVE_ACCOUNT = "INACTIVE_ACCOUNT"
    ACCOUNT_HAS_BALANCE = "ACCOUNT_HAS_BALANCE"
    ACCOUNT_IN_USE = "ACCOUNT_IN_USE"
    ENTRY_NOT_FOUND = "ENTRY_NOT_FOUND"
    ALREADY_REVERSED = "ALREADY_REVERSED"
    ENTRY_LOCKED = "ENTRY_LOCKED"
    PARTNER_NOT_FOUND = "PARTNER_NOT_FOUND"

    CONFLICT = "CONFLICT"
    CANCELLED = "CANCELLED"

    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"

    @property
    def category(self) -> ErrorCategory:
        if self in _CONCURRENCY_KINDS:
            return ErrorCategory.CONCURRENCY
        if self is ErrorKind.STORE_UNAVAILABLE:
            return ErrorCategory.FATAL
        if self in _VALIDATION_KINDS:
            return ErrorCategory.VALIDATION
        return ErrorCategory.STATE


_VALIDATION_KINDS = frozenset(
    {
        ErrorKind.DUPLICATE_CODE,
        ErrorKind.EMPTY_ENTRY,
        ErrorKind.ZERO_AMOUNT_LINE,
        ErrorKind.INVALID_AMOUNT,
        ErrorKind.UNBALANCED,
        ErrorKind.INVALID_INPUT,
        ErrorKind.DUPLICATE_REFERENCE,
    }
)
_CONCURRENCY_KINDS = frozenset({ErrorKind.CONFLICT, ErrorKind.CANCELLED})


class AccountingServiceError(Exception):
    """Base exception for all accounting service failures."""

    kind: ErrorKind = ErrorKind.INVALID_INPUT
    field_names: tuple[str, ...] = ()
    template = "Accounting operation failed"

    def __init__(self, *, detail: str | None = None, **fields):
        unexpected = set(fields) - set(self.field_names)
        missing = set(self.field_names) - set(fields)
        if unexpected or missing:
            raise TypeError(
                f"{type(self).__name__} expects fields {self.field_names}, "
                f"got {tuple(sorted(fields))}"
            )

        self.fields = fields
        for name, value in fields.items():
            setattr(self, name, value)

        super().__init__(detail or self.template.format(**fields))

    @property
    def category(self) -> ErrorCategory:
        return self.kind.category

    def as_dict(self) -> dict:
        return {
            "error": self.kind.value,
            "category": self.category.value,
            "detail": str(self),
            "fields": {name: _plain(value) for name, value in self.fields.items()},
        }


def _plain(value):
    if value is None or isinstance(value, (bool, int, str)):
        return value
    return str(value)


# ============================================================
# VALIDATION
# ============================================================


class AccountingValidationError(AccountingServiceError):
    """Input rejected before any state was touched."""


class DuplicateCodeError(AccountingValidationError):
    kind = ErrorKind.DUPLICATE_CODE
    field_names = ("code",)
    template = "Code '{code}' is already in use"


class InvalidAmountError(AccountingValidationError):
    kind = ErrorKind.INVALID_AMOUNT
    field_names = ("amount",)
    template = "Invalid amount: {amount}"


class InvalidInputError(AccountingValidationError):
    kind = ErrorKind.INVALID_INPUT
    field_names = ("field", "message")
    template = "{field}: {message}"


class EmptyEntryError(AccountingValidationError):
    kind = ErrorKind.EMPTY_ENTRY
    template = "Journal entry has no lines"


class ZeroAmountLineError(AccountingValidationError):
    kind = ErrorKind.ZERO_AMOUNT_LINE
    field_names = ("position", "amount")
    template = "Line {position} has a non-positive amount ({amount})"


class UnbalancedEntryError(AccountingValidationError):
    kind = ErrorKind.UNBALANCED
    field_names = ("debits", "credits")
    template = "Journal entry not balanced: debits={debits}, credits={credits}"


class IdempotencyError(AccountingValidationError):
    """Raised on duplicate or retried accounting events."""

    kind = ErrorKind.DUPLICATE_REFERENCE
    field_names = ("reference",)
    template = "Reference '{reference}' was already posted"


# ============================================================
# STATE
# ============================================================


class StateConflictError(AccountingServiceError):
    """The request is valid but the current state forbids it."""

    kind = ErrorKind.INVALID_TRANSITION


class InsufficientStockError(StateConflictError):
    kind = ErrorKind.INSUFFICIENT_STOCK
    field_names = ("item_id", "requested", "available")
    template = "Insufficient stock for item {item_id}: requested={requested}, available={available}"


class ItemNotFoundError(StateConflictError):
    kind = ErrorKind.ITEM_NOT_FOUND
    field_names = ("item_id",)
    template = "Inventory item {item_id} not found"


class OverPaymentError(StateConflictError):
    kind = ErrorKind.OVER_PAYMENT
    field_names = ("document_id", "amount", "balance")
    template = "Payment {amount} exceeds balance {balance} of document {document_id}"


class CannotCancelWithPaymentsError(StateConflictError):
    kind = ErrorKind.CANNOT_CANCEL_WITH_PAYMENTS
    field_names = ("document_id", "paid_amount")
    template = "Document {document_id} has payments ({paid_amount}) and cannot be cancelled"


class DocumentNotFoundError(StateConflictError):
    kind = ErrorKind.DOCUMENT_NOT_FOUND
    field_names = ("document_id",)
    template = "Document {document_id} not found"


class InvalidTransitionError(StateConflictError):
    kind = ErrorKind.INVALID_TRANSITION
    field_names = ("document_id", "from_status", "to_status")
    template = "Document {document_id} cannot move from {from_status} to {to_status}"


class DocumentNotDraftError(StateConflictError):
    kind = ErrorKind.DOCUMENT_NOT_DRAFT
    field_names = ("document_id", "status")
    template = "Document {document_id} is {status}; only drafts can be deleted"


class AccountResolutionError(StateConflictError):
    """Raised when an expected account cannot be resolved."""

    kind = ErrorKind.UNKNOWN_ACCOUNT
    field_names = ("account_id",)
    template = "Account {account_id} not found"


class UnknownAccountError(AccountResolutionError):
    pass


class InactiveAccountError(AccountResolutionError):
    kind = ErrorKind.INACTIVE_ACCOUNT
    field_names = ("account_id", "code")
    template = "Account {code} is inactive"


class AccountHasBalanceError(StateConflictError):
    kind = ErrorKind.ACCOUNT_HAS_BALANCE
    field_names = ("account_id", "balance")
    template = "Account {account_id} still carries a balance of {balance}"


class AccountInUseError(StateConflictError):
    kind = ErrorKind.ACCOUNT_IN_USE
    field_names = ("account_id",)
    template = "Account {account_id} is referenced and cannot be deleted"


class EntryNotFoundError(StateConflictError):
    kind = ErrorKind.ENTRY_NOT_FOUND
    field_names = ("entry_id",)
    template = "Journal entry {entry_id} not found"


class AlreadyReversedError(StateConflictError):
    kind = ErrorKind.ALREADY_REVERSED
    field_names = ("entry_id",)
    template = "Journal entry {entry_id} has already been reversed"


class EntryLockedError(StateConflictError):
    kind = ErrorKind.ENTRY_LOCKED
    field_names = ("entry_id",)
    template = "Journal entry {entry_id} is locked; post a reversal instead"


class PartnerNotFoundError(StateConflictError):
    kind = ErrorKind.PARTNER_NOT_FOUND
    field_names = ("partner_id",)
    template = "Business partner {partner_id} not found"


# ============================================================
# CONCURRENCY / FATAL
# ============================================================


class ConflictError(AccountingServiceError):
    """A version check failed; the whole unit may be retried."""

    kind = ErrorKind.CONFLICT
    field_names = ("resource", "resource_id")
    template = "Concurrent modification of {resource} {resource_id}"


class OperationCancelledError(AccountingServiceError):
    kind = ErrorKind.CANCELLED
    field_names = ("operation",)
    template = "Operation {operation} was cancelled"


class StoreUnavailableError(AccountingServiceError):
    kind = ErrorKind.STORE_UNAVAILABLE
    field_names = ("message",)
    template = "Store unavailable: {message}"
