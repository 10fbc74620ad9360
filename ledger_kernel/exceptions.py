"""
Typed Exception Hierarchy for the Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger (an HTTP layer, a batch importer, a test) must react
to failures by category, not by parsing messages:

  - ValidationError -> the caller sent bad input; nothing was written
  - NotFoundError   -> an id does not resolve; nothing was written
  - StateError      -> the operation is illegal in the record's lifecycle
  - ConsistencyError -> a derived figure broke its bounds; the transaction
                        is rolled back and the condition must be investigated

Every class carries a ``code`` class attribute (machine-readable, API-safe)
and stores its context as attributes so the structured log formatter can
emit them.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError (base)
    |
    +-- ValidationError
    |   +-- EmptyLineItemsError
    |   +-- NonPositiveAmountError
    |   +-- CurrencyMismatchError
    |   +-- InvalidCurrencyError
    |   +-- MissingReferenceError
    |   +-- DuplicateReceiptNumberError
    |   +-- DuplicateCategoryError
    |   +-- InvalidExpenseTypeError
    |   +-- InvalidApprovalStageError
    |
    +-- NotFoundError
    |   +-- UnknownInvoiceError
    |   +-- UnknownPaymentError
    |   +-- NoSuchAllocationError
    |   +-- UnknownExpenseError
    |   +-- UnknownCategoryError
    |
    +-- StateError
    |   +-- AlreadyPostedError
    |   +-- InvoiceNotPostedError
    |   +-- PaymentHasAllocationsError
    |   +-- NotDraftError
    |   +-- ExpenseNotSubmittedError
    |   +-- OutOfOrderApprovalError
    |   +-- StageAlreadyCompletedError
    |   +-- AlreadyPaidError
    |   +-- ApprovalIncompleteError
    |
    +-- ConsistencyError
        +-- LedgerInvariantError

Partial allocation is NOT an exception.  It is an expected business outcome
(a client under- or over-pays) and is returned as a
``PartialAllocationWarning`` inside a successful ``AllocationResult``.

===============================================================================
HANDLING PATTERN
===============================================================================

    try:
        result = allocations.allocate(payment_id, targets)
    except NotFoundError as e:
        return {"error": e.code, "detail": str(e)}
    for warning in result.warnings:
        notify(f"{warning.unapplied} could not be applied")
"""


class LedgerError(Exception):
    """
    Base exception for all ledger errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "LEDGER_ERROR"


# Validation errors -- always the caller's fault, raised before any mutation


class ValidationError(LedgerError):
    """Base exception for rejected input."""

    code: str = "VALIDATION_ERROR"


class EmptyLineItemsError(ValidationError):
    """Line items are empty or contain a non-positive amount."""

    code: str = "EMPTY_LINE_ITEMS"

    def __init__(self, document_type: str, reason: str):
        self.document_type = document_type
        self.reason = reason
        super().__init__(f"Invalid line items on {document_type}: {reason}")


class NonPositiveAmountError(ValidationError):
    """Amount must be strictly positive (or non-negative where noted)."""

    code: str = "NON_POSITIVE_AMOUNT"

    def __init__(self, field_name: str, amount: str):
        self.field_name = field_name
        self.amount = amount
        super().__init__(f"{field_name} must be positive, got {amount}")


class CurrencyMismatchError(ValidationError):
    """Attempted operation on mismatched currencies."""

    code: str = "CURRENCY_MISMATCH"

    def __init__(self, currency1: str, currency2: str):
        self.currency1 = currency1
        self.currency2 = currency2
        super().__init__(f"Currency mismatch: {currency1} vs {currency2}")


class InvalidCurrencyError(ValidationError):
    """Currency code is not in the registry."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: '{currency}'")


class MissingReferenceError(ValidationError):
    """A required opaque reference (client, company, payee...) is absent."""

    code: str = "MISSING_REFERENCE"

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Required reference is missing: {field_name}")


class DuplicateReceiptNumberError(ValidationError):
    """Receipt (OR) number already used by another collection."""

    code: str = "DUPLICATE_RECEIPT_NUMBER"

    def __init__(self, receipt_number: str):
        self.receipt_number = receipt_number
        super().__init__(f"Receipt number already exists: {receipt_number}")


class DuplicateCategoryError(ValidationError):
    """Expense category name already exists."""

    code: str = "DUPLICATE_CATEGORY"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Expense category already exists: {name}")


class InvalidExpenseTypeError(ValidationError):
    """Expense type is not one of the console's expense types."""

    code: str = "INVALID_EXPENSE_TYPE"

    def __init__(self, expense_type: str):
        self.expense_type = expense_type
        super().__init__(f"Unknown expense type: {expense_type!r}")


class InvalidApprovalStageError(ValidationError):
    """Approval stage is not Prepared, Noted or Approved."""

    code: str = "INVALID_APPROVAL_STAGE"

    def __init__(self, stage: str):
        self.stage = stage
        super().__init__(f"Unknown approval stage: {stage!r}")


# Not-found errors


class NotFoundError(LedgerError):
    """Base exception for references to nonexistent ids."""

    code: str = "NOT_FOUND"


class UnknownInvoiceError(NotFoundError):
    """Invoice with given ID was not found."""

    code: str = "UNKNOWN_INVOICE"

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice not found: {invoice_id}")


class UnknownPaymentError(NotFoundError):
    """Collection with given ID was not found."""

    code: str = "UNKNOWN_PAYMENT"

    def __init__(self, payment_id: str):
        self.payment_id = payment_id
        super().__init__(f"Payment not found: {payment_id}")


class NoSuchAllocationError(NotFoundError):
    """No allocation exists for the payment/invoice pair."""

    code: str = "NO_SUCH_ALLOCATION"

    def __init__(self, payment_id: str, invoice_id: str):
        self.payment_id = payment_id
        self.invoice_id = invoice_id
        super().__init__(
            f"No allocation of payment {payment_id} to invoice {invoice_id}"
        )


class UnknownExpenseError(NotFoundError):
    """Expense with given ID was not found."""

    code: str = "UNKNOWN_EXPENSE"

    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense not found: {expense_id}")


class UnknownCategoryError(NotFoundError):
    """Expense category was not found."""

    code: str = "UNKNOWN_CATEGORY"

    def __init__(self, category: str):
        self.category = category
        super().__init__(f"Expense category not found: {category}")


# State errors -- operation invalid for the current lifecycle state


class StateError(LedgerError):
    """Base exception for lifecycle violations."""

    code: str = "STATE_ERROR"


class AlreadyPostedError(StateError):
    """Invoice is no longer a Draft."""

    code: str = "ALREADY_POSTED"

    def __init__(self, invoice_id: str, invoice_number: str | None = None):
        self.invoice_id = invoice_id
        self.invoice_number = invoice_number
        super().__init__(
            f"Invoice {invoice_id} already posted as {invoice_number}"
        )


class InvoiceNotPostedError(StateError):
    """Allocations can only target posted invoices."""

    code: str = "INVOICE_NOT_POSTED"

    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice {invoice_id} is a draft and cannot be collected")


class PaymentHasAllocationsError(StateError):
    """Collection cannot be discarded while allocations exist."""

    code: str = "PAYMENT_HAS_ALLOCATIONS"

    def __init__(self, payment_id: str, allocation_count: int):
        self.payment_id = payment_id
        self.allocation_count = allocation_count
        super().__init__(
            f"Payment {payment_id} has {allocation_count} allocation(s) "
            "and cannot be discarded"
        )


class NotDraftError(StateError):
    """Operation requires the document to be in Draft."""

    code: str = "NOT_DRAFT"

    def __init__(self, document_id: str, status: str):
        self.document_id = document_id
        self.status = status
        super().__init__(f"Document {document_id} is {status}, expected Draft")


class ExpenseNotSubmittedError(StateError):
    """Expense must be submitted before it can be paid."""

    code: str = "EXPENSE_NOT_SUBMITTED"

    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense {expense_id} has not been submitted")


class OutOfOrderApprovalError(StateError):
    """An earlier approval stage is still pending."""

    code: str = "OUT_OF_ORDER_APPROVAL"

    def __init__(self, expense_id: str, stage: str, pending_stage: str):
        self.expense_id = expense_id
        self.stage = stage
        self.pending_stage = pending_stage
        super().__init__(
            f"Cannot complete {stage} on expense {expense_id}: "
            f"{pending_stage} is still pending"
        )


class StageAlreadyCompletedError(StateError):
    """Approval stage was already completed."""

    code: str = "STAGE_ALREADY_COMPLETED"

    def __init__(self, expense_id: str, stage: str, completed_by: str):
        self.expense_id = expense_id
        self.stage = stage
        self.completed_by = completed_by
        super().__init__(
            f"{stage} on expense {expense_id} already completed by {completed_by}"
        )


class AlreadyPaidError(StateError):
    """Expense is Paid (terminal)."""

    code: str = "ALREADY_PAID"

    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense {expense_id} is already paid")


class ApprovalIncompleteError(StateError):
    """Approved stage must be completed before payment."""

    code: str = "APPROVAL_INCOMPLETE"

    def __init__(self, expense_id: str, pending_stages: list[str]):
        self.expense_id = expense_id
        self.pending_stages = pending_stages
        super().__init__(
            f"Expense {expense_id} cannot be paid; pending: {', '.join(pending_stages)}"
        )


# Consistency errors


class ConsistencyError(LedgerError):
    """Base exception for broken cross-entity invariants."""

    code: str = "CONSISTENCY_ERROR"


class LedgerInvariantError(ConsistencyError):
    """A derived amount fell outside its allowed bounds."""

    code: str = "LEDGER_INVARIANT_VIOLATED"

    def __init__(self, entity_type: str, entity_id: str, detail: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.detail = detail
        super().__init__(f"Invariant violated on {entity_type} {entity_id}: {detail}")
