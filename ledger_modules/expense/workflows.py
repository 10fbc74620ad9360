"""
Expense Workflows.

Voucher lifecycle: Draft -> Unpaid -> Paid.  The approval chain runs
alongside and gates the final transition.
"""

from ledger_kernel.domain.workflow import Guard, Transition, Workflow
from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.expense.workflows")


HAS_LINE_ITEMS = Guard(
    name="has_line_items",
    description="Expense has at least one positive line item",
)

APPROVAL_COMPLETE = Guard(
    name="approval_complete",
    description="Prepared, Noted and Approved are all completed",
)

EXPENSE_WORKFLOW = Workflow(
    name="expense",
    description="Expense voucher lifecycle",
    initial_state="Draft",
    states=("Draft", "Unpaid", "Paid"),
    transitions=(
        Transition("Draft", "Draft", action="edit_lines"),
        Transition("Draft", "Unpaid", action="submit", guard=HAS_LINE_ITEMS),
        Transition("Unpaid", "Paid", action="mark_paid", guard=APPROVAL_COMPLETE),
    ),
    terminal_states=("Paid",),
)

logger.debug(
    "expense_workflow_defined",
    extra={"workflow": EXPENSE_WORKFLOW.name, "states": list(EXPENSE_WORKFLOW.states)},
)
