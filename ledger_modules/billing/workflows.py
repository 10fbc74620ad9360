"""
Billing Workflows.

Stored lifecycle of an invoice.  Posted is terminal for the stage; what
happens afterwards (Partial, Paid) is derived from collected amounts and
is not a transition.
"""

from ledger_kernel.domain.workflow import Guard, Transition, Workflow
from ledger_kernel.logging_config import get_logger

logger = get_logger("modules.billing.workflows")


HAS_LINE_ITEMS = Guard(
    name="has_line_items",
    description="Invoice has at least one positive line item",
)

INVOICE_WORKFLOW = Workflow(
    name="invoice",
    description="Billing lifecycle",
    initial_state="Draft",
    states=("Draft", "Posted"),
    transitions=(
        Transition("Draft", "Posted", action="post", guard=HAS_LINE_ITEMS),
        Transition("Draft", "Draft", action="edit_lines", guard=HAS_LINE_ITEMS),
        Transition("Draft", "Draft", action="discard"),
    ),
    terminal_states=("Posted",),
)

logger.debug(
    "billing_workflow_defined",
    extra={"workflow": INVOICE_WORKFLOW.name, "states": list(INVOICE_WORKFLOW.states)},
)
