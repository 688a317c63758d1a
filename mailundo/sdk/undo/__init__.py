"""Single-level undo for mailbox actions.

Example usage:
    from mailundo.sdk.undo import build_undo_stack, ViewContext

    stack = build_undo_stack(mailbox, cache)
    stack.actions.archive(["18c2f..."])
    stack.controller.perform_undo()
"""

from dataclasses import dataclass
from typing import Any, Optional

from .cache import MessageCache, UIDispatcher
from .controller import UndoController, format_status
from .executor import CompensationExecutor
from .ledger import ActionLedger, NOTHING_TO_UNDO
from .models import (
    ActionType,
    LabelExtra,
    MoveExtra,
    NoExtra,
    PrevState,
    ReconcilePlan,
    UndoableAction,
    UndoResult,
    ViewContext,
)
from .reconciler import CacheReconciler


@dataclass
class UndoStack:
    ledger: ActionLedger
    controller: UndoController
    actions: Any


def build_undo_stack(
    mailbox: Any,
    cache: MessageCache,
    view=ViewContext.INBOX,
    reporter=None,
    dispatcher: Optional[UIDispatcher] = None,
    record: Optional[bool] = None,
) -> UndoStack:
    """Wire a ledger, mail actions and an undo controller around one mailbox."""
    from ..mail.actions import MailActions

    ledger = ActionLedger()
    controller = UndoController(
        ledger,
        CompensationExecutor(mailbox),
        CacheReconciler(cache, mailbox, dispatcher),
        view=view,
        reporter=reporter,
    )
    actions = MailActions(mailbox, ledger, record=record, cache=cache)
    return UndoStack(ledger=ledger, controller=controller, actions=actions)


__all__ = [
    "ActionLedger",
    "ActionType",
    "CacheReconciler",
    "CompensationExecutor",
    "LabelExtra",
    "MessageCache",
    "MoveExtra",
    "NOTHING_TO_UNDO",
    "NoExtra",
    "PrevState",
    "ReconcilePlan",
    "UIDispatcher",
    "UndoController",
    "UndoResult",
    "UndoStack",
    "UndoableAction",
    "ViewContext",
    "build_undo_stack",
    "format_status",
]
