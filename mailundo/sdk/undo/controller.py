"""Undo facade used by the UI: ledger -> compensation -> reconciliation -> status."""

import logging
import threading
from typing import Callable, Optional, Union

from ..exceptions import MailUndoError
from .executor import CompensationExecutor
from .ledger import ActionLedger, NOTHING_TO_UNDO
from .models import ActionType, ReconcilePlan, UndoResult, ViewContext
from .reconciler import CacheReconciler

logger = logging.getLogger(__name__)

REFRESH_HINT = " (press refresh if not visible)"

STATUS_TEMPLATES = {
    ActionType.ARCHIVE: "Unarchived {}",
    ActionType.TRASH: "Restored {} from trash",
    ActionType.LABEL_ADD: "Removed labels from {}",
    ActionType.LABEL_REMOVE: "Re-added labels to {}",
    ActionType.MOVE: "Undid move of {}",
    ActionType.MARK_READ: "Marked {} as unread",
    ActionType.MARK_UNREAD: "Marked {} as read",
}

Reporter = Callable[[str, str], None]


def _count(n: int) -> str:
    return "1 message" if n == 1 else f"{n} messages"


def format_status(result: UndoResult, plan: ReconcilePlan) -> str:
    """Build the user-facing message for an undo that at least partly succeeded."""
    message = STATUS_TEMPLATES[result.action_type].format(_count(len(result.succeeded_ids)))
    if result.description:
        message += f": {result.description}"
    if plan.refresh_hint:
        message += REFRESH_HINT
    if result.failed_ids:
        message += f" ({len(result.failed_ids)} failed: {'; '.join(result.errors)})"
    return message


def _log_reporter(message: str, level: str) -> None:
    log_level = {"error": logging.ERROR, "warning": logging.WARNING}.get(level, logging.INFO)
    logger.log(log_level, message)


class UndoController:
    """
    Performs the single pending undo.

    ``view`` is either a ViewContext or a callable returning the current one,
    so the active view is read at undo time. ``reporter(message, level)``
    receives the status line; level is one of info, success, warning, error.
    """

    def __init__(
        self,
        ledger: ActionLedger,
        executor: CompensationExecutor,
        reconciler: CacheReconciler,
        view: Union[ViewContext, Callable[[], ViewContext]] = ViewContext.INBOX,
        reporter: Optional[Reporter] = None,
    ):
        self.ledger = ledger
        self.executor = executor
        self.reconciler = reconciler
        self._view = view
        self.reporter = reporter or _log_reporter

    @property
    def view(self) -> ViewContext:
        return self._view() if callable(self._view) else self._view

    def has_undoable_action(self) -> bool:
        return self.ledger.has_undoable_action()

    def _report(self, message: str, level: str) -> str:
        self.reporter(message, level)
        return message

    def perform_undo(self) -> str:
        """Undo the recorded action. Returns the status message reported."""
        action = self.ledger.take()
        if action is None:
            return self._report(NOTHING_TO_UNDO, "info")

        logger.info(f"Undoing {action.action_type.value} on {len(action.message_ids)} message(s): {action.description}")
        try:
            result = self.executor.execute(action)
        except MailUndoError as e:
            logger.error(f"Undo of {action.action_type.value} could not start: {e}")
            return self._report(f"Undo failed: {e}", "error")

        if not result.succeeded_ids:
            return self._report("Undo failed: " + "; ".join(result.errors), "error")

        try:
            plan = self.reconciler.reconcile(result, self.view)
        except Exception as e:
            logger.exception(f"Cache reconciliation failed after undo: {e}")
            plan = ReconcilePlan(refresh_hint=True)

        level = "warning" if result.failed_ids else "success"
        return self._report(format_status(result, plan), level)

    def perform_undo_async(self) -> threading.Thread:
        """Run perform_undo on a worker thread so the UI loop stays responsive."""
        worker = threading.Thread(target=self.perform_undo, name="mailundo-undo", daemon=True)
        worker.start()
        return worker
