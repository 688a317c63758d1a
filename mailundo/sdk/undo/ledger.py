"""Single-slot store for the most recent undoable action."""

import logging
import threading
from typing import Optional

from ..exceptions import ValidationError
from .models import UndoableAction

logger = logging.getLogger(__name__)

NOTHING_TO_UNDO = "No action to undo"


class ActionLedger:
    """
    Holds at most one UndoableAction.

    record() replaces whatever is stored; take() returns and clears the slot
    under the same lock, so two concurrent undo requests can never both
    receive the same action.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._action: Optional[UndoableAction] = None

    def record(self, action: UndoableAction) -> None:
        if action is None:
            raise ValidationError("action cannot be None")
        if not action.message_ids:
            raise ValidationError("action requires at least one message ID")
        with self._lock:
            replaced = self._action
            self._action = action
        if replaced is not None:
            logger.debug(f"Replaced undoable action {replaced.action_id} ({replaced.action_type.value})")
        logger.debug(
            f"Recorded undoable action {action.action_id}: {action.action_type.value} "
            f"on {len(action.message_ids)} message(s)"
        )

    def has_undoable_action(self) -> bool:
        with self._lock:
            return self._action is not None

    def take(self) -> Optional[UndoableAction]:
        """Return the stored action and empty the slot, or None when empty."""
        with self._lock:
            action, self._action = self._action, None
        return action

    def clear(self) -> None:
        with self._lock:
            self._action = None

    def describe(self) -> str:
        with self._lock:
            if self._action is None:
                return NOTHING_TO_UNDO
            return self._action.description or self._action.action_type.value
