"""Compensating remote calls for a recorded action.

When the action carries a captured state for a message, compensation only
reverses what the action actually changed on it: an archive of a message that
was never in INBOX does not put it there, and re-marking a message that was
already read is skipped. Without a captured state each type falls back to its
plain inverse.
"""

import logging
from typing import Any, Dict

from ..exceptions import RemoteOperationError, UnsupportedActionError
from ..mail.mailbox import INBOX
from .models import ActionType, UndoableAction, UndoResult, changed_labels

logger = logging.getLogger(__name__)


def _was_in_inbox(action: UndoableAction, message_id: str) -> bool:
    prev = action.prev_state.get(message_id)
    return prev is None or prev.in_inbox


def _was_read(action: UndoableAction, message_id: str, default: bool) -> bool:
    prev = action.prev_state.get(message_id)
    return default if prev is None else prev.is_read


def _undo_archive(mailbox, message_id: str, action: UndoableAction) -> None:
    if _was_in_inbox(action, message_id):
        mailbox.apply_label(message_id, INBOX)


def _undo_trash(mailbox, message_id: str, action: UndoableAction) -> None:
    mailbox.untrash(message_id)


def _undo_label_add(mailbox, message_id: str, action: UndoableAction) -> None:
    for label_id in changed_labels(action.prev_state, message_id, action.extra.labels, added=True):
        mailbox.remove_label(message_id, label_id)


def _undo_label_remove(mailbox, message_id: str, action: UndoableAction) -> None:
    for label_id in changed_labels(action.prev_state, message_id, action.extra.labels, added=False):
        mailbox.apply_label(message_id, label_id)


def _undo_move(mailbox, message_id: str, action: UndoableAction) -> None:
    if _was_in_inbox(action, message_id):
        mailbox.apply_label(message_id, INBOX)
    for label_id in changed_labels(action.prev_state, message_id, action.extra.applied_labels, added=True):
        mailbox.remove_label(message_id, label_id)


def _undo_mark_read(mailbox, message_id: str, action: UndoableAction) -> None:
    if not _was_read(action, message_id, default=False):
        mailbox.set_read_state(message_id, False)


def _undo_mark_unread(mailbox, message_id: str, action: UndoableAction) -> None:
    if _was_read(action, message_id, default=True):
        mailbox.set_read_state(message_id, True)


# (compensation, verb used in per-message error text)
COMPENSATIONS: Dict[ActionType, tuple] = {
    ActionType.ARCHIVE: (_undo_archive, "undo archive"),
    ActionType.TRASH: (_undo_trash, "restore from trash"),
    ActionType.LABEL_ADD: (_undo_label_add, "remove added labels"),
    ActionType.LABEL_REMOVE: (_undo_label_remove, "re-add removed labels"),
    ActionType.MOVE: (_undo_move, "undo move"),
    ActionType.MARK_READ: (_undo_mark_read, "mark as unread"),
    ActionType.MARK_UNREAD: (_undo_mark_unread, "mark as read"),
}


class CompensationExecutor:
    """
    Issues the inverse remote operation(s) for a recorded action.

    Messages are processed one at a time in recorded order. A failing message
    gets one entry in ``errors`` and is left in whatever state the calls made
    so far produced; the batch always continues with the next message.
    """

    def __init__(self, mailbox: Any):
        self.mailbox = mailbox

    def execute(self, action: UndoableAction) -> UndoResult:
        try:
            compensate, verb = COMPENSATIONS[action.action_type]
        except KeyError:
            raise UnsupportedActionError(f"No compensation for action type {action.action_type}")

        result = UndoResult(
            action_type=action.action_type,
            description=action.description,
            message_ids=action.message_ids,
            extra=action.extra,
            prev_state=dict(action.prev_state),
        )
        logger.debug(
            f"Compensating {action.action_type.value} ({action.action_id}) "
            f"for {len(action.message_ids)} message(s)"
        )

        for message_id in action.message_ids:
            try:
                compensate(self.mailbox, message_id, action)
            except Exception as e:
                reason = e.reason if isinstance(e, RemoteOperationError) else str(e)
                logger.warning(f"Failed to {verb} for message {message_id}: {reason}")
                result.failed_ids.append(message_id)
                result.errors.append(f"failed to {verb} for message {message_id}: {reason}")
                continue
            result.succeeded_ids.append(message_id)

        logger.info(
            f"Undo of {action.action_type.value}: {len(result.succeeded_ids)} succeeded, "
            f"{len(result.failed_ids)} failed"
        )
        return result
