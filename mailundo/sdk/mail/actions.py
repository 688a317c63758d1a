"""Mutating mailbox operations that record themselves for undo.

Each operation runs remotely first, one message at a time. When at least one
message succeeded, an UndoableAction covering exactly those messages replaces
whatever the ledger held. When every message failed, the ledger is cleared
so undo cannot reverse an older, unrelated action.

With a MessageCache attached, each message's labels are captured before the
action so undo can put back exactly what was there.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..config import get_config_value
from ..exceptions import RemoteOperationError, ValidationError
from ..undo.ledger import ActionLedger
from ..undo.models import ActionType, ExtraData, LabelExtra, MoveExtra, NoExtra, PrevState, UndoableAction

logger = logging.getLogger(__name__)


def _count(n: int) -> str:
    return "message" if n == 1 else f"{n} messages"


class MailActions:
    """Archive, trash, label, move and read-state operations with undo recording."""

    def __init__(self, mailbox: Any, ledger: ActionLedger, record: Optional[bool] = None, cache: Any = None):
        self.mailbox = mailbox
        self.ledger = ledger
        self.cache = cache
        if record is None:
            record = bool(get_config_value("undo.enabled", True))
        self.record = record

    def _capture(self, message_ids: List[str]) -> Dict[str, PrevState]:
        if self.cache is None:
            return {}
        return {
            message_id: PrevState.from_labels(self.cache.labels[message_id])
            for message_id in message_ids
            if message_id in self.cache
        }

    def _run(
        self,
        action_type: ActionType,
        message_ids: Iterable[str],
        operation: Callable[[str], None],
        extra: ExtraData,
        describe: Callable[[int], str],
    ) -> List[str]:
        """
        Run ``operation`` on each message and record what succeeded.

        Returns the IDs that succeeded. A partial failure raises
        RemoteOperationError carrying those IDs in ``succeeded_ids``.
        """
        message_ids = list(dict.fromkeys(message_ids))
        if not message_ids:
            raise ValidationError(f"{action_type.value} requires at least one message ID")

        prev_state = self._capture(message_ids)
        succeeded, errors = [], []
        for message_id in message_ids:
            try:
                operation(message_id)
            except RemoteOperationError as e:
                logger.warning(f"{action_type.value} failed for {message_id}: {e}")
                errors.append(e)
                continue
            succeeded.append(message_id)

        if not succeeded:
            self.ledger.clear()
            if len(errors) == 1:
                raise errors[0]
            raise RemoteOperationError(action_type.value, reason="; ".join(str(e) for e in errors))

        description = describe(len(succeeded))
        if self.record:
            self.ledger.record(UndoableAction(
                action_type=action_type,
                message_ids=tuple(succeeded),
                extra=extra,
                description=description,
                prev_state=prev_state,
            ))
        logger.info(f"{description} ({len(succeeded)}/{len(message_ids)} succeeded)")

        if errors:
            raise RemoteOperationError(
                action_type.value,
                reason=f"{len(errors)} of {len(message_ids)} failed: " + "; ".join(str(e) for e in errors),
                succeeded_ids=succeeded,
            )
        return succeeded

    def archive(self, message_ids: Iterable[str]) -> List[str]:
        return self._run(
            ActionType.ARCHIVE, message_ids, self.mailbox.archive, NoExtra(),
            lambda n: f"Archived {_count(n)}",
        )

    def trash(self, message_ids: Iterable[str]) -> List[str]:
        return self._run(
            ActionType.TRASH, message_ids, self.mailbox.trash, NoExtra(),
            lambda n: f"Trashed {_count(n)}",
        )

    def add_label(self, message_ids: Iterable[str], label_id: str, label_name: str = None) -> List[str]:
        return self._run(
            ActionType.LABEL_ADD, message_ids,
            lambda m: self.mailbox.apply_label(m, label_id),
            LabelExtra(labels=(label_id,)),
            lambda n: f"Applied label {label_name or label_id}",
        )

    def remove_label(self, message_ids: Iterable[str], label_id: str, label_name: str = None) -> List[str]:
        return self._run(
            ActionType.LABEL_REMOVE, message_ids,
            lambda m: self.mailbox.remove_label(m, label_id),
            LabelExtra(labels=(label_id,)),
            lambda n: f"Removed label {label_name or label_id}",
        )

    def move(self, message_ids: Iterable[str], label_id: str, label_name: str = None) -> List[str]:
        """
        Apply a label and take the message out of the inbox.

        If archiving fails after the label went on, the label is taken off
        again so the message is left as it was.
        """
        message_ids = list(message_ids)
        had_label = {m for m, state in self._capture(message_ids).items() if label_id in state.labels}

        def move_one(message_id):
            self.mailbox.apply_label(message_id, label_id)
            try:
                self.mailbox.archive(message_id)
            except RemoteOperationError:
                if message_id not in had_label:
                    self._take_label_back(message_id, label_id)
                raise

        return self._run(
            ActionType.MOVE, message_ids, move_one,
            MoveExtra(applied_labels=(label_id,)),
            lambda n: f"Moved to {label_name or label_id}",
        )

    def _take_label_back(self, message_id: str, label_id: str) -> None:
        try:
            self.mailbox.remove_label(message_id, label_id)
        except RemoteOperationError as e:
            logger.warning(f"Label {label_id} stays on message {message_id} after failed move: {e}")

    def mark_read(self, message_ids: Iterable[str]) -> List[str]:
        return self._run(
            ActionType.MARK_READ, message_ids,
            lambda m: self.mailbox.set_read_state(m, True), NoExtra(),
            lambda n: f"Marked {_count(n)} as read",
        )

    def mark_unread(self, message_ids: Iterable[str]) -> List[str]:
        return self._run(
            ActionType.MARK_UNREAD, message_ids,
            lambda m: self.mailbox.set_read_state(m, False), NoExtra(),
            lambda n: f"Marked {_count(n)} as unread",
        )
