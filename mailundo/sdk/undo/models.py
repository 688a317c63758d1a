"""Data types for undoable mailbox actions and their undo outcomes."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple, Union

from ..exceptions import ValidationError


class ActionType(str, Enum):
    ARCHIVE = "archive"
    TRASH = "trash"
    LABEL_ADD = "label_add"
    LABEL_REMOVE = "label_remove"
    MOVE = "move"
    MARK_READ = "mark_read"
    MARK_UNREAD = "mark_unread"


class ViewContext(str, Enum):
    """What the active message list reflects."""
    INBOX = "inbox"
    SEARCH = "search"
    LOCAL_FILTER = "local_filter"


@dataclass(frozen=True)
class NoExtra:
    """Payload for actions whose compensation needs nothing beyond the type."""


@dataclass(frozen=True)
class LabelExtra:
    """Label IDs added (label_add) or removed (label_remove) by the action."""
    labels: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "labels", tuple(self.labels))


@dataclass(frozen=True)
class MoveExtra:
    """Labels applied by a move out of INBOX."""
    applied_labels: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "applied_labels", tuple(self.applied_labels))


ExtraData = Union[NoExtra, LabelExtra, MoveExtra]


@dataclass(frozen=True)
class PrevState:
    """A message's label state captured just before an action ran."""
    labels: Tuple[str, ...]
    is_read: bool
    in_inbox: bool

    @classmethod
    def from_labels(cls, label_ids: Iterable[str]) -> "PrevState":
        labels = tuple(sorted(label_ids))
        return cls(labels=labels, is_read="UNREAD" not in labels, in_inbox="INBOX" in labels)


def changed_labels(prev_state: Dict[str, PrevState], message_id: str, labels, added: bool) -> Tuple[str, ...]:
    """
    Narrow ``labels`` to the ones an action actually changed on a message.

    Labels the message already had are not reported as added, and labels it
    never had are not reported as removed. Without a captured state every
    label counts as changed.
    """
    prev = prev_state.get(message_id)
    if prev is None:
        return tuple(labels)
    if added:
        return tuple(label_id for label_id in labels if label_id not in prev.labels)
    return tuple(label_id for label_id in labels if label_id in prev.labels)


EXTRA_TYPES = {
    ActionType.ARCHIVE: NoExtra,
    ActionType.TRASH: NoExtra,
    ActionType.MARK_READ: NoExtra,
    ActionType.MARK_UNREAD: NoExtra,
    ActionType.LABEL_ADD: LabelExtra,
    ActionType.LABEL_REMOVE: LabelExtra,
    ActionType.MOVE: MoveExtra,
}


def _dedupe(message_ids) -> Tuple[str, ...]:
    seen = set()
    ordered = []
    for message_id in message_ids:
        if message_id not in seen:
            seen.add(message_id)
            ordered.append(message_id)
    return tuple(ordered)


@dataclass(frozen=True)
class UndoableAction:
    """The compensable record of one completed remote operation."""
    action_type: ActionType
    message_ids: Tuple[str, ...]
    extra: ExtraData = field(default_factory=NoExtra)
    description: str = ""
    action_id: str = ""
    timestamp: Optional[datetime] = None
    prev_state: Dict[str, PrevState] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        action_type = ActionType(self.action_type)
        object.__setattr__(self, "action_type", action_type)

        if isinstance(self.message_ids, str):
            raise ValidationError("message_ids must be a sequence of IDs, not a single string")
        ids = _dedupe(self.message_ids)
        if not ids:
            raise ValidationError(f"{action_type.value} action requires at least one message ID")
        object.__setattr__(self, "message_ids", ids)
        object.__setattr__(self, "prev_state", {m: s for m, s in dict(self.prev_state).items() if m in ids})

        expected = EXTRA_TYPES[action_type]
        if not isinstance(self.extra, expected):
            raise ValidationError(
                f"{action_type.value} action expects {expected.__name__}, "
                f"got {type(self.extra).__name__}"
            )
        if expected is LabelExtra and not self.extra.labels:
            raise ValidationError(f"{action_type.value} action requires at least one label")
        if expected is MoveExtra and not self.extra.applied_labels:
            raise ValidationError("move action requires at least one applied label")

        if not self.action_id:
            object.__setattr__(self, "action_id", str(uuid.uuid4()))
        if self.timestamp is None:
            object.__setattr__(self, "timestamp", datetime.now())


@dataclass
class UndoResult:
    """Outcome of one undo attempt. Not retained after reporting."""
    action_type: ActionType
    description: str
    message_ids: Tuple[str, ...]
    extra: ExtraData
    succeeded_ids: list = field(default_factory=list)
    failed_ids: list = field(default_factory=list)
    errors: list = field(default_factory=list)
    prev_state: Dict[str, PrevState] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.failed_ids and len(self.succeeded_ids) == len(self.message_ids)

    @property
    def partial(self) -> bool:
        return bool(self.succeeded_ids) and bool(self.failed_ids)


@dataclass
class ReconcilePlan:
    """What reconciliation changed locally and what is still needed."""
    patched_ids: list = field(default_factory=list)
    rerender: bool = False
    refresh_hint: bool = False
    refresh_label_panel: bool = False
    needs_remote_reload: bool = False
