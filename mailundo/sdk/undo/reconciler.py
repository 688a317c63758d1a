"""Local cache patching after an undo.

Each action type has a patch rule that brings the in-memory caches in line
with the remote state the compensation produced, so that no undo needs a
full list reload. Only messages whose compensation succeeded are patched.
"""

import logging
from typing import Any, Dict, List, Optional

from ..exceptions import UnsupportedActionError
from ..mail.mailbox import INBOX, TRASH
from .cache import MessageCache, UIDispatcher
from .models import ActionType, ReconcilePlan, UndoResult, ViewContext, changed_labels

logger = logging.getLogger(__name__)

# patch rule per action type, looked up by name on CacheReconciler
RULES = {
    ActionType.ARCHIVE: "_reconcile_restore",
    ActionType.TRASH: "_reconcile_restore",
    ActionType.LABEL_ADD: "_reconcile_labels",
    ActionType.LABEL_REMOVE: "_reconcile_labels",
    ActionType.MOVE: "_reconcile_move",
    ActionType.MARK_READ: "_reconcile_read_state",
    ActionType.MARK_UNREAD: "_reconcile_read_state",
}


class CacheReconciler:
    """Applies per-action-type patch rules to a MessageCache."""

    def __init__(self, cache: MessageCache, mailbox: Any, dispatcher: Optional[UIDispatcher] = None):
        self.cache = cache
        self.mailbox = mailbox
        self.dispatcher = dispatcher or UIDispatcher()

    def reconcile(self, result: UndoResult, view: ViewContext) -> ReconcilePlan:
        plan = ReconcilePlan()
        message_ids = list(result.succeeded_ids)
        if not message_ids:
            logger.debug("Nothing to reconcile: no message was compensated")
            return plan

        view = ViewContext(view)
        action_type = result.action_type
        try:
            rule = getattr(self, RULES[action_type])
        except KeyError:
            raise UnsupportedActionError(f"No cache rule for action type {action_type}")
        rule(result, message_ids, view, plan)

        logger.debug(
            f"Reconciled {action_type.value} in {view.value} view: patched={plan.patched_ids} "
            f"hint={plan.refresh_hint} panel={plan.refresh_label_panel}"
        )
        return plan

    def _ui(self, fn, *args):
        return self.dispatcher.run_on_ui(fn, *args)

    # -- list membership -------------------------------------------------

    def _reinsert(self, message_ids: List[str], plan: ReconcilePlan) -> List[str]:
        """Fetch and re-insert messages at the head, keeping recorded order."""
        missing = self._ui(lambda: [m for m in message_ids if m not in self.cache.ids])
        fetched: List[Dict[str, Any]] = []
        for message_id in missing:
            try:
                fetched.append(self.mailbox.get_message_metadata(message_id))
            except Exception as e:
                logger.warning(f"Could not fetch metadata for restored message {message_id}: {e}")
                plan.refresh_hint = True

        def insert():
            inserted = []
            for meta in reversed(fetched):
                if self.cache.insert_at_head(meta):
                    inserted.append(meta["id"])
            inserted.reverse()
            return inserted

        return self._ui(insert)

    def _restores_inbox(self, result: UndoResult, message_id: str) -> bool:
        if result.action_type == ActionType.TRASH:
            return True
        prev = result.prev_state.get(message_id)
        return prev is None or prev.in_inbox

    def _reconcile_restore(self, result: UndoResult, message_ids, view, plan):
        if view != ViewContext.INBOX:
            # the restored message may or may not match the active query
            plan.refresh_hint = True
            return

        restored = [m for m in message_ids if self._restores_inbox(result, m)]
        inserted = self._reinsert(restored, plan)

        def fix_labels():
            for message_id in inserted:
                self.cache.add_labels(message_id, [INBOX])
                if result.action_type == ActionType.TRASH:
                    self.cache.remove_labels(message_id, [TRASH])

        self._ui(fix_labels)
        plan.patched_ids.extend(inserted)
        plan.rerender = bool(inserted)

    # -- label sets ------------------------------------------------------

    def _reconcile_labels(self, result: UndoResult, message_ids, view, plan):
        added = result.action_type == ActionType.LABEL_ADD

        def patch():
            patched = []
            for message_id in message_ids:
                if message_id not in self.cache:
                    continue
                labels = changed_labels(result.prev_state, message_id, result.extra.labels, added)
                if added:
                    self.cache.remove_labels(message_id, labels)
                else:
                    self.cache.add_labels(message_id, labels)
                patched.append(message_id)
            return patched

        patched = self._ui(patch)
        plan.patched_ids.extend(patched)
        plan.rerender = True
        self._refresh_label_names(patched)
        if self._ui(lambda: self.cache.label_panel_message_id) in message_ids:
            plan.refresh_label_panel = True

    def _reconcile_move(self, result: UndoResult, message_ids, view, plan):
        applied = result.extra.applied_labels
        restored = [m for m in message_ids if self._restores_inbox(result, m)]
        if view == ViewContext.INBOX:
            self._reinsert(restored, plan)
        else:
            plan.refresh_hint = True

        def patch():
            patched = []
            for message_id in message_ids:
                if message_id not in self.cache:
                    continue
                self.cache.remove_labels(
                    message_id, changed_labels(result.prev_state, message_id, applied, added=True)
                )
                if message_id in restored:
                    self.cache.add_labels(message_id, [INBOX])
                patched.append(message_id)
            return patched

        patched = self._ui(patch)
        plan.patched_ids.extend(patched)
        plan.rerender = True
        self._refresh_label_names(patched)
        if self._ui(lambda: self.cache.label_panel_message_id) in message_ids:
            plan.refresh_label_panel = True

    # -- read state ------------------------------------------------------

    def _reconcile_read_state(self, result: UndoResult, message_ids, view, plan):
        # undoing mark_read makes the message unread again, and vice versa,
        # unless the captured state says it already was
        default_unread = result.action_type == ActionType.MARK_READ

        def patch():
            patched = []
            for message_id in message_ids:
                if message_id in self.cache:
                    prev = result.prev_state.get(message_id)
                    unread = default_unread if prev is None else not prev.is_read
                    self.cache.set_unread(message_id, unread)
                    patched.append(message_id)
            return patched

        plan.patched_ids.extend(self._ui(patch))
        plan.rerender = True

    # -- display names ---------------------------------------------------

    def _refresh_label_names(self, message_ids: List[str]) -> None:
        if not message_ids:
            return
        try:
            labels = self.mailbox.list_labels()
        except Exception as e:
            logger.debug(f"Skipping label name refresh, label lookup failed: {e}")
            return
        label_map = {label["id"]: label.get("name", label["id"]) for label in labels}
        self._ui(self.cache.set_label_names, label_map, message_ids)
