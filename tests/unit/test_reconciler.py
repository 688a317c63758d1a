"""
Unit tests for local cache patching after an undo.

The ``cache`` fixture starts with m1, m2, m3 listed in that order.
"""

import threading

import pytest

from mailundo.sdk.exceptions import RemoteOperationError
from mailundo.sdk.undo import (
    ActionType,
    CacheReconciler,
    LabelExtra,
    MoveExtra,
    NoExtra,
    PrevState,
    UndoResult,
    ViewContext,
)


def undone(action_type, ids, extra=None, failed=()):
    result = UndoResult(action_type, "", tuple(ids) + tuple(failed), extra or NoExtra())
    result.succeeded_ids = list(ids)
    result.failed_ids = list(failed)
    return result


@pytest.fixture
def reconciler(cache, mailbox, dispatcher):
    return CacheReconciler(cache, mailbox, dispatcher)


def archive_locally(cache, mailbox, message_id):
    """Mirror an archive that already happened remotely and was undone."""
    cache.remove(message_id)
    mailbox.messages[message_id]["labelIds"] = ["INBOX"]


class TestRestoreRules:

    def test_archive_in_inbox_reinserts_at_head_once(self, reconciler, cache, mailbox):
        archive_locally(cache, mailbox, "m2")
        result = undone(ActionType.ARCHIVE, ["m2"])

        plan = reconciler.reconcile(result, ViewContext.INBOX)
        again = reconciler.reconcile(result, ViewContext.INBOX)

        assert cache.ids == ["m2", "m1", "m3"]
        assert cache.ids.count("m2") == 1
        assert plan.patched_ids == ["m2"]
        assert plan.rerender
        assert not plan.needs_remote_reload
        assert again.patched_ids == []
        assert mailbox.calls_named("get_message_metadata") == [("get_message_metadata", "m2")]
        assert mailbox.calls_named("search") == []

    def test_bulk_restore_keeps_recorded_order_at_head(self, reconciler, cache, mailbox):
        archive_locally(cache, mailbox, "m1")
        archive_locally(cache, mailbox, "m3")

        reconciler.reconcile(undone(ActionType.ARCHIVE, ["m3", "m1"]), ViewContext.INBOX)

        assert cache.ids == ["m3", "m1", "m2"]

    @pytest.mark.parametrize("view", [ViewContext.SEARCH, ViewContext.LOCAL_FILTER])
    def test_archive_outside_inbox_only_hints(self, reconciler, cache, mailbox, view):
        archive_locally(cache, mailbox, "m2")
        before = list(cache.ids)

        plan = reconciler.reconcile(undone(ActionType.ARCHIVE, ["m2"]), view)

        assert cache.ids == before
        assert plan.refresh_hint
        assert plan.patched_ids == []
        assert not plan.needs_remote_reload
        assert mailbox.calls == []

    def test_trash_in_inbox_drops_trash_label(self, reconciler, cache, mailbox):
        cache.remove("m1")
        mailbox.messages["m1"]["labelIds"] = ["INBOX", "TRASH", "UNREAD"]

        plan = reconciler.reconcile(undone(ActionType.TRASH, ["m1"]), ViewContext.INBOX)

        assert cache.ids[0] == "m1"
        assert cache.labels["m1"] == {"INBOX", "UNREAD"}
        assert cache.is_unread("m1")
        assert plan.patched_ids == ["m1"]

    def test_metadata_fetch_failure_skips_message_and_hints(self, reconciler, cache, mailbox):
        archive_locally(cache, mailbox, "m1")
        archive_locally(cache, mailbox, "m2")
        mailbox.fail_on.add(("get_message_metadata", "m1"))

        plan = reconciler.reconcile(undone(ActionType.ARCHIVE, ["m1", "m2"]), ViewContext.INBOX)

        assert cache.ids == ["m2", "m3"]
        assert plan.patched_ids == ["m2"]
        assert plan.refresh_hint


class TestLabelRules:

    def test_label_add_undo_removes_label_from_cache(self, reconciler, cache, mailbox):
        plan = reconciler.reconcile(
            undone(ActionType.LABEL_ADD, ["m3"], LabelExtra(labels=("Label_1",))),
            ViewContext.SEARCH,
        )

        assert cache.labels["m3"] == {"INBOX"}
        assert cache.messages_meta["m3"]["labelIds"] == ["INBOX"]
        assert plan.patched_ids == ["m3"]
        assert plan.rerender
        assert not plan.refresh_hint
        assert mailbox.calls_named("get_message_metadata") == []

    def test_label_remove_undo_restores_label_and_names(self, reconciler, cache):
        plan = reconciler.reconcile(
            undone(ActionType.LABEL_REMOVE, ["m2"], LabelExtra(labels=("Label_2",))),
            ViewContext.INBOX,
        )

        assert cache.labels["m2"] == {"INBOX", "Label_2"}
        assert cache.label_names["m2"] == ["INBOX", "Travel"]
        assert plan.patched_ids == ["m2"]

    def test_open_label_panel_is_refreshed(self, reconciler, cache):
        cache.label_panel_message_id = "m2"
        plan = reconciler.reconcile(
            undone(ActionType.LABEL_REMOVE, ["m2"], LabelExtra(labels=("Label_2",))),
            ViewContext.INBOX,
        )
        assert plan.refresh_label_panel

    def test_panel_on_other_message_is_left_alone(self, reconciler, cache):
        cache.label_panel_message_id = "m1"
        plan = reconciler.reconcile(
            undone(ActionType.LABEL_REMOVE, ["m2"], LabelExtra(labels=("Label_2",))),
            ViewContext.INBOX,
        )
        assert not plan.refresh_label_panel

    def test_label_lookup_failure_is_soft(self, reconciler, cache, mailbox):
        mailbox.labels_error = RemoteOperationError("list labels", reason="HTTP 503: unavailable")

        plan = reconciler.reconcile(
            undone(ActionType.LABEL_REMOVE, ["m2"], LabelExtra(labels=("Label_2",))),
            ViewContext.INBOX,
        )

        assert cache.labels["m2"] == {"INBOX", "Label_2"}
        assert "m2" not in cache.label_names
        assert plan.patched_ids == ["m2"]
        assert not plan.needs_remote_reload


class TestMoveRules:

    def test_move_in_inbox_reinserts_and_drops_applied_label(self, reconciler, cache, mailbox):
        cache.remove("m2")
        mailbox.messages["m2"]["labelIds"] = ["Label_2"]

        plan = reconciler.reconcile(
            undone(ActionType.MOVE, ["m2"], MoveExtra(applied_labels=("Label_2",))),
            ViewContext.INBOX,
        )

        assert cache.ids[0] == "m2"
        assert cache.labels["m2"] == {"INBOX"}
        assert plan.patched_ids == ["m2"]
        assert not plan.needs_remote_reload

    def test_move_in_search_patches_labels_without_list_change(self, reconciler, cache):
        cache.add_labels("m3", ["Label_2"])
        cache.remove_labels("m3", ["INBOX"])
        before = list(cache.ids)

        plan = reconciler.reconcile(
            undone(ActionType.MOVE, ["m3"], MoveExtra(applied_labels=("Label_2",))),
            ViewContext.SEARCH,
        )

        assert cache.ids == before
        assert cache.labels["m3"] == {"INBOX", "Label_1"}
        assert plan.refresh_hint
        assert plan.patched_ids == ["m3"]


class TestReadStateRules:

    def test_undo_mark_unread_clears_flag(self, reconciler, cache, mailbox):
        plan = reconciler.reconcile(undone(ActionType.MARK_UNREAD, ["m1"]), ViewContext.INBOX)

        assert not cache.is_unread("m1")
        assert "UNREAD" not in cache.labels["m1"]
        assert plan.patched_ids == ["m1"]
        assert mailbox.calls == []

    def test_undo_mark_read_sets_flag(self, reconciler, cache):
        plan = reconciler.reconcile(undone(ActionType.MARK_READ, ["m2"]), ViewContext.LOCAL_FILTER)

        assert cache.is_unread("m2")
        assert not plan.refresh_hint

    def test_unknown_messages_are_not_added(self, reconciler, cache):
        plan = reconciler.reconcile(undone(ActionType.MARK_READ, ["zz"]), ViewContext.INBOX)
        assert "zz" not in cache
        assert plan.patched_ids == []


def test_only_succeeded_messages_are_patched(reconciler, cache):
    result = undone(ActionType.MARK_UNREAD, ["m1"], failed=["m2"])
    cache.set_unread("m2", True)

    plan = reconciler.reconcile(result, ViewContext.INBOX)

    assert not cache.is_unread("m1")
    assert cache.is_unread("m2")
    assert plan.patched_ids == ["m1"]


def test_nothing_succeeded_means_no_patch(reconciler, cache, mailbox):
    result = undone(ActionType.ARCHIVE, [], failed=["m1"])
    plan = reconciler.reconcile(result, ViewContext.INBOX)
    assert plan.patched_ids == []
    assert not plan.rerender
    assert mailbox.calls == []


def test_patches_from_worker_thread_run_on_ui_thread(reconciler, cache, mailbox, dispatcher):
    archive_locally(cache, mailbox, "m2")
    mutating_threads = set()
    original_insert = cache.insert_at_head

    def tracking_insert(meta):
        mutating_threads.add(threading.current_thread())
        return original_insert(meta)

    cache.insert_at_head = tracking_insert
    plans = []
    worker = threading.Thread(
        target=lambda: plans.append(reconciler.reconcile(undone(ActionType.ARCHIVE, ["m2"]), ViewContext.INBOX))
    )
    worker.start()
    while worker.is_alive():
        dispatcher.drain(timeout=0.05)
    worker.join()

    assert mutating_threads == {threading.main_thread()}
    assert cache.ids[0] == "m2"
    assert plans[0].patched_ids == ["m2"]


class TestCapturedState:

    def test_archive_never_in_inbox_is_not_listed(self, reconciler, cache, mailbox):
        cache.remove("m2")
        result = undone(ActionType.ARCHIVE, ["m2"])
        result.prev_state = {"m2": PrevState.from_labels(["Label_1"])}

        plan = reconciler.reconcile(result, ViewContext.INBOX)

        assert "m2" not in cache
        assert plan.patched_ids == []
        assert mailbox.calls_named("get_message_metadata") == []

    def test_label_add_keeps_label_the_message_already_had(self, reconciler, cache):
        result = undone(ActionType.LABEL_ADD, ["m3"], LabelExtra(labels=("Label_1",)))
        result.prev_state = {"m3": PrevState.from_labels(["INBOX", "Label_1"])}

        reconciler.reconcile(result, ViewContext.INBOX)

        assert "Label_1" in cache.labels["m3"]

    def test_read_state_follows_captured_state(self, reconciler, cache):
        cache.set_unread("m2", False)
        result = undone(ActionType.MARK_READ, ["m2"])
        result.prev_state = {"m2": PrevState.from_labels(["INBOX"])}

        reconciler.reconcile(result, ViewContext.INBOX)

        assert not cache.is_unread("m2")
