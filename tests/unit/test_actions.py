"""
Unit tests for mail actions that record themselves in the undo ledger.
"""

import pytest

from mailundo.sdk.config import set_config_value
from mailundo.sdk.exceptions import RemoteOperationError, ValidationError
from mailundo.sdk.mail import MailActions
from mailundo.sdk.undo import ActionType, LabelExtra, MoveExtra, NoExtra, PrevState, UndoableAction


@pytest.fixture
def actions(mailbox, ledger):
    return MailActions(mailbox, ledger, record=True)


def test_archive_records_action_after_remote_success(actions, ledger, mailbox):
    done = actions.archive(["m1", "m2"])

    assert done == ["m1", "m2"]
    assert mailbox.calls == [("archive", "m1"), ("archive", "m2")]
    action = ledger.take()
    assert action.action_type is ActionType.ARCHIVE
    assert action.message_ids == ("m1", "m2")
    assert action.extra == NoExtra()
    assert action.description == "Archived 2 messages"


def test_label_actions_record_exact_label_ids(actions, ledger):
    actions.add_label(["m1"], "Label_2", "Travel")
    action = ledger.take()
    assert action.action_type is ActionType.LABEL_ADD
    assert action.extra == LabelExtra(labels=("Label_2",))
    assert action.description == "Applied label Travel"

    actions.remove_label(["m3"], "Label_1")
    action = ledger.take()
    assert action.action_type is ActionType.LABEL_REMOVE
    assert action.extra.labels == ("Label_1",)


def test_move_applies_label_then_archives(actions, ledger, mailbox):
    actions.move(["m2"], "Label_1", "Receipts")

    assert mailbox.calls == [("apply_label", "m2", "Label_1"), ("archive", "m2")]
    assert mailbox.messages["m2"]["labelIds"] == ["Label_1"]
    action = ledger.take()
    assert action.extra == MoveExtra(applied_labels=("Label_1",))
    assert action.description == "Moved to Receipts"


def test_read_state_actions(actions, ledger, mailbox):
    actions.mark_read(["m1"])
    assert ledger.take().action_type is ActionType.MARK_READ
    assert "UNREAD" not in mailbox.messages["m1"]["labelIds"]

    actions.mark_unread(["m1"])
    assert ledger.take().action_type is ActionType.MARK_UNREAD
    assert "UNREAD" in mailbox.messages["m1"]["labelIds"]


def test_failed_action_clears_previous_record(actions, ledger, mailbox):
    ledger.record(UndoableAction(ActionType.TRASH, ["m3"]))
    mailbox.fail_on.add("m1")

    with pytest.raises(RemoteOperationError) as excinfo:
        actions.archive(["m1"])

    assert excinfo.value.message_id == "m1"
    assert not ledger.has_undoable_action()


def test_partial_failure_records_only_succeeded_messages(actions, ledger, mailbox):
    mailbox.fail_on.add("m2")

    with pytest.raises(RemoteOperationError, match="1 of 3 failed"):
        actions.trash(["m1", "m2", "m3"])

    action = ledger.take()
    assert action.message_ids == ("m1", "m3")


def test_empty_ids_rejected(actions):
    with pytest.raises(ValidationError):
        actions.mark_read([])


def test_recording_can_be_disabled_in_config(mailbox, ledger):
    set_config_value("undo.enabled", False)
    actions = MailActions(mailbox, ledger)

    actions.archive(["m1"])

    assert mailbox.calls == [("archive", "m1")]
    assert not ledger.has_undoable_action()


def test_description_counts_only_succeeded_messages(actions, ledger, mailbox):
    mailbox.fail_on.add("m2")

    with pytest.raises(RemoteOperationError) as excinfo:
        actions.archive(["m1", "m2"])

    assert excinfo.value.succeeded_ids == ["m1"]
    action = ledger.take()
    assert action.message_ids == ("m1",)
    assert action.description == "Archived message"


def test_failed_archive_during_move_takes_label_back(actions, ledger, mailbox):
    mailbox.fail_on.add(("archive", "m2"))

    with pytest.raises(RemoteOperationError):
        actions.move(["m2"], "Label_1", "Receipts")

    assert mailbox.calls == [
        ("apply_label", "m2", "Label_1"),
        ("archive", "m2"),
        ("remove_label", "m2", "Label_1"),
    ]
    assert mailbox.messages["m2"]["labelIds"] == ["INBOX"]
    assert not ledger.has_undoable_action()


def test_failed_move_keeps_label_the_message_already_had(mailbox, ledger, cache):
    actions = MailActions(mailbox, ledger, record=True, cache=cache)
    mailbox.fail_on.add(("archive", "m3"))

    with pytest.raises(RemoteOperationError):
        actions.move(["m3"], "Label_1", "Receipts")

    assert mailbox.calls_named("remove_label") == []
    assert "Label_1" in mailbox.messages["m3"]["labelIds"]


def test_prev_state_captured_from_cache(mailbox, ledger, cache):
    actions = MailActions(mailbox, ledger, record=True, cache=cache)

    actions.mark_read(["m1", "m2"])

    action = ledger.take()
    assert action.prev_state["m1"] == PrevState(labels=("INBOX", "UNREAD"), is_read=False, in_inbox=True)
    assert action.prev_state["m2"].is_read
