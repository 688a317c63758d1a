"""Unit test fixtures built on the in-memory FakeMailbox."""

import pytest

from fakes import FakeMailbox, make_meta
from mailundo.sdk.undo import ActionLedger, MessageCache, UIDispatcher


@pytest.fixture
def mailbox():
    return FakeMailbox(messages=[
        make_meta("m1", labels=("INBOX", "UNREAD")),
        make_meta("m2", labels=("INBOX",)),
        make_meta("m3", labels=("INBOX", "Label_1")),
    ])


@pytest.fixture
def ledger():
    return ActionLedger()


@pytest.fixture
def dispatcher():
    return UIDispatcher()


@pytest.fixture
def cache(mailbox):
    cache = MessageCache()
    cache.load(mailbox.search(label_ids=["INBOX"])[0])
    mailbox.calls.clear()
    return cache
