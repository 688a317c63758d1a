"""In-memory view-state caches and the UI-thread dispatcher.

MessageCache is owned by the UI thread. Code running elsewhere (the undo
worker, list reloads) hands its mutations to UIDispatcher.run_on_ui rather
than touching the cache directly.
"""

import logging
import queue
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from ..mail.mailbox import UNREAD

logger = logging.getLogger(__name__)


class MessageCache:
    """Ordered message IDs plus per-message metadata, labels and unread flags."""

    def __init__(self):
        self.ids: List[str] = []
        self.messages_meta: Dict[str, Dict[str, Any]] = {}
        self.labels: Dict[str, Set[str]] = {}
        self.unread: Dict[str, bool] = {}
        self.label_names: Dict[str, List[str]] = {}
        # message whose label side panel is open, if any
        self.label_panel_message_id: Optional[str] = None

    def load(self, messages: Iterable[Dict[str, Any]]) -> None:
        """Replace the whole cache with a freshly fetched message list."""
        self.ids = []
        self.messages_meta = {}
        self.labels = {}
        self.unread = {}
        self.label_names = {}
        for meta in messages:
            self.ids.append(meta["id"])
            self._store(meta)

    def _store(self, meta: Dict[str, Any]) -> None:
        message_id = meta["id"]
        self.messages_meta[message_id] = meta
        label_ids = set(meta.get("labelIds", []))
        self.labels[message_id] = label_ids
        self.unread[message_id] = UNREAD in label_ids

    def __contains__(self, message_id: str) -> bool:
        return message_id in self.messages_meta

    def __len__(self) -> int:
        return len(self.ids)

    def position(self, message_id: str) -> int:
        return self.ids.index(message_id)

    def insert_at_head(self, meta: Dict[str, Any]) -> bool:
        """Put a message first in the list. Returns False if already listed."""
        message_id = meta["id"]
        if message_id in self.ids:
            return False
        self.ids.insert(0, message_id)
        self._store(meta)
        return True

    def remove(self, message_id: str) -> bool:
        if message_id not in self.ids:
            return False
        self.ids.remove(message_id)
        self.messages_meta.pop(message_id, None)
        self.labels.pop(message_id, None)
        self.unread.pop(message_id, None)
        self.label_names.pop(message_id, None)
        return True

    def add_labels(self, message_id: str, label_ids: Iterable[str]) -> None:
        current = self.labels.setdefault(message_id, set())
        current.update(label_ids)
        self._sync_meta_labels(message_id)

    def remove_labels(self, message_id: str, label_ids: Iterable[str]) -> None:
        current = self.labels.setdefault(message_id, set())
        current.difference_update(label_ids)
        self._sync_meta_labels(message_id)

    def set_unread(self, message_id: str, unread: bool) -> None:
        self.unread[message_id] = unread
        if unread:
            self.add_labels(message_id, [UNREAD])
        else:
            self.remove_labels(message_id, [UNREAD])

    def is_unread(self, message_id: str) -> bool:
        return self.unread.get(message_id, False)

    def _sync_meta_labels(self, message_id: str) -> None:
        meta = self.messages_meta.get(message_id)
        if meta is not None:
            meta["labelIds"] = sorted(self.labels[message_id])

    def set_label_names(self, label_map: Dict[str, str], message_ids: Iterable[str]) -> None:
        """Recompute display names for the given messages from an id->name map."""
        for message_id in message_ids:
            if message_id not in self.labels:
                continue
            self.label_names[message_id] = sorted(
                label_map.get(label_id, label_id) for label_id in self.labels[message_id]
            )


class _Call:
    def __init__(self, fn: Callable, args: tuple):
        self.fn = fn
        self.args = args
        self.done = threading.Event()
        self.result = None
        self.error: Optional[BaseException] = None

    def run(self):
        try:
            self.result = self.fn(*self.args)
        except Exception as e:
            self.error = e
        finally:
            self.done.set()


class UIDispatcher:
    """
    Runs callables on the thread that created it.

    Calls made on the UI thread run inline. Calls from any other thread are
    queued and block until the UI thread executes them through drain().
    """

    def __init__(self):
        self._ui_thread = threading.current_thread()
        self._queue: "queue.Queue[_Call]" = queue.Queue()

    def on_ui_thread(self) -> bool:
        return threading.current_thread() is self._ui_thread

    def run_on_ui(self, fn: Callable, *args) -> Any:
        if self.on_ui_thread():
            return fn(*args)
        call = _Call(fn, args)
        self._queue.put(call)
        call.done.wait()
        if call.error is not None:
            raise call.error
        return call.result

    def drain(self, timeout: Optional[float] = None) -> int:
        """Execute queued calls on the UI thread. Returns how many ran."""
        ran = 0
        block = timeout is not None
        while True:
            try:
                call = self._queue.get(block=block, timeout=timeout)
            except queue.Empty:
                return ran
            call.run()
            ran += 1
            block = False
