"""Interactive mailbox session with single-level undo.

The undo ledger lives in memory, so acting on messages and undoing has to
happen inside one process. This module keeps a message list in a
MessageCache and applies forward actions to it the way a list UI would.
"""

import logging
import shlex
from typing import List, Optional

import click

from mailundo.sdk.exceptions import MailUndoError, RemoteOperationError
from mailundo.sdk.mail import INBOX, get_or_create_label
from mailundo.sdk.undo import MessageCache, ViewContext, build_undo_stack

logger = logging.getLogger(__name__)

LEVEL_COLORS = {
    "success": "green",
    "info": None,
    "warning": "yellow",
    "error": "red",
}

HELP_TEXT = """Commands (N is a list number, several may be given):
  list | ls                 show the message list
  refresh                   reload the list from Gmail
  archive N...              archive messages
  trash N...                move messages to trash
  read N... / unread N...   change read state
  label N... LABEL          apply a label (created if missing)
  unlabel N... LABEL        remove a label
  move N... LABEL           apply a label and archive
  {undo:<26}undo the last action
  status                    show what undo would reverse
  help                      show this help
  quit | q                  leave the session"""


class Session:
    """One interactive session over a mailbox."""

    def __init__(
        self,
        mailbox,
        query: Optional[str] = None,
        local_filter: Optional[str] = None,
        max_results: int = 25,
        undo_key: str = "U",
    ):
        self.mailbox = mailbox
        self.query = query
        self.local_filter = local_filter
        self.max_results = max_results
        self.undo_key = undo_key
        self.cache = MessageCache()
        self.stack = build_undo_stack(mailbox, self.cache, view=lambda: self.view, reporter=self.report)

    @property
    def view(self) -> ViewContext:
        if self.query:
            return ViewContext.SEARCH
        if self.local_filter:
            return ViewContext.LOCAL_FILTER
        return ViewContext.INBOX

    def report(self, message: str, level: str) -> None:
        click.secho(message, fg=LEVEL_COLORS.get(level))

    def load(self) -> None:
        if self.query:
            messages, _ = self.mailbox.search(query=self.query, max_results=self.max_results)
        else:
            messages, _ = self.mailbox.search(label_ids=[INBOX], max_results=self.max_results)
            if self.local_filter:
                needle = self.local_filter.lower()
                messages = [
                    m for m in messages
                    if needle in m.get("subject", "").lower()
                    or needle in m.get("from", "").lower()
                    or needle in m.get("snippet", "").lower()
                ]
        self.cache.load(messages)
        logger.debug(f"Loaded {len(messages)} messages for {self.view.value} view")

    def render(self) -> None:
        if not self.cache.ids:
            click.echo("(no messages)")
            return
        for position, message_id in enumerate(self.cache.ids, start=1):
            meta = self.cache.messages_meta[message_id]
            marker = "*" if self.cache.is_unread(message_id) else " "
            names = self.cache.label_names.get(message_id) or sorted(self.cache.labels[message_id])
            click.echo(f"{position:3}. {marker} {meta.get('from', '')[:30]:30} | {meta.get('subject', '')[:50]}")
            click.echo(f"        [{', '.join(names)}]")

    def _resolve(self, tokens: List[str]) -> List[str]:
        ids = []
        for token in tokens:
            if not token.isdigit() or not 1 <= int(token) <= len(self.cache.ids):
                raise click.BadParameter(f"no message number {token}")
            ids.append(self.cache.ids[int(token) - 1])
        if not ids:
            raise click.BadParameter("give at least one message number")
        return ids

    def _split_label(self, args: List[str]):
        if len(args) < 2:
            raise click.BadParameter("usage: <N...> LABEL")
        return self._resolve(args[:-1]), get_or_create_label(self.mailbox, args[-1])

    # forward actions update the list the same way the remote state changed

    def _apply(self, run, ids: List[str], patch) -> None:
        """Run a mail action, then patch the cache for every message it changed."""
        try:
            done = run(ids)
        except RemoteOperationError as e:
            patch(e.succeeded_ids)
            raise
        patch(done)

    def _leave_list(self, ids: List[str]) -> None:
        for message_id in ids:
            self.cache.remove(message_id)

    def do_archive(self, args):
        def patch(done):
            if self.view == ViewContext.INBOX:
                self._leave_list(done)
            else:
                for message_id in done:
                    self.cache.remove_labels(message_id, [INBOX])

        self._apply(self.stack.actions.archive, self._resolve(args), patch)

    def do_trash(self, args):
        self._apply(self.stack.actions.trash, self._resolve(args), self._leave_list)

    def do_read(self, args):
        def patch(done):
            for message_id in done:
                self.cache.set_unread(message_id, False)

        self._apply(self.stack.actions.mark_read, self._resolve(args), patch)

    def do_unread(self, args):
        def patch(done):
            for message_id in done:
                self.cache.set_unread(message_id, True)

        self._apply(self.stack.actions.mark_unread, self._resolve(args), patch)

    def do_label(self, args):
        ids, label = self._split_label(args)

        def patch(done):
            for message_id in done:
                self.cache.add_labels(message_id, [label["id"]])

        self._apply(
            lambda targets: self.stack.actions.add_label(targets, label["id"], label.get("name")),
            ids, patch,
        )

    def do_unlabel(self, args):
        ids, label = self._split_label(args)

        def patch(done):
            for message_id in done:
                self.cache.remove_labels(message_id, [label["id"]])

        self._apply(
            lambda targets: self.stack.actions.remove_label(targets, label["id"], label.get("name")),
            ids, patch,
        )

    def do_move(self, args):
        ids, label = self._split_label(args)

        def patch(done):
            if self.view == ViewContext.INBOX:
                self._leave_list(done)
                return
            for message_id in done:
                self.cache.add_labels(message_id, [label["id"]])
                self.cache.remove_labels(message_id, [INBOX])

        self._apply(
            lambda targets: self.stack.actions.move(targets, label["id"], label.get("name")),
            ids, patch,
        )

    def do_undo(self, args):
        self.stack.controller.perform_undo()

    def do_status(self, args):
        click.echo(f"Last action: {self.stack.ledger.describe()}")

    def do_refresh(self, args):
        self.load()
        self.render()

    def handle(self, line: str) -> bool:
        """Run one command line. Returns False when the session should end."""
        try:
            parts = shlex.split(line)
        except ValueError as e:
            self.report(f"Could not parse command: {e}", "error")
            return True
        if not parts:
            return True
        command, args = parts[0], parts[1:]

        if command in ("quit", "q", "exit"):
            return False
        if command in ("help", "?"):
            click.echo(HELP_TEXT.format(undo=f"undo | {self.undo_key}"))
            return True
        if command in ("list", "ls"):
            self.render()
            return True
        if command == self.undo_key:
            command = "undo"

        handler = getattr(self, f"do_{command}", None)
        if handler is None:
            self.report(f"Unknown command: {command} (try 'help')", "error")
            return True
        try:
            handler(args)
        except click.BadParameter as e:
            self.report(e.format_message(), "error")
        except MailUndoError as e:
            self.report(str(e), "error")
        return True

    def run(self) -> None:
        self.load()
        self.render()
        while True:
            try:
                line = click.prompt(f"mailundo[{self.view.value}]", default="", show_default=False)
            except (EOFError, click.Abort):
                click.echo()
                break
            if not self.handle(line):
                break
