"""mailundo SDK - Gmail mailbox actions with single-level undo.

This SDK provides:
- mail: the Gmail mailbox adapter and undo-recording mail actions
- undo: the action ledger, compensation executor, cache reconciler and
  the undo controller used by a UI

Example usage:
    from mailundo.sdk import mail, undo

    mailbox = mail.GmailMailbox()
    cache = undo.MessageCache()
    stack = undo.build_undo_stack(mailbox, cache)
    stack.actions.mark_unread(["18c2f..."])
    print(stack.controller.perform_undo())
"""

from . import config
from . import auth
from . import mail
from . import undo

__all__ = ["config", "auth", "mail", "undo"]
