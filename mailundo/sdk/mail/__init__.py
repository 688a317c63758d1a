"""Gmail operations for the mailundo SDK.

Example usage:
    from mailundo.sdk import mail
    from mailundo.sdk.undo import ActionLedger

    mailbox = mail.GmailMailbox()
    actions = mail.MailActions(mailbox, ActionLedger())
    actions.archive(["message_id_here"])
"""

from .service import get_gmail_service
from .mailbox import GmailMailbox, parse_message_metadata, INBOX, UNREAD, TRASH
from .labels import find_label, get_or_create_label
from .actions import MailActions

__all__ = [
    "get_gmail_service",
    "GmailMailbox",
    "parse_message_metadata",
    "find_label",
    "get_or_create_label",
    "MailActions",
    "INBOX",
    "UNREAD",
    "TRASH",
]
