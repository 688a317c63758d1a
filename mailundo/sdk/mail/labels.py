"""Gmail label lookup helpers."""

import logging
from typing import Any, Dict, List, Optional

from googleapiclient.errors import HttpError

from ..exceptions import RemoteOperationError

logger = logging.getLogger(__name__)


def find_label(labels: List[Dict[str, Any]], name_or_id: str) -> Optional[Dict[str, Any]]:
    """Match a label by exact ID first, then by case-insensitive name."""
    for label in labels:
        if label["id"] == name_or_id:
            return label
    lowered = name_or_id.lower()
    for label in labels:
        if label.get("name", "").lower() == lowered:
            return label
    return None


def get_or_create_label(mailbox: Any, label_name: str) -> Dict[str, Any]:
    """
    Get a label by name or ID, creating a user label if it doesn't exist.

    Args:
        mailbox: GmailMailbox whose service is used
        label_name: Name (or ID) of the label

    Returns:
        Label dict with at least 'id' and 'name'
    """
    label = find_label(mailbox.list_labels(), label_name)
    if label is not None:
        logger.debug(f"Label '{label_name}' exists with ID: {label['id']}")
        return label

    logger.debug(f"Creating label '{label_name}'")
    create_body = {
        'name': label_name,
        'labelListVisibility': 'labelShow',
        'messageListVisibility': 'show'
    }
    try:
        created = mailbox.service.users().labels().create(userId='me', body=create_body).execute()
    except HttpError as e:
        raise RemoteOperationError("create label", reason=str(e)) from e
    logger.debug(f"Created label '{label_name}' with ID: {created['id']}")
    return created
