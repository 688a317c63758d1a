"""Gmail mailbox primitives.

Every method acts on a single message and raises RemoteOperationError when
the Gmail API rejects the call. The undo subsystem depends only on these
primitives, so tests substitute a fake with the same methods.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from googleapiclient.errors import HttpError

from ..exceptions import RemoteOperationError
from ..timing import time_api_call
from .service import get_gmail_service

logger = logging.getLogger(__name__)

INBOX = "INBOX"
UNREAD = "UNREAD"
TRASH = "TRASH"

METADATA_HEADERS = ["Subject", "From", "Date"]


def _http_reason(error: HttpError) -> str:
    status = getattr(error.resp, "status", "?")
    reason = error.reason if hasattr(error, "reason") else str(error)
    return f"HTTP {status}: {reason}"


def parse_message_metadata(message: Dict[str, Any]) -> Dict[str, Any]:
    """Flatten a Gmail message resource fetched with format='metadata'."""
    headers = {
        h["name"].lower(): h["value"]
        for h in message.get("payload", {}).get("headers", [])
    }
    return {
        "id": message["id"],
        "threadId": message.get("threadId"),
        "labelIds": list(message.get("labelIds", [])),
        "subject": headers.get("subject", "(no subject)"),
        "from": headers.get("from", ""),
        "date": headers.get("date", ""),
        "snippet": message.get("snippet", ""),
    }


class GmailMailbox:
    """Per-message Gmail operations used by mail actions and undo."""

    def __init__(self, service: Any = None, token_file: str = None, use_adc: bool = False):
        self._service = service
        self._token_file = token_file
        self._use_adc = use_adc

    @property
    def service(self) -> Any:
        if self._service is None:
            self._service = get_gmail_service(token_file=self._token_file, use_adc=self._use_adc)
        return self._service

    def _messages(self):
        return self.service.users().messages()

    def _modify(self, operation: str, message_id: str, add: List[str] = None, remove: List[str] = None):
        body = {"addLabelIds": add or [], "removeLabelIds": remove or []}
        try:
            self._messages().modify(userId="me", id=message_id, body=body).execute()
        except HttpError as e:
            raise RemoteOperationError(operation, message_id, _http_reason(e)) from e
        logger.debug(f"{operation}: modified {message_id} add={body['addLabelIds']} remove={body['removeLabelIds']}")

    @time_api_call
    def apply_label(self, message_id: str, label_id: str) -> None:
        self._modify("apply label", message_id, add=[label_id])

    @time_api_call
    def remove_label(self, message_id: str, label_id: str) -> None:
        self._modify("remove label", message_id, remove=[label_id])

    @time_api_call
    def archive(self, message_id: str) -> None:
        self._modify("archive", message_id, remove=[INBOX])

    @time_api_call
    def set_read_state(self, message_id: str, read: bool) -> None:
        if read:
            self._modify("mark read", message_id, remove=[UNREAD])
        else:
            self._modify("mark unread", message_id, add=[UNREAD])

    @time_api_call
    def trash(self, message_id: str) -> None:
        try:
            self._messages().trash(userId="me", id=message_id).execute()
        except HttpError as e:
            raise RemoteOperationError("trash", message_id, _http_reason(e)) from e
        logger.debug(f"Trashed message {message_id}")

    @time_api_call
    def untrash(self, message_id: str) -> None:
        try:
            self._messages().untrash(userId="me", id=message_id).execute()
        except HttpError as e:
            raise RemoteOperationError("untrash", message_id, _http_reason(e)) from e
        logger.debug(f"Restored message {message_id} from trash")

    @time_api_call
    def list_labels(self) -> List[Dict[str, Any]]:
        """
        List all Gmail labels.

        Returns:
            List of label dicts with 'id', 'name', 'type' fields
        """
        try:
            results = self.service.users().labels().list(userId="me").execute()
        except HttpError as e:
            raise RemoteOperationError("list labels", reason=_http_reason(e)) from e
        return results.get("labels", [])

    @time_api_call
    def get_message_metadata(self, message_id: str) -> Dict[str, Any]:
        """Fetch one message's headers and labels without its body."""
        try:
            message = self._messages().get(
                userId="me", id=message_id, format="metadata",
                metadataHeaders=METADATA_HEADERS,
            ).execute()
        except HttpError as e:
            raise RemoteOperationError("fetch metadata", message_id, _http_reason(e)) from e
        return parse_message_metadata(message)

    @time_api_call
    def search(
        self,
        query: Optional[str] = None,
        label_ids: Optional[List[str]] = None,
        max_results: int = 25,
    ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        """
        List messages matching a Gmail query and/or label filter.

        Returns:
            Tuple of (list of metadata dicts, next page token)
        """
        list_kwargs = {"userId": "me", "maxResults": max_results}
        if query:
            list_kwargs["q"] = query
        if label_ids:
            list_kwargs["labelIds"] = label_ids
        logger.debug(f"Listing messages with {list_kwargs}")
        try:
            results = self._messages().list(**list_kwargs).execute()
        except HttpError as e:
            raise RemoteOperationError("list messages", reason=_http_reason(e)) from e

        messages = []
        for ref in results.get("messages", []):
            messages.append(self.get_message_metadata(ref["id"]))
        return messages, results.get("nextPageToken")
