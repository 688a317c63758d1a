class MailUndoError(Exception):
    """Base class for all mailundo exceptions."""
    pass

class ValidationError(MailUndoError):
    """Raised when an action or its payload is malformed."""
    pass

class UnsupportedActionError(MailUndoError):
    """Raised when no compensation or cache rule exists for an action type."""
    pass

class RemoteOperationError(MailUndoError):
    """
    Raised when a Gmail API call for a single message fails.

    For a batch that only partly failed, ``succeeded_ids`` lists the messages
    whose remote change did go through.
    """

    def __init__(self, operation: str, message_id: str = None, reason: str = "", succeeded_ids=None):
        self.operation = operation
        self.message_id = message_id
        self.reason = reason
        self.succeeded_ids = list(succeeded_ids or [])
        if message_id:
            text = f"{operation} failed for message {message_id}: {reason}"
        else:
            text = f"{operation} failed: {reason}"
        super().__init__(text)
