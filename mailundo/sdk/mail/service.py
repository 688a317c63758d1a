"""Gmail service factory for mailundo."""

import logging
from typing import Any

from googleapiclient.discovery import build

from ..auth import get_credentials

logger = logging.getLogger(__name__)


def get_gmail_service(token_file: str = None, use_adc: bool = False) -> Any:
    """
    Get an authenticated Gmail API service object.

    Args:
        token_file: Optional authorized-user token file
        use_adc: Force use of Application Default Credentials

    Returns:
        Gmail API service object
    """
    creds, source = get_credentials(token_file=token_file, use_adc=use_adc)
    logger.debug(f"Building Gmail service using credentials from: {source}")
    return build("gmail", "v1", credentials=creds, cache_discovery=False)
