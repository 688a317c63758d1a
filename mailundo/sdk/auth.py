"""Authentication and credential management for mailundo.

Loads Google API credentials either from an authorized-user token file or
from Application Default Credentials, depending on flags and configuration.
"""

import os
import logging
from typing import Tuple, Any

from .config import get_config_value, get_config_dir

logger = logging.getLogger(__name__)

# gmail.modify covers labels, trash/untrash and read state
GMAIL_MODIFY_SCOPE = "https://www.googleapis.com/auth/gmail.modify"

SCOPES = [GMAIL_MODIFY_SCOPE]


def get_default_token_path() -> str:
    """Token file used when neither a flag nor the config names one."""
    return str(get_config_dir() / "user_token.json")


def get_credentials(
    token_file: str = None,
    use_adc: bool = False,
) -> Tuple[Any, str]:
    """
    Load credentials based on explicit flags or configuration.

    Args:
        token_file: Explicit authorized-user token file (overrides config)
        use_adc: Force use of Application Default Credentials

    Returns:
        Tuple of (credentials object, source description)

    Raises:
        FileNotFoundError: If the token file does not exist
    """
    import google.auth
    from google.oauth2.credentials import Credentials

    mode = get_config_value("auth.mode")

    if use_adc or (not token_file and mode == "adc"):
        creds, project = google.auth.default(scopes=SCOPES)
        source = "Application Default Credentials"
        if project:
            source += f" (project: {project})"
        return creds, source

    token_path = token_file or get_config_value("auth.token_file") or get_default_token_path()
    token_path = os.path.expanduser(token_path)
    if not os.path.exists(token_path):
        raise FileNotFoundError(
            f"Token file not found: {token_path}. Run 'mailundo auth login' first."
        )
    creds = Credentials.from_authorized_user_file(token_path, SCOPES)
    return creds, f"Token file: {token_path}"


def refresh_credentials(creds) -> bool:
    """
    Refresh credentials if needed.

    Returns:
        True if refresh succeeded or was not needed

    Raises:
        ValueError: If the credentials are expired and cannot be refreshed
    """
    from google.auth.transport.requests import Request

    if not creds.valid:
        if creds.refresh_token:
            creds.refresh(Request())
            return True
        else:
            raise ValueError("Credentials expired and no refresh token available")
    return True


def create_token(client_creds_path: str, output_path: str) -> bool:
    """
    Run the installed-app OAuth flow and save an authorized-user token.

    Args:
        client_creds_path: Path to the client_secrets.json (OAuth client credentials)
        output_path: Path where the token should be saved

    Returns:
        True if successful, False otherwise
    """
    from google_auth_oauthlib.flow import InstalledAppFlow

    if not os.path.exists(client_creds_path):
        logger.error(f"Client credentials file not found: {client_creds_path}")
        return False

    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    logger.info(f"Requesting OAuth token for scopes: {', '.join(SCOPES)}")
    try:
        flow = InstalledAppFlow.from_client_secrets_file(client_creds_path, SCOPES)
        creds = flow.run_local_server(port=0)
        with open(output_path, "w") as token_out:
            token_out.write(creds.to_json())
        logger.info(f"Token saved to {output_path}")
        return True
    except Exception as e:
        logger.error(f"Failed to complete OAuth flow: {e}")
        return False
