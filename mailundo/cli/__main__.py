"""mailundo CLI - Gmail actions with single-level undo."""

import logging
import os
import sys

import click
from click_option_group import optgroup, MutuallyExclusiveOptionGroup
from dotenv import load_dotenv

from mailundo import __version__
from mailundo.sdk import auth as sdk_auth
from mailundo.sdk.config import get_config_value, set_config_value
from mailundo.sdk.mail import GmailMailbox

from .config_commands import config_group as config_module
from .session import Session


# Configure logging at the application level
if not logging.root.handlers:
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO),
                        format='%(asctime)s - %(levelname)s - %(message)s')
# Suppress noisy INFO logs from googleapiclient and google_auth_oauthlib
logging.getLogger('googleapiclient.discovery').setLevel(logging.WARNING)
logging.getLogger('googleapiclient.discovery_cache').setLevel(logging.WARNING)
logging.getLogger('google_auth_oauthlib.flow').setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


@click.group()
@click.version_option(__version__, prog_name="mailundo")
def mailundo():
    """mailundo CLI.

    Act on Gmail messages from the terminal and undo the last action.
    """
    pass


@click.command()
@optgroup.group('View', cls=MutuallyExclusiveOptionGroup)
@optgroup.option('--query', '-q', default=None, help='Show the result of a Gmail search instead of the inbox.')
@optgroup.option('--filter', '-f', 'local_filter', default=None,
                 help='Filter the loaded inbox locally by subject, sender or snippet.')
@optgroup.group('Credentials', cls=MutuallyExclusiveOptionGroup)
@optgroup.option('--token-file', type=click.Path(exists=True), default=None,
                 help='Authorized-user token file to use.')
@optgroup.option('--use-adc', is_flag=True, help='Use Application Default Credentials.')
@click.option('--max-results', type=int, default=None,
              help='Number of messages to load (default from session.max_results).')
def session(query, local_filter, token_file, use_adc, max_results):
    """Open an interactive session on the inbox or a search result.

    Inside the session, act on messages by list number and type 'undo'
    (or the configured undo key) to reverse the last action.
    """
    if max_results is None:
        max_results = int(get_config_value("session.max_results", 25))
    undo_key = str(get_config_value("undo.key", "U"))

    mailbox = GmailMailbox(token_file=token_file, use_adc=use_adc)
    try:
        Session(
            mailbox,
            query=query,
            local_filter=local_filter,
            max_results=max_results,
            undo_key=undo_key,
        ).run()
    except FileNotFoundError as e:
        click.secho(f"Error: {e}", fg="red")
        sys.exit(1)
    except Exception as e:
        logger.critical(f"Session ended with an error: {e}", exc_info=True)
        sys.exit(1)


@click.group()
def auth():
    """Manage Gmail credentials."""
    pass


@auth.command('login')
@click.option('--client-creds', type=click.Path(exists=True), required=True,
              help='Path to an OAuth client_secrets.json file.')
@click.option('--output', '-o', type=click.Path(), default=None,
              help='Where to save the token (default: config directory).')
def login(client_creds, output):
    """Authorize mailundo with the gmail.modify scope."""
    output_path = os.path.abspath(output or sdk_auth.get_default_token_path())
    if not sdk_auth.create_token(client_creds, output_path):
        logger.error("Failed to create token. Please check logs for details.")
        sys.exit(1)
    set_config_value("auth.mode", "token")
    set_config_value("auth.token_file", output_path)
    click.echo(f"\nToken saved to: {output_path}")


mailundo.add_command(session, name='session')
mailundo.add_command(auth, name='auth')
mailundo.add_command(config_module, name='config')


def main():
    """Entry point for the CLI."""
    load_dotenv()
    mailundo()


if __name__ == "__main__":
    main()
