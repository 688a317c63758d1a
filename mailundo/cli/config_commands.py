import click
import yaml

from mailundo.sdk import config

# Define the schema of allowed configuration keys and their allowed values
ALLOWED_CONFIG = {
    "auth.mode": {
        "type": str,
        "allowed_values": ["token", "adc"]
    },
    "auth.token_file": {
        "type": str,
    },
    "undo.enabled": {
        "type": bool,
    },
    "undo.key": {
        "type": str,
    },
    "session.max_results": {
        "type": int,
    },
}


def _convert(key: str, value: str):
    expected = ALLOWED_CONFIG[key]["type"]
    if expected is bool:
        if value.lower() not in ("true", "false"):
            raise click.UsageError(f"Key '{key}' expects true or false.")
        return value.lower() == "true"
    if expected is int:
        if not value.isdigit() or int(value) < 1:
            raise click.UsageError(f"Key '{key}' expects a positive integer.")
        return int(value)
    return value


@click.group()
def config_group():
    """Commands for managing mailundo configuration."""
    pass


@config_group.command('view')
def view_config():
    """Displays the current mailundo configuration."""
    config_data = config.load_config()
    click.echo(yaml.dump(config_data, default_flow_style=False))


@config_group.command('get')
@click.argument('key')
def get_config(key):
    """Prints one configuration value."""
    value = config.get_config_value(key)
    if value is None:
        click.echo(f"'{key}' is not set.")
        return
    click.echo(value)


@config_group.command('set')
@click.argument('key')
@click.argument('value')
def set_config(key, value):
    """
    Sets a configuration value for a supported key.

    \b
    Supported Keys:
      - auth.mode:           'token' or 'adc'
      - auth.token_file:     path to an authorized-user token
      - undo.enabled:        true/false, record actions for undo
      - undo.key:            session key that triggers undo
      - session.max_results: messages loaded per session

    \b
    Examples:
      mailundo config set auth.mode adc
      mailundo config set undo.key u
    """
    if key not in ALLOWED_CONFIG:
        raise click.UsageError(f"Configuration key '{key}' is not supported.")

    key_schema = ALLOWED_CONFIG[key]

    if "allowed_values" in key_schema and value not in key_schema["allowed_values"]:
        allowed = ", ".join(f"'{v}'" for v in key_schema["allowed_values"])
        raise click.UsageError(f"Invalid value '{value}' for key '{key}'. Allowed values are: {allowed}.")

    config.set_config_value(key, _convert(key, value))
    click.echo(f"Configuration updated: {key} = {config.get_config_value(key)}")
