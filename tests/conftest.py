"""
Shared test configuration.

Every test runs against an isolated config file so a developer's
~/.config/mailundo/config.yaml never leaks into assertions.
"""

import pytest


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point mailundo at an empty config file under tmp_path."""
    config_path = tmp_path / "config" / "config.yaml"
    monkeypatch.setenv("MAILUNDO_CONFIG_DIR", str(config_path.parent))
    monkeypatch.setenv("MAILUNDO_CONFIG_FILE", str(config_path))
    return config_path
