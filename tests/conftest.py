"""
Global test fixtures for the agentlab project.

Every test runs with a private config directory and without any
``AGENTLAB_*`` variables from the developer's shell.
"""

import os

import pytest


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Point XDG_CONFIG_HOME at a temp dir and clear agentlab env vars."""
    for name in list(os.environ):
        if name.startswith("AGENTLAB_"):
            monkeypatch.delenv(name, raising=False)
    config_home = tmp_path / "config"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.setattr(
        "agentlab.cli.ssh.DEFAULT_IDENTITY_PATH", str(tmp_path / "no-such-key")
    )
    return config_home


@pytest.fixture
def client_config_file(isolated_environment):
    """Path of the client profile inside the isolated config dir."""
    return isolated_environment / "agentlab" / "client.json"
