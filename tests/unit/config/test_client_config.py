"""Tests for client profile persistence, normalization and precedence."""

import json
import os
import stat

import pytest

from agentlab.config import (
    DEFAULT_SOCKET_PATH,
    ClientConfig,
    ConfigError,
    TailscaleAdminConfig,
    client_config_path,
    effective_config,
    load_client_config,
    merge_tailscale_admin,
    normalize_endpoint,
    remove_client_config,
    validate_tailscale_admin,
    write_client_config,
)


def _mode(path) -> int:
    return stat.S_IMODE(os.stat(path).st_mode)


class TestPaths:
    def test_path_honors_xdg(self, isolated_environment) -> None:
        assert client_config_path() == isolated_environment / "agentlab" / "client.json"


class TestPersistence:
    def test_missing_file_is_empty(self) -> None:
        config, found = load_client_config()
        assert config == ClientConfig()
        assert found is False

    def test_round_trip(self) -> None:
        config = ClientConfig(
            endpoint="https://srv",
            token="tok",
            jump_host="jump.example",
            jump_user="ju",
            tailscale_admin=TailscaleAdminConfig(api_key="k", tailnet="example.com"),
        )
        path = write_client_config(config)
        loaded, found = load_client_config(path)
        assert found is True
        assert loaded == config

    def test_written_file_is_owner_only(self, client_config_file) -> None:
        path = write_client_config(ClientConfig(endpoint="https://srv", token="t"))
        assert path == client_config_file
        assert _mode(path) == 0o600
        assert _mode(path.parent) == 0o700
        assert path.read_text().endswith("\n")

    def test_empty_fields_are_not_written(self) -> None:
        path = write_client_config(ClientConfig(endpoint="https://srv"))
        assert json.loads(path.read_text()) == {"endpoint": "https://srv"}

    def test_load_trims_and_tightens_permissions(self, client_config_file) -> None:
        client_config_file.parent.mkdir(parents=True)
        client_config_file.write_text('{"endpoint": " https://srv ", "token": " t "}')
        os.chmod(client_config_file, 0o644)
        config, _ = load_client_config()
        assert config.endpoint == "https://srv"
        assert config.token == "t"
        assert _mode(client_config_file) == 0o600

    def test_invalid_json(self, client_config_file) -> None:
        client_config_file.parent.mkdir(parents=True)
        client_config_file.write_text("{not json")
        with pytest.raises(ConfigError, match="invalid client config"):
            load_client_config()

    def test_remove_is_idempotent(self) -> None:
        write_client_config(ClientConfig(endpoint="https://srv"))
        assert remove_client_config() is True
        assert remove_client_config() is False


class TestNormalizeEndpoint:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("", ""),
            ("host:8845", "http://host:8845"),
            ("HTTPS://host:8845/", "https://host:8845"),
            ("https://host", "https://host"),
        ],
    )
    def test_valid(self, raw: str, expected: str) -> None:
        assert normalize_endpoint(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        ["https://host", "http://10.0.0.1:8845", "agentlab.example.ts.net:8845"],
    )
    def test_idempotent(self, raw: str) -> None:
        once = normalize_endpoint(raw)
        assert normalize_endpoint(once) == once

    @pytest.mark.parametrize(
        "raw,message",
        [
            ("http://example.com/api", "endpoint must not include a path"),
            ("ftp://example.com", "endpoint scheme must be http or https"),
            ("http://", "endpoint must include host"),
            ("http://example.com?x=1", "endpoint must not include a query or fragment"),
        ],
    )
    def test_invalid(self, raw: str, message: str) -> None:
        with pytest.raises(ConfigError) as exc_info:
            normalize_endpoint(raw)
        assert exc_info.value.message == message

    def test_error_does_not_echo_input(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            normalize_endpoint("http://secret-token@example.com/secret-token")
        assert "secret-token" not in str(exc_info.value)


class TestTailscaleAdmin:
    def test_api_key_clears_oauth(self) -> None:
        config = TailscaleAdminConfig(api_key="k", oauth_client_id="id", oauth_scopes="a,b")
        assert config.oauth_client_id == ""
        assert config.oauth_scopes == []

    def test_scopes_split_on_commas_and_spaces(self) -> None:
        config = TailscaleAdminConfig(oauth_scopes="devices:core, auth_keys  devices:core")
        assert config.oauth_scopes == ["devices:core", "auth_keys"]

    def test_empty_block_is_dropped(self) -> None:
        config = ClientConfig(tailscale_admin=TailscaleAdminConfig(tailnet="  "))
        assert config.tailscale_admin is None

    def test_merge_override_api_key_replaces_oauth(self) -> None:
        base = TailscaleAdminConfig(
            tailnet="t", oauth_client_id="id", oauth_client_secret="s"
        )
        merged = merge_tailscale_admin(base, TailscaleAdminConfig(api_key="k"))
        assert merged == TailscaleAdminConfig(tailnet="t", api_key="k")

    def test_merge_keeps_base_fields(self) -> None:
        base = TailscaleAdminConfig(tailnet="t", oauth_client_id="id", oauth_client_secret="s")
        merged = merge_tailscale_admin(base, TailscaleAdminConfig(oauth_client_secret="new"))
        assert merged.oauth_client_id == "id"
        assert merged.oauth_client_secret == "new"
        assert merged.tailnet == "t"

    def test_merge_of_nothing(self) -> None:
        assert merge_tailscale_admin(None, None) is None

    def test_validate(self) -> None:
        validate_tailscale_admin(None)
        validate_tailscale_admin(TailscaleAdminConfig(api_key="k"))
        validate_tailscale_admin(
            TailscaleAdminConfig(oauth_client_id="id", oauth_client_secret="s")
        )
        with pytest.raises(ConfigError, match="client secret is required"):
            validate_tailscale_admin(TailscaleAdminConfig(oauth_client_id="id"))
        with pytest.raises(ConfigError, match="credentials are required"):
            validate_tailscale_admin(TailscaleAdminConfig(tailnet="t"))


class TestEffectiveConfig:
    def test_defaults(self) -> None:
        config = effective_config()
        assert config.socket_path == DEFAULT_SOCKET_PATH
        assert config.endpoint == ""
        assert config.ssh_identity == ""

    def test_flag_beats_env_beats_profile(self, monkeypatch) -> None:
        write_client_config(
            ClientConfig(endpoint="https://profile", token="p", jump_host="pj", jump_user="pu")
        )
        monkeypatch.setenv("AGENTLAB_ENDPOINT", "https://env")
        monkeypatch.setenv("AGENTLAB_JUMP_HOST", "ej")

        config = effective_config(endpoint="https://flag")
        assert config.endpoint == "https://flag"
        assert config.token == "p"
        assert config.jump_host == "ej"
        assert config.jump_user == "pu"

        config = effective_config()
        assert config.endpoint == "https://env"

    def test_blank_flag_falls_through(self, monkeypatch) -> None:
        monkeypatch.setenv("AGENTLAB_TOKEN", " env-token ")
        config = effective_config(token="   ")
        assert config.token == "env-token"

    def test_socket_env(self, monkeypatch) -> None:
        monkeypatch.setenv("AGENTLAB_SOCKET", "/tmp/other.sock")
        assert effective_config().socket_path == "/tmp/other.sock"
        assert effective_config(socket_path="/tmp/flag.sock").socket_path == "/tmp/flag.sock"

    def test_bad_endpoint_names_its_source(self, monkeypatch) -> None:
        monkeypatch.setenv("AGENTLAB_ENDPOINT", "http://host/path")
        with pytest.raises(ConfigError) as exc_info:
            effective_config()
        assert "endpoint comes from AGENTLAB_ENDPOINT" in exc_info.value.hints

    def test_ssh_identity_from_env(self, monkeypatch) -> None:
        monkeypatch.setenv("AGENTLAB_SSH_IDENTITY", " /keys/id ")
        assert effective_config().ssh_identity == "/keys/id"
