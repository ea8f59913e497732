"""Tests for +modifier profile resolution."""

import pytest

from agentlab.cli.errors import CLIError, UsageError
from agentlab.cli.modifiers import (
    compose_profile,
    parse_modifiers,
    resolve_profile,
    valid_modifiers,
)

PROFILES = [
    {"name": "secure-small"},
    {"name": "gpu-large-ubuntu"},
    {"name": "ubuntu"},
]


class TestParseModifiers:
    def test_strips_plus(self) -> None:
        assert parse_modifiers(["+small", "+Secure"]) == ["small", "Secure"]

    def test_non_modifier_is_usage_error(self) -> None:
        with pytest.raises(UsageError, match='unexpected argument "small"'):
            parse_modifiers(["small"])

    def test_empty_modifier_is_validation_error(self) -> None:
        with pytest.raises(CLIError, match="is empty") as exc_info:
            parse_modifiers(["+"])
        assert not isinstance(exc_info.value, UsageError)


class TestResolveProfile:
    def test_composite_is_sorted_and_deduplicated(self) -> None:
        assert compose_profile("", ["small", "secure", "SMALL"]) == "secure-small"

    def test_base_profile_tokens_join_the_composite(self) -> None:
        assert resolve_profile("ubuntu", ["gpu", "large"], PROFILES) == "gpu-large-ubuntu"

    def test_modifiers_only(self) -> None:
        assert resolve_profile("", ["small", "secure"], PROFILES) == "secure-small"

    def test_unknown_modifier_suggests(self) -> None:
        with pytest.raises(CLIError) as exc_info:
            resolve_profile("", ["smal"], PROFILES)
        err = exc_info.value
        assert "unknown modifier(s) +smal" in err.message
        assert err.hints == ['did you mean "+small" instead of "+smal"?']
        assert err.next == "agentlab profile list"

    def test_no_matching_profile(self) -> None:
        with pytest.raises(CLIError, match='resolved to "gpu-small"'):
            resolve_profile("", ["gpu", "small"], PROFILES)

    def test_no_profiles_loaded(self) -> None:
        with pytest.raises(CLIError, match="no modifiers available"):
            resolve_profile("", ["gpu"], [])

    def test_valid_modifiers(self) -> None:
        assert valid_modifiers(PROFILES) == ["gpu", "large", "secure", "small", "ubuntu"]
