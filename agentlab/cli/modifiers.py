"""Profile modifiers for ``sandbox new``.

A modifier is a ``+token`` positional. Tokens combine with the hyphen-split
parts of the base ``--profile`` into a composite profile name: lowercased,
deduplicated, sorted and joined with ``-``. ``+small +secure`` resolves to
``secure-small``.
"""

from typing import Any, Iterable, Optional

from agentlab.cli.errors import CLIError, UsageError
from agentlab.cli.suggestions import best_suggestion, rank_suggestions


def parse_modifiers(args: Iterable[str]) -> list[str]:
    """Strip the ``+`` prefix from modifier positionals.

    Raises:
        UsageError: an argument does not start with ``+``.
        CLIError: a modifier is empty.
    """
    modifiers: list[str] = []
    for arg in args:
        if not arg.startswith("+"):
            raise UsageError(
                f'unexpected argument "{arg}" (modifiers must come after flags and start with \'+\')'
            )
        modifier = arg[1:].strip()
        if not modifier:
            raise CLIError(f'modifier "{arg}" is empty')
        modifiers.append(modifier)
    return modifiers


def normalize_modifiers(modifiers: Iterable[str]) -> list[str]:
    return sorted({m.strip().lower() for m in modifiers if m and m.strip()})


def format_modifier_list(modifiers: Iterable[str]) -> str:
    prefixed = []
    for modifier in modifiers:
        value = modifier.strip()
        if not value:
            continue
        prefixed.append(value if value.startswith("+") else "+" + value)
    return ", ".join(prefixed)


def profile_names(profiles: Iterable[dict[str, Any]]) -> list[str]:
    return sorted(
        str(p.get("name", "")).strip() for p in profiles if str(p.get("name", "")).strip()
    )


def valid_modifiers(profiles: Iterable[dict[str, Any]]) -> list[str]:
    """Distinct hyphen-separated tokens across all profile names."""
    tokens: set[str] = set()
    for name in profile_names(profiles):
        tokens.update(part.strip().lower() for part in name.split("-") if part.strip())
    return sorted(tokens)


def lookup_profile_name(name: str, profiles: Iterable[dict[str, Any]]) -> Optional[str]:
    """Case-insensitive match returning the daemon's spelling."""
    needle = (name or "").strip().lower()
    if not needle:
        return None
    for candidate in profile_names(profiles):
        if candidate.lower() == needle:
            return candidate
    return None


def compose_profile(base_profile: str, modifiers: Iterable[str]) -> str:
    tokens = (base_profile or "").split("-")
    return "-".join(normalize_modifiers([*tokens, *modifiers]))


def resolve_profile(
    base_profile: str,
    modifiers: list[str],
    profiles: list[dict[str, Any]],
) -> str:
    """Resolve ``base_profile`` plus ``modifiers`` to an existing profile name.

    Raises:
        CLIError: unknown modifiers, or no profile matches the composite name.
    """
    normalized = normalize_modifiers(modifiers)
    valid = valid_modifiers(profiles)
    if not valid:
        raise CLIError(
            "no modifiers available (no profiles loaded)",
            next="agentlab profile list",
        )

    unknown = [m for m in normalized if m not in valid]
    if unknown:
        hints = []
        for modifier in unknown:
            suggestion = best_suggestion(modifier, valid)
            if suggestion:
                hints.append(f'did you mean "+{suggestion}" instead of "+{modifier}"?')
        raise CLIError(
            f"unknown modifier(s) {format_modifier_list(unknown)}. "
            f"Valid modifiers: {format_modifier_list(valid)}",
            next="agentlab profile list",
            hints=hints,
        )

    resolved = compose_profile(base_profile, normalized)
    actual = lookup_profile_name(resolved, profiles)
    if actual:
        return actual

    names = profile_names(profiles)
    described = format_modifier_list(resolved.split("-"))
    suggestions = rank_suggestions(resolved, names, 1)
    if suggestions:
        message = (
            f'no profile matches modifiers {described} (resolved to "{resolved}"). '
            f'Did you mean "{suggestions[0]}"?'
        )
    else:
        message = (
            f'no profile matches modifiers {described} (resolved to "{resolved}"). '
            f"Available profiles: {', '.join(names)}"
        )
    raise CLIError(message, next="agentlab profile list")
