"""Fuzzy suggestions for unknown commands, profiles, modifiers and VMIDs."""

from dataclasses import dataclass
from typing import Any, Iterable, Optional

MAX_SUGGESTION_DISTANCE = 3


def levenshtein_distance(a: str, b: str, cutoff: Optional[int] = None) -> int:
    """Edit distance between ``a`` and ``b``.

    With ``cutoff`` the computation stops as soon as every cell of a row
    exceeds it and returns ``cutoff + 1``.
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    if cutoff is not None and abs(len(a) - len(b)) > cutoff:
        return cutoff + 1

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current[j] = min(
                previous[j] + 1,  # deletion
                current[j - 1] + 1,  # insertion
                previous[j - 1] + cost,  # substitution
            )
        if cutoff is not None and min(current) > cutoff:
            return cutoff + 1
        previous = current
    return previous[-1]


@dataclass(frozen=True)
class _Scored:
    value: str
    distance: int
    prefix: bool
    contains: bool

    def sort_key(self) -> tuple:
        return (not self.prefix, not self.contains, self.distance, self.value)


def rank_suggestions(needle: str, candidates: Iterable[str], limit: int) -> list[str]:
    """Rank ``candidates`` by similarity to ``needle``.

    Order: prefix match in either direction, then substring containment,
    then edit distance, then lexicographic. Candidates further than three
    edits away are dropped unless they match by prefix or containment.
    Comparison is case-insensitive; the first spelling of a candidate wins.
    """
    if limit <= 0:
        return []
    needle = (needle or "").strip().lower()
    if not needle:
        return []

    seen: set[str] = set()
    scored: list[_Scored] = []
    for candidate in candidates:
        value = (candidate or "").strip()
        if not value:
            continue
        lower = value.lower()
        if lower in seen:
            continue
        seen.add(lower)
        prefix = lower.startswith(needle) or needle.startswith(lower)
        contains = needle in lower
        distance = levenshtein_distance(needle, lower, cutoff=MAX_SUGGESTION_DISTANCE)
        if not prefix and not contains and distance > MAX_SUGGESTION_DISTANCE:
            continue
        scored.append(_Scored(value, distance, prefix, contains))

    scored.sort(key=_Scored.sort_key)
    return [item.value for item in scored[:limit]]


def best_suggestion(needle: str, candidates: Iterable[str]) -> str:
    matches = rank_suggestions(needle, candidates, 1)
    return matches[0] if matches else ""


def format_quoted_list(values: Iterable[str]) -> str:
    return ", ".join(f'"{v.strip()}"' for v in values if v and v.strip())


def nearest_vmids(target: int, sandboxes: Iterable[dict[str, Any]], limit: int) -> list[int]:
    """VMIDs closest to ``target`` by absolute difference, ties by VMID."""
    if limit <= 0 or target <= 0:
        return []
    vmids: set[int] = set()
    for sandbox in sandboxes:
        vmid = sandbox.get("vmid")
        if isinstance(vmid, int) and not isinstance(vmid, bool) and vmid > 0:
            vmids.add(vmid)
    ranked = sorted(vmids, key=lambda vmid: (abs(vmid - target), vmid))
    return ranked[:limit]


def format_vmid_list(vmids: Iterable[int]) -> str:
    return ", ".join(str(vmid) for vmid in vmids if vmid > 0)
