"""Fuzzy character-name matching against available reference images."""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

from ..models import CharacterReference, ReferenceOrigin, reference_key

logger = logging.getLogger(__name__)

NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]")

# A match is accepted while distance / longest-name stays below this ratio.
MATCH_THRESHOLD = 0.5


def edit_distance(a: str, b: str) -> int:
    """Levenshtein distance between two strings.

    Uses a single DP row over the shorter string, so memory is
    O(min(len(a), len(b))).
    """
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, 1):
        current = [i]
        for j, char_b in enumerate(b, 1):
            substitution_cost = 0 if char_a == char_b else 1
            current.append(min(
                previous[j] + 1,                        # deletion
                current[j - 1] + 1,                     # insertion
                previous[j - 1] + substitution_cost,    # substitution
            ))
        previous = current
    return previous[-1]


def normalize_name(name: str) -> str:
    """Lowercase a name and strip everything but ASCII letters and digits."""
    return NON_ALPHANUMERIC.sub("", name.lower())


@dataclass(frozen=True)
class ReferenceMatch:
    """A character name resolved to a reference image."""

    query: str
    reference: CharacterReference
    distance: int

    def describe(self) -> str:
        return f"{self.reference.name} (Match for: {self.query}, dist: {self.distance})"


def resolve_reference(
    query: str,
    references: Iterable[CharacterReference],
) -> Optional[ReferenceMatch]:
    """Find the reference whose normalised key is closest to ``query``.

    Ties go to the first candidate in iteration order. The best candidate
    is accepted only if ``distance / max(len(query), len(candidate))`` is
    below MATCH_THRESHOLD.
    """
    normalized_query = normalize_name(query)
    candidates = list(references)
    if not normalized_query or not candidates:
        return None

    best: Optional[CharacterReference] = None
    best_key = ""
    min_distance: Optional[int] = None
    for candidate in candidates:
        normalized_key = normalize_name(candidate.key)
        distance = edit_distance(normalized_query, normalized_key)
        if min_distance is None or distance < min_distance:
            min_distance = distance
            best = candidate
            best_key = normalized_key

    ratio = min_distance / max(len(normalized_query), len(best_key))
    if ratio >= MATCH_THRESHOLD:
        logger.debug(f"No reference for '{query}' (closest: {best.name}, ratio {ratio:.2f})")
        return None
    return ReferenceMatch(query=query, reference=best, distance=min_distance)


class CharacterReferenceSet:
    """Name-keyed reference images for one run.

    Keys are lowercased and trimmed. Uploaded references always win: a
    generated portrait is only stored for a key that is still free.
    """

    def __init__(self, references: Iterable[CharacterReference] = ()) -> None:
        self._references: dict[str, CharacterReference] = {}
        for reference in references:
            self.add(reference)

    def add(self, reference: CharacterReference) -> bool:
        """Add a reference; returns False if a generated one lost to an existing key."""
        key = reference.key
        if reference.origin == ReferenceOrigin.GENERATED and key in self._references:
            logger.debug(f"Keeping existing reference for '{key}'")
            return False
        self._references[key] = reference
        return True

    def get(self, name: str) -> Optional[CharacterReference]:
        return self._references.get(reference_key(name))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and reference_key(name) in self._references

    def __iter__(self) -> Iterator[CharacterReference]:
        return iter(self._references.values())

    def __len__(self) -> int:
        return len(self._references)

    def names(self) -> list[str]:
        return [reference.name for reference in self._references.values()]

    def resolve(self, query: str) -> Optional[ReferenceMatch]:
        return resolve_reference(query, self._references.values())

    def resolve_all(self, names: Iterable[str]) -> list[ReferenceMatch]:
        """Resolve every name, attaching each reference at most once."""
        matches: list[ReferenceMatch] = []
        seen: set[str] = set()
        for name in names:
            match = self.resolve(name)
            if match and match.reference.key not in seen:
                seen.add(match.reference.key)
                matches.append(match)
        return matches
