"""Breeding codes, their canonical severity order and resolution constants.

The default ordering follows the eBird breeding-code list, weakest evidence
first. Atlases that use a different list supply ``reference/code_ordering.json``
instead; everything downstream compares codes through ``CodeOrdering`` and
never by string or list position directly.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from breeding_atlas.exceptions import IntegrityError, ReferenceDataError
from breeding_atlas.schemas import CodeTier

# Sentinel for "no breeding evidence"; ranks below every real code.
NO_CODE = "NC"

# Flyover; the one possible-tier code that is not trusted in core breeding
# outside expected locations.
FLYOVER_CODE = "F"

DEFAULT_CODE_ORDER: tuple[tuple[str, CodeTier], ...] = (
    # Possible
    ("F", CodeTier.POSSIBLE),  # flyover
    ("H", CodeTier.POSSIBLE),  # in appropriate habitat
    ("S", CodeTier.POSSIBLE),  # singing male
    # Probable
    ("S7", CodeTier.PROBABLE),  # singing male present 7+ days
    ("M", CodeTier.PROBABLE),  # multiple (7+) singing males
    ("P", CodeTier.PROBABLE),  # pair in suitable habitat
    ("T", CodeTier.PROBABLE),  # territorial defense
    ("C", CodeTier.PROBABLE),  # courtship, display or copulation
    ("N", CodeTier.PROBABLE),  # visiting probable nest site
    ("A", CodeTier.PROBABLE),  # agitated behavior
    ("B", CodeTier.PROBABLE),  # wren/woodpecker nest building
    # Confirmed
    ("PE", CodeTier.CONFIRMED),  # physiological evidence
    ("CN", CodeTier.CONFIRMED),  # carrying nesting material
    ("NB", CodeTier.CONFIRMED),  # nest building
    ("DD", CodeTier.CONFIRMED),  # distraction display
    ("UN", CodeTier.CONFIRMED),  # used nest
    ("ON", CodeTier.CONFIRMED),  # occupied nest
    ("FL", CodeTier.CONFIRMED),  # recently fledged young
    ("CF", CodeTier.CONFIRMED),  # carrying food
    ("FY", CodeTier.CONFIRMED),  # feeding young
    ("FS", CodeTier.CONFIRMED),  # carrying fecal sac
    ("NE", CodeTier.CONFIRMED),  # nest with eggs
    ("NY", CodeTier.CONFIRMED),  # nest with young
)

# Breeding category per code tier; NO_CODE is C1.
NO_CODE_CATEGORY = "C1"
CATEGORY_BY_TIER: dict[CodeTier, str] = {
    CodeTier.POSSIBLE: "C2",
    CodeTier.PROBABLE: "C3",
    CodeTier.CONFIRMED: "C4",
}

# Resolution reasons written by the engine itself (adjustment maps bring
# their own reason strings).
REASON_TOO_EARLY = "too-early"
REASON_TOO_LATE = "too-late"
REASON_NOT_LIKELY = "not-likely"
REASON_INSUFFICIENT_EVIDENCE = "insufficient-evidence"


class CodeOrdering:
    """Total order over breeding codes, partitioned into severity tiers.

    ``NO_CODE`` has severity 0; real codes are numbered from 1 in the order
    given, so a higher severity always means stronger breeding evidence.
    """

    def __init__(self, entries: Sequence[tuple[str, CodeTier]]) -> None:
        self._severity: dict[str, int] = {NO_CODE: 0}
        self._tier: dict[str, CodeTier] = {}
        previous_tier: CodeTier | None = None
        tier_rank = list(CodeTier)
        for index, (code, tier) in enumerate(entries, start=1):
            if code in self._severity:
                msg = f"Duplicate breeding code in ordering: {code!r}"
                raise ReferenceDataError(msg)
            if previous_tier and tier_rank.index(tier) < tier_rank.index(previous_tier):
                msg = f"Code {code!r} ({tier}) listed after a {previous_tier} code"
                raise ReferenceDataError(msg)
            self._severity[code] = index
            self._tier[code] = tier
            previous_tier = tier
        if not self._tier:
            msg = "Code ordering is empty"
            raise ReferenceDataError(msg)

    @classmethod
    def default(cls) -> CodeOrdering:
        return cls(DEFAULT_CODE_ORDER)

    def __contains__(self, code: object) -> bool:
        return code in self._severity

    @property
    def codes(self) -> list[str]:
        """Real codes, weakest first (``NO_CODE`` excluded)."""
        return list(self._tier)

    def severity(self, code: str) -> int:
        try:
            return self._severity[code]
        except KeyError:
            msg = f"Unknown breeding code: {code!r}"
            raise IntegrityError(msg) from None

    def tier(self, code: str) -> CodeTier | None:
        """Severity tier of a code; None for ``NO_CODE``."""
        if code == NO_CODE:
            return None
        try:
            return self._tier[code]
        except KeyError:
            msg = f"Unknown breeding code: {code!r}"
            raise IntegrityError(msg) from None

    def highest(self, codes: Iterable[str]) -> str:
        """Most severe code in ``codes``; ``NO_CODE`` when empty."""
        return max(codes, key=self.severity, default=NO_CODE)

    def top_of_tier(self, tier: CodeTier) -> str:
        """Most severe code belonging to ``tier``."""
        members = [code for code, t in self._tier.items() if t is tier]
        if not members:
            msg = f"Code ordering has no {tier} codes"
            raise ReferenceDataError(msg)
        return members[-1]

    def category(self, code: str) -> str:
        """Breeding category (C1-C4) for a resolved code."""
        tier = self.tier(code)
        return NO_CODE_CATEGORY if tier is None else CATEGORY_BY_TIER[tier]
