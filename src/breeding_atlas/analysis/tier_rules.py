"""Ordered confidence rule table.

Each rule is plain data: the phases, code tiers, codes and location
expectation it applies to, and the confidence it assigns. Rules are tried
in order and the first match wins; a field left as None matches anything.

Phase groups:
  - shoulder: early and late season, outside any recorded breeding
  - flank: pre- and post-breeding, between a recorded extreme and a safe date
  - core: the safe-date breeding window
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from breeding_atlas.reference.codes import FLYOVER_CODE, NO_CODE
from breeding_atlas.schemas import CodeTier, ConfidenceTier, Phase

SHOULDER = frozenset({Phase.EARLY, Phase.LATE})
FLANK = frozenset({Phase.PRE, Phase.POST})
CORE = frozenset({Phase.BREEDING})

POSSIBLE = frozenset({CodeTier.POSSIBLE})
PROBABLE = frozenset({CodeTier.PROBABLE})
CONFIRMED = frozenset({CodeTier.CONFIRMED})
POSSIBLE_OR_PROBABLE = POSSIBLE | PROBABLE
PROBABLE_OR_CONFIRMED = PROBABLE | CONFIRMED
POSSIBLE_OR_CONFIRMED = POSSIBLE | CONFIRMED

CONFIDENT = ConfidenceTier.CONFIDENT
UNCERTAIN = ConfidenceTier.UNCERTAIN
UNLIKELY = ConfidenceTier.UNLIKELY


@dataclass(frozen=True)
class RuleContext:
    """Facts about one observation that the rules are keyed on."""

    species: str
    code: str
    code_tier: CodeTier | None
    phase: Phase
    expected_here: bool


@dataclass(frozen=True)
class TierRule:
    """One row of the rule table."""

    name: str
    result: ConfidenceTier
    phases: frozenset[Phase] | None = None
    code_tiers: frozenset[CodeTier] | None = None
    expected_here: bool | None = None
    codes: frozenset[str] | None = None
    species: frozenset[str] | None = None

    def matches(self, ctx: RuleContext) -> bool:
        if self.phases is not None and ctx.phase not in self.phases:
            return False
        if self.codes is not None and ctx.code not in self.codes:
            return False
        if self.code_tiers is not None and ctx.code_tier not in self.code_tiers:
            return False
        if self.expected_here is not None and ctx.expected_here is not self.expected_here:
            return False
        return self.species is None or ctx.species in self.species


TIER_RULES: tuple[TierRule, ...] = (
    # A resolved no-code makes no breeding claim to doubt
    TierRule("no-code", CONFIDENT, codes=frozenset({NO_CODE})),
    # Vultures visit nest sites well before their safe dates
    TierRule(
        "black-vulture-early-nest-site",
        CONFIDENT,
        phases=frozenset({Phase.EARLY}),
        expected_here=True,
        species=frozenset({"Black Vulture"}),
        codes=frozenset({"N"}),
    ),
    TierRule(
        "turkey-vulture-early-nest-site",
        CONFIDENT,
        phases=frozenset({Phase.EARLY}),
        expected_here=True,
        species=frozenset({"Turkey Vulture"}),
        codes=frozenset({"N"}),
    ),
    # Early / late season
    TierRule("shoulder-confirmed-expected", CONFIDENT, SHOULDER, CONFIRMED, True),
    TierRule("shoulder-confirmed-unexpected", UNCERTAIN, SHOULDER, CONFIRMED, False),
    TierRule("shoulder-weak-code", UNLIKELY, SHOULDER, POSSIBLE_OR_PROBABLE),
    # Pre / post breeding
    TierRule("flank-strong-expected", CONFIDENT, FLANK, PROBABLE_OR_CONFIRMED, True),
    TierRule("flank-strong-unexpected", UNCERTAIN, FLANK, PROBABLE_OR_CONFIRMED, False),
    TierRule("flank-possible", UNLIKELY, FLANK, POSSIBLE),
    # Core breeding
    TierRule("core-expected", CONFIDENT, CORE, expected_here=True),
    TierRule(
        "core-unexpected-flyover", UNCERTAIN, CORE, expected_here=False, codes=frozenset({FLYOVER_CODE})
    ),
    TierRule("core-unexpected-possible-or-confirmed", CONFIDENT, CORE, POSSIBLE_OR_CONFIRMED, False),
    TierRule("core-unexpected-probable", UNCERTAIN, CORE, PROBABLE, False),
)


def first_match(ctx: RuleContext, rules: Sequence[TierRule] = TIER_RULES) -> TierRule | None:
    """Return the first rule matching ``ctx``, or None if nothing applies."""
    for rule in rules:
        if rule.matches(ctx):
            return rule
    return None
