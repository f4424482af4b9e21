"""Spatiotemporal confidence for classified observations.

``TierEvaluator.settle`` runs the whole stage for one batch of observations
(normally one species):

  1. assign each record its phase from the season calendar;
  2. decide whether the species is expected at the record's location
     (region expectation, or the block is a known or newly found colony);
  3. take the confidence from the first matching rule in ``TIER_RULES``;
  4. escalate uncertain records in species × block × year groups that
     already hold confident, expected evidence above the threshold code;
  5. discover new colonies and re-run steps 2-4 for their blocks.

Every pass only moves confidence forward (see ``CONFIDENCE_TRANSITIONS``).
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date

from breeding_atlas.analysis.models import ColonyDiscovery, DataQualityWarning
from breeding_atlas.analysis.season_calendar import SeasonCalendar
from breeding_atlas.analysis.tier_rules import FLANK, TIER_RULES, RuleContext, TierRule, first_match
from breeding_atlas.reference.tables import ReferenceTables
from breeding_atlas.schemas import CodeTier, ConfidenceTier, ExpectationTier, Observation, Phase

logger = logging.getLogger(__name__)

GroupKey = tuple[str, str, int]


def group_key(observation: Observation) -> GroupKey | None:
    """Species × block × year, or None if any part is missing."""
    if not (observation.species and observation.block and observation.observed_on):
        return None
    return (observation.species, observation.block, observation.observed_on.year)


class TierEvaluator:
    """Assigns ``phase``, ``expected_here`` and ``confidence_tier``."""

    def __init__(
        self,
        tables: ReferenceTables,
        calendar: SeasonCalendar,
        warnings: list[DataQualityWarning] | None = None,
        rules: Sequence[TierRule] = TIER_RULES,
    ) -> None:
        self.tables = tables
        self.calendar = calendar
        self.rules = rules
        self.warnings = warnings if warnings is not None else []
        self.discovered: dict[tuple[str, str], ColonyDiscovery] = {}

    # -------------------------------------------------------------------------
    # Per-record rules
    # -------------------------------------------------------------------------

    def is_colony(self, species: str, block: str) -> bool:
        return self.tables.is_colony(species, block) or (species, block) in self.discovered

    def is_expected_here(self, observation: Observation) -> bool:
        species = observation.species or ""
        return self.tables.expected_in_region(
            species, observation.region or ""
        ) or self.is_colony(species, observation.block or "")

    def evaluate(self, observation: Observation) -> ConfidenceTier | None:
        """Apply the rule table to one record.

        Records the code classifier could not grade are skipped. A record
        that already has a confidence tier can only be upgraded to confident.
        """
        if observation.expectation_tier is None or observation.resolved_code is None:
            return None

        species = observation.species or ""
        phase = observation.phase
        if phase is None:
            phase = self.calendar.classify(observation)
            if phase is None:
                self._warn(
                    "missing-calendar",
                    f"Breeding species {species!r} has no season calendar",
                    observation,
                )
                return None
            observation.set_phase(phase)

        observation.expected_here = self.is_expected_here(observation)
        ctx = RuleContext(
            species=species,
            code=observation.resolved_code,
            code_tier=self.tables.codes.tier(observation.resolved_code),
            phase=phase,
            expected_here=observation.expected_here,
        )
        rule = first_match(ctx, self.rules)
        if rule is None:
            self._warn(
                "unmatched-rule",
                f"No confidence rule for {species!r} code {ctx.code!r} in {phase} phase",
                observation,
            )
            return None

        if observation.confidence_tier is None:
            observation.advance_confidence(rule.result)
        elif rule.result is ConfidenceTier.CONFIDENT:
            observation.advance_confidence(ConfidenceTier.CONFIDENT)
        return observation.confidence_tier

    # -------------------------------------------------------------------------
    # Grouped passes
    # -------------------------------------------------------------------------

    def highest_confirmed_code(self, members: Iterable[Observation]) -> str:
        """Most severe resolved code among confident, expected members."""
        return self.tables.codes.highest(
            obs.resolved_code
            for obs in members
            if obs.resolved_code is not None
            and obs.confidence_tier is ConfidenceTier.CONFIDENT
            and obs.expectation_tier is ExpectationTier.EXPECTED
        )

    def _is_escalation_candidate(self, observation: Observation) -> bool:
        if observation.confidence_tier is not ConfidenceTier.UNCERTAIN:
            return False
        tier = self.tables.codes.tier(observation.resolved_code or "")
        if observation.phase is Phase.BREEDING:
            return tier is CodeTier.PROBABLE
        return observation.phase in FLANK and tier is CodeTier.CONFIRMED

    def escalate(self, observations: Iterable[Observation]) -> int:
        """Lift uncertain records backed by stronger evidence in their group.

        Returns:
            Number of records escalated to confident.
        """
        codes = self.tables.codes
        threshold = codes.severity(self.tables.escalation_threshold or "")
        groups: dict[GroupKey, list[Observation]] = defaultdict(list)
        for obs in observations:
            key = group_key(obs)
            if key is not None and obs.confidence_tier is not None:
                groups[key].append(obs)

        escalated = 0
        for key, members in groups.items():
            highest = self.highest_confirmed_code(members)
            if codes.severity(highest) <= threshold:
                continue
            for obs in members:
                if self._is_escalation_candidate(obs):
                    obs.advance_confidence(ConfidenceTier.CONFIDENT)
                    escalated += 1
                    logger.debug("Escalated %s in %s (group best %s)", obs.id, key, highest)
        return escalated

    def discover_colonies(self, observations: Iterable[Observation]) -> list[ColonyDiscovery]:
        """Mark blocks with confident confirmed breeding of a colonial species.

        The earliest qualifying record sets the discovery date; ties on date
        fall back to the identifier so the result does not depend on input
        order.
        """
        codes = self.tables.codes
        earliest: dict[tuple[str, str], Observation] = {}
        for obs in observations:
            if obs.confidence_tier is not ConfidenceTier.CONFIDENT or obs.observed_on is None:
                continue
            species, block = obs.species or "", obs.block or ""
            if not self.tables.is_colonial(species) or self.is_colony(species, block):
                continue
            if codes.tier(obs.resolved_code or "") is not CodeTier.CONFIRMED:
                continue
            best = earliest.get((species, block))
            if best is None or (obs.observed_on, obs.id or "") < (best.observed_on, best.id or ""):
                earliest[(species, block)] = obs

        found = []
        for (species, block), obs in sorted(earliest.items()):
            first = obs.observed_on or date.min
            discovery = ColonyDiscovery(species, block, first, obs.id)
            self.discovered[(species, block)] = discovery
            found.append(discovery)
            logger.info("New colony: %s at block %s from %s", species, block, first)
        return found

    def settle(self, observations: Sequence[Observation]) -> list[ColonyDiscovery]:
        """Run the whole confidence stage; returns colonies discovered."""
        for obs in observations:
            self.evaluate(obs)
        self.escalate(observations)

        discoveries = self.discover_colonies(observations)
        if discoveries:
            blocks = {(d.species, d.block) for d in discoveries}
            affected = [obs for obs in observations if (obs.species, obs.block) in blocks]
            for obs in affected:
                self.evaluate(obs)
            self.escalate(affected)
        return discoveries

    def _warn(self, kind: str, message: str, observation: Observation) -> None:
        logger.warning("%s (observation %s)", message, observation.id)
        self.warnings.append(
            DataQualityWarning(
                kind=kind,
                message=message,
                species=observation.species,
                observation_id=observation.id,
            )
        )
