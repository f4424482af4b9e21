"""Grade reported breeding codes against the species expectation matrix."""

from __future__ import annotations

import logging

from breeding_atlas.analysis.models import DataQualityWarning
from breeding_atlas.reference.codes import NO_CODE, REASON_NOT_LIKELY
from breeding_atlas.reference.tables import IMPROBABLE, ReferenceTables
from breeding_atlas.schemas import ExpectationTier, Observation

logger = logging.getLogger(__name__)


class CodeClassifier:
    """Assigns ``expectation_tier`` and a provisional ``resolved_code``.

    Improbable codes are corrected on the spot through the improbable
    adjustment map and promoted to expected. Plausible codes keep their
    reported code here; the Adjudicator settles them once evidence and
    confidence are known.
    """

    def __init__(
        self, tables: ReferenceTables, warnings: list[DataQualityWarning] | None = None
    ) -> None:
        self.tables = tables
        self.warnings = warnings if warnings is not None else []

    def classify(self, observation: Observation) -> ExpectationTier | None:
        """Classify one observation in place and return its expectation tier.

        Raises:
            CodeAdjustmentMissingError: An improbable code has no correction.
        """
        if observation.expectation_tier is not None:
            return observation.expectation_tier

        species = observation.species or ""
        code = observation.reported_code or NO_CODE

        if not self.tables.has_matrix(species):
            # Non-breeding species: the code carries no weight
            observation.resolved_code = NO_CODE
            observation.resolution_reason = REASON_NOT_LIKELY
            if self.tables.is_known_breeder(species):
                self._warn(
                    "missing-matrix",
                    f"Breeding species {species!r} has no expectation matrix entries",
                    observation,
                )
            return None

        if code == NO_CODE:
            observation.advance_expectation(ExpectationTier.EXPECTED)
            observation.resolved_code = NO_CODE
            return observation.expectation_tier

        tier = self.tables.expectation_for(species, code)
        if tier is None:
            self._warn(
                "unknown-code",
                f"Code {code!r} is not in the expectation matrix for {species!r}",
                observation,
            )
            return None

        if tier is ExpectationTier.IMPROBABLE:
            adjustment = self.tables.adjustment(IMPROBABLE, species, code)
            observation.advance_expectation(ExpectationTier.IMPROBABLE)
            observation.resolved_code = adjustment.code
            observation.resolution_reason = adjustment.reason
            observation.advance_expectation(ExpectationTier.EXPECTED)
            logger.debug(
                "Corrected improbable %s/%s on %s to %s (%s)",
                species,
                code,
                observation.id,
                adjustment.code,
                adjustment.reason,
            )
        else:
            observation.advance_expectation(tier)
            observation.resolved_code = code

        return observation.expectation_tier

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
