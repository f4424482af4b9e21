"""Final code resolution and manual-review routing.

Runs after the confidence stage has settled. Each record either ends with
a resolved code, a reason and a breeding category, or is routed to the
review queue because its reporter left evidence a person should look at.
Applying the adjudicator twice leaves an already-adjudicated record
unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from breeding_atlas.analysis.models import ReviewItem
from breeding_atlas.reference.codes import (
    NO_CODE,
    REASON_INSUFFICIENT_EVIDENCE,
    REASON_NOT_LIKELY,
    REASON_TOO_EARLY,
    REASON_TOO_LATE,
)
from breeding_atlas.reference.tables import PLAUSIBLE, ReferenceTables
from breeding_atlas.schemas import ConfidenceTier, ExpectationTier, Observation, Phase

logger = logging.getLogger(__name__)

BEFORE_BREEDING = frozenset({Phase.EARLY, Phase.PRE})

REVIEW_PLAUSIBLE = "plausible-code"
REVIEW_UNCERTAIN = "uncertain-location"


def unlikely_reason(observation: Observation) -> str:
    """Why an unlikely record's code was withdrawn."""
    if not observation.expected_here:
        return REASON_NOT_LIKELY
    return REASON_TOO_EARLY if observation.phase in BEFORE_BREEDING else REASON_TOO_LATE


class Adjudicator:
    """Resolves codes, recomputes categories and builds the review queue."""

    def __init__(self, tables: ReferenceTables) -> None:
        self.tables = tables

    def adjudicate(self, observation: Observation) -> ReviewItem | None:
        """Resolve one record in place.

        Returns:
            A ReviewItem if the record needs a reviewer, else None.

        Raises:
            CodeAdjustmentMissingError: A plausible code without evidence has
                no correction in the plausible adjustment map.
            IntegrityError: The resolved code has no breeding category.
        """
        if observation.expectation_tier is not None and observation.confidence_tier is None:
            # Graded but never judged, e.g. no season calendar
            return None

        review_reason: str | None = None

        if observation.confidence_tier is ConfidenceTier.UNLIKELY:
            observation.resolved_code = NO_CODE
            observation.resolution_reason = unlikely_reason(observation)
            observation.advance_confidence(ConfidenceTier.CONFIDENT)

        if (
            observation.expectation_tier is ExpectationTier.PLAUSIBLE
            and observation.resolution_reason is None
        ):
            if observation.has_evidence:
                review_reason = REVIEW_PLAUSIBLE
            else:
                adjustment = self.tables.adjustment(
                    PLAUSIBLE, observation.species or "", observation.reported_code or NO_CODE
                )
                observation.resolved_code = adjustment.code
                observation.resolution_reason = adjustment.reason
                observation.advance_expectation(ExpectationTier.EXPECTED)

        if (
            observation.confidence_tier is ConfidenceTier.UNCERTAIN
            and observation.resolution_reason is None
        ):
            if observation.has_evidence:
                review_reason = review_reason or REVIEW_UNCERTAIN
            else:
                observation.resolved_code = NO_CODE
                observation.resolution_reason = REASON_INSUFFICIENT_EVIDENCE
                observation.advance_confidence(ConfidenceTier.CONFIDENT)

        if observation.resolved_code is not None:
            observation.breeding_category = self.tables.codes.category(observation.resolved_code)

        if review_reason is None:
            return None
        logger.debug("Routing %s to review (%s)", observation.id, review_reason)
        return review_item(observation, review_reason)

    def adjudicate_all(self, observations: Iterable[Observation]) -> list[ReviewItem]:
        """Adjudicate a batch; returns the review queue in input order."""
        queue = []
        for obs in observations:
            item = self.adjudicate(obs)
            if item is not None:
                queue.append(item)
        return queue


def review_item(observation: Observation, review_reason: str) -> ReviewItem:
    return ReviewItem(
        observation_id=observation.id,
        species=observation.species,
        reported_code=observation.reported_code,
        resolved_code=observation.resolved_code,
        observed_on=observation.observed_on,
        region=observation.region,
        block=observation.block,
        phase=observation.phase.value if observation.phase else None,
        expectation_tier=(
            observation.expectation_tier.value if observation.expectation_tier else None
        ),
        confidence_tier=observation.confidence_tier.value if observation.confidence_tier else None,
        expected_here=observation.expected_here,
        has_media=observation.has_media,
        has_comments=observation.has_comments,
        review_reason=review_reason,
    )
