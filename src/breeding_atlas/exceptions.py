"""
Custom exception hierarchy.

All exceptions are rooted at AtlasError so callers can catch broadly
(except AtlasError) or narrowly (except PartitionError).

Integrity errors are fatal for the species they concern: the pipeline
catches them per species, resets that species' records and reports an
IntegrityFault. Recoverable shape problems are never raised; they are
recorded as DataQualityWarning entries instead.
"""

from __future__ import annotations


class AtlasError(Exception):
    """Base exception for all application errors."""


class ConfigurationError(AtlasError):
    """Raised when required configuration is missing or invalid."""


class ReferenceDataError(AtlasError):
    """Raised when a reference table row is malformed or contradictory."""


class IntegrityError(AtlasError):
    """Raised when a record or species cannot be classified safely."""

    def __init__(self, message: str, species: str | None = None) -> None:
        super().__init__(message)
        self.species = species


class PartitionError(IntegrityError):
    """Raised when a species' season calendar does not partition days 1-366."""

    def __init__(self, message: str, species: str, intervals: dict[str, str]) -> None:
        super().__init__(f"{message} (species={species!r}, intervals={intervals})", species)
        self.intervals = intervals


class CodeAdjustmentMissingError(IntegrityError):
    """Raised when a code needing correction has no adjustment-map entry."""

    def __init__(self, species: str, code: str, variant: str) -> None:
        super().__init__(
            f"No {variant} adjustment for species={species!r} code={code!r}", species
        )
        self.code = code
        self.variant = variant


class StateTransitionError(IntegrityError):
    """Raised when a derived field would move backwards in its state machine."""
