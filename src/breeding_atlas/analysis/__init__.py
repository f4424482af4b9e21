"""Classification and adjudication of breeding codes.

The domain logic layer: every module here is pure computation over
``schemas.Observation`` records and ``reference.ReferenceTables``. Nothing
in this package reads or writes files.

Modules, in pipeline order:
  - season_calendar: anchors -> five-phase day-of-year partition per species
  - code_classifier: reported code -> expected / plausible / improbable
  - tier_rules: ordered (predicate, confidence) rule table, as data
  - tier_evaluator: phase + location + colony -> confidence, escalation,
    colony discovery
  - adjudicator: final code, reason, category, manual-review queue
  - pipeline: runs the stages per species and isolates integrity faults

Adding a rule
-------------
Rules live in ``tier_rules.TIER_RULES`` and are matched first-wins, so put
narrow exceptions above the general rule they override, and add a test in
``tests/test_tier_rules.py``.
"""

from breeding_atlas.analysis.adjudicator import Adjudicator
from breeding_atlas.analysis.code_classifier import CodeClassifier
from breeding_atlas.analysis.models import (
    ColonyDiscovery,
    DataQualityWarning,
    IntegrityFault,
    PipelineResult,
    ReviewItem,
)
from breeding_atlas.analysis.pipeline import parse_observations, run_pipeline
from breeding_atlas.analysis.season_calendar import (
    SeasonCalendar,
    SpeciesCalendar,
    build_season_calendar,
    build_species_calendar,
    day_of_year,
)
from breeding_atlas.analysis.tier_evaluator import TierEvaluator
from breeding_atlas.analysis.tier_rules import TIER_RULES, RuleContext, TierRule, first_match

__all__ = [
    "TIER_RULES",
    "Adjudicator",
    "CodeClassifier",
    "ColonyDiscovery",
    "DataQualityWarning",
    "IntegrityFault",
    "PipelineResult",
    "ReviewItem",
    "RuleContext",
    "SeasonCalendar",
    "SpeciesCalendar",
    "TierEvaluator",
    "TierRule",
    "build_season_calendar",
    "build_species_calendar",
    "day_of_year",
    "first_match",
    "parse_observations",
    "run_pipeline",
]
