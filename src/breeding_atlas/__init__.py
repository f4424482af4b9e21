"""Breeding Atlas - vetting of breeding codes on citizen-science bird records.

Architecture::

    reference/     Canonical code ordering and the frozen lookup tables
    analysis/      Season calendar, code classifier, tier evaluator, adjudicator
    store.py       JSON envelope store (reference → raw → derived)
    flows/         Prefect orchestration (load tables, adjudicate, save outputs)
    cli.py         Command-line entry point

Data flow: store (reference + raw) → analysis pipeline → store (derived)

Each observation passes through these stages, in order:
  1. CodeClassifier grades the reported code against the expectation matrix.
  2. TierEvaluator takes the phase from the SeasonCalendar (a per-species
     day-of-year partition), assigns spatiotemporal confidence, escalates
     uncertain records and discovers new colonies.
  3. Adjudicator finalises the code and category and splits off the
     manual-review queue.
"""

__version__ = "0.1.0"

from breeding_atlas.config import Settings
from breeding_atlas.schemas import Observation

__all__ = ["Observation", "Settings", "__version__"]
