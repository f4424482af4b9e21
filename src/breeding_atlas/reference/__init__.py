"""Breeding-code reference data.

Canonical code ordering (``codes``) and the frozen per-run lookup tables
(``tables``): expectation matrix, season anchors, location expectation,
known colonies and the two code-adjustment maps.

Adding a new table:
1. Add a row model to ``schemas.py`` and a path constant to ``tables.py``
2. Validate and store it in ``ReferenceTables.from_rows``
3. Re-export from this ``__init__.py``
"""

from breeding_atlas.reference.codes import FLYOVER_CODE as FLYOVER_CODE
from breeding_atlas.reference.codes import NO_CODE as NO_CODE
from breeding_atlas.reference.codes import CodeOrdering as CodeOrdering
from breeding_atlas.reference.tables import CalendarAnchors as CalendarAnchors
from breeding_atlas.reference.tables import CodeAdjustment as CodeAdjustment
from breeding_atlas.reference.tables import ReferenceTables as ReferenceTables
from breeding_atlas.reference.tables import load_reference_tables as load_reference_tables
