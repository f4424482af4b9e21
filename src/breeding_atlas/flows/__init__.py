"""Prefect flows.

- adjudicate: load reference tables and raw observations from the store,
  run the pipeline, save derived outputs

Run the flow directly with ``python -m breeding_atlas.flows.adjudicate`` or
through the CLI with ``breeding-atlas run``.
"""

from breeding_atlas.flows.adjudicate import adjudicate_flow

__all__ = ["adjudicate_flow"]
