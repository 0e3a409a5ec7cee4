"""Dagster assets for the MPLADS tracker.

Aggregation:
- mp_summaries → summaries collection (mp_summary / state_summary per house/term)
"""

from mplads.assets.summaries import mp_summaries_asset

__all__ = [
    "mp_summaries_asset",
]
