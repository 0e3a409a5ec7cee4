"""Dagster definitions for the MPLADS summaries pipeline.

Architecture:
- Assets: aggregation/ → mp_summaries (summaries collection)
- Jobs: summary_rebuild_job
- Resources: MongoDB for data storage
- Schedules: daily rebuild

Data Flow:
  allocations / expenditures / works_* / mps → SummaryComputer → summaries
"""

from dagster import Definitions

from mplads.assets import mp_summaries_asset
from mplads.jobs import summary_rebuild_job
from mplads.resources import mongo_resource
from mplads.schedules import daily_summary_schedule

# ============================================================================
# DEFINITIONS
# ============================================================================

defs = Definitions(
    assets=[
        mp_summaries_asset,
    ],
    jobs=[
        summary_rebuild_job,
    ],
    schedules=[
        daily_summary_schedule,
    ],
    resources={
        "mongo": mongo_resource,
    },
)
