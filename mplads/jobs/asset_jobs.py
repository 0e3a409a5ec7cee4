"""Asset materialization jobs for the MPLADS tracker.

Available Job:
- summary_rebuild_job: recompute the summaries collection for every house/term scope

The asset can also be materialized directly in the UI.
"""

from dagster import define_asset_job, AssetSelection

# ============================================================================
# SUMMARY REBUILD JOB
# ============================================================================

summary_rebuild_job = define_asset_job(
    name="summary_rebuild_job",
    description="Rebuild per-MP and per-state summaries (Lok Sabha 17, Lok Sabha 18, Rajya Sabha)",
    selection=AssetSelection.keys("mp_summaries"),
    tags={
        "pipeline": "mplads-summaries",
        "schedule": "daily",
    },
)
