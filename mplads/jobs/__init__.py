"""Export job definitions for the MPLADS tracker."""

from mplads.jobs.asset_jobs import summary_rebuild_job

__all__ = [
    "summary_rebuild_job",
]
