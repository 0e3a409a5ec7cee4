"""Schedules for the MPLADS tracker."""

from dagster import DefaultScheduleStatus, ScheduleDefinition

from mplads.jobs import summary_rebuild_job

# Every day at 03:00 IST, after the nightly data sync
daily_summary_schedule = ScheduleDefinition(
    name="daily_summary_schedule",
    job=summary_rebuild_job,
    cron_schedule="0 3 * * *",
    execution_timezone="Asia/Kolkata",
    default_status=DefaultScheduleStatus.STOPPED,
)

__all__ = [
    "daily_summary_schedule",
]
