"""MPLADS Tracker - MP Local Area Development Scheme fund utilization.

This package aggregates allocations, expenditures and development works of
Indian MPs into per-MP, per-state, per-constituency and overall summaries.

Architecture:
- models/       → pydantic records (MPIdentity, allocations, expenditures, works, summaries)
- data/         → RecordStore (MongoDB and in-memory)
- aggregation/  → TermHouseScope, EntityResolver, WorkReconciler, SummaryComputer
- cache.py      → AggregationCache
- api/          → QueryFacade (read surface for controllers)
- assets/, jobs/, schedules/, definitions.py → Dagster summaries rebuild
- cli/          → python -m mplads

Data Flow:
  record stores → EntityResolver / WorkReconciler → SummaryComputer → AggregationCache → QueryFacade
"""
