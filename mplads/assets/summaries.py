"""
MP Summaries Asset
Rebuilds the denormalized ``summaries`` collection, one house/term scope at a time.

Per scope (Lok Sabha 17, Lok Sabha 18, Rajya Sabha):
1. Compute every per-MP summary from allocations, expenditures and works
2. Roll them up into one summary per state
3. Replace the scope's documents: delete_many, then insert_many in batches

Single writer. Readers during a rebuild may briefly see an empty or partial
scope; the query side treats that as zero data, not an error.
"""

from typing import Any, Dict, List

from dagster import asset, AssetExecutionContext, Config, MetadataValue, Output

from mplads import config as settings
from mplads.aggregation.scope import Scope
from mplads.aggregation.summary import SummaryComputer
from mplads.data.store import SUMMARIES, MongoRecordStore
from mplads.models.records import LOK_SABHA, RAJYA_SABHA
from mplads.models.summary import SummaryLevel
from mplads.resources.mongo import MongoDBResource
from mplads.utils.memory import memory_pressure

SUMMARY_TYPES = [f"{SummaryLevel.MP.value}_summary", f"{SummaryLevel.STATE.value}_summary"]


class MPSummariesConfig(Config):
    """Configuration for the summaries rebuild"""
    ls_terms: list[str] = ["17", "18"]
    include_rajya_sabha: bool = True
    batch_size: int = 1000


def rebuild_scopes(ls_terms: List[str], include_rajya_sabha: bool = True) -> List[Scope]:
    """Single-term scopes, one per stored (house, lsTerm) pair."""
    scopes = [Scope(house=LOK_SABHA, selection=str(term)) for term in ls_terms]
    if include_rajya_sabha:
        scopes.append(Scope(house=RAJYA_SABHA, selection=settings.DEFAULT_LS_TERM))
    return scopes


def build_scope_documents(computer: SummaryComputer, scope: Scope) -> List[Dict[str, Any]]:
    """All mp_summary and state_summary documents for one single-term scope."""
    ls_term = scope.lok_sabha_terms[0] if scope.lok_sabha_terms else None

    mp_summaries = computer.compute_many(scope)
    documents = [summary.to_mongo_doc(ls_term=ls_term) for summary in mp_summaries]
    documents.extend(
        state_summary.to_mongo_doc(ls_term=ls_term)
        for state_summary in computer.state_breakdown(scope, mp_summaries)
    )
    return documents


@asset(
    name="mp_summaries",
    group_name="aggregation",
    compute_kind="aggregation",
    description="Per-MP and per-state fund utilization summaries, rebuilt per house/term scope"
)
def mp_summaries_asset(
    context: AssetExecutionContext,
    config: MPSummariesConfig,
    mongo: MongoDBResource,
) -> Output[Dict[str, Any]]:
    """
    Recompute summaries for every configured scope.
    Source: allocations, expenditures, works_completed, works_recommended, mps
    Target: summaries (type mp_summary / state_summary)
    """
    stats: Dict[str, Any] = {
        'scopes': 0,
        'mp_summaries': 0,
        'state_summaries': 0,
        'flagged_mps': 0,
        'by_scope': {},
    }

    with mongo.get_client() as client:
        db = mongo.get_database(client)
        store = MongoRecordStore(db, row_limit=settings.AGGREGATION_ROW_LIMIT)
        computer = SummaryComputer(store)
        summaries = db[SUMMARIES]

        for scope in rebuild_scopes(config.ls_terms, config.include_rajya_sabha):
            context.log.info(f"Computing summaries for {scope.label}")
            documents = build_scope_documents(computer, scope)

            deleted = summaries.delete_many({"type": {"$in": SUMMARY_TYPES}, **scope.to_mongo_filter()})
            context.log.info(f"  Cleared {deleted.deleted_count:,} existing summaries for {scope.label}")

            for start in range(0, len(documents), config.batch_size):
                summaries.insert_many(documents[start:start + config.batch_size])

            mp_docs = [d for d in documents if d["type"] == SUMMARY_TYPES[0]]
            stats['scopes'] += 1
            stats['mp_summaries'] += len(mp_docs)
            stats['state_summaries'] += len(documents) - len(mp_docs)
            stats['flagged_mps'] += sum(1 for d in mp_docs if d["dataQualityFlags"])
            stats['by_scope'][scope.label] = len(documents)
            context.log.info(f"  Inserted {len(documents):,} summaries for {scope.label}")

            under_pressure, _, reasoning = memory_pressure(settings.CACHE_MAX_MEMORY_MB, settings.CACHE_CLEANUP_THRESHOLD)
            if under_pressure:
                context.log.warning(f"  {reasoning}")

    context.log.info(f"✅ Rebuilt {stats['mp_summaries']:,} MP and {stats['state_summaries']:,} state summaries")
    if stats['flagged_mps']:
        context.log.warning(f"   {stats['flagged_mps']:,} MP summaries carry data quality flags")

    return Output(
        value=stats,
        metadata={
            "scopes": stats['scopes'],
            "mp_summaries": stats['mp_summaries'],
            "state_summaries": stats['state_summaries'],
            "flagged_mps": stats['flagged_mps'],
            "by_scope": MetadataValue.json(stats['by_scope']),
        }
    )
