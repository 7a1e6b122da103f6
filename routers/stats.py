from fastapi import APIRouter, Request
from schemas.stats import HealthResponse, StatsResponse
from logging_config import get_logger

logger = get_logger(__name__)

stats_router = APIRouter(tags=["stats"])


@stats_router.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok")


@stats_router.get("/stats", response_model=StatsResponse)
async def get_stats(request: Request):
    """
    Matchmaking counters for this instance.

    Returns:
    - online_count: Connections open on this instance
    - waiting_count: Connections waiting for a partner
    - paired_count: Connections currently in a partnership
    - cluster_online_count: Connections open across all instances (presence mirror only)
    - pairs_formed: Partnerships formed since the counter was created (presence mirror only)
    """
    dispatcher = request.app.state.dispatcher
    stats = StatsResponse(
        online_count=len(dispatcher.registry),
        waiting_count=dispatcher.matchmaker.waiting_count,
        paired_count=dispatcher.matchmaker.paired_count,
    )
    if dispatcher.presence:
        stats.cluster_online_count = dispatcher.presence.get_online_count()
        stats.pairs_formed = dispatcher.presence.get_pairs_formed()
    logger.debug(f"Stats requested: {stats.online_count} online, {stats.waiting_count} waiting, {stats.paired_count} paired")
    return stats
