from __future__ import annotations

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ingestion.models.domain import AggregateResult
from ingestion.services.aggregator import AllSourcesFailedError, NewsAggregator, get_aggregator
from ingestion.services.security_log import SecurityAuditLog, SecurityEventType, get_security_log

from .models import SecurityEventOut

router = APIRouter(prefix="/api")

AggregatorDep = Annotated[NewsAggregator, Depends(get_aggregator)]
AuditDep = Annotated[SecurityAuditLog, Depends(get_security_log)]


@router.get(
    "/scan",
    response_model=AggregateResult,
    response_model_by_alias=True,
    responses={503: {"description": "Every source failed"}},
)
def scan_route(
    aggregator: AggregatorDep,
    use_ai: Annotated[bool, Query(description="Refine tiers with the batch AI classifier")] = False,
) -> AggregateResult:
    # sync handler: the scan blocks on its worker threads
    try:
        return aggregator.run_scan(use_ai=use_ai)
    except AllSourcesFailedError as exc:
        raise HTTPException(
            status_code=503,
            detail={
                "message": "Unable to fetch news from any source. Please try again later.",
                "failedSources": sorted(exc.failures),
            },
        ) from exc


@router.get("/security/events", response_model=list[SecurityEventOut], response_model_by_alias=True)
async def security_events_route(
    audit: AuditDep,
    type: Optional[SecurityEventType] = None,  # noqa: A002
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
) -> list[SecurityEventOut]:
    events = audit.events_by_type(type) if type else audit.events()
    return [
        SecurityEventOut(type=e.type, details=e.details, url=e.url, timestamp=e.timestamp)
        for e in events[:limit]
    ]
