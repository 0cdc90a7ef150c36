"""FastAPI router for chargehook API endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from chargehook import __version__
from chargehook.exceptions import ChargehookError
from chargehook.models import DeliveryAttempt, isoformat_z
from chargehook.service import DeliveryService

from .schemas import (
    DeliveryLogListResponse,
    DeliveryLogResponse,
    DeliveryTestResponse,
    FanOutResponse,
    HealthResponse,
    TriggerEventRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Service instance (set by app lifespan)
_service: DeliveryService | None = None


def set_service(service: DeliveryService | None) -> None:
    """Set the global service instance."""
    global _service
    _service = service


async def get_service() -> DeliveryService:
    """Dependency to get the DeliveryService instance."""
    if _service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return _service


ServiceDep = Annotated[DeliveryService, Depends(get_service)]
TenantHeader = Annotated[str | None, Header(alias="X-Tenant-Id")]


def _log_response(record: DeliveryAttempt) -> DeliveryLogResponse:
    return DeliveryLogResponse(
        id=record.id,
        chain_id=record.chain_id,
        event_id=record.event_id,
        event_type=record.event_type,
        attempt_number=record.attempt_number,
        status_code=record.status_code,
        success=record.success,
        body=record.body,
        response_body=record.response_body,
        error=record.error,
        duration_ms=record.duration_ms,
        created_at=isoformat_z(record.created_at),
    )


@router.get("/health", response_model=HealthResponse, tags=["system"])
async def health_check() -> HealthResponse:
    """Check service health.

    Reports whether the delivery service is running and how many
    delivery chains are waiting for a retry.
    """
    if _service is None:
        return HealthResponse(
            status="unhealthy",
            version=__version__,
            storage_connected=False,
        )
    return HealthResponse(
        status="healthy",
        version=__version__,
        storage_connected=True,
        pending_retries=len(_service.scheduler.pending_chains),
    )


@router.post(
    "/events",
    response_model=FanOutResponse,
    status_code=status.HTTP_202_ACCEPTED,
    tags=["delivery"],
)
async def trigger_event(
    request: TriggerEventRequest,
    service: ServiceDep,
    tenant_id: TenantHeader = None,
) -> FanOutResponse:
    """Fan an event out to every eligible subscriber.

    Responds once every first attempt has settled. Failed deliveries
    keep retrying in the background after the response is sent.

    Args:
        request: Event type and payload.
        service: Injected DeliveryService.
        tenant_id: Optional tenant scope from the X-Tenant-Id header.

    Returns:
        First-attempt counts of the fan-out.
    """
    try:
        summary = await service.trigger(request.event_type, request.data, tenant_id=tenant_id)
    except ChargehookError:
        raise
    except Exception as e:
        logger.exception("Failed to trigger event %s", request.event_type)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal error occurred while triggering the event",
        ) from e

    return FanOutResponse(
        event_type=request.event_type,
        dispatched=summary.dispatched,
        first_attempt_succeeded=summary.first_attempt_succeeded,
        first_attempt_failed=summary.first_attempt_failed,
    )


@router.post(
    "/subscribers/{subscriber_id}/test",
    response_model=DeliveryTestResponse,
    tags=["delivery"],
)
async def test_subscriber(
    subscriber_id: str,
    service: ServiceDep,
    tenant_id: TenantHeader = None,
) -> DeliveryTestResponse:
    """Send the test event to one subscriber.

    The subscriber's status and event subscriptions are ignored. The
    attempt appears in the delivery log like any other.
    """
    outcome = await service.test_delivery(subscriber_id, tenant_id=tenant_id)
    return DeliveryTestResponse(
        subscriber_id=outcome.subscriber_id,
        chain_id=outcome.chain_id,
        success=outcome.succeeded,
        status_code=outcome.status_code,
        duration_ms=outcome.duration_ms,
        error=outcome.error,
    )


@router.get(
    "/subscribers/{subscriber_id}/logs",
    response_model=DeliveryLogListResponse,
    tags=["delivery"],
)
async def get_delivery_logs(
    subscriber_id: str,
    service: ServiceDep,
    limit: Annotated[int | None, Query(ge=1)] = None,
    tenant_id: TenantHeader = None,
) -> DeliveryLogListResponse:
    """Get a subscriber's newest delivery records.

    Args:
        subscriber_id: Subscriber to query.
        service: Injected DeliveryService.
        limit: Maximum records (capped by configuration).
        tenant_id: Optional tenant scope from the X-Tenant-Id header.

    Returns:
        Records, newest first.
    """
    records = await service.get_logs(subscriber_id, limit=limit, tenant_id=tenant_id)
    responses = [_log_response(record) for record in records]
    return DeliveryLogListResponse(
        subscriber_id=subscriber_id,
        records=responses,
        count=len(responses),
    )
