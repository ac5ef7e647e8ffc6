"""Event, contribution and pool API routes."""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from api.schemas import (
    AggregatedTrackResponse,
    ContributionCreate,
    ContributionResponse,
    EventCreate,
    EventResponse,
    LocationUpdate,
    ProcessingStatsResponse,
)
from api.services import EventRuntime, EventService
from ingest.guest_data import contribution_summary
from models import AggregatedTrack, Coordinates
from models.errors import EventNotFoundError
from scoring.weighting import event_phase

router = APIRouter(prefix="/events", tags=["events"])


def get_event_service(request: Request) -> EventService:
    return request.app.state.events


def get_event_runtime(
    event_id: str,
    service: EventService = Depends(get_event_service),
) -> EventRuntime:
    try:
        return service.get(event_id)
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


def event_response(runtime: EventRuntime) -> EventResponse:
    config = runtime.config
    return EventResponse(
        event_id=config.event_id,
        name=config.name,
        start_time=config.start_time,
        event_size=config.event_size,
        phase=event_phase(config.start_time, datetime.now(timezone.utc)),
        expected_guest_count=runtime.expected_guest_count,
        geofence_enabled=config.geofence_enabled,
        geofence_radius_m=config.geofence_radius_m,
        contributor_count=len(runtime.aggregation.registry),
    )


def pool_response(
    tracks: list[AggregatedTrack],
    service: EventService,
) -> list[AggregatedTrackResponse]:
    responses = []
    for track in tracks:
        response = AggregatedTrackResponse.model_validate(track)
        response.artwork_index = service.artwork_cache.index_for(track.track_id)
        responses.append(response)
    return responses


@router.post("", response_model=EventResponse, status_code=201)
async def create_event(
    event_data: EventCreate,
    service: EventService = Depends(get_event_service),
) -> EventResponse:
    """Create an event."""
    center = event_data.geofence_center
    runtime = service.create_event(
        event_id=event_data.event_id,
        name=event_data.name,
        start_time=event_data.start_time,
        expected_guest_count=event_data.expected_guest_count,
        geofence_enabled=event_data.geofence_enabled,
        geofence_center=center.to_coordinates() if center else None,
        geofence_radius_m=event_data.geofence_radius_m,
    )
    return event_response(runtime)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(runtime: EventRuntime = Depends(get_event_runtime)) -> EventResponse:
    """Get an event by ID."""
    return event_response(runtime)


@router.post("/{event_id}/contributions", response_model=ContributionResponse)
async def submit_contribution(
    contribution_data: ContributionCreate,
    runtime: EventRuntime = Depends(get_event_runtime),
    service: EventService = Depends(get_event_service),
) -> ContributionResponse:
    """Submit a guest's music data.

    Resubmitting identical data is acknowledged as ``unchanged`` and does
    not affect the pool.
    """
    coordinates = contribution_data.coordinates
    result = service.submit_contribution(
        runtime.event_id,
        contribution_data.music_data,
        user_id=contribution_data.user_id,
        arrival_time=contribution_data.arrival_time,
        coordinates=coordinates.to_coordinates() if coordinates else None,
    )
    if not result.validation.valid:
        raise HTTPException(status_code=422, detail=result.validation.errors)

    contribution = result.processed.contribution
    return ContributionResponse(
        user_id=contribution.user_id,
        outcome=result.outcome.value,
        fingerprint=contribution.fingerprint,
        stats=ProcessingStatsResponse.model_validate(result.processed.stats),
        summary=contribution_summary(contribution),
    )


@router.put("/{event_id}/guests/{user_id}/location", status_code=204)
async def update_location(
    user_id: str,
    location: LocationUpdate,
    runtime: EventRuntime = Depends(get_event_runtime),
) -> None:
    """Record a guest's latest location for presence detection."""
    updated = runtime.aggregation.update_location(
        user_id,
        Coordinates(lat=location.lat, lon=location.lon),
        location.updated_at,
    )
    if not updated:
        raise HTTPException(status_code=404, detail="Guest not found")


@router.get("/{event_id}/pool", response_model=list[AggregatedTrackResponse])
async def get_pool(
    limit: Optional[int] = Query(None, ge=1, le=500),
    runtime: EventRuntime = Depends(get_event_runtime),
    service: EventService = Depends(get_event_service),
) -> list[AggregatedTrackResponse]:
    """Get the aggregated pool ranked by total weighted PTS."""
    return pool_response(runtime.aggregation.pool(limit), service)
