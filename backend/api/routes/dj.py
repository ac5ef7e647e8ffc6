"""DJ dashboard API routes."""

from dataclasses import replace
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.routes.events import get_event_runtime, get_event_service, pool_response
from api.schemas import (
    AggregatedTrackResponse,
    CueRequest,
    DJStateResponse,
    QueueAddRequest,
    QueueReorderRequest,
)
from api.services import EventRuntime, EventService
from dj.serialization import DashboardState
from dj.workflow import elapsed_label, format_play_history
from models import DJDashboardState
from recommend.filters import (
    DEFAULT_FILTERS,
    QUICK_PRESETS,
    RepetitionVelocity,
    SmartFiltersConfig,
    era_range,
)
from recommend.ranking import DJ_PRESETS, RankingMode

router = APIRouter(prefix="/events/{event_id}/dj", tags=["dj"])


def state_response(state: DJDashboardState) -> DJStateResponse:
    base = DashboardState.model_validate(state)
    return DJStateResponse(
        **base.model_dump(),
        elapsed=elapsed_label(state.now_playing),
        history=format_play_history(state.play_history),
    )


@router.get("", response_model=DJStateResponse)
async def get_dj_state(runtime: EventRuntime = Depends(get_event_runtime)) -> DJStateResponse:
    """Get now playing, queue and play history."""
    return state_response(runtime.dj.state)


@router.post("/cue", response_model=DJStateResponse)
async def cue_track(
    cue: CueRequest,
    runtime: EventRuntime = Depends(get_event_runtime),
) -> DJStateResponse:
    """Tap-to-cue a track; a rank marks it as a pool pick."""
    runtime.dj.set_pool(runtime.aggregation.pool())
    return state_response(runtime.dj.tap_to_cue(cue.track.to_track(), cue.rank))


@router.post("/queue", response_model=DJStateResponse)
async def add_to_queue(
    request: QueueAddRequest,
    runtime: EventRuntime = Depends(get_event_runtime),
) -> DJStateResponse:
    """Add a track to the queue, appending when no position is given."""
    state = runtime.dj.add_to_queue(request.track.to_track(), request.position, request.source)
    return state_response(state)


@router.delete("/queue/{track_id}", response_model=DJStateResponse)
async def remove_from_queue(
    track_id: str,
    runtime: EventRuntime = Depends(get_event_runtime),
) -> DJStateResponse:
    return state_response(runtime.dj.remove_from_queue(track_id))


@router.patch("/queue/{track_id}", response_model=DJStateResponse)
async def reorder_queue(
    track_id: str,
    request: QueueReorderRequest,
    runtime: EventRuntime = Depends(get_event_runtime),
) -> DJStateResponse:
    return state_response(runtime.dj.reorder_queue(track_id, request.position))


def get_smart_filters(
    filter_preset: Optional[str] = Query(None),
    no_explicit: Optional[bool] = Query(None),
    repetition_velocity: Optional[RepetitionVelocity] = Query(None),
    era_bias: Optional[str] = Query(None),
    energy_min: Optional[float] = Query(None, ge=0, le=1),
    energy_max: Optional[float] = Query(None, ge=0, le=1),
    danceability_min: Optional[float] = Query(None, ge=0, le=1),
    valence_min: Optional[float] = Query(None, ge=0, le=1),
    valence_max: Optional[float] = Query(None, ge=0, le=1),
    vocal_emphasis: Optional[bool] = Query(None),
) -> SmartFiltersConfig:
    """Build smart filters from a quick preset plus explicit overrides."""
    if filter_preset is not None and filter_preset not in QUICK_PRESETS:
        raise HTTPException(status_code=422, detail=f"Unknown filter preset: {filter_preset}")
    if era_bias is not None:
        try:
            era_range(era_bias)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))

    base = QUICK_PRESETS[filter_preset] if filter_preset else DEFAULT_FILTERS
    overrides = {
        "no_explicit": no_explicit,
        "repetition_velocity": repetition_velocity,
        "era_bias": era_bias,
        "energy_min": energy_min,
        "energy_max": energy_max,
        "danceability_min": danceability_min,
        "valence_min": valence_min,
        "valence_max": valence_max,
        "vocal_emphasis": vocal_emphasis,
    }
    return replace(base, **{name: value for name, value in overrides.items() if value is not None})


@router.get("/recommendations", response_model=list[AggregatedTrackResponse])
async def get_recommendations(
    mode: RankingMode = Query(RankingMode.HITFINDER),
    preset: str = Query("balanced"),
    limit: Optional[int] = Query(20, ge=1, le=200),
    filters: SmartFiltersConfig = Depends(get_smart_filters),
    runtime: EventRuntime = Depends(get_event_runtime),
    service: EventService = Depends(get_event_service),
) -> list[AggregatedTrackResponse]:
    """Get the pool rescored against now playing, repeats suppressed and smart filters applied."""
    if preset not in DJ_PRESETS:
        raise HTTPException(status_code=422, detail=f"Unknown preset: {preset}")
    tracks = service.recommendations(
        runtime.event_id, mode=mode, preset=preset, limit=limit, filters=filters
    )
    return pool_response(tracks, service)
