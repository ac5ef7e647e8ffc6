"""Guest music data ingestion.

Turns a guest's raw provider payload (profile, top tracks per timeframe,
saved tracks, followed artists) into a scored GuestContribution.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from ingest.vibe_gate import GateStats, PassThroughGate, TracksPerPersonFn, VibeGate, tracks_per_person
from models.contribution import GuestContribution, WeightedTrackEntry
from models.event import Coordinates, EventConfig, PresenceStatus, arrival_cohort
from models.track import AudioFeatures, Timeframe, TrackMetadata
from scoring.primitives import DEFAULT_RANK_DECAY_CONSTANT
from scoring.pts import calculate_batch_pts

logger = logging.getLogger(__name__)

SHORT_TERM_LIMIT = 50
MAX_TRACKS = 100


# Provider payload schemas
class ProviderSchema(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ProviderArtist(ProviderSchema):
    id: Optional[str] = None
    name: Optional[str] = None
    genres: list[str] = Field(default_factory=list)


class ProviderAlbum(ProviderSchema):
    name: Optional[str] = None
    release_date: Optional[str] = None


class ProviderTrack(ProviderSchema):
    id: Optional[str] = None
    name: str = "Unknown"
    artists: list[ProviderArtist] = Field(default_factory=list)
    album: Optional[ProviderAlbum] = None
    genres: list[str] = Field(default_factory=list)
    explicit: bool = False
    popularity: Optional[int] = None
    release_date: Optional[str] = None
    audio_features: Optional[dict[str, Any]] = Field(
        default=None,
        validation_alias=AliasChoices("audio_features", "audioFeatures"),
    )


class ProviderProfile(ProviderSchema):
    id: str
    display_name: Optional[str] = None


class TopTracks(ProviderSchema):
    short_term: list[ProviderTrack] = Field(default_factory=list)
    medium_term: list[ProviderTrack] = Field(default_factory=list)
    long_term: list[ProviderTrack] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.short_term) + len(self.medium_term) + len(self.long_term)


class GuestMusicData(ProviderSchema):
    """Raw music data for one guest as delivered by the provider integration."""

    profile: Optional[ProviderProfile] = None
    top_tracks: Optional[TopTracks] = None
    saved_tracks: Optional[list[ProviderTrack]] = None
    followed_artists: Optional[list[ProviderArtist]] = None


GuestPayload = Union[GuestMusicData, dict]


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class GuestProcessingOptions:
    """Per-submission options for :func:`process_guest_data`."""

    user_id: Optional[str] = None
    guest_count: int = 25
    vibe_profile: Optional[Any] = None
    vibe_gate: Optional[VibeGate] = None
    vibe_gate_enabled: bool = False
    tracks_per_person: TracksPerPersonFn = tracks_per_person
    arrival_time: Optional[datetime] = None
    coordinates: Optional[Coordinates] = None
    decay_constant: float = DEFAULT_RANK_DECAY_CONSTANT
    event: Optional[EventConfig] = None


@dataclass(frozen=True)
class ProcessingStats:
    total_tracks: int
    contribution_size: int
    vibe_gate_passed: int
    vibe_gate_pass_rate: float
    average_pts: float
    top_pts: float


@dataclass(frozen=True)
class ProcessedGuest:
    contribution: GuestContribution
    stats: ProcessingStats


def _parse(payload: GuestPayload) -> GuestMusicData:
    if isinstance(payload, GuestMusicData):
        return payload
    return GuestMusicData.model_validate(payload)


def validate_guest_data(payload: Optional[GuestPayload]) -> ValidationResult:
    """Check a guest payload before processing.

    Problems are reported in the result rather than raised. Missing saved
    track data is tolerated; the saved bonus simply never applies.
    """
    if payload is None:
        return ValidationResult(valid=False, errors=["No music data provided"])

    try:
        data = _parse(payload)
    except ValidationError as e:
        return ValidationResult(
            valid=False,
            errors=[f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()],
        )

    errors = []
    if data.profile is None:
        errors.append("Missing user profile")

    if data.top_tracks is None:
        errors.append("Missing top tracks data")
    elif data.top_tracks.total == 0:
        errors.append("No top tracks found - user may need to listen to more music")

    if data.saved_tracks is None:
        logger.warning("No saved tracks data - saved bonus will not apply")

    return ValidationResult(valid=not errors, errors=errors)


def _collect_genres(track: ProviderTrack) -> tuple[str, ...]:
    genres = list(track.genres)
    for artist in track.artists:
        genres.extend(g for g in artist.genres if g)
    return tuple(dict.fromkeys(genres))


def normalize_guest_data(payload: GuestPayload, user_id: Optional[str] = None) -> list[TrackMetadata]:
    """Flatten the three timeframe lists into one ranked track list.

    Short-term tracks come first (at most 50), then medium-term and
    long-term tracks fill the list up to 100. Duplicates keep their first,
    most recent timeframe; ranks are assigned sequentially.
    """
    data = _parse(payload)
    user_id = user_id or (data.profile.id if data.profile else "anonymous")
    saved_ids = {t.id for t in data.saved_tracks or [] if t.id}
    followed_ids = {a.id for a in data.followed_artists or [] if a.id}
    top = data.top_tracks or TopTracks()

    tracks: list[TrackMetadata] = []
    seen: set[str] = set()

    def add(track: ProviderTrack, timeframe: Timeframe) -> None:
        if not track.id or track.id in seen:
            return
        album = track.album
        tracks.append(
            TrackMetadata(
                id=track.id,
                name=track.name,
                artist=(track.artists[0].name if track.artists else None) or "Unknown Artist",
                rank=len(tracks) + 1,
                timeframe=timeframe,
                user_id=user_id,
                is_saved=track.id in saved_ids,
                is_followed_artist=any(a.id in followed_ids for a in track.artists if a.id),
                album=album.name if album else None,
                genres=_collect_genres(track),
                audio_features=AudioFeatures.from_provider(track.audio_features),
                explicit=track.explicit,
                release_date=track.release_date or (album.release_date if album else None),
                popularity=track.popularity,
            )
        )
        seen.add(track.id)

    for track in top.short_term[:SHORT_TERM_LIMIT]:
        add(track, Timeframe.SHORT_TERM)

    for timeframe, bucket in (
        (Timeframe.MEDIUM_TERM, top.medium_term),
        (Timeframe.LONG_TERM, top.long_term),
    ):
        for track in bucket:
            if len(tracks) >= MAX_TRACKS:
                break
            add(track, timeframe)

    return tracks


def process_guest_data(
    payload: GuestPayload,
    options: Optional[GuestProcessingOptions] = None,
) -> ProcessedGuest:
    """Run a guest's data through sizing, the Vibe Gate and PTS scoring.

    ``weighted_pts`` equals ``pts`` on the returned entries; contextual
    weighting is applied at aggregation time because it depends on "now".
    """
    options = options or GuestProcessingOptions()
    data = _parse(payload)
    profile_id = data.profile.id if data.profile else "unknown"
    user_id = options.user_id or profile_id

    all_tracks = normalize_guest_data(data, user_id)
    logger.debug("Normalized %d tracks for %s", len(all_tracks), user_id)

    size = options.tracks_per_person(options.guest_count)
    limited = all_tracks[:size]
    logger.debug("Contribution size: %d tracks (%d guests)", size, options.guest_count)

    if options.vibe_gate_enabled:
        gate = options.vibe_gate or PassThroughGate()
        gate_result = gate.filter(limited, options.vibe_profile)
        admitted = gate_result.passed
        gate_stats = gate_result.stats
        logger.info(
            "Vibe Gate: %d/%d passed (%.1f%%) for %s",
            gate_stats.passed,
            gate_stats.total,
            gate_stats.pass_rate,
            user_id,
        )
        if gate_stats.total and not gate_stats.passed:
            logger.warning("No tracks passed the Vibe Gate for %s", user_id)
    else:
        admitted = limited
        total = len(limited)
        gate_stats = GateStats(total=total, passed=total, failed=0, pass_rate=100.0 if total else 0.0)

    results = calculate_batch_pts(admitted, options.decay_constant)
    by_id = {track.id: track for track in admitted}

    entries = []
    for result in results:
        track = by_id[result.track_id]
        entries.append(
            WeightedTrackEntry(
                id=track.id,
                name=track.name,
                artist=track.artist,
                rank=result.breakdown.rank,
                timeframe=result.breakdown.timeframe,
                is_saved=result.breakdown.is_saved,
                is_followed_artist=track.is_followed_artist,
                pts=result.final_pts,
                weighted_pts=result.final_pts,
                album=track.album,
                audio_features=track.audio_features,
                explicit=track.explicit,
                release_date=track.release_date,
            )
        )

    now = datetime.now(timezone.utc)
    arrival_time = options.arrival_time or now
    cohort = arrival_cohort(arrival_time, options.event.start_time) if options.event else 0
    contribution = GuestContribution(
        user_id=user_id,
        profile_id=profile_id,
        display_name=(data.profile.display_name if data.profile else None) or "Anonymous Guest",
        arrival_time=arrival_time,
        tracks=tuple(entries),
        cohort_index=cohort,
        presence_status=PresenceStatus.UNKNOWN,
        coordinates=options.coordinates,
        last_location_update=now if options.coordinates else None,
    )

    pts_values = [r.final_pts for r in results]
    stats = ProcessingStats(
        total_tracks=len(all_tracks),
        contribution_size=len(limited),
        vibe_gate_passed=gate_stats.passed,
        vibe_gate_pass_rate=gate_stats.pass_rate,
        average_pts=sum(pts_values) / len(pts_values) if pts_values else 0.0,
        top_pts=pts_values[0] if pts_values else 0.0,
    )
    logger.info(
        "Processed %s: %d tracks contributed (top PTS %.4f)",
        user_id,
        len(entries),
        stats.top_pts,
    )
    return ProcessedGuest(contribution=contribution, stats=stats)


def contribution_summary(contribution: GuestContribution) -> dict:
    """Summary statistics for displaying a contribution."""
    tracks = contribution.tracks
    top = tracks[0] if tracks else None
    return {
        "track_count": len(tracks),
        "average_pts": sum(t.pts for t in tracks) / len(tracks) if tracks else 0.0,
        "top_track": {"name": top.name, "artist": top.artist, "pts": top.pts} if top else None,
        "timeframe_breakdown": {
            timeframe.value: sum(1 for t in tracks if t.timeframe == timeframe)
            for timeframe in Timeframe
        },
        "saved_count": sum(1 for t in tracks if t.is_saved),
    }
