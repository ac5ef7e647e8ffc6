"""Shared fixtures and builders."""

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from models import (
    AudioFeatures,
    EventConfig,
    EventSize,
    GuestContribution,
    Timeframe,
    Track,
    WeightedTrackEntry,
)

EVENT_START = datetime(2026, 6, 20, 21, 0, tzinfo=timezone.utc)


@pytest.fixture
def event_start() -> datetime:
    return EVENT_START


@pytest.fixture
def large_event() -> EventConfig:
    return EventConfig(event_id="evt-large", start_time=EVENT_START, event_size=EventSize.LARGE)


@pytest.fixture
def small_event() -> EventConfig:
    return EventConfig(event_id="evt-small", start_time=EVENT_START, event_size=EventSize.SMALL)


def make_entry(
    track_id: str,
    pts: float,
    name: Optional[str] = None,
    artist: str = "Artist",
    features: Optional[AudioFeatures] = None,
    explicit: bool = False,
    release_date: Optional[str] = None,
) -> WeightedTrackEntry:
    return WeightedTrackEntry(
        id=track_id,
        name=name or f"Track {track_id}",
        artist=artist,
        rank=1,
        timeframe=Timeframe.SHORT_TERM,
        is_saved=False,
        pts=pts,
        weighted_pts=pts,
        audio_features=features,
        explicit=explicit,
        release_date=release_date,
    )


def make_contribution(
    user_id: str,
    entries: list[WeightedTrackEntry],
    arrival_time: datetime = EVENT_START,
) -> GuestContribution:
    return GuestContribution(
        user_id=user_id,
        profile_id=user_id,
        display_name=user_id.title(),
        arrival_time=arrival_time,
        tracks=tuple(entries),
    )


def make_track(
    track_id: str,
    tempo: Optional[float] = None,
    energy: Optional[float] = None,
    key: Optional[int] = None,
    mode: Optional[int] = None,
    artist: str = "Artist",
) -> Track:
    features = None
    if tempo is not None or energy is not None or key is not None:
        features = AudioFeatures(tempo=tempo, energy=energy, key=key, mode=mode)
    return Track(track_id=track_id, name=f"Track {track_id}", artist=artist, audio_features=features)


def provider_track(track_id: str, artist_id: str = "artist-1", **extra) -> dict:
    track = {
        "id": track_id,
        "name": f"Song {track_id}",
        "artists": [{"id": artist_id, "name": f"Artist {artist_id}", "genres": ["house"]}],
        "album": {"name": "Album", "release_date": "2021-05-01"},
    }
    track.update(extra)
    return track


def guest_payload(
    profile_id: str = "guest-1",
    short_term: Optional[list[str]] = None,
    medium_term: Optional[list[str]] = None,
    long_term: Optional[list[str]] = None,
    saved: Optional[list[str]] = None,
) -> dict:
    payload = {
        "profile": {"id": profile_id, "display_name": profile_id.title()},
        "top_tracks": {
            "short_term": [provider_track(t) for t in short_term or []],
            "medium_term": [provider_track(t) for t in medium_term or []],
            "long_term": [provider_track(t) for t in long_term or []],
        },
        "followed_artists": [{"id": "artist-1", "name": "Artist artist-1"}],
    }
    if saved is not None:
        payload["saved_tracks"] = [provider_track(t) for t in saved]
    return payload


@pytest.fixture
def later() -> datetime:
    return EVENT_START + timedelta(hours=2)
