"""Tests for the track serialization contract and track history storage."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from hikepal.core.history import DatabaseTrackLibrary, TrackLibrary
from hikepal.database import create_db_and_tables
from hikepal.models.geo import Coordinate, DistanceMethod, Track, Waypoint, WaypointKind


def make_track(name: str = "Dragon's Back", minutes_ago: int = 0) -> Track:
    ended = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc) - timedelta(minutes=minutes_ago)
    return Track(
        id=f"track-{name}-{minutes_ago}",
        name=name,
        started_at=ended - timedelta(seconds=3725),
        ended_at=ended,
        path=(Coordinate(22.2225, 114.2415), Coordinate(22.2226, 114.2416)),
        waypoints=(Waypoint("wp-1", Coordinate(22.2226, 114.2416), WaypointKind.PHOTO, "View"),),
        duration_seconds=3725,
        distance_meters=10.0,
    )


class TestTrackRecord:
    def test_record_layout(self):
        record = make_track().to_record()
        assert set(record) == {"id", "name", "date", "durationSeconds", "distanceMeters", "path", "waypoints"}
        assert record["date"] == "2026-10-18T09:30:00+00:00"
        assert record["path"] == [[22.2225, 114.2415], [22.2226, 114.2416]]
        assert record["waypoints"] == [
            {"id": "wp-1", "latitude": 22.2226, "longitude": 114.2416, "kind": "photo", "note": "View"}
        ]

    def test_from_record_restores_track(self):
        track = make_track()
        assert Track.from_record(track.to_record()) == track

    def test_labels(self):
        track = make_track()
        assert track.duration_label == "01:02:05"
        assert track.distance_label == "0.01 km"


class TestTrackLibrary:
    def test_add_and_get(self):
        library = TrackLibrary()
        track = make_track()
        library.add(track)
        assert library.list() == [track]
        assert library.get(track.id) is track
        assert library.get("missing") is None


class TestDatabaseTrackLibrary:
    @pytest.mark.asyncio
    async def test_persist_and_reload(self, tmp_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tracks.db'}")
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        try:
            await create_db_and_tables(engine)

            library = DatabaseTrackLibrary(factory)
            older, newer = make_track("Morning", 60), make_track("Evening", 0)
            library.add(older)
            library.add(newer)
            await library.flush()

            reloaded = DatabaseTrackLibrary(factory)
            loaded = await reloaded.load_history()

            assert [t.name for t in loaded] == ["Morning", "Evening"]
            restored = loaded[1]
            assert restored.path == newer.path
            assert restored.ended_at == newer.ended_at
            assert restored.waypoints == newer.waypoints
            assert restored.duration_seconds == 3725
            assert restored.distance_method == DistanceMethod.APPROXIMATE
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_persist_failure_is_reported_not_raised(self, tmp_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        try:
            # No tables created
            library = DatabaseTrackLibrary(factory)
            assert await library.persist(make_track()) is False
        finally:
            await engine.dispose()
