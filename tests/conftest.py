"""Shared test fixtures for the companion core.

Tickers are replaced by ``ManualTicker`` so tests drive time explicitly
instead of waiting on the event loop.
"""

from __future__ import annotations

import random
from typing import Callable, List, Optional

import pytest

from hikepal.core.annotations import StaticAnnotationSource
from hikepal.core.companion import Companion
from hikepal.core.history import TrackLibrary
from hikepal.core.recorder import PathRecorder
from hikepal.core.simulator import PositionSimulator
from hikepal.core.telemetry import TelemetrySimulator
from hikepal.models.geo import Coordinate
from hikepal.utils.notifications import TeamChat

START = Coordinate(22.2225, 114.2415)


# ---------------------------------------------------------------------------
# Time control
# ---------------------------------------------------------------------------


class ManualTicker:
    """Ticker stand-in that only fires when told to."""

    def __init__(self, callback: Callable[[], None]):
        self.callback = callback
        self.running = False
        self.stopped = False

    def start(self):
        self.running = True

    def stop(self):
        self.running = False
        self.stopped = True

    def fire(self, times: int = 1):
        for _ in range(times):
            if self.running:
                self.callback()


class ManualTickerFactory:
    def __init__(self):
        self.created: List[ManualTicker] = []

    def __call__(self, callback: Callable[[], None]) -> ManualTicker:
        ticker = ManualTicker(callback)
        self.created.append(ticker)
        return ticker

    @property
    def current(self) -> Optional[ManualTicker]:
        return self.created[-1] if self.created else None


@pytest.fixture
def ticker_factory():
    return ManualTickerFactory()


# ---------------------------------------------------------------------------
# Core components
# ---------------------------------------------------------------------------


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def simulator(rng):
    return PositionSimulator(START, rng=rng)


@pytest.fixture
def recorder():
    return PathRecorder()


@pytest.fixture
def library():
    return TrackLibrary()


@pytest.fixture
def chat():
    return TeamChat()


FACILITY_ROWS = [
    {"id": 1, "type": "water_station", "name": "Pavilion tap", "latitude": 22.2230, "longitude": 114.2420},
    {"id": 2, "type": "toilet", "name": "Trailhead WC", "latitude": 22.2210, "longitude": 114.2400},
    {"id": 3, "type": "shelter", "name": "Ridge hut", "latitude": 22.2290, "longitude": 114.2430},
    {"id": 4, "type": "viewpoint", "name": "Shek O lookout", "latitude": 22.2300, "longitude": 114.2440},
]

HAZARD_ROWS = [
    {"id": 10, "route_id": "dragons-back", "type": "landslide", "latitude": 22.2226, "longitude": 114.2416,
     "radius": 50, "message": "Loose rocks after rain"},
    {"id": 11, "route_id": None, "type": "No_Signal", "latitude": 22.2400, "longitude": 114.2500,
     "radius": 200, "message": "No mobile coverage"},
    {"id": 12, "route_id": "dragons-back", "type": "wild boar", "latitude": 22.2250, "longitude": 114.2450,
     "radius": 30, "message": None},
]


@pytest.fixture
def static_source():
    return StaticAnnotationSource(FACILITY_ROWS, HAZARD_ROWS)


@pytest.fixture
def companion(rng, ticker_factory, static_source, library, chat):
    return Companion(
        simulator=PositionSimulator(START, rng=rng),
        telemetry=TelemetrySimulator(rng=random.Random(7)),
        source=static_source,
        library=library,
        chat=chat,
        session_ticker_factory=ticker_factory,
    )
