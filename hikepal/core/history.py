import asyncio
import logging
from typing import Callable, List, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, desc

from hikepal.models.geo import Track
from hikepal.models.track import TrackRecord

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncSession]


class TrackLibrary:
    """In-memory history of saved tracks, newest last"""

    def __init__(self):
        self._tracks: List[Track] = []

    def add(self, track: Track):
        self._tracks.append(track)
        logger.info(f"Track saved: {track.name} ({track.distance_label}, {track.duration_label})")

    def list(self) -> List[Track]:
        return list(self._tracks)

    def get(self, track_id: str) -> Optional[Track]:
        return next((t for t in self._tracks if t.id == track_id), None)


class DatabaseTrackLibrary(TrackLibrary):
    """
    Track library that also persists each saved track.

    ``add`` stays synchronous for the session state machine; the write is
    scheduled in the background and failures are logged, never raised.
    """

    def __init__(self, session_factory: SessionFactory):
        super().__init__()
        self.session_factory = session_factory
        self._pending: Set[asyncio.Task] = set()

    def add(self, track: Track):
        super().add(track)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error(f"No running event loop, track {track.id} kept in memory only")
            return
        task = loop.create_task(self.persist(track))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def persist(self, track: Track) -> bool:
        try:
            async with self.session_factory() as db:
                db.add(TrackRecord.from_track(track))
                await db.commit()
            return True
        except Exception as e:
            logger.error(f"Persisting track {track.id} failed: {e}")
            return False

    async def load_history(self) -> List[Track]:
        """Populate the in-memory list from the database, oldest first"""
        async with self.session_factory() as db:
            result = await db.execute(select(TrackRecord).order_by(desc(TrackRecord.date)))
            records = result.scalars().all()

        known = {t.id for t in self._tracks}
        loaded = [r.to_track() for r in reversed(records) if r.id not in known]
        self._tracks = loaded + self._tracks
        logger.info(f"Loaded {len(loaded)} tracks from history")
        return loaded

    async def flush(self):
        """Wait for background writes to finish"""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
