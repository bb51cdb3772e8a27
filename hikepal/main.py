from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import asyncio
import logging
from typing import Dict, Any, Set
import json
from datetime import datetime, timezone

from hikepal.config import settings
from hikepal.database import AsyncSessionLocal, create_db_and_tables
from hikepal.api import chat, emergency, location, session, tracks
from hikepal.core.companion import Companion
from hikepal.core.errors import LoadError, RecorderError, SessionError
from hikepal.core.history import DatabaseTrackLibrary

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# WebSocket connection manager
class ConnectionManager:
    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}
        self._pending: Set[asyncio.Task] = set()

    async def connect(self, websocket: WebSocket, client_id: str):
        await websocket.accept()
        self.active_connections[client_id] = websocket
        logger.info(f"WebSocket connected: {client_id}")

    def disconnect(self, client_id: str):
        if client_id in self.active_connections:
            del self.active_connections[client_id]
            logger.info(f"WebSocket disconnected: {client_id}")

    async def broadcast(self, data: dict[str, Any]):
        disconnected = []
        for client_id, websocket in list(self.active_connections.items()):
            try:
                await websocket.send_text(json.dumps(data, default=str))
            except Exception as e:
                logger.warning(f"Error broadcasting to {client_id}: {e}")
                disconnected.append(client_id)

        # Clean up disconnected clients
        for client_id in disconnected:
            self.disconnect(client_id)

    def publish(self, event: dict[str, Any]):
        """Sync observer hook: forward a core event to all clients"""
        if not self.active_connections:
            return
        task = asyncio.get_running_loop().create_task(self.broadcast(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

manager = ConnectionManager()

# Lifespan manager for startup/shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    await create_db_and_tables()
    library = DatabaseTrackLibrary(AsyncSessionLocal)
    try:
        await library.load_history()
    except Exception as e:
        logger.error(f"Could not load track history: {e}")

    companion = Companion(settings, library=library)
    app.state.companion = companion
    unsubscribe = companion.subscribe(manager.publish)
    companion.start()

    # Annotation loading must not hold up tick delivery
    refresh = asyncio.create_task(companion.refresh_annotations())
    logger.info("Application starting up")
    yield
    # Shutdown
    refresh.cancel()
    unsubscribe()
    companion.shutdown()
    await library.flush()
    logger.info("Application shutting down")

app = FastAPI(
    title="HikePal Companion API",
    description="Live hike tracking, teammate positions, trail annotations and SOS",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(session.router, prefix="/api/session", tags=["Session"])
app.include_router(emergency.router, prefix="/api/emergency", tags=["Emergency"])
app.include_router(location.router, prefix="/api/map", tags=["Map"])
app.include_router(tracks.router, prefix="/api/tracks", tags=["Tracks"])
app.include_router(chat.router, prefix="/api/chat", tags=["Chat"])

# Core errors are never fatal: report them to the client
@app.exception_handler(SessionError)
@app.exception_handler(RecorderError)
async def state_error_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=409, content={"detail": str(exc)})

@app.exception_handler(LoadError)
async def load_error_handler(request: Request, exc: LoadError):
    return JSONResponse(
        status_code=503,
        content={"detail": str(exc), "error": exc.kind}
    )

@app.websocket("/ws/{client_id}")
async def websocket_endpoint(websocket: WebSocket, client_id: str):
    await manager.connect(websocket, client_id)
    try:
        # Initial state so the client can draw before the next tick
        companion = websocket.app.state.companion
        await websocket.send_text(json.dumps({
            "type": "snapshot",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data": companion.snapshot()
        }, default=str))
        while True:
            # Keep connection alive and handle incoming messages
            await websocket.receive_text()
            # Echo back for heartbeat
            await websocket.send_text(json.dumps({
                "type": "heartbeat",
                "timestamp": datetime.now(timezone.utc).isoformat()
            }))
    except WebSocketDisconnect:
        manager.disconnect(client_id)
    except Exception as e:
        logger.error(f"WebSocket error for {client_id}: {e}")
        manager.disconnect(client_id)

@app.get("/")
async def root():
    return {
        "message": "HikePal Companion API",
        "status": "active",
        "version": "1.0.0",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }

# Health check endpoint
@app.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    companion = getattr(request.app.state, "companion", None)
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "active_connections": len(manager.active_connections),
        "simulation_running": bool(companion and companion.simulator_ticker.running),
        "annotations_loaded": bool(companion and companion.annotations.loaded)
    }
