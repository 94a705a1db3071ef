"""
Server Browser: Read API
========================

Read-only JSON surface over the ingestion core. Every response comes from
the current snapshot and history; nothing here triggers a refresh.

Endpoints:
- GET /health                        -> liveness + snapshot generation
- GET /api/servers                   -> filtered, sorted server list
- GET /api/servers/{id}              -> one server + 24h history + summary
- GET /api/servers/{id}/history      -> raw samples
- GET /api/servers/{id}/details      -> mods and players, live from upstream
- GET /api/status                    -> refresh status + filter facets
- GET /metrics                       -> Prometheus exposition

Usage:
    uvicorn serverbrowser.api.server:app
"""
import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app
from pydantic import BaseModel

from ..config import TrackerConfig
from ..contracts.records import Snapshot
from ..engine import ServerDirectory
from ..query import ServerFilter, SortKey, SortSpec, TagMatch
from .mapper import (
    iso, map_details, map_history, map_server, map_servers, map_status, map_summary
)

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "SERVERBROWSER_CONFIG"
VERSION_LATEST = ""
VERSION_ANY = "all"


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class HealthResponse(BaseModel):
    status: str
    generation: int


class ServerListResponse(BaseModel):
    servers: List[Dict[str, Any]]
    total: int
    cached_at: Optional[str] = None
    generation: int


class ServerResponse(BaseModel):
    server: Dict[str, Any]
    history: List[Dict[str, Any]]
    summary: Optional[Dict[str, Any]] = None


# =============================================================================
# INFRASTRUCTURE SETUP
# =============================================================================

def create_app(directory: Optional[ServerDirectory] = None) -> FastAPI:
    """
    Build the API.

    With no directory, the lifespan builds one from the environment, starts
    its scheduler and stops it on shutdown. A directory passed in is used
    as-is and its lifecycle is left to the caller.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.directory is None
        if owned:
            config = TrackerConfig.load(os.environ.get(CONFIG_PATH_ENV) or None)
            app.state.directory = ServerDirectory(config)
            app.state.directory.start()
        yield
        if owned:
            logger.info("shutting down, waiting for any in-flight refresh")
            app.state.directory.stop()
            app.state.directory = None

    app = FastAPI(
        title="Server Browser API",
        version="0.1.0",
        description="Read-only view of the cached game server directory",
        lifespan=lifespan
    )
    app.state.directory = directory

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.mount("/metrics", make_asgi_app())
    _register_routes(app)
    return app


def get_directory(request: Request) -> ServerDirectory:
    directory = request.app.state.directory
    if directory is None:
        raise HTTPException(status_code=503, detail="Server directory not initialized")
    return directory


# =============================================================================
# ENDPOINTS
# =============================================================================

def _register_routes(app: FastAPI) -> None:

    @app.get("/health", response_model=HealthResponse)
    def health_check(directory: ServerDirectory = Depends(get_directory)):
        return {"status": "ok", "generation": directory.snapshots.generation}

    @app.get("/api/servers", response_model=ServerListResponse)
    def list_servers(
        search: Optional[str] = None,
        tags: Optional[str] = Query(None, description="Comma-separated tags"),
        tag_mode: TagMatch = TagMatch.ALL,
        version: str = Query(VERSION_LATEST, description="'' for latest, 'all' for any"),
        min_players: Optional[int] = Query(None, ge=0),
        max_players: Optional[int] = Query(None, ge=0),
        has_players: Optional[bool] = None,
        no_password: bool = False,
        dedicated: Optional[bool] = None,
        min_mods: Optional[int] = Query(None, ge=0),
        sort: SortKey = SortKey.PLAYERS,
        order: str = Query("desc", pattern="^(asc|desc)$"),
        limit: Optional[int] = Query(None, ge=0),
        offset: int = Query(0, ge=0),
        directory: ServerDirectory = Depends(get_directory)
    ):
        """
        Filtered, sorted list from the current snapshot.

        Defaults mirror the browser page: latest version only, most players
        first.
        """
        tag_set = frozenset(t.strip() for t in (tags or "").split(",") if t.strip())
        snapshot = directory.query.current()
        try:
            server_filter = ServerFilter(
                text=search or None,
                tags=tag_set,
                tag_mode=tag_mode if tag_set else None,
                game_version=_resolve_version(directory, snapshot, version),
                min_players=min_players,
                max_players=max_players,
                has_password=False if no_password else None,
                is_dedicated=dedicated,
                has_players=has_players,
                min_mods=min_mods,
            )
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))

        records, total, info = directory.query.query_with_total(
            server_filter,
            SortSpec(key=sort, descending=(order == "desc")),
            limit=limit,
            offset=offset,
            snapshot=snapshot
        )
        return {
            "servers": map_servers(records),
            "total": total,
            "cached_at": iso(info.captured_at),
            "generation": info.generation,
        }

    @app.get("/api/servers/{server_id}", response_model=ServerResponse)
    def get_server(server_id: str, directory: ServerDirectory = Depends(get_directory)):
        record = directory.query.get(server_id)
        if record is None:
            raise HTTPException(status_code=404, detail=f"Server {server_id} not found")
        return {
            "server": map_server(record),
            "history": map_history(directory.history_for(server_id)),
            "summary": map_summary(directory.summary_for(server_id)),
        }

    @app.get("/api/servers/{server_id}/history")
    def get_history(
        server_id: str,
        hours: float = Query(24.0, gt=0, le=168),
        directory: ServerDirectory = Depends(get_directory)
    ):
        """Samples within the last `hours`, oldest first. Servers that went
        offline keep their history until retention drops it."""
        if directory.query.get(server_id) is None and server_id not in directory.history.tracked_ids():
            raise HTTPException(status_code=404, detail=f"Server {server_id} not found")
        return {
            "server_id": server_id,
            "samples": map_history(directory.history_for(server_id, hours)),
        }

    @app.get("/api/servers/{server_id}/details")
    def get_details(server_id: str, directory: ServerDirectory = Depends(get_directory)):
        if directory.query.get(server_id) is None:
            raise HTTPException(status_code=404, detail=f"Server {server_id} not found")
        result = directory.details(server_id)
        if not result.success:
            raise HTTPException(
                status_code=502,
                detail={"kind": result.status.value, "message": result.error_message}
            )
        return map_details(result.details)

    @app.get("/api/status")
    def get_status(directory: ServerDirectory = Depends(get_directory)):
        snapshot = directory.query.current()
        info = directory.query.snapshot_info(snapshot)
        return {
            **map_status(directory.status()),
            "generation": info.generation,
            "cached_at": iso(info.captured_at),
            "server_count": info.server_count,
            "versions": directory.query.versions(snapshot),
            "latest_version": directory.query.latest_version(snapshot),
            "tags": directory.query.tags(snapshot),
        }


def _resolve_version(directory: ServerDirectory, snapshot: Snapshot, version: str) -> Optional[str]:
    if version == VERSION_ANY:
        return None
    if version == VERSION_LATEST:
        return directory.query.latest_version(snapshot)
    return version


app = create_app()
