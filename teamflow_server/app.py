"""FastAPI application for editing agent teams and tracking their runs."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from teamflow.sdk.backend_client import BackendClient
from teamflow.sdk.team_compiler import TeamCompiler
from teamflow.storage.config_store import ConfigStore
from teamflow.storage.workspace_store import WorkspaceStore
from teamflow.streaming.registry import ExecutionRegistry
from teamflow.streaming.runner import TeamRunner
from teamflow_server import settings
from teamflow_server.config_routes import router as config_router
from teamflow_server.execution_routes import router as execution_router
from teamflow_server.graph_routes import router as graph_router
from teamflow_server.job_routes import router as job_router
from teamflow_server.team_routes import router as team_router
from teamflow_server.workspace_routes import router as workspace_router

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def create_app(
    data_dir: str | Path | None = None,
    backend_transport: httpx.AsyncBaseTransport | None = None,
    run_timeout: float | None = None,
) -> FastAPI:
    """Build the app; the arguments override settings (tests use them)."""
    data_dir = Path(data_dir) if data_dir is not None else settings.DATA_DIR
    run_timeout = run_timeout if run_timeout is not None else settings.RUN_TIMEOUT

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Create the per-app stores, registry and runner; cancel open runs on shutdown."""
        config_store = ConfigStore(data_dir)
        backend = BackendClient(
            base_url=settings.BACKEND_URL,
            api_token=settings.API_TOKEN,
            timeout=run_timeout,
            transport=backend_transport,
        )
        registry = ExecutionRegistry()

        app.state.config_store = config_store
        app.state.workspace_store = WorkspaceStore(data_dir)
        app.state.compiler = TeamCompiler(config_store)
        app.state.backend = backend
        app.state.registry = registry
        app.state.runner = TeamRunner(registry, backend, timeout=run_timeout)
        logger.info(f"teamflow server ready (data dir {data_dir}, backend {settings.BACKEND_URL})")
        yield
        await app.state.runner.shutdown()

    app = FastAPI(
        title="Teamflow API",
        description="API server for agent team configs, canvas compilation and team runs",
        version=VERSION,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # include routes
    app.include_router(config_router, prefix="/api")
    app.include_router(graph_router, prefix="/api")
    app.include_router(team_router, prefix="/api")
    app.include_router(execution_router, prefix="/api")
    app.include_router(job_router, prefix="/api")
    app.include_router(workspace_router, prefix="/api")

    @app.get("/")
    def root():
        """Health check endpoint."""
        return {
            "status": "ok",
            "version": VERSION,
            "data_dir": str(data_dir),
            "endpoints": {
                "configs": "/api/configs",
                "graph": "/api/graph/expand, /api/graph/contract",
                "team_call": "/api/team/call",
                "executions": "/api/executions",
                "jobs": "/api/jobs",
                "workspaces": "/api/workspaces",
            },
        }

    return app


logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
