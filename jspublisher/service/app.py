"""FastAPI application entrypoint for jspublish service mode."""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import ConfigError, load_config
from ..context import resolve_context
from ..orchestrator import Orchestrator, PublishResult


class PublishRequest(BaseModel):
    target: str
    config: Optional[str] = None
    output: Optional[str] = None
    closure_lib: Optional[str] = None
    external_js_lib: Optional[List[str]] = None
    strict_publish: Optional[bool] = None
    redirect_output: Optional[str] = None


class PublishResponse(BaseModel):
    status: str
    states: List[str]
    debug_root: str
    release_root: str
    diagnostic: Optional[str] = None


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> Orchestrator:
    return Orchestrator()


def create_app(
    orchestrator_factory: Callable[[], Orchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing publish runs."""

    app = FastAPI(title="jspublish service", version="0.1.0")
    # Publishes sharing an output root wipe and rewrite the same trees; run them one at a time.
    root_locks: Dict[Path, threading.Lock] = {}
    registry_lock = threading.Lock()

    def _lock_for(output_parent: Path) -> threading.Lock:
        with registry_lock:
            return root_locks.setdefault(output_parent, threading.Lock())

    async def get_orchestrator() -> Orchestrator:
        # One orchestrator per request; runs share no state.
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/publish", response_model=PublishResponse)
    async def publish(
        payload: PublishRequest,
        orchestrator: Orchestrator = Depends(get_orchestrator),
    ) -> Any:
        target = Path(payload.target).expanduser()

        def _run_publish() -> PublishResult:
            config_path = Path(payload.config) if payload.config else target.resolve().parent
            config = load_config(config_path).with_overrides(
                output=payload.output,
                closure_lib=payload.closure_lib,
                external_js_lib=payload.external_js_lib,
                strict_publish=payload.strict_publish,
                redirect_output=payload.redirect_output,
            )
            output_parent = resolve_context(config, target).output_parent
            with _lock_for(output_parent):
                return orchestrator.run(target, config)

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, _run_publish)
        response = PublishResponse(
            status="ok" if result.success else "failed",
            states=[state.value for state in result.states],
            debug_root=str(result.debug_root),
            release_root=str(result.release_root),
            diagnostic=result.diagnostic or None,
        )
        if not result.success:
            return JSONResponse(status_code=422, content=response.model_dump())
        return response

    @app.exception_handler(ConfigError)
    async def config_error_handler(
        _: Any, exc: ConfigError
    ) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app()
    uvicorn.run(app, host=host, port=port)
