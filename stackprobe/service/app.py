"""FastAPI application entrypoint for stackprobe service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .. import __version__
from ..aggregator import Aggregator
from ..payload import ComponentNode
from ..scanner import scan_path

ScanFunction = Callable[..., ComponentNode]


class ScanRequest(BaseModel):
    path: str
    aggregate: bool = False
    fields: Optional[List[str]] = None
    exclude: List[str] = []
    root_id: Optional[str] = None


class ScanResponse(BaseModel):
    format: str
    result: Dict[str, Any]


class HealthResponse(BaseModel):
    status: str
    version: str


def _default_scanner() -> ScanFunction:
    return scan_path


def create_app(scanner_factory: Callable[[], ScanFunction] = _default_scanner) -> FastAPI:
    """Create the FastAPI application exposing scans over HTTP."""

    app = FastAPI(title="stackprobe", version=__version__)

    async def get_scanner() -> ScanFunction:
        return scanner_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", version=__version__)

    @app.post("/scan", response_model=ScanResponse)
    async def scan(
        payload: ScanRequest,
        scanner: ScanFunction = Depends(get_scanner),
    ) -> ScanResponse:
        # Built before scanning so an unknown field fails fast with a 400.
        aggregator = Aggregator(payload.fields) if payload.aggregate else None

        def _run_scan() -> ComponentNode:
            return scanner(payload.path, exclude=payload.exclude, root_id=payload.root_id)

        loop = asyncio.get_running_loop()
        tree = await loop.run_in_executor(None, _run_scan)

        if aggregator is not None:
            return ScanResponse(format="aggregated", result=aggregator.to_dict(tree))
        return ScanResponse(format="full", result=tree.to_dict())

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(_: Any, exc: FileNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Any, exc: ValueError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(RuntimeError)
    async def runtime_error_handler(_: Any, exc: RuntimeError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    return app


def run_service(host: str = "127.0.0.1", port: int = 8000) -> None:  # pragma: no cover - integration path
    import uvicorn

    uvicorn.run(create_app(), host=host, port=port)


__all__ = ["ScanRequest", "ScanResponse", "create_app", "run_service"]
