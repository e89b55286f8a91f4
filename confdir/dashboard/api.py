"""FastAPI status endpoints for the directory backend."""

from __future__ import annotations

import hmac
from pathlib import Path
from typing import Any

try:
    from fastapi import FastAPI, HTTPException, Request, Response
    from fastapi.responses import JSONResponse
except Exception:  # pragma: no cover - optional dependency
    FastAPI = None  # type: ignore[assignment]
    HTTPException = RuntimeError  # type: ignore[assignment]
    Request = Any  # type: ignore[assignment]
    Response = Any  # type: ignore[assignment]
    JSONResponse = None  # type: ignore[assignment]

from confdir.config.loader import load_directory
from confdir.config.schema import APIConfig
from confdir.directory.backend import ACCOUNT_OBJECT_CLASSES, GROUP_OBJECT_CLASS, ConfigBackend


HEALTH_PATH = "/health"


def create_app(
    backend: ConfigBackend,
    api_config: APIConfig | None = None,
    *,
    config_path: Path | None = None,
) -> Any:
    if FastAPI is None or JSONResponse is None:
        raise RuntimeError("FastAPI is not installed. Install with: pip install 'confdir[api]'")

    config = api_config or APIConfig()
    auth_enabled = bool(config.auth_enabled)
    tokens = [token for token in config.auth_tokens if token]
    if auth_enabled and not tokens:
        raise RuntimeError("api auth is enabled but no tokens are configured")

    app = FastAPI(
        title="confdir API",
        version="0.1.0",
        docs_url="/docs" if config.docs_enabled else None,
        redoc_url="/redoc" if config.docs_enabled else None,
        openapi_url="/openapi.json" if config.docs_enabled else None,
    )

    def _bearer_token(request: Request) -> str:
        header = str(request.headers.get("authorization", "")).strip()
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer":
            return ""
        return token.strip()

    def _token_allowed(token: str) -> bool:
        if not token:
            return False
        presented = token.encode("utf-8")
        return any(hmac.compare_digest(presented, candidate.encode("utf-8")) for candidate in tokens)

    @app.middleware("http")
    async def api_auth_middleware(request: Request, call_next: Any) -> Response:
        if not auth_enabled or request.url.path == HEALTH_PATH or request.method.upper() == "OPTIONS":
            return await call_next(request)
        if not _token_allowed(_bearer_token(request)):
            return JSONResponse(
                status_code=401,
                content={"detail": "authentication required"},
                headers={"WWW-Authenticate": "Bearer"},
            )
        return await call_next(request)

    @app.get(HEALTH_PATH)
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/status")
    def status() -> dict[str, Any]:
        return backend.status()

    @app.get("/entries/{object_class}")
    def entries(object_class: str) -> dict[str, Any]:
        normalized = object_class.strip().lower()
        snapshot = backend.snapshot
        if normalized == GROUP_OBJECT_CLASS:
            items = snapshot.group_entries()
        elif normalized in ACCOUNT_OBJECT_CLASSES and normalized:
            items = snapshot.user_entries()
        else:
            raise HTTPException(status_code=404, detail=f"unknown object class '{object_class}'")
        return {
            "object_class": normalized,
            "count": len(items),
            "entries": [entry.to_dict() for entry in items],
        }

    @app.post("/reload")
    def reload() -> dict[str, Any]:
        if config_path is None:
            raise HTTPException(status_code=409, detail="api was started without a config file")
        try:
            directory = load_directory(config_path)
        except (OSError, ValueError) as exc:
            raise HTTPException(status_code=400, detail=f"reload failed: {exc}") from exc
        backend.reload(directory)
        return {"status": "reloaded", **backend.status()}

    return app
