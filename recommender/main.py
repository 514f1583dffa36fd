"""Entry point for the FastAPI-powered Stremio addon."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse
from pydantic import ValidationError

from .config import settings
from .manifest import build_manifest
from .models import CatalogExtra, UserConfig
from .services.gemini import GeminiClient
from .services.recommendations import RecommendationService
from .services.tmdb import TMDBClient
from .services.trakt import TraktClient
from .web import render_config_page

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app: FastAPI


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI):
    exit_stack = AsyncExitStack()
    trakt_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.trakt_api_url),
            timeout=httpx.Timeout(20.0, connect=10.0),
        )
    )
    tmdb_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.tmdb_api_url),
            timeout=httpx.Timeout(15.0, connect=5.0),
        )
    )
    gemini_http = await exit_stack.enter_async_context(
        httpx.AsyncClient(
            base_url=str(settings.gemini_api_url),
            timeout=httpx.Timeout(60.0, connect=10.0),
        )
    )

    fastapi_app.state.recommendation_service = RecommendationService(
        settings,
        TraktClient(settings, trakt_http),
        GeminiClient(settings, gemini_http),
        TMDBClient(settings, tmdb_http),
    )

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Personalized Stremio catalogs from Trakt history and Google Gemini",
        version="2.1.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_recommendation_service(app: FastAPI) -> RecommendationService:
    service = getattr(app.state, "recommendation_service", None)
    if not isinstance(service, RecommendationService):
        raise RuntimeError("Recommendation service not initialised")
    return service


def _parse_config(raw: str | None) -> UserConfig:
    if raw is None:
        return UserConfig().with_fallbacks(settings)
    try:
        config = UserConfig.from_path_segment(raw)
    except (ValueError, ValidationError) as exc:
        raise HTTPException(status_code=400, detail="Invalid addon configuration") from exc
    return config.with_fallbacks(settings)


def register_routes(fastapi_app: FastAPI) -> None:
    async def _catalog_endpoint(
        content_type: str,
        catalog_id: str,
        *,
        raw_config: str | None = None,
        raw_extra: str | None = None,
    ) -> JSONResponse:
        service = get_recommendation_service(fastapi_app)
        config = _parse_config(raw_config)
        try:
            extra = CatalogExtra.from_path(raw_extra)
        except ValidationError as exc:
            raise HTTPException(status_code=400, detail=exc.errors()) from exc

        result = await service.get_catalog(content_type, catalog_id, extra, config)
        headers: dict[str, str] = {}
        cache_control = result.cache_control()
        if cache_control:
            headers["Cache-Control"] = cache_control
        return JSONResponse(result.to_payload(), headers=headers)

    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/")
    async def root() -> RedirectResponse:
        return RedirectResponse(url="/configure")

    @fastapi_app.get("/configure", response_class=HTMLResponse)
    async def configure() -> HTMLResponse:
        return HTMLResponse(render_config_page(settings))

    @fastapi_app.get("/reset-cache", response_class=PlainTextResponse)
    async def reset_cache() -> PlainTextResponse:
        get_recommendation_service(fastapi_app).clear_caches()
        logger.info("Local Gemini and TMDB caches cleared")
        return PlainTextResponse(
            "Local Gemini and TMDB caches cleared. Restart Stremio to drop its own "
            "cached catalogs as well."
        )

    @fastapi_app.get("/manifest.json")
    async def manifest() -> dict[str, Any]:
        return build_manifest(settings)

    @fastapi_app.get("/catalog/{content_type}/{catalog_id}.json")
    async def catalog(content_type: str, catalog_id: str) -> JSONResponse:
        return await _catalog_endpoint(content_type, catalog_id)

    @fastapi_app.get("/catalog/{content_type}/{catalog_id}/{extra}.json")
    async def catalog_with_extra(
        content_type: str, catalog_id: str, extra: str
    ) -> JSONResponse:
        return await _catalog_endpoint(content_type, catalog_id, raw_extra=extra)

    @fastapi_app.get("/{config}/configure", response_class=HTMLResponse)
    async def configure_with_config(config: str) -> HTMLResponse:
        try:
            current = UserConfig.from_path_segment(config)
        except (ValueError, ValidationError):
            current = UserConfig()
        return HTMLResponse(
            render_config_page(settings, values=current.model_dump(exclude_none=True))
        )

    @fastapi_app.get("/{config}/manifest.json")
    async def manifest_with_config(config: str) -> dict[str, Any]:
        _parse_config(config)
        return build_manifest(settings)

    @fastapi_app.get("/{config}/catalog/{content_type}/{catalog_id}.json")
    async def catalog_with_config(
        config: str, content_type: str, catalog_id: str
    ) -> JSONResponse:
        return await _catalog_endpoint(content_type, catalog_id, raw_config=config)

    @fastapi_app.get("/{config}/catalog/{content_type}/{catalog_id}/{extra}.json")
    async def catalog_with_config_and_extra(
        config: str, content_type: str, catalog_id: str, extra: str
    ) -> JSONResponse:
        return await _catalog_endpoint(
            content_type, catalog_id, raw_config=config, raw_extra=extra
        )


app = create_app()


if __name__ == "__main__":  # pragma: no cover - manual execution
    import uvicorn

    uvicorn.run(
        "recommender.main:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.environment == "development",
    )
