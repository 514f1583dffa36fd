from __future__ import annotations

import json
from urllib.parse import quote

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import build_settings
from recommender import main
from recommender.main import register_routes
from recommender.manifest import build_manifest
from recommender.models import CatalogExtra, CatalogResponse, MetaPreview, UserConfig
from recommender.services.recommendations import RecommendationService

FULL_CREDENTIALS = {
    "TRAKT_USERNAME": "server-user",
    "TRAKT_CLIENT_ID": "server-client",
    "TMDB_API_KEY": "server-tmdb",
    "GEMINI_API_KEY": "server-gemini",
}


class DummyRecommendationService(RecommendationService):
    """Minimal RecommendationService stub recording catalog requests."""

    def __init__(self, response: CatalogResponse | None = None) -> None:
        # Deliberately skip super().__init__ to avoid touching external systems.
        self.response = response or CatalogResponse()
        self.requests: list[tuple[str, str, CatalogExtra, UserConfig]] = []
        self.cleared = 0

    def clear_caches(self) -> None:
        self.cleared += 1

    async def get_catalog(  # type: ignore[override]
        self,
        content_type: str,
        catalog_id: str,
        extra: CatalogExtra,
        config: UserConfig,
    ) -> CatalogResponse:
        self.requests.append((content_type, catalog_id, extra, config))
        return self.response


@pytest.fixture
def service() -> DummyRecommendationService:
    return DummyRecommendationService()


@pytest.fixture
def client(monkeypatch, service):
    monkeypatch.setattr(main, "settings", build_settings())
    app = FastAPI()
    register_routes(app)
    app.state.recommendation_service = service

    with TestClient(app) as test_client:
        yield test_client


def _config_segment(**values: str) -> str:
    return quote(json.dumps(values), safe="")


def test_manifest_requires_configuration_without_server_keys() -> None:
    manifest = build_manifest(build_settings())

    assert manifest["id"] == "com.geminirecs.python"
    assert manifest["resources"] == ["catalog"]
    assert manifest["types"] == ["movie", "series"]
    assert manifest["idPrefixes"] == ["tt"]
    assert manifest["behaviorHints"] == {
        "configurable": True,
        "configurationRequired": True,
    }
    assert [field["key"] for field in manifest["config"]] == [
        "trakt_username",
        "trakt_client_id",
        "tmdb_api_key",
        "gemini_api_key",
    ]
    assert all(field["required"] for field in manifest["config"])


def test_manifest_is_optional_when_server_has_keys() -> None:
    manifest = build_manifest(build_settings(**FULL_CREDENTIALS))

    assert manifest["behaviorHints"]["configurationRequired"] is False
    assert not any(field["required"] for field in manifest["config"])


def test_manifest_catalogs_expose_genre_and_skip_extras() -> None:
    catalogs = build_manifest(build_settings())["catalogs"]

    assert [(entry["type"], entry["id"]) for entry in catalogs] == [
        ("movie", "gemini-movie-recommendations"),
        ("series", "gemini-series-recommendations"),
    ]
    extras = {extra["name"]: extra for extra in catalogs[0]["extra"]}
    assert set(extras) == {"skip", "genre"}
    assert "Sci-Fi" in extras["genre"]["options"]


def test_manifest_route(client) -> None:
    response = client.get("/manifest.json")

    assert response.status_code == 200
    assert response.json()["id"] == "com.geminirecs.python"


def test_configured_manifest_route(client) -> None:
    response = client.get(f"/{_config_segment(trakt_username='cinephile')}/manifest.json")

    assert response.status_code == 200
    assert response.json()["resources"] == ["catalog"]


def test_invalid_config_is_rejected(client, service) -> None:
    manifest = client.get("/not-json/manifest.json")
    catalog = client.get("/not-json/catalog/movie/gemini-movie-recommendations.json")

    assert manifest.status_code == 400
    assert manifest.json()["detail"] == "Invalid addon configuration"
    assert catalog.status_code == 400
    assert service.requests == []


def test_catalog_route_passes_extra_and_config(monkeypatch, client, service) -> None:
    monkeypatch.setattr(
        main, "settings", build_settings(GEMINI_API_KEY="server-gemini")
    )
    service.response = CatalogResponse(
        metas=[MetaPreview(id="tt0113277", type="movie", name="Heat", release_info="1995")],
        cache_max_age=259200,
        stale_revalidate=86400,
    )
    segment = _config_segment(trakt_username="cinephile", tmdb_api_key="tmdb-key")

    response = client.get(
        f"/{segment}/catalog/movie/gemini-movie-recommendations/genre=Sci-Fi.json"
    )

    assert response.status_code == 200
    assert response.headers["cache-control"] == (
        "max-age=259200, stale-while-revalidate=86400, public"
    )
    payload = response.json()
    assert payload["metas"][0]["releaseInfo"] == "1995"
    assert payload["cacheMaxAge"] == 259200

    content_type, catalog_id, extra, config = service.requests[0]
    assert (content_type, catalog_id) == ("movie", "gemini-movie-recommendations")
    assert extra.genre == "Sci-Fi"
    assert extra.skip == 0
    assert config.trakt_username == "cinephile"
    assert config.tmdb_api_key == "tmdb-key"
    assert config.gemini_api_key == "server-gemini"


def test_unconfigured_catalog_route_uses_server_keys(monkeypatch, client, service) -> None:
    monkeypatch.setattr(main, "settings", build_settings(**FULL_CREDENTIALS))

    response = client.get("/catalog/series/gemini-series-recommendations/skip=20.json")

    assert response.status_code == 200
    assert response.json() == {"metas": []}
    assert "cache-control" not in response.headers
    _, _, extra, config = service.requests[0]
    assert extra.skip == 20
    assert config.trakt_username == "server-user"
    assert config.gemini_api_key == "server-gemini"


def test_reset_cache_route(client, service) -> None:
    response = client.get("/reset-cache")

    assert response.status_code == 200
    assert "caches cleared" in response.text
    assert service.cleared == 1


def test_root_redirects_to_configure(client) -> None:
    response = client.get("/", follow_redirects=False)

    assert response.status_code in {302, 307}
    assert response.headers["location"] == "/configure"


def test_configure_page_renders_fields(client) -> None:
    response = client.get("/configure")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    body = response.text
    assert "Gemini AI Recommender" in body
    assert "__FIELDS__" not in body
    for key in ("trakt_username", "trakt_client_id", "tmdb_api_key", "gemini_api_key"):
        assert key in body


def test_configure_page_prefills_existing_values(client) -> None:
    segment = _config_segment(trakt_username="cinephile")

    response = client.get(f"/{segment}/configure")

    assert response.status_code == 200
    assert '"trakt_username": "cinephile"' in response.text


def test_healthcheck(client) -> None:
    assert client.get("/healthz").json() == {"status": "ok"}
