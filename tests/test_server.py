"""Tests for the catalog web routes."""
import sqlite3
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from src.tagging.catalog import TagCatalog


@pytest.fixture()
def client(tmp_settings):
    from src.web.server import app

    return TestClient(app)


# ── Catalog page ────────────────────────────────────────────────


class TestCatalogRoutes:
    def test_catalog_page_lists_defaults(self, client):
        resp = client.get("/catalog")
        assert resp.status_code == 200
        assert "#fitness" in resp.text
        assert "#organizacao" in resp.text

    def test_promote_redirects_and_persists(self, client, tmp_settings):
        resp = client.post(
            "/catalog/promote",
            data={"tag": "#yoga", "family": "fam"},
            follow_redirects=False,
        )
        assert resp.status_code == 303
        assert resp.headers["location"] == "/catalog?family=fam"
        assert "#yoga" in TagCatalog().get_taxonomy("fam").official_tags

    def test_redirect_quotes_family(self, client):
        resp = client.post(
            "/catalog/promote",
            data={"tag": "#yoga", "family": "casa & cia"},
            follow_redirects=False,
        )
        assert resp.status_code == 303
        assert resp.headers["location"] == "/catalog?family=casa%20%26%20cia"
        assert "#yoga" in TagCatalog().get_taxonomy("casa & cia").official_tags

    def test_redirect_round_trips_family(self, client):
        client.post("/catalog/remove", data={"tag": "#sono", "family": "a&b=c"})
        resp = client.get("/catalog?family=a%26b%3Dc")
        assert resp.status_code == 200
        assert "#sono" not in TagCatalog().get_taxonomy("a&b=c").official_tags

    def test_add_uses_default_family(self, client, tmp_settings):
        client.post("/catalog/add", data={"tag": "Tempo em Familia"})
        taxonomy = TagCatalog().get_taxonomy(tmp_settings.default_family_id)
        assert "#tempo_em_familia" in taxonomy.official_tags

    def test_remove(self, client):
        client.post("/catalog/remove", data={"tag": "#sono", "family": "fam"})
        assert "#sono" not in TagCatalog().get_taxonomy("fam").official_tags

    def test_suggestions_shown(self, client):
        catalog = TagCatalog()
        catalog.record_entity(
            "fam", kind="product", owner_id="u1", name="Tapete",
            explicit_tags=["#meditacao"],
        )
        for owner in ("u1", "u2"):
            catalog.record_profile("fam", owner, ["#meditacao"])
        resp = client.get("/catalog", params={"family": "fam"})
        assert "#meditacao (4)" in resp.text

    def test_store_failure_shows_message(self, client):
        with patch(
            "src.storage.dao.TaxonomyDAO.update_official_tags",
            side_effect=sqlite3.OperationalError("locked"),
        ):
            resp = client.post("/catalog/promote", data={"tag": "#yoga", "family": "fam"})
        assert resp.status_code == 503
        assert "Could not promote #yoga" in resp.text


# ── JSON API ────────────────────────────────────────────────────


class TestTagApi:
    def test_infer(self, client):
        resp = client.post("/api/tags/infer", json={"name": "Foi correr na academia hoje"})
        assert resp.status_code == 200
        body = resp.json()
        assert {"#fitness", "#cardio"} <= set(body["inferred"])
        assert len(body["free_text"]) <= 4
        assert "#correr" in body["tags"]

    def test_infer_empty(self, client):
        resp = client.post("/api/tags/infer", json={})
        assert resp.json() == {"inferred": [], "free_text": [], "tags": []}

    def test_profile(self, client):
        resp = client.post("/api/tags/profile", json={
            "health_complaints": ["Ansiedade"],
            "neuro_conditions": ["TDAH"],
        })
        body = resp.json()
        assert "#tdah" in body["semantic_tags"]
        assert "Neuropediatra" in body["recommended_professional_specialties"]

    def test_profile_options(self, client):
        body = client.get("/api/profile/options").json()
        assert "Ansiedade" in body["health_complaints"]
        assert "TDAH" in body["neuro_conditions"]
