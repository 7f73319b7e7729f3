"""FastAPI web server for tag catalog curation."""
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import quote

from fastapi import FastAPI, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from src.app.config import get_settings
from src.app.paths import ensure_dirs
from src.storage.db import init_db
from src.tagging.catalog import CatalogStoreError, TagCatalog
from src.tagging.classifier import extract_free_text_tags, infer_semantic_tags, tag_entity
from src.tagging.profile import (
    HEALTH_COMPLAINT_OPTIONS,
    NEURO_CONDITION_OPTIONS,
    derive_semantic_tags_from_profile,
)

logger = logging.getLogger("tagcat.web")

TEMPLATE_DIR = Path(__file__).parent / "templates"

app = FastAPI(title="Tag Catalog")
templates = Jinja2Templates(directory=str(TEMPLATE_DIR))


class InferRequest(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    limit: Optional[int] = None


class ProfileRequest(BaseModel):
    health_complaints: list[str] = []
    neuro_conditions: list[str] = []
    extra_tags: list[str] = []


@app.on_event("startup")
async def startup():
    ensure_dirs()
    init_db()


def _family(family: Optional[str]) -> str:
    return family or get_settings().default_family_id


def _render_catalog(request: Request, family_id: str, error: Optional[str] = None, status_code: int = 200):
    catalog = TagCatalog()
    official: list[str] = []
    suggestions = []
    threshold = None
    try:
        official = sorted(catalog.get_taxonomy(family_id).official_tags)
        suggestions = catalog.get_suggested_candidates(family_id)
        threshold = catalog.get_suggestion_threshold(family_id)
    except CatalogStoreError as e:
        error = error or f"Could not load the tag catalog: {e}"
        status_code = 503
    return templates.TemplateResponse(request, "catalog.html", {
        "family": family_id,
        "official_tags": official,
        "suggestions": suggestions,
        "threshold": threshold,
        "error": error,
    }, status_code=status_code)


@app.get("/catalog", response_class=HTMLResponse)
async def catalog_view(request: Request, family: Optional[str] = None):
    return _render_catalog(request, _family(family))


async def _curate(request: Request, action: str, family: str, tag: str):
    family_id = _family(family)
    catalog = TagCatalog()
    operations = {
        "promote": catalog.promote,
        "add": catalog.add,
        "remove": catalog.remove,
    }
    try:
        operations[action](family_id, tag)
    except CatalogStoreError as e:
        logger.error("Catalog %s of %r failed: %s", action, tag, e)
        return _render_catalog(
            request, family_id,
            error=f"Could not {action} {tag}. Try again.",
            status_code=503,
        )
    return RedirectResponse(url=f"/catalog?family={quote(family_id, safe='')}", status_code=303)


@app.post("/catalog/promote", response_class=HTMLResponse)
async def catalog_promote(request: Request, tag: str = Form(...), family: str = Form("")):
    return await _curate(request, "promote", family, tag)


@app.post("/catalog/add", response_class=HTMLResponse)
async def catalog_add(request: Request, tag: str = Form(...), family: str = Form("")):
    return await _curate(request, "add", family, tag)


@app.post("/catalog/remove", response_class=HTMLResponse)
async def catalog_remove(request: Request, tag: str = Form(...), family: str = Form("")):
    return await _curate(request, "remove", family, tag)


@app.post("/api/tags/infer")
async def api_infer(body: InferRequest):
    limit = body.limit if body.limit is not None else get_settings().free_text_tag_limit
    return {
        "inferred": infer_semantic_tags(body.name, body.category, body.description),
        "free_text": extract_free_text_tags(body.name, limit),
        "tags": tag_entity(body.name, body.category, body.description, limit=limit),
    }


@app.post("/api/tags/profile")
async def api_profile(body: ProfileRequest):
    result = derive_semantic_tags_from_profile(
        health_complaints=body.health_complaints,
        neuro_conditions=body.neuro_conditions,
        extra_tags=body.extra_tags,
    )
    return {
        "semantic_tags": list(result.semantic_tags),
        "recommended_professional_specialties": list(result.recommended_professional_specialties),
    }


@app.get("/api/profile/options")
async def api_profile_options():
    return {
        "health_complaints": list(HEALTH_COMPLAINT_OPTIONS),
        "neuro_conditions": list(NEURO_CONDITION_OPTIONS),
    }
