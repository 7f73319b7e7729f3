"""Shared test fixtures for tag catalog tests."""
from contextlib import ExitStack
from unittest.mock import patch

import pytest

from src.app.config import Settings
from src.storage.db import init_db

# Modules that bind get_settings at import time
_SETTINGS_TARGETS = (
    "src.app.config.get_settings",
    "src.app.paths.get_settings",
    "src.app.logging.get_settings",
    "src.storage.db.get_settings",
    "src.storage.dao.get_settings",
    "src.tagging.catalog.get_settings",
    "src.cli.main.get_settings",
    "src.web.server.get_settings",
)


@pytest.fixture()
def tmp_settings(tmp_path):
    """Create a Settings instance backed by a temporary directory.

    Patches get_settings globally so all modules use the temp paths.
    """
    settings = Settings(
        db_path=tmp_path / "test.db",
        log_path=tmp_path / "logs" / "app.log",
        default_family_id="fam-test",
        suggestion_limit=30,
        free_text_tag_limit=4,
        extra_official_tags="",
    )
    settings.log_path.parent.mkdir(parents=True, exist_ok=True)

    with ExitStack() as stack:
        for target in _SETTINGS_TARGETS:
            stack.enter_context(patch(target, return_value=settings))
        init_db()
        yield settings


@pytest.fixture()
def catalog(tmp_settings):
    from src.tagging.catalog import TagCatalog

    return TagCatalog()
