"""Shared test fixtures for the Vet1Stop resource engine tests."""
from unittest.mock import patch

import pytest

from vet1stop.app.config import Settings
from vet1stop.storage.dao import SqliteResourceStore
from vet1stop.storage.models import Resource


@pytest.fixture()
def tmp_settings(tmp_path):
    """Create a Settings instance backed by a temporary directory.

    Patches get_settings so modules reading settings use the temp paths.
    """
    settings = Settings(
        db_path=tmp_path / "test.db",
        log_path=tmp_path / "logs" / "app.log",
        audit_dir=tmp_path / "logs" / "audit",
        related_limit=3,
    )
    for d in [settings.db_path.parent, settings.log_path.parent, settings.audit_dir]:
        d.mkdir(parents=True, exist_ok=True)

    with patch("vet1stop.app.config.get_settings", return_value=settings):
        with patch("vet1stop.storage.db.get_settings", return_value=settings):
            yield settings


@pytest.fixture()
def store(tmp_settings):
    return SqliteResourceStore(tmp_settings.db_path).init()


def make_resource(rid: str, **kwargs) -> Resource:
    """Create a minimal Resource for testing."""
    defaults = dict(
        id=rid,
        title=f"Resource {rid}",
        description="",
        category="undefined",
        date_added="2024-01-01T00:00:00",
    )
    defaults.update(kwargs)
    return Resource(**defaults)


@pytest.fixture()
def health_catalog(store):
    """Five health resources (two tagged ngo) plus two in other categories."""
    catalog = store.catalog()
    resources = [
        make_resource("h1", title="VA Mental Health Clinic", category="health",
                      tags=("ptsd", "counseling"), date_added="2024-01-05T00:00:00"),
        make_resource("h2", title="Wounded Warrior Project", category="health",
                      tags=("ngo", "ptsd"), source="nonprofit", featured=True,
                      date_added="2024-01-01T00:00:00"),
        make_resource("h3", title="Vet Center Counseling", category="health",
                      tags=("counseling",), date_added="2024-03-01T00:00:00"),
        make_resource("h4", title="Give An Hour", category="health",
                      tags=("ngo", "counseling"), source="nonprofit",
                      date_added="2024-02-01T00:00:00"),
        make_resource("h5", title="TRICARE Overview", category="health",
                      tags=("insurance",), source="government",
                      date_added="2023-12-01T00:00:00"),
        make_resource("e1", title="GI Bill Basics", category="education",
                      tags=("ptsd", "benefits"), date_added="2024-04-01T00:00:00"),
        make_resource("j1", title="Hiring Our Heroes", category="jobs",
                      tags=("ngo",), is_premium_content=True,
                      date_added="2024-02-15T00:00:00"),
    ]
    for res in resources:
        catalog.insert_one(res)
    return resources
