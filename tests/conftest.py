"""
Pytest configuration and shared fixtures.
"""

import os
import tempfile
from pathlib import Path

# Keep test runs from writing into ./logs; must happen before utils.logger is imported.
os.environ.setdefault(
    "LOG_FILE", str(Path(tempfile.gettempdir()) / "manufacturer-match-tests.log")
)

import pytest

from config.settings import Settings
from models.comparison import ComparisonEngine
from services.directory import ManufacturerDirectory


@pytest.fixture
def engine() -> ComparisonEngine:
    return ComparisonEngine()


@pytest.fixture
def full_registration() -> dict:
    """Registration payload with every initially scored field populated."""
    return {
        "name": "Acme Manufacturing",
        "email": "owner@acme.test",
        "password": "s3cret-pass",
        "description": "Contract manufacturer",
        "industry": "Technology",
        "contactEmail": "sales@acme.test",
        "servicesOffered": ["Production", "Assembly"],
        "moq": 100,
        "headquarters": {"country": "US"},
    }


@pytest.fixture
def directory_records() -> list[dict]:
    """Four manufacturers; mfg-d has not verified its email."""
    return [
        {
            "_id": "mfg-a",
            "name": "Acme Textiles",
            "industry": "Textiles",
            "description": "Cotton weaving and dyeing for apparel brands",
            "servicesOffered": ["Weaving", "Dyeing"],
            "moq": 500,
            "headquarters": {"country": "IN", "city": "Surat"},
            "certifications": ["OEKO-TEX"],
            "isEmailVerified": True,
            "isVerified": True,
            "profileScore": 80,
        },
        {
            "_id": "mfg-b",
            "name": "Bolt Electronics",
            "industry": "Electronics",
            "description": "PCB assembly",
            "servicesOffered": ["PCB Assembly", "Testing"],
            "moq": 100,
            "headquarters": {"country": "US", "city": "Austin"},
            "certifications": [{"name": "ISO 9001"}, {"name": "ISO 14001"}],
            "isEmailVerified": True,
            "profileScore": 90,
        },
        {
            "_id": "mfg-c",
            "name": "Cotton Co",
            "industry": "Textiles",
            "description": "Organic cotton knitting",
            "servicesOffered": ["Knitting", "Dyeing"],
            "moq": 1000,
            "headquarters": {"country": "IN", "city": "Tiruppur"},
            "isEmailVerified": True,
            "profileScore": 60,
        },
        {
            "_id": "mfg-d",
            "name": "Hidden Works",
            "industry": "Textiles",
            "servicesOffered": ["Weaving"],
            "moq": 50,
            "isEmailVerified": False,
            "profileScore": 70,
        },
    ]


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        data_dir=tmp_path,
        log_file=tmp_path / "app.log",
        similarity_threshold=50.0,
        search_default_limit=20,
        search_max_limit=100,
    )


@pytest.fixture
def directory(directory_records, settings) -> ManufacturerDirectory:
    return ManufacturerDirectory(directory_records, settings=settings)
