from __future__ import annotations

from pathlib import Path

import pytest

from stackprobe.rules import RuleCatalog, catalog_from_mappings
from tests._fixtures.repo_builder import RepoBuilder

SMALL_RULES = [
    {
        "tech": "postgresql",
        "name": "PostgreSQL",
        "type": "database",
        "dotenv": ["POSTGRES_"],
        "dependencies": [
            {"type": "python", "name": "psycopg2"},
            {"type": "npm", "name": "pg"},
            {"type": "docker", "name": "/^postgres$/"},
        ],
    },
    {
        "tech": "redis",
        "name": "Redis",
        "type": "database",
        "creates_edge": False,
        "dependencies": [{"type": "python", "name": "redis"}],
    },
    {
        "tech": "django",
        "name": "Django",
        "type": "framework",
        "dependencies": [{"type": "python", "name": "django"}],
    },
    {"tech": "pip", "name": "pip", "type": "package_manager", "files": ["requirements.txt"]},
    {"tech": "npm", "name": "npm", "type": "package_manager", "files": ["package-lock.json"]},
    {"tech": "python", "name": "Python", "type": "language", "is_primary_tech": True, "extensions": [".py"]},
    {"tech": "docker", "name": "Docker", "type": "infrastructure", "files": ["Dockerfile", "Dockerfile.*"]},
    {
        "tech": "githubactions",
        "name": "GitHub Actions",
        "type": "ci",
        "files": [".github/workflows"],
    },
    {
        "tech": "jsonschema",
        "name": "JSON Schema",
        "type": "tool",
        "extensions": [".json"],
        "content": [{"type": "json-path", "path": "$.$schema"}],
    },
]

SMALL_CATEGORIES = {
    "database": {"is_component": True, "creates_edge": True},
    "framework": {},
    "package_manager": {},
    "language": {},
    "infrastructure": {},
    "ci": {},
    "tool": {},
}


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable tree builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def catalog() -> RuleCatalog:
    """A small catalog whose flags the tests can reason about."""
    return catalog_from_mappings(SMALL_RULES, SMALL_CATEGORIES)
