"""
tests.conftest

Shared fixtures.
"""

from __future__ import annotations

import pytest

from asset_tracker.settings import Settings

from .helpers import PROJECT_ID, SECRET, FakeAuditStore, FakePrincipalStore


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        env="dev",
        jwt_secret=SECRET,
        firebase_project_id=PROJECT_ID,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'asset_tracker.db'}",
        log_level="WARNING",
        demo_tokens_enabled=True,
        dev_token_route_enabled=True,
    )


@pytest.fixture
def principals() -> FakePrincipalStore:
    return FakePrincipalStore()


@pytest.fixture
def audit_store() -> FakeAuditStore:
    return FakeAuditStore()
