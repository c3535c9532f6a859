"""Shared fixtures."""

import pytest
from change_monitor.config import MonitorSettings
from change_monitor.models import MonitorTarget


@pytest.fixture
def settings():
    """Settings for an isolated in-memory service."""
    return MonitorSettings(
        _env_file=None,
        storage_backend="memory",
        coalesce_seconds=0.05,
        secret_key="unit-test-signing-key-0123456789abcdef",
        admin_secret_key="let-me-admin",
        password_hash_iterations=1000,
    )


@pytest.fixture
def target(tmp_path):
    """A target rooted at a fresh temporary directory."""
    return MonitorTarget(
        owner_identity="owner@example.com",
        path=str(tmp_path),
        interval=0.1,
        tracked_files=[],
    )
