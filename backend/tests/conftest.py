from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure `backend/` is on sys.path so `import app.*` works in tests.
BACKEND_DIR = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_DIR))


@pytest.fixture(autouse=True)
def _fresh_cached_collaborators():
    # Resolver and snapshot repo are process-wide caches; keep tests independent.
    from app.modules.risk import risk_service
    from app.repositories import opportunity_snapshot_repo

    risk_service.get_resolver.cache_clear()
    opportunity_snapshot_repo.get_opportunity_repo.cache_clear()
    yield
    risk_service.get_resolver.cache_clear()
    opportunity_snapshot_repo.get_opportunity_repo.cache_clear()
