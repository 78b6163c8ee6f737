"""Root conftest — shared test configuration.

Invariants:
    - Tests never touch a real database, Google Maps, or Ganamos API
    - Process-wide singletons (rate limiter, mock stores) start empty per test
"""

import os

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("ALEXA_JWT_SECRET", "test-alexa-secret")
os.environ.setdefault("GOOGLE_MAPS_API_KEY", "")

from ganamos.core.rate_limiter import rate_limiter  # noqa: E402
from ganamos.mocks.groq import mock_groq_store  # noqa: E402
from ganamos.mocks.lightning import mock_lightning_store  # noqa: E402
from ganamos.mocks.maps import mock_maps_store  # noqa: E402
from ganamos.mocks.qr import mock_qr_store  # noqa: E402
from ganamos.mocks.sphinx import mock_sphinx_store  # noqa: E402


@pytest.fixture(autouse=True)
def reset_process_state():
    stores = (
        rate_limiter, mock_groq_store, mock_lightning_store,
        mock_maps_store, mock_qr_store, mock_sphinx_store,
    )
    for store in stores:
        store.reset()
    yield
    for store in stores:
        store.reset()
