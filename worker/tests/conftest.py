import sys
from pathlib import Path

import pytest

# Make `placesearch` importable when pytest runs from the repository or worker directory.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from placesearch.core import config, store  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Keep cached settings and the shared client from leaking between tests."""
    monkeypatch.setattr(config, "load_dotenv", lambda: None)
    config.get_settings.cache_clear()
    store._client = None
    yield
    config.get_settings.cache_clear()
    store._client = None
