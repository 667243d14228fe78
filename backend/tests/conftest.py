from pathlib import Path
from dotenv import load_dotenv
import fakeredis
import pytest

# Load environment variables for tests before the settings module is imported
load_dotenv(Path(__file__).resolve().parents[1] / '.env.test')

from fieldquote.utils import redis_cache  # noqa: E402
from fieldquote.services.config_resolver import ConfigResolver  # noqa: E402
from fieldquote.services.config_source import StaticConfigSource  # noqa: E402


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    """Route the session config cache to an in-memory Redis."""
    fake = fakeredis.FakeStrictRedis(server=fakeredis.FakeServer())
    monkeypatch.setattr(redis_cache, "get_redis_client", lambda: fake)
    return fake


@pytest.fixture
def resolver():
    """Resolver that quotes from the static rate schedules only."""
    return ConfigResolver("test", StaticConfigSource(), fetch_enabled=False)
