import pytest
import respx

from services.authgate.config import GateConfig
from services.authgate.tests.support import BACKEND_URL, ProtectedSite, make_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("WWWHISPER_URL", "WWWHISPER_DISABLE", "WWWHISPER_INJECT_LOGOUT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def gate_config() -> GateConfig:
    return make_config()


@pytest.fixture
def site() -> ProtectedSite:
    return ProtectedSite()


@pytest.fixture
def backend():
    """respx router standing in for the wwwhisper backend."""
    with respx.mock(base_url=BACKEND_URL, assert_all_called=False) as mock:
        yield mock
