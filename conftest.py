import pytest

from fivetran_connector_sdk import Logging

from config import SyncConfig


@pytest.fixture(autouse=True)
def sdk_log_level(monkeypatch):
    """The SDK logger needs a level, which is normally set by the Fivetran runtime."""
    monkeypatch.setattr(Logging, "LOG_LEVEL", Logging.Level.INFO)


@pytest.fixture
def sync_config():
    return SyncConfig(reporting_timezone="Europe/Berlin", page_size=1000)
