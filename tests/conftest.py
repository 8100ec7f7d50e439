import os

import pytest
from typer.testing import CliRunner
from pathlib import Path

from newscache.infrastructure.cache.data_cache import DataCacheManager
from newscache.infrastructure.config import settings


class FakeClock:
    """Controllable time source for expiry tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    return tmp_path / "data_cache"


@pytest.fixture
def cache(cache_dir: Path, clock: FakeClock):
    """DataCacheManager on a temp directory with a fake clock."""
    manager = DataCacheManager(cache_dir=cache_dir, clock=clock)
    yield manager
    manager.close()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch):
    """Keeps real config files and NEWSCACHE_* variables out of the tests."""
    for name in list(os.environ):
        if name.startswith(settings.ENV_PREFIX):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)
    settings.reset_configuration()
    settings.load_configuration(config_file=tmp_path / "missing.yaml")
    yield
    settings.clear_test_config()
    settings.reset_configuration()
