import pytest

from coordinator.config import CoordinatorSettings
from tests.fakes import LON, NY, SG


@pytest.fixture
def roster():
    return (SG, NY, LON)


@pytest.fixture
def settings(roster, tmp_path):
    return CoordinatorSettings(
        nodes=roster,
        upload_dir=str(tmp_path / "uploads"),
        node_timeout_seconds=2.0,
        health_check_interval=0,
    )
