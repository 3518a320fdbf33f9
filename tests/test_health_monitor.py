from coordinator.health_monitor import NodeHealthMonitor
from tests.fakes import LON, NY, SG, FakeNodeClient


def test_check_all_nodes_records_status(roster):
    monitor = NodeHealthMonitor(roster, FakeNodeClient(roster, down={NY.node_id}), check_interval_seconds=0)

    monitor.check_all_nodes()

    status = {n["node_id"]: n for n in monitor.get_health_status()["nodes"]}
    assert status[SG.node_id]["status"] == "healthy"
    assert status[SG.node_id]["response_time_ms"] is not None
    assert status[NY.node_id]["status"] == "unhealthy"
    assert status[NY.node_id]["error"] == "Connection refused"
    assert status[LON.node_id]["last_check"] is not None


def test_single_node_lookup(roster):
    monitor = NodeHealthMonitor(roster, FakeNodeClient(roster))

    assert monitor.get_health_status(LON.node_id)["status"] == "unknown"
    assert monitor.get_health_status("missing") is None


def test_disabled_monitor_does_not_schedule(roster):
    client = FakeNodeClient(roster)
    monitor = NodeHealthMonitor(roster, client, check_interval_seconds=0)

    monitor.start()
    monitor.shutdown()

    assert not monitor.scheduler.running
    assert client.calls == []


def test_enabled_monitor_runs_initial_check(roster):
    client = FakeNodeClient(roster)
    monitor = NodeHealthMonitor(roster, client, check_interval_seconds=3600)

    monitor.start()
    try:
        assert monitor.scheduler.running
        assert len(client.calls_for("ping")) == 3
    finally:
        monitor.shutdown()
