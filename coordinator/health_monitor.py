"""
Health monitoring for storage nodes.
Pings each node's /health endpoint periodically and keeps the last result.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Optional, Sequence

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from coordinator.config import StorageNode
from coordinator.node_client import StorageNodeClient

logger = logging.getLogger(__name__)


class NodeHealthStatus:
    """Health status for a single node."""
    def __init__(self, node_id: str):
        self.node_id = node_id
        self.status = "unknown"  # healthy, unhealthy, unknown
        self.last_check: Optional[datetime] = None
        self.response_time_ms: Optional[float] = None
        self.error_message: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "node_id": self.node_id,
            "status": self.status,
            "last_check": self.last_check.isoformat() if self.last_check else None,
            "response_time_ms": self.response_time_ms,
            "error": self.error_message,
        }


class NodeHealthMonitor:
    def __init__(self, nodes: Sequence[StorageNode], client: StorageNodeClient,
                 check_interval_seconds: int = 30):
        self.nodes = tuple(nodes)
        self.client = client
        self.check_interval = check_interval_seconds
        self.scheduler = BackgroundScheduler()
        self.node_health: Dict[str, NodeHealthStatus] = {
            node.node_id: NodeHealthStatus(node.node_id) for node in self.nodes
        }

    @property
    def enabled(self) -> bool:
        return self.check_interval > 0

    def start(self):
        if not self.enabled:
            logger.info("Health Monitor disabled")
            return
        self.scheduler.add_job(
            func=self.check_all_nodes,
            trigger=IntervalTrigger(seconds=self.check_interval),
            id="health_check_job",
            name="Node Health Check",
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(f"Health Monitor started. Checking every {self.check_interval}s")

        self.check_all_nodes()

    def shutdown(self):
        if self.scheduler.running:
            self.scheduler.shutdown(wait=True)
            logger.info("Health Monitor stopped")

    def check_all_nodes(self):
        for node in self.nodes:
            self.check_node(node)

    def check_node(self, node: StorageNode):
        health_status = self.node_health[node.node_id]

        start_time = time.monotonic()
        outcome = self.client.ping(node)
        elapsed_ms = (time.monotonic() - start_time) * 1000

        if outcome.succeeded:
            health_status.status = "healthy"
            health_status.response_time_ms = round(elapsed_ms, 2)
            health_status.error_message = None
            logger.debug(f"Node {node.node_id} is healthy ({elapsed_ms:.2f}ms)")
        else:
            health_status.status = "unhealthy"
            health_status.response_time_ms = None
            health_status.error_message = (
                f"HTTP {outcome.status_code}" if outcome.status_code is not None else outcome.detail
            )
            logger.warning(f"Node {node.node_id} is unhealthy: {health_status.error_message}")

        health_status.last_check = datetime.now(timezone.utc)

    def get_health_status(self, node_id: Optional[str] = None) -> Optional[Dict]:
        """Health for one node, or all nodes when node_id is None; None if unknown id."""
        if node_id:
            status = self.node_health.get(node_id)
            return status.to_dict() if status else None

        return {
            "nodes": [self.node_health[n.node_id].to_dict() for n in self.nodes],
            "check_interval_seconds": self.check_interval,
        }
