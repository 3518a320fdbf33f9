"""
Replica presence for every locally known file.

The coordinator's own directory decides which files exist. Each node's live
file list only answers "does this node hold it". A node that fails to answer
is treated as holding nothing, so its presence flags are all false, same as
a reachable node that is genuinely empty. The per-node listing summary in
ReplicaReport keeps the two cases apart for callers that care.
"""
import asyncio
import logging
from typing import Dict, List, Sequence

from pydantic import BaseModel

from coordinator.config import StorageNode, validate_roster
from coordinator.local_store import LocalFileStore
from coordinator.node_client import NodeListing, StorageNodeClient
from coordinator.replication import fan_out

logger = logging.getLogger(__name__)


class FileEntry(BaseModel):
    name: str
    presence: Dict[str, bool]


class NodeListingSummary(BaseModel):
    node_id: str
    reachable: bool
    file_count: int
    detail: str = ""


class ReplicaReport(BaseModel):
    files: List[FileEntry]
    nodes: List[NodeListingSummary]


def build_entries(local_names: Sequence[str], nodes: Sequence[StorageNode],
                  listings: Sequence[NodeListing]) -> List[FileEntry]:
    nodes = validate_roster(nodes)
    held: Dict[str, set] = {node.node_id: set() for node in nodes}
    for listing in listings:
        if listing.reachable and listing.node_id in held:
            held[listing.node_id] = set(listing.names)

    return [
        FileEntry(name=name, presence={node.node_id: name in held[node.node_id] for node in nodes})
        for name in local_names
    ]


def _unreachable(node: StorageNode, detail: str) -> NodeListing:
    return NodeListing(node_id=node.node_id, reachable=False, detail=detail)


class ReplicaStatusAggregator:
    def __init__(self, nodes: Sequence[StorageNode], store: LocalFileStore,
                 client: StorageNodeClient, timeout: float = 10.0):
        self.nodes = validate_roster(nodes)
        self.store = store
        self.client = client
        self.timeout = timeout

    async def list_with_replica_status(self) -> ReplicaReport:
        loop = asyncio.get_running_loop()
        local_names = await loop.run_in_executor(None, self.store.list_names)

        listings = await fan_out(self.nodes, self.client.list_names, _unreachable, self.timeout)
        for listing in listings:
            if not listing.reachable:
                logger.warning(f"Could not list files on {listing.node_id}: {listing.detail}")

        return ReplicaReport(
            files=build_entries(local_names, self.nodes, listings),
            nodes=[
                NodeListingSummary(
                    node_id=listing.node_id,
                    reachable=listing.reachable,
                    file_count=len(listing.names),
                    detail=listing.detail,
                )
                for listing in listings
            ],
        )
