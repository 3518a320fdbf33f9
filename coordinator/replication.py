"""
Best-effort replication of uploaded objects to the storage node roster.

Local persistence decides whether an upload is accepted. Remote pushes and
removals run concurrently against every node; their outcomes are logged and
reported but never fail or roll back the request.
"""
import asyncio
import functools
import logging
from typing import Callable, List, Sequence, TypeVar

from pydantic import BaseModel, computed_field

from coordinator.config import StorageNode, validate_roster
from coordinator.local_store import LocalFileStore
from coordinator.node_client import ReplicationOutcome, StorageNodeClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Extra time granted on top of the transport timeout before a node call is
# abandoned by the join barrier.
TIMEOUT_GRACE_SECONDS = 1.0


class UploadResult(BaseModel):
    name: str
    size: int
    outcomes: List[ReplicationOutcome]

    @computed_field
    @property
    def replicated(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)


class DeleteResult(BaseModel):
    name: str
    local_removed: bool
    outcomes: List[ReplicationOutcome]

    @computed_field
    @property
    def removed(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)


async def fan_out(nodes: Sequence[StorageNode],
                  call: Callable[[StorageNode], T],
                  on_failure: Callable[[StorageNode, str], T],
                  timeout: float) -> List[T]:
    """
    Run call(node) for every node in parallel and wait for all of them.

    Results come back in roster order. A call that raises is replaced by
    on_failure(node, error). A call still running after the deadline is
    abandoned and replaced by on_failure(node, "abandoned after Ns, result
    unknown"). Its executor thread keeps running and may still complete the
    remote operation, so an abandoned call says nothing about the node's
    final state. No call ever cancels the others.
    """
    loop = asyncio.get_running_loop()
    deadline = timeout + TIMEOUT_GRACE_SECONDS

    async def run_one(node: StorageNode) -> T:
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, functools.partial(call, node)),
                timeout=deadline,
            )
        except asyncio.TimeoutError:
            detail = f"abandoned after {deadline:g}s, result unknown"
            logger.warning(f"Node {node.node_id}: {detail}")
            return on_failure(node, detail)
        except Exception as e:
            logger.error(f"Call to node {node.node_id} raised: {e}", exc_info=True)
            return on_failure(node, str(e))

    return list(await asyncio.gather(*(run_one(n) for n in nodes)))


def _failed(node: StorageNode, detail: str) -> ReplicationOutcome:
    return ReplicationOutcome(node_id=node.node_id, succeeded=False, detail=detail)


def _log_outcomes(action: str, name: str, outcomes: List[ReplicationOutcome]):
    for o in outcomes:
        if o.succeeded:
            logger.info(f"{action} {name} on {o.node_id}: status {o.status_code}, body {o.detail!r}")
        else:
            logger.warning(f"{action} {name} on {o.node_id} failed: status {o.status_code}, {o.detail}")


class ReplicationCoordinator:
    def __init__(self, nodes: Sequence[StorageNode], store: LocalFileStore,
                 client: StorageNodeClient, timeout: float = 10.0):
        self.nodes = validate_roster(nodes)
        self.store = store
        self.client = client
        self.timeout = timeout

    async def upload(self, name: str, content: bytes) -> UploadResult:
        """
        Persist locally, then push to every node.

        Raises LocalPersistError, before any remote call, when the local
        write fails.
        """
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self.store.save, name, content)
        logger.info(f"Stored {name} locally ({len(content)} bytes), replicating to {len(self.nodes)} node(s)")

        outcomes = await fan_out(
            self.nodes,
            lambda node: self.client.push(node, name, content),
            _failed,
            self.timeout,
        )
        _log_outcomes("Replicate", name, outcomes)

        result = UploadResult(name=name, size=len(content), outcomes=outcomes)
        logger.info(f"Upload of {name} complete: {result.replicated}/{len(self.nodes)} replicas acknowledged")
        return result

    async def delete(self, name: str) -> DeleteResult:
        loop = asyncio.get_running_loop()
        local_removed = await loop.run_in_executor(None, self.store.remove, name)

        outcomes = await fan_out(
            self.nodes,
            lambda node: self.client.remove(node, name),
            _failed,
            self.timeout,
        )
        _log_outcomes("Delete", name, outcomes)

        return DeleteResult(name=name, local_removed=local_removed, outcomes=outcomes)
