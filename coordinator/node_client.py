"""
HTTP client for a single storage node.

Every call is one blocking round trip. Failures are returned as values,
never raised, so callers fanning out to the roster keep going.
"""
import logging
from typing import List, Optional

import requests
from pydantic import BaseModel

from coordinator.config import StorageNode

logger = logging.getLogger(__name__)


class ReplicationOutcome(BaseModel):
    node_id: str
    succeeded: bool
    status_code: Optional[int] = None
    detail: str = ""


class NodeListing(BaseModel):
    node_id: str
    names: List[str] = []
    reachable: bool = True
    detail: str = ""


def _describe_error(e: Exception) -> str:
    if isinstance(e, requests.exceptions.Timeout):
        return "Timeout"
    if isinstance(e, requests.exceptions.ConnectionError):
        return "Connection refused"
    return str(e)


class StorageNodeClient:
    def __init__(self, timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()

    def _outcome(self, node: StorageNode, resp) -> ReplicationOutcome:
        body = resp.text.strip()
        return ReplicationOutcome(
            node_id=node.node_id,
            succeeded=200 <= resp.status_code < 300,
            status_code=resp.status_code,
            detail=body[:200],
        )

    def push(self, node: StorageNode, name: str, content: bytes) -> ReplicationOutcome:
        url = f"{node.base_url}/upload"
        try:
            resp = self.session.post(
                url,
                files={"file": (name, content, "application/octet-stream")},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            return ReplicationOutcome(node_id=node.node_id, succeeded=False, detail=_describe_error(e))
        return self._outcome(node, resp)

    def remove(self, node: StorageNode, name: str) -> ReplicationOutcome:
        url = f"{node.base_url}/delete"
        try:
            resp = self.session.get(url, params={"filename": name}, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            return ReplicationOutcome(node_id=node.node_id, succeeded=False, detail=_describe_error(e))
        return self._outcome(node, resp)

    def list_names(self, node: StorageNode) -> NodeListing:
        url = f"{node.base_url}/files"
        try:
            resp = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            return NodeListing(node_id=node.node_id, reachable=False, detail=_describe_error(e))

        if not 200 <= resp.status_code < 300:
            return NodeListing(node_id=node.node_id, reachable=False, detail=f"HTTP {resp.status_code}")

        try:
            payload = resp.json()
        except ValueError:
            return NodeListing(node_id=node.node_id, reachable=False, detail="Invalid JSON in file list")

        # An empty directory may be encoded as null
        if payload is None:
            payload = []
        if not isinstance(payload, list) or not all(isinstance(n, str) for n in payload):
            return NodeListing(node_id=node.node_id, reachable=False, detail="File list is not an array of names")

        return NodeListing(node_id=node.node_id, names=payload)

    def ping(self, node: StorageNode) -> ReplicationOutcome:
        try:
            resp = self.session.get(f"{node.base_url}/health", timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            return ReplicationOutcome(node_id=node.node_id, succeeded=False, detail=_describe_error(e))
        return self._outcome(node, resp)
