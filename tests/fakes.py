import threading

from coordinator.config import StorageNode
from coordinator.node_client import NodeListing, ReplicationOutcome


SG = StorageNode(node_id="9001", base_url="http://sg.example:9001", latitude=1.3521, longitude=103.8198)
NY = StorageNode(node_id="9002", base_url="http://ny.example:9002", latitude=40.7128, longitude=-74.0060)
LON = StorageNode(node_id="9003", base_url="http://lon.example:9003", latitude=51.5074, longitude=-0.1278)


class FakeNodeClient:
    """In-memory stand-in for StorageNodeClient; nodes in `down` fail every call."""

    def __init__(self, nodes, down=()):
        self.held = {n.node_id: set() for n in nodes}
        self.down = set(down)
        self.calls = []
        self.lock = threading.Lock()

    def _record(self, op, node, name=None):
        with self.lock:
            self.calls.append((op, node.node_id, name))

    def _unreachable(self, node):
        return ReplicationOutcome(node_id=node.node_id, succeeded=False, detail="Connection refused")

    def push(self, node, name, content):
        self._record("push", node, name)
        if node.node_id in self.down:
            return self._unreachable(node)
        self.held[node.node_id].add(name)
        return ReplicationOutcome(node_id=node.node_id, succeeded=True, status_code=200, detail=f"OK|{name}")

    def remove(self, node, name):
        self._record("remove", node, name)
        if node.node_id in self.down:
            return self._unreachable(node)
        if name not in self.held[node.node_id]:
            return ReplicationOutcome(node_id=node.node_id, succeeded=False, status_code=404, detail="File not found")
        self.held[node.node_id].discard(name)
        return ReplicationOutcome(node_id=node.node_id, succeeded=True, status_code=200, detail=f"Deleted {name}")

    def list_names(self, node):
        self._record("list", node)
        if node.node_id in self.down:
            return NodeListing(node_id=node.node_id, reachable=False, detail="Connection refused")
        return NodeListing(node_id=node.node_id, names=sorted(self.held[node.node_id]))

    def ping(self, node):
        self._record("ping", node)
        if node.node_id in self.down:
            return self._unreachable(node)
        return ReplicationOutcome(node_id=node.node_id, succeeded=True, status_code=200, detail="ok")

    def calls_for(self, op):
        return [c for c in self.calls if c[0] == op]


class FakeResponse:
    def __init__(self, status_code=200, text="", payload=None, bad_json=False):
        self.status_code = status_code
        self.text = text
        self._payload = payload
        self._bad_json = bad_json

    def json(self):
        if self._bad_json:
            raise ValueError("Expecting value")
        return self._payload


class FakeSession:
    """Records requests and answers from a queue of responses or exceptions."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def _next(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        result = self.responses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def get(self, url, **kwargs):
        return self._next("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._next("POST", url, **kwargs)
