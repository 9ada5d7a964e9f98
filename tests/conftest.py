import pytest
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qs

import httpx

# Ensure src/ is in the python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from doctainer.cli.formatter import OutputFormatter, SEVERITY_RANKS
from doctainer.store.client import StoreClient

ETCD_TEST_URL = "http://etcd.test:4001"


class FakeEtcd:
    """
    In-memory stand-in for the etcd v2 key space behind an httpx.MockTransport.

    Every write bumps a global index and is appended to an event log that
    watches replay from ``waitIndex`` on. A watch with nothing to deliver
    raises ``httpx.ReadTimeout`` (or returns an empty body when
    ``empty_body_on_timeout`` is set), which is how a real long poll ends
    when the client deadline passes.
    """

    def __init__(self, start_index: int = 10) -> None:
        self.index = start_index
        self.keys: Dict[str, Tuple[str, int]] = {}
        self.events: List[dict] = []
        self.requests: List[httpx.Request] = []
        self.version_body = '{"etcdserver":"2.3.8","etcdcluster":"2.3.0"}'
        self.send_index_header = True
        self.send_index_in_error_body = True
        self.empty_body_on_timeout = False
        self.unreachable = False
        self.reject_writes = False
        self.on_watch: Optional[Callable[["FakeEtcd", httpx.Request], None]] = None

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def set(self, key: str, value: str) -> int:
        self.index += 1
        self.keys[key] = (value, self.index)
        self.events.append({"action": "set", "key": key, "value": value, "index": self.index})
        return self.index

    def delete(self, key: str) -> int:
        self.index += 1
        self.keys.pop(key, None)
        self.events.append({"action": "delete", "key": key, "value": None, "index": self.index})
        return self.index

    def bump(self, other_key: str = "unrelated") -> int:
        return self.set(other_key, "noise")

    def requests_for(self, path: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    def watch_requests(self) -> List[httpx.Request]:
        return [request for request in self.requests if request.url.params.get("wait") == "true"]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)

        path = request.url.path
        if path == "/version":
            return httpx.Response(200, text=self.version_body)

        if not path.startswith("/v2/keys/"):
            return httpx.Response(404, text="404 page not found")
        key = path[len("/v2/keys/"):]

        if request.method == "PUT":
            if self.reject_writes:
                return httpx.Response(
                    403,
                    json={"errorCode": 107, "message": "Root is read only", "cause": "/", "index": self.index},
                    headers=self._headers(),
                )
            value = parse_qs(request.content.decode())["value"][0]
            created = key not in self.keys
            modified_index = self.set(key, value)
            return httpx.Response(
                201 if created else 200,
                json={"action": "set", "node": self._node(key, value, modified_index)},
                headers=self._headers(),
            )

        if request.url.params.get("wait") == "true":
            if self.on_watch is not None:
                self.on_watch(self, request)
            wait_index = int(request.url.params["waitIndex"])
            for event in self.events:
                if event["key"] == key and event["index"] >= wait_index:
                    node = self._node(key, event["value"], event["index"])
                    if event["value"] is None:
                        node.pop("value")
                    return httpx.Response(200, json={"action": event["action"], "node": node}, headers=self._headers())
            if self.empty_body_on_timeout:
                return httpx.Response(200, text="", headers=self._headers())
            raise httpx.ReadTimeout("timed out", request=request)

        if key in self.keys:
            value, modified_index = self.keys[key]
            return httpx.Response(
                200,
                json={"action": "get", "node": self._node(key, value, modified_index)},
                headers=self._headers(),
            )

        error_body = {"errorCode": 100, "message": "Key not found", "cause": f"/{key}"}
        if self.send_index_in_error_body:
            error_body["index"] = self.index
        return httpx.Response(404, json=error_body, headers=self._headers())

    def _headers(self) -> Dict[str, str]:
        if not self.send_index_header:
            return {}
        return {"X-Etcd-Index": str(self.index)}

    @staticmethod
    def _node(key: str, value: Optional[str], modified_index: int) -> dict:
        return {"key": f"/{key}", "value": value, "modifiedIndex": modified_index, "createdIndex": modified_index}


@pytest.fixture
def fake_etcd():
    return FakeEtcd()


@pytest.fixture
def store(fake_etcd):
    """
    A StoreClient wired to the fake etcd, open for the duration of the test.
    """
    with StoreClient(base_url=ETCD_TEST_URL, transport=fake_etcd.transport()) as client:
        yield client


@pytest.fixture(autouse=True)
def reset_output_threshold():
    OutputFormatter.threshold = SEVERITY_RANKS["info"]
    yield
    OutputFormatter.threshold = SEVERITY_RANKS["info"]


@pytest.fixture(autouse=True)
def clean_store_env(monkeypatch):
    for name in ("ETCD_URL", "DOCTAINER_STORE_CONNECT_TIMEOUT", "DOCTAINER_STORE_REQUEST_TIMEOUT", "DOCTAINER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
