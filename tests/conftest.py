"""Shared fixtures: a fake Azure DevOps server served through httpx.MockTransport."""

import asyncio
import json
from typing import Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from agent_backlog.schemas import BacklogGraph
from ado_export import AdoClient, AdoConfig


ORG_URL = "https://dev.azure.com/contoso"


class FakeAdo:
    """In-memory Azure DevOps work item API.

    Every request is recorded in ``calls`` as a readable tuple:
    ("create", kind, title), ("link_parent", child_title, parent_title),
    ("link_dependency", from_title, to_title) or ("project", name).
    ``fail`` maps a call tuple to an HTTP status (or None to succeed);
    ``disconnect`` drops the connection for the calls it returns True for.
    """

    def __init__(self, link_delay: float = 0.0):
        self.calls: List[Tuple] = []
        self.requests: List[httpx.Request] = []
        self.titles: Dict[int, str] = {}
        self.fail: Callable[[Tuple], Optional[int]] = lambda call: None
        self.disconnect: Callable[[Tuple], bool] = lambda call: False
        self.error_body: Dict = {"message": "Boom"}
        self.link_delay = link_delay
        self.in_flight = 0
        self.max_in_flight = 0
        self._next_id = 100

    def item_url(self, item_id: int) -> str:
        return f"{ORG_URL}/_apis/wit/workItems/{item_id}"

    def _title_from_url(self, url: str) -> str:
        return self.titles[int(url.rsplit("/", 1)[1])]

    def _record(self, call: Tuple, request: httpx.Request) -> None:
        self.calls.append(call)
        if self.disconnect(call):
            raise httpx.ConnectError("Connection reset by peer", request=request)

    def calls_of(self, op: str) -> List[Tuple]:
        return [c for c in self.calls if c[0] == op]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET" and "/_apis/projects/" in path:
            name = path.rsplit("/", 1)[1]
            call = ("project", name)
            self._record(call, request)
            status = self.fail(call)
            if status:
                return httpx.Response(status, json=self.error_body)
            return httpx.Response(200, json={"id": "p-1", "name": name})

        if request.method == "POST" and "/_apis/wit/workitems/$" in path:
            kind = path.rsplit("$", 1)[1]
            document = json.loads(request.content)
            title = document[0]["value"]
            call = ("create", kind, title)
            self._record(call, request)
            status = self.fail(call)
            if status:
                return httpx.Response(status, json=self.error_body)
            item_id = self._next_id
            self._next_id += 1
            self.titles[item_id] = title
            return httpx.Response(200, json={"id": item_id, "url": self.item_url(item_id)})

        if request.method == "PATCH":
            relation = json.loads(request.content)[0]["value"]
            op = "link_parent" if relation["rel"].endswith("Hierarchy-Reverse") else "link_dependency"
            call = (op, self._title_from_url(path), self._title_from_url(relation["url"]))
            self._record(call, request)
            if op == "link_dependency":
                self.in_flight += 1
                self.max_in_flight = max(self.max_in_flight, self.in_flight)
                try:
                    await asyncio.sleep(self.link_delay)
                finally:
                    self.in_flight -= 1
            status = self.fail(call)
            if status:
                return httpx.Response(status, json=self.error_body)
            return httpx.Response(200, json={"id": 1})

        return httpx.Response(404, json={"message": f"Unexpected {request.method} {path}"})


@pytest.fixture
def fake_ado():
    return FakeAdo()


@pytest.fixture
def ado_client(fake_ado):
    return AdoClient(timeout=5.0, transport=httpx.MockTransport(fake_ado.handler))


@pytest.fixture
def ado_config():
    return AdoConfig(org_url=ORG_URL + "/", project="Shop", pat="secret-pat")


def make_story(story_id: str, deps=None, value: str = "Medium") -> dict:
    return {
        "id": story_id,
        "story": f"{story_id} story",
        "acceptance_criteria": [f"{story_id} works"],
        "business_value": value,
        "risk_impact": "Low",
        "dependencies": deps or [],
    }


@pytest.fixture
def checkout_backlog():
    """One Epic "Checkout" > one Feature "Cart" > S1, S2 (S2 depends on S1)."""
    return BacklogGraph.model_validate([
        {
            "epic": "Checkout",
            "epic_description": "Let customers pay",
            "features": [
                {
                    "feature": "Cart",
                    "feature_description": "Manage the cart",
                    "user_stories": [make_story("S1"), make_story("S2", ["S1"])],
                }
            ],
        }
    ])
