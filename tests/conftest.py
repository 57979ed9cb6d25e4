"""Shared pytest fixtures for the exporter tests."""

import json
from pathlib import Path

import pytest
import responses

from triax_eoc_exporter.client import Client
from triax_eoc_exporter.transport import Transport

FIXTURES = Path(__file__).parent / "fixtures"

HOST = "192.0.2.10"
BASE = f"https://{HOST}"


def load_fixture(name):
    with open(FIXTURES / name, encoding="utf-8") as handle:
        return json.load(handle)


class ListSink:
    """Sink that keeps every sample in order."""

    def __init__(self):
        self.samples = []

    def add(self, sample):
        self.samples.append(sample)

    def named(self, name):
        return [sample for sample in self.samples if sample.name == name]


def add_v2_login(rsps, cookie="sessionId=abc123"):
    rsps.add(responses.POST, f"{BASE}/api/login/", json={"cookie": cookie, "message": ""})


def add_v2_status(rsps, nodes="v2/nodes_2.8.json", info="v2/info.json"):
    if isinstance(info, str):
        info = load_fixture(info)
    rsps.add(responses.GET, f"{BASE}/api/system/board", json=load_fixture("v2/board.json"))
    rsps.add(responses.GET, f"{BASE}/api/system/info", json=info)
    rsps.add(responses.GET, f"{BASE}/api/config/system/eoc", json=load_fixture("v2/eoc.json"))
    rsps.add(responses.GET, f"{BASE}/api/ghn/status", json=load_fixture("v2/ghn_status.json"))
    if isinstance(nodes, str):
        nodes = load_fixture(nodes)
    rsps.add(responses.GET, f"{BASE}/api/node/status/", json=nodes)


def add_v3_login(rsps, cookie="sessionid=xyz789; Path=/; HttpOnly"):
    rsps.add(
        responses.POST,
        f"{BASE}/cgi.lua/login",
        json={"level": 1, "status": True, "errorCode": 0, "message": ""},
        headers={"Set-Cookie": cookie},
    )


def add_v3_status(rsps):
    rsps.add(responses.GET, f"{BASE}/cgi.lua/capabilities", json=load_fixture("v3/capabilities.json"))
    rsps.add(
        responses.GET,
        f"{BASE}/cgi.lua/status?type=system,ghn,ethernet,remote",
        json=load_fixture("v3/status.json"),
    )


def login_calls(rsps, path="/api/login/"):
    return [call for call in rsps.calls if call.request.url.endswith(path)]


@pytest.fixture
def mock_responses():
    """Enable responses mock for HTTP requests."""
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def transport():
    return Transport(timeout=5)


@pytest.fixture
def client(transport):
    """Client for a controller at the test address."""
    return Client(HOST, "admin", "secret", transport=transport)


@pytest.fixture
def sink():
    return ListSink()
