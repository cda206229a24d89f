"""Shared fixtures: a small Epsagon span graph and a mocked backend."""

import json

import httpx
import pytest


def graph_payload():
    """An API gateway call into a two-step OpenWhisk sequence."""
    return {
        "data": [
            {
                "name": "api-gateway",
                "type": "http",
                "spans": [
                    {
                        "span_id": "s1",
                        "operation_name": "GET /api/run",
                        "start_time": 1600000000.0,
                        "duration": 120,
                        "tags": {
                            "http.host": "foo.com",
                            "http.scheme": "https",
                            "http.request.path": "/api/run",
                            "http.status_code": 200,
                        },
                        "references": [],
                    }
                ],
            },
            {
                "name": "openwhisk",
                "type": "openwhisk_action",
                "spans": [
                    {
                        "span_id": "s4",
                        "operation_name": "invoke",
                        "start_time": 1600000000.03,
                        "duration": 40,
                        "tags": {
                            "openwhisk.action.name": "step-b",
                            "openwhisk.namespace": "guest",
                            "openwhisk.action.activation_id": "act-3",
                        },
                        "references": [{"spanID": "s2"}],
                    },
                    {
                        "span_id": "s2",
                        "operation_name": "invoke",
                        "start_time": 1600000000.01,
                        "duration": 100,
                        "tags": {
                            "openwhisk.action.name": "seq",
                            "openwhisk.namespace": "guest",
                            "openwhisk.action.package": "demo",
                            "openwhisk.action.activation_id": "act-1",
                            "openwhisk.api_host": "https://ow.example.com",
                            "openwhisk.action.response": {
                                "result": {
                                    "statusCode": 200,
                                    "headers": {"x-last-activation-id": "act-3"},
                                }
                            },
                        },
                        "references": [{"spanID": "s1"}],
                    },
                    {
                        "span_id": "s3",
                        "operation_name": "invoke",
                        "start_time": 1600000000.02,
                        "duration": 30,
                        "tags": {
                            "openwhisk.action.name": "step-a",
                            "openwhisk.action.activation_id": "act-2",
                            "openwhisk.action.params": {"path": "/run", "n": 1},
                            "params": {"path": "/run", "n": 1},
                        },
                        "references": [{"spanID": "s2"}],
                    },
                ],
            },
        ]
    }


class MockBackend:
    """Records requests and answers them like the Epsagon API."""

    def __init__(self, search=None, graph=None, search_status=200, graph_status=200):
        self.search = [{"span_id": "s1", "app_name": "demo"}] if search is None else search
        self.graph = graph_payload() if graph is None else graph
        self.search_status = search_status
        self.graph_status = graph_status
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/search/query_events":
            if self.search_status != 200:
                return httpx.Response(self.search_status, text="search failed")
            return httpx.Response(200, json=self.search)
        if request.url.path == "/spans/graph":
            if self.graph_status != 200:
                return httpx.Response(self.graph_status, text="graph failed")
            return httpx.Response(200, json=self.graph)
        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def search_query(self, index: int = 0) -> dict:
        return json.loads(self.requests[index].url.params["query"])


@pytest.fixture
def backend():
    return MockBackend()


@pytest.fixture
def make_backend():
    return MockBackend


@pytest.fixture
def graph():
    return graph_payload()
