"""
Tests for the MeSH exact-match lookup client.
"""

import asyncio

import httpx

from catto.retrieval.mesh_client import MeshClient


def make_client(handler) -> MeshClient:
    return MeshClient(
        lookup_url="https://mesh.test/lookup/descriptor",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


def test_confirmed_descriptor_is_valid():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(dict(request.url.params))
        return httpx.Response(
            200, json=[{"resource": "http://id.nlm.nih.gov/mesh/D005372", "label": "Fires"}]
        )

    assert asyncio.run(make_client(handler).is_valid_descriptor("Fires")) is True
    assert seen == {"label": "Fires", "match": "exact", "limit": "1"}


def test_empty_answer_is_invalid():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[])

    assert asyncio.run(make_client(handler).is_valid_descriptor("Airway Fire")) is False


def test_failures_are_reported_as_invalid():
    def server_error(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    def offline(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("offline")

    def not_json(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html/>")

    for handler in (server_error, offline, not_json):
        assert asyncio.run(make_client(handler).is_valid_descriptor("Fires")) is False


def test_blank_term_skips_lookup():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("unexpected request")

    assert asyncio.run(make_client(handler).is_valid_descriptor("")) is False
