"""Tests for client metadata captured from incoming requests."""
import uuid

from fastapi import Request

from auditlog.services.request_context import client_ip, client_metadata, new_correlation_id


def make_request(headers=None, client=("192.168.1.20", 51000)):
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/audit-logs",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestClientMetadata:

    def test_forwarded_for_first_hop(self):
        request = make_request({"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})

        assert client_ip(request) == "203.0.113.9"

    def test_peer_address_without_proxy(self):
        assert client_ip(make_request()) == "192.168.1.20"

    def test_no_client_at_all(self):
        assert client_ip(make_request(client=None)) is None
        assert client_metadata(None) == (None, None)

    def test_metadata_pairs_ip_and_user_agent(self):
        request = make_request({"User-Agent": "pytest-agent"})

        assert client_metadata(request) == ("192.168.1.20", "pytest-agent")


class TestCorrelationId:

    def test_fresh_uuid_each_call(self):
        first, second = new_correlation_id(), new_correlation_id()

        assert first != second
        assert str(uuid.UUID(first)) == first
