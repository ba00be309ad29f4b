"""ComplaintApiClient against an httpx MockTransport"""
import json

import httpx
import pytest

from complaint_sync.config.settings import Settings
from complaint_sync.domain.enums import ComplaintStatus
from complaint_sync.domain.errors import (
    ComplaintFetchError, ComplaintNotFoundError, ComplaintWriteError, PermissionDeniedError
)
from complaint_sync.repositories.complaint_api import (
    ComplaintApiClient, extract_complaint_list, extract_complaint_record
)

from tests.conftest import make_complaint_data

pytestmark = pytest.mark.anyio

BASE_URL = "http://api.test/api"


def client_for(handler, token="tok-123") -> ComplaintApiClient:
    return ComplaintApiClient(BASE_URL, token=token, transport=httpx.MockTransport(handler))


class TestExtractComplaintList:

    @pytest.mark.parametrize("payload", [
        [{"_id": "c1"}],
        {"data": [{"_id": "c1"}]},
        {"data": {"data": [{"_id": "c1"}]}},
        {"data": {"complaints": [{"_id": "c1"}]}},
        {"complaints": [{"_id": "c1"}]},
        {"results": [{"_id": "c1"}]},
        {"items": [{"_id": "c1"}]},
        {"success": True, "data": {"items": [{"_id": "c1"}], "total": 1}},
    ])
    def test_known_envelopes(self, payload):
        assert extract_complaint_list(payload) == [{"_id": "c1"}]

    def test_empty_list_is_valid(self):
        assert extract_complaint_list({"data": []}) == []

    @pytest.mark.parametrize("payload", [{"message": "ok"}, {"data": {"total": 0}}, "text", None])
    def test_unknown_envelope_raises(self, payload):
        with pytest.raises(ComplaintFetchError):
            extract_complaint_list(payload)

    def test_extract_record(self):
        assert extract_complaint_record({"data": {"complaint": {"_id": "c1"}}}) == {"_id": "c1"}
        assert extract_complaint_record({"data": {"_id": "c1"}}) == {"_id": "c1"}
        assert extract_complaint_record({"_id": "c1"}) == {"_id": "c1"}
        assert extract_complaint_record({"message": "updated"}) is None


class TestListComplaints:

    async def test_sends_auth_and_unwraps(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"data": {"complaints": [make_complaint_data("c1")]}})

        complaints = await client_for(handler).list_complaints()

        assert [c["_id"] for c in complaints] == ["c1"]
        assert seen["url"] == "http://api.test/api/complaints"
        assert seen["auth"] == "Bearer tok-123"

    async def test_limit_param_and_no_token(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["params"] = dict(request.url.params)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json=[])

        assert await client_for(handler, token=None).list_complaints(limit=200) == []
        assert seen == {"params": {"limit": "200"}, "auth": None}

    async def test_non_200_raises_fetch_error(self):
        client = client_for(lambda request: httpx.Response(503, text="maintenance"))

        with pytest.raises(ComplaintFetchError) as exc_info:
            await client.list_complaints()
        assert exc_info.value.details["status_code"] == 503

    async def test_transport_error_raises_fetch_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(ComplaintFetchError):
            await client_for(handler).list_complaints()

    async def test_non_json_body(self):
        client = client_for(lambda request: httpx.Response(200, text="<html>"))

        with pytest.raises(ComplaintFetchError):
            await client.list_complaints()


class TestUpdateStatus:

    async def test_patch_body_and_confirmation(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": make_complaint_data("c1", status="resolved")})

        record = await client_for(handler).update_status("c1", ComplaintStatus.RESOLVED, "fixed")

        assert seen == {
            "method": "PATCH",
            "path": "/api/complaints/c1/status",
            "body": {"status": "resolved", "note": "fixed"},
        }
        assert record["status"] == "resolved"

    async def test_no_content(self):
        client = client_for(lambda request: httpx.Response(204))
        assert await client.update_status("c1", ComplaintStatus.CLOSED) is None

    @pytest.mark.parametrize("status_code,error", [
        (404, ComplaintNotFoundError),
        (403, PermissionDeniedError),
        (500, ComplaintWriteError),
        (400, ComplaintWriteError),
    ])
    async def test_error_mapping(self, status_code, error):
        client = client_for(lambda request: httpx.Response(status_code, json={"message": "nope"}))

        with pytest.raises(error):
            await client.update_status("c1", ComplaintStatus.CLOSED)

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(ComplaintWriteError):
            await client_for(handler).update_status("c1", ComplaintStatus.CLOSED)


def test_from_settings():
    settings = Settings(api_base_url="https://example.org/api/", api_token="abc", request_timeout_seconds=5)
    client = ComplaintApiClient.from_settings(settings)

    assert client.base_url == "https://example.org/api"
