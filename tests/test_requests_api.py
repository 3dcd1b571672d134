"""서비스 요청 API 테스트 — 상태 코드 및 권한.

Service request API tests through the FastAPI app. The DB session and the
service's store are in-memory; tokens are real JWTs.
"""

from io import BytesIO
from uuid import uuid4

import pytest
from httpx import AsyncClient
from openpyxl import load_workbook

from app.models.service_request import ServiceRequestStatus
from app.services.captcha_service import CaptchaVerifier
from tests.conftest import auth_header
from tests.fakes import make_request

BASE = "/api/requests"

NEW_REQUEST = {
    "category": "Pothole",
    "description": "Deep pothole in front of the school entrance",
    "address": "123 Main St, Downtown, Calgary, AB",
    "latitude": 51.0447,
    "longitude": -114.0719,
}


class RejectingCaptcha(CaptchaVerifier):
    """항상 거부하는 캡차 — 호출 인자 기록."""

    def __init__(self) -> None:
        super().__init__(secret_key="test-secret")
        self.calls: list[tuple] = []

    async def verify(self, token, expected_action) -> bool:
        self.calls.append((token, expected_action))
        return False


async def test_health(client: AsyncClient):
    res = await client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


# ===== 생성 =====

class TestCreate:

    async def test_guest_create(self, client: AsyncClient, db):
        res = await client.post(BASE, json=NEW_REQUEST)
        assert res.status_code == 201
        data = res.json()
        assert data["status"] == "Open"
        assert data["neighborhood"] == "Downtown"
        assert data["submitted_by_id"] is None
        assert data["upvote_count"] == 0
        db.commit.assert_awaited()

    async def test_authenticated_create(self, client: AsyncClient, citizen, citizen_token):
        res = await client.post(BASE, json=NEW_REQUEST, headers=auth_header(citizen_token))
        assert res.status_code == 201
        assert res.json()["submitted_by_id"] == str(citizen.id)

    async def test_invalid_token_is_treated_as_guest(self, client: AsyncClient):
        res = await client.post(BASE, json=NEW_REQUEST, headers=auth_header("not-a-jwt"))
        assert res.status_code == 201
        assert res.json()["submitted_by_id"] is None

    async def test_validation_error(self, client: AsyncClient):
        res = await client.post(BASE, json={**NEW_REQUEST, "description": "short"})
        assert res.status_code == 422

    async def test_unknown_category(self, client: AsyncClient):
        res = await client.post(BASE, json={**NEW_REQUEST, "category": "Volcano"})
        assert res.status_code == 422

    async def test_captcha_rejected(self, client: AsyncClient, store):
        from app.api.deps import get_captcha_verifier
        from app.main import app

        rejecting = RejectingCaptcha()
        app.dependency_overrides[get_captcha_verifier] = lambda: rejecting

        res = await client.post(BASE, json={**NEW_REQUEST, "captcha_token": "tok"})

        assert res.status_code == 400
        assert rejecting.calls == [("tok", "submit_request")]
        assert store.requests == {}


# ===== 조회 =====

class TestList:

    async def test_list_with_filters_and_page_size(self, client: AsyncClient, store):
        store.put(*[make_request() for _ in range(3)])
        store.put(make_request(status=ServiceRequestStatus.CLOSED))

        res = await client.get(BASE, params={"status": "Open", "pageSize": 2, "page": 1})

        assert res.status_code == 200
        data = res.json()
        assert data["total_count"] == 3
        assert data["page_size"] == 2
        assert data["total_pages"] == 2
        assert len(data["items"]) == 2

    async def test_invalid_status_filter(self, client: AsyncClient):
        res = await client.get(BASE, params={"status": "Pending"})
        assert res.status_code == 422

    async def test_unknown_sort_key_uses_default(self, client: AsyncClient, store):
        store.put(make_request())
        res = await client.get(BASE, params={"sort": "bogus"})
        assert res.status_code == 200

    async def test_has_upvoted_follows_forwarded_ip(self, client: AsyncClient, store):
        request = make_request()
        store.put(request)
        await client.post(f"{BASE}/{request.id}/upvote", headers={"X-Forwarded-For": "198.51.100.8, 10.0.0.1"})

        mine = await client.get(BASE, headers={"X-Forwarded-For": "198.51.100.8"})
        other = await client.get(BASE, headers={"X-Forwarded-For": "198.51.100.9"})

        assert mine.json()["items"][0]["has_upvoted"] is True
        assert other.json()["items"][0]["has_upvoted"] is False
        assert other.json()["items"][0]["upvote_count"] == 1

    async def test_my_requests_requires_login(self, client: AsyncClient):
        res = await client.get(f"{BASE}/my")
        assert res.status_code == 401

    async def test_my_requests(self, client: AsyncClient, store, citizen, other_citizen, citizen_token):
        mine = make_request(submitted_by_id=citizen.id)
        store.put(mine, make_request(submitted_by_id=other_citizen.id))

        res = await client.get(f"{BASE}/my", headers=auth_header(citizen_token))

        assert res.status_code == 200
        assert [item["id"] for item in res.json()["items"]] == [str(mine.id)]

    async def test_get_by_id(self, client: AsyncClient, store):
        request = make_request()
        store.put(request)
        res = await client.get(f"{BASE}/{request.id}")
        assert res.status_code == 200
        assert res.json()["id"] == str(request.id)

    async def test_get_missing(self, client: AsyncClient):
        res = await client.get(f"{BASE}/{uuid4()}")
        assert res.status_code == 404


# ===== 상태 변경 =====

class TestUpdateStatus:

    async def test_staff_updates_status(self, client: AsyncClient, store, dispatcher, notifier, citizen, staff_token, db):
        request = make_request(submitted_by_id=citizen.id)
        store.put(request)

        res = await client.put(
            f"{BASE}/{request.id}/status", json={"status": "InProgress"}, headers=auth_header(staff_token),
        )
        await dispatcher.drain()

        assert res.status_code == 200
        assert res.json()["status"] == "InProgress"
        assert notifier.calls[0]["contact"] == citizen.email
        db.commit.assert_awaited_once()

    async def test_admin_allowed(self, client: AsyncClient, store, admin_token):
        request = make_request()
        store.put(request)
        res = await client.put(
            f"{BASE}/{request.id}/status", json={"status": "Closed"}, headers=auth_header(admin_token),
        )
        assert res.status_code == 200

    async def test_citizen_forbidden(self, client: AsyncClient, store, citizen_token):
        request = make_request()
        store.put(request)
        res = await client.put(
            f"{BASE}/{request.id}/status", json={"status": "Closed"}, headers=auth_header(citizen_token),
        )
        assert res.status_code == 403
        assert store.requests[request.id].status == ServiceRequestStatus.OPEN

    async def test_guest_unauthorized(self, client: AsyncClient, store):
        res = await client.put(f"{BASE}/{uuid4()}/status", json={"status": "Closed"})
        assert res.status_code == 401

    async def test_missing_request(self, client: AsyncClient, staff_token):
        res = await client.put(
            f"{BASE}/{uuid4()}/status", json={"status": "Closed"}, headers=auth_header(staff_token),
        )
        assert res.status_code == 404

    async def test_invalid_status(self, client: AsyncClient, store, staff_token):
        request = make_request()
        store.put(request)
        res = await client.put(
            f"{BASE}/{request.id}/status", json={"status": "Done"}, headers=auth_header(staff_token),
        )
        assert res.status_code == 422


# ===== 추천 =====

class TestUpvoteApi:

    async def test_upvote_then_duplicate(self, client: AsyncClient, store, citizen_token):
        request = make_request()
        store.put(request)
        url = f"{BASE}/{request.id}/upvote"

        first = await client.post(url, headers=auth_header(citizen_token))
        second = await client.post(url, headers=auth_header(citizen_token))

        assert first.status_code == 200
        assert first.json()["upvote_count"] == 1
        assert first.json()["has_upvoted"] is True
        assert second.status_code == 409

    async def test_upvote_missing_request(self, client: AsyncClient):
        res = await client.post(f"{BASE}/{uuid4()}/upvote")
        assert res.status_code == 409

    async def test_remove_upvote(self, client: AsyncClient, store):
        request = make_request()
        store.put(request)
        url = f"{BASE}/{request.id}/upvote"
        await client.post(url)

        res = await client.delete(url)

        assert res.status_code == 200
        assert res.json()["upvote_count"] == 0
        assert res.json()["has_upvoted"] is False

    async def test_remove_without_upvote(self, client: AsyncClient, store):
        request = make_request()
        store.put(request)
        res = await client.delete(f"{BASE}/{request.id}/upvote")
        assert res.status_code == 404


# ===== 통계 =====

class TestStats:

    async def test_staff_stats(self, client: AsyncClient, store, staff_token):
        store.put(make_request(), make_request(status=ServiceRequestStatus.CLOSED))

        res = await client.get(f"{BASE}/stats", headers=auth_header(staff_token))

        assert res.status_code == 200
        data = res.json()
        assert data["total_requests"] == 2
        assert data["by_status"] == {"Open": 1, "Closed": 1}
        assert data["top_neighborhoods"][0] == {"neighborhood": "Downtown", "count": 2}

    @pytest.mark.parametrize("path", ["stats", "stats/export"])
    async def test_citizen_forbidden(self, client: AsyncClient, citizen_token, path):
        res = await client.get(f"{BASE}/{path}", headers=auth_header(citizen_token))
        assert res.status_code == 403

    async def test_guest_unauthorized(self, client: AsyncClient):
        res = await client.get(f"{BASE}/stats")
        assert res.status_code == 401

    async def test_export(self, client: AsyncClient, store, staff_token):
        store.put(make_request())

        res = await client.get(f"{BASE}/stats/export", headers=auth_header(staff_token))

        assert res.status_code == 200
        assert res.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert "service_request_stats.xlsx" in res.headers["content-disposition"]
        wb = load_workbook(BytesIO(res.content))
        assert wb["Summary"]["B2"].value == 1
