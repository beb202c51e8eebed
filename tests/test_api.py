"""End-to-end tests for the HTTP surface against a temporary SQLite database."""

import httpx

from outbound_ops.api.dependencies import get_sheets_client_factory
from outbound_ops.core.config import get_settings
from outbound_ops.services.google_sheets import GoogleSheetsClient
from outbound_ops.services.http_cache import LH_TRIP_CACHE_CONTROL, NO_STORE


def use_env(monkeypatch, **values):
    for key, value in values.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()


def dispatch_row(**overrides):
    row = {
        "cluster_name": "Cluster A",
        "station_name": "Hub 1",
        "region": "NCR",
        "count_of_to": "2",
        "total_oid_loaded": "1,200",
        "dock_number": "D1",
        "dock_confirmed": True,
        "assigned_ops_id": "OPS001",
        "actual_docked_time": "2025-01-02T08:00:00Z",
        "lh_trip_number": "lt77",
    }
    row.update(overrides)
    return row


def sheets_factory(handler):
    def factory():
        return GoogleSheetsClient(
            sheet_id="sheet", api_key="key", sheet_range="A:Z", transport=httpx.MockTransport(handler)
        )

    return factory


# Health and middleware


def test_ping_echoes_request_id(api):
    response = api.client.get("/api/ping", headers={"X-Request-ID": "req-123"})

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.headers["X-Request-ID"] == "req-123"
    assert response.headers["Cache-Control"] == NO_STORE


def test_request_id_is_generated_when_missing(api):
    response = api.client.get("/api/ping")
    assert response.headers["X-Request-ID"]


def test_health_reports_app_and_version(api):
    response = api.client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["timestamp"].endswith("Z")
    assert {"app", "version"} <= body.keys()


# Auth


def test_me_requires_session(api):
    response = api.client.get("/api/auth/me")
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_me_returns_logged_in_user(api):
    api.login("OPS001", role="Admin")

    response = api.client.get("/api/auth/me")

    assert response.status_code == 200
    assert response.json()["user"]["ops_id"] == "OPS001"
    assert response.json()["user"]["role"] == "Admin"


def test_password_login_is_gone(api):
    assert api.client.post("/api/auth/login", json={}).json() == {"error": "ops_id is required"}
    response = api.client.post("/api/auth/login", json={"ops_id": "OPS001", "password": "x"})
    assert response.status_code == 410
    assert api.client.post("/api/auth/change-password", json={"ops_id": "OPS001"}).status_code == 410


def test_google_login_without_client_id_is_server_error(api):
    response = api.client.post("/api/auth/google", json={"id_token": "token"})
    assert response.status_code == 500
    assert response.json() == {"error": "Google client ID is not configured"}


def test_google_login_is_ip_rate_limited(api, monkeypatch):
    use_env(monkeypatch, AUTH_RATE_LIMIT_MAX_REQUESTS="1")
    headers = {"X-Forwarded-For": "203.0.113.9"}

    api.client.post("/api/auth/google", json={"id_token": "token"}, headers=headers)
    response = api.client.post("/api/auth/google", json={"id_token": "token"}, headers=headers)

    assert response.status_code == 429
    assert response.json() == {"error": "Too many requests"}
    assert response.headers["Retry-After"] == "60"


def test_unknown_body_keys_use_error_envelope(api):
    response = api.client.post("/api/auth/google", json={"id_token": "t", "extra": 1})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Extra inputs are not permitted"
    assert body["details"][0]["loc"] == ["body", "extra"]


def test_seatalk_handshake_logs_in(api):
    api.provision("OPS002", email="ops2@spxexpress.com")

    assert api.client.post("/api/auth/seatalk/session", json={"session_id": "qr-1"}).json() == {"success": True}
    assert api.client.get("/api/auth/seatalk/check", params={"session_id": "qr-1"}).json() is None

    callback = api.client.post(
        "/api/auth/seatalk/callback", json={"session_id": "qr-1", "email": "OPS2@spxexpress.com"}
    )
    assert callback.json() == {"success": True}
    check = api.client.get("/api/auth/seatalk/check", params={"session_id": "qr-1"})
    assert check.json() == {"email": "ops2@spxexpress.com", "authenticated": True}

    login = api.client.post("/api/auth/seatalk/login", json={"session_id": "qr-1"})
    assert login.status_code == 200
    assert login.json()["user"]["ops_id"] == "OPS002"
    assert get_settings().session_cookie_name in login.cookies


def test_seatalk_callback_for_unknown_session_is_404(api):
    response = api.client.post("/api/auth/seatalk/callback", json={"session_id": "nope", "email": "a@b.com"})
    assert response.status_code == 404


def test_seatalk_disabled_is_gone(api, monkeypatch):
    use_env(monkeypatch, SEATALK_ENABLED="false")
    response = api.client.post("/api/auth/seatalk/session", json={"session_id": "qr-1"})
    assert response.status_code == 410


def test_logout_clears_session(api):
    api.login("OPS001")

    assert api.client.post("/api/auth/logout").json() == {"success": True}
    assert api.client.get("/api/auth/me").status_code == 401


# Dispatch


def test_submit_creates_rows_and_lists_them(api):
    api.login("OPS001")

    response = api.client.post("/api/dispatch/submit", json={"rows": [dispatch_row(), dispatch_row(region="VIS")]})

    assert response.status_code == 200
    body = response.json()
    assert body["created_count"] == 2
    assert [(result["rowIndex"], result["status"]) for result in body["results"]] == [(0, "created"), (1, "created")]
    assert "errors" not in body["results"][0]

    listing = api.client.get("/api/dispatch", params={"region": "VIS", "fields": "region,lh_trip_number,bogus"})
    assert listing.json()["total"] == 1
    assert listing.json()["rows"] == [{"region": "VIS", "lh_trip_number": "LT77"}]


def test_submit_rejects_whole_batch_on_any_invalid_row(api):
    api.login("OPS001")

    response = api.client.post("/api/dispatch/submit", json={"rows": [dispatch_row(), {}]})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    failed = body["details"]["rows"]
    assert [row["rowIndex"] for row in failed] == [1]
    assert failed[0]["errors"]["cluster_name"] == "cluster_name is required"
    assert api.client.get("/api/dispatch").json()["total"] == 0


def test_submit_caps_batch_size(api):
    api.login("OPS001")
    response = api.client.post("/api/dispatch/submit", json={"rows": [dispatch_row()] * 11})
    assert response.status_code == 400


def test_submit_is_session_rate_limited(api, monkeypatch):
    use_env(monkeypatch, RATE_LIMIT_MAX_REQUESTS="2")
    api.login("OPS001")

    statuses = [
        api.client.post("/api/dispatch/submit", json={"rows": [{}]}).status_code for _ in range(3)
    ]
    blocked = api.client.post("/api/dispatch/submit", json={"rows": [{}]})

    assert statuses == [400, 400, 429]
    assert blocked.status_code == 429
    assert int(blocked.headers["Retry-After"]) >= 1


def test_verify_requires_staff_role(api):
    api.login("OPS001", role="FTE")
    response = api.client.post("/api/dispatch/verify", json={"rows": ["abc"]})
    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden"}


def test_verify_confirms_reports(api):
    api.login("OPS009", role="Data Team")
    api.client.post("/api/dispatch/submit", json={"rows": [dispatch_row()]})
    dispatch_id = api.client.get("/api/dispatch").json()["rows"][0]["dispatch_id"]

    response = api.client.post("/api/dispatch/verify", json={"rows": [dispatch_id]})

    assert response.status_code == 200
    assert response.json()["results"][0]["dispatch_ids"] == [dispatch_id]
    listed = api.client.get("/api/dispatch", params={"status": "Confirmed"}).json()
    assert listed["total"] == 1


# Sheets sync and lookups


def test_sync_requires_webhook_secret(api, monkeypatch):
    use_env(monkeypatch, WEBHOOK_SECRET="s3cret")
    body = {"rows": [{"Trip Number": "LT1"}]}

    assert api.client.post("/api/sync/google-sheets", json=body).status_code == 401
    assert api.client.post("/api/sync/google-sheets", json=body, headers={"X-Webhook-Secret": "s3cret"}).status_code == 200
    assert api.client.post("/api/sync/google-sheets?secret=s3cret", json=body).status_code == 200


def test_sync_disabled_is_forbidden(api, monkeypatch):
    use_env(monkeypatch, FEATURE_GOOGLE_SHEETS_SYNC="false")
    assert api.client.post("/api/sync/google-sheets", json={"rows": []}).status_code == 403


def test_sync_body_rows_and_lh_trip_lookup(api):
    body = {
        "headers": ["Trip Number", "TO Number", "TO Parcel Quantity", "To Dest Station Name"],
        "rows": [["lt1", "TO1", "10", "Hub A"], ["LT1", "TO2", "5", ""], ["", "TO3", "1", ""]],
    }

    response = api.client.post("/api/sync/google-sheets", json=body)
    assert response.json() == {"synced": 2, "ignored": 1}

    api.login("OPS001")
    lookup = api.client.get("/api/lookup/lh-trip", params={"lhTrip": " lt1 "})
    assert lookup.headers["Cache-Control"] == LH_TRIP_CACHE_CONTROL
    row = lookup.json()["row"]
    assert row["total_oid_loaded"] == 15
    assert row["count_of_to"] == "TO1, TO2"
    assert row["station_name"] == "Hub A"

    assert api.client.get("/api/lookup/lh-trip", params={"lh_trip": "LT404"}).json() == {"row": None}
    missing = api.client.get("/api/lookup/lh-trip")
    assert missing.status_code == 400
    assert missing.json() == {"error": "lhTrip is required"}


def test_sync_pulls_sheet_when_body_has_no_rows(api):
    def handler(request):
        return httpx.Response(200, json={"values": [["Trip Number"], ["LT5"], ["LT6"]]})

    api.client.app.dependency_overrides[get_sheets_client_factory] = lambda: sheets_factory(handler)

    response = api.client.post("/api/sync/google-sheets")

    assert response.json() == {"synced": 2, "ignored": 0}


def test_sync_reports_sheet_failures(api):
    api.client.app.dependency_overrides[get_sheets_client_factory] = lambda: sheets_factory(
        lambda request: httpx.Response(503)
    )

    response = api.client.post("/api/sync/google-sheets", json={})

    assert response.status_code == 500
    assert response.json() == {"error": "Google Sheets fetch failed: 503"}


# Hubs


def test_hub_lifecycle(api):
    api.login("OPS100", role="Admin")

    created = api.client.post("/api/hubs", json={"cluster_name": "North", "hub_name": "Hub N", "region": "NCR"})
    assert created.status_code == 200
    hub_id = created.json()["id"]

    updated = api.client.patch(f"/api/hubs/{hub_id}", json={"dock_number": "12"})
    assert updated.json()["dock_number"] == "12"
    assert updated.json()["hub_name"] == "Hub N"

    removed = api.client.delete(f"/api/hubs/{hub_id}")
    assert removed.json()["active"] is False

    listing = api.client.get("/api/hubs", params={"active": "true"})
    assert listing.json() == {"hubs": [], "total": 0}
    assert api.client.patch("/api/hubs/missing", json={"region": "X"}).status_code == 404


def test_hub_payload_must_not_be_empty(api):
    api.login("OPS100", role="Admin")
    response = api.client.post("/api/hubs", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "hub data is required"


def test_hub_writes_require_staff(api):
    api.login("OPS001", role="FTE")
    assert api.client.post("/api/hubs", json={"hub_name": "X"}).status_code == 403


def test_users_lookup_by_ops_id(api):
    api.login("OPS001")
    api.provision("OPS002")

    assert api.client.get("/api/users/ops/OPS002").json()["ops_id"] == "OPS002"
    missing = api.client.get("/api/users/ops/NOPE")
    assert missing.status_code == 404
    assert missing.json() == {"error": "User not found"}


def test_metrics_snapshot_needs_admin_or_token(api, monkeypatch):
    api.login("OPS001", role="FTE")
    assert api.client.get("/api/metrics").status_code == 403

    use_env(monkeypatch, METRICS_TOKEN="tok")
    response = api.client.get("/api/metrics", headers={"Authorization": "Bearer tok"})
    assert response.status_code == 200
    assert {"uptime_seconds", "requests_total", "errors_total"} <= response.json().keys()


def test_prometheus_counts_by_route_template(api):
    api.login("OPS100", role="Admin")
    api.client.patch("/api/hubs/does-not-exist", json={"region": "X"})

    scrape = api.client.get("/metrics/prometheus")

    assert scrape.status_code == 200
    assert 'route="/api/hubs/{hub_id}"' in scrape.text
    assert "does-not-exist" not in scrape.text


def fake_google(monkeypatch, claims=None, error=None):
    from outbound_ops.services import sessions

    def verify(token, client_id):
        assert client_id == "client-1"
        if error is not None:
            raise error
        return claims

    use_env(monkeypatch, GOOGLE_CLIENT_ID="client-1")
    monkeypatch.setattr(sessions, "_verify_google_token", verify)


def test_google_login_sets_session_cookie(api, monkeypatch):
    api.provision("OPS003", email="ops3@spxexpress.com")
    fake_google(monkeypatch, {"email": "OPS3@SPXEXPRESS.com", "email_verified": True})

    response = api.client.post("/api/auth/google", json={"id_token": "token"})

    assert response.status_code == 200
    assert response.json()["user"]["ops_id"] == "OPS003"
    assert "HttpOnly" in response.headers["set-cookie"]
    assert api.client.get("/api/auth/me").json()["user"]["ops_id"] == "OPS003"


def test_google_login_rejections(api, monkeypatch):
    api.provision("OPS004", email="ops4@spxexpress.com")

    fake_google(monkeypatch, error=ValueError("Token expired"))
    assert api.client.post("/api/auth/google", json={"id_token": "t"}).json() == {"error": "Token expired"}

    fake_google(monkeypatch, {"email": "ops4@spxexpress.com", "email_verified": False})
    assert api.client.post("/api/auth/google", json={"id_token": "t"}).status_code == 401

    fake_google(monkeypatch, {"email": "someone@gmail.com", "email_verified": True})
    denied = api.client.post("/api/auth/google", json={"id_token": "t"})
    assert denied.status_code == 403
    assert denied.json() == {"error": "Email domain is not allowed"}

    fake_google(monkeypatch, {"email": "ghost@spxexpress.com", "email_verified": True})
    unknown = api.client.post("/api/auth/google", json={"id_token": "t"})
    assert unknown.json() == {"error": "User not provisioned"}


def test_kpi_pages_are_newest_first_and_cached(api):
    import datetime as dt
    from decimal import Decimal

    from outbound_ops.models import KpiMdtModel
    from outbound_ops.services.http_cache import KPI_CACHE_CONTROL

    async def seed(session):
        session.add_all(
            [
                KpiMdtModel(date=dt.date(2025, 1, 1), mdt_score=Decimal("91.50"), target=Decimal("95")),
                KpiMdtModel(date=dt.date(2025, 1, 2), mdt_score=Decimal("97.25"), target=Decimal("95")),
            ]
        )
        await session.commit()

    api.run(seed)
    api.login("OPS001")

    first = api.client.get("/api/kpi/mdt", params={"limit": "1"})
    assert first.headers["Cache-Control"] == KPI_CACHE_CONTROL
    body = first.json()
    assert body["total"] == 2
    assert body["limit"] == 1
    assert body["rows"] == [{"date": "2025-01-02", "mdt_score": 97.25, "target": 95.0}]

    clamped = api.client.get("/api/kpi/mdt", params={"limit": "99999"}).json()
    assert clamped["limit"] == 500

    ranged = api.client.get("/api/kpi/mdt", params={"startDate": "2025-01-02"}).json()
    assert ranged["total"] == 1
