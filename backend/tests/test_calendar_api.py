import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.domain.calendar import add_days, horizon_end
from app.main import app
from app.services.ical_service import FetchResult, IcalService

from conftest import make_ical, vevent

API = "/api/v1"


@pytest.fixture()
def client(db_session):
    # lifespan(스케줄러)은 띄우지 않음
    return TestClient(app)


@pytest.fixture()
def prop(client):
    response = client.post(
        f"{API}/properties/",
        json={"property_code": "PV-B", "name": "Pine Valley Cabin", "host_id": "host-1"},
    )
    assert response.status_code == 201
    return "PV-B"


@pytest.fixture()
def fake_fetch(monkeypatch):
    feeds = {}

    async def _fetch(self, url, etag=None, last_modified=None):
        if url not in feeds:
            return FetchResult(ok=False, status_code=404, error="Failed to fetch calendar: 404 Not Found")
        return FetchResult(ok=True, text=feeds[url], status_code=200)

    monkeypatch.setattr(IcalService, "fetch_ical", _fetch)
    return feeds


def test_unknown_property_is_404(client):
    response = client.get(f"{API}/calendar/NOPE/available")

    assert response.status_code == 404
    assert response.json()["detail"] == "Property not found: NOPE"


def test_duplicate_property_is_rejected(client, prop):
    response = client.post(f"{API}/properties/", json={"property_code": prop, "name": "Again"})

    assert response.status_code == 400


def test_manual_block_validation_error(client, prop):
    response = client.post(
        f"{API}/calendar/{prop}/manual-blocks",
        json={"start_date": "2026-01-05", "end_date": "2026-01-04"},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "end must be after start"
    assert client.get(f"{API}/calendar/{prop}/manual-blocks").json() == []


def test_manual_block_with_year_zero_is_400(client, prop):
    response = client.post(
        f"{API}/calendar/{prop}/manual-blocks",
        json={"start_date": "0000-01-01", "end_date": "0000-01-05"},
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Dates must be in YYYY-MM-DD format"


def test_manual_block_lifecycle(client, prop):
    created = client.post(
        f"{API}/calendar/{prop}/manual-blocks",
        json={"start_date": "2026-02-10", "end_date": "2026-02-12", "note": "Painting"},
    )
    assert created.status_code == 201
    block = created.json()
    assert (block["start_date"], block["end_date"], block["note"]) == ("2026-02-10", "2026-02-12", "Painting")

    blocked = client.get(f"{API}/calendar/{prop}/blocked", params={"date": "2026-02-11"}).json()
    assert blocked["blocked"] is True
    assert blocked["blocking_periods"][0]["source"] == "manual"
    assert blocked["blocking_periods"][0]["summary"] == "Painting"

    checkout_day = client.get(f"{API}/calendar/{prop}/blocked", params={"date": "2026-02-12"}).json()
    assert checkout_day["blocked"] is False

    assert client.delete(f"{API}/calendar/OTHER/manual-blocks/{block['id']}").status_code == 404
    assert client.delete(f"{API}/calendar/{prop}/manual-blocks/{block['id'] + 50}").status_code == 404
    assert client.delete(f"{API}/calendar/{prop}/manual-blocks/{block['id']}").status_code == 200
    assert client.get(f"{API}/calendar/{prop}/manual-blocks").json() == []


def test_blocked_rejects_bad_date(client, prop):
    response = client.get(f"{API}/calendar/{prop}/blocked", params={"date": "02/11/2026"})

    assert response.status_code == 400


def test_available_periods_around_manual_block(client, prop):
    today = settings.today()
    start, end = add_days(today, 10), add_days(today, 20)
    client.post(
        f"{API}/calendar/{prop}/manual-blocks",
        json={"start_date": start.ymd, "end_date": end.ymd},
    )

    body = client.get(f"{API}/calendar/{prop}/available").json()

    assert body["today"] == today.ymd
    assert body["horizon_months"] == 3
    assert body["available_periods"] == [
        {"start": today.ymd, "end": start.ymd},
        {"start": end.ymd, "end": horizon_end(today, 3).ymd},
    ]


def test_month_calendar(client, prop):
    client.post(
        f"{API}/calendar/{prop}/manual-blocks",
        json={"start_date": "2026-02-10", "end_date": "2026-02-12"},
    )

    body = client.get(f"{API}/calendar/{prop}/month", params={"year": 2026, "month": 2}).json()

    assert body["total_days"] == 28
    assert body["blocked_days"] == 2
    assert body["available_days"] == 26
    assert [d["date"] for d in body["days"] if d["type"] == "manual"] == ["2026-02-10", "2026-02-11"]


def test_check_availability(client, prop):
    client.post(
        f"{API}/calendar/{prop}/manual-blocks",
        json={"start_date": "2026-03-05", "end_date": "2026-03-07"},
    )

    busy = client.post(
        f"{API}/calendar/check-availability",
        json={"property_code": prop, "checkin_date": "2026-03-01", "checkout_date": "2026-03-06"},
    ).json()
    free = client.post(
        f"{API}/calendar/check-availability",
        json={"property_code": prop, "checkin_date": "2026-03-07", "checkout_date": "2026-03-10"},
    ).json()

    assert busy["available"] is False
    assert [c["date"] for c in busy["conflicts"]] == ["2026-03-05"]
    assert free["available"] is True

    reversed_range = client.post(
        f"{API}/calendar/check-availability",
        json={"property_code": prop, "checkin_date": "2026-03-10", "checkout_date": "2026-03-07"},
    )
    assert reversed_range.status_code == 400


def test_feed_create_sync_and_view(client, prop, fake_fetch):
    today = settings.today()
    url = "https://www.airbnb.com/calendar/ical/123.ics"
    first, second = add_days(today, 5), add_days(today, 8)
    fake_fetch[url] = make_ical(
        vevent(first.ymd.replace("-", ""), second.ymd.replace("-", ""), "Reserved"),
        vevent(second.ymd.replace("-", ""), add_days(today, 9).ymd.replace("-", ""), "Airbnb (Not available)"),
    )

    created = client.post(f"{API}/calendar/{prop}/feeds", json={"ical_url": url})
    assert created.status_code == 201
    body = created.json()
    assert body["synced"] is True
    assert body["sync"]["period_count"] == 1
    feed_id = body["feed"]["id"]
    assert body["feed"]["last_sync_status"] == "succeeded"

    view = client.get(f"{API}/calendar/{prop}").json()
    assert view["has_calendar"] is True
    assert [(p["start"], p["end"]) for p in view["blocked_from_ical"]] == [(first.ymd, add_days(today, 9).ymd)]
    assert view["blocked_from_ical"][0]["summary"] == "Reserved"

    duplicate = client.post(f"{API}/calendar/{prop}/feeds", json={"ical_url": url})
    assert duplicate.status_code == 409

    # 피드가 사라져도 이전 차단 기간 유지
    del fake_fetch[url]
    resync = client.post(f"{API}/calendar/feeds/{feed_id}/sync").json()
    assert resync["success"] is False
    assert resync["state"] == "failed"
    still_blocked = client.get(f"{API}/calendar/{prop}/blocked", params={"date": first.ymd}).json()
    assert still_blocked["blocked"] is True

    assert client.delete(f"{API}/calendar/{prop}/feeds/{feed_id}").status_code == 200
    assert client.get(f"{API}/calendar/{prop}/feeds").json() == []
    after = client.get(f"{API}/calendar/{prop}/blocked", params={"date": first.ymd}).json()
    assert after["blocked"] is False


def test_feed_with_invalid_url_is_rejected(client, prop):
    response = client.post(f"{API}/calendar/{prop}/feeds", json={"ical_url": "not a url"})

    assert response.status_code == 400


def test_feed_saved_even_when_initial_sync_fails(client, prop, fake_fetch):
    response = client.post(
        f"{API}/calendar/{prop}/feeds",
        json={"ical_url": "https://www.vrbo.com/icalendar/missing.ics", "platform": "vrbo"},
    )

    assert response.status_code == 201
    assert response.json()["synced"] is False
    feeds = client.get(f"{API}/calendar/{prop}/feeds").json()
    assert [(f["platform"], f["last_sync_status"]) for f in feeds] == [("vrbo", "failed")]


def test_delete_property_clears_calendar(client, prop):
    client.post(
        f"{API}/calendar/{prop}/manual-blocks",
        json={"start_date": "2026-02-10", "end_date": "2026-02-12"},
    )

    assert client.delete(f"{API}/properties/{prop}").status_code == 204
    assert client.get(f"{API}/calendar/{prop}/manual-blocks").status_code == 404
    assert [p["property_code"] for p in client.get(f"{API}/properties").json()] == []


def test_scheduler_status_when_not_started(client):
    body = client.get(f"{API}/scheduler/status").json()

    assert (body["running"], body["interval_hours"], body["next_run"]) == (False, None, None)


def test_run_now_records_last_sweep(client):
    # 피드가 없으므로 네트워크 요청 없음
    run = client.post(f"{API}/scheduler/run-now")
    assert run.status_code == 200
    assert (run.json()["total"], run.json()["failed"]) == (0, 0)

    status = client.get(f"{API}/scheduler/status").json()
    assert status["last_sweep"]["total"] == 0
    assert status["last_sweep"]["finished_at"] is not None


def test_writes_require_matching_host(client, prop):
    block = {"start_date": "2026-02-10", "end_date": "2026-02-12"}

    denied = client.post(f"{API}/calendar/{prop}/manual-blocks", json=block, headers={"X-Host-Id": "host-2"})
    allowed = client.post(f"{API}/calendar/{prop}/manual-blocks", json=block, headers={"X-Host-Id": "host-1"})

    assert denied.status_code == 403
    assert allowed.status_code == 201
    assert len(client.get(f"{API}/calendar/{prop}/manual-blocks").json()) == 1


def test_list_properties_by_host(client, prop):
    client.post(f"{API}/properties/", json={"property_code": "OC-A", "name": "Ocean Cottage", "host_id": "host-2"})

    mine = client.get(f"{API}/properties", params={"host_id": "host-1"}).json()
    everyone = client.get(f"{API}/properties").json()

    assert [p["property_code"] for p in mine] == ["PV-B"]
    assert [p["property_code"] for p in everyone] == ["OC-A", "PV-B"]


def test_corrupted_stored_date_is_400(client, prop, db_session):
    from app.domain.models.manual_block import ManualBlock

    db_session.add(ManualBlock(property_code=prop, start_date="2026-2-1", end_date="2026-02-03"))
    db_session.commit()

    response = client.get(f"{API}/calendar/{prop}/available")

    assert response.status_code == 400
