"""Tests for the REST API."""

import pytest
from fastapi.testclient import TestClient

from uwf_journal.api.dependencies import Container
from uwf_journal.api.main import create_app
from uwf_journal.config.settings import JournalSettings
from uwf_journal.intake.client import GeminiIntakeClient


@pytest.fixture
def settings(tmp_path):
    return JournalSettings(
        _env_file=None,
        environment="test",
        data_dir=tmp_path / "data",
        gemini_api_key="test-key",
    )


@pytest.fixture
def client(settings, journal, mock_session):
    container = Container(
        settings=settings,
        journal=journal,
        intake_client=GeminiIntakeClient(api_key="test-key", session=mock_session),
    )
    app = create_app(settings=settings, container=container, setup_logging=False)
    with TestClient(app) as test_client:
        yield test_client


def _data(response):
    body = response.json()
    assert body["success"], body
    return body["data"]


class TestSystemEndpoints:
    """Tests for /api/health."""

    def test_health(self, client):
        data = _data(client.get("/api/health"))
        assert data["status"] == "healthy"
        assert data["components"] == {"journal": True, "intake": True}

    def test_request_id_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_degraded_without_key(self, journal, mock_session, tmp_path):
        settings = JournalSettings(_env_file=None, environment="test", data_dir=tmp_path)
        container = Container(
            settings=settings,
            journal=journal,
            intake_client=GeminiIntakeClient(api_key=None, session=mock_session),
        )
        app = create_app(settings=settings, container=container, setup_logging=False)
        with TestClient(app) as test_client:
            assert _data(test_client.get("/api/health"))["status"] == "degraded"


class TestTradeEndpoints:
    """Tests for the trade lifecycle endpoints."""

    def test_open_trade(self, client, income_proposal):
        response = client.post("/api/trades", json=income_proposal)
        assert response.status_code == 200
        data = _data(response)
        assert data["trade"]["id"] == "TRADE-001"
        assert data["trade"]["ticker"] == "TSM"
        assert data["trade"]["status"] == "active"
        assert any("deployed" in f for f in data["validationFlags"])

    def test_open_trade_missing_ticker(self, client, income_proposal):
        income_proposal.pop("ticker")
        response = client.post("/api/trades", json=income_proposal)
        assert response.status_code == 422
        body = response.json()
        assert not body["success"]
        assert body["error"]["code"] == "VALIDATION_1003"
        assert body["error"]["field"] == "ticker"

    def test_lifecycle(self, client, income_proposal):
        trade_id = _data(client.post("/api/trades", json=income_proposal))["trade"]["id"]

        view = _data(client.put(f"/api/trades/{trade_id}/price", json={"price": 165}))
        assert view["pl"] == pytest.approx(1500)
        assert view["markPrice"] == 165

        closed = _data(
            client.post(
                f"/api/trades/{trade_id}/close",
                json={"exitPrice": 160, "lessonLearned": "Patience", "selfRating": 4},
            )
        )
        assert closed["status"] == "closed"
        assert closed["exitData"]["selfRating"] == 4

        again = client.post(f"/api/trades/{trade_id}/close", json={"exitPrice": 170})
        assert again.status_code == 409
        assert again.json()["error"]["code"] == "TRADE_2002"

        history = _data(client.get("/api/history", params={"formatted": "true"}))
        assert history[0]["pl"] == "1.000,00 €"

        summary = _data(client.get("/api/analytics/summary"))
        assert summary["totalPL"] == pytest.approx(1000)

    def test_list_and_filter(self, client, income_proposal, lab_proposal):
        client.post("/api/trades", json=income_proposal)
        client.post("/api/trades", json=lab_proposal)
        client.post("/api/trades/TRADE-001/close", json={"exitPrice": 150})
        assert len(_data(client.get("/api/trades"))) == 2
        active = _data(client.get("/api/trades", params={"status": "active"}))
        assert [t["id"] for t in active] == ["TRADE-002"]

    def test_unknown_status(self, client):
        response = client.get("/api/trades", params={"status": "pending"})
        assert response.status_code == 422

    def test_unknown_trade(self, client):
        response = client.get("/api/trades/TRADE-404")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "TRADE_2001"

    def test_negative_price_rejected(self, client, income_proposal):
        client.post("/api/trades", json=income_proposal)
        response = client.put("/api/trades/TRADE-001/price", json={"price": -1})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_1002"

    def test_accounts(self, client, income_proposal):
        client.post("/api/trades", json=income_proposal)
        cards = _data(client.get("/api/accounts"))
        assert [c["account"]["name"] for c in cards] == ["Income Generator", "Speculation", "Trading Lab"]
        assert cards[0]["account"]["currentCash"] == 2000
        assert len(cards[0]["positions"]) == 1

    def test_analytics_by_account(self, client):
        rows = _data(client.get("/api/analytics/accounts"))
        assert [r["name"] for r in rows][-1] == "Uncategorized"
        assert _data(client.get("/api/analytics/sources")) == []


class TestIntakeEndpoints:
    """Tests for the intake dialog endpoints."""

    def test_submit_and_confirm(self, client):
        data = _data(client.post("/api/intake", json={"text": "Bought 1 NVDA call for 250"}))
        assert data["proposal"]["ticker"] == "NVDA"
        assert data["validationFlags"] == ["Check delta before entry"]
        assert _data(client.get("/api/intake"))["state"] == "proposed"

        trade = _data(client.post("/api/intake/confirm"))
        assert trade["account"] == "Speculation"
        assert trade["rawUserInput"] == "Bought 1 NVDA call for 250"
        assert _data(client.get("/api/intake"))["state"] == "idle"

    def test_confirm_without_proposal(self, client):
        response = client.post("/api/intake/confirm")
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INTAKE_3006"

    def test_back_and_dismiss(self, client):
        client.post("/api/intake", json={"text": "Bought NVDA calls"})
        state = _data(client.post("/api/intake/back"))
        assert state["state"] == "idle"
        assert state["userInput"] == "Bought NVDA calls"
        state = _data(client.post("/api/intake/dismiss"))
        assert state["userInput"] == ""

    def test_service_failure(self, client, mock_session):
        mock_session.post.return_value.status_code = 500
        mock_session.post.return_value.json.return_value = {"error": {"message": "overloaded"}}
        response = client.post("/api/intake", json={"text": "Bought TSM"})
        assert response.status_code == 502
        assert response.json()["error"]["code"] == "INTAKE_3003"
        assert _data(client.get("/api/intake"))["state"] == "failed"

    def test_review(self, client, lab_proposal):
        lab_proposal["positionSize"] = 500
        data = _data(client.post("/api/intake/review", json=lab_proposal))
        assert any("not under 150" in f for f in data["validationFlags"])
