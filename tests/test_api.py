"""HTTP-level tests through FastAPI's TestClient."""

from datetime import datetime, timezone

from fastapi.testclient import TestClient

from expense_tracker.main import create_app

COFFEE = {"name": "Coffee", "amount": 4.5, "currency": "USD", "category": "Food"}


def create(client, **overrides):
    payload = {**COFFEE, **overrides}
    response = client.post("/expenses", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def parse(ts):
    return datetime.fromisoformat(ts.replace("Z", "+00:00"))


class TestCreate:
    def test_create_defaults_date_to_request_time(self, client):
        before = datetime.now(timezone.utc).replace(microsecond=0)
        record = create(client)
        after = datetime.now(timezone.utc)
        assert set(record) == {
            "id", "name", "amount", "currency", "category", "date", "createdAt", "updatedAt"
        }
        assert record["id"] > 0
        assert {k: record[k] for k in COFFEE} == COFFEE
        assert record["createdAt"] == record["updatedAt"]
        assert before <= parse(record["date"]) <= after

    def test_create_with_explicit_date(self, client):
        record = create(client, date="2024-06-01T08:00:00+02:00")
        assert record["date"] == "2024-06-01T06:00:00.000Z"

    def test_validation_failure_lists_every_field(self, client):
        response = client.post("/expenses", json={"amount": -3, "currency": "dollars"})
        assert response.status_code == 400
        body = response.json()
        assert body["status"] == "error"
        assert {e["field"] for e in body["errors"]} == {
            "name", "amount", "currency", "category"
        }

    def test_malformed_json(self, client):
        response = client.post(
            "/expenses", content=b"{not json", headers={"content-type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Malformed JSON body"

    def test_out_of_range_date(self, client):
        response = client.post("/expenses", json={**COFFEE, "date": "0001-01-01T00:30:00+01:00"})
        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["date"]

    def test_early_year_keeps_four_digits(self, client):
        record = create(client, date="0999-06-01T00:00:00Z")
        assert record["date"] == "0999-06-01T00:00:00.000Z"

    def test_loose_types_rejected(self, client):
        for extra in ({"amount": True}, {"amount": "4.5"}, {"date": 1700000000000}):
            response = client.post("/expenses", json={**COFFEE, **extra})
            assert response.status_code == 400, extra


class TestFetch:
    def test_round_trip(self, client):
        record = create(client)
        response = client.get(f"/expenses/{record['id']}")
        assert response.status_code == 200
        assert response.json() == record

    def test_non_numeric_id(self, client):
        response = client.get("/expenses/abc")
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Invalid expense ID"
        assert body["errors"] == [{"field": "id", "message": "Invalid expense ID"}]

    def test_zero_id(self, client):
        assert client.get("/expenses/0").status_code == 400

    def test_id_beyond_64_bits(self, client):
        response = client.get("/expenses/99999999999999999999")
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid expense ID"
        assert client.delete("/expenses/99999999999999999999").status_code == 400
        assert client.put("/expenses/99999999999999999999", json={"name": "x"}).status_code == 400

    def test_missing(self, client):
        response = client.get("/expenses/999")
        assert response.status_code == 404
        assert response.json() == {
            "status": "error",
            "message": "Expense with id 999 not found",
        }


class TestList:
    def test_pagination_envelope(self, client):
        for day in range(1, 6):
            create(client, name=f"e{day}", date=f"2024-03-0{day}T12:00:00Z")
        response = client.get("/expenses", params={"limit": 2, "offset": 2})
        assert response.status_code == 200
        body = response.json()
        assert [r["name"] for r in body["data"]] == ["e3", "e2"]
        assert body["pagination"] == {"total": 5, "limit": 2, "offset": 2}

    def test_default_page_size(self, client):
        response = client.get("/expenses")
        assert response.json() == {
            "data": [],
            "pagination": {"total": 0, "limit": 10, "offset": 0},
        }

    def test_filters(self, client):
        create(client, category="Food", date="2024-01-05T00:00:00Z")
        create(client, category="Travel", date="2024-01-10T00:00:00Z")
        create(client, category="Food", date="2024-02-01T00:00:00Z")
        response = client.get(
            "/expenses",
            params={
                "category": "Food",
                "startDate": "2024-01-01T00:00:00Z",
                "endDate": "2024-01-31T23:59:59Z",
            },
        )
        body = response.json()
        assert [r["date"] for r in body["data"]] == ["2024-01-05T00:00:00.000Z"]
        assert body["pagination"]["total"] == 1

    def test_bad_query(self, client):
        response = client.get("/expenses", params={"limit": "lots", "startDate": "x"})
        assert response.status_code == 400
        assert {e["field"] for e in response.json()["errors"]} == {"limit", "startDate"}

    def test_huge_offset_and_page(self, client):
        response = client.get("/expenses", params={"offset": 10**20})
        assert response.status_code == 400
        assert [e["field"] for e in response.json()["errors"]] == ["offset"]
        assert client.get("/expenses", params={"page": 10**20}).status_code == 400

    def test_last_representable_page(self, client):
        create(client)
        response = client.get("/expenses", params={"page": 2**63 - 1})
        assert response.status_code == 200
        body = response.json()
        assert body["data"] == []
        assert body["pagination"] == {"total": 1, "limit": 10, "offset": 2**63 - 1}


class TestUpdate:
    def test_partial_update(self, client):
        record = create(client)
        response = client.put(f"/expenses/{record['id']}", json={"amount": 5.25})
        assert response.status_code == 200
        updated = response.json()
        assert updated["amount"] == 5.25
        assert updated["name"] == record["name"]
        assert updated["createdAt"] == record["createdAt"]
        assert updated["updatedAt"] > record["updatedAt"]

    def test_empty_update(self, client):
        record = create(client)
        response = client.put(f"/expenses/{record['id']}", json={})
        assert response.status_code == 400
        messages = [e["message"].lower() for e in response.json()["errors"]]
        assert "at least one field must be provided for update" in messages

    def test_unknown_field(self, client):
        record = create(client)
        response = client.put(f"/expenses/{record['id']}", json={"colour": "red"})
        assert response.status_code == 400

    def test_missing(self, client):
        response = client.put("/expenses/77", json={"name": "x"})
        assert response.status_code == 404

    def test_bad_id_checked_before_body(self, client):
        response = client.put("/expenses/x1", json={})
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid expense ID"


class TestDelete:
    def test_delete_then_fetch(self, client):
        record = create(client)
        response = client.delete(f"/expenses/{record['id']}")
        assert response.status_code == 204
        assert response.content == b""
        assert client.get(f"/expenses/{record['id']}").status_code == 404
        assert client.delete(f"/expenses/{record['id']}").status_code == 404

    def test_bad_id(self, client):
        assert client.delete("/expenses/-4").status_code == 400


class TestStats:
    def test_totals_by_category(self, client):
        create(client, category="Food", amount=10)
        create(client, category="Food", amount=15)
        create(client, category="Travel", amount=5)
        response = client.get("/expenses/stats/category")
        assert response.status_code == 200
        assert response.json() == [
            {"category": "Food", "total": 25},
            {"category": "Travel", "total": 5},
        ]

    def test_date_window(self, client):
        create(client, category="Food", amount=10, date="2024-01-01T00:00:00Z")
        create(client, category="Travel", amount=5, date="2024-02-01T00:00:00Z")
        response = client.get(
            "/expenses/stats/category", params={"startDate": "2024-01-15T00:00:00Z"}
        )
        assert response.json() == [{"category": "Travel", "total": 5}]

    def test_bad_dates(self, client):
        response = client.get("/expenses/stats/category", params={"endDate": "01/02/2024"})
        assert response.status_code == 400


class TestPlumbing:
    def test_health_and_ping(self, client):
        health = client.get("/health").json()
        assert health["status"] == "ok"
        assert health["environment"] == "test"
        assert client.get("/ping").json() == {"message": "pong"}

    def test_security_and_request_id_headers(self, client):
        response = client.get("/ping")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-Request-ID"]

    def test_root_reports_package_version(self, client):
        import expense_tracker

        assert client.get("/").json() == {
            "message": "Welcome to Expense Tracker API",
            "version": expense_tracker.__version__,
        }

    def test_unknown_route(self, client):
        response = client.get("/nowhere")
        assert response.status_code == 404
        assert response.json() == {"status": "error", "message": "Not Found - /nowhere"}

    def test_unexpected_failure_in_production(self, settings):
        settings.environment = "production"
        app = create_app(settings_override=settings)

        def boom():
            raise RuntimeError("secret internals")

        app.add_api_route("/boom", boom)
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/boom")
        assert response.status_code == 500
        assert response.json() == {"status": "error", "message": "Internal Server Error"}
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Request-ID"]

    def test_unexpected_failure_outside_production(self, app):
        def boom():
            raise RuntimeError("secret internals")

        app.add_api_route("/boom", boom)
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/boom")
        assert response.status_code == 500
        assert "secret internals" in response.json()["stack"]
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_failure_echoes_caller_request_id(self, app):
        def boom():
            raise RuntimeError("secret internals")

        app.add_api_route("/boom", boom)
        with TestClient(app) as client:
            response = client.get("/boom", headers={"X-Request-ID": "req-42"})
        assert response.status_code == 500
        assert response.headers["X-Request-ID"] == "req-42"
