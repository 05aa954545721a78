"""End-to-end smoke run against a throwaway database.

Usage: python scripts/smoke_api.py
"""

import json
import os
import sys
import tempfile
from pathlib import Path

# Ensure project root on path when executed directly
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from fastapi.testclient import TestClient

from expense_tracker.core.config import Settings
from expense_tracker.db.seed import seed_expenses
from expense_tracker.main import create_app


def run():
    with tempfile.TemporaryDirectory() as d:
        settings = Settings(data_dir=Path(d), db_filename="smoke.sqlite3")
        settings.init_post_load()
        seeded = seed_expenses(settings.db_path)
        app = create_app(settings_override=settings)

        results = {}
        with TestClient(app) as client:
            results["list"] = client.get("/expenses", params={"limit": 2}).json()
            results["stats"] = client.get("/expenses/stats/category").json()
            created = client.post(
                "/expenses",
                json={"name": "Lunch", "amount": 12.5, "currency": "EUR", "category": "Food"},
            )
            results["create_status"] = created.status_code
            new_id = created.json()["id"]
            results["update"] = client.put(
                f"/expenses/{new_id}", json={"amount": 14}
            ).json()
            empty = client.put(f"/expenses/{new_id}", json={})
            results["empty_update"] = [empty.status_code, empty.json()]
            bad_id = client.get("/expenses/abc")
            results["bad_id"] = [bad_id.status_code, bad_id.json()]
            results["delete_status"] = client.delete(f"/expenses/{new_id}").status_code
            results["fetch_deleted_status"] = client.get(f"/expenses/{new_id}").status_code
        print(json.dumps(results, indent=2))

        assert results["create_status"] == 201
        assert results["list"]["pagination"]["total"] == len(seeded)
        assert results["stats"][0]["category"] == "Housing"
        assert results["empty_update"][0] == 400
        assert results["bad_id"][0] == 400
        assert results["delete_status"] == 204
        assert results["fetch_deleted_status"] == 404
        print("API smoke test: PASS")


if __name__ == "__main__":
    run()
