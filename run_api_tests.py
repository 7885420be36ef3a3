"""Manual smoke run against a live server seeded by alembic 006.

    uvicorn src.main:app --port 8000
    WEBHOOK_SECRET=... python run_api_tests.py
"""
import json
import os
import urllib.error
import urllib.request

BASE = "http://localhost:8000/api/v1"
SECRET = os.environ.get("WEBHOOK_SECRET", "")


def request(method, path, body=None, headers=None):
    data = json.dumps(body).encode() if body is not None else None
    req = urllib.request.Request(
        f"{BASE}{path}",
        data=data,
        method=method,
        headers={"Content-Type": "application/json", **(headers or {})},
    )
    try:
        with urllib.request.urlopen(req) as r:
            return json.loads(r.read())
    except urllib.error.HTTPError as e:
        return json.loads(e.read())


def get(path):
    return request("GET", path)


def post(path, body=None, headers=None):
    return request("POST", path, body, headers)


def section(title):
    print(f"\n{'='*60}")
    print(f"### {title} ###")
    print('='*60)


def label(name):
    print(f"\n--- {name} ---")


def out(data):
    print(json.dumps(data, indent=2, ensure_ascii=False))


# ── T1 Listings ────────────────────────────────────────────────
section("T1 — LISTINGS")

for listing_id in ("LST-DEMO-PCT", "LST-DEMO-AMT", "LST-DEMO-MKT", "LST-DEMO-TIME"):
    label(f"T1: Get {listing_id}")
    out(get(f"/listings/{listing_id}"))

label("T1-5: Get non-existent listing")
out(get("/listings/LST-NONEXISTENT"))

label("T1-6: Settings with floor above current price")
out(request("PUT", "/listings/LST-DEMO-PCT/reduction-settings", {"minimum_price": "999.00"}))

label("T1-7: Manual reduce above current price")
out(post("/listings/LST-DEMO-AMT/reduce", {"custom_price": "500.00"}))

# ── T2 Cycle ───────────────────────────────────────────────────
section("T2 — CYCLE")

label("T2-1: Trigger without secret")
out(post("/admin/price-reduction/run", {}))

label("T2-2: Dry run (default)")
out(post("/admin/price-reduction/run", {}, {"X-Webhook-Secret": SECRET}))

label("T2-3: Last cycle summary")
out(get("/admin/price-reduction/last-cycle"))

label("T2-4: Invariant report")
out(get("/admin/price-reduction/invariants"))

# ── T3 History ─────────────────────────────────────────────────
section("T3 — HISTORY")

label("T3-1: Price history (LST-DEMO-PCT)")
out(get("/listings/LST-DEMO-PCT/price-history?limit=5"))

print("\n\n=== ALL TESTS COMPLETE ===\n")
