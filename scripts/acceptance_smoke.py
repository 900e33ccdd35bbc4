"""
Acceptance smoke checks for comico.

Usage:
  DATABASE_URL=sqlite:///./data/acceptance_comico.db PYTHONPATH=src .venv/bin/python scripts/acceptance_smoke.py
  DATABASE_URL=sqlite:///./data/acceptance_comico.db PYTHONPATH=src .venv/bin/python scripts/acceptance_smoke.py --with-external
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from dataclasses import dataclass
from typing import Callable

from fastapi.testclient import TestClient


@dataclass
class CheckResult:
    name: str
    passed: bool
    detail: str


def _ok(name: str, detail: str) -> CheckResult:
    return CheckResult(name=name, passed=True, detail=detail)


def _fail(name: str, detail: str) -> CheckResult:
    return CheckResult(name=name, passed=False, detail=detail)


def run_check(name: str, fn: Callable[[], CheckResult]) -> CheckResult:
    try:
        return fn()
    except Exception as exc:  # pragma: no cover - smoke tool
        return _fail(name, f"exception: {exc}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Run acceptance smoke checks.")
    parser.add_argument(
        "--with-external",
        action="store_true",
        help="Run a full generation that calls the external chat/vision/image APIs.",
    )
    args = parser.parse_args()

    os.environ.setdefault("DATABASE_URL", "sqlite:///./data/acceptance_comico.db")

    from comico.core.database import init_db
    from comico.main import app

    init_db()

    client = TestClient(app)
    results: list[CheckResult] = []
    state: dict = {}

    def check_health() -> CheckResult:
        resp = client.get("/health")
        if resp.status_code != 200:
            return _fail("GET /health", f"status={resp.status_code}, body={resp.text[:200]}")
        return _ok("GET /health", "healthy")

    def check_plans() -> CheckResult:
        resp = client.get("/api/orders/plans")
        names = [p["name"] for p in resp.json().get("items", [])]
        if resp.status_code != 200 or "Pro Comic" not in names:
            return _fail("GET /api/orders/plans", f"status={resp.status_code}, body={resp.text[:200]}")
        return _ok("GET /api/orders/plans", ", ".join(names))

    def check_create_comic() -> CheckResult:
        resp = client.post(
            "/api/comics",
            data={
                "user_id": "smoke-user",
                "story": "A dog finds a key in the garden.",
                "photo_urls": ["https://images.dog.ceo/breeds/retriever-golden/n02099601_3004.jpg"],
            },
        )
        if resp.status_code != 200:
            return _fail("POST /api/comics", f"status={resp.status_code}, body={resp.text[:300]}")
        data = resp.json()
        state["comic_id"] = data["id"]
        if data["status"] != "draft":
            return _fail("POST /api/comics", f"unexpected status: {data['status']}")
        return _ok("POST /api/comics", f"id={data['id']}")

    def check_generate_missing_comic() -> CheckResult:
        resp = client.post("/api/comics/does-not-exist/generate")
        if resp.status_code != 404:
            return _fail("POST /api/comics/{id}/generate", f"status={resp.status_code}")
        return _ok("POST /api/comics/{id}/generate", "missing comic -> 404")

    def check_generate_external() -> CheckResult:
        comic_id = state.get("comic_id")
        if not comic_id:
            return _fail("generate (external)", "no comic created")
        events: list[dict] = []
        with client.stream("POST", f"/api/comics/{comic_id}/generate") as resp:
            for line in resp.iter_lines():
                if line.startswith("data: "):
                    events.append(json.loads(line[len("data: "):]))
        kinds = [e["type"] for e in events]
        if "done" not in kinds:
            return _fail("generate (external)", f"events={kinds}, last={events[-1] if events else None}")
        done = events[kinds.index("done")]
        return _ok("generate (external)", f"outcome={done['outcome']}, panels={len(done['comic']['panels'])}")

    # Always-run checks.
    results.append(run_check("GET /health", check_health))
    results.append(run_check("GET /api/orders/plans", check_plans))
    results.append(run_check("POST /api/comics", check_create_comic))
    results.append(run_check("POST /api/comics/{id}/generate", check_generate_missing_comic))

    # Optional external checks.
    if args.with_external:
        results.append(run_check("generate (external)", check_generate_external))

    passed = sum(1 for item in results if item.passed)
    failed = len(results) - passed

    print("\nAcceptance Smoke Report")
    print("=" * 24)
    for item in results:
        status = "PASS" if item.passed else "FAIL"
        print(f"[{status}] {item.name}: {item.detail}")

    print("-" * 24)
    print(f"passed={passed}, failed={failed}, total={len(results)}")
    return 0 if failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
