"""Check a running gateway's health endpoints.

Usage:
    python -m legion.scripts.health_check --base-url http://localhost:3000

Exits non-zero when any check fails.
"""
from __future__ import annotations

import argparse
import sys

import httpx

CHECKS = [
    ("Server Status", "/health"),
    ("API Status", "/api/status"),
]


def run_checks(base_url: str, timeout: float, client: httpx.Client | None = None) -> tuple[int, int]:
    """Return (healthy, unhealthy) counts, printing one block per check."""
    own_client = client is None
    client = client or httpx.Client(timeout=timeout)
    healthy = unhealthy = 0
    try:
        for name, path in CHECKS:
            url = f"{base_url.rstrip('/')}{path}"
            try:
                response = client.get(url)
            except httpx.HTTPError as e:
                print(f"[FAIL] {name} - UNHEALTHY\n       Error: {e}")
                unhealthy += 1
                continue

            if response.status_code == 200:
                print(f"[ OK ] {name} - HEALTHY (status {response.status_code})")
                try:
                    data = response.json()
                except ValueError:
                    data = {}
                if isinstance(data, dict):
                    if data.get("status"):
                        print(f"       Response: {data['status']}")
                    if data.get("uptime"):
                        print(f"       Uptime: {int(data['uptime']) // 1000}s")
                healthy += 1
            else:
                print(f"[WARN] {name} - status {response.status_code}")
                unhealthy += 1
    finally:
        if own_client:
            client.close()
    return healthy, unhealthy


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Check GRUDA Legion health endpoints")
    parser.add_argument("--base-url", default="http://localhost:3000")
    parser.add_argument("--timeout", type=float, default=5.0)
    args = parser.parse_args(argv)

    healthy, unhealthy = run_checks(args.base_url, args.timeout)
    print(f"\nHealthy: {healthy}  Unhealthy: {unhealthy}  Total: {len(CHECKS)}")
    return 0 if unhealthy == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
