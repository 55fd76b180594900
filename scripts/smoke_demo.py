from __future__ import annotations

import argparse
import json
import time
import urllib.error
import urllib.request


def fetch(url: str, method: str = "GET") -> tuple[int, bytes]:
    req = urllib.request.Request(url, method=method)
    with urllib.request.urlopen(req, timeout=10) as resp:
        return resp.status, resp.read()


def wait_for(url: str, timeout: int, method: str = "GET") -> bytes:
    deadline = time.time() + timeout
    last_error: Exception | None = None
    while time.time() < deadline:
        try:
            status, body = fetch(url, method)
            if status == 200:
                return body
        except Exception as exc:
            last_error = exc
        time.sleep(1)
    raise RuntimeError(f"Timed out waiting for {url}: {last_error}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Smoke test for a running map editor.")
    parser.add_argument("--base", default="http://localhost:8080")
    parser.add_argument("--timeout", type=int, default=60)
    args = parser.parse_args()

    base = args.base.rstrip("/")

    wait_for(f"{base}/api/map", args.timeout)
    loaded = json.loads(wait_for(f"{base}/api/map/load", args.timeout, "POST").decode("utf-8"))
    items = loaded.get("items", [])
    if not items:
        raise RuntimeError("Map load returned no nodes")

    layout = json.loads(wait_for(f"{base}/api/map/layout", args.timeout).decode("utf-8"))
    if layout.get("nodes") is None or layout.get("links") is None:
        raise RuntimeError("Layout payload missing nodes or links")

    status, _ = fetch(f"{base}/api/map/health")
    if status != 200:
        raise RuntimeError("Health endpoint not reachable")

    print("Smoke test passed.")


if __name__ == "__main__":
    main()
