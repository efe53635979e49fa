#!/usr/bin/env python3
"""Hit the status endpoint once and print a table of the results."""

import argparse
import httpx


def main():
    parser = argparse.ArgumentParser(description="Trigger a status check against a running backend")
    parser.add_argument("--url", default="http://localhost:8080/api/v1/status")
    parser.add_argument("--timeout", type=float, default=60.0)
    args = parser.parse_args()

    resp = httpx.get(args.url, timeout=args.timeout)
    print(f"Status: {resp.status_code}")
    if resp.status_code != 200:
        print(f"Response: {resp.text}")
        return

    for item in resp.json():
        print(f"  {item['status']:<9} {item['latency']:>6}ms  {item['name']}  {item['url']}")


if __name__ == "__main__":
    main()
