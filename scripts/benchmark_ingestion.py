#!/usr/bin/env python3
"""
Benchmark Script for the Event Pipeline

Publishes events through POST /events/generate, then polls
GET /events/processed until the consumer has caught up.

Usage:
    python scripts/benchmark_ingestion.py [base_url] [total_events]
"""

import sys
import time
import requests
import statistics

EVENT_TYPES = ["LOGIN", "PRODUCT_VIEW", "PRODUCT_VIEW", "LOGOUT"]


def generate_request(i: int) -> dict:
    """Build one ingestion request body"""
    return {
        "userId": f"user_{i % 1000}",  # 1k unique users
        "eventType": EVENT_TYPES[i % len(EVENT_TYPES)],
        "payload": {"benchmark": True, "index": i}
    }


def processed_count(base_url: str) -> int:
    response = requests.get(f"{base_url}/events/processed", timeout=30)
    response.raise_for_status()
    return response.json()["count"]


def benchmark_ingestion(base_url: str, total_events: int = 10000) -> float:
    """Publish events one request at a time and time each call"""
    print(f"\n{'=' * 60}")
    print(f"BENCHMARK: Publishing {total_events:,} events")
    print(f"{'=' * 60}")

    published = 0
    failed = 0
    request_times = []

    session = requests.Session()
    start_time = time.time()

    for i in range(total_events):
        request_start = time.time()

        try:
            response = session.post(
                f"{base_url}/events/generate",
                json=generate_request(i),
                timeout=30
            )

            if response.status_code == 201:
                published += 1
            else:
                failed += 1
                print(f"Error on event {i}: Status {response.status_code} {response.text}")

        except requests.RequestException as e:
            failed += 1
            print(f"Error on event {i}: {e}")

        request_times.append(time.time() - request_start)

        if (i + 1) % 1000 == 0:
            print(f"Progress: {i + 1:,} / {total_events:,} events")

    total_time = time.time() - start_time

    print(f"\n{'=' * 60}")
    print(f"PUBLISH RESULTS")
    print(f"{'=' * 60}")
    print(f"Total events:        {total_events:,}")
    print(f"Published:           {published:,}")
    print(f"Failed:              {failed:,}")
    print(f"Total time:          {total_time:.2f}s")
    print(f"Events/sec:          {total_events / total_time:,.0f}")
    print(f"Avg request time:    {statistics.mean(request_times) * 1000:.2f}ms")
    print(f"Max request time:    {max(request_times) * 1000:.2f}ms")
    print(f"{'=' * 60}\n")

    return total_time


def wait_for_consumer(base_url: str, expected: int, timeout: int = 60) -> float:
    """Poll the processed-events endpoint until ``expected`` events are stored"""
    start_time = time.time()
    count = 0

    while time.time() - start_time < timeout:
        count = processed_count(base_url)
        if count >= expected:
            break
        time.sleep(1)

    elapsed = time.time() - start_time
    print(f"Consumer stored {count:,} / {expected:,} events after {elapsed:.2f}s")
    return elapsed


def main():
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:3000"
    total_events = int(sys.argv[2]) if len(sys.argv) > 2 else 10000

    print("\n" + "=" * 60)
    print("EVENT PIPELINE - BENCHMARK")
    print("=" * 60)
    print(f"Target: {base_url}")
    print("=" * 60)

    # Test connection
    try:
        response = requests.get(f"{base_url}/health", timeout=5)
        if response.status_code != 200:
            print("Error: API is not healthy")
            sys.exit(1)
    except requests.RequestException as e:
        print(f"Error: Cannot connect to API: {e}")
        sys.exit(1)

    baseline = processed_count(base_url)
    benchmark_ingestion(base_url, total_events=total_events)
    wait_for_consumer(base_url, expected=baseline + total_events)

    print("\n" + "=" * 60)
    print("BENCHMARK COMPLETE")
    print("=" * 60)


if __name__ == "__main__":
    main()
