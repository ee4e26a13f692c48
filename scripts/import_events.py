"""
CSV Import Script for Events

Validates each row locally, then publishes it through the running service.

Usage:
    python scripts/import_events.py <path-to-csv> [base_url]

CSV Format:
    userId,eventType,payload_json
"""

import sys
import csv
import json
import requests
from pathlib import Path

# Add parent directory to path to import app modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.services.validator import validate_event_payload

REQUIRED_HEADERS = {"userId", "eventType", "payload_json"}


def parse_row(row: dict) -> dict:
    """Turn a CSV row into an ingestion request body"""
    body = {"userId": row["userId"], "eventType": row["eventType"]}
    if row["payload_json"] and row["payload_json"].strip():
        body["payload"] = json.loads(row["payload_json"])
    return body


def import_csv(file_path: str, base_url: str = "http://localhost:3000") -> dict:
    """
    Import events from a CSV file

    Args:
        file_path: Path to CSV file
        base_url: Where the event service is listening

    Returns:
        dict with 'published', 'invalid' and 'failed' counts
    """
    file_path = Path(file_path)

    if not file_path.exists():
        print(f"Error: File not found: {file_path}")
        sys.exit(1)

    print(f"Starting import from: {file_path}")

    totals = {"published": 0, "invalid": 0, "failed": 0}
    session = requests.Session()

    with open(file_path, 'r', encoding='utf-8') as f:
        reader = csv.DictReader(f)

        # Validate headers
        if not REQUIRED_HEADERS.issubset(reader.fieldnames or []):
            print(f"Error: CSV must have headers: {REQUIRED_HEADERS}")
            print(f"Found headers: {reader.fieldnames}")
            sys.exit(1)

        for i, row in enumerate(reader, 1):
            try:
                body = parse_row(row)
            except json.JSONDecodeError as e:
                print(f"Row {i}: invalid payload_json: {e}")
                totals["invalid"] += 1
                continue

            validation = validate_event_payload(body)
            if not validation.valid:
                print(f"Row {i}: {'; '.join(validation.errors)}")
                totals["invalid"] += 1
                continue

            try:
                response = session.post(f"{base_url}/events/generate", json=body, timeout=30)
            except requests.RequestException as e:
                print(f"Row {i}: request failed: {e}")
                totals["failed"] += 1
                continue

            if response.status_code == 201:
                totals["published"] += 1
            else:
                print(f"Row {i}: status {response.status_code}: {response.text}")
                totals["failed"] += 1

            if i % 1000 == 0:
                print(f"Processed {i} rows | "
                      f"Published: {totals['published']} | "
                      f"Invalid: {totals['invalid']} | "
                      f"Failed: {totals['failed']}")

    print("\n" + "=" * 50)
    print("Import completed!")
    print(f"Total published: {totals['published']}")
    print(f"Total invalid:   {totals['invalid']}")
    print(f"Total failed:    {totals['failed']}")
    print("=" * 50)

    return totals


def main():
    if len(sys.argv) not in (2, 3):
        print("Usage: python scripts/import_events.py <path-to-csv> [base_url]")
        sys.exit(1)

    if len(sys.argv) == 3:
        import_csv(sys.argv[1], sys.argv[2])
    else:
        import_csv(sys.argv[1])


if __name__ == "__main__":
    main()
