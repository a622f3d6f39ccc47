"""
Create the attempt tables and bind a daily challenge snippet.
This script is idempotent - can be run multiple times safely.

Usage:
    python scripts/seed_db.py SNIPPET_ID [--date YYYY-MM-DD]
"""

import argparse
import os
import sys
from datetime import date, datetime, timezone

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from typrr import config
from typrr.store import open_store


def main():
    parser = argparse.ArgumentParser(description="Seed the attempt database")
    parser.add_argument("snippet_id", help="Snippet to bind as the daily challenge")
    parser.add_argument("--date", help="UTC date (default: today)")
    args = parser.parse_args()

    day = date.fromisoformat(args.date) if args.date else datetime.now(timezone.utc).date()

    print(f"Seeding attempt database at {config.DATABASE_URL.split('@')[-1]}...")
    store = open_store(config.DATABASE_URL)
    try:
        store.set_daily_challenge(day, args.snippet_id)
        print(f"Daily challenge for {day}: {store.daily_snippet_id(day)}")
    finally:
        store.close()
    print("Seeding complete")


if __name__ == "__main__":
    main()
