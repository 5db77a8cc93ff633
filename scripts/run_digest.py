"""Run one digest pass outside Celery.

Usage:
  python scripts/run_digest.py
  python scripts/run_digest.py --rules config/filter_rules.json --delay 0

Reads configuration from .env via pydantic settings. Exit codes: 0 on
success or no-op, 1 when the snapshot could not be written.
"""

from __future__ import annotations

import argparse
import sys
from typing import List

from ingestion.filters.rules import load_filter_rules
from ingestion.settings import get_settings
from ingestion.tasks.digest import build_pipeline
from ingestion.utils.logging import configure_logging
from publish.snapshot_store import SnapshotWriteError


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Fetch, filter, summarize and publish the AI news digest")
    parser.add_argument("--rules", help="Override FILTER_RULES_PATH")
    parser.add_argument("--delay", type=float, help="Override DIGEST_SUMMARY_DELAY_SECONDS")
    args = parser.parse_args(argv)

    cfg = get_settings()
    configure_logging(cfg.structlog_level, json_enabled=cfg.log_json)

    rules = load_filter_rules(args.rules or cfg.filter_rules_path).rules
    pipeline = build_pipeline(cfg, rules=rules)
    if args.delay is not None:
        pipeline.delay_seconds = max(0.0, args.delay)

    try:
        snapshot = pipeline.run()
    except SnapshotWriteError as exc:
        print(f"Failed to publish snapshot: {exc}", file=sys.stderr)
        return 1

    if snapshot is None:
        print("Nothing to publish.")
    else:
        print(f"Published {len(snapshot.articles)} articles (updated_at={snapshot.updated_at.isoformat()}).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
