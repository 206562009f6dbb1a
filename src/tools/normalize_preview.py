"""Preview how a saved order payload normalizes, without touching any store.

Usage:
    python -m src.tools.normalize_preview payload.json bannos
    python -m src.tools.normalize_preview payload.json flourlane --today 2025-01-29
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import date
from pathlib import Path

from src.ingest.normalizer import normalize_order
from src.schemas.orders import STORES


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="normalize_preview",
        description="Print the normalized form of a Shopify order payload",
    )
    parser.add_argument("payload", help="Path to the raw order JSON")
    parser.add_argument("store", type=str.lower, choices=STORES, help="Store tag")
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        default=None,
        help="Reference date for priority (YYYY-MM-DD); defaults to today in the business timezone",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    path = Path(args.payload)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        print(f"ERROR: cannot read {path}: {exc}", file=sys.stderr)
        return 1

    result = normalize_order(payload, args.store, args.today)
    print(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False))
    return 0 if result.ok else 3


if __name__ == "__main__":
    sys.exit(main())
