"""Compute a claim from a JSON file and print or save the result."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from ijcalc.amounts import compute
from ijcalc.config import LOG_LEVEL, RATE_TABLE_PATH
from ijcalc.errors import InvalidClaimError
from ijcalc.exporter import build_daily_csv
from ijcalc.models import parse_claim
from ijcalc.rate_table import load_rate_table


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Compute daily benefit entitlements for a claim")
    parser.add_argument("claim", type=Path, help="JSON file with 'periods' and 'context'")
    parser.add_argument("--rates", default=RATE_TABLE_PATH, help="Path to the ';'-delimited rate table")
    parser.add_argument("--daily", action="store_true", help="Include the day-by-day breakdown")
    parser.add_argument("--csv", action="store_true", help="Emit the per-day CSV instead of JSON")
    parser.add_argument("--out", type=Path, default=None, help="Write output to this file instead of stdout")
    args = parser.parse_args(argv)

    logging.basicConfig(level=LOG_LEVEL, format="%(levelname)s %(name)s: %(message)s")

    try:
        with open(args.claim, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        print(f"error: cannot read {args.claim}: {exc}", file=sys.stderr)
        return 2
    if not isinstance(payload, dict):
        print(f"error: {args.claim} must hold a JSON object", file=sys.stderr)
        return 2
    if args.daily:
        payload["include_daily"] = True

    try:
        request = parse_claim(payload)
        result = compute(
            request.periods,
            request.context,
            load_rate_table(args.rates),
            include_daily=request.include_daily,
        )
    except (InvalidClaimError, FileNotFoundError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    output = build_daily_csv(result) if args.csv else result.model_dump_json(indent=2)
    if args.out:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(output, encoding="utf-8")
        print(f"Wrote {args.out}")
    else:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
