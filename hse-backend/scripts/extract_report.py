from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Optional

from hse_app.catalog import get_catalog
from hse_app.config import settings
from hse_app.db import close_pool, database_configured, initialize_database, open_pool
from hse_app.repos.record_store import UnknownReferenceError, build_record_store
from hse_app.services.decoder import DecoderError, decode
from hse_app.services.extractor import extract

DEFAULT_REPORT = """
MONTHLY HSE PERFORMANCE REPORT
Total Manhours recorded: 12,345 hrs
Fatality: 0
Lost Time Injury: 1
First Aid Case: 3
Near Miss reported this month 4
Unsafe Act / Unsafe Condition observations 27
Stop Work Authority exercised 2
Management Walkabout - Planned: 4 Actual: 3
HSSE Audit 2 2
Safety Training sessions held 5
"""

logger = logging.getLogger("extract_report")


def load_report_text(path: Optional[Path]) -> str:
    if path is None:
        return DEFAULT_REPORT
    return decode(path.read_bytes(), path.name)


def main() -> None:
    parser = argparse.ArgumentParser(description="Extract HSE indicator values from a report file.")
    parser.add_argument("report", nargs="?", type=Path, help="PDF, Excel, Word, CSV or text report. Uses a sample when omitted.")
    parser.add_argument("--project", help="Project id to save into (e.g. sirung).")
    parser.add_argument("--month", help="Month id to save into (e.g. Mar-26).")
    parser.add_argument("--contract", help="Contract id the report belongs to (e.g. P3).")
    parser.add_argument("--save", action="store_true", help="Merge the found values into the record store.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    catalog = get_catalog()
    try:
        text = load_report_text(args.report)
    except DecoderError as exc:
        raise SystemExit(str(exc))

    result = extract(text, catalog.indicators)
    print(json.dumps(result.model_dump(mode="json"), indent=2))

    if not args.save:
        return
    if not (args.project and args.month and args.contract):
        raise SystemExit("--save requires --project, --month and --contract.")
    project = catalog.project(args.project)
    if project is None:
        raise SystemExit(f"Unknown project {args.project!r}.")
    if catalog.month(args.month) is None:
        raise SystemExit(f"Unknown month {args.month!r}.")

    database_available = False
    if database_configured():
        open_pool()
        initialize_database()
        database_available = True
    try:
        store = build_record_store(database_available, settings.data_dir, catalog.indicators)
        try:
            store.save(project, args.month, result.to_patch(args.contract))
        except UnknownReferenceError as exc:
            raise SystemExit(str(exc))
        print(f"Saved {result.found_count()} indicators for {project.id}/{args.month}/{args.contract} ({store.storage_name}).")
    finally:
        close_pool()


if __name__ == "__main__":
    main()
