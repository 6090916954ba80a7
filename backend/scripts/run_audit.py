"""
Audit a snapshot JSON file from the command line.
Run: python -m scripts.run_audit snapshots/home.json --format text
"""
import argparse
import logging
import os
import sys
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from netaudit.audit.engine import AuditEngine
from netaudit.audit.errors import SnapshotUnavailable
from netaudit.services.report import export_json, generate_text_report, save_report
from netaudit.sources.json_file import load_snapshot_file

logger = logging.getLogger("run_audit")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run a network security audit on a snapshot file")
    parser.add_argument("snapshot", type=Path, help="Snapshot JSON file")
    parser.add_argument("--format", choices=["json", "text", "txt"], default="text")
    parser.add_argument("--output", type=Path, help="Write the report here instead of stdout")
    parser.add_argument("--dismissed", type=Path,
                        help="File with one dismissed issue key per line")
    parser.add_argument("--workers", type=int, default=1)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        snapshot = load_snapshot_file(args.snapshot)
    except SnapshotUnavailable as exc:
        logger.error("%s", exc)
        return 2

    dismissed = set()
    if args.dismissed:
        dismissed = {
            line.strip() for line in args.dismissed.read_text(encoding="utf-8").splitlines()
            if line.strip()
        }

    result = AuditEngine(max_workers=args.workers).run(snapshot, dismissed_keys=dismissed)
    if args.output:
        save_report(result, args.output, args.format, snapshot)
    elif args.format == "json":
        print(export_json(result))
    else:
        print(generate_text_report(result, snapshot))
    return 1 if any(i.severity.value == "critical" for i in result.issues) else 0


if __name__ == "__main__":
    sys.exit(main())
