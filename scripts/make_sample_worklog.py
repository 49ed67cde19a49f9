#!/usr/bin/env python
from __future__ import annotations

import argparse
import csv
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from timesheet_backend.exporters.templates import build_template


WORKLOG_HEADER = ["User", "Worklog", "Key", "Logged", "Date"]
AREAS_HEADER = ["Key", "Name", "Alias"]


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate a sample worklog CSV, work area CSV and DOCX template")
    parser.add_argument("--output-dir", required=True, help="Directory for the generated files")
    parser.add_argument("--user", default="Erika Mustermann", help="User name of the sample rows")
    args = parser.parse_args()

    output = Path(args.output_dir)
    output.mkdir(parents=True, exist_ok=True)

    with (output / "worklog.csv").open("w", newline="", encoding="utf-8") as fp:
        writer = csv.writer(fp)
        writer.writerow(WORKLOG_HEADER)
        writer.writerow([args.user, "- Daily standup\n- Review backlog", "PRJ-1", "1h 30m", "02/02/26 at 09:00"])
        writer.writerow([args.user, "Implement export", "PRJ-2", "4h", "03/02/26 at 10:15"])
        writer.writerow([args.user, "daily sync; Implement export", "PRJ-2", "3h", "04/02/26"])
        writer.writerow([args.user, "Release planning", "PRJ-1", "2", "2026-02-10"])

    with (output / "work_areas.csv").open("w", newline="", encoding="utf-8") as fp:
        writer = csv.writer(fp)
        writer.writerow(AREAS_HEADER)
        writer.writerow(["PRJ-1", "Projektleitung", "PL"])
        writer.writerow(["PRJ-2", "Softwareentwicklung", "SE"])
        writer.writerow(["PRJ-3", "Qualitätssicherung", "QS"])

    (output / "template.docx").write_bytes(build_template())

    print(f"Sample files written to: {output}")


if __name__ == "__main__":
    main()
