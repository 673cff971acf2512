"""Command line entrypoint: ``python -m itemize_jobs <command>``."""

from __future__ import annotations

import argparse
import json
import sys

from itemize_jobs.core.startup import bootstrap
from itemize_jobs.database.db import get_session_factory
from itemize_jobs.database.init_db import init_db
from itemize_jobs.jobs.runner import JobRunner, default_registry, run_jobs_now


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="itemize-jobs", description="Run Itemize maintenance jobs.")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("init-db", help="Create job tables in the configured database.")
    sub.add_parser("run-now", help="Run the invoice job batch once.")
    run_job = sub.add_parser("run-job", help="Run a single registered job.")
    run_job.add_argument("job_name", choices=default_registry.keys())
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    bootstrap()

    if args.command == "init-db":
        init_db()
        return 0

    if args.command == "run-now":
        result = run_jobs_now(get_session_factory())
        print(json.dumps(result))
        return 0 if result["success"] else 1

    report = JobRunner([default_registry.get(args.job_name)]).run(get_session_factory(), trigger="manual")
    print(json.dumps({"run_id": report.run_id, "failed_jobs": report.failed_jobs}))
    return 0 if report.succeeded else 1


if __name__ == "__main__":
    sys.exit(main())
