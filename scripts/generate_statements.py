"""Generate simulated learners and xAPI statements for a course catalog."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Sequence

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from catalog import load_course_catalog, load_verb_catalog
from engines.learner_profiles import LearnerProfileGenerator
from env_validation import ConfigurationError
from generator import XAPIDataGenerator, session_statistics
from stores import HttpStatementStore, TransportError
from xapi import submit_statements


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--course",
        type=str,
        default=str(ROOT / "data" / "sample_course.json"),
        help="Path to the course catalog JSON file (default: data/sample_course.json)",
    )
    parser.add_argument(
        "--verbs",
        type=str,
        default=None,
        help="Optional verb list or xAPI profile JSON",
    )
    parser.add_argument(
        "--learners",
        type=int,
        default=50,
        help="Number of learners to generate (default: 50)",
    )
    parser.add_argument(
        "--weeks",
        type=int,
        default=12,
        help="Length of the simulated course in weeks (default: 12)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible runs")
    parser.add_argument(
        "--start-date",
        type=date.fromisoformat,
        default=None,
        help="Course start date (YYYY-MM-DD, default: two weeks from today)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Optional path to write the generated statements as JSON",
    )
    parser.add_argument(
        "--submit-url",
        type=str,
        default=None,
        help="Base URL of the statement API to submit the batch to",
    )
    parser.add_argument("--verbose", action="store_true", help="Log per-learner progress")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    try:
        catalog = load_course_catalog(args.course)
        verbs = load_verb_catalog(args.verbs)
        profiles = LearnerProfileGenerator(random_seed=args.seed).generate_learner_profiles(args.learners)
        generator = XAPIDataGenerator(catalog, verbs, weeks=args.weeks, random_seed=args.seed)
    except ConfigurationError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    sessions = generator.generate_all_sessions(profiles, args.start_date)
    statements = generator.statements_for_sessions(profiles, sessions)

    print("Persona distribution:")
    for persona_type, info in LearnerProfileGenerator.distribution_info(profiles).items():
        print(f"  {persona_type}: {info['count']} ({info['percentage']:.1f}%)")
    print("Session statistics:")
    print(json.dumps(session_statistics(sessions), indent=2))
    print(f"Statements generated: {len(statements)}")

    if args.output:
        output_path = Path(args.output)
        output_path.write_text(json.dumps(statements, indent=2), encoding="utf-8")
        print(f"Statements written to {output_path}")

    if args.submit_url:
        try:
            submit_statements(HttpStatementStore(args.submit_url), statements)
        except TransportError as exc:
            print(f"Submission failed: {exc}", file=sys.stderr)
            return 1
        print(f"Statements submitted to {args.submit_url}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
