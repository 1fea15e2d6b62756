#!/usr/bin/env python3
"""
Example: Screen a case report from Python

Reads a case JSON file (CaseInput fields), runs the full pipeline and prints
the verdict, verified citations and the email draft.

Requirements:
    pip install -e ".[test]"
    cp .env.example .env  # Configure at least GEMINI_API_KEY and NCBI_EMAIL

Usage:
    python examples/run_case.py examples/cases/airway_fire.json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from catto.composition.email_report import build_email_draft
from catto.core.exceptions import ConfigurationError
from catto.core.schemas import CaseInput
from catto.llm.factory import create_provider
from catto.observability.log_config import configure_logging
from catto.orchestration.graph import CATTORunner


async def main(case_path: Path, show_email: bool) -> int:
    try:
        case = CaseInput.model_validate(json.loads(case_path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        print(f"❌  Could not read case file {case_path}: {e}")
        return 1

    try:
        llm = create_provider()
    except ConfigurationError as e:
        print(f"❌  {e}")
        return 1

    print(f"🔬  Screening: {case.main_event_1line or case.condition_event}")
    outcome = await CATTORunner(llm).run(case)

    if not outcome.succeeded:
        print(f"❌  {outcome.error_message} (retryable: {outcome.retryable})")
        return 1

    result = outcome.result
    print(f"✅  {result.judgement.value} Priority, Novelty {result.novelty_score}%")
    print(f"    Verified CATTO level: {result.verified_max_level}")
    print(f"    Query: {result.query_display}")
    print(f"    Papers evaluated: {result.paper_count} of {result.candidate_count} candidates")
    print()

    if result.citations:
        print(f"📋  Quick Literature Check ({len(result.citations)}):")
        for i, cite in enumerate(result.citations, 1):
            note = f" [{cite.verification_note.value}]" if cite.verification_note else ""
            print(f"    {i}. L{cite.verified_level}{note} {cite.title} (PMID: {cite.pmid})")
        print()

    print("📝  Reasoning:")
    print(result.reasoning)

    if show_email:
        draft = build_email_draft(result, case)
        print()
        print(f"✉️   {draft.subject}")
        print(draft.body)
        print()
        print(draft.mailto_url[:200] + "...")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Screen a case report for novelty")
    parser.add_argument("case_file", type=Path, help="Path to a case JSON file")
    parser.add_argument("--email", action="store_true", help="Print the email draft")
    args = parser.parse_args()

    load_dotenv()
    configure_logging()
    sys.exit(asyncio.run(main(args.case_file, args.email)))
