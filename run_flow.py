#!/usr/bin/env python3
"""
Drive a job application flow from the command line.

    python run_flow.py run URL [--cv resume.pdf] [--cover letter.pdf] [--auto-advance]
    python run_flow.py inspect saved_page.html [--url https://acme.wd5.myworkdayjobs.com/...]
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent))

from formpilot.config import PROFILE_PATH, load_profile
from formpilot.log import get_logger, set_level

log = get_logger(__name__)


def _prompt_confirm(result) -> bool:
    print()
    print(f"  {result.message or 'Ready to submit.'}")
    answer = input("  Submit the application now? [y/N] ").strip().lower()
    return answer in ("y", "yes")


def cmd_run(args: argparse.Namespace) -> int:
    from formpilot.runner import FlowError, run_application

    if not PROFILE_PATH.exists():
        print()
        print(f"  No profile found at {PROFILE_PATH}.")
        print("  Copy config/profile.example.yaml to config/profile.yaml and fill it in.")
        print()
        return 1

    cover_text = ""
    if args.cover_text:
        cover_text = Path(args.cover_text).read_text(encoding="utf-8", errors="ignore")

    try:
        results = run_application(
            args.url,
            load_profile(),
            cv_path=args.cv,
            cover_path=args.cover,
            cover_text=cover_text,
            headless=args.headless,
            auto_advance=True if args.auto_advance else None,
            auto_submit=True if args.auto_submit else None,
            max_steps=args.max_steps,
            confirm=_prompt_confirm,
        )
    except FlowError as exc:
        log.error("%s", exc)
        return 2

    for i, r in enumerate(results, 1):
        page = r.page.value if r.page else "-"
        mark = "✓" if r.success else "✗"
        log.info("%2d. %s %-22s %-28s filled=%d %s", i, mark, page, r.action.value, r.filled, r.message)
        for err in r.errors:
            log.info("      ! %s", err)
    return 0 if results and results[-1].success else 1


def cmd_inspect(args: argparse.Namespace) -> int:
    from formpilot.fields import FieldSignatureClassifier
    from formpilot.page import SnapshotFormAdapter
    from formpilot.pages import PageSignatureClassifier
    from formpilot.platforms import get_platform

    page = SnapshotFormAdapter.from_file(args.file, url=args.url or "")
    platform = get_platform(page.url)
    info = PageSignatureClassifier(platform).page_info(page)
    fields = FieldSignatureClassifier().find_all_fields(page)

    info["fields"] = [
        {"type": f.type.value, "tag": f.control.tag, "name": f.control.attr("name") or f.control.attr("id")}
        for f in fields
    ]
    print(json.dumps(info, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Fill multi-step job application forms")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every selector and event")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Open a job URL in a browser and walk the application")
    run.add_argument("url")
    run.add_argument("--cv", help="CV/resume file to attach at the experience step")
    run.add_argument("--cover", help="Cover letter file to attach")
    run.add_argument("--cover-text", help="Text file pasted into a cover letter box")
    run.add_argument("--headless", action="store_true")
    run.add_argument("--auto-advance", action="store_true", help="Click Next after each clean step")
    run.add_argument("--auto-submit", action="store_true",
                     help="Offer to submit at the review step (always asks first)")
    run.add_argument("--max-steps", type=int, default=25)
    run.set_defaults(func=cmd_run)

    inspect = sub.add_parser("inspect", help="Classify a saved HTML page offline")
    inspect.add_argument("file")
    inspect.add_argument("--url", help="URL the page was saved from (selects the platform)")
    inspect.set_defaults(func=cmd_inspect)
    return parser


if __name__ == "__main__":
    args = build_parser().parse_args()
    if args.verbose:
        set_level("DEBUG")
    sys.exit(args.func(args))
