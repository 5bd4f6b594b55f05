import argparse
import json
import logging
import sys
from pathlib import Path

from .config import HEADLESS, MAX_PAGES, PDF_THRESHOLD
from .errors import GrantFillError
from .grant import GrantApplication, load_grant, save_grant

logger = logging.getLogger("grantfill")


def cmd_parse(args) -> int:
    from .documents import parse_source

    questions, source_type = parse_source(args.source)
    is_url = source_type == "web"
    name = args.name or (args.source if is_url else Path(args.source).stem)
    grant = GrantApplication.new(
        grant_name=name,
        grant_url=args.source if is_url else (args.grant_url or ""),
        portal_url=args.portal_url,
        source_type=source_type,
        source_file=None if is_url else args.source,
        responses=questions,
    )
    save_grant(grant, args.output)
    print(f"[ok] {len(questions)} question(s) written to {args.output}")
    return 0


def cmd_draft(args) -> int:
    from .llm import draft_answers
    from .profile import load_profile

    grant = load_grant(args.grant)
    profile = load_profile(args.profile)
    grant.responses = draft_answers(grant.responses, profile, only_missing=args.only_missing)
    grant.status = "ready"
    save_grant(grant, args.output or args.grant)
    manual = sum(1 for q in grant.responses if q.needs_manual_input)
    print(f"[ok] drafted {len(grant.responses)} answer(s); {manual} need manual input")
    return 0


def cmd_review(args) -> int:
    from .prompts import complete_question, review_questions

    grant = load_grant(args.grant)
    if args.id:
        target = grant.question(args.id)
        if target is None:
            logger.error(f"no question with id {args.id} in {args.grant}")
            return 1
        done = complete_question(target)
        grant.responses = [done if q is target else q for q in grant.responses]
    else:
        grant.responses = review_questions(grant.responses, everything=args.all)
    save_grant(grant, args.output or args.grant)
    return 0


def cmd_fill_web(args) -> int:
    from .runner import fill_web_form

    grant = load_grant(args.grant)
    target = args.url or grant.fill_target()
    report = fill_web_form(target, grant.responses, headless=not args.headed,
                           keep_open=args.keep_open, max_pages=args.max_pages)
    print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
    return 0


def cmd_fill_pdf(args) -> int:
    from .pdf_fill import fill_pdf_form

    grant = load_grant(args.grant)
    source = args.pdf or grant.source_file
    if not source:
        logger.error("no source PDF given and the grant record has no source_file")
        return 1
    result = fill_pdf_form(Path(source).read_bytes(), grant.responses, threshold=args.threshold)
    if not result.filled:
        print(f"[info] no form fields filled in {source}; nothing written")
        return 2
    Path(args.output).write_bytes(result.data)
    print(f"[ok] filled {result.fields_filled}/{result.fields_total} field(s) -> {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="grantfill", description="Grant application question extraction and form filling")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("parse", help="Extract questions from a PDF, DOCX or web form into a grant JSON")
    p.add_argument("source", help="Document path or http(s) URL")
    p.add_argument("-o", "--output", required=True, help="Grant JSON to write")
    p.add_argument("--name", help="Grant name (defaults to the file name or URL)")
    p.add_argument("--grant-url", help="Grant URL for document sources")
    p.add_argument("--portal-url", help="Separate web form URL used for filling")
    p.set_defaults(func=cmd_parse)

    p = sub.add_parser("draft", help="Draft answers from an organization profile")
    p.add_argument("grant", help="Grant JSON")
    p.add_argument("--profile", required=True, help="Organization profile JSON")
    p.add_argument("--only-missing", action="store_true", help="Keep answers that already exist")
    p.add_argument("-o", "--output", help="Write here instead of updating the grant file")
    p.set_defaults(func=cmd_draft)

    p = sub.add_parser("review", help="Answer questions that need manual input")
    p.add_argument("grant", help="Grant JSON")
    p.add_argument("--all", action="store_true", help="Walk every question, not only flagged ones")
    p.add_argument("--id", help="Answer only the question with this id")
    p.add_argument("-o", "--output", help="Write here instead of updating the grant file")
    p.set_defaults(func=cmd_review)

    p = sub.add_parser("fill-web", help="Fill the grant's web form (never submits)")
    p.add_argument("grant", help="Grant JSON")
    p.add_argument("--url", help="Override the fill target URL")
    p.add_argument("--headed", action="store_true", default=not HEADLESS, help="Show the browser")
    p.add_argument("--keep-open", action="store_true", help="With --headed, leave the browser open for review")
    p.add_argument("--max-pages", type=int, default=MAX_PAGES, help="Page ceiling")
    p.set_defaults(func=cmd_fill_web)

    p = sub.add_parser("fill-pdf", help="Fill a PDF's form fields; exits 2 when nothing could be filled")
    p.add_argument("grant", help="Grant JSON")
    p.add_argument("--pdf", help="Source PDF (defaults to the grant's source_file)")
    p.add_argument("-o", "--output", required=True, help="Filled PDF to write")
    p.add_argument("--threshold", type=float, default=PDF_THRESHOLD, help="Minimum field/question score")
    p.set_defaults(func=cmd_fill_pdf)
    return ap


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="[%(levelname)s] %(message)s")
    try:
        return args.func(args)
    except (GrantFillError, OSError, ValueError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
