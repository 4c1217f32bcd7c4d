# -*- coding: utf-8 -*-
"""
Command line entry point: python -m newsletter_parser {clean,parse,preview} FILE
"""
import argparse
import sys

from newsletter_parser.cleaner import clean_content
from newsletter_parser.config import settings
from newsletter_parser.content import process_newsletter_content
from newsletter_parser.logging_config import setup_logging
from newsletter_parser.models import PipelineOptions
from newsletter_parser.pipeline import parse_content


def read_source(path: str) -> str:
    """Read newsletter HTML from a file, or stdin for "-"."""
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8", errors="replace") as f:
        return f.read()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="newsletter_parser",
        description="Clean and normalize newsletter HTML, printing JSON results.",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    commands = parser.add_subparsers(dest="command", required=True)

    clean = commands.add_parser("clean", help="Run the cleaning rules")
    clean.add_argument("source", help="HTML file, or - for stdin")

    parse = commands.add_parser("parse", help="Run the incremental parser")
    parse.add_argument("source", help="HTML file, or - for stdin")
    parse.add_argument("--skip-basic-conversion", action="store_true")
    parse.add_argument("--structure-recovery", action="store_true")
    parse.add_argument("--link-preservation", action="store_true")
    parse.add_argument("--image-preservation", action="store_true")
    parse.add_argument("--footnotes", action="store_true", help="Convert links to footnotes")
    parse.add_argument("--clean", action="store_true", help="Run the cleaning rules first")

    preview = commands.add_parser("preview", help="Clean HTML, plain text and preview text")
    preview.add_argument("source", help="HTML file, or - for stdin")
    preview.add_argument("--length", type=int, default=settings.PREVIEW_TEXT_LENGTH)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run one command and print its result as JSON."""
    args = build_parser().parse_args(argv)
    # stdout carries the JSON result
    setup_logging(args.log_level, stream=sys.stderr)

    html = read_source(args.source)

    if args.command == "clean":
        result = clean_content(html)
    elif args.command == "parse":
        options = PipelineOptions(
            skip_basic_conversion=args.skip_basic_conversion,
            enable_structure_recovery=args.structure_recovery,
            enable_link_preservation=args.link_preservation,
            enable_image_preservation=args.image_preservation,
            enable_footnote_links=args.footnotes,
            enable_content_cleaning=args.clean,
        )
        result = parse_content(html, options)
    else:
        result = process_newsletter_content(html, preview_length=args.length)

    print(result.model_dump_json(by_alias=True, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
