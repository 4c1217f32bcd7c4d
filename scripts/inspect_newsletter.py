#!/usr/bin/env python3
"""
Functional check - runs a newsletter file through the full parser and prints
each step.

Runs the incremental parser with every stage enabled:
- Content cleaning (rule engine)
- Footnote links
- Whitespace normalization
- Structure recovery

Usage:
    python scripts/inspect_newsletter.py FILE [--save]

Example:
    python scripts/inspect_newsletter.py samples/weekly.html
    python scripts/inspect_newsletter.py samples/weekly.html --save
"""
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from newsletter_parser.models import PipelineOptions
from newsletter_parser.pipeline import incremental_parser


def inspect_file(path: Path, save: bool = False) -> None:
    """Parse one newsletter file and print the step audit trail."""
    print(f"\n{'=' * 60}")
    print(f"Parsing: {path}")
    print(f"{'=' * 60}\n")

    raw = path.read_text(encoding="utf-8", errors="replace")
    options = PipelineOptions(
        enable_content_cleaning=True,
        enable_footnote_links=True,
        enable_structure_recovery=True,
    )
    result = incremental_parser.parse(raw, options)

    print("Statistics:")
    print(f"   - Raw length: {len(raw)} chars")
    print(f"   - Output length: {len(result.final_output)} chars")
    print(f"   - Words: {result.metadata.word_count}")
    print(f"   - Compression: {result.metadata.compression_ratio}")
    print(f"   - Version: {result.metadata.processing_version}")
    if result.metadata.error:
        print(f"   - Error: {result.metadata.error}")

    print("\nSteps:")
    for step in result.steps:
        status = "skipped" if step.skipped else ("ok" if step.success else f"FAILED ({step.error})")
        print(f"   - {step.step_name}: {status}")

    if save:
        output = path.with_suffix(".parsed.html")
        output.write_text(result.final_output, encoding="utf-8")
        print(f"\nSaved: {output}")
    else:
        print(f"\n{'-' * 60}")
        print("OUTPUT:")
        print(f"{'-' * 60}\n")
        print(result.final_output)


def main():
    args = sys.argv[1:]
    save = "--save" in args
    args = [a for a in args if a != "--save"]
    if not args:
        print("Usage: python scripts/inspect_newsletter.py FILE [--save]")
        sys.exit(1)
    inspect_file(Path(args[0]), save=save)


if __name__ == "__main__":
    main()
