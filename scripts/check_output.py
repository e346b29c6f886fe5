#!/usr/bin/env python3
"""
Run the normalize + sanitize stages over raw model output, offline.

Useful for checking how a captured LLM response would be treated
without calling the model.

Usage:
  python scripts/check_output.py response.txt other.txt --source-file contract.pdf
  pbpaste | python scripts/check_output.py -
  python scripts/check_output.py --samples
"""

import argparse
import json
import sys
from typing import List, Optional, Tuple

from aidoc.extraction.pipeline import validate_output

SAMPLES: List[Tuple[str, str]] = [
    (
        "valid JSON in a fence, extra field and blank source_file",
        "```json\n"
        '{"items": [{"date_text": "March 1, 2024", "date_iso": "2024-03-01", "type": "deadline",'
        ' "summary": "Contract due", "source_file": "", "page": 2, "section": "Payment terms",'
        ' "confidence": 0.9, "extra": "should be ignored"}]}\n'
        "```",
    ),
    ("items is not an array", '{"foo": "bar", "items": "not-array"}'),
    ("empty fenced array", "```json\n[]\n```"),
]


def _read(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _render(raw: str, source_file: str) -> Optional[list]:
    items = validate_output(raw, source_file)
    return None if items is None else [i.model_dump() for i in items]


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("paths", nargs="*", help="Files with raw model output ('-' for stdin)")
    ap.add_argument("--source-file", default="sample.pdf", help="Fallback source_file for items")
    ap.add_argument("--samples", action="store_true", help="Run the built-in sample outputs")
    args = ap.parse_args()

    inputs: List[Tuple[str, str]] = []
    if args.samples:
        inputs.extend(SAMPLES)
    inputs.extend((p, _read(p)) for p in args.paths)
    if not inputs:
        ap.error("give at least one path or --samples")

    for name, raw in inputs:
        print(f"\n[{name}]")
        result = _render(raw, args.source_file)
        if result is None:
            print("null  (no usable structure; the service would try a repair pass)")
        else:
            print(json.dumps(result, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
