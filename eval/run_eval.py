#!/usr/bin/env python3
"""
Offline evaluation runner:
- Loads YAML cases under eval/cases/*.yaml
- Uploads each case's document to /extract-dates on a running server
- Scores the returned items against the expected dates and writes eval/report.json

Usage:
  python eval/run_eval.py --base-url http://localhost:3000
  python eval/run_eval.py --fast    # only the first N cases
"""

import argparse
import glob
import json
import mimetypes
import os
from typing import Any, Dict, List

import httpx
import yaml

DEFAULT_BASE_URL = "http://localhost:3000"
EVAL_DIR = os.path.dirname(os.path.abspath(__file__))
CASES_GLOB = os.path.join(EVAL_DIR, "cases", "*.yaml")
TIMEOUT = 120.0  # two model calls per request in the worst case

def load_cases(limit: int | None = None) -> List[Dict[str, Any]]:
    paths = sorted(glob.glob(CASES_GLOB))
    cases: List[Dict[str, Any]] = []
    for p in paths:
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or []
            if isinstance(data, list):
                cases.extend(data)
    if limit is not None:
        cases = cases[:limit]
    return cases

def post_document(client: httpx.Client, base_url: str, path: str) -> Dict[str, Any]:
    url = f"{base_url}/extract-dates"
    mime = mimetypes.guess_type(path)[0] or "application/octet-stream"
    with open(path, "rb") as f:
        files = {"file": (os.path.basename(path), f.read(), mime)}
    r = client.post(url, files=files, timeout=TIMEOUT)
    r.raise_for_status()
    return r.json()

def eval_case(client: httpx.Client, base_url: str, case: Dict[str, Any]) -> Dict[str, Any]:
    doc_path = os.path.join(EVAL_DIR, case["file"])
    payload = post_document(client, base_url, doc_path)
    items = (payload.get("data") or {}).get("items") or []

    got_dates = {i.get("date_iso") for i in items if i.get("date_iso")}
    got_pairs = {(i.get("date_iso"), i.get("type")) for i in items}

    expected = case.get("expect_dates", [])
    hits = [e for e in expected if e["date_iso"] in got_dates]
    typed_hits = [e for e in expected if (e["date_iso"], e.get("type")) in got_pairs]
    count_ok = len(items) >= case.get("min_items", 0)

    return {
        "id": case["id"],
        "file": case["file"],
        "expected": len(expected),
        "got": len(items),
        "date_recall": len(hits) / max(1, len(expected)),
        "type_accuracy": len(typed_hits) / max(1, len(expected)),
        "count_ok": count_ok,
        "raw": payload,  # keep for debugging
    }

def summarize(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    n = len(results)
    return {
        "total_cases": n,
        "mean_date_recall": round(sum(r["date_recall"] for r in results) / max(1, n), 3),
        "mean_type_accuracy": round(sum(r["type_accuracy"] for r in results) / max(1, n), 3),
        "count_ok_rate": round(sum(r["count_ok"] for r in results) / max(1, n), 3),
    }

def print_table(results: List[Dict[str, Any]], summary: Dict[str, Any]) -> None:
    headers = ["id", "expected", "got", "recall", "types", "count✓"]
    rows = []
    for r in results:
        rows.append([
            r["id"],
            r["expected"],
            r["got"],
            f"{r['date_recall']:.2f}",
            f"{r['type_accuracy']:.2f}",
            "✓" if r["count_ok"] else "✗",
        ])
    colw = [max(len(str(x)) for x in col) for col in zip(*([headers] + rows))]
    def fmt_row(row): return "  ".join(str(x).ljust(w) for x, w in zip(row, colw))

    print(fmt_row(headers))
    print("-" * (sum(colw) + 2 * (len(headers) - 1)))
    for row in rows:
        print(fmt_row(row))
    print("\nSummary:")
    for k, v in summary.items():
        print(f"- {k}: {v}")

def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--base-url", default=DEFAULT_BASE_URL)
    ap.add_argument("--fast", action="store_true", help="Run only the first 5 cases")
    ap.add_argument("--out", default=os.path.join(EVAL_DIR, "report.json"))
    ap.add_argument("--min-recall", type=float, default=0.0, help="Exit non-zero below this mean recall")
    args = ap.parse_args()

    cases = load_cases(limit=5 if args.fast else None)
    if not cases:
        print("No cases found under eval/cases/*.yaml")
        return

    results: List[Dict[str, Any]] = []
    with httpx.Client() as client:
        for c in cases:
            try:
                results.append(eval_case(client, args.base_url, c))
            except Exception as e:
                results.append({
                    "id": c["id"],
                    "file": c.get("file"),
                    "error": str(e),
                    "expected": len(c.get("expect_dates", [])),
                    "got": 0,
                    "date_recall": 0.0,
                    "type_accuracy": 0.0,
                    "count_ok": False,
                    "raw": {},
                })

    summary = summarize(results)

    # Write JSON report for CI / diffing
    os.makedirs(os.path.dirname(args.out), exist_ok=True)
    with open(args.out, "w", encoding="utf-8") as f:
        json.dump({"summary": summary, "results": results}, f, ensure_ascii=False, indent=2)

    print_table(results, summary)

    if summary["mean_date_recall"] < args.min_recall:
        print(f"\nMean date recall below target ({summary['mean_date_recall']} < {args.min_recall})")
        raise SystemExit(1)

if __name__ == "__main__":
    main()
