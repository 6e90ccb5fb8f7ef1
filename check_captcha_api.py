"""Replay captcha test cases against a running captcha reader API."""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import httpx

DEFAULT_URL = "http://127.0.0.1:3000/api/captcha/recognize"
DEFAULT_DATA_FILE = Path(__file__).parent / "test-captcha-data.json"


def check_case(client: httpx.Client, url: str, case: dict[str, Any]) -> dict[str, Any]:
    """Post one case and compare the returned result with the expected one."""
    try:
        response = client.post(url, json={"image": case.get("image", "")})
        data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        return {"success": False, "error": str(exc)}

    print(f"Status code: {response.status_code}")
    if "error" in data:
        print(f"API returned error: {data['error']}")
        return {"success": False, "error": data["error"]}
    if "result" not in data:
        print("API returned incorrect format, missing result field")
        return {"success": False, "error": "Incorrect return format"}

    details = data.get("details") or {}
    for key, label in (
        ("rawOcrResult", "Raw OCR Result"),
        ("cleanedText", "Cleaned Text"),
        ("expression", "Extracted Expression"),
        ("calculation", "Calculation Process"),
    ):
        if details.get(key):
            print(f"   {label}: {details[key]!r}")

    expected = case.get("expected_result")
    correct = data["result"] == expected
    print(f"Result {'Correct' if correct else 'Incorrect'}: {data['result']} {'=' if correct else '!='} {expected}")
    return {"success": True, "correct": correct, "result": data["result"], "expected": expected}


def run(data_file: Path, url: str, transport: httpx.BaseTransport | None = None) -> int:
    if not data_file.exists():
        print(f"Test data file not found: {data_file}")
        return 1

    cases = json.loads(data_file.read_text(encoding="utf-8")).get("test_cases", [])
    if not cases:
        print("No test cases found in test data file")
        return 1

    print(f"Service URL: {url}")
    print(f"Found {len(cases)} test cases")

    results = []
    with httpx.Client(timeout=30.0, transport=transport) as client:
        for idx, case in enumerate(cases, 1):
            print(f"\n=== Test Case {idx}/{len(cases)} ===")
            print(f"ID: {case.get('id')}  Name: {case.get('name')}")
            print(f"Expected Result: {case.get('expected_result')}")
            results.append(check_case(client, url, case))

    passed = sum(1 for r in results if r["success"] and r["correct"])
    print("\n=== Test Completed ===")
    print(f"Total Test Cases: {len(cases)}")
    print(f"Passed: {passed}")
    print(f"Failed: {len(cases) - passed}")
    print(f"Success Rate: {passed / len(cases) * 100:.2f}%")

    print("\n=== Detailed Results ===")
    for idx, (case, res) in enumerate(zip(cases, results), 1):
        description = case.get("description", "")
        if res["success"] and res["correct"]:
            print(f"[PASS] Test Case {idx}: {description} - Correct ({res['result']})")
        elif res["success"]:
            print(f"[FAIL] Test Case {idx}: {description} - Expected {res['expected']}, got {res['result']}")
        else:
            print(f"[FAIL] Test Case {idx}: {description} - Failed ({res['error']})")

    return 0 if passed == len(cases) else 1


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("data_file", nargs="?", type=Path, default=DEFAULT_DATA_FILE)
    parser.add_argument("--url", default=DEFAULT_URL)
    args = parser.parse_args()
    sys.exit(run(args.data_file, args.url))


if __name__ == "__main__":
    main()
