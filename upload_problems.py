#!/usr/bin/env python3
"""
Upload Problems to Supabase
===========================

Reads a problems file (JSON or YAML) and upserts each problem into the
`problems` table. Every problem is validated first; problems with errors
are skipped.

Prerequisites:
    .env file with SUPABASE_URL and SUPABASE_ANON_KEY

Usage:
    python3 upload_problems.py --file data/problems.yaml
    python3 upload_problems.py --file data/problems.yaml --dry-run
    python3 upload_problems.py --file data/problems.yaml --problem p-001
"""

import sys
import os

# Add script directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from problem_store import load_problems_file
from validate_problem import validate_problem_item


def _arg_value(flag):
    """Value following `flag` in sys.argv. Returns (present, value)."""
    if flag not in sys.argv:
        return False, None
    idx = sys.argv.index(flag)
    if idx + 1 >= len(sys.argv):
        return True, None
    return True, sys.argv[idx + 1]


def main():
    dry_run = '--dry-run' in sys.argv

    present, file_path = _arg_value('--file')
    if not present or not file_path:
        print("ERROR: --file requires a path (e.g. --file data/problems.yaml)")
        return 1

    present, problem_filter = _arg_value('--problem')
    if present and not problem_filter:
        print("ERROR: --problem requires a problem id (e.g. --problem p-001)")
        return 1

    problems = load_problems_file(file_path)

    if problem_filter:
        problems = {k: v for k, v in problems.items() if k == problem_filter}
        print(f"Filtered to problem: {problem_filter}")

    if len(problems) == 0:
        print("ERROR: No matching problems found")
        return 1

    if dry_run:
        print("\n=== DRY RUN: no changes will be written ===\n")
        store = None
    else:
        from problem_store_supabase import ProblemStoreSupabase
        store = ProblemStoreSupabase()

    success = 0
    failed = 0
    errors = []

    for problem_id, problem in problems.items():
        try:
            validation_errors, validation_warnings = validate_problem_item(problem_id, problem)

            for warn in validation_warnings:
                print(f"  ⚠ {problem_id}: {warn}")

            if validation_errors:
                failed += 1
                for err in validation_errors:
                    print(f"  ✗ {problem_id}: {err}")
                errors.append(f"{problem_id}: {len(validation_errors)} validation error(s)")
                continue

            category = problem["correct_answers"]["step3"]["inference_type"]

            if dry_run:
                print(f"  {problem_id}: {category}, {len(problem['options'])} options")
            else:
                store.save_problem(problem)
                print(f"  ✓ {problem_id}")

            success += 1

        except Exception as e:
            failed += 1
            errors.append(f"{problem_id}: {e}")
            print(f"  ✗ {problem_id}: {e}")

    print(f"\n=== Summary ===")
    print(f"Success: {success}")
    print(f"Failed:  {failed}")

    if errors:
        print(f"\nErrors:")
        for err in errors:
            print(f"  - {err}")

    if dry_run:
        print(f"\nDry run complete. Run without --dry-run to upload.")

    return 0 if failed == 0 else 1


if __name__ == '__main__':
    sys.exit(main())
