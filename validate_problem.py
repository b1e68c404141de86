#!/usr/bin/env python3
"""
Problem Metadata Validator
==========================

Hard checks to catch malformed answer keys before they reach learners.
Run standalone to validate a problems file, or import validate_problem_item()
for use in load/upload pipelines.

Checks fall into three categories:
  1. Structural: required fields, valid types, tolerated answer shapes
  2. Vocabulary: every label in the answer key is one of the problem's options
  3. Consistency: category vs. stored validity/total_steps, step 4/5 variants

Usage:
    python3 validate_problem.py                       # validates problems_db.json
    python3 validate_problem.py data/problems.yaml
"""

import sys

from answer_validation import (
    normalize_step2_links,
    normalize_step4_variants,
    normalize_step5_variants,
    normalize_validity,
)
from tutor_constants import (
    DEDUCTIVE,
    INFERENCE_TYPES,
    expected_validity_for,
    total_steps_for,
)

REQUIRED_FIELDS = ["problem_id", "argument", "options", "correct_answers", "version"]
REQUIRED_STEPS = ["step1", "step2", "step3"]
SYLLOGISM_PREMISE_COUNT = 2


def _check_labels(where, labels, options, errors):
    for label in labels:
        if label not in options:
            errors.append(f"{where}: '{label}' is not one of the options")


def _check_link_labels(where, links, options, errors):
    for i, link in enumerate(links):
        for end in ("from", "to"):
            if not isinstance(link.get(end), str) or not link.get(end):
                errors.append(f"{where} link {i}: missing '{end}'")
        _check_labels(f"{where} link {i}", [link[e] for e in ("from", "to") if link.get(e)], options, errors)


def validate_problem_item(problem_id, problem):
    """
    Validate a single problem.

    Returns:
        (errors, warnings): two lists of strings.
        errors = fatal issues (block upload/load)
        warnings = informational issues (log but don't block)
    """
    errors = []
    warnings = []

    if not isinstance(problem, dict):
        return ["Problem must be an object"], warnings

    # --- 1. Required top-level fields ---
    for field in REQUIRED_FIELDS:
        if not problem.get(field):
            errors.append(f"Missing required field: '{field}'")

    if problem.get("problem_id") and problem["problem_id"] != problem_id:
        errors.append(f"problem_id '{problem['problem_id']}' doesn't match key '{problem_id}'")

    options = problem.get("options")
    if options is not None and (not isinstance(options, list)
                                or not all(isinstance(o, str) and o for o in options)):
        errors.append("'options' must be a list of non-empty strings")
        options = None

    answers = problem.get("correct_answers")
    if not isinstance(answers, dict):
        if answers:
            errors.append("'correct_answers' must be an object")
        return errors, warnings

    for step in REQUIRED_STEPS:
        if not answers.get(step):
            errors.append(f"correct_answers missing '{step}'")

    options = options or []

    # --- 2. Step 1: derived proposition ---
    step1 = answers.get("step1")
    if isinstance(step1, dict):
        for end in ("antecedent", "consequent"):
            if not step1.get(end):
                errors.append(f"step1: missing '{end}'")
        _check_labels("step1", [step1[e] for e in ("antecedent", "consequent") if step1.get(e)], options, errors)
    elif step1:
        errors.append("step1 must be an object with 'antecedent' and 'consequent'")

    # --- 3. Step 2: premise links ---
    raw_step2 = answers.get("step2")
    if raw_step2:
        if not isinstance(raw_step2, list) and not (isinstance(raw_step2, dict) and isinstance(raw_step2.get("links"), list)):
            errors.append("step2 must be a list of links or {links: [...]}")
        else:
            links = normalize_step2_links(raw_step2)
            if not links:
                errors.append("step2 has no links")
            _check_link_labels("step2", links, options, errors)

    # --- 4. Step 3: category and validity ---
    step3 = answers.get("step3")
    category = None
    if isinstance(step3, dict):
        category = step3.get("inference_type")
        if category not in INFERENCE_TYPES:
            errors.append(f"step3: invalid inference_type '{category}', must be one of {sorted(INFERENCE_TYPES)}")
            category = None
        if normalize_validity(step3.get("validity")) is None:
            errors.append("step3: missing or unrecognised 'validity' (expected true/false)")
        elif category and normalize_validity(step3["validity"]) != expected_validity_for(category):
            warnings.append(f"step3: validity {step3['validity']} disagrees with category '{category}'")
    elif step3:
        errors.append("step3 must be an object with 'inference_type'")

    if category and "total_steps" in problem and problem["total_steps"] != total_steps_for(category):
        warnings.append(f"total_steps {problem['total_steps']} disagrees with category '{category}' "
                        f"(expected {total_steps_for(category)})")

    # --- 5. Steps 4/5: repair variants, paired by index ---
    step4_variants = normalize_step4_variants(answers.get("step4"))
    step5_variants = normalize_step5_variants(answers.get("step5"))

    if category == DEDUCTIVE:
        if step4_variants or step5_variants:
            warnings.append("deductive problem has step4/step5 answers that will never be asked")
        return errors, warnings

    if category:
        if not step4_variants:
            errors.append("non-deductive problem has no usable step4 variants")
        if not step5_variants:
            errors.append("non-deductive problem has no usable step5 variants")

    for v, variant in enumerate(step4_variants):
        if not any(link.get("active") is not False for link in variant):
            errors.append(f"step4 variant {v}: no active links")
        _check_link_labels(f"step4 variant {v}", variant, options, errors)

    for v, variant in enumerate(step5_variants):
        if len(variant) != SYLLOGISM_PREMISE_COUNT:
            errors.append(f"step5 variant {v}: expected {SYLLOGISM_PREMISE_COUNT} premises, got {len(variant)}")
        for i, premise in enumerate(variant):
            labels = [premise.get(e) for e in ("antecedent", "consequent")]
            if not all(isinstance(label, str) and label for label in labels):
                errors.append(f"step5 variant {v} premise {i}: needs 'antecedent' and 'consequent'")
                continue
            _check_labels(f"step5 variant {v} premise {i}", labels, options, errors)

    if step4_variants and step5_variants and len(step4_variants) != len(step5_variants):
        warnings.append(f"step4 has {len(step4_variants)} variants but step5 has {len(step5_variants)}; "
                        "unpaired step4 variants accept any step5 variant")

    return errors, warnings


# ---------------------------------------------------------------------------
# Standalone runner
# ---------------------------------------------------------------------------

def validate_all(problems):
    """Validate every problem in a {problem_id: problem} dict. Returns (total, passed, failed)."""
    total = len(problems)
    passed = 0
    failed = 0

    for problem_id, problem in sorted(problems.items()):
        errors, warnings_list = validate_problem_item(problem_id, problem)

        if errors:
            failed += 1
            print(f"\n✗ {problem_id}")
            for err in errors:
                print(f"  ERROR: {err}")
            for warn in warnings_list:
                print(f"  WARNING: {warn}")
        elif warnings_list:
            passed += 1
            print(f"\n⚠ {problem_id}")
            for warn in warnings_list:
                print(f"  WARNING: {warn}")
        else:
            passed += 1
            print(f"✓ {problem_id}")

    print(f"\n{'='*40}")
    print(f"Total: {total}  Passed: {passed}  Failed: {failed}")

    return total, passed, failed


if __name__ == "__main__":
    from problem_store import DEFAULT_PROBLEMS_DB_PATH, load_problems_file

    path = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_PROBLEMS_DB_PATH
    total, passed, failed = validate_all(load_problems_file(path))
    sys.exit(1 if failed > 0 else 0)
