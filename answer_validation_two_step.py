"""
Answer Validation: Two-Step Presentation
========================================

Alternate problem presentation used in the comparison study: the learner
writes the argument symbolically instead of drawing the triangle.

    Step 1: two premises + the conclusion, as {antecedent, consequent} pairs
    Step 2: inference type + whether the argument is valid

It reads the same AnswerKey as the five-step checks (see answer_validation):
premises come from the Step 2 links (from → antecedent, to → consequent),
the conclusion from Step 1, and the category from Step 3.
"""

from answer_validation import check_step1, premises_match
from tutor_constants import expected_validity_for, step_key


def _key_premises(key):
    return [{"antecedent": link.get("from"), "consequent": link.get("to")}
            for link in key.get("step2") or []]


def check_two_step_step1(fragment, key):
    if not isinstance(fragment, dict):
        return False
    if not check_step1(fragment.get("conclusion"), key):
        return False

    expected = _key_premises(key)
    if not expected:
        return False
    submitted = [fragment.get("premise1") or {}, fragment.get("premise2") or {}]
    return premises_match(expected, submitted)


def two_step_field_errors(fragment, key):
    """Per-field correctness for the Step 2 form (True = field is right).

    The expected validity is derived from the category alone (deductive is
    valid, everything else is not), never from a stored validity flag.
    `isLogical` is no longer asked and is always reported as correct.
    """
    if not isinstance(fragment, dict):
        return {"isLogical": True, "isValid": False, "inferenceType": False}

    expected_type = (key.get("step3") or {}).get("inference_type")
    inference_type_ok = bool(expected_type) and fragment.get("inferenceType") == expected_type
    is_valid_ok = fragment.get("isValid") is expected_validity_for(expected_type)
    return {"isLogical": True, "isValid": is_valid_ok, "inferenceType": inference_type_ok}


def check_two_step_step2(fragment, key):
    errors = two_step_field_errors(fragment, key)
    return errors["isValid"] and errors["inferenceType"]


def check_two_step(step_number, steps_state, key):
    steps_state = steps_state if isinstance(steps_state, dict) else {}
    fragment = steps_state.get(step_key(step_number))
    if step_number == 1:
        correct = check_two_step_step1(fragment, key)
    elif step_number == 2:
        correct = check_two_step_step2(fragment, key)
    else:
        correct = False
    return {"step": step_number, "correct": correct, "matchedVariant": None}
