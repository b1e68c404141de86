"""
Answer Validation: Five-Step Triangle Logic
===========================================

Decides, for each step, whether the learner's fragment matches the answer key.

The stored `correct_answers` of a problem has drifted through several shapes
over time (flat link lists, lists of variants, {"links": ...} wrappers).
load_answer_key() folds all of them into one AnswerKey when a problem is
loaded; the step checks below only ever see that normalized key:

    {
        "step1": {"antecedent": str, "consequent": str} | None,
        "step2": [{"from": label, "to": label}, ...],
        "step3": {"inference_type": str, "validity": bool, "verification"?: bool} | None,
        "step4": [[{"from", "to", "active"}, ...], ...],     # variants, OR semantics
        "step5": [[{"antecedent", "consequent"}, ...], ...], # variants, paired by index with step4
    }

Every check is a pure function and never raises on learner input: anything
malformed or missing is simply "not correct yet".
"""

import json
from collections import Counter

from triangle_graph import (
    is_active,
    link_identity,
    make_resolver,
    premise_node_ids,
    resolve_link,
)
from tutor_constants import VALIDITY_STRINGS, step_key


# ---------------------------------------------------------------------------
# Variant normalization
# ---------------------------------------------------------------------------

def _only_dicts(items):
    return [item for item in items if isinstance(item, dict)]


def normalize_variants(raw, field):
    """Canonicalize a stored step 4/5 answer into a list of variants.

    Tolerated shapes:
        [entry, ...]                    → [[entry, ...]]
        [[entry, ...], [entry, ...]]    → unchanged
        {field: <either of the above>}  → unwrapped, then as above

    Anything else (None, empty, scalars, dicts without `field`) yields [],
    which no submission can match. Variant order is preserved.
    """
    if isinstance(raw, dict):
        raw = raw.get(field)
    if not isinstance(raw, list) or not raw:
        return []
    if isinstance(raw[0], list):
        return [_only_dicts(variant) for variant in raw if isinstance(variant, list)]
    return [_only_dicts(raw)]


def normalize_step4_variants(raw):
    return normalize_variants(raw, "links")


def normalize_step5_variants(raw):
    return normalize_variants(raw, "premises")


def normalize_step2_links(raw):
    """Step 2 has exactly one accepted link set: a list or {"links": [...]}."""
    if isinstance(raw, dict):
        raw = raw.get("links")
    if not isinstance(raw, list):
        return []
    return _only_dicts(raw)


def load_answer_key(problem):
    """Normalize a problem's correct_answers once, at problem load time."""
    answers = problem.get("correct_answers") if isinstance(problem, dict) else None
    if not isinstance(answers, dict):
        answers = {}

    step1 = answers.get("step1")
    step3 = answers.get("step3")

    return {
        "step1": step1 if isinstance(step1, dict) else None,
        "step2": normalize_step2_links(answers.get("step2")),
        "step3": step3 if isinstance(step3, dict) else None,
        "step4": normalize_step4_variants(answers.get("step4")),
        "step5": normalize_step5_variants(answers.get("step5")),
    }


# ---------------------------------------------------------------------------
# Step 1: derived proposition
# ---------------------------------------------------------------------------

def check_step1(fragment, key):
    expected = key.get("step1")
    if not isinstance(fragment, dict) or not expected:
        return False
    return (fragment.get("antecedent") == expected.get("antecedent")
            and fragment.get("consequent") == expected.get("consequent"))


# ---------------------------------------------------------------------------
# Step 2: premises and links
# ---------------------------------------------------------------------------

def check_step2(fragment, registry, key):
    """The resolved link multiset must equal the key, and no premise node may dangle.

    The second condition stops a learner from creating decoy premise nodes
    that are left unconnected while the links alone look right.
    """
    expected_links = key.get("step2") or []
    if not isinstance(fragment, dict) or not expected_links:
        return False

    links = fragment.get("links")
    if not isinstance(links, list):
        return False
    links = _only_dicts(links)

    registry = registry or {}
    resolve = make_resolver(registry)
    submitted = Counter(resolve_link(link, resolve) for link in links)
    expected = Counter((link.get("from"), link.get("to")) for link in expected_links)
    if submitted != expected:
        return False

    connected = set()
    for link in links:
        connected.update(link_identity(link))
    return all(node_id in connected for node_id in premise_node_ids(registry))


# ---------------------------------------------------------------------------
# Step 3: inference type and validity
# ---------------------------------------------------------------------------

def normalize_validity(value):
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return VALIDITY_STRINGS.get(value.strip().lower())
    return None


def _fragment_inference_type(fragment):
    # UI posts camelCase, stored attempts use snake_case
    if "inferenceType" in fragment:
        return fragment.get("inferenceType")
    return fragment.get("inference_type")


def check_step3(fragment, key):
    expected = key.get("step3")
    if not isinstance(fragment, dict) or not expected:
        return False

    expected_type = expected.get("inference_type")
    if not expected_type:
        return False
    if _fragment_inference_type(fragment) != expected_type:
        return False

    expected_validity = normalize_validity(expected.get("validity"))
    submitted_validity = normalize_validity(fragment.get("validity"))
    if expected_validity is None or submitted_validity is None:
        return False
    if submitted_validity != expected_validity:
        return False

    # Older problems carry no verification expectation and must not fail on it
    expected_verification = expected.get("verification")
    if expected_verification is not None:
        return fragment.get("verification") is expected_verification
    return True


# ---------------------------------------------------------------------------
# Step 4: repair into a valid subgraph
# ---------------------------------------------------------------------------

def collect_step4_links(step2_links, step4_links):
    """Union of the Step 2 graph and the Step 4 edits, keyed by endpoint identity.

    Step 2 links start active; a Step 4 entry with the same endpoints sets the
    activation state, and Step 4 entries with new endpoints are appended.
    """
    merged = {}
    for link in _only_dicts(step2_links or []):
        merged[link_identity(link)] = {"from": link.get("from"), "to": link.get("to"), "active": True}
    for link in _only_dicts(step4_links or []):
        identity = link_identity(link)
        if identity in merged:
            merged[identity]["active"] = is_active(link)
        else:
            merged[identity] = {"from": link.get("from"), "to": link.get("to"), "active": is_active(link)}
    return list(merged.values())


def extract_active_labels(links, resolve):
    """Active links only, as (from_label, to_label) pairs."""
    return [resolve_link(link, resolve) for link in _only_dicts(links or []) if is_active(link)]


def matches_active_links(variant, actual_pairs):
    required = [(link.get("from"), link.get("to")) for link in variant if is_active(link)]
    if len(required) != len(actual_pairs):
        return False
    return all(pair in actual_pairs for pair in required)


def find_matching_variant(variants, actual_pairs):
    """Index of the first variant the submission satisfies, or -1."""
    for index, variant in enumerate(variants):
        if matches_active_links(variant, actual_pairs):
            return index
    return -1


def check_step4(fragment, registry, key, step2_links=None):
    """Returns the matched variant index (-1 when nothing matches)."""
    variants = key.get("step4") or []
    if not isinstance(fragment, dict) or not variants:
        return -1
    step4_links = fragment.get("links")
    if not isinstance(step4_links, list):
        step4_links = []
    links = collect_step4_links(step2_links, step4_links)
    actual = extract_active_labels(links, make_resolver(registry))
    return find_matching_variant(variants, actual)


# ---------------------------------------------------------------------------
# Step 5: two-premise syllogism
# ---------------------------------------------------------------------------

def _premise_signature(premise):
    return json.dumps([premise.get("antecedent"), premise.get("consequent")], ensure_ascii=False)


def premises_match(expected, actual):
    """Same premises regardless of their order; each pair keeps its direction."""
    if not isinstance(actual, list) or len(expected) != len(actual):
        return False
    if not all(isinstance(premise, dict) for premise in actual):
        return False
    return sorted(map(_premise_signature, expected)) == sorted(map(_premise_signature, actual))


def step5_candidates(variants, matched_step4_index=-1):
    """Step 5 variants a submission may match, given the Step 4 outcome.

    A Step 4 match at index i pins Step 5 to variant i when one exists, so the
    repaired graph and the restated syllogism describe the same argument.
    """
    if 0 <= matched_step4_index < len(variants):
        return [variants[matched_step4_index]]
    return variants


def check_step5(fragment, key, matched_step4_index=-1):
    variants = key.get("step5") or []
    if not isinstance(fragment, dict) or not variants:
        return False
    premises = fragment.get("premises")
    return any(premises_match(variant, premises)
               for variant in step5_candidates(variants, matched_step4_index))


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

def _step_result(step_number, correct, matched_variant=None):
    return {"step": step_number, "correct": bool(correct), "matchedVariant": matched_variant}


def check_step(step_number, steps_state, key, registry=None):
    """Check one step of a five-step attempt. Returns a StepResult dict.

    Step 4 and 5 results carry `matchedVariant`: the Step 4 variant index the
    current graph satisfies (-1 for none).
    """
    steps_state = steps_state if isinstance(steps_state, dict) else {}
    fragment = steps_state.get(step_key(step_number))
    if not isinstance(fragment, dict):
        return _step_result(step_number, False)

    if step_number == 1:
        return _step_result(1, check_step1(fragment, key))
    if step_number == 2:
        return _step_result(2, check_step2(fragment, registry, key))
    if step_number == 3:
        return _step_result(3, check_step3(fragment, key))

    step2 = steps_state.get("step2")
    step2_links = step2.get("links") if isinstance(step2, dict) else None
    if step_number == 4:
        matched = check_step4(fragment, registry, key, step2_links)
        return _step_result(4, matched != -1, matched)
    if step_number == 5:
        matched = check_step4(steps_state.get("step4"), registry, key, step2_links)
        return _step_result(5, check_step5(fragment, key, matched), matched)

    return _step_result(step_number, False)
