"""
Tutor Constants & Utilities: Shared Definitions
===============================================

Single source of truth for node ids, inference categories and step counts
used across answer_validation.py, step_progression.py, validate_problem.py
and the tests.
"""

# Fixed nodes: always present in every triangle
ANTECEDENT_ID = "antecedent"
CONSEQUENT_ID = "consequent"
FIXED_NODE_IDS = frozenset({ANTECEDENT_ID, CONSEQUENT_ID})

# Learner-created nodes get ids like "premise-1712345678"
PREMISE_ID_PREFIX = "premise-"

NODE_ROLES = frozenset({"antecedent", "consequent", "premise"})

# Step 3 inference categories
DEDUCTIVE = "deductive"
HYPOTHETICAL = "hypothetical"
INFORMAL = "informal"
INFERENCE_TYPES = frozenset({DEDUCTIVE, HYPOTHETICAL, INFORMAL})

# Validity strings the older check-step route accepted alongside booleans
VALIDITY_STRINGS = {"valid": True, "invalid": False}

DEDUCTIVE_TOTAL_STEPS = 3
NON_DEDUCTIVE_TOTAL_STEPS = 5
TWO_STEP_TOTAL_STEPS = 2
MAX_STEPS = NON_DEDUCTIVE_TOTAL_STEPS

MODE_FIVE_STEP = "five_step"
MODE_TWO_STEP = "two_step"
MODES = frozenset({MODE_FIVE_STEP, MODE_TWO_STEP})


def step_key(step_number):
    """1 → 'step1'."""
    return f"step{step_number}"


def total_steps_for(inference_type):
    """Number of active steps once Step 3 is classified.

    Deductive arguments are already valid, so there is nothing to repair:
    the attempt ends after classification. Every other category unlocks the
    repair (Step 4) and syllogism (Step 5) steps.
    """
    if inference_type == DEDUCTIVE:
        return DEDUCTIVE_TOTAL_STEPS
    return NON_DEDUCTIVE_TOTAL_STEPS


def expected_validity_for(inference_type):
    """Validity implied by a category: only deductive inferences are valid."""
    return inference_type == DEDUCTIVE
