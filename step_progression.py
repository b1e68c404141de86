"""
Step Progression: Attempt Sequencer
===================================

Owns the learner's StepsState for one attempt and decides when to move on.
The current step's answer is checked, the step's isPassed flag is set, and
the attempt advances only when the check succeeds. Passing the last active
step completes the attempt.

The number of active steps is not fixed. In the five-step presentation it
starts at the problem's stored total (3 by default). It is recomputed every
time the learner changes the Step 3 classification:

    deductive      → 3 steps, Step 4/5 fragments are deleted from state
    anything else  → 5 steps, Step 4/5 fragments are created empty if missing

The recompute is idempotent and can flip back and forth any number of times
without touching Steps 1-3.

Session state round-trips through the client as signed JSON, exactly like
the trainer sessions did: the server keeps nothing between requests.
"""

import copy
import hashlib
import hmac
import json
import os
import secrets

from answer_validation import check_step
from answer_validation_two_step import check_two_step
from tutor_constants import (
    DEDUCTIVE_TOTAL_STEPS,
    MODE_FIVE_STEP,
    MODE_TWO_STEP,
    MODES,
    NON_DEDUCTIVE_TOTAL_STEPS,
    TWO_STEP_TOTAL_STEPS,
    step_key,
    total_steps_for,
)

# Session signing secret: from env var or generated at startup (dev only)
_SESSION_SECRET = os.environ.get("SESSION_SECRET", "").encode("utf-8")
if not _SESSION_SECRET:
    _SESSION_SECRET = secrets.token_bytes(32)
    print("[WARNING] No SESSION_SECRET env var, using random key (sessions won't survive restarts)")

# --- Render templates (auto-reload) ---

RENDER_TEMPLATES = {}
RENDER_TEMPLATES_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "render_templates.json")
RENDER_TEMPLATES_MTIME = 0


def _load_render_templates():
    global RENDER_TEMPLATES, RENDER_TEMPLATES_MTIME
    current_mtime = os.path.getmtime(RENDER_TEMPLATES_PATH)
    with open(RENDER_TEMPLATES_PATH, "r", encoding="utf-8") as f:
        RENDER_TEMPLATES = json.load(f)
    RENDER_TEMPLATES_MTIME = current_mtime
    print(f"Loaded render_templates.json (mtime: {current_mtime})")


def maybe_reload_render_templates():
    """Check if render_templates.json has been modified and reload if needed."""
    current_mtime = os.path.getmtime(RENDER_TEMPLATES_PATH)
    if current_mtime != RENDER_TEMPLATES_MTIME:
        print("[Auto-reload] render_templates.json changed, reloading...")
        _load_render_templates()


_load_render_templates()


def feedback_message(name):
    feedback = RENDER_TEMPLATES.get("feedback")
    if not feedback or name not in feedback:
        raise ValueError(f"render_templates.json missing feedback '{name}'")
    return feedback[name]


# --- Step fragments ---

_EMPTY_PAIR = {"antecedent": "", "consequent": ""}

_FIVE_STEP_DEFAULTS = {
    1: {"antecedent": "", "consequent": ""},
    2: {"links": []},
    3: {"inferenceType": "", "validity": None, "verification": None},
    4: {"links": []},
    5: {"premises": []},
}

_TWO_STEP_DEFAULTS = {
    1: {"premise1": _EMPTY_PAIR, "premise2": _EMPTY_PAIR, "conclusion": _EMPTY_PAIR},
    2: {"inferenceType": "", "isValid": None},
}

_SESSION_FIELDS = {
    "mode": MODE_FIVE_STEP,
    "current_step": 1,
    "total_steps": DEDUCTIVE_TOTAL_STEPS,
    "steps": {},
}


def _empty_fragment(step_number, mode):
    defaults = _TWO_STEP_DEFAULTS if mode == MODE_TWO_STEP else _FIVE_STEP_DEFAULTS
    fragment = copy.deepcopy(defaults[step_number])
    fragment["isPassed"] = False
    return fragment


def new_steps_state(total_steps, mode=MODE_FIVE_STEP):
    """Empty StepsState for steps 1..total_steps."""
    return {step_key(n): _empty_fragment(n, mode) for n in range(1, total_steps + 1)}


def _initial_total_steps(problem, mode):
    if mode == MODE_TWO_STEP:
        return TWO_STEP_TOTAL_STEPS
    total = problem.get("total_steps") if isinstance(problem, dict) else None
    if total in (DEDUCTIVE_TOTAL_STEPS, NON_DEDUCTIVE_TOTAL_STEPS):
        return total
    return DEDUCTIVE_TOTAL_STEPS


def new_session(problem=None, mode=MODE_FIVE_STEP):
    """Create a fresh attempt positioned on Step 1."""
    if mode not in MODES:
        raise ValueError(f"Unknown mode '{mode}'. Expected one of: {sorted(MODES)}")
    total = _initial_total_steps(problem, mode)
    return {
        "mode": mode,
        "current_step": 1,
        "total_steps": total,
        "steps": new_steps_state(total, mode),
    }


def _fit_steps_to_total(session):
    """Drop fragments past total_steps and create any missing ones up to it."""
    steps = session["steps"]
    total = session["total_steps"]
    for n in range(total + 1, NON_DEDUCTIVE_TOTAL_STEPS + 1):
        steps.pop(step_key(n), None)
    for n in range(1, total + 1):
        steps.setdefault(step_key(n), _empty_fragment(n, session["mode"]))
    session["current_step"] = max(1, min(session["current_step"], total))


def apply_classification(session, inference_type):
    """Recompute total_steps from a Step 3 category. Returns the new total.

    A blank category means the learner has cleared the selection; the step
    count is left as it is until a category is chosen again.
    """
    if session["mode"] != MODE_FIVE_STEP or not inference_type:
        return session["total_steps"]
    session["total_steps"] = total_steps_for(inference_type)
    _fit_steps_to_total(session)
    return session["total_steps"]


def _check_step_number(session, step_number):
    if not isinstance(step_number, int) or isinstance(step_number, bool):
        raise ValueError(f"Step number must be an integer, got {step_number!r}")
    if not 1 <= step_number <= session["total_steps"]:
        raise ValueError(f"Step {step_number} is not active (total steps: {session['total_steps']})")


def update_step(session, step_number, updates):
    """Merge learner edits into a step fragment.

    Editing an answer un-passes that step. Changing Step 3's inferenceType
    recomputes the step count.
    """
    _check_step_number(session, step_number)
    if not isinstance(updates, dict):
        raise ValueError("Step updates must be an object")

    fragment = session["steps"].setdefault(step_key(step_number), _empty_fragment(step_number, session["mode"]))
    answer_updates = {k: v for k, v in updates.items() if k != "isPassed"}
    previous_type = fragment.get("inferenceType")

    if any(fragment.get(k) != v for k, v in answer_updates.items()):
        fragment["isPassed"] = False
    fragment.update(answer_updates)

    if step_number == 3 and "inferenceType" in answer_updates and answer_updates["inferenceType"] != previous_type:
        apply_classification(session, answer_updates["inferenceType"])
    return session


def submit_step(session, key, registry=None):
    """Check the current step, record isPassed, advance on success."""
    step_number = session["current_step"]
    if session["mode"] == MODE_TWO_STEP:
        result = check_two_step(step_number, session["steps"], key)
    else:
        result = check_step(step_number, session["steps"], key, registry)

    fragment = session["steps"].get(step_key(step_number))
    if isinstance(fragment, dict):
        fragment["isPassed"] = result["correct"]

    if result["correct"] and step_number < session["total_steps"]:
        session["current_step"] = step_number + 1

    result["completed"] = is_completed(session)
    if result["correct"] and step_number == session["total_steps"] and not result["completed"]:
        # An earlier step was edited after it passed; send the learner back to it
        session["current_step"] = first_unpassed_step(session)
    return result


def go_to_step(session, step_number):
    """Move to an unlocked step: every step before it must already be passed."""
    _check_step_number(session, step_number)
    for n in range(1, step_number):
        if not session["steps"].get(step_key(n), {}).get("isPassed"):
            raise ValueError(f"Step {n} must be passed before moving to step {step_number}")
    session["current_step"] = step_number
    return session


def completed_steps(session):
    steps = session["steps"]
    return sum(1 for n in range(1, session["total_steps"] + 1)
               if steps.get(step_key(n), {}).get("isPassed"))


def first_unpassed_step(session):
    """Lowest active step without isPassed, or None when all have passed."""
    steps = session["steps"]
    for n in range(1, session["total_steps"] + 1):
        if not steps.get(step_key(n), {}).get("isPassed"):
            return n
    return None


def is_completed(session):
    return completed_steps(session) == session["total_steps"]


def current_state(session):
    """'step1'..'step5', or 'completed' once every active step has passed."""
    if is_completed(session):
        return "completed"
    return step_key(session["current_step"])


# --- Signed session transport ---

def _sign_session(session_data):
    """Sign a session dict with HMAC. Returns {"data": ..., "sig": "..."}."""
    payload = json.dumps(session_data, sort_keys=True, separators=(',', ':'))
    sig = hmac.new(_SESSION_SECRET, payload.encode('utf-8'), hashlib.sha256).hexdigest()
    return {"data": session_data, "sig": sig}


def _verify_session(signed):
    """Verify and extract session data from a signed session. Raises ValueError on tamper."""
    if not isinstance(signed, dict) or "data" not in signed or "sig" not in signed:
        raise ValueError("Invalid session format, missing signature")
    if not isinstance(signed["sig"], str):
        raise ValueError("Invalid session signature")
    payload = json.dumps(signed["data"], sort_keys=True, separators=(',', ':'))
    expected_sig = hmac.new(_SESSION_SECRET, payload.encode('utf-8'), hashlib.sha256).hexdigest()
    if not hmac.compare_digest(signed["sig"], expected_sig):
        raise ValueError("Session signature invalid, possible tampering")
    return signed["data"]


def restore_session(raw):
    """Restore a session from client-sent signed JSON and normalise its shape."""
    verified_data = _verify_session(raw)
    if not isinstance(verified_data, dict):
        raise ValueError("Invalid session data")

    session = copy.deepcopy(_SESSION_FIELDS)
    for key in _SESSION_FIELDS:
        if key in verified_data:
            session[key] = verified_data[key]

    if session["mode"] not in MODES:
        raise ValueError(f"Invalid session mode: {session['mode']!r}")
    if not isinstance(session["steps"], dict):
        raise ValueError("Invalid session steps")
    if not isinstance(session["current_step"], int) or not isinstance(session["total_steps"], int):
        raise ValueError("Invalid session step counters")

    allowed = ((TWO_STEP_TOTAL_STEPS,) if session["mode"] == MODE_TWO_STEP
               else (DEDUCTIVE_TOTAL_STEPS, NON_DEDUCTIVE_TOTAL_STEPS))
    if session["total_steps"] not in allowed:
        raise ValueError(f"Invalid total_steps {session['total_steps']} for mode {session['mode']}")

    _fit_steps_to_total(session)
    return session


# --- Render ---

def _build_step_list(session):
    templates = RENDER_TEMPLATES.get(session["mode"])
    if not templates:
        raise ValueError(f"render_templates.json missing '{session['mode']}' section")

    step_list = []
    unlocked = True
    for n in range(1, session["total_steps"] + 1):
        template = templates.get(str(n))
        if not template:
            raise ValueError(f"No render template for step {n} in '{session['mode']}'")
        passed = bool(session["steps"].get(step_key(n), {}).get("isPassed"))
        entry = {
            "number": n,
            "title": template["title"],
            "content": template["content"],
            "isPassed": passed,
            "available": unlocked,
            "isCurrent": n == session["current_step"],
        }
        if "hint" in template:
            entry["hint"] = template["hint"]
        step_list.append(entry)
        unlocked = unlocked and passed
    return step_list


def get_render(problem_id, problem, session):
    """Build the complete render object for the current state."""
    done = completed_steps(session)
    return {
        "problem_id": problem_id,
        "argument": problem.get("argument", ""),
        "options": problem.get("options", []),
        "mode": session["mode"],
        "steps": _build_step_list(session),
        "stepsState": session["steps"],
        "currentStep": session["current_step"],
        "totalSteps": session["total_steps"],
        "completedSteps": done,
        "state": current_state(session),
        "complete": done == session["total_steps"],
        "session": _sign_session(session),
    }
