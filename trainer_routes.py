"""
Trainer Routes - Flask Blueprint
=================================

Routes for the triangle-logic step tutor.

Routes:
    /tutor/problems     - List problems
    /tutor/start        - Start an attempt (five-step or two-step mode)
    /tutor/update       - Merge learner edits into a step (may change totalSteps)
    /tutor/submit       - Check the current step and advance on success
    /tutor/go-to-step   - Move to an unlocked step
    /tutor/check-step   - Stateless check of one step fragment
"""

import os

from flask import Blueprint, request, jsonify

import event_log
import step_progression
from answer_validation import check_step, load_answer_key
from answer_validation_two_step import check_two_step
from problem_store import ProblemsDB
from triangle_graph import build_registry, registry_from_node_values
from tutor_constants import MODE_FIVE_STEP, MODE_TWO_STEP, MODES, TWO_STEP_TOTAL_STEPS, MAX_STEPS, step_key

trainer_bp = Blueprint('tutor', __name__)


# ---------------------------------------------------------------------------
# Globals
# ---------------------------------------------------------------------------

PROBLEMS_DB = ProblemsDB()

# Process-lifetime cache for problems fetched from Supabase:
# problem_id → (problem, answer_key). Cleared on server restart.
_remote_cache = {}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _lookup_problem(problem_id):
    """Find a problem locally, then in Supabase. Returns (problem, answer_key) or (None, None)."""
    problem, key = PROBLEMS_DB.get(problem_id)
    if problem is not None:
        return problem, key

    if problem_id in _remote_cache:
        return _remote_cache[problem_id]

    if not os.environ.get("SUPABASE_URL"):
        return None, None

    from problem_store_supabase import get_problem_store
    problem = get_problem_store().get_problem(problem_id)
    if not problem:
        return None, None
    _remote_cache[problem_id] = (problem, load_answer_key(problem))
    print(f"[Cache] Loaded problem {problem_id} from Supabase")
    return _remote_cache[problem_id]


def _registry_from_request(data):
    """Node registry from either `nodes` ([{id, label}]) or `node_values` (editor payload)."""
    if data.get('node_values') is not None:
        return registry_from_node_values(data['node_values'])
    return build_registry(data.get('nodes'))


def _get_problem_or_error(data):
    """Common request validation. Returns (problem_id, problem, key, error_response)."""
    problem_id = data.get('problem_id')
    if not problem_id or not isinstance(problem_id, str):
        return None, None, None, (jsonify({'error': 'Invalid problem_id'}), 400)
    problem, key = _lookup_problem(problem_id)
    if problem is None:
        return None, None, None, (jsonify({'error': 'Problem not found', 'problem_id': problem_id}), 404)
    return problem_id, problem, key, None


def _summarize(problem):
    argument = problem.get('argument', '')
    return {
        'problem_id': problem.get('problem_id'),
        'argument': argument[:80] + ('...' if len(argument) > 80 else ''),
        'total_steps': problem.get('total_steps'),
    }


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------

PROBLEMS_DB.load(force=True)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@trainer_bp.route('/problems', methods=['GET'])
def tutor_problems():
    """List available problems (local file first, Supabase if configured)."""
    PROBLEMS_DB.maybe_reload()
    problems = [_summarize(p) for p in PROBLEMS_DB.list()]
    if not problems and os.environ.get("SUPABASE_URL"):
        from problem_store_supabase import get_problem_store
        problems = [_summarize(p) for p in get_problem_store().list_problems()]
    return jsonify({'problems': problems})


@trainer_bp.route('/start', methods=['POST'])
def tutor_start():
    """Start an attempt on a problem."""
    PROBLEMS_DB.maybe_reload()
    step_progression.maybe_reload_render_templates()

    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({'error': 'No data provided'}), 400

    mode = data.get('mode') or MODE_FIVE_STEP
    if mode not in MODES:
        return jsonify({'error': f'Unknown mode: {mode}'}), 400

    try:
        problem_id, problem, key, error = _get_problem_or_error(data)
        if error:
            return error
        session = step_progression.new_session(problem, mode)
        return jsonify(step_progression.get_render(problem_id, problem, session))
    except Exception as e:
        import traceback
        traceback.print_exc()
        return jsonify({'error': str(e)}), 500


@trainer_bp.route('/update', methods=['POST'])
def tutor_update():
    """Merge learner edits into one step fragment."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({'error': 'No data provided'}), 400

    try:
        problem_id, problem, key, error = _get_problem_or_error(data)
        if error:
            return error
        session = step_progression.restore_session(data.get('session'))
        step_progression.update_step(session, data.get('step'), data.get('updates'))
        return jsonify(step_progression.get_render(problem_id, problem, session))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        import traceback
        traceback.print_exc()
        return jsonify({'error': str(e)}), 500


@trainer_bp.route('/submit', methods=['POST'])
def tutor_submit():
    """Check the current step; advance when correct."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({'error': 'No data provided'}), 400

    try:
        problem_id, problem, key, error = _get_problem_or_error(data)
        if error:
            return error
        session = step_progression.restore_session(data.get('session'))
        registry = _registry_from_request(data)
        step_number = session['current_step']

        result = step_progression.submit_step(session, key, registry)

        event_log.log_check(
            problem_id, step_number, result['correct'],
            session['steps'].get(step_key(step_number)), registry,
            state=session['steps'],
            session_id=data.get('session_id'), user_id=data.get('user_id'),
            mode=session['mode'],
        )

        if result['completed']:
            message = step_progression.feedback_message('problem_complete')
        elif result['correct']:
            message = step_progression.feedback_message('step_correct')
        else:
            message = step_progression.feedback_message('step_incorrect')

        return jsonify({
            'correct': result['correct'],
            'matchedVariant': result['matchedVariant'],
            'message': message,
            'render': step_progression.get_render(problem_id, problem, session),
        })
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        import traceback
        traceback.print_exc()
        return jsonify({'error': str(e)}), 500


@trainer_bp.route('/go-to-step', methods=['POST'])
def tutor_go_to_step():
    """Move to another unlocked step."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({'error': 'No data provided'}), 400

    try:
        problem_id, problem, key, error = _get_problem_or_error(data)
        if error:
            return error
        session = step_progression.restore_session(data.get('session'))
        step_progression.go_to_step(session, data.get('step'))
        return jsonify(step_progression.get_render(problem_id, problem, session))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        import traceback
        traceback.print_exc()
        return jsonify({'error': str(e)}), 500


@trainer_bp.route('/check-step', methods=['POST'])
def tutor_check_step():
    """Stateless check: {problem_id, step, state, nodes?, mode?} → {isCorrect, matchedVariant}."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data:
        return jsonify({'error': 'No data provided'}), 400

    step_number = data.get('step')
    mode = data.get('mode') or MODE_FIVE_STEP
    max_step = TWO_STEP_TOTAL_STEPS if mode == MODE_TWO_STEP else MAX_STEPS
    if mode not in MODES or not isinstance(step_number, int) or not 1 <= step_number <= max_step:
        return jsonify({'error': 'invalid_params'}), 400

    try:
        problem_id, problem, key, error = _get_problem_or_error(data)
        if error:
            return error
        state = data.get('state') if isinstance(data.get('state'), dict) else {}
        if mode == MODE_TWO_STEP:
            result = check_two_step(step_number, state, key)
        else:
            result = check_step(step_number, state, key, _registry_from_request(data))
        return jsonify({'isCorrect': result['correct'], 'matchedVariant': result['matchedVariant']})
    except Exception as e:
        import traceback
        traceback.print_exc()
        return jsonify({'error': str(e)}), 500
