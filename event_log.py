"""
Event Log: Research Telemetry
=============================

Records every answer check (step, correctness, the submitted fragment and the
node labels in play) to the Supabase `event_logs` table.

Logging is fire-and-forget: records are written from a daemon thread, errors
are printed and dropped, and nothing here can change a correctness decision
or block a step transition. Without SUPABASE_URL, logging is disabled.
"""

import copy
import os
import threading
from datetime import datetime, timezone

_store = None
_disabled_notice_shown = False


def _get_store():
    """Lazy-init the Supabase store (imports it only when logging is enabled)."""
    global _store
    if _store is None:
        from problem_store_supabase import ProblemStoreSupabase
        _store = ProblemStoreSupabase()
    return _store


def logging_enabled():
    return bool(os.environ.get("SUPABASE_URL"))


def build_check_record(problem_id, step, is_correct, fragment, registry, state=None,
                       session_id=None, user_id=None, mode=None):
    """Assemble the event_logs row for one answer check."""
    payload = copy.deepcopy(fragment) if isinstance(fragment, dict) else {}
    payload["isPassed"] = bool(is_correct)
    payload["node_labels"] = dict(registry or {})
    return {
        "kind": "check",
        "session_id": session_id,
        "user_id": user_id,
        "problem_id": problem_id,
        "step": step,
        "is_correct": bool(is_correct),
        "mode": mode,
        "payload": payload,
        "state": copy.deepcopy(state),
        "created_at": datetime.now(timezone.utc).isoformat(),
    }


def _write(record):
    try:
        _get_store().insert_event(record)
    except Exception as e:
        print(f"[EventLog] Failed to write {record.get('kind')} event for {record.get('problem_id')}: {e}")


def log_event(record):
    """Queue a record for writing and return immediately. Returns the thread, or None if disabled."""
    global _disabled_notice_shown
    if not logging_enabled():
        if not _disabled_notice_shown:
            print("[EventLog] SUPABASE_URL not set, event logging disabled")
            _disabled_notice_shown = True
        return None
    thread = threading.Thread(target=_write, args=(record,), daemon=True)
    thread.start()
    return thread


def log_check(problem_id, step, is_correct, fragment, registry, state=None,
              session_id=None, user_id=None, mode=None):
    record = build_check_record(problem_id, step, is_correct, fragment, registry, state,
                                session_id=session_id, user_id=user_id, mode=mode)
    return log_event(record)
