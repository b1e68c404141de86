#!/usr/bin/env python3
"""
Problem Storage: Supabase Backend
=================================

Stores and retrieves triangle-logic problems using Supabase PostgreSQL.

Tables:
    problems   - problem_id, argument, options, correct_answers, version, total_steps
    event_logs - answer checks and other learner events (append-only)
"""

import os
import subprocess
from datetime import datetime, timezone
from typing import Optional, Dict, List, Any

from dotenv import load_dotenv
from supabase import create_client, Client

# Load environment variables, searching multiple locations for .env
# (worktrees don't share the main repo's .env)
_script_dir = os.path.dirname(os.path.abspath(__file__))


def _find_dotenv():
    """Find .env file: local dir, then main git repo root."""
    # 1. Standard: same directory as this script
    local_env = os.path.join(_script_dir, '.env')
    if os.path.isfile(local_env):
        return local_env
    # 2. Git worktree: find the main repo and check there
    try:
        main_tree = subprocess.check_output(
            ['git', 'worktree', 'list', '--porcelain'],
            cwd=_script_dir, stderr=subprocess.DEVNULL
        ).decode()
    except (OSError, subprocess.CalledProcessError):
        return None
    for line in main_tree.splitlines():
        if line.startswith('worktree '):
            candidate = os.path.join(line.split(' ', 1)[1], '.env')
            if os.path.isfile(candidate):
                return candidate
    return None


_env_path = _find_dotenv()
if _env_path:
    load_dotenv(_env_path)
    print(f"Loaded .env from {_env_path}")

PROBLEM_COLUMNS = 'problem_id, argument, options, correct_answers, version, total_steps'


class ProblemStoreSupabase:
    """Supabase-backed problem storage."""

    def __init__(self):
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_ANON_KEY")

        if not url or not key:
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY must be set in environment")

        self.client: Client = create_client(url, key)

    def get_problem(self, problem_id: str) -> Optional[Dict]:
        """Fetch one problem by id. Returns None if it doesn't exist."""
        result = self.client.table('problems').select(PROBLEM_COLUMNS).eq(
            'problem_id', problem_id
        ).execute()
        return result.data[0] if result.data else None

    def list_problems(self) -> List[Dict]:
        """All problems, ordered by id (argument and step count only)."""
        result = self.client.table('problems').select(
            'problem_id, argument, total_steps'
        ).order('problem_id').execute()
        return result.data or []

    def save_problem(self, problem: Dict[str, Any]) -> Dict:
        """Insert or update a problem keyed on problem_id."""
        for field in ('problem_id', 'argument', 'options', 'correct_answers', 'version'):
            if field not in problem:
                raise ValueError(f"problem must contain '{field}'")

        record = {
            'problem_id': problem['problem_id'],
            'argument': problem['argument'],
            'options': problem['options'],
            'correct_answers': problem['correct_answers'],
            'version': str(problem['version']),
            'updated_at': datetime.now(timezone.utc).isoformat(),
        }
        if 'total_steps' in problem:
            record['total_steps'] = problem['total_steps']

        result = self.client.table('problems').upsert(record, on_conflict='problem_id').execute()
        if not result.data:
            raise RuntimeError(f"Failed to save problem {problem['problem_id']}")
        return result.data[0]

    def insert_event(self, record: Dict[str, Any]) -> None:
        """Append one event row."""
        self.client.table('event_logs').insert(record).execute()


# Factory function: Supabase is required
def get_problem_store():
    """Get Supabase problem store instance. Raises if not configured."""
    url = os.environ.get("SUPABASE_URL")
    if not url:
        raise ValueError("SUPABASE_URL not set in environment. Check .env file.")
    return ProblemStoreSupabase()
