#!/usr/bin/env python3
"""
Problem Storage: Local Files
============================

Problems are authored as JSON or YAML files, either a flat list or a
{"problems": [...]} wrapper:

    - problem_id: p-001
      version: "1"
      argument: "If it rains the ground gets wet. ..."
      options: ["it rains", "the ground is wet", ...]
      correct_answers:
        step1: {antecedent: ..., consequent: ...}
        step2: [{from: ..., to: ...}, ...]
        step3: {inference_type: hypothetical, validity: false}
        step4: [[{from: ..., to: ..., active: true}, ...], ...]
        step5: [[{antecedent: ..., consequent: ...}, ...], ...]

ProblemsDB keeps one file loaded in memory (default problems_db.json next to
this module) and reloads it when its mtime changes. Each problem's answer
key is normalized once, at load time.
"""

import json
import os

import yaml

from answer_validation import load_answer_key

DEFAULT_PROBLEMS_DB_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "problems_db.json")


def load_problems_file(filepath):
    """Load a problems file. Returns {problem_id: problem}."""
    filename = os.path.basename(filepath).lower()
    if not filename.endswith((".json", ".yaml", ".yml")):
        raise ValueError(f"Unsupported problems file format: {filename}. Expected .json, .yaml or .yml")

    with open(filepath, "r", encoding="utf-8") as f:
        if filename.endswith(".json"):
            data = json.load(f)
        else:
            data = yaml.safe_load(f)  # raises YAMLError with details

    if isinstance(data, dict) and "problems" in data:
        data = data["problems"]
    if not isinstance(data, list):
        raise ValueError("Unexpected problems file structure: expected a list or a dict with a 'problems' key")

    problems = {}
    for index, problem in enumerate(data):
        if not isinstance(problem, dict):
            raise ValueError(f"Problem #{index + 1} is not an object")
        problem_id = problem.get("problem_id")
        if not problem_id:
            raise ValueError(f"Problem #{index + 1} is missing 'problem_id'")
        if problem_id in problems:
            raise ValueError(f"Duplicate problem_id '{problem_id}'")
        problems[str(problem_id)] = problem
    return problems


class ProblemsDB:
    """In-memory problems database backed by one file, auto-reloaded on change."""

    def __init__(self, path=None):
        self.path = path or os.environ.get("PROBLEMS_DB_PATH") or DEFAULT_PROBLEMS_DB_PATH
        self.problems = {}
        self.keys = {}
        self.mtime = 0

    def load(self, force=False):
        if not os.path.exists(self.path):
            if force:
                print(f"[WARNING] Problems file not found: {self.path}")
            self.problems, self.keys, self.mtime = {}, {}, 0
            return

        current_mtime = os.path.getmtime(self.path)
        if not force and current_mtime == self.mtime:
            return

        problems = load_problems_file(self.path)
        self.problems = problems
        self.keys = {problem_id: load_answer_key(problem) for problem_id, problem in problems.items()}
        self.mtime = current_mtime
        print(f"Loaded {len(problems)} problems from {os.path.basename(self.path)} (mtime: {current_mtime})")

    def maybe_reload(self):
        """Reload the problems file if it has changed on disk."""
        if os.path.exists(self.path) and os.path.getmtime(self.path) != self.mtime:
            print(f"[Auto-reload] {os.path.basename(self.path)} changed, reloading...")
            self.load(force=True)

    def get(self, problem_id):
        """Returns (problem, answer_key) or (None, None)."""
        problem = self.problems.get(problem_id)
        if problem is None:
            return None, None
        return problem, self.keys[problem_id]

    def list(self):
        return [self.problems[problem_id] for problem_id in sorted(self.problems)]
