"""
Test Case: /tutor/* routes

Drives the Flask blueprint with the test client against problems_db.json:
start an attempt, edit and submit steps, resize the attempt from Step 3,
and call the stateless /check-step route.
"""

import sys
import os

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import trainer_routes
from problem_store import DEFAULT_PROBLEMS_DB_PATH, ProblemsDB
from tutor_server import app

WHALE = "x is a whale"
MAMMAL = "x is a mammal"
AIR = "x breathes air"
NURSES = "x nurses its young"
GLANDS = "x has mammary glands"

NODES = [
    {"id": "antecedent", "label": WHALE},
    {"id": "consequent", "label": MAMMAL},
    {"id": "premise-1", "label": AIR},
]
REPAIR_NODES = NODES + [{"id": "premise-2", "label": GLANDS}]


@pytest.fixture
def client(monkeypatch):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    db = ProblemsDB(DEFAULT_PROBLEMS_DB_PATH)
    db.load(force=True)
    monkeypatch.setattr(trainer_routes, "PROBLEMS_DB", db)
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def start(client, problem_id="p-002", mode=None):
    payload = {"problem_id": problem_id}
    if mode:
        payload["mode"] = mode
    resp = client.post("/tutor/start", json=payload)
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()


def update(client, render, step, updates, problem_id="p-002"):
    resp = client.post("/tutor/update", json={
        "problem_id": problem_id, "session": render["session"], "step": step, "updates": updates})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()


def submit(client, render, nodes=None, problem_id="p-002"):
    resp = client.post("/tutor/submit", json={
        "problem_id": problem_id, "session": render["session"], "nodes": nodes or []})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()


def test_index(client):
    assert client.get("/").get_json() == {"service": "triangle-logic-tutor", "status": "ok"}


def test_problems_lists_local_file(client):
    problems = client.get("/tutor/problems").get_json()["problems"]
    assert [p["problem_id"] for p in problems] == ["p-001", "p-002"]
    assert problems[0]["total_steps"] == 3


def test_start_rejects_bad_requests(client):
    assert client.post("/tutor/start", json={}).status_code == 400
    assert client.post("/tutor/start", json={"problem_id": 7}).status_code == 400
    assert client.post("/tutor/start", json={"problem_id": "nope"}).status_code == 404
    assert client.post("/tutor/start", json={"problem_id": "p-001", "mode": "x"}).status_code == 400


def test_full_five_step_attempt(client):
    render = start(client)
    assert render["totalSteps"] == 3
    assert render["state"] == "step1"

    render = update(client, render, 1, {"antecedent": WHALE, "consequent": MAMMAL})
    result = submit(client, render, NODES)
    assert result["correct"] is True
    assert result["message"] == "Correct!"
    render = result["render"]
    assert render["currentStep"] == 2

    render = update(client, render, 2, {"links": [
        {"from": "antecedent", "to": "premise-1", "active": True},
        {"from": "consequent", "to": "premise-1", "active": True},
    ]})
    render = submit(client, render, NODES)["render"]
    assert render["currentStep"] == 3

    render = update(client, render, 3, {"inferenceType": "hypothetical", "validity": False})
    assert render["totalSteps"] == 5
    assert len(render["steps"]) == 5
    render = submit(client, render, NODES)["render"]
    assert render["currentStep"] == 4

    render = update(client, render, 4, {"links": [
        {"from": "antecedent", "to": "premise-1", "active": False},
        {"from": "consequent", "to": "premise-1", "active": False},
        {"from": "antecedent", "to": "premise-2", "active": True},
        {"from": "premise-2", "to": "consequent", "active": True},
    ]})
    result = submit(client, render, REPAIR_NODES)
    assert result["correct"] is True
    assert result["matchedVariant"] == 1
    render = result["render"]

    # Variant 0's syllogism does not restate the variant 1 repair
    render = update(client, render, 5, {"premises": [
        {"antecedent": WHALE, "consequent": NURSES},
        {"antecedent": NURSES, "consequent": MAMMAL},
    ]})
    result = submit(client, render, REPAIR_NODES)
    assert result["correct"] is False
    assert result["message"] == "Not quite. Check your answer and try again."

    render = update(client, result["render"], 5, {"premises": [
        {"antecedent": GLANDS, "consequent": MAMMAL},
        {"antecedent": WHALE, "consequent": GLANDS},
    ]})
    result = submit(client, render, REPAIR_NODES)
    assert result["correct"] is True
    assert result["message"] == "All steps complete."
    assert result["render"]["complete"] is True
    assert result["render"]["state"] == "completed"


def test_deductive_classification_shrinks_attempt(client):
    render = start(client)
    render = update(client, render, 3, {"inferenceType": "informal"})
    assert render["totalSteps"] == 5
    assert "step5" in render["stepsState"]

    render = update(client, render, 3, {"inferenceType": "deductive"})
    assert render["totalSteps"] == 3
    assert sorted(render["stepsState"]) == ["step1", "step2", "step3"]


def test_update_and_go_to_step_errors(client):
    render = start(client)
    resp = client.post("/tutor/update", json={
        "problem_id": "p-002", "session": render["session"], "step": 5, "updates": {}})
    assert resp.status_code == 400

    resp = client.post("/tutor/go-to-step", json={
        "problem_id": "p-002", "session": render["session"], "step": 2})
    assert resp.status_code == 400

    tampered = dict(render["session"], sig="0" * 64)
    resp = client.post("/tutor/update", json={
        "problem_id": "p-002", "session": tampered, "step": 1, "updates": {"antecedent": WHALE}})
    assert resp.status_code == 400


def test_two_step_attempt(client):
    render = start(client, mode="two_step")
    assert render["totalSteps"] == 2
    assert render["steps"][0]["title"] == "Write the argument"

    render = update(client, render, 1, {
        "premise1": {"antecedent": WHALE, "consequent": AIR},
        "premise2": {"antecedent": MAMMAL, "consequent": AIR},
        "conclusion": {"antecedent": WHALE, "consequent": MAMMAL},
    })
    render = submit(client, render)["render"]
    render = update(client, render, 2, {"inferenceType": "hypothetical", "isValid": False})
    result = submit(client, render)
    assert result["correct"] is True
    assert result["render"]["complete"] is True


def test_check_step_is_stateless(client):
    resp = client.post("/tutor/check-step", json={
        "problem_id": "p-001", "step": 3,
        "state": {"step3": {"inferenceType": "deductive", "validity": "valid"}}})
    assert resp.get_json() == {"isCorrect": True, "matchedVariant": None}

    resp = client.post("/tutor/check-step", json={
        "problem_id": "p-002", "step": 4,
        "node_values": {"antecedent": WHALE, "consequent": MAMMAL,
                        "premiseNodes": [{"id": "premise-1", "value": NURSES}]},
        "state": {"step4": {"links": [
            {"from": "antecedent", "to": "premise-1"},
            {"from": "premise-1", "to": "consequent"},
        ]}}})
    assert resp.get_json() == {"isCorrect": True, "matchedVariant": 0}


def test_check_step_rejects_bad_params(client):
    for payload in ({"problem_id": "p-001", "step": 6},
                    {"problem_id": "p-001", "step": "1"},
                    {"problem_id": "p-001", "step": 3, "mode": "two_step"}):
        resp = client.post("/tutor/check-step", json=payload)
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "invalid_params"}


def test_serverless_entry_exposes_tutor_app():
    import importlib
    entry = importlib.import_module("api.index")
    assert entry.app is app
    assert "/tutor/submit" in {rule.rule for rule in entry.app.url_map.iter_rules()}


def test_non_object_bodies_are_rejected(client):
    for path in ("/tutor/start", "/tutor/update", "/tutor/submit", "/tutor/go-to-step", "/tutor/check-step"):
        resp = client.post(path, json=[1, 2])
        assert resp.status_code == 400, path
        assert resp.get_json() == {"error": "No data provided"}
