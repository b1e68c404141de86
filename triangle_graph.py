"""
Triangle Graph: Nodes, Links and Label Resolution
=================================================

Nodes and links are plain dicts, exactly as the graph editor posts them:

    node: {"id": "premise-1712345678", "role": "premise", "label": "Q holds"}
    link: {"from": "antecedent", "to": "premise-1712345678", "active": True}

Node ids are per-session arena keys. Two graphs authored independently (the
answer key vs. the learner's submission) never share ids, so every
correctness comparison resolves ids to labels first. Ids are only compared
with each other when both sides come from the same submission.
"""

from tutor_constants import ANTECEDENT_ID, CONSEQUENT_ID, PREMISE_ID_PREFIX


def make_node(node_id, role, label=""):
    return {"id": node_id, "role": role, "label": label}


def make_link(from_ref, to_ref, active=True):
    return {"from": from_ref, "to": to_ref, "active": active}


def is_active(link):
    """A link counts unless it is explicitly pruned (active: False)."""
    return link.get("active") is not False


def is_premise_id(node_id):
    return isinstance(node_id, str) and node_id.startswith(PREMISE_ID_PREFIX)


def build_registry(nodes):
    """Build an id → label registry from editor node dicts.

    Accepts `label` or the editor's older `value` key. Nodes without an id
    are skipped.
    """
    registry = {}
    for node in nodes or []:
        if not isinstance(node, dict):
            continue
        node_id = node.get("id")
        if not node_id:
            continue
        label = node.get("label", node.get("value", ""))
        registry[node_id] = label if isinstance(label, str) else ""
    return registry


def registry_from_node_values(node_values):
    """Convert the editor's {antecedent, consequent, premiseNodes} payload."""
    if not isinstance(node_values, dict):
        return {}
    registry = {
        ANTECEDENT_ID: node_values.get("antecedent") or "",
        CONSEQUENT_ID: node_values.get("consequent") or "",
    }
    registry.update(build_registry(node_values.get("premiseNodes")))
    return registry


def premise_node_ids(registry):
    """Ids of every learner-created node, in creation order."""
    return [node_id for node_id in registry if is_premise_id(node_id)]


def resolve_label(node_id, registry):
    """Resolve a node reference to the label the learner chose.

    Fixed ids read their current value, premise ids are looked up (unknown →
    ""), and anything else is assumed to already be a label.
    """
    if not isinstance(node_id, str):
        return ""
    if node_id == ANTECEDENT_ID or node_id == CONSEQUENT_ID:
        return registry.get(node_id) or ""
    if is_premise_id(node_id):
        return registry.get(node_id) or ""
    return node_id


def make_resolver(registry):
    registry = registry or {}
    return lambda node_id: resolve_label(node_id, registry)


def resolve_link(link, resolve):
    """Return a link's endpoints as a (from_label, to_label) pair."""
    return (resolve(link.get("from")), resolve(link.get("to")))


def link_identity(link):
    """Raw endpoint references, only meaningful within one submission."""
    return (link.get("from"), link.get("to"))
