"""Tests for the nested document walker."""
from attachvault.services.doc_walker import walk


def test_visits_every_value_with_paths():
    doc = {"title": "Home", "body": {"items": [{"a": 1}, "text"]}}
    seen = []
    walk(doc, lambda node, key, value, path, ancestors: seen.append(path))
    assert seen == ["title", "body", "body.items", "body.items.0", "body.items.0.a", "body.items.1"]


def test_ancestors_run_from_root_to_container():
    inner = {"leaf": True}
    doc = {"outer": {"inner": inner}}
    chains = {}

    def _visit(node, key, value, path, ancestors):
        chains[path] = list(ancestors)

    walk(doc, _visit)
    assert chains["outer"] == [doc]
    assert chains["outer.inner.leaf"] == [doc, doc["outer"], inner]


def test_replaced_values_are_walked():
    doc = {"slot": {"old": 1}}
    seen = []

    def _visit(node, key, value, path, ancestors):
        seen.append(path)
        if key == "slot":
            node[key] = {"new": 2}

    walk(doc, _visit)
    assert "slot.new" in seen
    assert "slot.old" not in seen


def test_scalars_and_none_are_ignored():
    calls = []
    walk(None, lambda *args: calls.append(args))
    walk("text", lambda *args: calls.append(args))
    assert calls == []
