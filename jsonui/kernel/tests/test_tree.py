"""
Tests for tree helpers: walk_tree, missing_keys, flat_to_tree.
"""

from jsonui.kernel.tree import empty_tree, flat_to_tree, get_element, missing_keys, walk_tree


def keys(walk):
    return [(element["key"], depth) for element, depth in walk]


class TestWalkTree:
    def test_empty_tree_yields_nothing(self):
        assert list(walk_tree(empty_tree())) == []
        assert list(walk_tree(None)) == []

    def test_depth_first_order(self):
        tree = {
            "root": "a",
            "elements": {
                "a": {"key": "a", "children": ["b", "d"]},
                "b": {"key": "b", "children": ["c"]},
                "c": {"key": "c"},
                "d": {"key": "d"},
            },
        }
        assert keys(walk_tree(tree)) == [("a", 0), ("b", 1), ("c", 2), ("d", 1)]

    def test_dangling_children_skipped(self):
        tree = {"root": "a", "elements": {"a": {"key": "a", "children": ["later", "b"]}, "b": {"key": "b"}}}
        assert keys(walk_tree(tree)) == [("a", 0), ("b", 1)]

    def test_dangling_root_yields_nothing(self):
        assert list(walk_tree({"root": "page", "elements": {"x": {"key": "x"}}})) == []

    def test_include_prunes_subtree(self):
        tree = {
            "root": "a",
            "elements": {
                "a": {"key": "a", "children": ["hidden", "shown"]},
                "hidden": {"key": "hidden", "hide": True, "children": ["inner"]},
                "inner": {"key": "inner"},
                "shown": {"key": "shown"},
            },
        }
        walk = walk_tree(tree, include=lambda el: not el.get("hide"))
        assert keys(walk) == [("a", 0), ("shown", 1)]

    def test_cycle_terminates(self):
        tree = {"root": "a", "elements": {"a": {"key": "a", "children": ["b"]}, "b": {"key": "b", "children": ["a"]}}}
        assert keys(walk_tree(tree)) == [("a", 0), ("b", 1)]


class TestMissingKeys:
    def test_reports_unresolved_references(self):
        tree = {"root": "a", "elements": {"a": {"key": "a", "children": ["b", "c"]}, "b": {"key": "b"}}}
        assert missing_keys(tree) == {"c"}

    def test_missing_root(self):
        assert missing_keys({"root": "page", "elements": {}}) == {"page"}

    def test_empty_tree(self):
        assert missing_keys(empty_tree()) == set()


class TestFlatToTree:
    def test_builds_children_from_parent_keys(self):
        tree = flat_to_tree(
            [
                {"key": "page", "type": "Stack"},
                {"key": "title", "type": "Heading", "props": {"text": "Hi"}, "parentKey": "page"},
                {"key": "body", "type": "Text", "parentKey": "page"},
            ]
        )
        assert tree["root"] == "page"
        assert tree["elements"]["page"]["children"] == ["title", "body"]
        assert tree["elements"]["title"]["props"] == {"text": "Hi"}
        assert get_element(tree, "body")["children"] == []

    def test_unknown_parent_ignored(self):
        tree = flat_to_tree([{"key": "a", "type": "Card"}, {"key": "b", "type": "Text", "parentKey": "zz"}])
        assert tree["elements"]["a"]["children"] == []
        assert "b" in tree["elements"]

    def test_get_element_missing(self):
        assert get_element(empty_tree(), "x") is None
        assert get_element(None, "x") is None
