import pytest

from layerconf.paths import delete_path, get_path, has_path, leaf_paths, set_path, to_segments

TREE = {
  "database": {"hosts": [{"name": "a"}, {"name": "b"}], "port": 5432, "password": None},
  "debug": False,
}


@pytest.mark.parametrize(
  "path, segments",
  [
    ("a.b[0].c", ["a", "b", "0", "c"]),
    ("a", ["a"]),
    ("", []),
    ("a..b", ["a", "b"]),
    ("[0][1]", ["0", "1"]),
    ("a[]", ["a"]),
  ],
)
def test_to_segments(path, segments):
  assert to_segments(path) == segments


def test_get_path():
  assert get_path(TREE, "database.port") == 5432
  assert get_path(TREE, "database.hosts[1].name") == "b"
  assert get_path(TREE, "database.hosts.0.name") == "a"
  assert get_path(TREE, "debug") is False


def test_get_path_defaults():
  assert get_path(TREE, "database.missing", "fallback") == "fallback"
  assert get_path(TREE, "database.hosts[5]", 0) == 0
  assert get_path(TREE, "database.port.deeper") is None
  # a stored null is a value, not a miss
  assert get_path(TREE, "database.password", "fallback") is None


def test_get_path_empty_returns_tree():
  assert get_path(TREE, "") is TREE


def test_has_path():
  assert has_path(TREE, "database.password")
  assert has_path(TREE, "database.hosts[0]")
  assert not has_path(TREE, "database.hosts[2]")
  assert not has_path(TREE, "nope")
  assert not has_path(TREE, "")


def test_set_path_creates_maps_and_arrays():
  tree = {}
  set_path(tree, "servers[0].name", "a")
  set_path(tree, "db.port", 1)
  set_path(tree, "servers[2]", "c")

  assert tree == {"servers": [{"name": "a"}, None, "c"], "db": {"port": 1}}


def test_set_path_replaces_scalars_on_the_way():
  tree = {"a": 1}
  set_path(tree, "a.b", 2)
  assert tree == {"a": {"b": 2}}


def test_set_path_errors():
  with pytest.raises(ValueError):
    set_path({}, "", 1)
  with pytest.raises(TypeError):
    set_path({"a": [1]}, "a.x", 2)
  with pytest.raises(TypeError):
    set_path("scalar", "a", 1)


def test_delete_path():
  tree = {"a": {"b": 1, "c": [1, 2]}}

  assert delete_path(tree, "a.b") is True
  assert delete_path(tree, "a.c[0]") is True
  assert delete_path(tree, "a.missing") is False
  assert delete_path(tree, "x.y") is False
  assert tree == {"a": {"c": [2]}}


def test_leaf_paths():
  tree = {"a": {"b": 1, "c": [1], "e": {}}, "d": None}
  assert list(leaf_paths(tree)) == ["a.b", "a.c", "d"]
  assert list(leaf_paths([1, 2])) == []
