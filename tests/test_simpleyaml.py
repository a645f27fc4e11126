import unittest

import pytest

from layerconf import simpleyaml
from layerconf.errors import ParseError


def test_nested_mapping():
  text = "database:\n  host: localhost\n  port: 5432"
  assert simpleyaml.parse(text) == {"database": {"host": "localhost", "port": 5432}}


def test_empty_input_is_empty_list():
  assert simpleyaml.parse("") == []
  assert simpleyaml.parse("   \n# only a comment\n\n") == []


def test_scalar_coercion():
  text = "a: TRUE\nb: false\nc: -3\nd: .5\ne: ~\nf: null\ng:\nh: 1e5\n"
  assert simpleyaml.parse(text) == {
    "a": True,
    "b": False,
    "c": -3,
    "d": 0.5,
    "e": None,
    "f": None,
    "g": None,
    "h": "1e5",
  }


def test_top_level_sequence():
  assert simpleyaml.parse("- 1\n- two\n- 3.5\n- ~\n") == [1, "two", 3.5, None]


def test_sequence_under_key_at_same_indent():
  text = "items:\n- a\n- b\nnext: 1\n"
  assert simpleyaml.parse(text) == {"items": ["a", "b"], "next": 1}


def test_compact_mappings_in_sequence():
  text = "servers:\n  - name: alpha\n    port: 80\n  - name: beta\n    tags:\n      - x\n"
  assert simpleyaml.parse(text) == {
    "servers": [
      {"name": "alpha", "port": 80},
      {"name": "beta", "tags": ["x"]},
    ]
  }


def test_nested_sequences():
  assert simpleyaml.parse("- - 1\n  - 2\n- - 3\n") == [[1, 2], [3]]


def test_flow_collections():
  text = "list: [1, two, {k: v}]\nmap: {a: 1, b: [x, y], }\n"
  assert simpleyaml.parse(text) == {
    "list": [1, "two", {"k": "v"}],
    "map": {"a": 1, "b": ["x", "y"]},
  }


def test_flow_collection_spanning_lines():
  text = "point: {\n  x: 1,  # first\n  y: 2\n}\nafter: true\n"
  assert simpleyaml.parse(text) == {"point": {"x": 1, "y": 2}, "after": True}


def test_quoted_scalars():
  text = 'a: "tab\\there \\u00e9"\nb: \'it\'\'s # kept\'\nc: "123"\n"d e": x\n'
  assert simpleyaml.parse(text) == {"a": "tab\there \u00e9", "b": "it's # kept", "c": "123", "d e": "x"}


def test_comments_need_leading_whitespace():
  assert simpleyaml.parse("a: b#c\nd: e # comment\n") == {"a": "b#c", "d": "e"}


def test_colon_inside_value():
  assert simpleyaml.parse("url: http://example.com:8080/x\n") == {"url": "http://example.com:8080/x"}


def test_plain_scalar_continues_on_deeper_lines():
  assert simpleyaml.parse("a: hello\n  world\nb: 1\n") == {"a": "hello world", "b": 1}


def test_literal_block_scalar_clips_by_default():
  text = "text: |\n  line1\n    indented\n  line2\nnext: 1\n"
  assert simpleyaml.parse(text) == {"text": "line1\n  indented\nline2\n", "next": 1}


def test_block_scalar_chomping():
  text = "strip: |-\n  a\n  b\nkeep: |+\n  c\n\nfolded: >\n  d\n  e\n\n  f\n"
  assert simpleyaml.parse(text) == {"strip": "a\nb", "keep": "c\n\n", "folded": "d e\nf\n"}


def test_anchor_and_alias():
  result = simpleyaml.parse("anchor: &ref value\nalias: *ref\n")
  assert result == {"anchor": "value", "alias": "value"}


def test_aliased_containers_are_deep_copies():
  result = simpleyaml.parse("base: &b\n  x: [1, 2]\ncopy: *b\n")
  assert result["copy"] == {"x": [1, 2]}
  assert result["copy"] is not result["base"]
  assert result["copy"]["x"] is not result["base"]["x"]


def test_anchor_on_sequence_item():
  assert simpleyaml.parse("- &first 1\n- *first\n") == [1, 1]


def test_anchor_in_front_of_a_key_names_the_key():
  assert simpleyaml.parse("- &a key: v\n- *a\n") == [{"key": "v"}, "key"]
  assert simpleyaml.parse("- &a key: v\n  other: w\n") == [{"key": "v", "other": "w"}]
  assert simpleyaml.parse("&k name: x\ncopy: *k\n") == {"name": "x", "copy": "name"}


def test_quoted_scalars_fold_across_lines():
  assert simpleyaml.parse("key: 'a\n  b'\n") == {"key": "a b"}
  text = 'a: "one\n  two\n\n  three"\nb: "x\\\n  y"\nc: [\'p\n  q\']\n'
  assert simpleyaml.parse(text) == {"a": "one two\nthree", "b": "xy", "c": ["p q"]}


def test_plain_continuation_may_start_with_a_quote():
  assert simpleyaml.parse("a: hello\n  'world\n") == {"a": "hello 'world"}


def test_merge_keys():
  text = "defaults: &defaults\n  adapter: postgres\n  pool: 5\ndev:\n  <<: *defaults\n  pool: 10\n"
  assert simpleyaml.parse(text)["dev"] == {"adapter": "postgres", "pool": 10}


def test_merge_key_list_keeps_explicit_keys():
  text = "a: &a {x: 1}\nb: &b {y: 2}\nc:\n  z: 3\n  x: 0\n  <<: [*a, *b]\n"
  assert simpleyaml.parse(text)["c"] == {"z": 3, "x": 0, "y": 2}


def test_document_markers_are_ignored():
  assert simpleyaml.parse("---\na: 1\n...\n") == {"a": 1}


def test_crlf_line_endings():
  assert simpleyaml.parse("a: 1\r\nb:\r\n  c: 2\r\n") == {"a": 1, "b": {"c": 2}}


class TestYamlErrors(unittest.TestCase):
    def parse_error(self, text, source="conf.yaml"):
        with self.assertRaises(ParseError) as ctx:
            simpleyaml.parse(text, source)
        return ctx.exception

    def test_undefined_alias(self):
        err = self.parse_error("a: *missing\n")
        self.assertEqual(err.kind, "undefined_alias")
        self.assertEqual(err.file, "conf.yaml")

    def test_forward_alias_is_undefined(self):
        err = self.parse_error("a: *b\nb: &b 1\n")
        self.assertEqual(err.kind, "undefined_alias")
        self.assertEqual(err.line, 1)

    def test_unterminated_quote_reports_position(self):
        err = self.parse_error('a: 1\nb: "open\n')
        self.assertEqual(err.kind, "unterminated_string")
        self.assertEqual((err.line, err.column), (2, 4))

    def test_quote_open_until_end_of_input(self):
        err = self.parse_error("a: 'x\n  y\n")
        self.assertEqual(err.kind, "unterminated_string")
        self.assertEqual((err.line, err.column), (1, 4))

    def test_unterminated_flow_sequence(self):
        err = self.parse_error("a: [1, 2\n")
        self.assertEqual(err.kind, "unterminated_collection")
        self.assertEqual(err.line, 1)

    def test_mismatched_bracket(self):
        err = self.parse_error("a: [1}\n")
        self.assertEqual(err.kind, "unterminated_collection")

    def test_tab_indentation(self):
        err = self.parse_error("a:\n\tb: 1\n")
        self.assertEqual(err.kind, "invalid_indentation")
        self.assertEqual(err.line, 2)

    def test_indentation_without_matching_level(self):
        err = self.parse_error("a:\n    b: 1\n  c: 2\n")
        self.assertEqual(err.kind, "invalid_indentation")
        self.assertEqual(err.line, 3)

    def test_invalid_escape(self):
        err = self.parse_error('a: "\\q"\n')
        self.assertEqual(err.kind, "unexpected_token")

    def test_text_after_quoted_string(self):
        err = self.parse_error('a: "x" y\n')
        self.assertEqual(err.kind, "unexpected_token")

    def test_sequence_entry_inside_mapping(self):
        err = self.parse_error("a: 1\n- b\n")
        self.assertEqual(err.kind, "unexpected_token")
        self.assertEqual(err.line, 2)

    def test_merge_key_needs_mapping(self):
        err = self.parse_error("a:\n  <<: 1\n")
        self.assertEqual(err.kind, "unexpected_token")

    def test_deep_block_nesting(self):
        text = "".join(f"{'  ' * i}k{i}:\n" for i in range(150))
        err = self.parse_error(text)
        self.assertEqual(err.kind, "max_depth_exceeded")

    def test_deep_flow_nesting(self):
        err = self.parse_error("a: " + "[" * 150 + "]" * 150 + "\n")
        self.assertEqual(err.kind, "max_depth_exceeded")


def test_nesting_within_limit_parses():
  text = "a: " + "[" * 50 + "]" * 50
  result = simpleyaml.parse(text)["a"]
  for _ in range(49):
    result = result[0]
  assert result == []


def test_stringify_layout():
  tree = {"a": 1, "b": [1, "x"], "c": {"d": None, "e": []}}
  assert simpleyaml.stringify(tree) == "a: 1\nb:\n  - 1\n  - x\nc:\n  d: null\n  e: []\n"


def test_stringify_compact_sequence_items():
  tree = {"servers": [{"host": "a", "port": 1}, ["x"]]}
  assert simpleyaml.stringify(tree) == "servers:\n  - host: a\n    port: 1\n  - - x\n"


@pytest.mark.parametrize(
  "value, expected",
  [
    ("true", '"true"'),
    ("123", '"123"'),
    ("", '""'),
    ("a: b", '"a: b"'),
    (" padded", '" padded"'),
    ("-dash", '"-dash"'),
    ("null", '"null"'),
    ("plain text", "plain text"),
  ],
)
def test_stringify_quotes_ambiguous_strings(value, expected):
  assert simpleyaml.stringify({"k": value}) == f"k: {expected}\n"


def test_stringify_multiline_strings_as_blocks():
  assert simpleyaml.stringify({"a": "x\ny"}) == "a: |-\n  x\n  y\n"
  assert simpleyaml.stringify({"a": "x\ny\n"}) == "a: |\n  x\n  y\n"
  assert simpleyaml.stringify({"a": "x\n\n"}) == "a: |+\n  x\n\n"


def test_stringify_scalars_and_empty_roots():
  assert simpleyaml.stringify(None) == ""
  assert simpleyaml.stringify({}) == "{}\n"
  assert simpleyaml.stringify([]) == "[]\n"
  assert simpleyaml.stringify("word") == "word\n"
  assert simpleyaml.stringify(1e20) == "100000000000000000000.0\n"
  assert simpleyaml.stringify(float("-inf")) == "-.inf\n"


def test_stringify_quotes_document_markers():
  assert simpleyaml.stringify("...") == '"..."\n'
  assert simpleyaml.parse(simpleyaml.stringify("...")) == "..."
  assert simpleyaml.parse(simpleyaml.stringify(["...", "---"])) == ["...", "---"]


def test_stringify_quotes_merge_key_name():
  text = simpleyaml.stringify({"<<": 1})
  assert text == '"<<": 1\n'
  assert simpleyaml.parse(text) == {"<<": 1}


ROUND_TRIP_TREE = {
  "name": "demo",
  "version": 3,
  "ratio": 0.25,
  "tiny": 1e-7,
  "enabled": True,
  "missing": None,
  "tags": ["web", "true", "", "a: b", "# not a comment", "-dash"],
  "servers": [{"host": "a", "ports": [80, 443]}, {"host": "b", "ports": []}],
  "matrix": [[1, 2], [3]],
  "empty": {},
  "text": "line one\nline two\n",
  "strip": "no newline\nat end",
  "kept": "trailing\n\n",
  "unicode": "caf\u00e9",
  "nested": {"deep": {"deeper": {"value": -1.5}}},
}


def test_round_trip():
  assert simpleyaml.parse(simpleyaml.stringify(ROUND_TRIP_TREE)) == ROUND_TRIP_TREE


def test_round_trip_of_list_root():
  tree = [{"a": [1, {"b": None}]}, "x", [[]]]
  assert simpleyaml.parse(simpleyaml.stringify(tree)) == tree


def test_load_uses_path_as_source(tmp_path):
  path = tmp_path / "broken.yaml"
  path.write_text("a: [1\n", encoding="utf-8")

  with pytest.raises(ParseError) as excinfo:
    simpleyaml.load(path)

  assert excinfo.value.file == str(path)
