"""
Tests for the grammar engine.

Run with:  python -m pytest modecli/test_grammar.py -v
"""

import pytest

from modecli import grammar
from modecli.argtypes import RE_IPV4, RE_NAME
from modecli.errors import GrammarDocumentError
from modecli.grammar import (
    AnyToken,
    Cmd,
    CompKind,
    Int,
    Option,
    Or,
    Re,
    Seq,
    ShLex,
    Str,
    node_from_dict,
    node_to_dict,
)


# ============================================================
# Leaves
# ============================================================

class TestLeaves:
    """Tests for single-token nodes."""

    def test_keyword_matches_exactly(self):
        assert grammar.parse(Str(None, "show"), "show").matches
        assert not grammar.parse(Str(None, "show"), "sho").matches

    def test_empty_keyword_rejected(self):
        with pytest.raises(ValueError, match="non-empty"):
            Str(None, "")

    def test_regex_must_match_whole_token(self):
        node = Re("ip", RE_IPV4)
        assert grammar.parse(node, "10.0.0.1").matches
        assert not grammar.parse(node, "10.0.0.1x").matches

    def test_int_range(self):
        node = Int("n", 1, 10)
        assert grammar.parse(node, "5").matches
        assert not grammar.parse(node, "11").matches
        assert not grammar.parse(node, "five").matches

    def test_int_base(self):
        result = grammar.parse(Int("mask", base=16), "ff")
        assert result.get_int("mask") == 255

    def test_any_token(self):
        result = grammar.parse(AnyToken("word"), "anything-goes")
        assert result.get_str("word") == "anything-goes"


# ============================================================
# Containers
# ============================================================

class TestContainers:
    """Tests for Or, Seq and Option."""

    def test_seq_requires_every_part(self):
        tree = Seq(None, Str(None, "show"), Str(None, "version"))
        assert grammar.parse(tree, "show version").matches
        result = grammar.parse(tree, "show")
        assert result is not None
        assert not result.matches

    def test_option_backtracks(self):
        tree = Seq(None, Option(None, Str(None, "a")), Str(None, "a"))
        assert grammar.parse(tree, "a").matches
        assert grammar.parse(tree, "a a").matches

    def test_or_prefers_declaration_order(self):
        tree = Or(
            None,
            Str(None, "a").set_attr("callback", "first"),
            Str(None, "a").set_attr("callback", "second"),
        )
        assert grammar.parse(tree, "a").find_attr("callback") == "first"

    def test_extra_tokens_do_not_match(self):
        tree = Seq(None, Str(None, "show"), Str(None, "version"))
        assert not grammar.matches(grammar.parse(tree, "show version now"))

    def test_matches_on_none(self):
        assert grammar.matches(None) is False


# ============================================================
# Tokenizer
# ============================================================

class TestShLex:
    """Tests for the shell-style tokenizing wrapper."""

    @pytest.fixture
    def tree(self):
        return ShLex(None, Seq(None, Str(None, "set"), Str(None, "name"), AnyToken("value")))

    def test_quoted_argument(self, tree):
        result = grammar.parse(tree, 'set name "Alice Cooper"')
        assert result.matches
        assert result.get_str("value") == "Alice Cooper"

    def test_unbalanced_quote_is_rejected(self, tree):
        assert grammar.parse(tree, 'set name "Alice') is None

    def test_missing_argument_uses_default(self, tree):
        result = grammar.parse(tree, "set name")
        assert not result.matches
        assert result.get_str("value", "world") == "world"


# ============================================================
# Command expressions
# ============================================================

class TestCmd:
    """Tests for compiled command expressions."""

    @pytest.fixture
    def doc(self):
        return Cmd(
            None,
            "doc name [format fmt]",
            Re("name", RE_NAME),
            Or("fmt", Str(None, "md"), Str(None, "txt")),
        )

    def test_required_part(self, doc):
        assert grammar.parse(doc, "doc set_name").matches
        assert not grammar.parse(doc, "doc").matches

    def test_optional_part(self, doc):
        result = grammar.parse(doc, "doc set_name format txt")
        assert result.matches
        assert result.get_str("name") == "set_name"
        assert result.get_str("fmt") == "txt"

    def test_incomplete_optional_part(self, doc):
        assert not grammar.parse(doc, "doc set_name format").matches

    def test_alternatives(self):
        node = Cmd(None, "(on|off)")
        assert grammar.parse(node, "on").matches
        assert grammar.parse(node, "off").matches
        assert not grammar.parse(node, "maybe").matches

    def test_empty_expression(self):
        with pytest.raises(GrammarDocumentError, match="Empty command expression"):
            Cmd(None, "")

    def test_unclosed_bracket(self):
        with pytest.raises(GrammarDocumentError, match="Missing"):
            Cmd(None, "a [b")

    def test_stray_bracket(self):
        with pytest.raises(GrammarDocumentError, match="Unexpected"):
            Cmd(None, "a ]")


# ============================================================
# Completion
# ============================================================

class TestComplete:
    """Tests for completion candidates."""

    @pytest.fixture
    def tree(self):
        return ShLex(None, Or(
            None,
            Str(None, "show"),
            Str(None, "set"),
            Str(None, "hello"),
            Seq(None, Str(None, "greet"), Re("who", RE_NAME).with_help("Who to greet")),
        ))

    def test_prefix(self, tree):
        strings = [item.string for item in grammar.complete(tree, "s")]
        assert strings == ["show", "set"]

    def test_empty_line_offers_everything(self, tree):
        strings = [item.string for item in grammar.complete(tree, "")]
        assert strings == ["show", "set", "hello", "greet"]

    def test_complete_keyword_is_full(self, tree):
        items = grammar.complete(tree, "hello")
        assert len(items) == 1
        assert items[0].kind is CompKind.FULL
        assert items[0].string == "hello"

    def test_typed_slot_is_unknown(self, tree):
        items = grammar.complete(tree, "greet ")
        assert len(items) == 1
        assert items[0].kind is CompKind.UNKNOWN
        assert items[0].string is None
        assert items[0].help == "Who to greet"

    def test_no_candidates(self, tree):
        assert grammar.complete(tree, "x") == []

    def test_unbalanced_quote(self, tree):
        assert grammar.complete(tree, 'greet "bo') == []


# ============================================================
# Documents
# ============================================================

class TestDocuments:
    """Tests for converting trees to and from plain data."""

    def test_only_exported_attributes_survive(self):
        tree = Seq(None, Str(None, "hello").with_help("Say hello"), Re("who", RE_NAME))
        tree.set_attr("callback", "hello")
        tree.set_attr("handler", print)

        data = node_to_dict(tree)
        assert data["type"] == "seq"
        assert data["attrs"] == {"callback": "hello"}
        assert data["children"][0] == {"type": "str", "attrs": {"help": "Say hello"}, "string": "hello"}

        rebuilt = node_from_dict(data)
        result = grammar.parse(rebuilt, "hello bob")
        assert result.matches
        assert result.find_attr("callback") == "hello"
        assert result.find_attr("handler") is None
        assert result.get_str("who") == "bob"

    def test_cmd_keeps_expression(self):
        node = Cmd(None, "name value", Re("value", RE_NAME))
        rebuilt = node_from_dict(node_to_dict(node))
        assert isinstance(rebuilt, Cmd)
        assert rebuilt.expr == "name value"
        assert grammar.parse(rebuilt, "name Alice").get_str("value") == "Alice"

    def test_unknown_type(self):
        with pytest.raises(GrammarDocumentError, match="Unknown grammar node type"):
            node_from_dict({"type": "bogus"})

    def test_missing_field(self):
        with pytest.raises(GrammarDocumentError, match="missing field"):
            node_from_dict({"type": "str"})

    def test_bad_pattern(self):
        with pytest.raises(GrammarDocumentError, match="Invalid re node"):
            node_from_dict({"type": "re", "pattern": "("})

    def test_not_a_mapping(self):
        with pytest.raises(GrammarDocumentError, match="must be a mapping"):
            node_from_dict(["str"])

    def test_iter_nodes_visits_every_node(self):
        tree = ShLex(None, Or(None, Str(None, "a"), Seq(None, Str(None, "b"), Str(None, "c"))))
        kinds = [node.kind for node in grammar.iter_nodes(tree)]
        assert kinds == ["sh_lex", "or", "str", "seq", "str", "str"]
