"""
Grammar Engine
==============

Attributed grammar trees for line-oriented command languages.

Role in the System
------------------
Everything above this module (the assembly registry, the dispatch
engine, the localization overlay) talks to the grammar only through
the small surface defined here:

    node primitives  →  Str, Re, Int, AnyToken, Or, Seq, Option, Cmd, ShLex
    parse(tree, text)     →  ParseNode or None
    matches(result)       →  bool
    complete(tree, text)  →  [Completion, ...]
    node attributes       →  node.attrs["help"], ["callback"], ["handler"]
    node_to_dict / node_from_dict  →  plain data for YAML documents

A tree is normally an ``Or`` of commands wrapped in a ``ShLex`` node.
``ShLex`` turns the input line into a token vector with ``shlex`` so
that quoted arguments work the way they do in a shell:

    set name "Alice Cooper"   →   ["set", "name", "Alice Cooper"]

Matching
--------
Every node yields *all* the ways it can consume tokens starting at a
position, lazily. Containers combine the generators of their children,
so ``Seq(Option(a), a)`` matches ``"a"`` even though the option would
greedily take it first. ``parse`` keeps the first alternative (in
declaration order) that consumes the whole line; if none does, it
returns the longest partial parse with ``matches`` set to False.

Completion
----------
The last token of the line is the one being completed (an empty token
when the line ends with whitespace). Every node reachable at the last
position proposes candidates: literal keywords propose themselves as
FULL candidates when they start with the partial token, typed leaves
propose a single UNKNOWN candidate because their values cannot be
enumerated. Abbreviation expansion only counts FULL and PARTIAL
candidates.

Command Expressions
-------------------
``Cmd`` compiles a short expression into a node tree:

    Cmd(None, "file filename [format fmt]", Re("filename", ...), ...)

Words equal to an argument's id become that argument; other words
become literal keywords. ``[...]`` marks an optional part and
``(a|b)`` an alternative.
"""

from __future__ import annotations

import enum
import re
import shlex
from collections import deque
from dataclasses import dataclass, field
from typing import Iterator, Optional

from modecli.errors import GrammarDocumentError


ATTR_HELP = "help"
ATTR_CALLBACK = "callback"
ATTR_HANDLER = "handler"

# Only these attributes survive a round trip through a grammar document.
EXPORTED_ATTRS = (ATTR_HELP, ATTR_CALLBACK)

NODE_TYPES: dict[str, type] = {}


def _node_type(cls):
    NODE_TYPES[cls.kind] = cls
    return cls


# ─── Results ─────────────────────────────────────────────────────────


class CompKind(enum.Enum):
    FULL = "full"
    PARTIAL = "partial"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Completion:
    """One completion candidate for the last token of a line.

    Attributes
    ----------
    kind : CompKind
        FULL for a complete keyword, PARTIAL for an incomplete but
        valid prefix, UNKNOWN for a typed argument slot.
    string : str or None
        The candidate text. None for UNKNOWN candidates.
    node : Node
        The grammar node that proposed the candidate. Its help
        attribute is what interactive front ends show next to it.
    """
    kind: CompKind
    string: Optional[str]
    node: "Node" = field(compare=False, repr=False)

    @property
    def help(self) -> Optional[str]:
        return self.node.attrs.get(ATTR_HELP)


class ParseNode:
    """One matched grammar node and the tokens it consumed."""

    def __init__(self, node: Node, tokens: list[str], children=()):
        self.node = node
        self.tokens = list(tokens)
        self.children = list(children)
        self.matches = False

    def __iter__(self) -> Iterator[ParseNode]:
        """Walk the parse tree in pre-order."""
        yield self
        for child in self.children:
            yield from child

    def __repr__(self) -> str:
        return f"ParseNode({self.node.kind}, id={self.node.id!r}, tokens={self.tokens!r})"

    @property
    def text(self) -> str:
        return " ".join(self.tokens)

    def find(self, node_id: str) -> Optional[ParseNode]:
        for pnode in self:
            if pnode.node.id == node_id:
                return pnode
        return None

    def get_str(self, node_id: str, default: Optional[str] = None) -> Optional[str]:
        pnode = self.find(node_id)
        if pnode is None or not pnode.tokens:
            return default
        return pnode.tokens[0]

    def get_int(self, node_id: str, default: Optional[int] = None) -> Optional[int]:
        pnode = self.find(node_id)
        if pnode is None or not pnode.tokens:
            return default
        base = getattr(pnode.node, "base", 10)
        return int(pnode.tokens[0], base)

    def find_attr(self, key: str):
        """Return the first value of attribute ``key`` in pre-order."""
        for pnode in self:
            if key in pnode.node.attrs:
                return pnode.node.attrs[key]
        return None


class _Candidates:
    """Ordered, de-duplicated completion collector."""

    def __init__(self):
        self.items: list[Completion] = []
        self._seen = set()

    def add(self, kind: CompKind, string: Optional[str], node: Node) -> None:
        key = (kind, string) if string is not None else (kind, id(node))
        if key in self._seen:
            return
        self._seen.add(key)
        self.items.append(Completion(kind, string, node))


# ─── Node Primitives ─────────────────────────────────────────────────


class Node:
    """Base class for grammar nodes."""

    kind = "node"

    def __init__(self, node_id: Optional[str] = None):
        self.id = node_id
        self.attrs: dict = {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r})"

    @property
    def children(self) -> list[Node]:
        return []

    @property
    def help(self) -> Optional[str]:
        return self.attrs.get(ATTR_HELP)

    def set_attr(self, key: str, value) -> Node:
        self.attrs[key] = value
        return self

    def with_help(self, text: Optional[str]) -> Node:
        if text:
            self.attrs[ATTR_HELP] = text
        return self

    def tokenize(self, text: str) -> Optional[list[str]]:
        return text.split()

    def parse_tokens(self, tokens: list[str], pos: int) -> Iterator[tuple[ParseNode, int]]:
        raise NotImplementedError

    def complete_tokens(self, tokens: list[str], pos: int, out: _Candidates) -> None:
        pass

    def config(self) -> dict:
        """Type-specific fields written to grammar documents."""
        return {}

    @classmethod
    def from_config(cls, node_id, data: dict, children: list[Node]) -> Node:
        raise NotImplementedError


class _Leaf(Node):
    """A node that consumes exactly one token."""

    def accepts(self, token: str) -> bool:
        raise NotImplementedError

    def parse_tokens(self, tokens, pos):
        if pos < len(tokens) and self.accepts(tokens[pos]):
            yield ParseNode(self, tokens[pos:pos + 1]), pos + 1

    def complete_tokens(self, tokens, pos, out):
        if pos == len(tokens) - 1:
            out.add(CompKind.UNKNOWN, None, self)


@_node_type
class Str(_Leaf):
    kind = "str"

    def __init__(self, node_id: Optional[str], string: str):
        super().__init__(node_id)
        if not string:
            raise ValueError("Keyword node needs a non-empty string")
        self.string = string

    def __repr__(self) -> str:
        return f"Str({self.string!r})"

    def accepts(self, token):
        return token == self.string

    def complete_tokens(self, tokens, pos, out):
        if pos == len(tokens) - 1 and self.string.startswith(tokens[pos]):
            out.add(CompKind.FULL, self.string, self)

    def config(self):
        return {"string": self.string}

    @classmethod
    def from_config(cls, node_id, data, children):
        return cls(node_id, data["string"])


@_node_type
class Re(_Leaf):
    kind = "re"

    def __init__(self, node_id: Optional[str], pattern: str):
        super().__init__(node_id)
        self.pattern = pattern
        self._regex = re.compile(pattern)

    def accepts(self, token):
        return self._regex.fullmatch(token) is not None

    def config(self):
        return {"pattern": self.pattern}

    @classmethod
    def from_config(cls, node_id, data, children):
        return cls(node_id, data["pattern"])


@_node_type
class Int(_Leaf):
    kind = "int"

    def __init__(self, node_id: Optional[str], minimum: Optional[int] = None,
                 maximum: Optional[int] = None, base: int = 10):
        super().__init__(node_id)
        self.min = minimum
        self.max = maximum
        self.base = base

    def accepts(self, token):
        try:
            value = int(token, self.base)
        except ValueError:
            return False
        if self.min is not None and value < self.min:
            return False
        if self.max is not None and value > self.max:
            return False
        return True

    def config(self):
        return {"min": self.min, "max": self.max, "base": self.base}

    @classmethod
    def from_config(cls, node_id, data, children):
        return cls(node_id, data.get("min"), data.get("max"), data.get("base", 10))


@_node_type
class AnyToken(_Leaf):
    kind = "any"

    def accepts(self, token):
        return True

    @classmethod
    def from_config(cls, node_id, data, children):
        return cls(node_id)


@_node_type
class Or(Node):
    """Ordered alternative. Children are tried in declaration order."""

    kind = "or"

    def __init__(self, node_id: Optional[str] = None, *children: Node):
        super().__init__(node_id)
        self._children = list(children)

    @property
    def children(self):
        return list(self._children)

    def add(self, child: Node) -> Or:
        self._children.append(child)
        return self

    def parse_tokens(self, tokens, pos):
        for child in self._children:
            for pnode, end in child.parse_tokens(tokens, pos):
                yield ParseNode(self, tokens[pos:end], [pnode]), end

    def complete_tokens(self, tokens, pos, out):
        for child in self._children:
            child.complete_tokens(tokens, pos, out)

    @classmethod
    def from_config(cls, node_id, data, children):
        return cls(node_id, *children)


@_node_type
class Seq(Node):
    kind = "seq"

    def __init__(self, node_id: Optional[str] = None, *children: Node):
        super().__init__(node_id)
        self._children = list(children)

    @property
    def children(self):
        return list(self._children)

    def parse_tokens(self, tokens, pos):
        for parts, end in self._parse_from(0, tokens, pos):
            yield ParseNode(self, tokens[pos:end], parts), end

    def _parse_from(self, index, tokens, pos):
        if index == len(self._children):
            yield [], pos
            return
        for pnode, mid in self._children[index].parse_tokens(tokens, pos):
            for rest, end in self._parse_from(index + 1, tokens, mid):
                yield [pnode] + rest, end

    def complete_tokens(self, tokens, pos, out):
        self._complete_from(0, tokens, pos, out)

    def _complete_from(self, index, tokens, pos, out):
        if index == len(self._children):
            return
        child = self._children[index]
        child.complete_tokens(tokens, pos, out)
        # the last token is the one being completed, never consume it here
        for _, end in child.parse_tokens(tokens[:-1], pos):
            self._complete_from(index + 1, tokens, end, out)

    @classmethod
    def from_config(cls, node_id, data, children):
        return cls(node_id, *children)


@_node_type
class Option(Node):
    kind = "option"

    def __init__(self, node_id: Optional[str], child: Node):
        super().__init__(node_id)
        self.child = child

    @property
    def children(self):
        return [self.child]

    def parse_tokens(self, tokens, pos):
        for pnode, end in self.child.parse_tokens(tokens, pos):
            yield ParseNode(self, tokens[pos:end], [pnode]), end
        yield ParseNode(self, []), pos

    def complete_tokens(self, tokens, pos, out):
        self.child.complete_tokens(tokens, pos, out)

    @classmethod
    def from_config(cls, node_id, data, children):
        if len(children) != 1:
            raise GrammarDocumentError("option node needs exactly one child")
        return cls(node_id, children[0])


@_node_type
class Cmd(Node):
    """A command compiled from an expression and its argument nodes.

    Parameters
    ----------
    node_id : str or None
        Node id, usually None. Commands are identified by their
        ``callback`` attribute, not by node id.
    expr : str
        Command expression, e.g. ``"name value"`` or
        ``"doc cmd_name [file filename [format fmt]]"``.
    *args : Node
        Argument nodes. Each must have an id that appears as a word
        in ``expr``.

    Raises
    ------
    GrammarDocumentError
        If the expression is empty or has unbalanced brackets.
    """

    kind = "cmd"

    def __init__(self, node_id: Optional[str], expr: str, *args: Node):
        super().__init__(node_id)
        self.expr = expr
        self.args = list(args)
        self._arg_map = {arg.id: arg for arg in self.args if arg.id is not None}
        self._tree = self._compile()

    @property
    def children(self):
        return list(self.args)

    def _compile(self) -> Node:
        stream = deque(re.findall(r"[\[\]()|]|[^\s\[\]()|]+", self.expr))
        if not stream:
            raise GrammarDocumentError("Empty command expression")
        tree = self._parse_alt(stream)
        if stream:
            raise GrammarDocumentError(
                f"Unexpected '{stream[0]}' in command expression: {self.expr!r}"
            )
        return tree

    def _parse_alt(self, stream) -> Node:
        branches = [self._parse_seq(stream)]
        while stream and stream[0] == "|":
            stream.popleft()
            branches.append(self._parse_seq(stream))
        return branches[0] if len(branches) == 1 else Or(None, *branches)

    def _parse_seq(self, stream) -> Node:
        items = []
        while stream and stream[0] not in ("|", "]", ")"):
            word = stream.popleft()
            if word == "[":
                items.append(Option(None, self._parse_alt(stream)))
                self._expect(stream, "]")
            elif word == "(":
                items.append(self._parse_alt(stream))
                self._expect(stream, ")")
            elif word in self._arg_map:
                items.append(self._arg_map[word])
            else:
                items.append(Str(None, word))
        if not items:
            raise GrammarDocumentError(f"Empty term in command expression: {self.expr!r}")
        return items[0] if len(items) == 1 else Seq(None, *items)

    def _expect(self, stream, closing: str) -> None:
        if not stream or stream.popleft() != closing:
            raise GrammarDocumentError(f"Missing '{closing}' in command expression: {self.expr!r}")

    def parse_tokens(self, tokens, pos):
        for pnode, end in self._tree.parse_tokens(tokens, pos):
            yield ParseNode(self, tokens[pos:end], [pnode]), end

    def complete_tokens(self, tokens, pos, out):
        self._tree.complete_tokens(tokens, pos, out)

    def config(self):
        return {"expr": self.expr}

    @classmethod
    def from_config(cls, node_id, data, children):
        return cls(node_id, data["expr"], *children)


@_node_type
class ShLex(Node):
    """Tokenizing wrapper: splits the line with shell quoting rules."""

    kind = "sh_lex"

    def __init__(self, node_id: Optional[str], child: Node):
        super().__init__(node_id)
        self.child = child

    @property
    def children(self):
        return [self.child]

    def tokenize(self, text):
        try:
            return shlex.split(text)
        except ValueError:
            return None

    def parse_tokens(self, tokens, pos):
        for pnode, end in self.child.parse_tokens(tokens, pos):
            yield ParseNode(self, tokens[pos:end], [pnode]), end

    def complete_tokens(self, tokens, pos, out):
        self.child.complete_tokens(tokens, pos, out)

    @classmethod
    def from_config(cls, node_id, data, children):
        if len(children) != 1:
            raise GrammarDocumentError("sh_lex node needs exactly one child")
        return cls(node_id, children[0])


# ─── Engine Entry Points ─────────────────────────────────────────────


def parse(tree: Node, text: str) -> Optional[ParseNode]:
    """Parse one line against a tree.

    Returns
    -------
    ParseNode or None
        None when the tokenizer rejects the text outright. Otherwise
        a parse tree whose ``matches`` flag tells whether the whole
        line was consumed.
    """
    tokens = tree.tokenize(text)
    if tokens is None:
        return None

    best, best_end = None, -1
    for pnode, end in tree.parse_tokens(tokens, 0):
        if end == len(tokens):
            pnode.matches = True
            return pnode
        if end > best_end:
            best, best_end = pnode, end
    return best if best is not None else ParseNode(tree, [])


def matches(result: Optional[ParseNode]) -> bool:
    return result is not None and result.matches


def complete(tree: Node, text: str) -> list[Completion]:
    """Return completion candidates for the last token of ``text``."""
    tokens = tree.tokenize(text)
    if tokens is None:
        return []
    if not text or text[-1].isspace():
        tokens.append("")
    out = _Candidates()
    tree.complete_tokens(tokens, 0, out)
    return out.items


def iter_nodes(tree: Node) -> Iterator[Node]:
    yield tree
    for child in tree.children:
        yield from iter_nodes(child)


# ─── Documents ───────────────────────────────────────────────────────


def node_to_dict(node: Node) -> dict:
    """Convert a tree to plain data suitable for ``yaml.dump``."""
    data = {"type": node.kind}
    if node.id is not None:
        data["id"] = node.id
    attrs = {
        key: value for key, value in node.attrs.items()
        if key in EXPORTED_ATTRS and value is not None
    }
    if attrs:
        data["attrs"] = attrs
    data.update(node.config())
    if node.children:
        data["children"] = [node_to_dict(child) for child in node.children]
    return data


def node_from_dict(data) -> Node:
    """Rebuild a tree from plain data.

    Raises
    ------
    GrammarDocumentError
        If a node has an unknown type or is missing a required field.
    """
    if not isinstance(data, dict):
        raise GrammarDocumentError(f"Grammar node must be a mapping, got {type(data).__name__}")

    kind = data.get("type")
    cls = NODE_TYPES.get(kind)
    if cls is None:
        raise GrammarDocumentError(f"Unknown grammar node type: {kind!r}")

    children = [node_from_dict(child) for child in data.get("children") or []]
    try:
        node = cls.from_config(data.get("id"), data, children)
    except GrammarDocumentError:
        raise
    except KeyError as e:
        raise GrammarDocumentError(f"{kind} node is missing field {e}") from e
    except (TypeError, ValueError, re.error) as e:
        raise GrammarDocumentError(f"Invalid {kind} node: {e}") from e

    attrs = data.get("attrs") or {}
    if not isinstance(attrs, dict):
        raise GrammarDocumentError(f"attrs of {kind} node must be a mapping")
    for key, value in attrs.items():
        node.attrs[str(key)] = value
    return node
