"""
Command listing and documentation rendering.

Works on any grammar tree, compiled or loaded from a document, by
walking it the way the registry assembles it: the root is an
alternative of commands and of groups, and a group is a keyword
followed by another alternative.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Optional

from modecli.grammar import ATTR_CALLBACK, Cmd, Node, Option, Or, Seq, ShLex, Str
from modecli.registry import DocEntry


DOC_FORMATS = {
    "md": "Markdown",
    "rst": "reStructuredText",
    "txt": "plain text",
}

_EXPR_WORD = re.compile(r"[^\s\[\]()|]+")


@dataclass(frozen=True)
class CommandInfo:
    identifier: Optional[str]
    syntax: str
    help: Optional[str]
    node: Node


def node_syntax(node: Node) -> str:
    """Human-readable syntax of a command node, arguments as ``<id>``."""
    if isinstance(node, Cmd):
        arg_ids = {arg.id for arg in node.args if arg.id}
        return _EXPR_WORD.sub(
            lambda m: f"<{m.group(0)}>" if m.group(0) in arg_ids else m.group(0),
            node.expr,
        )
    if isinstance(node, Str):
        return node.string
    if isinstance(node, Seq):
        return " ".join(part for part in (node_syntax(c) for c in node.children) if part)
    if isinstance(node, Option):
        return f"[{node_syntax(node.child)}]"
    if isinstance(node, Or):
        parts = [node_syntax(c) for c in node.children]
        return parts[0] if len(parts) == 1 else f"({'|'.join(parts)})"
    if isinstance(node, ShLex):
        return node_syntax(node.child)
    return f"<{node.id}>" if node.id else node.kind


def _group_body(node: Node) -> Optional[Or]:
    if ATTR_CALLBACK in node.attrs or not isinstance(node, Seq):
        return None
    children = node.children
    if len(children) == 2 and isinstance(children[0], Str) and isinstance(children[1], Or):
        return children[1]
    return None


def iter_commands(tree: Node) -> Iterator[CommandInfo]:
    """Yield every command of ``tree`` with its full syntax."""
    root = tree
    while isinstance(root, ShLex):
        root = root.child
    if isinstance(root, Or):
        yield from _walk(root, "")
    else:
        yield _info(root, "")


def _walk(alternatives: Or, prefix: str) -> Iterator[CommandInfo]:
    for child in alternatives.children:
        body = _group_body(child)
        if body is not None:
            yield from _walk(body, f"{prefix}{child.children[0].string} ")
        else:
            yield _info(child, prefix)


def _info(node: Node, prefix: str) -> CommandInfo:
    return CommandInfo(node.attrs.get(ATTR_CALLBACK), prefix + node_syntax(node), node.help, node)


def find_command(tree: Node, identifier: str) -> Optional[CommandInfo]:
    for info in iter_commands(tree):
        if info.identifier == identifier:
            return info
    return None


def render_help(tree: Node) -> str:
    lines = ["Commands:"]
    for info in iter_commands(tree):
        if info.help:
            lines.append(f"  {info.syntax} - {info.help}")
    return "\n".join(lines) + "\n"


def _indent(text: str, prefix: str = "    ") -> str:
    return "\n".join(prefix + line for line in text.rstrip("\n").split("\n"))


def render_doc(name: str, info: Optional[CommandInfo], entry: Optional[DocEntry]) -> str:
    """Terminal rendering used by ``show doc <name>``."""
    out = ["\n", "Syntax:\n", f"    {info.syntax if info else name}\n", "\n"]

    if info and info.help:
        out.append(f"    {info.help}\n\n")

    if entry is None:
        out.append("  (no extended documentation available)\n\n")
        return "".join(out)

    if entry.description:
        out.append(f"Description:\n{_indent(entry.description)}\n\n")
    if entry.examples:
        out.append(f"Examples:\n{_indent(entry.examples)}\n\n")
    return "".join(out)


def render_doc_file(name: str, info: Optional[CommandInfo], entry: Optional[DocEntry],
                    fmt: str = "md") -> str:
    """File rendering used by ``show doc <name> file <f> [format ...]``.

    Raises
    ------
    ValueError
        If ``fmt`` is not one of ``md``, ``rst``, ``txt``.
    """
    syntax = info.syntax if info else None
    summary = info.help if info else None
    description = entry.description if entry else None
    examples = entry.examples.rstrip("\n") if entry and entry.examples else None

    out = []
    if fmt == "md":
        out.append(f"# {name}\n\n")
        if syntax:
            out.append(f"## Syntax\n\n```\n{syntax}\n```\n\n")
        if summary:
            out.append(f"## Summary\n\n{summary}\n\n")
        if description:
            out.append(f"## Description\n\n{description}\n\n")
        if examples:
            out.append(f"## Examples\n\n```\n{examples}\n```\n\n")
    elif fmt == "rst":
        out.append(f"{name}\n{'=' * len(name)}\n\n")
        if syntax:
            out.append(f"Syntax\n------\n\n::\n\n    {syntax}\n\n")
        if summary:
            out.append(f"Summary\n-------\n\n{summary}\n\n")
        if description:
            out.append(f"Description\n-----------\n\n{description}\n\n")
        if examples:
            out.append(f"Examples\n--------\n\n::\n\n{_indent(examples)}\n")
    elif fmt == "txt":
        out.append(f"{name}\n{'-' * len(name)}\n\n")
        if syntax:
            out.append(f"SYNTAX:\n    {syntax}\n\n")
        if summary:
            out.append(f"SUMMARY:\n    {summary}\n\n")
        if description:
            out.append(f"DESCRIPTION:\n{_indent(description)}\n\n")
        if examples:
            out.append(f"EXAMPLES:\n{_indent(examples)}\n")
    else:
        raise ValueError(f"Unknown documentation format: {fmt!r}")
    return "".join(out)
