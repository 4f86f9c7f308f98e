"""
Localization Overlay
====================

Swaps the compiled command grammar for one read from a YAML document,
and overrides the output templates used by ``write terminal``.

    write yaml grammar.yaml          # export the compiled grammar
    (translate keywords and help in grammar.yaml)
    ECLI_GRAMMAR=grammar.yaml app    # start with the translated grammar

A translated grammar carries no references to Python functions. Each
command node keeps its ``callback`` attribute, the stable command
identifier, and the dispatch engine switches to looking handlers up by
that identifier (``DispatchMode.BY_IDENTIFIER``).

Output templates live in a companion document named after the grammar
file (``grammar_formats.yaml`` next to ``grammar.yaml``):

    output_formats:
      set_name: "nom {value}\\n"

Nothing in this module is fatal. A missing or malformed document is
logged and the caller keeps using the compiled grammar and the default
templates.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

import yaml

from modecli.errors import GrammarDocumentError
from modecli.grammar import Node, ShLex, node_from_dict, node_to_dict


FORMATS_KEY = "output_formats"

EXPORT_HEADER = """\
# {title} CLI Grammar Template
#
# This file describes the command grammar of {title}. Edit it to
# create an alternate (for example translated) command set.
#
# USAGE:
#   1. Export this template:  write yaml grammar.yaml
#   2. Edit keywords and help strings
#   3. Set environment: {env}=grammar.yaml
#   4. Restart the application, it will use the edited grammar
#
# IMPORTANT:
#   - Keep all 'callback:' values unchanged (they link to the handlers)
#   - Keep 'id:' values unchanged (handlers read arguments by id)
#   - Only modify 'string:', 'help:' and 'pattern:' values, and the
#     keywords inside 'expr:' values
#   - In 'expr:' keep every argument word (it names a child 'id:') and
#     the [ ] ( | ) symbols, e.g. 'name value' becomes 'nom value'
#
# OUTPUT FORMATS:
#   Create a companion file 'grammar_formats.yaml' with:
#     {key}:
#       set_name: "set name {{value}}\\n"
#   These override the default output of 'write terminal'.
#
# =============================================================================

"""

PathLike = Union[str, Path]


def formats_path_for(grammar_path: PathLike) -> Path:
    """``dir/grammar.yaml`` → ``dir/grammar_formats.yaml``."""
    path = Path(grammar_path)
    return path.with_name(f"{path.stem}_formats{path.suffix}")


class Localization:
    """Alternate grammar and output format overrides.

    Attributes
    ----------
    formats : dict
        identifier → template, consulted by the serialization dump.
    grammar : Node or None
        The loaded alternate grammar, wrapped for tokenized parsing,
        or None while the compiled grammar is in use.
    source : Path or None
        Where ``grammar`` was loaded from.
    """

    def __init__(self):
        self.formats: dict[str, str] = {}
        self.grammar: Optional[Node] = None
        self.source: Optional[Path] = None
        self.logger = logging.getLogger(__name__)

    @property
    def active(self) -> bool:
        return self.grammar is not None

    def load(self, path: PathLike) -> Optional[Node]:
        """Load an alternate grammar and its companion formats.

        Returns
        -------
        Node or None
            The wrapped grammar tree, or None if the document could
            not be read. On None the caller keeps the compiled grammar.
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
            tree = node_from_dict(data)
        except (OSError, yaml.YAMLError, GrammarDocumentError) as e:
            self.logger.warning(f"Could not load grammar from {path}: {e}")
            return None

        if not isinstance(tree, ShLex):
            tree = ShLex(None, tree)

        self.load_formats(formats_path_for(path))

        self.grammar = tree
        self.source = path
        self.logger.info(f"Loaded CLI grammar from: {path}")
        return tree

    def unload(self) -> None:
        self.grammar = None
        self.source = None

    def load_formats(self, path: PathLike) -> int:
        """Read ``output_formats`` overrides from a document.

        Each entry replaces any existing override for the same
        identifier. A missing document is not an error.

        Returns
        -------
        int
            Number of overrides read.
        """
        path = Path(path)
        if not path.exists():
            self.logger.debug(f"No output formats file: {path}")
            return 0

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            self.logger.warning(f"Could not load output formats from {path}: {e}")
            return 0

        section = data.get(FORMATS_KEY) if isinstance(data, dict) else None
        if not isinstance(section, dict):
            self.logger.warning(f"No '{FORMATS_KEY}' mapping in {path}")
            return 0

        count = 0
        for identifier, template in section.items():
            if not isinstance(template, str):
                self.logger.warning(f"Ignoring non-string format for '{identifier}' in {path}")
                continue
            self.formats[str(identifier)] = template
            count += 1

        self.logger.info(f"Loaded {count} output format(s) from: {path}")
        return count

    def get_output_fmt(self, identifier: str, default: Optional[str] = None) -> Optional[str]:
        return self.formats.get(identifier, default)

    def set_override(self, identifier: str, template: str) -> None:
        self.formats[identifier] = template

    def remove_override(self, identifier: str) -> None:
        self.formats.pop(identifier, None)

    def clear_formats(self) -> None:
        self.formats.clear()

    def export(self, root: Node, path: PathLike, title: str = "modecli",
               grammar_env: str = "ECLI_GRAMMAR") -> None:
        """Write ``root`` as a grammar template document.

        Pass the compiled root, never the loaded grammar, so a
        translated tree is not exported on top of itself.

        Raises
        ------
        OSError
            If the file cannot be written.
        """
        path = Path(path)
        with open(path, "w", encoding="utf-8") as f:
            f.write(EXPORT_HEADER.format(title=title, env=grammar_env, key=FORMATS_KEY))
            yaml.dump(node_to_dict(root), f,
                      default_flow_style=False,
                      sort_keys=False,
                      indent=2,
                      allow_unicode=True)
        self.logger.info(f"CLI grammar exported to: {path}")
