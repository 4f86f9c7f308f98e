"""
Serialization Registry
======================

Rebuilds a replayable configuration script from live application state.

Every stateful command registers an entry: an identifier, a group
name, a default output template and an emitter. ``dump`` walks the
entries in priority order and lets each emitter write the command
line(s) that would recreate its piece of state:

    ! running configuration
    !
    ! greeting configuration
    set name Alice
    ! end greeting
    ! network configuration
    set address 10.0.0.1
    ! end network
    !
    ! end

Lines starting with ``!`` are comments to the config replay, so the
dump can be fed straight back through ``DispatchEngine.load_config``.

Templates
---------
Emitters never build output strings themselves. They pass named values
to a template:

    def set_name_out(out, template):
        if state.name != "world":
            out.emit(template, value=state.name)

The template comes from the registry, which means a localized format
document can replace ``"set name {value}\\n"`` with something else
(reordered placeholders included) without touching the emitter.
Placeholders with no matching value are copied verbatim.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Callable, Iterator, Optional


_PLACEHOLDER = re.compile(r"\{([^{}]*)\}")


def _render(value) -> str:
    if value is None:
        return "(null)"
    return str(value)


def format_template(template: str, params) -> str:
    """Substitute ``{name}`` placeholders.

    Parameters
    ----------
    template : str
        Output template, e.g. ``"set address {ipv4}\\n"``.
    params : Mapping or iterable of (name, value) pairs
        Values to substitute. None renders as ``(null)``.

    Returns
    -------
    str
        The template with every known placeholder replaced. Unknown
        placeholders are left as they are.
    """
    values = dict(params.items() if isinstance(params, Mapping) else params)

    def replace(match):
        name = match.group(1)
        if name in values:
            return _render(values[name])
        return match.group(0)

    return _PLACEHOLDER.sub(replace, template)


class OutputWriter:
    """Handed to emitters during a dump."""

    def __init__(self, target):
        self._target = target

    def write(self, text: str) -> None:
        self._target.write(text)

    def emit(self, template: str, /, *pairs, **values) -> None:
        """Write ``template`` with placeholders filled.

        Values may be passed as keyword arguments or as (name, value)
        pairs, not both.
        """
        self._target.write(format_template(template, pairs or values))


Emitter = Callable[[OutputWriter, str], None]


@dataclass
class OutputEntry:
    identifier: str
    group: Optional[str]
    template: str
    emitter: Optional[Emitter]
    priority: int


class OutputRegistry:
    """Ordered collection of serialization entries.

    Entries are kept sorted by ascending priority. Entries with equal
    priority keep their registration order.
    """

    def __init__(self):
        self._entries: list[OutputEntry] = []
        self.logger = logging.getLogger(__name__)

    def __iter__(self) -> Iterator[OutputEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, identifier: str) -> Optional[OutputEntry]:
        for entry in self._entries:
            if entry.identifier == identifier:
                return entry
        return None

    def register(self, identifier: str, group: Optional[str], template: str,
                 emitter: Optional[Emitter], priority: int = 100) -> OutputEntry:
        """Add an entry, or replace the emitter of an existing one.

        Parameters
        ----------
        identifier : str
            Stable command identifier, also the format-override key.
        group : str or None
            Section name used for the ``! <group> configuration``
            markers. None keeps the entry in the current section.
        template : str
            Default output template.
        emitter : callable or None
            ``emitter(writer, template)``. Entries without an emitter
            keep their place in the order but produce no output.
        priority : int
            Lower priorities are dumped first.
        """
        existing = self.get(identifier)
        if existing is not None:
            self.logger.debug(f"Replacing emitter for '{identifier}'")
            existing.emitter = emitter
            return existing

        entry = OutputEntry(identifier, group, template, emitter, priority)
        index = len(self._entries)
        for i, other in enumerate(self._entries):
            if other.priority > priority:
                index = i
                break
        self._entries.insert(index, entry)
        return entry

    def dump(self, target, overrides: Optional[Mapping] = None) -> None:
        """Write the running configuration to ``target``.

        Parameters
        ----------
        target
            Anything with a ``write(str)`` method: a session, an open
            text file, an ``io.StringIO``.
        overrides : Mapping, optional
            identifier → template. Takes precedence over the default
            template of the entry with that identifier.
        """
        overrides = overrides or {}
        writer = OutputWriter(target)

        target.write("! running configuration\n")
        target.write("!\n")

        current_group = None
        for entry in self._entries:
            if entry.group and entry.group != current_group:
                if current_group:
                    target.write(f"! end {current_group}\n")
                target.write(f"! {entry.group} configuration\n")
                current_group = entry.group

            if entry.emitter is not None:
                entry.emitter(writer, overrides.get(entry.identifier, entry.template))

        if current_group:
            target.write(f"! end {current_group}\n")

        target.write("!\n")
        target.write("! end\n")
