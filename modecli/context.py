"""
Context stack: the nested configuration modes a session is in.

Entering ``interface`` and then ``eth0`` from a base prompt of
``"app> "`` gives the prompt ``"app(interface-eth0)> "``, and every line
typed there is run as ``interface eth0 <line>``. One flat grammar tree
is enough for any depth of nesting.
"""

from __future__ import annotations

from typing import Iterator


class ContextStack:
    """Ordered stack of entered context keywords.

    Parameters
    ----------
    base_prompt : str
        Prompt shown at the top level, e.g. ``"cli> "``.
    """

    def __init__(self, base_prompt: str = "cli> "):
        self.base_prompt = base_prompt
        self._frames: list[str] = []
        self.prompt = base_prompt

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[str]:
        return iter(self._frames)

    @property
    def depth(self) -> int:
        return len(self._frames)

    @property
    def frames(self) -> list[str]:
        return list(self._frames)

    def enter(self, name: str) -> None:
        self._frames.append(name)
        self._update_prompt()

    def exit(self) -> bool:
        """Pop the innermost frame. Returns False if already at the top."""
        if not self._frames:
            return False
        self._frames.pop()
        self._update_prompt()
        return True

    def exit_all(self) -> None:
        self._frames.clear()
        self._update_prompt()

    def build_full_command(self, line: str) -> str:
        if not self._frames:
            return line
        return " ".join(self._frames + [line])

    def _update_prompt(self) -> None:
        if not self._frames:
            self.prompt = self.base_prompt
            return

        base = self.base_prompt
        if len(base) >= 2 and base[-2] in ">#":
            base = base[:-2]
        elif base and base[-1] in ">#":
            base = base[:-1]
        self.prompt = f"{base}({'-'.join(self._frames)})> "
