"""
Exception hierarchy for modecli.

Only construction-time problems are raised as exceptions. Everything a
user can cause by typing (parse errors, unknown commands, handler
failures) is written to the session and reported through a
``DispatchResult`` instead, so a bad line never ends a session.
"""


class CliError(Exception):
    """Base class for all modecli errors."""


class GrammarInitError(CliError):
    """The command grammar could not be assembled. Fatal at startup."""


class RegistryFrozenError(CliError, RuntimeError):
    """A definition was added after the grammar was built, or the
    grammar was built twice. Always a programming error."""


class GrammarDocumentError(CliError, ValueError):
    """A grammar or format document is malformed."""


class ServerError(CliError):
    """The remote listener could not be created. Fatal at startup."""
