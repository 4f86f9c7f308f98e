"""
Built-in commands available in every modecli application.

    help, ?                 list commands
    quit, exit              leave the application
    show running-config     dump the running configuration
    show run                same
    show version            banner and version
    show doc <command> [file <f> [format md|rst|txt]]
    write terminal          same as show running-config
    write file <f>          save the running configuration
    write yaml <f>          export the command grammar as a template

``register_builtins`` returns the ``show`` and ``write`` groups so an
application can add its own sub-commands to them; asking the registry
for ``registry.group("show")`` later returns the same group.
"""

from __future__ import annotations

from modecli import docs
from modecli.argtypes import RE_IDENTIFIER, arg_doc_format, arg_filename, arg_re
from modecli.grammar import Option, Seq, Str
from modecli.registry import CommandGroup, CommandRegistry


def cmd_help(session, parse):
    session.write("Press TAB for command completion and contextual help.\n\n")
    session.write(docs.render_help(session.grammar))


def cmd_quit(session, parse):
    session.write("Goodbye!\n")
    session.request_exit()


def show_running_config(session, parse):
    session.engine.dump_config(session)


def show_version(session, parse):
    config = session.engine.config
    session.write(f"{config.banner or 'modecli'} v{config.version}\n")


def show_doc(session, parse):
    name = parse.get_str("cmd_name")
    filename = parse.get_str("doc_filename")
    fmt = parse.get_str("doc_format", "md")

    info = docs.find_command(session.grammar, name)
    entry = session.engine.registry.docs.get(name)
    if info is None and entry is None:
        session.error(f"Unknown command: {name}")
        return False

    if filename is None:
        session.write(docs.render_doc(name, info, entry))
        return True

    try:
        with open(filename, "w", encoding="utf-8") as f:
            f.write(docs.render_doc_file(name, info, entry, fmt))
    except OSError as e:
        session.error(f"cannot open file '{filename}': {e.strerror}")
        return False

    session.write(f"Documentation written to '{filename}' ({docs.DOC_FORMATS[fmt]})\n")
    return True


def write_terminal(session, parse):
    session.engine.dump_config(session)


def write_file(session, parse):
    filename = parse.get_str("filename")
    try:
        with open(filename, "w", encoding="utf-8") as f:
            session.engine.dump_config(f)
    except OSError as e:
        session.error(f"Cannot open file: {filename}: {e.strerror}")
        return False
    session.write(f"Configuration saved to {filename}\n")
    return True


def write_yaml(session, parse):
    filename = parse.get_str("filename")
    engine = session.engine
    try:
        engine.localization.export(engine.registry.root, filename,
                                   title=engine.config.banner or "modecli",
                                   grammar_env=engine.config.grammar_env)
    except OSError as e:
        session.error(f"Cannot open file: {filename}: {e.strerror}")
        return False
    session.write(f"CLI grammar exported to {filename}\n")
    return True


def _doc_node():
    return Seq(
        None,
        Str(None, "doc").with_help("Display or export command documentation"),
        arg_re("cmd_name", RE_IDENTIFIER, "Command identifier"),
        Option(None, Seq(
            None,
            Str(None, "file").with_help("Write documentation to a file"),
            arg_filename("doc_filename", "Output filename"),
            Option(None, Seq(
                None,
                Str(None, "format").with_help("Documentation file format"),
                arg_doc_format("doc_format", "Format (md, rst, txt)"),
            )),
        )),
    )


def register_builtins(registry: CommandRegistry) -> tuple[CommandGroup, CommandGroup]:
    """Define the built-in commands on ``registry``.

    Returns
    -------
    (show, write)
        The two built-in groups.
    """
    registry.defun("help", "help", "Show available commands")(cmd_help)
    registry.defun_alias("?", "Show available commands (alias for help)", cmd_help)
    registry.defun("quit", "quit", "Exit the application")(cmd_quit)
    registry.defun_alias("exit", "Exit the application (alias for quit)", cmd_quit)

    show = registry.group("show", "Display information")
    registry.defun_sub(show, "show_running_config", "running-config",
                       "Display running configuration")(show_running_config)
    registry.defun_sub(show, "show_run", "run", "Display running configuration")(show_running_config)
    registry.defun_sub(show, "show_version", "version", "Display version information")(show_version)
    registry.defun_sub_node(show, "show_doc", "Display or export command documentation",
                            _doc_node())(show_doc)

    write = registry.group("write", "Save configuration")
    registry.defun_sub(write, "write_terminal", "terminal", "Display configuration on the terminal")(write_terminal)
    registry.defun_sub(write, "write_file", "file filename", "Save configuration to a file",
                       arg_filename("filename", "Output filename"))(write_file)
    registry.defun_sub(write, "write_yaml", "yaml filename", "Export the command grammar to YAML",
                       arg_filename("filename", "Output filename"))(write_yaml)

    registry.doc("show_doc",
                 "Shows the syntax, summary and extended description of a command.\n"
                 "With 'file', writes the same information to a file in Markdown,\n"
                 "reStructuredText or plain text.",
                 "show doc set_name\n"
                 "show doc write_file file write_file.md\n"
                 "show doc write_file file write_file.rst format rst")
    registry.doc("write_file",
                 "Saves the running configuration to a file. The file can be\n"
                 "replayed at startup to restore the configuration.",
                 "write file startup.cfg")
    registry.doc("write_yaml",
                 "Exports the command grammar as a YAML template. Translate the\n"
                 "keywords and help strings, then point the grammar environment\n"
                 "variable at the edited file and restart.",
                 "write yaml grammar.yaml")

    return show, write
