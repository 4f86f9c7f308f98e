#!/usr/bin/env python3
"""
modecli Minimal Example

A tiny configurable application. Try:

    hello
    set name Alice
    sh na                      (abbreviation of "show name")
    set address 192.168.1.1
    write terminal
    set                        (enter the "set" context)
    name Bob
    end
    show doc set_name
    quit

Run ``modecli-demo --tcp`` and connect with ``telnet 127.0.0.1 2323``
for the remote mode.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Optional

from modecli.app import CliApp
from modecli.argtypes import arg_ipv4, arg_name, parse_ipv4
from modecli.builtins import register_builtins
from modecli.config_manager import CliConfig, ModeCliConfig, setup_configuration, setup_logging
from modecli.errors import CliError
from modecli.registry import CommandRegistry


DEFAULT_NAME = "world"

logger = logging.getLogger(__name__)


@dataclass
class MinimalState:
    """Application state the commands read and change."""
    name: str = DEFAULT_NAME
    address: Optional[str] = None


def create_registry(state: Optional[MinimalState] = None) -> tuple[CommandRegistry, MinimalState]:
    """Define the example commands on a fresh registry."""
    state = state or MinimalState()
    registry = CommandRegistry()
    show, _ = register_builtins(registry)

    @registry.defun_sub(show, "show_name", "name", "Display current name")
    def show_name(session, parse):
        session.write(f"Name: {state.name}\n")

    @registry.defun_sub(show, "show_address", "address", "Display configured IPv4 address")
    def show_address(session, parse):
        if state.address:
            session.write(f"Address: {state.address}\n")
        else:
            session.write("Address: not configured\n")

    set_grp = registry.group("set", "Configure settings")

    @registry.defun_set(set_grp, "set_name", "name value", "Set the greeting name",
                        "set name {value}\n", "greeting", 10,
                        arg_name("value", "Name to greet"))
    def set_name(session, parse):
        state.name = parse.get_str("value")
        session.write(f"Name set to '{state.name}'\n")

    @registry.defun_out("set_name")
    def set_name_out(out, template):
        if state.name != DEFAULT_NAME:
            out.emit(template, value=state.name)

    @registry.defun_set(set_grp, "set_address", "address ipv4", "Set the IPv4 address",
                        "set address {ipv4}\n", "network", 20,
                        arg_ipv4("ipv4", "IPv4 address (e.g., 192.168.1.1)"))
    def set_address(session, parse):
        value = parse.get_str("ipv4")
        try:
            parse_ipv4(value)
        except ValueError:
            session.error(f"Invalid IPv4 address: {value}")
            return False
        state.address = value
        session.write(f"Address set to '{state.address}'\n")

    @registry.defun_out("set_address")
    def set_address_out(out, template):
        if state.address:
            out.emit(template, ipv4=state.address)

    del_grp = registry.group("del", "Delete configuration")

    @registry.defun_sub(del_grp, "del_address", "address ipv4", "Delete the IPv4 address",
                        arg_ipv4("ipv4", "IPv4 address to delete"))
    def del_address(session, parse):
        value = parse.get_str("ipv4")
        if state.address and state.address == value:
            session.write(f"Address '{state.address}' deleted\n")
            state.address = None
        elif state.address:
            session.write(f"Address '{value}' not found (configured: {state.address})\n")
        else:
            session.write("No address configured\n")

    @registry.defun("hello", "hello", "Say hello")
    def hello(session, parse):
        session.write(f"Hello, {state.name}!\n")

    registry.doc("set_name",
                 "Sets the name used by 'hello'. The name is saved in the\n"
                 "running configuration unless it is the default, 'world'.",
                 "set name Alice\n"
                 "set name world")
    registry.doc("set_address",
                 "Sets the IPv4 address of the application.",
                 "set address 192.168.1.1")

    return registry, state


def default_config() -> ModeCliConfig:
    config = ModeCliConfig()
    config.cli = CliConfig(prompt="minimal> ", banner="ECLI Minimal Example", version="1.0.0")
    return config


def main(argv=None) -> int:
    config, should_exit, manager = setup_configuration(argv, defaults=default_config(),
                                                       description='modecli minimal example')
    if should_exit:
        # no manager means the configuration did not validate
        return 0 if manager is not None else 1

    setup_logging(config.logging)

    try:
        registry, _ = create_registry()
        app = CliApp(registry, config.cli)
    except CliError as e:
        logger.error(f"Failed to initialize CLI: {e}")
        return 1

    if config.startup.config_file:
        try:
            errors = app.load_config(config.startup.config_file)
        except OSError as e:
            logger.error(f"Cannot open config file: {config.startup.config_file}: {e}")
            return 1
        if errors:
            logger.warning(f"{errors} error(s) in {config.startup.config_file}")

    try:
        if config.server.mode == "tcp":
            app.install_signal_handlers()
            app.serve(config.server.port, config.server.host)
        else:
            app.run()
    except CliError as e:
        logger.error(f"{e}")
        return 1
    finally:
        app.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
