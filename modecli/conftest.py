"""Shared fixtures for the modecli tests."""

import pytest

from modecli.config_manager import CliConfig
from modecli.demo import create_registry
from modecli.engine import DispatchEngine
from modecli.localization import Localization


class Capture:
    """Collects everything a session writes."""

    def __init__(self):
        self.chunks = []

    def __call__(self, text):
        self.chunks.append(text)

    def write(self, text):
        self.chunks.append(text)

    @property
    def text(self):
        return "".join(self.chunks)

    def clear(self):
        self.chunks.clear()


@pytest.fixture
def demo():
    """A built registry with the example commands and its state."""
    registry, state = create_registry()
    registry.build()
    return registry, state


@pytest.fixture
def registry(demo):
    return demo[0]


@pytest.fixture
def state(demo):
    return demo[1]


@pytest.fixture
def cli_config():
    return CliConfig(prompt="minimal> ", banner="ECLI Minimal Example", version="1.0.0")


@pytest.fixture
def engine(registry, cli_config):
    return DispatchEngine(registry, Localization(), cli_config)


@pytest.fixture
def output():
    return Capture()


@pytest.fixture
def session(engine, output):
    return engine.new_session(writer=output)
