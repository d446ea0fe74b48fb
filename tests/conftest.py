"""Pytest configuration and shared fixtures."""
import pytest

from chartbind import ChartRegistry, Element, ManualScheduler, Scope
from tests.fakes import FakeChart, IntrospectedChart


@pytest.fixture(autouse=True)
def reset_directive_config():
    """Reset directive config before each test."""
    # Import the module to access the global variable
    import chartbind.config as config_module

    # Store original value
    original = config_module._directive_config

    # Set to defaults before test
    config_module.reset_directive_config()

    yield

    # Restore original value after test
    config_module._directive_config = original


@pytest.fixture
def registry():
    """Provide a registry knowing the fake chart kinds."""
    registry = ChartRegistry()
    registry.register_kind("fakeChart", FakeChart)
    registry.register_kind("introspectedChart", IntrospectedChart)
    return registry


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def scope():
    return Scope()


@pytest.fixture
def make_element():
    """Build a chart element with a reset link from directive attributes."""
    def _make(attributes, with_reset=True):
        element = Element("div", attributes=attributes)
        if with_reset:
            element.append(Element("span", classes=["filter"]))
            element.append(Element("a", classes=["reset"]))
        return element
    return _make
