"""
Shared fixtures for the tiny_templates test suite.
Path: tests/conftest.py
"""

import pytest

from tiny_templates.engine.template_engine import TemplateEngine, set_default_engine
from tiny_templates.services.registry import DUPLICATE_REJECT, ServiceRegistry


@pytest.fixture(autouse=True)
def reset_registry():
    """Each test starts from a registry holding only the built-in services."""
    registry = ServiceRegistry.get_instance()
    registry.clear()
    registry.set_duplicate_policy(DUPLICATE_REJECT)
    registry.register_builtin_services()
    set_default_engine(None)
    yield registry
    registry.clear()
    registry.set_duplicate_policy(DUPLICATE_REJECT)
    set_default_engine(None)


@pytest.fixture
def engine():
    return TemplateEngine()


@pytest.fixture
def lenient_engine():
    return TemplateEngine.from_dict({"engine": {"strict": False}})


@pytest.fixture
def customer():
    return {
        "FirstName": "John",
        "LastName": "Smith",
        "Active": True,
        "Orders": [
            {"Id": 1, "Total": 12.5, "Lines": ["pen", "ink"]},
            {"Id": 2, "Total": 7, "Lines": []},
        ],
        "Address": {"City": "Leiden", "Zip": None},
    }
