"""
Tests for the service registry and pipeline dispatch.
Path: tests/test_service_registry.py
"""

import threading

import pytest

from tiny_templates.context.execution_context import ExecutionContext
from tiny_templates.engine.parser import parse_interpolation
from tiny_templates.engine.pipeline import apply, find_service, parse_pipeline, split_unquoted
from tiny_templates.errors import ConfigError, DuplicateServiceError, TemplateSyntaxError
from tiny_templates.services.builtins import BUILTIN_SERVICES
from tiny_templates.config import EngineConfig
from tiny_templates.services.registry import DUPLICATE_REPLACE, ServiceRegistry, register_service


def shout(value, arg=None):
    return f"{value}!"


def test_registry_is_a_singleton():
    """Test that every access returns the same registry"""
    assert ServiceRegistry() is ServiceRegistry.get_instance()


def test_builtins_are_registered(reset_registry):
    """Test that all built-in services are available"""
    assert set(BUILTIN_SERVICES) <= set(reset_registry.list_services())


def test_register_and_lookup_case_insensitive(reset_registry):
    """Test registration and case-insensitive lookup"""
    register_service("Shout", shout)
    assert reset_registry.get("SHOUT") is shout
    assert reset_registry.has("shout")


def test_duplicate_registration_is_rejected(reset_registry):
    """Test the default duplicate policy"""
    register_service("shout", shout)
    with pytest.raises(DuplicateServiceError):
        register_service("shout", lambda value: value)
    assert reset_registry.get("shout") is shout


def test_registering_same_function_again_is_a_no_op(reset_registry):
    """Test that repeating an identical registration does not fail"""
    register_service("shout", shout)
    register_service("shout", shout)
    assert reset_registry.get("shout") is shout


def test_duplicate_registration_with_replace(reset_registry):
    """Test explicit replacement and the replace policy"""
    other = lambda value: "other"
    register_service("shout", shout)
    register_service("shout", other, replace=True)
    assert reset_registry.get("shout") is other

    reset_registry.set_duplicate_policy(DUPLICATE_REPLACE)
    register_service("shout", shout)
    assert reset_registry.get("shout") is shout


def test_unknown_policy_is_rejected(reset_registry):
    """Test that only reject and replace are accepted"""
    with pytest.raises(ConfigError):
        reset_registry.set_duplicate_policy("ignore")


def test_non_callable_service_is_rejected(reset_registry):
    """Test that only callables can be registered"""
    with pytest.raises(ConfigError):
        register_service("bad", "nope")


def test_unregister(reset_registry):
    """Test removing a service"""
    register_service("shout", shout)
    assert reset_registry.unregister("shout")
    assert not reset_registry.unregister("shout")
    assert reset_registry.get("shout") is None


def test_snapshot_is_not_affected_by_later_registration(reset_registry):
    """Test that published tables are never mutated"""
    before = reset_registry.snapshot()
    register_service("shout", shout)
    assert "shout" not in before
    assert "shout" in reset_registry.snapshot()


def test_builtins_do_not_override_host_services(reset_registry):
    """Test that loading built-ins keeps a host service of the same name"""
    reset_registry.clear()
    custom_upper = lambda value: "custom"
    register_service("upper", custom_upper)
    reset_registry.register_builtin_services()
    assert reset_registry.get("upper") is custom_upper
    assert reset_registry.get("lower") is BUILTIN_SERVICES["lower"]


def test_builtins_are_loaded_lazily_after_clear(reset_registry):
    """Test that pipeline lookup reloads built-ins after the registry is cleared"""
    reset_registry.clear()
    assert find_service("upper", ExecutionContext({})) is BUILTIN_SERVICES["upper"]


def test_concurrent_registration(reset_registry):
    """Test that concurrent registrations all land in the table"""
    def worker(index):
        register_service(f"svc{index}", lambda value, i=index: i)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(20)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert all(reset_registry.has(f"svc{i}") for i in range(20))


def test_load_services_from_config(reset_registry):
    """Test module references and aliases from configuration"""
    reset_registry.load_services_from_config({
        "services": {
            "duplicate_policy": "reject",
            "modules": {"slug": "tiny_templates.services.builtins:kebabcase"},
            "aliases": {"caps": "upper"},
        }
    })
    assert reset_registry.get("slug") is BUILTIN_SERVICES["kebabcase"]
    assert reset_registry.get("caps") is BUILTIN_SERVICES["upper"]


def test_apply_config_keeps_policy_when_unset(reset_registry):
    """Test that a configuration without a duplicate policy leaves the current policy"""
    reset_registry.set_duplicate_policy(DUPLICATE_REPLACE)
    reset_registry.apply_config(EngineConfig.from_dict({"services": {"aliases": {"caps": "upper"}}}))
    assert reset_registry.duplicate_policy == DUPLICATE_REPLACE
    assert reset_registry.get("caps") is BUILTIN_SERVICES["upper"]


def test_apply_config_sets_named_policy(reset_registry):
    """Test that a configured duplicate policy is applied to the registry"""
    reset_registry.apply_config(EngineConfig.from_dict({"services": {"duplicate_policy": "replace"}}))
    assert reset_registry.duplicate_policy == DUPLICATE_REPLACE
    register_service("upper", str.lower)
    assert reset_registry.get("upper") is str.lower


@pytest.mark.parametrize("services", [
    {"modules": {"x": "no_colon_here"}},
    {"modules": {"x": "tiny_templates_missing_module:fn"}},
    {"modules": {"x": "tiny_templates.services.builtins:not_there"}},
    {"aliases": {"x": "not_a_service"}},
])
def test_load_services_from_config_errors(reset_registry, services):
    """Test that bad service references raise ConfigError"""
    with pytest.raises(ConfigError):
        reset_registry.load_services_from_config({"services": services})


def test_context_service_shadows_registry():
    """Test that a context service wins over a registry service of the same name"""
    context = ExecutionContext({}, services={"upper": lambda value: "ctx"})
    segment = parse_interpolation("Name | upper")
    assert apply("x", segment.pipeline, context) == "ctx"


def test_split_unquoted():
    """Test splitting that respects quotes"""
    assert split_unquoted("a|'b|c'|d", "|") == ["a", "'b|c'", "d"]


def test_parse_pipeline_rejects_empty_step():
    """Test that '||' is a malformed pipeline"""
    with pytest.raises(TemplateSyntaxError) as info:
        parse_pipeline(["upper", " "])
    assert info.value.kind == "malformed_pipeline"
