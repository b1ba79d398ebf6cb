"""
Service Registry for template transforms.

This module provides the process-wide table of named transform services that
pipelines fall back to when a context does not define a service itself.
Registration is serialized with a lock and publishes a fresh table, so
concurrent renders always read a consistent snapshot.
"""

from typing import Dict, Any, Optional, Callable, List, Mapping
import importlib
import threading
import structlog

from tiny_templates.config import EngineConfig
from tiny_templates.errors import ConfigError, DuplicateServiceError

# Get logger
logger = structlog.get_logger()

ServiceFunc = Callable[..., Any]

DUPLICATE_REJECT = "reject"
DUPLICATE_REPLACE = "replace"


class ServiceRegistry:
    """
    Registry of named transform services.
    This is a singleton to ensure a single registry across the application.
    """
    _instance = None
    _instance_lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    instance = super(ServiceRegistry, cls).__new__(cls)
                    instance._services = {}
                    instance._lock = threading.Lock()
                    instance._duplicate_policy = DUPLICATE_REJECT
                    instance._builtins_loaded = False
                    cls._instance = instance
        return cls._instance

    @property
    def duplicate_policy(self) -> str:
        return self._duplicate_policy

    def set_duplicate_policy(self, policy: str) -> None:
        """Choose whether re-registering a name is rejected or replaces the service."""
        if policy not in (DUPLICATE_REJECT, DUPLICATE_REPLACE):
            raise ConfigError(f"Unknown duplicate policy '{policy}'", policy=policy)
        self._duplicate_policy = policy

    def register(self, name: str, service: ServiceFunc, replace: bool = False) -> None:
        """
        Register a service with the registry.

        Args:
            name: Service name as written in templates; matched case-insensitively
            service: Callable taking the current value (and an optional argument string)
            replace: Allow overriding an existing service regardless of policy

        Raises:
            DuplicateServiceError: If the name exists and duplicates are rejected
        """
        if not callable(service):
            raise ConfigError(f"Service '{name}' is not callable", name=name)

        key = name.casefold()
        with self._lock:
            if key in self._services:
                if self._services[key] is service:
                    return
                if not replace and self._duplicate_policy == DUPLICATE_REJECT:
                    logger.error("services.registry.duplicate_rejected", name=name)
                    raise DuplicateServiceError(name)
                logger.warning("services.registry.overwriting_existing_service", name=name)
            table = dict(self._services)
            table[key] = service
            self._services = table

        logger.debug("services.registry.registered", name=name)

    def unregister(self, name: str) -> bool:
        """Remove a service; returns False if it was not registered."""
        key = name.casefold()
        with self._lock:
            if key not in self._services:
                return False
            table = dict(self._services)
            del table[key]
            self._services = table
        logger.debug("services.registry.unregistered", name=name)
        return True

    def get(self, name: str) -> Optional[ServiceFunc]:
        """
        Look up a service by name.

        Args:
            name: Name of the service to look up

        Returns:
            The service callable or None if not found
        """
        return self._services.get(name.casefold())

    def has(self, name: str) -> bool:
        return name.casefold() in self._services

    def list_services(self) -> List[str]:
        """Return a sorted list of all registered service names."""
        return sorted(self._services.keys())

    def snapshot(self) -> Mapping[str, ServiceFunc]:
        """Current table; never mutated after publication."""
        return self._services

    def clear(self) -> None:
        """Drop every registered service, including built-ins."""
        with self._lock:
            self._services = {}
            self._builtins_loaded = False
        logger.debug("services.registry.cleared")

    def register_builtin_services(self) -> None:
        """
        Register the built-in transforms (upper, lower, truncate, date, join...).

        Built-ins never override a service the host registered first.
        """
        from tiny_templates.services.builtins import BUILTIN_SERVICES

        with self._lock:
            table = dict(self._services)
            added = 0
            for name, service in BUILTIN_SERVICES.items():
                if name not in table:
                    table[name] = service
                    added += 1
            self._services = table
            self._builtins_loaded = True

        logger.debug("services.registry.registered_builtin_services", count=added)

    def ensure_builtins(self) -> None:
        if not self._builtins_loaded:
            self.register_builtin_services()

    def load_services_from_config(self, config: Dict[str, Any]) -> None:
        """
        Load service definitions from a configuration dictionary.

        Supports:
        - services.duplicate_policy: reject | replace
        - services.modules: {name: "package.module:function"}
        - services.aliases: {alias: existing_service_name}

        Args:
            config: Configuration dictionary
        """
        services_config = config.get("services") or {}
        if not services_config:
            return
        self._load_services(services_config.get("duplicate_policy"),
                            services_config.get("modules") or {},
                            services_config.get("aliases") or {})

    def apply_config(self, config: EngineConfig) -> None:
        """Apply the services section of an EngineConfig; an unset policy leaves the current one."""
        self._load_services(config.duplicate_policy, config.service_modules, config.service_aliases)

    def _load_services(self, policy: Optional[str], modules: Mapping[str, str],
                       aliases: Mapping[str, str]) -> None:
        if policy:
            self.set_duplicate_policy(policy)

        for name, target in modules.items():
            self.register(name, _import_service(name, target))

        for alias, target in aliases.items():
            service = self.get(target)
            if service is None:
                self.ensure_builtins()
                service = self.get(target)
            if service is None:
                logger.error("services.registry.alias_target_missing", alias=alias, target=target)
                raise ConfigError(f"Alias '{alias}' refers to unknown service '{target}'",
                                  alias=alias, target=target)
            self.register(alias, service)

        if modules or aliases:
            logger.info("services.registry.loaded_from_config",
                        modules_count=len(modules),
                        aliases_count=len(aliases))

    @classmethod
    def get_instance(cls) -> 'ServiceRegistry':
        """Get the singleton instance of the registry."""
        return cls()

    @classmethod
    def register_default_services(cls, config: Optional[EngineConfig] = None) -> 'ServiceRegistry':
        """
        Create and initialize the registry with built-ins and configured services.

        Args:
            config: Engine configuration whose services section is applied

        Returns:
            Initialized ServiceRegistry instance
        """
        registry = cls.get_instance()
        registry.ensure_builtins()
        if config is not None:
            registry.apply_config(config)
        return registry


def _import_service(name: str, target: str) -> ServiceFunc:
    """Resolve a "package.module:function" reference."""
    module_path, _, attr = target.partition(":")
    if not module_path or not attr:
        raise ConfigError(f"Service '{name}' must be given as 'package.module:function', got '{target}'",
                          name=name, target=target)
    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        logger.error("services.registry.import_error", name=name, module=module_path, error=str(e))
        raise ConfigError(f"Cannot import module '{module_path}' for service '{name}'",
                          name=name, target=target) from e

    service = getattr(module, attr, None)
    if service is None or not callable(service):
        logger.error("services.registry.service_not_found", name=name, module=module_path, attr=attr)
        raise ConfigError(f"'{attr}' not found or not callable in module '{module_path}'",
                          name=name, target=target)
    return service


def register_service(name: str, service: ServiceFunc, replace: bool = False) -> None:
    """Register a service in the process-wide registry."""
    ServiceRegistry.get_instance().register(name, service, replace=replace)
