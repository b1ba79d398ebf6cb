"""
Implementation of ExecutionContext for template rendering.

The ExecutionContext binds a root model and a table of named transform
services. Contexts are immutable: loop scoping creates a child context that
links back to its parent instead of mutating a shared dictionary, so one
context can be shared by concurrent renders.
"""

from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple

from tiny_templates.context.values import freeze_bindings, to_value
from tiny_templates.errors import DuplicateServiceError, ResolutionError

ServiceFunc = Callable[..., Any]

# Resolves to the root model itself when no binding or root key shadows it
MODEL_NAME = "Model"


class ExecutionContext:
    """Immutable execution context with linked scopes."""

    __slots__ = ("_root", "_bindings", "_services", "_parent", "_key")

    def __init__(self,
                 root: Any = None,
                 services: Optional[Mapping[str, ServiceFunc]] = None,
                 bindings: Optional[Mapping[str, Any]] = None,
                 parent: Optional["ExecutionContext"] = None,
                 key: Optional[str] = None,
                 _normalized: bool = False):
        """
        Initialize a context.

        Args:
            root: Model value; converted once into structural values
            services: Named transform functions visible from this context
            bindings: Local name -> value bindings checked before the root
            parent: Enclosing context, consulted when a name is not bound here
            key: Optional label for diagnostics
        """
        if parent is not None and root is None:
            self._root = parent.root
        else:
            self._root = root if _normalized else to_value(root)
        self._bindings = MappingProxyType(dict(bindings or {}) if _normalized else freeze_bindings(bindings))
        self._services = MappingProxyType(_normalize_services(services))
        self._parent = parent
        self._key = key

    @property
    def root(self) -> Any:
        return self._root

    @property
    def bindings(self) -> Mapping[str, Any]:
        return self._bindings

    @property
    def services(self) -> Mapping[str, ServiceFunc]:
        return self._services

    @property
    def parent(self) -> Optional["ExecutionContext"]:
        return self._parent

    @property
    def key(self) -> Optional[str]:
        return self._key

    @property
    def depth(self) -> int:
        """Number of ancestors above this context."""
        count = 0
        current = self._parent
        while current is not None:
            count += 1
            current = current._parent
        return count

    def child(self, bindings: Optional[Mapping[str, Any]] = None, key: Optional[str] = None,
              **named: Any) -> "ExecutionContext":
        """
        Create a child context with additional or overriding bindings.

        The parent is left untouched; the child shares its root and services.
        """
        local = dict(bindings or {})
        local.update(named)
        return ExecutionContext(bindings=local, parent=self, key=key)

    def scope(self, bindings: Mapping[str, Any]) -> "ExecutionContext":
        """Child context for values already taken from this context's model (no re-conversion)."""
        return ExecutionContext(bindings=bindings, parent=self, _normalized=True)

    def _scopes(self) -> Iterator["ExecutionContext"]:
        current: Optional[ExecutionContext] = self
        while current is not None:
            yield current
            current = current._parent

    def lookup(self, name: str) -> Tuple[bool, Any]:
        """
        Resolve a first path step.

        Order: bindings of this context, bindings of each parent, a key of the
        root model, then the reserved name ``Model`` for the root itself. Each
        mapping is tried with an exact match first, then case-insensitively.

        Returns:
            (found, value) pair; a bound None is found
        """
        for scope in self._scopes():
            found, value = _match(scope._bindings, name)
            if found:
                return True, value

        if isinstance(self._root, dict):
            found, value = _match(self._root, name)
            if found:
                return True, value

        if name == MODEL_NAME:
            return True, self._root
        return False, None

    def has(self, name: str) -> bool:
        return self.lookup(name)[0]

    def get(self, path: str, default: Any = None) -> Any:
        """Get a value using a dot-notation path, returning default if it cannot be resolved."""
        # Imported here: the path module depends on this one
        from tiny_templates.engine.paths import parse_path, resolve

        try:
            return resolve(parse_path(path), self)
        except ResolutionError:
            return default

    def get_service(self, name: str) -> Optional[ServiceFunc]:
        """Find a service in this context or its ancestors (case-insensitive)."""
        folded = name.casefold()
        for scope in self._scopes():
            service = scope._services.get(folded)
            if service is not None:
                return service
        return None

    def with_service(self, name: str, service: ServiceFunc, replace: bool = False) -> "ExecutionContext":
        """Return a new context at the same level with one more service."""
        return self.with_services({name: service}, replace=replace)

    def with_services(self, services: Mapping[str, ServiceFunc], replace: bool = False) -> "ExecutionContext":
        """
        Return a new context at the same level with extended services.

        Raises:
            DuplicateServiceError: If a name is already present at this level
                and replace is False
        """
        merged = dict(self._services)
        for name, service in _normalize_services(services).items():
            if name in merged and not replace:
                raise DuplicateServiceError(name)
            merged[name] = service
        return ExecutionContext(root=self._root, services=merged, bindings=self._bindings,
                                parent=self._parent, key=self._key, _normalized=True)

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot of the context: visible bindings flattened, nearest scope wins."""
        visible: Dict[str, Any] = {}
        for scope in reversed(list(self._scopes())):
            visible.update(scope._bindings)
        return {
            "key": self._key,
            "model": self._root,
            "bindings": visible,
        }

    def __repr__(self) -> str:
        return (f"ExecutionContext(key={self._key!r}, bindings={list(self._bindings)!r}, "
                f"services={list(self._services)!r}, depth={self.depth})")


def _normalize_services(services: Optional[Mapping[str, ServiceFunc]]) -> Dict[str, ServiceFunc]:
    if not services:
        return {}
    result = {}
    for name, service in services.items():
        if not callable(service):
            raise TypeError(f"Service '{name}' is not callable")
        result[name.casefold()] = service
    return result


def _match(mapping: Mapping[str, Any], name: str) -> Tuple[bool, Any]:
    if name in mapping:
        return True, mapping[name]
    folded = name.casefold()
    for candidate, value in mapping.items():
        if candidate.casefold() == folded:
            return True, value
    return False, None
