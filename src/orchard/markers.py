"""Declarative markers and the helpers that read them back.

Markers are small frozen dataclasses. An instance is applied either as a
decorator, which records it on the decorated class or function::

    @Component()
    class UserService:
        ...

or as ``typing.Annotated`` metadata on a constructor parameter or a class
field::

    def __init__(self, repo: Annotated[UserRepo, Autowired()],
                 page_size: Annotated[int, Value("${page.size:20}")]):
        ...

A marker class may itself be marked. ``Configuration`` is marked with
``Component``, so a configuration class is a component without saying so
twice. :func:`find_nested_marker` follows these chains.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Annotated, Optional, TypeVar, get_args, get_origin

from orchard.errors import DefinitionError

__all__ = [
    "Marker",
    "Component",
    "Configuration",
    "Bean",
    "Autowired",
    "Value",
    "Order",
    "Primary",
    "PostConstruct",
    "PreDestroy",
    "ComponentScan",
    "Import",
    "ImportDefaults",
    "Around",
    "attach_marker",
    "own_markers",
    "get_marker",
    "has_marker",
    "find_nested_marker",
    "find_inherited_marker",
    "annotated_markers",
]

MARKERS_ATTRIBUTE = "__orchard_markers__"

M = TypeVar("M", bound="Marker")


class Marker:
    """Base class for markers. Calling a marker instance applies it to its argument."""

    def __call__(self, target):
        attach_marker(target, self)
        return target


@dataclass(frozen=True)
class Component(Marker):
    name: str = ""


@dataclass(frozen=True)
class Configuration(Marker):
    """Marks a class whose ``Bean`` methods produce further components."""

    name: str = ""


@dataclass(frozen=True)
class Bean(Marker):
    """Marks a factory method on a configuration class.

    Attributes:
        name: Component name; defaults to the method name without a ``make_`` prefix.
        init_method: Name of a no-argument method to call once the product is ready.
        destroy_method: Name of a no-argument method to call on shutdown.
    """

    name: str = ""
    init_method: str = ""
    destroy_method: str = ""


@dataclass(frozen=True)
class Autowired(Marker):
    """Dependency binding.

    Resolves by ``name`` when given, otherwise by the declared type. When
    applied to a constructor, every parameter without a marker of its own is
    treated as ``Autowired()``.
    """

    name: str = ""
    required: bool = True


@dataclass(frozen=True)
class Value(Marker):
    """Value binding from configuration: ``"key"``, ``"${key}"`` or ``"${key:default}"``."""

    expression: str


@dataclass(frozen=True)
class Order(Marker):
    value: int


@dataclass(frozen=True)
class Primary(Marker):
    pass


@dataclass(frozen=True)
class PostConstruct(Marker):
    pass


@dataclass(frozen=True)
class PreDestroy(Marker):
    pass


class ComponentScan(Marker):
    """Module or package names to scan, relative to nothing (fully qualified)."""

    def __init__(self, *roots: str):
        self.roots = tuple(roots)

    def __repr__(self):
        return f"ComponentScan{self.roots!r}"


class Import(Marker):
    def __init__(self, *types: type):
        self.types = tuple(types)

    def __repr__(self):
        return f"Import{self.types!r}"


@dataclass(frozen=True)
class ImportDefaults(Marker):
    pass


class Around(Marker):
    """Names of interceptor components to wrap around instances of the marked class.

    Unlike other markers it is inherited by subclasses.
    """

    def __init__(self, *handlers: str):
        self.handlers = tuple(handlers)

    def __repr__(self):
        return f"Around{self.handlers!r}"


def _unwrap(target: Any) -> Any:
    if isinstance(target, (classmethod, staticmethod)):
        return target.__func__
    return target


def attach_marker(target: Any, marker: Marker) -> None:
    """Record ``marker`` on ``target``.

    Markers on ``classmethod``/``staticmethod`` objects are stored on the
    underlying function, so decorator order does not matter.
    """
    target = _unwrap(target)
    markers = target.__dict__.get(MARKERS_ATTRIBUTE)
    if markers is None:
        markers = []
        setattr(target, MARKERS_ATTRIBUTE, markers)
    markers.append(marker)


attach_marker(Configuration, Component())


def own_markers(target: Any) -> list[Marker]:
    """Markers declared directly on ``target``, not inherited ones."""
    target = _unwrap(target)
    try:
        return list(vars(target).get(MARKERS_ATTRIBUTE, ()))
    except TypeError:
        return []


def get_marker(target: Any, marker_type: type[M]) -> Optional[M]:
    """Return the single marker of ``marker_type`` declared directly on ``target``.

    Raises:
        DefinitionError: If the marker is declared more than once.
    """
    found = [m for m in own_markers(target) if type(m) is marker_type]
    if len(found) > 1:
        raise DefinitionError(
            f"Duplicate @{marker_type.__name__} found on {_describe(target)}"
        )
    return found[0] if found else None


def has_marker(target: Any, marker_type: type[Marker]) -> bool:
    return get_marker(target, marker_type) is not None


def find_nested_marker(target: Any, marker_type: type[M]) -> Optional[M]:
    """Find ``marker_type`` on ``target`` directly or through marked marker classes.

    Example:
        >>> @Configuration()
        ... class AppConfig: ...
        >>> find_nested_marker(AppConfig, Component)
        Component(name='')

    Raises:
        DefinitionError: If the marker is reachable by more than one route, or if
            marker classes mark each other in a cycle.
    """
    return _find_nested(target, marker_type, ())


def _find_nested(target, marker_type, path):
    if target in path:
        chain = " -> ".join(_describe(t) for t in path + (target,))
        raise DefinitionError(f"Cyclic marker declaration: {chain}")

    found = get_marker(target, marker_type)
    for marker in own_markers(target):
        if type(marker) is marker_type:
            continue
        nested = _find_nested(type(marker), marker_type, path + (target,))
        if nested is not None:
            if found is not None:
                raise DefinitionError(
                    f"Duplicate @{marker_type.__name__} found on {_describe(target)}"
                )
            found = nested
    return found


def find_inherited_marker(cls: type, marker_type: type[M]) -> Optional[M]:
    """Find ``marker_type`` on ``cls`` or the nearest ancestor that declares it."""
    for klass in inspect.getmro(cls):
        marker = get_marker(klass, marker_type)
        if marker is not None:
            return marker
    return None


def annotated_markers(annotation: Any) -> tuple[Any, list[Marker]]:
    """Split an ``Annotated[T, ...]`` hint into ``T`` and the markers in its metadata.

    Plain hints come back unchanged with no markers.
    """
    if get_origin(annotation) is Annotated:
        base_type, *metadata = get_args(annotation)
        return base_type, [m for m in metadata if isinstance(m, Marker)]
    return annotation, []


def _describe(target: Any) -> str:
    return getattr(target, "__qualname__", None) or repr(target)
