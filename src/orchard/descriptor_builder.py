"""Turns marked classes into component descriptors.

A candidate type becomes a component when it carries ``Component``, directly
or through a marked marker such as ``Configuration``. Every ``Bean`` method
of a configuration class becomes one more component, constructed by calling
that method on the configuration instance.
"""

import inspect
import logging
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Union, get_origin, get_type_hints

from orchard.domain import DEFAULT_ORDER, Binding, ComponentDescriptor
from orchard.errors import DefinitionError
from orchard.markers import (
    Autowired,
    Bean,
    Component,
    Configuration,
    Marker,
    Order,
    PostConstruct,
    PreDestroy,
    Primary,
    Value,
    annotated_markers,
    find_nested_marker,
    get_marker,
    has_marker,
    own_markers,
)
from orchard.post_processor import PostProcessor
from orchard.properties import strip_optional
from orchard.scanner import load_type

__all__ = ["build_descriptors", "make_class_descriptor", "make_bean_descriptors", "inferred_name"]

logger = logging.getLogger(__name__)

PRIMITIVE_TYPES = (int, float, complex, bool)


def build_descriptors(candidates: Iterable[Union[str, type]]) -> list[ComponentDescriptor]:
    """Build descriptors for every component among ``candidates``.

    Args:
        candidates: Class names (as produced by the scanner) or classes. The
            same class may appear more than once.

    Returns:
        Descriptors in candidate order, each configuration class followed by
        the components its ``Bean`` methods produce.

    Raises:
        DefinitionError: If a component is declared incorrectly, or if two
            components share a name.
    """
    descriptors: dict[str, ComponentDescriptor] = {}
    seen: set[type] = set()

    for candidate in candidates:
        cls = load_type(candidate) if isinstance(candidate, str) else candidate
        if cls in seen or _is_skipped(cls):
            continue
        seen.add(cls)
        if find_nested_marker(cls, Component) is None:
            continue

        descriptor = make_class_descriptor(cls)
        _add(descriptors, descriptor)
        if descriptor.is_configuration:
            for bean_descriptor in make_bean_descriptors(descriptor.name, cls):
                _add(descriptors, bean_descriptor)

    return list(descriptors.values())


def _add(descriptors: dict[str, ComponentDescriptor], descriptor: ComponentDescriptor):
    if descriptor.name in descriptors:
        raise DefinitionError(
            f"Duplicate bean name '{descriptor.name}': {descriptors[descriptor.name]!r} "
            f"and {descriptor!r}"
        )
    logger.debug("Found bean definition: %r", descriptor)
    descriptors[descriptor.name] = descriptor


def _is_skipped(cls: Any) -> bool:
    return (
        not inspect.isclass(cls)
        or issubclass(cls, (Marker, Enum))
        or getattr(cls, "_is_protocol", False)
    )


def inferred_name(target: Any) -> str:
    """Default component name of a class or a ``Bean`` method.

    Classes are named after themselves with the first letter lower-cased;
    methods lose a leading ``make_``.
    """
    name = target.__name__
    if inspect.isclass(target):
        return name[0].lower() + name[1:]
    if name.startswith("make_"):
        return name[5:]
    return name


def component_name(cls: type) -> str:
    """Name from the component marker or a stereotype marker, else :func:`inferred_name`.

    Raises:
        DefinitionError: If two markers on ``cls`` name it differently.
    """
    name = find_nested_marker(cls, Component).name
    for marker in own_markers(cls):
        if type(marker) is Component or find_nested_marker(type(marker), Component) is None:
            continue
        stereotype_name = getattr(marker, "name", "")
        if stereotype_name:
            if name and name != stereotype_name:
                raise DefinitionError(
                    f"Conflicting bean names '{name}' and '{stereotype_name}' on {cls.__qualname__}"
                )
            name = stereotype_name
    return name or inferred_name(cls)


def make_class_descriptor(cls: type) -> ComponentDescriptor:
    """Describe a component class constructed by calling its constructor.

    Raises:
        DefinitionError: If the class is abstract or private, has more than
            one constructor marked ``Autowired``, or declares its bindings or
            lifecycle methods incorrectly.
    """
    if inspect.isabstract(cls):
        raise DefinitionError(f"Bean class cannot be abstract: {cls.__qualname__}")
    if cls.__name__.startswith("_"):
        raise DefinitionError(f"Bean class cannot be private: {cls.__qualname__}")
    if get_marker(cls, Configuration) and issubclass(cls, PostProcessor):
        raise DefinitionError(
            f"Configuration class cannot be a post processor: {cls.__qualname__}"
        )

    constructor, signature_source, default_autowired = _select_constructor(cls)
    return ComponentDescriptor(
        component_name(cls),
        cls,
        order=_order_of(cls),
        primary=has_marker(cls, Primary),
        constructor=constructor,
        parameters=_bindings(signature_source, default_autowired, cls.__qualname__),
        init_method=_lifecycle_method(cls, PostConstruct),
        destroy_method=_lifecycle_method(cls, PreDestroy),
    )


def _select_constructor(cls: type) -> tuple[Callable, Callable, Optional[Autowired]]:
    candidates = []
    init_marker = get_marker(cls.__init__, Autowired)
    if init_marker is not None:
        candidates.append((cls, cls.__init__, init_marker))
    for attr_name, attr in vars(cls).items():
        if isinstance(attr, classmethod):
            marker = get_marker(attr, Autowired)
            if marker is not None:
                candidates.append((getattr(cls, attr_name), attr.__func__, marker))

    if len(candidates) > 1:
        raise DefinitionError(
            f"Multiple constructors marked @Autowired found in class {cls.__qualname__}"
        )
    if not candidates:
        return cls, cls.__init__, None

    constructor, signature_source, marker = candidates[0]
    return constructor, signature_source, Autowired(required=marker.required)


def make_bean_descriptors(owner_name: str, cls: type) -> list[ComponentDescriptor]:
    """Describe the components produced by the ``Bean`` methods of a configuration class.

    Raises:
        DefinitionError: If a ``Bean`` method is static, a class method,
            abstract or private, or if its return type is missing, ``None``
            or a primitive.
    """
    descriptors = []
    for attr_name, attr in vars(cls).items():
        bean = get_marker(attr, Bean)
        if bean is None:
            continue
        where = f"{cls.__qualname__}.{attr_name}"
        if not inspect.isfunction(attr):
            raise DefinitionError(f"Bean method must be an instance method: {where}")
        if getattr(attr, "__isabstractmethod__", False):
            raise DefinitionError(f"Bean method cannot be abstract: {where}")
        if attr_name.startswith("_"):
            raise DefinitionError(f"Bean method cannot be private: {where}")

        descriptors.append(
            ComponentDescriptor(
                bean.name or inferred_name(attr),
                _produced_type(attr, where),
                order=_order_of(attr),
                primary=has_marker(attr, Primary),
                factory_name=owner_name,
                factory_method=attr_name,
                parameters=_bindings(attr, None, where),
                init_method_name=bean.init_method or None,
                destroy_method_name=bean.destroy_method or None,
            )
        )
    return descriptors


def _produced_type(method: Callable, where: str) -> type:
    hints = _type_hints(method, where)
    if "return" not in hints:
        raise DefinitionError(f"Bean method must declare its return type: {where}")
    return_type, _ = annotated_markers(hints["return"])
    if return_type is None or return_type is type(None):
        raise DefinitionError(f"Bean method cannot return None: {where}")

    produced_type = get_origin(return_type) or return_type
    if produced_type in PRIMITIVE_TYPES:
        raise DefinitionError(f"Bean method cannot return primitive type: {where}")
    # instances are checked against the produced type
    if produced_type is Any or (
        getattr(produced_type, "_is_protocol", False)
        and not getattr(produced_type, "_is_runtime_protocol", False)
    ):
        raise DefinitionError(
            f"Bean method must return a type usable with isinstance, not {return_type!r}: {where}"
        )
    if not inspect.isclass(produced_type):
        raise DefinitionError(f"Bean method must return a class, not {return_type!r}: {where}")
    return produced_type


def _type_hints(target: Callable, where: str) -> dict[str, Any]:
    try:
        return get_type_hints(target, include_extras=True)
    except NameError as e:
        raise DefinitionError(f"Cannot resolve type hints of {where}: {e}") from e


def _bindings(
    func: Callable, default_autowired: Optional[Autowired], where: str
) -> tuple[Binding, ...]:
    if func is object.__init__:
        return ()
    hints = _type_hints(func, where)
    parameters = list(inspect.signature(func).parameters.values())[1:]

    bindings = []
    for parameter in parameters:
        if parameter.kind in (parameter.VAR_POSITIONAL, parameter.VAR_KEYWORD):
            raise DefinitionError(
                f"Cannot bind variadic parameter '{parameter.name}' of {where}"
            )
        if parameter.kind is parameter.POSITIONAL_ONLY:
            raise DefinitionError(
                f"Cannot bind positional-only parameter '{parameter.name}' of {where}"
            )
        bindings.append(
            make_binding(parameter.name, hints.get(parameter.name), default_autowired, where)
        )
    return tuple(bindings)


def make_binding(
    name: str, annotation: Any, default_autowired: Optional[Autowired], where: str
) -> Binding:
    """Read the ``Autowired`` or ``Value`` marker of one parameter or member.

    Args:
        name: The parameter or member name.
        annotation: Its type hint, possibly ``Annotated``; ``None`` when absent.
        default_autowired: Marker to use when the hint carries none. When
            ``None``, a marker is mandatory.
        where: Description of the owner, for error messages.

    Raises:
        DefinitionError: If the markers are missing, duplicated or both present,
            or if a dependency has no declared type.
    """
    declared_type, markers = annotated_markers(annotation)
    values = [m for m in markers if isinstance(m, Value)]
    autowireds = [m for m in markers if isinstance(m, Autowired)]

    if values and autowireds:
        raise DefinitionError(
            f"Cannot specify both @Autowired and @Value on '{name}' of {where}"
        )
    if len(values) > 1 or len(autowireds) > 1:
        raise DefinitionError(f"Duplicate binding markers on '{name}' of {where}")
    if not values and not autowireds:
        if default_autowired is None:
            raise DefinitionError(f"Must specify @Autowired or @Value on '{name}' of {where}")
        autowireds = [default_autowired]
    if declared_type is None:
        raise DefinitionError(f"Dependency '{name}' of {where} is not annotated")

    if values:
        return Binding(name, declared_type, value=values[0])
    return Binding(name, strip_optional(declared_type), autowired=autowireds[0])


def _order_of(target: Any) -> int:
    order = get_marker(target, Order)
    return order.value if order is not None else DEFAULT_ORDER


def _lifecycle_method(cls: type, marker_type: type[Marker]) -> Optional[Callable]:
    methods = [attr for attr in vars(cls).values() if has_marker(attr, marker_type)]
    if not methods:
        return None
    if len(methods) > 1:
        raise DefinitionError(
            f"Multiple methods with @{marker_type.__name__} found in class {cls.__qualname__}"
        )

    method = methods[0]
    where = f"{cls.__qualname__}.{getattr(method, '__name__', method)}"
    if not inspect.isfunction(method):
        raise DefinitionError(
            f"@{marker_type.__name__} method must be an instance method: {where}"
        )
    if len(inspect.signature(method).parameters) != 1:
        raise DefinitionError(
            f"@{marker_type.__name__} method must not have arguments: {where}"
        )
    return method
