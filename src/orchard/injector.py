"""Field and setter injection into constructed instances."""

import contextlib
import dataclasses
import inspect
import logging
from typing import Any, ClassVar, Final, get_origin, get_type_hints

from orchard.domain import Binding, ComponentDescriptor
from orchard.engine import resolve_value
from orchard.errors import BeanCreationError, ContainerError, DefinitionError, DependencyError
from orchard.markers import Autowired, Value, annotated_markers, get_marker
from orchard.properties import ConfigProperties, strip_optional
from orchard.registry import Registry

__all__ = ["PropertyInjector"]

logger = logging.getLogger(__name__)


class PropertyInjector:
    """Injects marked fields and setters of an instance and its base classes.

    A field is injectable when its class annotation is ``Annotated`` with
    ``Autowired()`` or ``Value(...)``::

        @Component()
        class Mailer:
            sender: Annotated[str, Value("${mail.sender}")]
            templates: Annotated[TemplateStore, Autowired()]

    A setter is an instance method taking one argument, marked the same way.
    Dependencies are looked up among constructed instances only.
    """

    def __init__(self, registry: Registry, properties: ConfigProperties):
        self._registry = registry
        self._properties = properties

    def inject(self, descriptor: ComponentDescriptor, instance: Any) -> None:
        """Inject into ``instance``, the unwrapped instance of ``descriptor``.

        Raises:
            DefinitionError: If a marked member is a class variable, ``Final``,
                on a frozen dataclass, a static or class method, or carries
                both markers.
            DependencyError: If a required dependency is not available.
        """
        for klass in descriptor.produced_type.__mro__:
            if klass is object:
                continue
            for binding in self._field_bindings(klass):
                self._inject_field(descriptor, instance, binding)
            for method_name, binding in self._setter_bindings(klass):
                self._inject_setter(descriptor, instance, method_name, binding)

    def _field_bindings(self, klass: type) -> list[Binding]:
        annotations = inspect.get_annotations(klass)
        if not annotations:
            return []
        try:
            hints = get_type_hints(klass, include_extras=True)
        except NameError as e:
            raise DefinitionError(
                f"Cannot resolve field annotations of {klass.__qualname__}: {e}"
            ) from e
        constructor_fields = {
            f.name for f in dataclasses.fields(klass) if f.init
        } if dataclasses.is_dataclass(klass) else set()

        bindings = []
        for name in annotations:
            if name in constructor_fields:
                continue
            hint = hints.get(name)
            outer = get_origin(hint)
            wrapped_hint = hint
            if outer is ClassVar or outer is Final or hint is Final:
                wrapped_hint = hint.__args__[0] if getattr(hint, "__args__", None) else None
            base_type, markers = annotated_markers(wrapped_hint)
            if not any(isinstance(m, (Autowired, Value)) for m in markers):
                continue

            where = f"{klass.__qualname__}.{name}"
            if wrapped_hint is not hint:
                raise DefinitionError(f"Cannot inject static or final field: {where}")
            if dataclasses.is_dataclass(klass) and klass.__dataclass_params__.frozen:
                raise DefinitionError(f"Cannot inject field of frozen dataclass: {where}")
            bindings.append(_binding(name, base_type, markers, where))
        return bindings

    def _setter_bindings(self, klass: type) -> list[tuple[str, Binding]]:
        bindings = []
        for attr_name, attr in vars(klass).items():
            markers = [
                m
                for m in (get_marker(attr, Autowired), get_marker(attr, Value))
                if m is not None
            ]
            if not markers:
                continue

            # constructors
            if attr_name == "__init__" or (
                isinstance(attr, classmethod) and get_marker(attr, Value) is None
            ):
                continue

            where = f"{klass.__qualname__}.{attr_name}"
            if isinstance(attr, (staticmethod, classmethod)):
                raise DefinitionError(f"Cannot inject static or class method: {where}")
            if not inspect.isfunction(attr):
                continue
            parameters = list(inspect.signature(attr).parameters.values())[1:]
            if len(parameters) != 1:
                raise DefinitionError(f"Setter method must have exactly one argument: {where}")

            parameter = parameters[0]
            hint = get_type_hints(attr, include_extras=True).get(parameter.name)
            base_type, _ = annotated_markers(hint)
            bindings.append((attr_name, _binding(parameter.name, base_type, markers, where)))
        return bindings

    def _inject_field(self, descriptor, instance, binding: Binding) -> None:
        resolved, value = self._resolve(descriptor, binding)
        if resolved:
            logger.debug("Field injection: %s.%s = %r", descriptor.name, binding.name, value)
            with _injecting(descriptor, binding.name):
                setattr(instance, binding.name, value)

    def _inject_setter(self, descriptor, instance, method_name: str, binding: Binding) -> None:
        resolved, value = self._resolve(descriptor, binding)
        if resolved:
            logger.debug("Setter injection: %s.%s(%r)", descriptor.name, method_name, value)
            with _injecting(descriptor, method_name):
                getattr(instance, method_name)(value)

    def _resolve(self, descriptor: ComponentDescriptor, binding: Binding) -> tuple[bool, Any]:
        if binding.is_value:
            return True, resolve_value(self._properties, binding)

        autowired = binding.autowired
        if autowired.name:
            target = self._registry.find(autowired.name, binding.declared_type)
        else:
            target = self._registry.find_unique(binding.declared_type)
        if target is not None and target.instance is not None:
            return True, target.instance
        if autowired.required:
            raise DependencyError(
                f"Dependency bean not found when inject "
                f"{descriptor.produced_type.__qualname__}.{binding.name} for bean "
                f"'{descriptor.name}': {autowired.name or binding.declared_type}"
            )
        return False, None


@contextlib.contextmanager
def _injecting(descriptor: ComponentDescriptor, member: str):
    try:
        yield
    except ContainerError:
        raise
    except Exception as e:
        raise BeanCreationError(
            f"Error while injecting {member} of bean '{descriptor.name}': {e}"
        ) from e


def _binding(name: str, declared_type: Any, markers: list, where: str) -> Binding:
    values = [m for m in markers if isinstance(m, Value)]
    autowireds = [m for m in markers if isinstance(m, Autowired)]
    if values and autowireds:
        raise DefinitionError(f"Cannot specify both @Autowired and @Value: {where}")
    if len(values) > 1 or len(autowireds) > 1:
        raise DefinitionError(f"Duplicate binding markers: {where}")
    if declared_type is None:
        raise DefinitionError(f"Injected member is not annotated: {where}")
    if values:
        return Binding(name, declared_type, value=values[0])
    return Binding(name, strip_optional(declared_type), autowired=autowireds[0])
