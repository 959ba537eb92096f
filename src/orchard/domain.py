"""Domain models used throughout the container."""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from orchard.errors import BeanCreationError, BeanTypeError, DefinitionError
from orchard.markers import Autowired, Configuration, Value, get_marker
from orchard.post_processor import PostProcessor

__all__ = [
    "LOWEST_PRECEDENCE",
    "DEFAULT_ORDER",
    "Binding",
    "ComponentDescriptor",
]

LOWEST_PRECEDENCE = 2**31 - 1

DEFAULT_ORDER = LOWEST_PRECEDENCE - 10000
"""Weight of components without an ``Order`` marker."""


@dataclass(frozen=True)
class Binding:
    """How one constructor parameter, factory parameter or member gets its value.

    Attributes:
        name: The parameter or member name.
        declared_type: The type the value must satisfy.
        value: Set for value bindings.
        autowired: Set for dependency bindings.
    """

    name: str
    declared_type: Any
    value: Optional[Value] = None
    autowired: Optional[Autowired] = None

    def __post_init__(self):
        if (self.value is None) == (self.autowired is None):
            raise DefinitionError(
                f"Binding '{self.name}' must have exactly one of @Value or @Autowired"
            )

    @property
    def is_value(self) -> bool:
        return self.value is not None


class ComponentDescriptor:
    """Metadata for one constructible component, plus its instance cell.

    A descriptor is created with exactly one construction strategy: either a
    ``constructor`` callable, or a ``factory_name``/``factory_method`` pair
    naming a method on another component. The strategy cannot change after
    creation. The ``instance`` cell is written during startup only, and every
    value written to it must be an instance of ``produced_type``.
    """

    def __init__(
        self,
        name: str,
        produced_type: type,
        *,
        order: int = DEFAULT_ORDER,
        primary: bool = False,
        constructor: Optional[Callable] = None,
        factory_name: Optional[str] = None,
        factory_method: Optional[str] = None,
        parameters: tuple[Binding, ...] = (),
        init_method: Optional[Callable] = None,
        init_method_name: Optional[str] = None,
        destroy_method: Optional[Callable] = None,
        destroy_method_name: Optional[str] = None,
    ):
        has_constructor = constructor is not None
        has_factory = factory_name is not None and factory_method is not None
        if has_constructor == has_factory:
            raise DefinitionError(
                f"Bean '{name}' must have exactly one of a constructor or a factory method"
            )
        if init_method is not None and init_method_name is not None:
            raise DefinitionError(f"Bean '{name}' declares two init methods")
        if destroy_method is not None and destroy_method_name is not None:
            raise DefinitionError(f"Bean '{name}' declares two destroy methods")

        self._name = name
        self._produced_type = produced_type
        self._order = order
        self._primary = primary
        self._constructor = constructor
        self._factory_name = factory_name
        self._factory_method = factory_method
        self._parameters = tuple(parameters)
        self.init_method = init_method
        self.init_method_name = init_method_name
        self.destroy_method = destroy_method
        self.destroy_method_name = destroy_method_name
        self._instance: Any = None
        self._proxy_descriptors: list["ComponentDescriptor"] = []
        self._is_configuration = get_marker(produced_type, Configuration) is not None
        self._is_post_processor = _is_post_processor_type(produced_type)

    @property
    def name(self) -> str:
        return self._name

    @property
    def produced_type(self) -> type:
        return self._produced_type

    @property
    def order(self) -> int:
        return self._order

    @property
    def primary(self) -> bool:
        return self._primary

    @property
    def constructor(self) -> Optional[Callable]:
        return self._constructor

    @property
    def factory_name(self) -> Optional[str]:
        return self._factory_name

    @property
    def factory_method(self) -> Optional[str]:
        return self._factory_method

    @property
    def parameters(self) -> tuple[Binding, ...]:
        return self._parameters

    @property
    def is_configuration(self) -> bool:
        return self._is_configuration

    @property
    def is_post_processor(self) -> bool:
        return self._is_post_processor

    @property
    def sort_key(self) -> tuple[int, str]:
        return self._order, self._name

    @property
    def bootstraps_early(self) -> bool:
        """Configuration and post-processor components are built before all others."""
        return self._is_configuration or self._is_post_processor

    @property
    def instance(self) -> Any:
        return self._instance

    @instance.setter
    def instance(self, value: Any) -> None:
        if value is None:
            raise BeanCreationError(f"Bean '{self._name}' instance must not be None")
        try:
            matches = isinstance(value, self._produced_type)
        except TypeError as e:
            raise BeanTypeError(
                f"Bean '{self._name}' has a type that cannot check instances: "
                f"{self._produced_type!r}"
            ) from e
        if not matches:
            raise BeanTypeError(
                f"Instance {value!r} of bean '{self._name}' is not the expected type: "
                f"{self._produced_type.__qualname__}"
            )
        self._instance = value

    @property
    def required_instance(self) -> Any:
        if self._instance is None:
            raise BeanCreationError(
                f"Instance of bean '{self._name}' with type {self._produced_type.__qualname__} "
                "is not instantiated during current stage"
            )
        return self._instance

    @property
    def proxy_descriptors(self) -> list["ComponentDescriptor"]:
        """Attached interceptor descriptors, in ascending weight order."""
        return sorted(self._proxy_descriptors, key=lambda d: d.sort_key)

    def attach_proxy(self, descriptor: "ComponentDescriptor") -> None:
        if descriptor not in self._proxy_descriptors:
            self._proxy_descriptors.append(descriptor)

    def __repr__(self):
        strategy = (
            f"constructor={getattr(self._constructor, '__qualname__', self._constructor)}"
            if self._constructor is not None
            else f"factory={self._factory_name}.{self._factory_method}"
        )
        return (
            f"ComponentDescriptor(name={self._name!r}, type={self._produced_type.__qualname__}, "
            f"order={self._order}, primary={self._primary}, {strategy}, "
            f"instance={type(self._instance).__name__ if self._instance is not None else None})"
        )


def _is_post_processor_type(produced_type: type) -> bool:
    return isinstance(produced_type, type) and issubclass(produced_type, PostProcessor)
