"""Exceptions raised by the container.

Definition errors are detected while descriptors are built or members are
inspected, before any instance exists. Resolution errors come from dependency
and configuration lookups, both during startup and from post-startup lookups,
so callers can tell "not found" from "ambiguous" from "wrong type".
"""

__all__ = [
    "ContainerError",
    "DefinitionError",
    "ResolutionError",
    "NoSuchBeanError",
    "NoUniqueBeanError",
    "BeanTypeError",
    "MissingPropertyError",
    "DependencyError",
    "CircularDependencyError",
    "BeanCreationError",
    "AopConfigError",
    "ContextClosedError",
]


class ContainerError(Exception):
    """Base class for every error raised by the container."""

    pass


class DefinitionError(ContainerError):
    """Raised when a component, member or marker is declared incorrectly."""

    pass


class ResolutionError(ContainerError):
    """Raised when a component or configuration value cannot be resolved."""

    pass


class NoSuchBeanError(ResolutionError):
    pass


class NoUniqueBeanError(ResolutionError):
    """Raised when several components match a type and no single one is primary."""

    pass


class BeanTypeError(ResolutionError):
    pass


class MissingPropertyError(ResolutionError):
    pass


class DependencyError(ResolutionError):
    """Raised when a required dependency of a component cannot be satisfied."""

    pass


class CircularDependencyError(DependencyError):
    """Raised when a component is requested again while it is being constructed.

    Attributes:
        name: The component whose second request closed the cycle.
        path: The in-flight component names, in the order they were entered,
            ending with ``name``.
    """

    def __init__(self, name: str, path: list[str]):
        self.name = name
        self.path = path
        super().__init__(
            f"Circular dependency detected when creating bean '{name}': {' -> '.join(path)}"
        )


class BeanCreationError(ContainerError):
    """Raised when a constructor, factory or lifecycle hook fails."""

    pass


class AopConfigError(ContainerError):
    pass


class ContextClosedError(ContainerError):
    pass
