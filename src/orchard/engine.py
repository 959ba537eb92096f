"""Recursive construction of component instances."""

import logging
from typing import Any

from orchard.domain import Binding, ComponentDescriptor
from orchard.errors import (
    AopConfigError,
    BeanCreationError,
    CircularDependencyError,
    ContainerError,
    DependencyError,
)
from orchard.interception import InterceptingProxy, Interceptor
from orchard.post_processor import PostProcessorPipeline
from orchard.properties import ConfigProperties, parse_property_expr, strip_optional
from orchard.registry import Registry

__all__ = ["ConstructionEngine", "resolve_value"]

logger = logging.getLogger(__name__)


class ConstructionEngine:
    """Builds each descriptor's instance once, constructing dependencies first.

    The names of descriptors under construction are kept in insertion order;
    requesting one of them again is a circular dependency, reported with the
    full path that led back to it.
    """

    def __init__(
        self,
        registry: Registry,
        properties: ConfigProperties,
        pipeline: PostProcessorPipeline,
    ):
        self._registry = registry
        self._properties = properties
        self._pipeline = pipeline
        self._creating: dict[str, None] = {}

    def construct(self, descriptor: ComponentDescriptor) -> Any:
        """Return the instance of ``descriptor``, constructing it on first use.

        Raises:
            CircularDependencyError: If ``descriptor`` is already under construction.
            DependencyError: If a required dependency cannot be resolved.
            BeanCreationError: If the constructor or factory method raises.
        """
        name = descriptor.name
        if name in self._creating:
            raise CircularDependencyError(name, [*self._creating, name])
        if descriptor.instance is not None:
            return descriptor.instance

        self._creating[name] = None
        try:
            kwargs = {
                binding.name: self._resolve(descriptor, binding)
                for binding in descriptor.parameters
            }
            descriptor.instance = self._invoke(descriptor, kwargs)
            descriptor.instance = self._pipeline.after_construction(descriptor.instance, name)
            if descriptor.proxy_descriptors:
                descriptor.instance = self._wrap(descriptor)
            logger.debug("Bean %s created: %r", name, descriptor.instance)
            return descriptor.instance
        finally:
            del self._creating[name]

    def _resolve(self, descriptor: ComponentDescriptor, binding: Binding) -> Any:
        if binding.is_value:
            return resolve_value(self._properties, binding)

        autowired = binding.autowired
        if autowired.name:
            target = self._registry.find(autowired.name, binding.declared_type)
        else:
            target = self._registry.find_unique(binding.declared_type)

        if target is None:
            if autowired.required:
                raise DependencyError(
                    f"Missing autowired bean for parameter '{binding.name}' of bean "
                    f"'{descriptor.name}': {autowired.name or _type_name(binding.declared_type)}"
                )
            return None

        if target.instance is not None:
            return target.instance
        if descriptor.bootstraps_early:
            if autowired.required:
                raise DependencyError(
                    f"Cannot autowire bean '{target.name}' into '{descriptor.name}': "
                    "configuration and post processor beans may only depend on beans "
                    "that already exist"
                )
            return None
        return self.construct(target)

    def _invoke(self, descriptor: ComponentDescriptor, kwargs: dict[str, Any]) -> Any:
        if descriptor.constructor is not None:
            function = descriptor.constructor
        else:
            owner = self._registry.get(descriptor.factory_name)
            if owner is None:
                raise DependencyError(
                    f"Factory bean '{descriptor.factory_name}' of bean '{descriptor.name}' "
                    "is not registered"
                )
            function = getattr(self.construct(owner), descriptor.factory_method)

        try:
            return function(**kwargs)
        except ContainerError:
            raise
        except Exception as e:
            raise BeanCreationError(
                f"Exception when creating bean '{descriptor.name}': {e}"
            ) from e

    def _wrap(self, descriptor: ComponentDescriptor) -> Any:
        interceptors = []
        for proxy_descriptor in descriptor.proxy_descriptors:
            interceptor = self.construct(proxy_descriptor)
            if not isinstance(interceptor, Interceptor):
                raise AopConfigError(
                    f"Bean '{proxy_descriptor.name}' used around '{descriptor.name}' "
                    "is not an Interceptor"
                )
            interceptors.append(interceptor)

        logger.debug(
            "Wrapping bean %s in proxy with interceptors: %s",
            descriptor.name,
            ", ".join(d.name for d in descriptor.proxy_descriptors),
        )
        return InterceptingProxy(descriptor.instance, interceptors)


def resolve_value(properties: ConfigProperties, binding: Binding) -> Any:
    """Resolve a value binding; ``Optional`` types allow a missing key."""
    expression = binding.value.expression
    if strip_optional(binding.declared_type) is binding.declared_type:
        return properties.get_required(expression, binding.declared_type)
    expr = parse_property_expr(expression)
    if expr is not None and expr.default_value is None:
        expression = expr.key
    return properties.get(expression, binding.declared_type)


def _type_name(required_type: Any) -> str:
    return getattr(required_type, "__qualname__", repr(required_type))
