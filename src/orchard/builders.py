from typing import Optional

from orchard.context import ApplicationContext
from orchard.descriptor_builder import build_descriptors
from orchard.properties import ConfigProperties
from orchard.registry import Registry
from orchard.scanner import candidate_types


def make_registry(config_class: type) -> Registry:
    """
    Scan for the components of an application and describe them.

    Args:
        config_class: The configuration class at the root of the application. Its
            ``ComponentScan``, ``Import`` and ``ImportDefaults`` markers select the
            candidate types.

    Returns:
        A registry holding one descriptor per component, none of them constructed yet.

    Raises:
        DefinitionError: If a module cannot be scanned, a component is declared
            incorrectly, or two components share a name.
    """
    return Registry(build_descriptors(candidate_types(config_class)))


def make_context(
    config_class: type,
    properties: Optional[ConfigProperties] = None,
) -> ApplicationContext:
    """
    Construct and return a fully started application context.

    Args:
        config_class: The configuration class at the root of the application.
        properties: Configuration values for value bindings. Defaults to an empty set.

    Returns:
        The started context. Close it to run shutdown hooks.

    Raises:
        DefinitionError: If the components are declared incorrectly.
        ResolutionError: If a dependency or configuration value cannot be resolved.
        BeanCreationError: If a constructor, factory method or ready hook raises.
    """
    return ApplicationContext(make_registry(config_class), properties)
