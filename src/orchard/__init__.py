"""Orchard dependency injection container.

Orchard builds an application out of marked classes. Components are declared
with markers, discovered by scanning modules, described once, and then
constructed in dependency order by an application context that serves
lookups until it is closed. Inspired by Spring's application context, it
keeps the container explicit: there is no global "current context", and
interception is done with plain wrapper objects rather than generated
subclasses.

Key Features:
    - Component and configuration markers, with factory methods on configurations
    - Dependency binding by type or name, with primary tie-breaking
    - Value binding from ``${key:default}`` property expressions
    - Field and setter injection after construction
    - Post-processors that may substitute instances
    - Ready and shutdown hooks
    - Named interceptors wrapped around components

Basic Usage:
    >>> from typing import Annotated
    >>> from orchard.builders import make_context
    >>> from orchard.markers import Autowired, Component, Configuration, Value
    >>>
    >>> @Component()
    ... class Database:
    ...     def __init__(self, url: Annotated[str, Value("${db.url:sqlite://}")]):
    ...         self.url = url
    >>>
    >>> @Configuration()
    ... class AppConfig:
    ...     pass
    >>>
    >>> context = make_context(AppConfig)
    >>> context.get_unique_bean(Database).url
    'sqlite://'

The package consists of several core modules:
    - markers: Declarative markers and the helpers that read them
    - scanner: Discovery of candidate types in modules and packages
    - descriptor_builder: Component descriptors built from marked types
    - registry: Name- and type-indexed descriptor store
    - engine: Recursive construction with cycle detection
    - injector: Field and setter injection
    - lifecycle: Ready and shutdown hooks
    - post_processor: Instance substitution hooks
    - interception, aop: Interceptor chains and around-proxy support
    - context, builders: The application context and how to make one
    - properties: Configuration properties and placeholder resolution
    - domain: Core domain models (ComponentDescriptor, Binding)
    - errors: Container-specific exceptions
"""
