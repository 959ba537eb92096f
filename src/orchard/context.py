"""The application context: bootstrap, lookups and shutdown."""

import contextlib
import logging
import threading
from typing import Any, Optional, TypeVar, Union

from orchard.domain import ComponentDescriptor
from orchard.engine import ConstructionEngine
from orchard.errors import ContextClosedError, NoSuchBeanError
from orchard.injector import PropertyInjector
from orchard.lifecycle import LifecycleDriver
from orchard.post_processor import PostProcessorPipeline
from orchard.properties import ConfigProperties
from orchard.registry import Registry

__all__ = ["ApplicationContext", "CONTEXT_BEAN_NAME", "ReadWriteLock"]

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONTEXT_BEAN_NAME = "applicationContext"


class ReadWriteLock:
    """Any number of concurrent readers, or one writer.

    Waiting writers hold off new readers. The writing thread may read and
    write again while it holds the lock.
    """

    def __init__(self):
        self._condition = threading.Condition()
        self._readers = 0
        self._writer: Optional[int] = None
        self._writers_waiting = 0

    @contextlib.contextmanager
    def reading(self):
        if self._writer == threading.get_ident():
            yield
            return
        with self._condition:
            while self._writer is not None or self._writers_waiting:
                self._condition.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if not self._readers:
                    self._condition.notify_all()

    @contextlib.contextmanager
    def writing(self):
        me = threading.get_ident()
        if self._writer == me:
            yield
            return
        with self._condition:
            self._writers_waiting += 1
            try:
                while self._writer is not None or self._readers:
                    self._condition.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = me
        try:
            yield
        finally:
            with self._condition:
                self._writer = None
                self._condition.notify_all()


class ApplicationContext:
    """Builds every component of a registry and serves lookups afterwards.

    Startup happens in the constructor, in this order:

    1. configuration components, in registry order;
    2. post-processor components, each joining the pipeline once built;
    3. all remaining components, in registry order;
    4. field and setter injection into the unwrapped instances;
    5. ready hooks, in registry order.

    The context registers itself as the component ``applicationContext``, so
    components that need lookups declare it as a dependency. Lookups may run
    from any thread and run concurrently; :meth:`close` waits for
    lookups in flight and blocks new ones until it is done.

    Example:
        >>> with ApplicationContext(registry, ConfigProperties({"port": "8080"})) as context:
        ...     server = context.get_unique_bean(Server)
    """

    def __init__(self, registry: Registry, properties: Optional[ConfigProperties] = None):
        self._registry = registry
        self._properties = properties if properties is not None else ConfigProperties()
        self._pipeline = PostProcessorPipeline()
        self._lock = ReadWriteLock()
        self._closed = False

        descriptor = ComponentDescriptor(
            CONTEXT_BEAN_NAME, ApplicationContext, constructor=lambda: self
        )
        descriptor.instance = self
        registry.register(descriptor)

        self._engine = ConstructionEngine(registry, self._properties, self._pipeline)
        self._injector = PropertyInjector(registry, self._properties)
        self._lifecycle = LifecycleDriver(self._pipeline)
        self._bootstrap()

    def _bootstrap(self) -> None:
        ordered = self._registry.ordered()
        for descriptor in ordered:
            if descriptor.is_configuration:
                self._engine.construct(descriptor)
        for descriptor in ordered:
            if descriptor.is_post_processor:
                self._pipeline.add(descriptor.name, self._engine.construct(descriptor))
        for descriptor in ordered:
            self._engine.construct(descriptor)

        for descriptor in ordered:
            original = self._pipeline.unwrap(descriptor.required_instance, descriptor.name)
            self._injector.inject(descriptor, original)
        self._lifecycle.start(ordered)
        logger.info("Application context started with %d beans", len(ordered))

    @property
    def properties(self) -> ConfigProperties:
        return self._properties

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise ContextClosedError("Application context is closed")

    def try_get_bean(self, name: str, required_type: Any = None) -> Any:
        """Return the component named ``name``, or ``None`` when there is none.

        Raises:
            BeanTypeError: If the component is not an instance of ``required_type``.
            ContextClosedError: If the context has been closed.
        """
        with self._lock.reading():
            self._check_open()
            descriptor = self._registry.find(name, required_type)
            return descriptor.required_instance if descriptor is not None else None

    def get_bean(self, name: str, required_type: Any = None) -> Any:
        """Like :meth:`try_get_bean`, but a missing component is a ``NoSuchBeanError``."""
        bean = self.try_get_bean(name, required_type)
        if bean is None:
            raise NoSuchBeanError(f"No bean defined with name '{name}'")
        return bean

    def try_get_unique_bean(self, required_type: type[T]) -> Optional[T]:
        """Return the single component of ``required_type``, or ``None`` when there is none.

        Raises:
            NoUniqueBeanError: If several match and not exactly one is primary.
            ContextClosedError: If the context has been closed.
        """
        with self._lock.reading():
            self._check_open()
            descriptor = self._registry.find_unique(required_type)
            return descriptor.required_instance if descriptor is not None else None

    def get_unique_bean(self, required_type: type[T]) -> T:
        bean = self.try_get_unique_bean(required_type)
        if bean is None:
            raise NoSuchBeanError(
                f"No bean defined with type {getattr(required_type, '__qualname__', required_type)}"
            )
        return bean

    def get_beans(self, required_type: type[T]) -> list[T]:
        """All components of ``required_type``, in registry order."""
        with self._lock.reading():
            self._check_open()
            return [d.required_instance for d in self._registry.descriptors_of(required_type)]

    def get_descriptors(self, required_type: Any = object) -> list[ComponentDescriptor]:
        with self._lock.reading():
            self._check_open()
            return self._registry.descriptors_of(required_type)

    def get_descriptor(self, name: str) -> Optional[ComponentDescriptor]:
        with self._lock.reading():
            self._check_open()
            return self._registry.get(name)

    def managed_type_names(self) -> list[str]:
        with self._lock.reading():
            self._check_open()
            return sorted(
                {
                    f"{d.produced_type.__module__}.{d.produced_type.__qualname__}"
                    for d in self._registry.ordered()
                }
            )

    def __getitem__(self, key: Union[str, type]) -> Any:
        if isinstance(key, str):
            return self.get_bean(key)
        return self.get_unique_bean(key)

    def __contains__(self, key: Union[str, type]) -> bool:
        with self._lock.reading():
            self._check_open()
            if isinstance(key, str):
                return key in self._registry
            return bool(self._registry.descriptors_of(key))

    def close(self) -> None:
        """Run shutdown hooks and invalidate further lookups. Closing twice is a no-op."""
        with self._lock.writing():
            if self._closed:
                return
            logger.info("Closing application context")
            try:
                self._lifecycle.stop(self._registry.ordered())
            finally:
                self._closed = True
            logger.info("Application context closed")

    def __enter__(self) -> "ApplicationContext":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self):
        state = "closed" if self._closed else "open"
        return f"<ApplicationContext ({state}) with {len(self._registry)} beans>"
