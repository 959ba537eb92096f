"""Post-processors: hooks that may substitute component instances.

A component whose type subclasses :class:`PostProcessor` is built before
ordinary components and added to the live pipeline as soon as it exists.
Every later instance passes through the pipeline at three points:

* ``after_construction``: right after the constructor or factory returns,
  before interceptor proxies are wrapped around the instance.
* ``after_ready``: right after the ready hook ran.
* ``before_property_set``: when the container needs the original object
  behind a substituted instance, for property injection and lifecycle hooks.
  Post-processors are asked in reverse order so each can undo its own
  substitution.
"""

import logging
from typing import Any, Callable

from orchard.errors import BeanCreationError, ContainerError

__all__ = ["PostProcessor", "PostProcessorPipeline"]

logger = logging.getLogger(__name__)


class PostProcessor:
    """Base class for post-processor components. Every hook defaults to identity."""

    def after_construction(self, instance: Any, name: str) -> Any:
        return instance

    def after_ready(self, instance: Any, name: str) -> Any:
        return instance

    def before_property_set(self, instance: Any, name: str) -> Any:
        return instance


class PostProcessorPipeline:
    """Ordered post-processors, applied in registration order."""

    def __init__(self):
        self._processors: list[tuple[str, PostProcessor]] = []

    def add(self, name: str, processor: PostProcessor) -> None:
        self._processors.append((name, processor))

    def __len__(self):
        return len(self._processors)

    def after_construction(self, instance: Any, name: str) -> Any:
        for processor_name, processor in self._processors:
            processed = _call(processor.after_construction, instance, name, processor_name)
            if processed is not instance:
                logger.debug(
                    "Bean %s was replaced by post processor %s after construction",
                    name,
                    processor_name,
                )
                instance = processed
        return instance

    def after_ready(self, instance: Any, name: str) -> Any:
        for processor_name, processor in self._processors:
            processed = _call(processor.after_ready, instance, name, processor_name)
            if processed is not instance:
                logger.debug(
                    "Post processor %s returned different bean for %s: %s -> %s",
                    processor_name,
                    name,
                    type(instance).__name__,
                    type(processed).__name__,
                )
                instance = processed
        return instance

    def unwrap(self, instance: Any, name: str) -> Any:
        """Recover the object that injection and lifecycle hooks must act on."""
        original = instance
        for processor_name, processor in reversed(self._processors):
            original = _call(processor.before_property_set, original, name, processor_name)
        if original is not instance:
            logger.debug("Original instance of bean %s is %r", name, original)
        return original


def _call(hook: Callable[[Any, str], Any], instance: Any, name: str, processor_name: str) -> Any:
    try:
        return hook(instance, name)
    except ContainerError:
        raise
    except Exception as e:
        raise BeanCreationError(
            f"Post processor '{processor_name}' failed in {hook.__name__} "
            f"for bean '{name}': {e}"
        ) from e
