"""Ready and shutdown hooks."""

import logging
from typing import Any, Callable, Iterable, Optional

from orchard.domain import ComponentDescriptor
from orchard.errors import BeanCreationError, ContainerError, DefinitionError
from orchard.post_processor import PostProcessorPipeline

__all__ = ["LifecycleDriver"]

logger = logging.getLogger(__name__)


class LifecycleDriver:
    """Runs hooks on unwrapped instances.

    Ready hooks run in ascending registry order, each followed by the
    after-ready point of the pipeline. Shutdown hooks run in the reverse
    order, so a component is torn down before the components it was built from.
    """

    def __init__(self, pipeline: PostProcessorPipeline):
        self._pipeline = pipeline

    def start(self, descriptors: Iterable[ComponentDescriptor]) -> None:
        for descriptor in descriptors:
            instance = descriptor.required_instance
            original = self._pipeline.unwrap(instance, descriptor.name)
            self._call_hook(
                descriptor, original, descriptor.init_method, descriptor.init_method_name
            )
            descriptor.instance = self._pipeline.after_ready(instance, descriptor.name)

    def stop(self, descriptors: Iterable[ComponentDescriptor]) -> None:
        for descriptor in reversed(list(descriptors)):
            if descriptor.instance is None:
                continue
            original = self._pipeline.unwrap(descriptor.instance, descriptor.name)
            self._call_hook(
                descriptor, original, descriptor.destroy_method, descriptor.destroy_method_name
            )

    def _call_hook(
        self,
        descriptor: ComponentDescriptor,
        instance: Any,
        method: Optional[Callable],
        method_name: Optional[str],
    ) -> None:
        if method is None and method_name is None:
            return
        if method is not None:
            hook = method.__get__(instance)
        else:
            hook = getattr(instance, method_name, None)
            if not callable(hook):
                raise DefinitionError(
                    f"Lifecycle method '{method_name}' not found on bean "
                    f"'{descriptor.name}' of type {type(instance).__qualname__}"
                )

        label = method_name or method.__name__
        logger.debug("Calling lifecycle method %s of bean %s", label, descriptor.name)
        try:
            hook()
        except ContainerError:
            raise
        except Exception as e:
            raise BeanCreationError(
                f"Exception when calling lifecycle method {label} of bean "
                f"'{descriptor.name}': {e}"
            ) from e
