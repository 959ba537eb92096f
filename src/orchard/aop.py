"""Around-proxy support: wrap marked components in their named interceptors.

A class marked ``Around("auditInterceptor")`` has every instance wrapped in an
:class:`~orchard.interception.InterceptingProxy` that calls the
``auditInterceptor`` component for each public method call. The post-processor
doing this is not active by default; a configuration class enables it with
``ImportDefaults()``.
"""

import logging
from typing import Annotated, Any

from orchard.context import ApplicationContext
from orchard.errors import AopConfigError
from orchard.markers import Around, Autowired, Bean, Configuration, find_inherited_marker
from orchard.post_processor import PostProcessor

__all__ = ["AroundProxyPostProcessor", "AroundConfiguration", "DEFAULT_CONFIGURATIONS"]

logger = logging.getLogger(__name__)


class AroundProxyPostProcessor(PostProcessor):
    """Attaches the interceptors named by ``Around`` to each marked component.

    The proxy itself is built by the construction engine once the interceptors
    exist. The raw instance is remembered so that injection and lifecycle
    hooks act on it rather than on the proxy.
    """

    def __init__(self, context: ApplicationContext):
        self._context = context
        self._originals: dict[str, Any] = {}

    def after_construction(self, instance: Any, name: str) -> Any:
        around = find_inherited_marker(type(instance), Around)
        if around is None or not around.handlers:
            return instance

        descriptor = self._context.get_descriptor(name)
        for handler_name in around.handlers:
            handler = self._context.get_descriptor(handler_name)
            if handler is None:
                raise AopConfigError(
                    f"Interceptor bean '{handler_name}' not found for bean '{name}'"
                )
            logger.debug("Attaching interceptor %s to bean %s", handler_name, name)
            descriptor.attach_proxy(handler)
        self._originals[name] = instance
        return instance

    def before_property_set(self, instance: Any, name: str) -> Any:
        return self._originals.get(name, instance)


@Configuration()
class AroundConfiguration:
    @Bean()
    def around_proxy_post_processor(
        self, context: Annotated[ApplicationContext, Autowired()]
    ) -> AroundProxyPostProcessor:
        return AroundProxyPostProcessor(context)


DEFAULT_CONFIGURATIONS = [AroundConfiguration]
