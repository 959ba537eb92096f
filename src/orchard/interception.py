"""Call interception without generated subclasses.

An :class:`InterceptingProxy` stands in for a component instance. Attribute
reads and writes go straight to the wrapped object; calling one of its public
methods builds an :class:`Invocation` and runs it through the interceptor
chain, the last link of which calls the real method.
"""

import functools
import inspect
import logging
from typing import Any, Callable, Iterable, Iterator, Optional

__all__ = ["Invocation", "Interceptor", "InterceptingProxy", "target_of"]

logger = logging.getLogger(__name__)


class Invocation:
    """One intercepted call, handed to each interceptor in turn.

    Attributes:
        target: The wrapped object the call is made on.
        method: The bound method being called.
        args: Positional arguments of the call.
        kwargs: Keyword arguments of the call.
    """

    def __init__(
        self,
        target: Any,
        method: Callable,
        args: tuple,
        kwargs: dict,
        interceptors: Iterator["Interceptor"],
    ):
        self.target = target
        self.method = method
        self.args = args
        self.kwargs = kwargs
        self._interceptors = interceptors

    @property
    def method_name(self) -> str:
        return self.method.__name__

    @property
    def function(self) -> Callable:
        """The plain function behind ``method``, where markers on it are recorded."""
        return getattr(self.method, "__func__", self.method)

    def proceed(self) -> Any:
        """Run the next interceptor, or the real method once the chain is exhausted."""
        interceptor = next(self._interceptors, None)
        if interceptor is None:
            return self.method(*self.args, **self.kwargs)
        return interceptor.invoke(self)


class Interceptor:
    """Base class for interceptor components.

    Override the ``before``/``after``/``error``/``finalize`` hooks for the
    common cases, or ``invoke`` itself to take full control of the call.
    """

    def before(self, invocation: Invocation) -> None:
        pass

    def after(self, invocation: Invocation, result: Any) -> Any:
        return result

    def error(self, invocation: Invocation, exc: Exception) -> Any:
        raise exc

    def finalize(self, invocation: Invocation) -> None:
        pass

    def invoke(self, invocation: Invocation) -> Any:
        try:
            self.before(invocation)
            result = invocation.proceed()
            return self.after(invocation, result)
        except Exception as exc:
            return self.error(invocation, exc)
        finally:
            self.finalize(invocation)


class InterceptingProxy:
    """Pass-through wrapper that routes public method calls through interceptors.

    ``isinstance`` checks see the wrapped object's class, so a proxy can stand
    wherever the original instance was expected. Private and dunder attributes
    are not intercepted; the container, comparison and context manager
    protocols are forwarded to the wrapped object.
    """

    __slots__ = ("_proxy_target", "_proxy_interceptors")

    def __init__(self, target: Any, interceptors: Iterable[Interceptor]):
        object.__setattr__(self, "_proxy_target", target)
        object.__setattr__(self, "_proxy_interceptors", tuple(interceptors))

    @property
    def __class__(self):
        return type(self._proxy_target)

    def __getattr__(self, name: str) -> Any:
        target = self._proxy_target
        attribute = getattr(target, name)
        if name.startswith("_") or not inspect.ismethod(attribute):
            return attribute

        interceptors = self._proxy_interceptors

        @functools.wraps(attribute)
        def intercepted(*args, **kwargs):
            invocation = Invocation(target, attribute, args, kwargs, iter(interceptors))
            return invocation.proceed()

        return intercepted

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(self._proxy_target, name, value)

    def __delattr__(self, name: str) -> None:
        delattr(self._proxy_target, name)

    # special methods bypass __getattr__

    def __call__(self, *args, **kwargs):
        return self._proxy_target(*args, **kwargs)

    def __len__(self):
        return len(self._proxy_target)

    def __bool__(self):
        return bool(self._proxy_target)

    def __iter__(self):
        return iter(self._proxy_target)

    def __contains__(self, item):
        return item in self._proxy_target

    def __getitem__(self, key):
        return self._proxy_target[key]

    def __setitem__(self, key, value):
        self._proxy_target[key] = value

    def __delitem__(self, key):
        del self._proxy_target[key]

    def __enter__(self):
        target = self._proxy_target
        entered = target.__enter__()
        return self if entered is target else entered

    def __exit__(self, exc_type, exc, tb):
        return self._proxy_target.__exit__(exc_type, exc, tb)

    def __eq__(self, other):
        if type(other) is InterceptingProxy:
            other = target_of(other)
        return self._proxy_target == other

    def __hash__(self):
        return hash(self._proxy_target)

    def __str__(self):
        return str(self._proxy_target)

    def __repr__(self):
        return f"<InterceptingProxy of {self._proxy_target!r}>"


def target_of(instance: Any) -> Optional[Any]:
    """Return the object wrapped by a proxy, or ``None`` when ``instance`` is not one."""
    if type(instance) is InterceptingProxy:
        return object.__getattribute__(instance, "_proxy_target")
    return None
