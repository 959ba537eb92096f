"""Name- and type-indexed store of component descriptors."""

import logging
from typing import Any, Iterable, Iterator, Optional, get_origin

from orchard.domain import ComponentDescriptor
from orchard.errors import BeanTypeError, DefinitionError, NoUniqueBeanError

__all__ = ["Registry"]

logger = logging.getLogger(__name__)


class Registry:
    """Descriptors keyed by unique name.

    Iteration order and :meth:`ordered` are both by ascending ``(order, name)``,
    so the order never depends on registration order.
    """

    def __init__(self, descriptors: Iterable[ComponentDescriptor] = ()):
        self._descriptors: dict[str, ComponentDescriptor] = {}
        self._ordered: Optional[list[ComponentDescriptor]] = None
        for descriptor in descriptors:
            self.register(descriptor)

    def register(self, descriptor: ComponentDescriptor) -> None:
        """Add ``descriptor``.

        Raises:
            DefinitionError: If a descriptor with the same name is already registered.
        """
        if descriptor.name in self._descriptors:
            raise DefinitionError(f"Duplicate bean name: {descriptor.name}")
        self._descriptors[descriptor.name] = descriptor
        self._ordered = None

    def get(self, name: str) -> Optional[ComponentDescriptor]:
        return self._descriptors.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._descriptors

    def __len__(self):
        return len(self._descriptors)

    def __iter__(self) -> Iterator[ComponentDescriptor]:
        return iter(self.ordered())

    def ordered(self) -> list[ComponentDescriptor]:
        if self._ordered is None:
            self._ordered = sorted(self._descriptors.values(), key=lambda d: d.sort_key)
        return list(self._ordered)

    def descriptors_of(self, required_type: Any) -> list[ComponentDescriptor]:
        """Descriptors whose produced type is ``required_type`` or a subtype of it.

        ``object`` matches every descriptor.
        """
        if required_type is object:
            return self.ordered()
        return [d for d in self.ordered() if _is_subtype(d.produced_type, required_type)]

    def find(self, name: str, required_type: Any = None) -> Optional[ComponentDescriptor]:
        """Look up a descriptor by name.

        Raises:
            BeanTypeError: If the descriptor exists but does not produce ``required_type``.
        """
        descriptor = self._descriptors.get(name)
        if descriptor is None or required_type is None or required_type is object:
            return descriptor
        if not _is_subtype(descriptor.produced_type, required_type):
            raise BeanTypeError(
                f"Bean '{name}' is of type {descriptor.produced_type.__qualname__}, "
                f"not the required type {_type_name(required_type)}"
            )
        return descriptor

    def find_unique(self, required_type: Any) -> Optional[ComponentDescriptor]:
        """Look up the single descriptor producing ``required_type``.

        When several match, the one marked primary wins.

        Returns:
            The matching descriptor, or ``None`` if nothing matches.

        Raises:
            NoUniqueBeanError: If several match and not exactly one is primary.
        """
        candidates = self.descriptors_of(required_type)
        if not candidates:
            return None
        if len(candidates) == 1:
            return candidates[0]

        primaries = [d for d in candidates if d.primary]
        names = ", ".join(d.name for d in candidates)
        if not primaries:
            raise NoUniqueBeanError(
                f"Multiple beans found for type {_type_name(required_type)} "
                f"but no primary specified: {names}"
            )
        if len(primaries) > 1:
            raise NoUniqueBeanError(
                f"Multiple primary beans found for type {_type_name(required_type)}: "
                f"{', '.join(d.name for d in primaries)}"
            )
        logger.debug(
            "Bean %s selected as primary among %s", primaries[0].name, names
        )
        return primaries[0]


def _is_subtype(produced_type: type, required_type: Any) -> bool:
    if required_type is Any:
        return True
    try:
        return issubclass(produced_type, get_origin(required_type) or required_type)
    except TypeError:
        return False


def _type_name(required_type: Any) -> str:
    return getattr(required_type, "__qualname__", repr(required_type))
