"""Discovery of candidate component types."""

import importlib
import inspect
import logging
import pkgutil
from typing import Iterable, Union

from orchard.aop import DEFAULT_CONFIGURATIONS
from orchard.errors import DefinitionError
from orchard.markers import ComponentScan, Import, ImportDefaults, get_marker

__all__ = ["scan_type_names", "load_type", "type_name", "candidate_types"]

logger = logging.getLogger(__name__)


def type_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def scan_type_names(roots: Iterable[str]) -> list[str]:
    """Return the fully-qualified names of all classes defined under ``roots``.

    Each root is a module or package name. Packages are walked recursively.
    Classes merely imported into a module are not reported for it.

    Raises:
        DefinitionError: If a root or one of its submodules cannot be imported.
    """
    names: set[str] = set()
    for root in roots:
        for module in _walk_modules(root):
            for _, member in inspect.getmembers(module, inspect.isclass):
                if member.__module__ == module.__name__:
                    names.add(type_name(member))
    return sorted(names)


def _walk_modules(root: str):
    module = _import(root)
    yield module
    if hasattr(module, "__path__"):
        for info in pkgutil.walk_packages(module.__path__, prefix=f"{root}."):
            yield _import(info.name)


def _import(module_name: str):
    try:
        return importlib.import_module(module_name)
    except ImportError as e:
        raise DefinitionError(f"Cannot import module for scanning: {module_name}") from e


def load_type(name: str) -> type:
    """Resolve a name produced by :func:`scan_type_names` back to its class.

    Raises:
        DefinitionError: If no class with that name can be found.
    """
    parts = name.split(".")
    for split in range(len(parts) - 1, 0, -1):
        module_name = ".".join(parts[:split])
        try:
            target = importlib.import_module(module_name)
        except ImportError:
            continue
        try:
            for attribute in parts[split:]:
                target = getattr(target, attribute)
        except AttributeError:
            break
        if inspect.isclass(target):
            return target
        break
    raise DefinitionError(f"Class not found for name: {name}")


def candidate_types(config_class: type) -> list[Union[str, type]]:
    """Collect candidates for the components of an application rooted at ``config_class``.

    Scans the roots named by ``ComponentScan`` (by default, the module that
    defines ``config_class``), then adds ``Import`` types, the built-in
    configurations when ``ImportDefaults`` is present, and ``config_class``.
    """
    scan = get_marker(config_class, ComponentScan)
    roots = list(scan.roots) if scan and scan.roots else [config_class.__module__]
    logger.info("Component scan in modules: %s", ", ".join(roots))

    candidates: list[Union[str, type]] = list(scan_type_names(roots))
    imported = get_marker(config_class, Import)
    if imported:
        candidates.extend(imported.types)
    if get_marker(config_class, ImportDefaults):
        candidates.extend(DEFAULT_CONFIGURATIONS)
    candidates.append(config_class)
    logger.debug("Candidate types found by component scan: %s", candidates)
    return candidates
