"""Target site registry.

Sites are auto-discovered from modules in this package. Any `BaseSite`
subclass with a non-empty `name` attribute will be registered.
"""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil

from .base import BaseSite

__all__ = ["BaseSite", "get_site", "list_sites"]

logger = logging.getLogger(__name__)


def _discover_sites() -> dict[str, type[BaseSite]]:
    discovered: dict[str, type[BaseSite]] = {}

    for module_info in pkgutil.iter_modules(__path__):  # type: ignore[name-defined]
        if module_info.ispkg or module_info.name.startswith("_") or module_info.name == "base":
            continue

        full_name = f"{__name__}.{module_info.name}"
        try:
            module = importlib.import_module(full_name)
        except Exception as exc:  # pragma: no cover - depends on optional modules
            logger.warning("Failed to import site module %s: %r", full_name, exc)
            continue

        for _, obj in inspect.getmembers(module, inspect.isclass):
            if obj is BaseSite or not issubclass(obj, BaseSite) or inspect.isabstract(obj):
                continue
            site_name = getattr(obj, "name", None)
            if not isinstance(site_name, str) or not site_name.strip():
                continue
            if site_name in discovered and discovered[site_name] is not obj:
                logger.warning("Duplicate site name '%s' (keeping first)", site_name)
                continue
            discovered[site_name] = obj

    return dict(sorted(discovered.items(), key=lambda kv: kv[0]))


SITES: dict[str, type[BaseSite]] = _discover_sites()


def list_sites() -> list[str]:
    return list(SITES)


def get_site(name: str) -> BaseSite:
    """Return a fresh instance of the named site profile."""
    try:
        return SITES[name]()
    except KeyError:
        raise ValueError(f"Unknown site {name!r}. Available: {', '.join(SITES)}") from None
