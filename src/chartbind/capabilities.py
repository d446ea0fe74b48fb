"""
Capability discovery for chart objects.

Determines which options a chart accepts, and from that which directive
attributes are worth evaluating for it. A chart class may declare its options
explicitly through a ``configurable_options`` descriptor; otherwise its public
zero/one-argument methods are taken to be its option setters.
"""

import inspect
import logging
from typing import Any, Dict, FrozenSet, Iterable, Type

from chartbind.naming import DEFAULT_PREFIX, to_external

logger = logging.getLogger(__name__)

# Options consumed by the directive itself, valid for every chart
DIRECTIVE_OPTIONS = (
    "name",
    "onFiltered",
    "onPostRedraw",
    "onPostRender",
    "onPreRedraw",
    "onPreRender",
    "onZoomed",
    "postSetupChart",
)

# Bulk setter every chart exposes; carries the nested ``options`` attribute
BULK_SETTER = "options"

CAPABILITY_DESCRIPTOR = "configurable_options"

# Cache for declared descriptors, keyed by chart class
_descriptor_cache: Dict[Type, FrozenSet[str]] = {}


def _positional_arity(func) -> int:
    """
    Number of required positional arguments of a bound callable.

    Raises:
        ValueError, TypeError: If the callable has no introspectable signature
    """
    sig = inspect.signature(func)
    positional = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    return sum(
        1 for p in sig.parameters.values()
        if p.kind in positional and p.default is inspect.Parameter.empty
    )


def _declared_options(chart_type: Type):
    """Return the declared option names of chart_type, or None if it declares none."""
    if chart_type in _descriptor_cache:
        return _descriptor_cache[chart_type]

    declared = getattr(chart_type, CAPABILITY_DESCRIPTOR, None)
    if declared is None:
        return None
    if isinstance(declared, str):
        raise TypeError(
            f"{chart_type.__name__}.{CAPABILITY_DESCRIPTOR} must be an iterable of option "
            f"names, not a string"
        )

    names = frozenset(declared) | {BULK_SETTER}
    _descriptor_cache[chart_type] = names
    logger.debug(f"Cached {len(names)} declared options for {chart_type.__name__}")
    return names


def introspect_options(chart: Any) -> FrozenSet[str]:
    """
    Enumerate option names from the chart's public zero/one-argument methods.

    Callables without an introspectable signature are skipped.
    """
    names = set()
    for attr_name in dir(chart):
        if attr_name.startswith("_") or attr_name == CAPABILITY_DESCRIPTOR:
            continue
        try:
            attr_value = getattr(chart, attr_name)
        except AttributeError:
            continue
        if not callable(attr_value) or inspect.isclass(attr_value):
            continue
        try:
            if _positional_arity(attr_value) <= 1:
                names.add(attr_name)
        except (ValueError, TypeError) as e:
            logger.debug(f"Could not extract signature from {type(chart).__name__}.{attr_name}: {e}")

    return frozenset(names)


def option_names_for(chart: Any) -> FrozenSet[str]:
    """Canonical option names the chart accepts."""
    declared = _declared_options(type(chart))
    if declared is not None:
        return declared
    return introspect_options(chart)


def valid_attributes_for(
    chart: Any,
    prefix: str = DEFAULT_PREFIX,
    extra_options: Iterable[str] = DIRECTIVE_OPTIONS,
) -> FrozenSet[str]:
    """
    Whitelist of directive attribute names for a chart instance.

    The chart's option names unioned with the directive's own options, each
    mapped to its prefixed attribute spelling.
    """
    names = option_names_for(chart) | frozenset(extra_options)
    valid = frozenset(to_external(name, prefix) for name in names)
    logger.debug(f"Whitelisted {len(valid)} attributes for {type(chart).__name__}")
    return valid


def clear_capability_cache() -> None:
    """Forget cached descriptors (for testing or hot-reloaded chart classes)."""
    _descriptor_cache.clear()
