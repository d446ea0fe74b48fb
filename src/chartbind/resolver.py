"""
Option resolution from directive attributes.

Turns the whitelisted attributes of an element into a canonical option map by
evaluating each attribute expression against the scope.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable

from chartbind.naming import DEFAULT_PREFIX, to_canonical

logger = logging.getLogger(__name__)


def get_options_from_attrs(
    scope,
    attrs: Mapping,
    valid_attributes: Iterable[str],
    prefix: str = DEFAULT_PREFIX,
) -> Dict[str, Any]:
    """
    Evaluate the whitelisted attributes into a canonical option map.

    Attributes outside valid_attributes are ignored. Evaluation errors
    propagate: this runs once the attributes are known to be resolvable.

    Args:
        scope: Evaluation context providing eval(expression)
        attrs: Attribute name -> expression, in markup order
        valid_attributes: Whitelisted attribute names (prefixed spelling)
        prefix: Attribute prefix stripped to form canonical names

    Returns:
        Dict of canonical option name -> evaluated value, in markup order
    """
    valid = frozenset(valid_attributes)
    options = {}
    for attr_name, expression in attrs.items():
        if attr_name not in valid:
            if attr_name.startswith(prefix):
                logger.debug(f"Ignoring {attr_name}: not an option of this chart")
            continue
        options[to_canonical(attr_name, prefix)] = scope.eval(expression)

    logger.debug(f"Resolved {len(options)} options: {list(options)}")
    return options


def merge_options(base: Mapping, override: Mapping) -> Dict[str, Any]:
    """
    Recursively merge override into base, returning a new dict.

    For each key in override:
    - If value is None: skip (don't override base)
    - If both values are mappings: recursively merge
    - Otherwise: use override value

    Neither input is modified.
    """
    merged = dict(base)
    for key, override_value in override.items():
        if override_value is None:
            continue
        base_value = merged.get(key)
        if isinstance(base_value, Mapping) and isinstance(override_value, Mapping):
            merged[key] = merge_options(base_value, override_value)
        elif isinstance(override_value, Mapping):
            merged[key] = merge_options({}, override_value)
        else:
            merged[key] = override_value
    return merged
