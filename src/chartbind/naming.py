"""
Mapping between directive attribute names and canonical chart option names.

Directive attributes carry a fixed prefix followed by the option name with its
first letter capitalized (``dcXAxisLabel``); charts know the option by its own
spelling (``xAxisLabel``). Raw markup spellings (``data-dc-x-axis-label``) are
normalized to the directive form first.
"""

import re

DEFAULT_PREFIX = "dc"

# Markup prefixes stripped before normalization
_MARKUP_PREFIX = re.compile(r"^(?:x|data)[:\-_]", re.IGNORECASE)
_SEPARATOR = re.compile(r"[:\-_]+(.)")


def to_external(option_name: str, prefix: str = DEFAULT_PREFIX) -> str:
    """Return the directive attribute name for a canonical option name."""
    if not option_name:
        raise ValueError("Option name must not be empty")
    return prefix + option_name[0].upper() + option_name[1:]


def to_canonical(attr_name: str, prefix: str = DEFAULT_PREFIX) -> str:
    """
    Return the canonical option name for a directive attribute name.

    Names without the prefix are returned unchanged.
    """
    if not is_prefixed(attr_name, prefix):
        return attr_name
    start = len(prefix)
    return attr_name[start].lower() + attr_name[start + 1:]


def is_prefixed(attr_name: str, prefix: str = DEFAULT_PREFIX) -> bool:
    """True if attr_name is the prefix followed by at least one character."""
    return len(attr_name) > len(prefix) and attr_name.startswith(prefix)


def normalize_attribute_name(raw_name: str) -> str:
    """
    Normalize a markup attribute name to its directive spelling.

    ``data-dc-chart-group``, ``x-dc-chart-group``, ``dc:chart-group`` and
    ``dc_chart_group`` all normalize to ``dcChartGroup``. Names that are
    already camel-cased are returned unchanged.
    """
    name = _MARKUP_PREFIX.sub("", raw_name.strip())
    return _SEPARATOR.sub(lambda m: m.group(1).upper(), name)
