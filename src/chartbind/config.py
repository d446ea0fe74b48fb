"""
Directive configuration.

This module provides the configuration interface for the chart directive:
the attribute prefix, the reserved attribute names, the reset control selector
and the escalation delay after which evaluation errors stop being retried.

The active configuration is resolved in two layers:
1. Module-level base configuration (set once at application startup)
2. Context-scoped overrides (contextvars), for tests and embedded hosts

You only need to call set_directive_config() if the defaults don't fit.
"""

import contextvars
import dataclasses
import logging
from contextlib import contextmanager
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectiveConfig:
    """Settings shared by every linked chart element."""

    prefix: str = "dc"
    chart_attribute: str = "dcChart"
    group_attribute: str = "dcChartGroup"
    reset_selector: str = "a.reset"
    escalation_delay: float = 2.0

    @property
    def reserved_attributes(self) -> frozenset:
        """Attributes identifying the chart itself, never chart options."""
        return frozenset((self.chart_attribute, self.group_attribute))


# Global framework configuration
_directive_config: DirectiveConfig = DirectiveConfig()

# Context-scoped override, takes precedence over the module-level config
current_directive_config = contextvars.ContextVar("current_directive_config", default=None)


def set_directive_config(config: DirectiveConfig) -> None:
    """
    Set the base directive configuration.

    Args:
        config: The configuration used by every subsequent link()

    Example:
        >>> from chartbind.config import DirectiveConfig, set_directive_config
        >>> set_directive_config(DirectiveConfig(escalation_delay=5.0))
    """
    global _directive_config
    if not isinstance(config, DirectiveConfig):
        raise TypeError(f"Expected DirectiveConfig, got {type(config).__name__}")
    _directive_config = config


def get_directive_config() -> DirectiveConfig:
    """
    Get the active directive configuration.

    Returns:
        The context-scoped override if one is active, else the base configuration
    """
    override = current_directive_config.get()
    return override if override is not None else _directive_config


def reset_directive_config() -> None:
    """Restore the default base configuration (for testing)."""
    global _directive_config
    _directive_config = DirectiveConfig()


@contextmanager
def directive_config(**changes):
    """
    Create a context scope with some directive settings replaced.

    Nested scopes build on the currently active configuration.

    Usage:
        with directive_config(escalation_delay=0.5):
            link(scope, element)
    """
    merged = dataclasses.replace(get_directive_config(), **changes)
    logger.debug(f"Entering directive config scope with {len(changes)} overrides")
    token = current_directive_config.set(merged)
    try:
        yield merged
    finally:
        current_directive_config.reset(token)
