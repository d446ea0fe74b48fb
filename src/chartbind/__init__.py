"""
chartbind: declarative, reactively-resolved chart configuration.

This package links host elements carrying ``dc*`` attributes to chart objects:
it waits until every attribute expression resolves against the scope, then
builds, configures and renders the chart exactly once.
"""

__version__ = "0.1.0"

from .capabilities import (
    DIRECTIVE_OPTIONS,
    clear_capability_cache,
    option_names_for,
    valid_attributes_for,
)
from .config import (
    DirectiveConfig,
    directive_config,
    get_directive_config,
    reset_directive_config,
    set_directive_config,
)
from .directive import (
    ChartDirective,
    link,
    setup_chart,
    wire_reset_control,
)
from .element import AttributeSet, Element, Event
from .errors import (
    ChartBindError,
    ExpressionNotAllowedError,
    MissingChartKindError,
    UndefinedExpressionError,
    UnknownChartKindError,
    WatcherStateError,
)
from .naming import normalize_attribute_name, to_canonical, to_external
from .registry import (
    Chart,
    ChartRegistry,
    get_default_registry,
    register_chart_kind,
)
from .resolver import get_options_from_attrs, merge_options
from .scheduling import EscalationTimer, ManualScheduler, MonotonicScheduler
from .scope import Errored, Pending, Ready, Scope, Subscription
from .watcher import StabilizationWatcher, WatchState

__all__ = [
    # Directive
    "ChartDirective",
    "link",
    "setup_chart",
    "wire_reset_control",
    # Watcher
    "StabilizationWatcher",
    "WatchState",
    "EscalationTimer",
    "ManualScheduler",
    "MonotonicScheduler",
    # Scope
    "Scope",
    "Subscription",
    "Pending",
    "Ready",
    "Errored",
    # Resolution
    "get_options_from_attrs",
    "merge_options",
    "option_names_for",
    "valid_attributes_for",
    "clear_capability_cache",
    "DIRECTIVE_OPTIONS",
    "to_external",
    "to_canonical",
    "normalize_attribute_name",
    # Host surfaces
    "Chart",
    "ChartRegistry",
    "get_default_registry",
    "register_chart_kind",
    "Element",
    "AttributeSet",
    "Event",
    # Configuration
    "DirectiveConfig",
    "directive_config",
    "get_directive_config",
    "set_directive_config",
    "reset_directive_config",
    # Errors
    "ChartBindError",
    "UnknownChartKindError",
    "MissingChartKindError",
    "ExpressionNotAllowedError",
    "UndefinedExpressionError",
    "WatcherStateError",
]
