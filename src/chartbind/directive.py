"""
The chart directive: link an element's declarative attributes to a chart.

Rather than a directive per chart kind, the ``dcChart`` attribute names the
kind and the registry supplies the matching factory. Linking binds the date
helpers into the scope and starts a stabilization watcher; once every
attribute resolves, the chart is created and configured exactly once, its
reset control is wired and it is rendered.

Usage:
    element = Element(attributes={
        "dc-chart": "barChart",
        "dc-name": "'sales'",
        "dc-dimension": "by_day",
        "dc-group": "total_by_day",
    })
    watcher = link(scope, element)
    scope.digest()          # builds as soon as by_day and total_by_day exist
"""

import asyncio
import datetime
import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from chartbind.capabilities import DIRECTIVE_OPTIONS, valid_attributes_for
from chartbind.config import DirectiveConfig, get_directive_config
from chartbind.errors import MissingChartKindError
from chartbind.registry import Chart, ChartRegistry, get_default_registry
from chartbind.resolver import get_options_from_attrs, merge_options
from chartbind.scheduling import MonotonicScheduler, Scheduler
from chartbind.scope import Scope
from chartbind.watcher import StabilizationWatcher

logger = logging.getLogger(__name__)

# Directive option -> chart event name
EVENT_HANDLER_OPTIONS = {
    "onPreRender": "preRender",
    "onPostRender": "postRender",
    "onPreRedraw": "preRedraw",
    "onPostRedraw": "postRedraw",
    "onFiltered": "filtered",
    "onZoomed": "zoomed",
}

NAME_OPTION = "name"
NESTED_OPTIONS = "options"
POST_SETUP_OPTION = "postSetupChart"


def Date(year, month, day):
    return datetime.datetime(year, month, day)


def DateTime(year, month, day, hour=0, minute=0, second=0):
    return datetime.datetime(year, month, day, hour, minute, second)


def bind_date_helpers(scope: Scope) -> None:
    """Make Date() and DateTime() available to attribute expressions."""
    scope["Date"] = Date
    scope["DateTime"] = DateTime


def chart_kind_and_group(attrs: Mapping, config: DirectiveConfig):
    """
    Read the chart kind expression and optional group name from the attributes.

    The kind attribute holds the bare kind name (``barChart``); quoted
    spellings (``'barChart'``) are accepted too.

    Raises:
        MissingChartKindError: If the kind attribute is absent or empty
    """
    kind = (attrs.get(config.chart_attribute) or "").strip().strip("'\"")
    if not kind:
        raise MissingChartKindError(
            f"Element has no {config.chart_attribute} attribute naming the chart kind"
        )
    group = (attrs.get(config.group_attribute) or "").strip().strip("'\"") or None
    return kind, group


def setup_chart(
    scope: Scope,
    element,
    attrs: Mapping,
    registry: ChartRegistry,
    config: Optional[DirectiveConfig] = None,
) -> Chart:
    """
    Create a chart and configure it from the element's attributes.

    Steps:
    1. Create the chart and resolve its whitelisted attributes
    2. Deep-merge a nested ``options`` mapping into the top level
    3. Bind the chart in the scope under ``name``
    4. Pass the chart options to chart.options()
    5. Subscribe the lifecycle event handlers
    6. Run the ``postSetupChart`` callback
    """
    config = config or get_directive_config()
    kind, group = chart_kind_and_group(attrs, config)

    chart = registry.create(kind, element, group)
    valid_attributes = valid_attributes_for(chart, config.prefix) - config.reserved_attributes
    options = get_options_from_attrs(scope, attrs, valid_attributes, config.prefix)

    if NESTED_OPTIONS in options:
        nested = options.pop(NESTED_OPTIONS)
        if isinstance(nested, Mapping):
            options = merge_options(options, nested)
        elif nested is not None:
            logger.warning(f"Ignoring {NESTED_OPTIONS} of type {type(nested).__name__}: expected a mapping")

    if NAME_OPTION in options:
        name = options.pop(NAME_OPTION)
        scope[name] = chart
        logger.debug(f"Bound {kind} chart to scope name {name!r}")

    chart_options = {k: v for k, v in options.items() if k not in DIRECTIVE_OPTIONS}
    chart.options(chart_options)

    for option_name, event in EVENT_HANDLER_OPTIONS.items():
        handler = options.get(option_name)
        if handler is not None:
            chart.on(event, handler)

    post_setup = options.get(POST_SETUP_OPTION)
    if callable(post_setup):
        post_setup(chart, options)
    elif post_setup is not None:
        logger.warning(f"Ignoring {POST_SETUP_OPTION}: {type(post_setup).__name__} is not callable")

    return chart


def wire_reset_control(
    element,
    chart: Chart,
    registry: ChartRegistry,
    group: Optional[str] = None,
    config: Optional[DirectiveConfig] = None,
):
    """
    Make the element's reset link clear the chart's filters.

    Clicking it calls chart.filter_all() and redraws the chart's group. The
    link is neutralized and hidden; showing it is up to the host UI.

    Returns:
        The reset control, or None if the element has none
    """
    config = config or get_directive_config()
    control = element.query_selector(config.reset_selector)
    if control is None:
        return None

    def reset(event):
        event.prevent_default()
        chart.filter_all()
        registry.redraw_all(group)

    control.on("click", reset)
    control.set_attribute("href", "javascript:;")
    control.style["display"] = "none"
    return control


def default_scheduler() -> Scheduler:
    """The running asyncio loop if there is one, else a MonotonicScheduler."""
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        logger.debug("No running event loop; escalation deadlines are checked on each tick")
        return MonotonicScheduler()


class ChartDirective:
    """
    Links chart elements to scopes.

    Holds the registry, scheduler and configuration shared by every element it
    links.
    """

    def __init__(
        self,
        registry: Optional[ChartRegistry] = None,
        scheduler: Optional[Scheduler] = None,
        config: Optional[DirectiveConfig] = None,
    ):
        self.registry = registry or get_default_registry()
        self.scheduler = scheduler if scheduler is not None else default_scheduler()
        self.config = config
        self._linked: Dict[StabilizationWatcher, Optional[str]] = {}

    def link(self, scope: Scope, element) -> StabilizationWatcher:
        """
        Link element to scope.

        The chart factory is resolved immediately, so an unknown kind fails
        here rather than on the first stable tick.

        Returns:
            The started watcher; its ``result`` is the chart once built

        Raises:
            MissingChartKindError: If the element names no chart kind
            UnknownChartKindError: If the registry has no factory for the kind
        """
        config = self.config or get_directive_config()
        attrs = element.attributes
        kind, group = chart_kind_and_group(attrs, config)
        self.registry.factory_for(kind)

        bind_date_helpers(scope)

        def build(values: List[Any]) -> Chart:
            chart = setup_chart(scope, element, attrs, self.registry, config)
            wire_reset_control(element, chart, self.registry, group, config)
            chart.render()
            logger.debug(f"Rendered {kind} chart after {len(values)} attributes settled")
            return chart

        watcher = StabilizationWatcher(scope, attrs, build, self.scheduler, config)
        self._linked[watcher] = group
        scope.on_destroy(lambda: self.unlink(watcher))
        return watcher.start()

    def unlink(self, watcher: StabilizationWatcher) -> None:
        """
        Tear down a linked element: stop its watcher and escalation timer, and
        drop its chart from the registry group.

        Runs automatically when the linked scope is destroyed.
        """
        if watcher not in self._linked:
            return
        group = self._linked.pop(watcher)
        watcher.cancel()
        if watcher.result is not None:
            self.registry.deregister_chart(watcher.result, group)
            logger.debug(f"Deregistered {type(watcher.result).__name__} from group {group!r}")


def link(
    scope: Scope,
    element,
    registry: Optional[ChartRegistry] = None,
    scheduler: Optional[Scheduler] = None,
    config: Optional[DirectiveConfig] = None,
) -> StabilizationWatcher:
    """Link element to scope with a one-off ChartDirective."""
    return ChartDirective(registry, scheduler, config).link(scope, element)
