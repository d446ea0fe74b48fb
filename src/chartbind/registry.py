"""
Chart kinds and live chart instances.

The registry resolves a chart kind (the value of the ``dcChart`` attribute) to
a factory, and tracks created charts per chart group so that filtering one
chart can redraw every chart of its group.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from chartbind.errors import UnknownChartKindError

logger = logging.getLogger(__name__)


@runtime_checkable
class Chart(Protocol):
    """Surface the directive needs from a chart object."""

    def options(self, options: Dict[str, Any]) -> Any: ...

    def on(self, event: str, handler: Callable) -> Any: ...

    def filter_all(self) -> Any: ...

    def render(self) -> Any: ...

    def redraw(self) -> Any: ...


# factory(element, group) -> Chart
ChartFactory = Callable[[Any, Optional[str]], Chart]


class ChartRegistry:
    """Chart factories by kind, and created charts by group."""

    def __init__(self):
        self._factories: Dict[str, ChartFactory] = {}
        self._charts: Dict[Optional[str], List[Chart]] = {}

    def register_kind(self, kind: str, factory: ChartFactory) -> None:
        """Register factory under kind, replacing any previous registration."""
        if kind in self._factories:
            logger.debug(f"Replacing chart factory for kind {kind!r}")
        self._factories[kind] = factory

    def kinds(self) -> List[str]:
        return sorted(self._factories)

    def factory_for(self, kind: str) -> ChartFactory:
        """
        Get the factory for kind.

        Raises:
            UnknownChartKindError: If kind was never registered
        """
        try:
            return self._factories[kind]
        except KeyError:
            raise UnknownChartKindError(kind, self._factories) from None

    def create(self, kind: str, element: Any, group: Optional[str] = None) -> Chart:
        """Create an unconfigured chart of the given kind and track it in its group."""
        chart = self.factory_for(kind)(element, group)
        self.register_chart(chart, group)
        logger.debug(f"Created {kind} chart {type(chart).__name__} in group {group!r}")
        return chart

    def register_chart(self, chart: Chart, group: Optional[str] = None) -> None:
        charts = self._charts.setdefault(group, [])
        if not any(c is chart for c in charts):
            charts.append(chart)

    def deregister_chart(self, chart: Chart, group: Optional[str] = None) -> None:
        charts = self._charts.get(group, [])
        self._charts[group] = [c for c in charts if c is not chart]

    def has_chart(self, chart: Chart, group: Optional[str] = None) -> bool:
        return any(c is chart for c in self._charts.get(group, ()))

    def charts(self, group: Optional[str] = None) -> List[Chart]:
        return list(self._charts.get(group, ()))

    def clear(self) -> None:
        """Forget every tracked chart; registered kinds are kept."""
        self._charts.clear()

    def redraw_all(self, group: Optional[str] = None) -> None:
        """Redraw every chart of group."""
        for chart in self.charts(group):
            chart.redraw()

    def render_all(self, group: Optional[str] = None) -> None:
        """Render every chart of group."""
        for chart in self.charts(group):
            chart.render()


_default_registry = ChartRegistry()


def get_default_registry() -> ChartRegistry:
    """Registry used by link() when none is passed."""
    return _default_registry


def register_chart_kind(kind: str, registry: Optional[ChartRegistry] = None):
    """
    Decorator registering a chart class or factory function under kind.

    Example:
        >>> @register_chart_kind("barChart")
        ... class BarChart:
        ...     def __init__(self, element, group=None): ...
    """
    def decorator(factory):
        (registry or _default_registry).register_kind(kind, factory)
        return factory
    return decorator
