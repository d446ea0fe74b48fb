"""Small dashboard showing charts that wait for their data.

This example is dependency-free and shows:
- a chart kind registered with `@register_chart_kind`
- attributes referencing data that only arrives on a later tick
- the chart bound back into the scope under `dc-name`
- the escalation timer driven by a `ManualScheduler`

Run it with `python examples/dashboard.py`.
"""

import logging

from chartbind import ChartDirective, Element, ManualScheduler, Scope, register_chart_kind


@register_chart_kind("barChart")
class BarChart:
    """Stand-in for a charting library's bar chart."""

    configurable_options = ("width", "height", "dimension", "group", "elasticY")

    def __init__(self, element, group=None):
        self.element = element
        self.chart_group = group
        self.config = {}
        self.listeners = {}

    def options(self, options):
        self.config.update(options)

    def on(self, event, handler):
        self.listeners[event] = handler

    def filter_all(self):
        print("filters cleared")

    def render(self):
        print(f"rendering bar chart with {self.config}")

    def redraw(self):
        print("redrawing bar chart")


def main():
    logging.basicConfig(level=logging.DEBUG)
    scope = Scope({"layout": {"width": 480, "height": 200}})
    element = Element("div", attributes={
        "dc-chart": "barChart",
        "dc-chart-group": "sales",
        "dc-name": "'salesByDay'",
        "dc-options": "layout",
        "dc-dimension": "data['by_day']",
        "dc-group": "data['total']",
        "dc-elastic-y": "True",
    }, children=[Element("a", classes=["reset"])])

    scheduler = ManualScheduler()
    watcher = ChartDirective(scheduler=scheduler).link(scope, element)

    scope.digest()
    print(f"before data: {watcher}")

    scope["data"] = {"by_day": "day dimension", "total": "sum of sales"}
    scope.digest()
    print(f"after data: {watcher}")

    element.query_selector("a.reset").click()


if __name__ == "__main__":
    main()
