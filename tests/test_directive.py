"""Tests for building and wiring charts through the directive."""
import datetime

import pytest

from chartbind import (
    ChartDirective,
    MissingChartKindError,
    UnknownChartKindError,
    WatchState,
    link,
    setup_chart,
)
from tests.fakes import FakeChart, IntrospectedChart


def build(scope, element, registry, scheduler):
    watcher = link(scope, element, registry=registry, scheduler=scheduler)
    scope.digest()
    assert watcher.state is WatchState.STABLE
    return watcher.result


def test_name_and_nested_options(scope, registry, scheduler, make_element):
    """Test binding under name, merging options and passing only chart options."""
    element = make_element({
        "dc-chart": "fakeChart",
        "dc-name": "'myChart'",
        "dc-options": "{'color': 'red'}",
        "dc-some-option": "5",
    })
    chart = build(scope, element, registry, scheduler)

    assert isinstance(chart, FakeChart)
    assert scope["myChart"] is chart
    assert chart.options_calls == [{"someOption": 5, "color": "red"}]
    for call in chart.options_calls:
        assert "name" not in call
        assert "options" not in call


def test_nested_options_deep_merge(scope, registry, scheduler, make_element):
    element = make_element({
        "dc-chart": "fakeChart",
        "dc-width": "{'min': 1, 'max': 5}",
        "dc-options": "{'width': {'max': 10}, 'height': 200}",
    })
    chart = build(scope, element, registry, scheduler)
    assert chart.options_calls == [{"width": {"min": 1, "max": 10}, "height": 200}]


def test_non_mapping_options_ignored(scope, registry, scheduler, make_element, caplog):
    element = make_element({"dc-chart": "fakeChart", "dc-options": "[1, 2]", "dc-width": "3"})
    chart = build(scope, element, registry, scheduler)
    assert chart.options_calls == [{"width": 3}]
    assert "expected a mapping" in caplog.text


def test_unwhitelisted_attributes_ignored(scope, registry, scheduler, make_element):
    """Test that options the chart does not have are silently dropped."""
    element = make_element({"dc-chart": "fakeChart", "dc-width": "3", "dc-x-axis-label": "'days'"})
    chart = build(scope, element, registry, scheduler)
    assert chart.options_calls == [{"width": 3}]


def test_only_defined_event_handlers_subscribed(scope, registry, scheduler, make_element):
    """Test that exactly the supplied lifecycle hooks are wired."""
    scope["on_filter"] = lambda chart, value: None
    scope["on_zoom"] = lambda chart, start, end: None
    element = make_element({
        "dc-chart": "fakeChart",
        "dc-on-filtered": "on_filter",
        "dc-on-zoomed": "on_zoom",
    })
    chart = build(scope, element, registry, scheduler)

    assert chart.handlers == {"filtered": scope["on_filter"], "zoomed": scope["on_zoom"]}
    assert chart.options_calls == [{}]


def test_all_event_handlers(scope, registry, scheduler, make_element):
    events = {
        "dc-on-pre-render": "preRender",
        "dc-on-post-render": "postRender",
        "dc-on-pre-redraw": "preRedraw",
        "dc-on-post-redraw": "postRedraw",
        "dc-on-filtered": "filtered",
        "dc-on-zoomed": "zoomed",
    }
    attributes = {"dc-chart": "fakeChart"}
    attributes.update({attr: "lambda chart: None" for attr in events})
    chart = build(scope, make_element(attributes), registry, scheduler)
    assert set(chart.handlers) == set(events.values())


def test_post_setup_chart_called_with_chart_and_options(scope, registry, scheduler, make_element):
    calls = []
    scope["setup"] = lambda chart, options: calls.append((chart, options))
    element = make_element({"dc-chart": "fakeChart", "dc-width": "3", "dc-post-setup-chart": "setup"})
    chart = build(scope, element, registry, scheduler)

    assert len(calls) == 1
    called_chart, options = calls[0]
    assert called_chart is chart
    assert options["width"] == 3


def test_non_callable_post_setup_ignored(scope, registry, scheduler, make_element):
    element = make_element({"dc-chart": "fakeChart", "dc-post-setup-chart": "42"})
    chart = build(scope, element, registry, scheduler)
    assert chart.render_calls == 1


def test_render_exactly_once(scope, registry, scheduler, make_element):
    element = make_element({"dc-chart": "fakeChart", "dc-width": "3"})
    chart = build(scope, element, registry, scheduler)
    scope.digest()
    scope.digest()
    assert chart.render_calls == 1
    assert len(chart.options_calls) == 1


def test_builds_once_when_scope_keeps_changing(scope, registry, scheduler, make_element):
    """Test that the chart is configured once even if data changes after build."""
    scope["data"] = 1
    element = make_element({"dc-chart": "fakeChart", "dc-width": "data"})
    chart = build(scope, element, registry, scheduler)
    scope["data"] = 2
    scope.digest()
    assert chart.options_calls == [{"width": 1}]
    assert registry.charts() == [chart]


def test_reset_control(scope, registry, scheduler, make_element):
    """Test that clicking reset clears filters once and skips navigation."""
    element = make_element({"dc-chart": "fakeChart", "dc-chart-group": "sales", "dc-width": "3"})
    chart = build(scope, element, registry, scheduler)
    reset = element.query_selector("a.reset")

    assert reset.get_attribute("href") == "javascript:;"
    assert reset.style["display"] == "none"

    event = reset.click()
    assert chart.filter_all_calls == 1
    assert event.default_prevented
    assert chart.redraw_calls == 1

    reset.click()
    assert chart.filter_all_calls == 2


def test_reset_redraws_whole_group(scope, registry, scheduler, make_element):
    first = build(scope, make_element({"dc-chart": "fakeChart", "dc-chart-group": "g"}), registry, scheduler)
    second = build(scope, make_element({"dc-chart": "fakeChart", "dc-chart-group": "g"}), registry, scheduler)
    other = build(scope, make_element({"dc-chart": "fakeChart"}), registry, scheduler)

    first.element.query_selector("a.reset").click()
    assert first.redraw_calls == 1
    assert second.redraw_calls == 1
    assert other.redraw_calls == 0
    assert second.filter_all_calls == 0


def test_element_without_reset_control(scope, registry, scheduler, make_element):
    element = make_element({"dc-chart": "fakeChart"}, with_reset=False)
    chart = build(scope, element, registry, scheduler)
    assert chart.render_calls == 1


def test_chart_created_with_element_and_group(scope, registry, scheduler, make_element):
    element = make_element({"dc-chart": "'fakeChart'", "dc-chart-group": "sales"})
    chart = build(scope, element, registry, scheduler)
    assert chart.element is element
    assert chart.chart_group == "sales"
    assert registry.charts("sales") == [chart]


def test_unknown_kind_fails_at_link(scope, registry, scheduler, make_element):
    element = make_element({"dc-chart": "pieChart", "dc-width": "3"})
    with pytest.raises(UnknownChartKindError, match="pieChart") as excinfo:
        link(scope, element, registry=registry, scheduler=scheduler)
    assert "fakeChart" in str(excinfo.value)
    assert isinstance(excinfo.value, KeyError)


def test_missing_kind_fails_at_link(scope, registry, scheduler, make_element):
    with pytest.raises(MissingChartKindError):
        link(scope, make_element({"dc-width": "3"}), registry=registry, scheduler=scheduler)


def test_date_helpers_bound(scope, registry, scheduler, make_element):
    element = make_element({"dc-chart": "fakeChart", "dc-width": "DateTime(2024, 1, 31, 12, 30)"})
    chart = build(scope, element, registry, scheduler)
    assert chart.options_calls == [{"width": datetime.datetime(2024, 1, 31, 12, 30)}]
    assert scope.eval("Date(2024, 2, 1)") == datetime.datetime(2024, 2, 1)


def test_introspected_chart_configured(scope, registry, scheduler, make_element):
    element = make_element({
        "dc-chart": "introspectedChart",
        "dc-width": "640",
        "dc-x-axis-label": "'Day'",
        "dc-some-option": "'ignored'",
    })
    chart = build(scope, element, registry, scheduler)
    assert isinstance(chart, IntrospectedChart)
    assert chart.config == {"width": 640, "xAxisLabel": "Day"}
    assert chart.rendered


def test_setup_chart_directly(scope, registry, make_element):
    element = make_element({"dc-chart": "fakeChart", "dc-name": "'direct'", "dc-height": "10"})
    chart = setup_chart(scope, element, element.attributes, registry)
    assert scope["direct"] is chart
    assert chart.options_calls == [{"height": 10}]
    # Rendering belongs to the directive, not setup
    assert chart.render_calls == 0


def test_directive_links_many_elements(scope, registry, scheduler, make_element):
    directive = ChartDirective(registry=registry, scheduler=scheduler)
    watchers = [
        directive.link(scope, make_element({"dc-chart": "fakeChart", "dc-width": "data"}))
        for _ in range(3)
    ]
    scope.digest()
    assert all(w.state is WatchState.PENDING for w in watchers)

    scope["data"] = 50
    scope.digest()
    assert all(w.result.options_calls == [{"width": 50}] for w in watchers)
    assert len(registry.charts()) == 3
