"""Exceptions raised by the chart directive."""


class ChartBindError(Exception):
    """Base class for all chartbind errors."""


class UnknownChartKindError(ChartBindError, KeyError):
    """Raised when a chart kind is not present in the chart registry."""

    def __init__(self, kind: str, known=()):
        self.kind = kind
        self.known = tuple(sorted(known))
        super().__init__(kind)

    def __str__(self):
        known = ", ".join(self.known) or "(none registered)"
        return f"Unknown chart kind {self.kind!r}. Registered kinds: {known}"


class MissingChartKindError(ChartBindError, ValueError):
    """Raised when an element is linked without a chart kind attribute."""


class UndefinedExpressionError(ChartBindError):
    """Raised once escalated when an attribute still evaluates to None."""

    def __init__(self, attribute: str, expression: str):
        self.attribute = attribute
        self.expression = expression
        super().__init__(f"{expression} is undefined (attribute {attribute})")


class WatcherStateError(ChartBindError, RuntimeError):
    """Raised on an invalid stabilization watcher lifecycle transition."""


class ExpressionNotAllowedError(ChartBindError, ValueError):
    """Raised when an attribute expression reaches for private or dunder names."""
