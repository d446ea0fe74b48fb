"""
Stabilization watcher.

Declarative attributes may reference scope bindings that only appear later
(data loaded after the first render). The watcher re-evaluates every relevant
attribute on each scope tick and fires its callback once, on the first tick
where all of them evaluate to a defined value.

Until the escalation timer fires, evaluation errors and undefined values mean
"not ready yet". When it fires the watcher probes once more straight away,
and from then on they propagate out of the probe: a permanently broken
attribute is reported instead of the chart silently never rendering.

States:
    PENDING -> STABLE   all relevant attributes defined; callback runs once
    PENDING -> BROKEN   failure after escalation; error propagates
"""

import enum
import logging
from collections.abc import Mapping
from typing import Any, Callable, List, Optional, Tuple

from chartbind.config import DirectiveConfig, get_directive_config
from chartbind.errors import UndefinedExpressionError, WatcherStateError
from chartbind.naming import is_prefixed
from chartbind.scheduling import EscalationTimer, Scheduler
from chartbind.scope import Errored, EvalResult, Ready, Scope, Subscription

logger = logging.getLogger(__name__)


class WatchState(enum.Enum):
    PENDING = "pending"
    STABLE = "stable"
    BROKEN = "broken"


class StabilizationWatcher:
    """
    Gate that runs on_stable(values) exactly once, when the attributes settle.

    Args:
        scope: Scope the attribute expressions are evaluated against
        attrs: Attribute name -> expression
        on_stable: Called with the ordered list of probed values
        scheduler: Runs the escalation timer
        config: Directive settings; the active configuration if omitted
    """

    def __init__(
        self,
        scope: Scope,
        attrs: Mapping,
        on_stable: Callable[[List[Any]], Any],
        scheduler: Scheduler,
        config: Optional[DirectiveConfig] = None,
    ):
        self._scope = scope
        self._attrs = attrs
        self._on_stable = on_stable
        self._config = config or get_directive_config()
        self._timer = EscalationTimer(scheduler, self._config.escalation_delay, on_fire=self._escalate)
        self._subscription: Optional[Subscription] = None
        self._state = WatchState.PENDING
        self._cancelled = False
        self._probing = False
        self._ticks = 0
        self.values: Optional[List[Any]] = None
        self.result: Any = None

    def __repr__(self):
        return f"<StabilizationWatcher {self._state.value} after {self._ticks} ticks>"

    @property
    def state(self) -> WatchState:
        return self._state

    @property
    def escalated(self) -> bool:
        return self._timer.escalated

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def ticks(self) -> int:
        """Number of probes run while pending, the one at escalation included."""
        return self._ticks

    @property
    def timer(self) -> EscalationTimer:
        return self._timer

    def relevant_attributes(self) -> List[str]:
        """Prefixed attributes other than the chart kind and group, in markup order."""
        reserved = self._config.reserved_attributes
        return [
            name for name in self._attrs
            if is_prefixed(name, self._config.prefix) and name not in reserved
        ]

    def probe(self) -> List[Tuple[str, EvalResult]]:
        """Evaluate every relevant attribute in the current scope state."""
        return [(name, self._scope.evaluate(self._attrs[name])) for name in self.relevant_attributes()]

    def start(self) -> "StabilizationWatcher":
        """Subscribe to scope ticks and start the escalation timer."""
        if self._subscription is not None or self._state is not WatchState.PENDING or self._cancelled:
            raise WatcherStateError("Stabilization watcher can only be started once")
        self._subscription = self._scope.watch(self._on_tick)
        self._scope.on_destroy(self.cancel)
        self._timer.start()
        return self

    def cancel(self) -> None:
        """Stop watching without building (the host element went away)."""
        if self._state is WatchState.PENDING:
            self._cancelled = True
        self._release()

    def _release(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        self._timer.cancel()

    def _break(self, error: BaseException) -> BaseException:
        self._state = WatchState.BROKEN
        self._release()
        return error

    def _escalate(self) -> None:
        # Re-probe as soon as the window closes; a broken attribute raises from the timer callback
        self._on_tick(self._scope)

    def _on_tick(self, scope: Scope) -> None:
        if self._state is not WatchState.PENDING or self._cancelled or self._probing:
            return
        self._probing = True
        try:
            self._probe_tick()
        finally:
            self._probing = False

    def _probe_tick(self) -> None:
        self._ticks += 1
        escalated = self._timer.poll()
        results = self.probe()

        unresolved = [(name, result) for name, result in results if not isinstance(result, Ready)]
        if unresolved:
            if not escalated:
                name, result = unresolved[0]
                if isinstance(result, Errored):
                    logger.debug(
                        f"Tick {self._ticks}: unable to evaluate {name}: {result.expression!r} "
                        f"({type(result.cause).__name__}: {result.cause})"
                    )
                else:
                    logger.debug(f"Tick {self._ticks}: {name} is still undefined")
                return

            # A real exception is reported ahead of an undefined value
            for name, result in unresolved:
                if isinstance(result, Errored):
                    logger.error(f"Unable to evaluate {name}: {result.expression!r}")
                    raise self._break(result.cause)
            name, result = unresolved[0]
            raise self._break(UndefinedExpressionError(name, result.expression))

        # Released before the build; ticks delivered during it are ignored
        self._state = WatchState.STABLE
        self._release()
        self.values = [result.value for _, result in results]
        logger.debug(f"Attributes stable after {self._ticks} ticks")
        self.result = self._on_stable(self.values)
