"""
Evaluation context for directive expressions.

A Scope is a key-value store that attribute expressions are evaluated against.
Other host logic writes to it freely between ticks; each ``digest()`` is one
tick and notifies every watcher registered on the scope and its children.

Key components:
- Scope: mutable mapping with parent fall-through, eval() and digest()
- Subscription: handle returned by Scope.watch(), released exactly once
- Pending / Ready / Errored: explicit results of Scope.evaluate()
"""

import ast
import builtins
import functools
import logging
from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from chartbind.errors import ExpressionNotAllowedError

logger = logging.getLogger(__name__)

# Expressions come from the host's own markup and run as trusted code. This is
# not a sandbox: it only keeps them to plain configuration.
_EXPRESSION_BUILTINS = {
    name: getattr(builtins, name)
    for name in (
        "abs", "all", "any", "bool", "dict", "enumerate", "filter", "float",
        "int", "isinstance", "len", "list", "map", "max", "min",
        "range", "reversed", "round", "set", "sorted", "str", "sum", "tuple", "zip",
    )
}


def _check_names(tree: ast.AST, expression: str) -> None:
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute) and node.attr.startswith("_"):
            raise ExpressionNotAllowedError(
                f"Private attribute {node.attr!r} is not allowed in expression {expression!r}"
            )
        if isinstance(node, ast.Name) and node.id.startswith("__"):
            raise ExpressionNotAllowedError(
                f"Dunder name {node.id!r} is not allowed in expression {expression!r}"
            )


@functools.lru_cache(maxsize=1024)
def _compile(expression: str):
    tree = ast.parse(expression.strip(), "<expression>", "eval")
    _check_names(tree, expression)
    return compile(tree, "<expression>", "eval")


@dataclass(frozen=True)
class Pending:
    """Expression evaluated to None: its dependencies are not there yet."""

    expression: str


@dataclass(frozen=True)
class Ready:
    """Expression evaluated to a defined value."""

    value: Any


@dataclass(frozen=True)
class Errored:
    """Expression raised while being evaluated."""

    expression: str
    cause: BaseException


EvalResult = Union[Pending, Ready, Errored]


class Subscription:
    """Handle for one scope watcher. cancel() is idempotent."""

    __slots__ = ("_scope", "_listener", "_active")

    def __init__(self, scope: "Scope", listener: Callable[["Scope"], Any]):
        self._scope = scope
        self._listener = listener
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._scope._remove_subscription(self)

    def deliver(self) -> None:
        if self._active:
            self._listener(self._scope)

    def __repr__(self):
        state = "active" if self._active else "cancelled"
        return f"<Subscription {self._listener!r} ({state})>"


class Scope(MutableMapping):
    """
    Key-value evaluation context with change notification.

    Reads fall through to the parent scope; writes always land on this scope.
    """

    def __init__(self, values: Optional[Dict[str, Any]] = None, parent: Optional["Scope"] = None):
        self._values: Dict[str, Any] = dict(values or {})
        self._parent = parent
        self._children: List["Scope"] = []
        self._subscriptions: List[Subscription] = []
        self._destroy_callbacks: List[Callable[[], Any]] = []
        self._version = 0
        self._digesting = False

    # Mapping interface

    def __getitem__(self, key: str) -> Any:
        if key in self._values:
            return self._values[key]
        if self._parent is not None:
            return self._parent[key]
        raise KeyError(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self._values[key] = value
        self._version += 1

    def __delitem__(self, key: str) -> None:
        del self._values[key]
        self._version += 1

    def __iter__(self):
        return iter(self.flatten())

    def __len__(self) -> int:
        return len(self.flatten())

    def __contains__(self, key) -> bool:
        return key in self._values or (self._parent is not None and key in self._parent)

    def __repr__(self):
        return f"Scope({self._values!r}, parent={'yes' if self._parent else 'no'})"

    @property
    def parent(self) -> Optional["Scope"]:
        return self._parent

    @property
    def version(self) -> int:
        """Number of writes made directly to this scope."""
        return self._version

    def flatten(self) -> Dict[str, Any]:
        """All visible bindings, nearest scope winning."""
        merged = self._parent.flatten() if self._parent is not None else {}
        merged.update(self._values)
        return merged

    def new_child(self, values: Optional[Dict[str, Any]] = None) -> "Scope":
        """Create a child scope digested together with this one."""
        child = Scope(values, parent=self)
        self._children.append(child)
        return child

    def on_destroy(self, callback: Callable[[], Any]) -> None:
        """Call callback() once when this scope is destroyed."""
        self._destroy_callbacks.append(callback)

    def destroy(self) -> None:
        """Detach from the parent, run destroy callbacks and drop every watcher on this subtree."""
        for child in list(self._children):
            child.destroy()
        callbacks, self._destroy_callbacks = self._destroy_callbacks, []
        for callback in callbacks:
            callback()
        if self._subscriptions:
            logger.debug(f"Destroying scope with {len(self._subscriptions)} active watchers")
        for subscription in list(self._subscriptions):
            subscription.cancel()
        if self._parent is not None:
            # Scopes compare by content, detach by identity
            self._parent._children = [c for c in self._parent._children if c is not self]

    # Evaluation

    def eval(self, expression: str) -> Any:
        """
        Evaluate a Python expression against the visible bindings.

        Raises whatever the expression raises, e.g. NameError for a binding
        that has not been assigned yet. Expressions touching ``_``-prefixed
        attributes or dunder names raise ExpressionNotAllowedError.
        """
        namespace = self.flatten()
        namespace["__builtins__"] = _EXPRESSION_BUILTINS
        return eval(_compile(expression), namespace)

    def evaluate(self, expression: str) -> EvalResult:
        """Evaluate without raising, classifying the outcome."""
        try:
            value = self.eval(expression)
        except Exception as e:
            return Errored(expression, e)
        if value is None:
            return Pending(expression)
        return Ready(value)

    # Change notification

    def watch(self, listener: Callable[["Scope"], Any]) -> Subscription:
        """Call listener(scope) on every digest until the subscription is cancelled."""
        subscription = Subscription(self, listener)
        self._subscriptions.append(subscription)
        return subscription

    def _remove_subscription(self, subscription: Subscription) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def digest(self) -> None:
        """
        Deliver one change notification to every watcher of this scope subtree.

        Watchers cancelled during the tick are not called. Exceptions raised by
        a watcher propagate to the caller.
        """
        if self._digesting:
            raise RuntimeError("digest already in progress")
        self._digesting = True
        try:
            for subscription in list(self._subscriptions):
                subscription.deliver()
            for child in list(self._children):
                child.digest()
        finally:
            self._digesting = False

    def apply(self, func: Optional[Callable[["Scope"], Any]] = None) -> Any:
        """Run func(scope), then digest. Mirrors how hosts push external changes."""
        result = func(self) if func is not None else None
        self.digest()
        return result
