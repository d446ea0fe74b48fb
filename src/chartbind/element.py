"""
Host element surface.

Minimal element model the directive links against: the element's declarative
attributes, its subtree (to find the reset control) and click handling. Hosts
with a real document model adapt their nodes to this interface.
"""

import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from chartbind.naming import normalize_attribute_name

logger = logging.getLogger(__name__)


class AttributeSet(Mapping):
    """
    Read-only, ordered mapping of normalized attribute name to raw expression.

    ``raw_names`` maps each normalized name back to its markup spelling.
    """

    def __init__(self, attributes: Optional[Any] = None):
        items = attributes.items() if isinstance(attributes, Mapping) else (attributes or ())
        self._values: Dict[str, str] = {}
        self._raw_names: Dict[str, str] = {}
        for raw_name, expression in items:
            name = normalize_attribute_name(raw_name)
            if name in self._values:
                logger.debug(f"Attribute {raw_name!r} shadows {self._raw_names[name]!r} as {name}")
            self._values[name] = expression
            self._raw_names[name] = raw_name

    def __getitem__(self, name: str) -> str:
        return self._values[name]

    def __iter__(self):
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self):
        return f"AttributeSet({self._values!r})"

    @property
    def raw_names(self) -> Dict[str, str]:
        return dict(self._raw_names)


class Event:
    """A dispatched element event."""

    def __init__(self, type: str, target: "Element"):
        self.type = type
        self.target = target
        self.default_prevented = False

    def prevent_default(self) -> None:
        self.default_prevented = True


def _parse_selector(selector: str) -> Tuple[str, Tuple[str, ...]]:
    """Split a ``tag.class1.class2`` selector; tag may be empty or ``*``."""
    tag, *classes = selector.strip().split(".")
    return ("" if tag == "*" else tag.lower()), tuple(c for c in classes if c)


class Element:
    """A node of the host markup."""

    def __init__(
        self,
        tag: str = "div",
        attributes: Optional[Any] = None,
        children: Iterable["Element"] = (),
        classes: Iterable[str] = (),
    ):
        self.tag = tag.lower()
        self.attributes = AttributeSet(attributes)
        self.classes = set(classes)
        self.children: List["Element"] = list(children)
        self.style: Dict[str, str] = {}
        self.html_attributes: Dict[str, str] = {}
        self._listeners: Dict[str, List[Callable[[Event], Any]]] = {}

    def __repr__(self):
        classes = "".join(f".{c}" for c in sorted(self.classes))
        return f"<Element {self.tag}{classes}>"

    def append(self, child: "Element") -> "Element":
        self.children.append(child)
        return child

    def iter_descendants(self):
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def matches(self, selector: str) -> bool:
        tag, classes = _parse_selector(selector)
        return (not tag or tag == self.tag) and self.classes.issuperset(classes)

    def query_selector(self, selector: str) -> Optional["Element"]:
        """First descendant (depth-first, document order) matching selector."""
        return next((el for el in self.iter_descendants() if el.matches(selector)), None)

    def set_attribute(self, name: str, value: str) -> None:
        self.html_attributes[name] = value

    def get_attribute(self, name: str) -> Optional[str]:
        return self.html_attributes.get(name)

    def on(self, event_type: str, handler: Callable[[Event], Any]) -> None:
        self._listeners.setdefault(event_type, []).append(handler)

    def trigger(self, event_type: str) -> Event:
        """Dispatch an event to this element's handlers and return it."""
        event = Event(event_type, self)
        for handler in list(self._listeners.get(event_type, ())):
            handler(event)
        return event

    def click(self) -> Event:
        return self.trigger("click")
