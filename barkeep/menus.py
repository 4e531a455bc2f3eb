"""
Barkeep menus: the renderable structure a plugin produces.

Overview
- Content: a line of text with Attributes and a nesting depth (0 is the top level).
- Separator: a horizontal divider (only valid in the body).
- Menu: an ordered top section (shown in the bar, cycled by the host when it
  holds several items) and an ordered body (shown in the dropdown).
- MenuBuilder: accumulates items in insertion order, tracking the nesting
  depth through submenu() blocks.

Invariants
- Order is significant and preserved: items are serialized in insertion order.
- The top section never holds a Separator (MisplacedSeparatorError).
"""
from contextlib import contextmanager

from .attributes import Attributes
from .faults import MisplacedSeparatorError
from .utils import *


class Content(metaclass=ModelType):
    """
    A text line with attributes and a nesting depth.

    parameters
    - text: str
      Display text. Characters that would corrupt the line protocol are
      sanitized on output, never rejected.
    - attributes: Attributes | Mapping
      Options for this line (copied, so later edits to the source do not leak in).
    - depth: int
      Submenu level (0 is a direct child of the dropdown).
    """

    __introspectable__ = ("text", "attributes", "depth")

    def __init__(self, text, /, attributes=Unset, depth=0):
        if isinstance(depth, bool) or not isinstance(depth, int):
            raise TypeError(f"{type(self).__typename__} 'depth' must be an integer")
        if depth < 0:
            raise ValueError(f"{type(self).__typename__} 'depth' must be non-negative")
        self._text = str(text)
        self._attributes = Attributes(coalesce(attributes, {}))
        self._depth = depth

    @property
    def attributes(self):
        return self._attributes.copy()

    def nested(self, depth=1, /):
        """
        Return a copy of this item moved `depth` levels deeper.
        """
        return type(self)(self._text, self._attributes, self._depth + depth)

    def __eq__(self, other):
        if not isinstance(other, Content):
            return NotImplemented
        return (self._text, self._attributes, self._depth) == (other._text, other._attributes, other._depth)

    __hash__ = None


class Separator(metaclass=ModelType):
    """
    A divider line in the dropdown.
    """

    def __eq__(self, other):
        if not isinstance(other, Separator):
            return NotImplemented
        return True

    def __hash__(self):
        return hash(Separator)


def _check(item, /):
    if not isinstance(item, Content | Separator):
        raise TypeError("menu items must be content or separators, got %r" % type(item).__name__)
    return item


class Menu(metaclass=ModelType):
    """
    Top section plus body, both ordered.

    Both sections are exposed as tuples; mutation goes through append_top()
    and append_body().
    """

    __displayable__ = ("top", "body")

    def __init__(self, top=(), body=()):
        self._top = []
        self._body = []
        for item in top:
            self.append_top(item)
        for item in body:
            self.append_body(item)

    @property
    def top(self):
        return tuple(self._top)

    @property
    def body(self):
        return tuple(self._body)

    def append_top(self, item, /):
        """
        Append an item to the top section. Separators are rejected.
        """
        if isinstance(_check(item), Separator):
            raise MisplacedSeparatorError(
                "separators cannot appear in the top section",
                hint="move the separator to the body",
            )
        self._top.append(item)
        return self

    def append_body(self, item, /):
        self._body.append(_check(item))
        return self

    @classmethod
    def from_items(cls, items, /):
        """
        Build a menu from a flat item list: everything before the first
        separator is the top section, everything after it is the body.
        """
        menu, section = cls(), "top"
        for item in items:
            if section == "top" and isinstance(_check(item), Separator):
                section = "body"
                continue
            (menu.append_top if section == "top" else menu.append_body)(item)
        return menu

    def __len__(self):
        return len(self._top) + len(self._body)

    def __eq__(self, other):
        if not isinstance(other, Menu):
            return NotImplemented
        return (self._top, self._body) == (other._top, other._body)

    __hash__ = None


class MenuBuilder:
    """
    Accumulate a Menu item by item.

    Quick example:
        >>> builder = MenuBuilder()
        >>> builder.title("☀️ 21°")
        >>> builder.item("Forecast", href="https://example.com")
        >>> with builder.submenu():
        ...     builder.item("Tomorrow: 19°")
        >>> menu = builder.build()
    """

    def __init__(self):
        self._menu = Menu()
        self._depth = 0

    @property
    def depth(self):
        return self._depth

    @staticmethod
    def _attributes(attributes, options):
        if attributes is not Unset and options:
            raise TypeError("pass either an attributes object or keyword options, not both")
        return Attributes(**options) if attributes is Unset else attributes

    def title(self, text, attributes=Unset, /, **options):
        """
        Append a top-section item (always at depth 0).
        """
        self._menu.append_top(Content(text, self._attributes(attributes, options)))
        return self

    def item(self, text, attributes=Unset, /, **options):
        """
        Append a body item at the current submenu depth.
        """
        self._menu.append_body(Content(text, self._attributes(attributes, options), self._depth))
        return self

    def separator(self):
        self._menu.append_body(Separator())
        return self

    def extend(self, items, /):
        """
        Append body items, shifting Content by the current depth.
        """
        for item in items:
            self._menu.append_body(item.nested(self._depth) if isinstance(item, Content) else _check(item))
        return self

    @contextmanager
    def submenu(self):
        self._depth += 1
        try:
            yield self
        finally:
            self._depth -= 1

    def build(self):
        """
        Return the accumulated Menu (a copy, so the builder can keep going).
        """
        return Menu(self._menu.top, self._menu.body)


__all__ = (
    "Content",
    "Separator",
    "Menu",
    "MenuBuilder",
)
