"""
Barkeep protocol: the line format spoken to the host.

Format
- One line per item, newline-terminated:
      <indent * depth><text>[ | key=value key=value ...]
- The top section comes first, then a "---" line, then the body.
- A body Separator is a bare "---" line.
- Attribute pairs are sorted by key, so output is deterministic.

Escaping
- Text: "|" becomes "¦" and line breaks and tabs become spaces. Text is
  display-only, so it is sanitized rather than escaped. Text that would read
  as "---" or as the stream marker gets look-alike characters instead.
- Attribute values: "%", "|", "=", '"' and every line-break character are
  percent-encoded (UTF-8); a value holding whitespace is then wrapped in
  double quotes. unescape() (and parse()) recover the original value exactly.

Serialization is all-or-nothing: every item is validated before any output is
produced, so a ValidationError never leaves a half-written menu behind.
"""
import re
from types import MappingProxyType
from typing import NamedTuple
from urllib.parse import unquote

from .faults import *
from .flavors import Capabilities, Flavor, capabilities as resolve
from .menus import Content, Menu, Separator
from .utils import *

SEPARATOR = "---"

# every character str.splitlines() breaks on
_BREAKS = "\n\r\x0b\x0c\x1c\x1d\x1e\x85\u2028\u2029"

_TEXT = str.maketrans({"|": "¦", "\t": " "} | dict.fromkeys(_BREAKS, " "))
_VALUE = str.maketrans({
    "%": "%25",
    "|": "%7C",
    "=": "%3D",
    '"': "%22",
} | {
    character: "".join("%%%02X" % byte for byte in character.encode()) for character in _BREAKS
})
_FRAMING = str.maketrans({"-": "‐", "~": "∼"})
_PAIR = re.compile(r'(?P<key>[^\s=]+)=(?:"(?P<quoted>[^"]*)"|(?P<bare>\S*))')


def sanitize(text, /, framing=(SEPARATOR,)):
    """
    Make display text safe for a single protocol line.

    Text that would read as one of the framing lines (the separator, or a
    stream marker passed in framing) has its dashes and tildes swapped for
    look-alikes.
    """
    text = str(text).translate(_TEXT)
    if text.strip() in framing:
        return text.translate(_FRAMING)
    return text


def escape(value, /):
    """
    Encode an attribute value so it survives the line protocol.
    """
    escaped = str(value).translate(_VALUE)
    if any(character.isspace() for character in escaped):
        return '"%s"' % escaped
    return escaped


def unescape(value, /):
    """
    Invert escape().
    """
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1]
    return unquote(value)


def _target(flavor, capabilities):
    if isinstance(flavor, Capabilities):
        return coalesce(capabilities, flavor), "this host"
    if not isinstance(flavor, Flavor):
        raise TypeError("serialize() second argument must be a flavor")
    return coalesce(capabilities, resolve(flavor)), str(flavor)


def _framing(capabilities, /):
    if capabilities.stream_marker is None:
        return (SEPARATOR,)
    return SEPARATOR, capabilities.stream_marker


def _line(item, capabilities, label, /):
    pairs = item.attributes.render(capabilities, label=label)
    text = capabilities.indent * item.depth + sanitize(item.text, _framing(capabilities))
    if not pairs:
        return text
    return text + " | " + " ".join("%s=%s" % (key, escape(value)) for key, value in pairs)


def serialize(menu, flavor, /, *, capabilities=Unset):
    """
    Render a Menu into protocol text for one flavor.

    parameters
    - menu: Menu
    - flavor: Flavor | Capabilities
      Target dialect. A Capabilities row can be passed directly.
    - capabilities: Capabilities, optional
      Overrides the flavor's row (see barkeep.flavors.capabilities()).

    returns
    - str: the full output, one newline-terminated line per item.

    raises
    - ValidationError subclasses; nothing is returned on failure.
    """
    if not isinstance(menu, Menu):
        raise TypeError("serialize() first argument must be a menu")
    capabilities, label = _target(flavor, capabilities)

    lines = []
    for item in menu.top:
        if isinstance(item, Separator):
            raise MisplacedSeparatorError(
                "separators cannot appear in the top section",
                hint="move the separator to the body",
            )
        if item.depth:
            raise NestingDepthError(
                "top section items cannot be nested (depth %d)" % item.depth,
                hint="nest items in the body instead",
            )
        lines.append(_line(item, capabilities, label))

    lines.append(SEPARATOR)

    for item in menu.body:
        if isinstance(item, Separator):
            lines.append(SEPARATOR)
            continue
        if item.depth > capabilities.max_depth:
            raise NestingDepthError(
                "item %r is nested %d levels deep but %s renders at most %d"
                % (item.text, item.depth, label, capabilities.max_depth),
                hint="flatten the submenu",
            )
        lines.append(_line(item, capabilities, label))

    return "".join(line + "\n" for line in lines)


class Line(NamedTuple):
    """
    One line recovered by parse().

    - kind: "content", "separator" or "marker" (stream boundary).
    - section: "top" or "body".
    """
    kind: str
    text: str = ""
    depth: int = 0
    attributes: MappingProxyType = MappingProxyType({})
    section: str = "top"


def parse(text, /, *, capabilities=Unset):
    """
    Read protocol text back into Line records.

    This is the reference reader for serialize(): text is split at the first
    " | ", attribute pairs are tokenized (honoring double quotes) and unescaped.
    A stream marker line starts a new menu, so the section resets to "top".

    parameters
    - text: str
    - capabilities: Capabilities, optional
      Supplies the indent and stream marker (SwiftBar's row by default).
    """
    capabilities = coalesce(capabilities, Flavor.SWIFTBAR.capabilities)
    indent = capabilities.indent
    section = "top"
    lines = []

    rows = text.split("\n")
    if rows and not rows[-1]:
        rows.pop()
    for raw in rows:
        raw = raw.removesuffix("\r")
        if capabilities.stream_marker is not None and raw == capabilities.stream_marker:
            lines.append(Line("marker", raw, section=section))
            section = "top"
            continue
        if raw == SEPARATOR:
            lines.append(Line("separator", raw, section=section))
            section = "body"
            continue

        depth = 0
        while indent and raw.startswith(indent * (depth + 1)):
            depth += 1
        content = raw[len(indent) * depth:]

        body, bar, tail = content.partition("|")
        attributes = {}
        if bar:
            for match in _PAIR.finditer(tail):
                value = match["quoted"] if match["quoted"] is not None else match["bare"]
                attributes[match["key"]] = unquote(value)
            body = body.removesuffix(" ")
        lines.append(Line("content", body, depth, MappingProxyType(attributes), section))

    return lines


__all__ = (
    "SEPARATOR",
    "Line",
    "sanitize",
    "escape",
    "unescape",
    "serialize",
    "parse",
)
