r"""
Barkeep attributes: per-item display and behavior options.

Overview
- Values
  • Color: a parsed color, optionally with a dark-mode variant (themed color).
  • Image: image data (raw bytes or already-encoded base64), plain or template.
  • Params: a shell command plus its parameters.

- Storage
  • Attributes: a mapping from option name to value. Options are drawn from a
    fixed set (see barkeep.flavors.ATTRIBUTES) and set through builder methods
    named after the options, each returning the Attributes for chaining.

Contract
- Setting an option never fails because of its value: Attributes are just
  storage. Unknown option names are still rejected immediately (TypeError).
- image and sf_symbol are mutually exclusive: setting one clears the other.
  This is the only auto-correcting rule.
- Validity is checked by render(capabilities), which either returns every
  protocol key/value pair or raises a ValidationError; there is no partial result.

Rendered keys
    color            → color=#rrggbb[,#rrggbb]
    background_color → bgcolor=#rrggbb[,#rrggbb]
    font_family      → font=NAME
    font_size        → size=N
    href             → href=URL
    shell_command    → bash=CMD (xbar: shell=CMD)
    shell_params     → param1=… paramN=…
    terminal         → terminal=true|false (false when a command is set and terminal is not)
    refresh          → refresh=true
    alternate        → alternate=true
    image            → image=BASE64 | templateImage=BASE64
    sf_symbol        → sfimage=NAME
    trim/emoji/ansi  → trim= / emojize= / ansi= (true|false)

Quick example:
    >>> from barkeep.attributes import Attributes
    >>> attributes = Attributes().color("#ff0000").font_size(12).shell("/usr/bin/say", "hi")
"""
import base64
import binascii
import colorsys
import re
from urllib.parse import urlsplit

import webcolors

from .faults import *
from .flavors import ATTRIBUTES
from .utils import *

_HEX = re.compile(r"#(?P<digits>[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})")
_ALPHA = r"(?:\s*,\s*(?P<a>\d*\.?\d+%?))?"
_RGB = re.compile(
    r"rgba?\(\s*(?P<r>\d{1,3})\s*,\s*(?P<g>\d{1,3})\s*,\s*(?P<b>\d{1,3})" + _ALPHA + r"\s*\)"
)
_HSL = re.compile(
    r"hsla?\(\s*(?P<h>-?\d*\.?\d+)(?:deg)?\s*,\s*(?P<s>\d*\.?\d+)%\s*,\s*(?P<l>\d*\.?\d+)%" + _ALPHA + r"\s*\)"
)
_NAME = re.compile(r"[a-z]+")


def _parse_component(text, /):
    """
    Parse one color component (light or dark) into an (r, g, b) tuple.

    Alpha channels are accepted and ignored; CSS names resolve through webcolors.
    """
    if not isinstance(text, str):
        raise TypeError("color must be a string")
    text = text.strip()
    if match := _HEX.fullmatch(text):
        digits = match["digits"]
        if len(digits) in (3, 4):
            digits = "".join(digit * 2 for digit in digits)
        return tuple(int(digits[index:index + 2], 16) for index in (0, 2, 4))
    if match := _RGB.fullmatch(text):
        channels = tuple(int(match[name]) for name in "rgb")
        if any(channel > 255 for channel in channels):
            raise ValueError("color channels must be between 0 and 255, got %r" % text)
        return channels
    if match := _HSL.fullmatch(text):
        saturation, lightness = float(match["s"]), float(match["l"])
        if saturation > 100 or lightness > 100:
            raise ValueError("saturation and lightness must be percentages, got %r" % text)
        channels = colorsys.hls_to_rgb(float(match["h"]) % 360 / 360, lightness / 100, saturation / 100)
        return tuple(round(channel * 255) for channel in channels)
    if _NAME.fullmatch(name := text.lower()):
        try:
            return tuple(webcolors.name_to_rgb(name))
        except ValueError:
            raise ValueError("unknown color name %r" % text) from None
    raise ValueError("unparsable color %r" % text)


def _format_component(component, /):
    return "#%02x%02x%02x" % component


class Color(metaclass=ModelType):
    """
    A parsed color, optionally themed (separate dark-mode variant).

    Accepted forms: "#rgb", "#rgba", "#rrggbb", "#rrggbbaa", "rgb(r, g, b)",
    "rgba(r, g, b, a)", "hsl(h, s%, l%)", "hsla(h, s%, l%, a)", an (r, g, b)
    tuple, or a CSS color name ("orange"). Alpha is ignored; every form
    renders as #rrggbb.
    """

    __introspectable__ = ("light", "dark")

    def __init__(self, light, /, dark=None):
        self._light = self._coerce(light)
        self._dark = None if dark is None else self._coerce(dark)

    @staticmethod
    def _coerce(value):
        if isinstance(value, Color):
            return value.light
        if isinstance(value, tuple):
            if len(value) != 3 or not all(isinstance(channel, int) and 0 <= channel <= 255 for channel in value):
                raise ValueError("color tuples must hold three integers between 0 and 255")
            return value
        return _parse_component(value)

    @classmethod
    def parse(cls, text, /):
        """
        Parse "light" or "light,dark" into a Color.
        """
        if not isinstance(text, str):
            raise TypeError("Color.parse() argument must be a string")
        parts = re.split(r",(?![^(]*\))", text)
        if len(parts) > 2:
            raise ValueError("a color holds at most a light and a dark variant, got %r" % text)
        light, dark = parts if len(parts) == 2 else (parts[0], None)
        return cls(light, dark)

    @property
    def themed(self):
        return self._dark is not None

    def __str__(self):
        if self._dark is None:
            return _format_component(self._light)
        return _format_component(self._light) + "," + _format_component(self._dark)

    def __eq__(self, other):
        if not isinstance(other, Color):
            return NotImplemented
        return (self._light, self._dark) == (other._light, other._dark)

    def __hash__(self):
        return hash((Color, self._light, self._dark))


class Image(metaclass=ModelType):
    """
    Image data attached to an item.

    - data: bytes (encoded on render) or str (already base64-encoded).
    - template: render as templateImage= (the host tints it to match the theme).
    """

    __introspectable__ = ("data", "template")

    def __init__(self, data, /, template=False):
        self._data = data
        self._template = bool(template)

    def encode(self):
        """
        Return the base64 payload, raising ValueError for unusable data.
        """
        if isinstance(self._data, bytes | bytearray | memoryview):
            if not self._data:
                raise ValueError("image data cannot be empty")
            return base64.b64encode(self._data).decode("ascii")
        if isinstance(self._data, str):
            if not (payload := "".join(self._data.split())):
                raise ValueError("image data cannot be empty")
            try:
                base64.b64decode(payload, validate=True)
            except binascii.Error:
                raise ValueError("image data is not valid base64") from None
            return payload
        raise ValueError("image data must be bytes or a base64 string")

    def __eq__(self, other):
        if not isinstance(other, Image):
            return NotImplemented
        return (self._data, self._template) == (other._data, other._template)

    def __hash__(self):
        return hash((Image, bytes(self._data) if not isinstance(self._data, str) else self._data, self._template))


class Params(metaclass=ModelType):
    """
    A shell command plus positional parameters (all stringified).
    """

    __introspectable__ = ("command", "params")

    def __init__(self, command, /, *params):
        self._command = str(command)
        self._params = tuple(map(str, params))

    def __iter__(self):
        yield self._command
        yield from self._params

    def __eq__(self, other):
        if not isinstance(other, Params):
            return NotImplemented
        return (self._command, self._params) == (other._command, other._params)

    def __hash__(self):
        return hash((Params, self._command, self._params))


def _setter(name, /, *, flag=False):
    """
    Build a chaining builder method for a single option.

    Flag options default their value to True so `.refresh()` reads naturally.
    """
    if flag:
        def method(self, value=True, /):
            return self.set(name, value)
    else:
        def method(self, value, /):
            return self.set(name, value)
    method.__doc__ = "Set the %r option (None clears it) and return self." % name
    return rename(method, name)


def _themed(light, dark, /):
    if dark is Unset or light is None:
        return light
    if isinstance(light, str) and isinstance(dark, str):
        return light + "," + dark
    return Color(light, dark)


class Attributes(metaclass=ModelType):
    """
    Storage for the options attached to one content item.

    Behaves as a read-only mapping (name → value) for inspection; mutation goes
    through set() or the builder methods named after each option.
    """

    __displayable__ = ("options",)

    def __init__(self, options=Unset, /, **kwargs):
        self._options = {}
        for name, value in {**dict(coalesce(options, {})), **kwargs}.items():
            self.set(name, value)

    @property
    def options(self):
        return {name: self._options[name] for name in self}

    def set(self, name, value, /):
        """
        Store (or, with None, clear) an option and return self.

        Setting image clears sf_symbol and vice versa.
        """
        if name not in ATTRIBUTES:
            raise TypeError(f"{type(self).__typename__} has no option {name!r}")
        if value is None:
            self._options.pop(name, None)
            return self
        if name == "image":
            self._options.pop("sf_symbol", None)
        elif name == "sf_symbol":
            self._options.pop("image", None)
        if name == "shell_params" and not isinstance(value, str):
            value = list(value)
        self._options[name] = value
        return self

    # ── builder methods (one per option) ─────────────────────────────────────
    def color(self, value, dark=Unset, /):
        """
        Set the text color, optionally with a dark-mode variant (themed color).
        """
        return self.set("color", _themed(value, dark))

    def background_color(self, value, dark=Unset, /):
        return self.set("background_color", _themed(value, dark))

    font_family = _setter("font_family")
    font_size = _setter("font_size")
    href = _setter("href")
    shell_command = _setter("shell_command")
    shell_params = _setter("shell_params")
    refresh = _setter("refresh", flag=True)
    alternate = _setter("alternate", flag=True)
    sf_symbol = _setter("sf_symbol")
    terminal = _setter("terminal", flag=True)
    trim = _setter("trim", flag=True)
    emoji = _setter("emoji", flag=True)
    ansi = _setter("ansi", flag=True)

    def image(self, data, /, template=False):
        """
        Attach an image (clears sf_symbol). Accepts an Image or raw data.
        """
        return self.set("image", data if isinstance(data, Image) or data is None else Image(data, template))

    def template_image(self, data, /):
        return self.image(data if isinstance(data, Image) else Image(data, True))

    def shell(self, command, /, *params, terminal=Unset):
        """
        Run a shell command (with parameters) when the item is clicked.
        """
        self.set("shell_command", command)
        self.set("shell_params", list(params) if params else None)
        return self.set("terminal", coalesce(terminal))

    def run(self, params, /, *, terminal=Unset):
        """
        Run prepared Params (e.g. from CommandDescriptor.params()) when clicked.
        """
        if not isinstance(params, Params):
            raise TypeError(f"{type(self).__typename__} run() argument must be params")
        return self.shell(params.command, *params.params, terminal=terminal)

    # ── mapping protocol (read-only) ─────────────────────────────────────────
    def __getitem__(self, name):
        return self._options[name]

    def __iter__(self):
        return (name for name in ATTRIBUTES if name in self._options)

    def __len__(self):
        return len(self._options)

    def __contains__(self, name):
        return name in self._options

    def __bool__(self):
        return bool(self._options)

    def __eq__(self, other):
        if not isinstance(other, Attributes):
            return NotImplemented
        return self._options == other._options

    __hash__ = None

    def get(self, name, default=None, /):
        return self._options.get(name, default)

    def keys(self):
        return list(self)

    def items(self):
        return [(name, self._options[name]) for name in self]

    def copy(self):
        return type(self)(self._options)

    # ── validation and rendering ─────────────────────────────────────────────
    def render(self, capabilities, /, *, label="this host"):
        """
        Validate every option against a flavor's capabilities and return the
        protocol key/value pairs (raw, unescaped), sorted by key.

        Parameters
        - capabilities: barkeep.flavors.Capabilities
        - label: host name used in diagnostics.

        Raises
        - UnsupportedAttributeError: an option (or themed color) the host does not accept.
        - InvalidAttributeError: a value outside its domain.
        - ConflictingAttributesError: an option that needs another one (e.g. params without a command).
        """
        for name in self:
            if name not in capabilities.attributes:
                raise UnsupportedAttributeError(
                    "attribute %r is not supported by %s" % (name, label),
                    hint="remove %r or target a host that supports it" % name,
                    attribute=name,
                )

        rendered = {}

        def invalid(name, reason):
            return InvalidAttributeError(
                "attribute %r %s" % (name, reason),
                hint="fix the value passed to %r" % name,
                attribute=name,
            )

        def boolean(name):
            if not isinstance(value := self._options[name], bool):
                raise invalid(name, "must be a boolean, got %r" % (value,))
            return value

        def text(name):
            if not isinstance(value := self._options[name], str) or not value.strip():
                raise invalid(name, "must be a non-empty string, got %r" % (value,))
            return value

        for name, key in (("color", "color"), ("background_color", "bgcolor")):
            if name not in self:
                continue
            value = self._options[name]
            try:
                color = value if isinstance(value, Color) else Color.parse(value) if isinstance(value, str) else Color(value)
            except (TypeError, ValueError) as error:
                raise invalid(name, "is not a color (%s)" % error) from None
            if color.themed and not capabilities.themed_colors:
                raise UnsupportedAttributeError(
                    "themed colors for %r are not supported by %s" % (name, label),
                    hint="drop the dark-mode variant of %r" % name,
                    attribute=name,
                )
            rendered[key] = str(color)

        if "font_family" in self:
            rendered["font"] = text("font_family")

        if "font_size" in self:
            size = self._options["font_size"]
            if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
                raise invalid("font_size", "must be a positive integer, got %r" % (size,))
            rendered["size"] = str(size)

        if "href" in self:
            href = text("href")
            try:
                parts = urlsplit(href)
            except ValueError:
                parts = None
            if not parts or not parts.scheme or not (parts.netloc or parts.path):
                raise invalid("href", "must be an absolute URL, got %r" % href)
            rendered["href"] = href

        if "shell_command" in self:
            rendered[capabilities.shell_key] = text("shell_command")
            if "terminal" not in self:
                rendered["terminal"] = "false"
        else:
            for name in ("shell_params", "terminal"):
                if name in self:
                    raise ConflictingAttributesError(
                        "attribute %r requires 'shell_command'" % name,
                        hint="set a shell command or remove %r" % name,
                        attribute=name,
                    )

        if "shell_params" in self:
            params = self._options["shell_params"]
            if isinstance(params, str):
                raise invalid("shell_params", "must be a sequence of strings, not a string")
            if capabilities.max_params is not None and len(params) > capabilities.max_params:
                raise InvalidAttributeError(
                    "attribute 'shell_params' holds %d parameters but %s accepts at most %d"
                    % (len(params), label, capabilities.max_params),
                    hint="pass fewer parameters or target a host without this limit",
                    attribute="shell_params",
                )
            for index, param in enumerate(params, 1):
                rendered["param%d" % index] = str(param)

        if "terminal" in self:
            rendered["terminal"] = "true" if boolean("terminal") else "false"

        for name, key in (("refresh", "refresh"), ("alternate", "alternate")):
            if name in self and boolean(name):
                rendered[key] = "true"

        for name, key in (("trim", "trim"), ("emoji", "emojize"), ("ansi", "ansi")):
            if name in self:
                rendered[key] = "true" if boolean(name) else "false"

        if "image" in self:
            image = self._options["image"]
            if not isinstance(image, Image):
                image = Image(image)
            try:
                payload = image.encode()
            except ValueError as error:
                raise invalid("image", "is unusable (%s)" % error) from None
            rendered["templateImage" if image.template else "image"] = payload

        if "sf_symbol" in self:
            rendered["sfimage"] = text("sf_symbol")

        return tuple(sorted(rendered.items()))


__all__ = (
    "Color",
    "Image",
    "Params",
    "Attributes",
)
