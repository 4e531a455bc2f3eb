"""
Barkeep flavors: host dialects, their capability table, and host detection.

Overview
- Flavor: the closed set of host applications speaking the menu line protocol.
  • BITBAR: the original, discontinued implementation with just the base
    features. It is also what a plugin sees when run on its own.
  • XBAR: BitBar's successor (prefers "shell=" over "bash=", unbounded params).
  • SWIFTBAR: adds SF Symbols, background colors and streaming.

- Capabilities: a data-only record describing what a flavor accepts. The
  serializer never hard-codes a host limit; it always asks the table.
- CAPABILITIES: the read-only table, keyed by Flavor.
- capabilities(flavor, **overrides): a copy of a flavor's row with soft caps
  (max_params, max_depth, ...) replaced, for hosts whose limits drift.
- Host: the detected host, as reported by environment variables.

Detection
- The environment is read once per Host.detect() call:
  • SWIFTBAR or SWIFTBAR_BUILD present  → SWIFTBAR
  • XBAR or XBARDarkMode present         → XBAR
  • otherwise                            → BITBAR (most conservative)
- Passing an explicit flavor to the runtime (assume-flavor mode) skips this.
"""
import os
import re
from enum import Enum
from types import MappingProxyType
from typing import NamedTuple

from .faults import UnknownHostVersionWarning, FaultCode, trigger
from .utils import *

# Attribute names understood by every flavor.
BASE_ATTRIBUTES = frozenset({
    "color",
    "font_family",
    "font_size",
    "href",
    "shell_command",
    "shell_params",
    "refresh",
    "alternate",
    "image",
    "terminal",
    "trim",
    "emoji",
    "ansi",
})

# Every attribute name known to barkeep, in rendering-independent order.
ATTRIBUTES = (
    "color",
    "background_color",
    "font_family",
    "font_size",
    "href",
    "shell_command",
    "shell_params",
    "refresh",
    "alternate",
    "image",
    "sf_symbol",
    "terminal",
    "trim",
    "emoji",
    "ansi",
)


class Capabilities(NamedTuple):
    """
    What a flavor accepts.

    Fields
    - attributes: names of the attribute options the host understands.
    - max_params: cap on shell parameters (None means unbounded).
    - max_depth: deepest submenu level the host renders (0 is the top level).
    - themed_colors: whether a color may carry a separate dark-mode variant.
    - stream_marker: line separating successive menus while streaming
      (None means the host cannot stream).
    - shell_key: attribute key used for the shell command.
    - indent: prefix emitted once per nesting level.
    """
    attributes: frozenset
    max_params: int | None
    max_depth: int
    themed_colors: bool
    stream_marker: str | None
    shell_key: str
    indent: str = "\t"


class Flavor(Enum):
    BITBAR = "BitBar"
    XBAR = "xbar"
    SWIFTBAR = "SwiftBar"

    def __str__(self):
        return self.value

    @property
    def capabilities(self):
        """
        This flavor's row in the capability table.
        """
        return CAPABILITIES[self]

    @classmethod
    def detect(cls, environ=Unset, /):
        """
        Guess the running host from environment variables.

        Any unrecognised host is reported as BITBAR, since its feature set is
        a subset of every other flavor's.
        """
        environ = coalesce(environ, os.environ)
        if "SWIFTBAR" in environ or "SWIFTBAR_BUILD" in environ:
            return cls.SWIFTBAR
        if "XBARDarkMode" in environ or "XBAR" in environ:
            return cls.XBAR
        return cls.BITBAR


CAPABILITIES = MappingProxyType({
    # BitBar only supports up to five parameters for commands.
    Flavor.BITBAR: Capabilities(
        attributes=BASE_ATTRIBUTES,
        max_params=5,
        max_depth=5,
        themed_colors=False,
        stream_marker=None,
        shell_key="bash",
    ),
    Flavor.XBAR: Capabilities(
        attributes=BASE_ATTRIBUTES,
        max_params=None,
        max_depth=5,
        themed_colors=True,
        stream_marker=None,
        shell_key="shell",
    ),
    Flavor.SWIFTBAR: Capabilities(
        attributes=BASE_ATTRIBUTES | {"background_color", "sf_symbol"},
        max_params=None,
        max_depth=5,
        themed_colors=True,
        stream_marker="~~~",
        shell_key="bash",
    ),
})


def capabilities(flavor, /, **overrides):
    """
    Return a flavor's capabilities, optionally with some fields replaced.

    Parameters
    - flavor: Flavor | Capabilities
      A flavor (looked up in CAPABILITIES) or an already-resolved row.
    - **overrides: any Capabilities field. "attributes" accepts any iterable
      of attribute names; unknown names are rejected.

    Raises
    - TypeError: flavor is neither a Flavor nor Capabilities, or an override
      names an unknown field.
    - ValueError: an override carries an out-of-domain value.
    """
    if isinstance(flavor, Flavor):
        row = CAPABILITIES[flavor]
    elif isinstance(flavor, Capabilities):
        row = flavor
    else:
        raise TypeError("capabilities() argument must be a flavor")

    if unknown := set(overrides) - set(Capabilities._fields):
        raise TypeError(f"capabilities() got unknown fields {sorted(unknown)!r}")

    if "attributes" in overrides:
        attributes = frozenset(overrides["attributes"])
        if unknown := attributes - set(ATTRIBUTES):
            raise ValueError(f"capabilities() got unknown attributes {sorted(unknown)!r}")
        overrides["attributes"] = attributes
    if (cap := overrides.get("max_params")) is not None and (not isinstance(cap, int) or cap < 0):
        raise ValueError("capabilities() 'max_params' must be a non-negative integer or None")
    if "max_depth" in overrides and (not isinstance(overrides["max_depth"], int) or overrides["max_depth"] < 0):
        raise ValueError("capabilities() 'max_depth' must be a non-negative integer")

    return row._replace(**overrides)


class Host(metaclass=ModelType):
    """
    The host application running this plugin, as seen through the environment.

    Properties
    - flavor: detected Flavor.
    - version: host version string (SWIFTBAR_VERSION), or None.
    - build: host build number (SWIFTBAR_BUILD), or None.
    - plugin_path: absolute plugin path (SWIFTBAR_PLUGIN_PATH), or None.
    - dark_mode: True/False when the host reports its appearance, else None.
    """

    __introspectable__ = (
        "flavor",
        "version",
        "build",
        "plugin_path",
        "dark_mode",
    )

    def __init__(self, flavor, /, version=None, build=None, plugin_path=None, dark_mode=None):
        if not isinstance(flavor, Flavor):
            raise TypeError(f"{type(self).__typename__} 'flavor' must be a flavor")
        self._flavor = flavor
        self._version = version
        self._build = build
        self._plugin_path = plugin_path
        self._dark_mode = dark_mode

    @property
    def capabilities(self):
        return self._flavor.capabilities

    @property
    def plugin_name(self):
        """
        File name of the plugin (including refresh time and extension), or None.
        """
        if not self._plugin_path:
            return None
        return os.path.basename(self._plugin_path) or None

    @classmethod
    def detect(cls, environ=Unset, /):
        """
        Build a Host from environment variables.

        A malformed SWIFTBAR_BUILD is reported as an UnknownHostVersionWarning
        and treated as absent.
        """
        environ = coalesce(environ, os.environ)
        flavor = Flavor.detect(environ)

        build = None
        if (raw := environ.get("SWIFTBAR_BUILD")) is not None:
            if re.fullmatch(r"\d+", raw.strip()):
                build = int(raw)
            else:
                trigger(UnknownHostVersionWarning(
                    "host build number %r is not an integer" % raw,
                    hint="unset SWIFTBAR_BUILD or set it to the host's numeric build",
                    code=FaultCode.UNKNOWN_HOST_VERSION,
                ))

        if (appearance := environ.get("OS_APPEARANCE")) is not None:
            dark_mode = appearance.strip().lower() == "dark"
        elif (value := environ.get("XBARDarkMode", environ.get("BitBarDarkMode"))) is not None:
            dark_mode = value.strip().lower() in ("1", "true", "yes")
        else:
            dark_mode = None

        return cls(
            flavor,
            version=environ.get("SWIFTBAR_VERSION") or None,
            build=build,
            plugin_path=environ.get("SWIFTBAR_PLUGIN_PATH") or None,
            dark_mode=dark_mode,
        )


__all__ = (
    "ATTRIBUTES",
    "BASE_ATTRIBUTES",
    "CAPABILITIES",
    "Capabilities",
    "Flavor",
    "Host",
    "capabilities",
)
