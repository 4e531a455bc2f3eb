"""
Barkeep faults: every error and warning the package reports.

Error kinds, each with its own process exit status (ExitCode)
- ValidationError (3): the menu cannot be expressed in the active flavor.
  Raised before any output is written.
- DispatchShapeError (2): the invocation names an unknown command or does not
  fit the command's parameters.
- HandlerFailure (1): plugin code failed, by raising or by returning a
  Failure. A wrapped exception stays reachable as __cause__, and its
  traceback is kept under the "detail" option.

Faults carry a message plus free-form options (hint, detail, command, ...).
They render themselves with rich and are surfaced with trigger():

    >>> trigger(UnknownCommandError("unknown command 'x'"), shell=True, soft=True)

Diagnostics are printed on standard error; standard output belongs to the
menu the host reads.
"""
import copy
import inspect
import os.path
import sys
import traceback
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    stable numeric ids for faults, grouped by kind:
    211xx validation, 221xx dispatch, 231xx handler, 241xx warnings.
    """
    UNSUPPORTED_ATTRIBUTE       = 21101
    INVALID_ATTRIBUTE           = 21102
    CONFLICTING_ATTRIBUTES      = 21103
    NESTING_DEPTH               = 21111
    MISPLACED_SEPARATOR         = 21112
    STREAMING_UNSUPPORTED       = 21121

    UNKNOWN_COMMAND             = 22101
    MISSING_PARAMETERS          = 22111
    EXTRA_PARAMETERS            = 22112
    UNCASTABLE_PARAMETER        = 22113

    HANDLER_FAILURE             = 23101

    FLAVOR_MISMATCH             = 24101
    UNKNOWN_HOST_VERSION        = 24102

    def normalize(self):
        """
        label printed for this code: the plugin script may map codes to its
        own labels with a module-level __codes__ dict, else the number is used.
        """
        labels = getattr(__import__("__main__"), "__codes__", {})
        return str(labels.get(self, self.value))


class ExitCode(IntEnum):
    SUCCESS     = 0
    HANDLER     = 1
    DISPATCH    = 2
    VALIDATION  = 3


_ERROR_STYLES = {
    "prog-name": "bold #E6E6F0",
    "code": "bold #00E5FF",
    "error-title": "bold #FF4DA6",
    "error-message": "#C8C8D0",
    "detail": "dim #8A8A96",
    "hint-arrow": "dim #9CE19C",
    "hint": "italic #9CE19C",
}

_WARNING_STYLES = {
    "prog-name": "bold #E6E6F0",
    "code": "bold #FFB400",
    "warning-title": "bold #FFC2E0",
    "warning-message": "#D6D6DE",
    "detail": "dim #8A8A96",
    "hint-arrow": "dim #B8EFAF",
    "hint": "italic #B8EFAF",
}


def _program():
    return getattr(__import__("__main__"), "__prog__", os.path.basename(sys.argv[0]) or "barkeep")


def _render(fault, palette, *, kind):
    """
    header "[ prog — code | Title ]", then the message, the dimmed detail and
    the hint. with fancy=True the whole thing sits in a Panel.
    """
    styles = defaultdict(str, palette | getattr(__import__("__main__"), "__styles__", {}))
    colorful = fault.options.get("colorful", True)

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment if colorful else Text(fragment.plain)
        return Text(str(fragment), styles[style] if colorful else "")

    header = Text.assemble(
        "[ ",
        text(_program(), "prog-name"),
        " — ",
        text(fault.code.normalize(), "code"),
        " | ",
        text(fault.title.title(), kind + "-title"),
        " ]"
    )
    parts = [text(fault.message, kind + "-message")]
    if detail := fault.options.get("detail"):
        parts.append(text(str(detail).rstrip("\n"), "detail"))
    if hint := fault.options.get("hint"):
        parts.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))

    if fault.options.get("fancy", False):
        return Panel(Group(*parts), title=header, title_align="left")
    return Group(header, *parts)


class _Fault:
    # shared by MenuException and MenuWarning
    default_title = "fault"
    default_code = FaultCode.HANDLER_FAILURE

    def __init__(self, message=Unset, /, **options):
        if not isinstance(message, str | Unset):
            raise TypeError("%s message must be a string" % type(self).__name__)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.title if self.message is Unset else self.message

    @property
    def title(self):
        return self.options.get("title", type(self).default_title)

    @property
    def code(self):
        return self.options.get("code", type(self).default_code)

    @property
    def detail(self):
        return self.options.get("detail")


class MenuException(_Fault, Exception):
    """
    base of every barkeep error.

    options named "title" and "code" replace the class defaults. under
    trigger(), shell=True prints the error and exits with exit_code (soft=True
    prints without exiting); otherwise the error is raised.
    """
    default_title = "error"
    exit_code = ExitCode.HANDLER

    def __rich__(self):
        return _render(self, _ERROR_STYLES, kind="error")

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from self.__cause__
        console.print(self)
        if not self.options.get("soft", False):
            sys.exit(self.exit_code)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        replica = type(self)(self.message, **self.options | overrides)
        replica.__cause__ = self.__cause__
        return replica.with_traceback(self.__traceback__)


class ValidationError(MenuException):
    default_title = "invalid menu"
    default_code = FaultCode.INVALID_ATTRIBUTE
    exit_code = ExitCode.VALIDATION


class UnsupportedAttributeError(ValidationError):
    default_title = "unsupported attribute"
    default_code = FaultCode.UNSUPPORTED_ATTRIBUTE


class InvalidAttributeError(ValidationError):
    default_title = "invalid attribute value"
    default_code = FaultCode.INVALID_ATTRIBUTE


class ConflictingAttributesError(ValidationError):
    default_title = "conflicting attributes"
    default_code = FaultCode.CONFLICTING_ATTRIBUTES


class NestingDepthError(ValidationError):
    default_title = "nesting too deep"
    default_code = FaultCode.NESTING_DEPTH


class MisplacedSeparatorError(ValidationError):
    default_title = "misplaced separator"
    default_code = FaultCode.MISPLACED_SEPARATOR


class StreamingUnsupportedError(ValidationError):
    default_title = "streaming unsupported"
    default_code = FaultCode.STREAMING_UNSUPPORTED


class DispatchShapeError(MenuException):
    default_title = "bad invocation"
    default_code = FaultCode.MISSING_PARAMETERS
    exit_code = ExitCode.DISPATCH


class UnknownCommandError(DispatchShapeError):
    default_title = "unknown command"
    default_code = FaultCode.UNKNOWN_COMMAND


class MissingParametersError(DispatchShapeError):
    default_title = "missing parameters"
    default_code = FaultCode.MISSING_PARAMETERS


class ExtraParametersError(DispatchShapeError):
    default_title = "too many parameters"
    default_code = FaultCode.EXTRA_PARAMETERS


class UncastableParameterError(DispatchShapeError):
    default_title = "uncastable parameter"
    default_code = FaultCode.UNCASTABLE_PARAMETER


class HandlerFailure(MenuException):
    default_title = "handler failure"
    default_code = FaultCode.HANDLER_FAILURE
    exit_code = ExitCode.HANDLER

    @classmethod
    def from_exception(cls, error, /, **options):
        """
        wrap an exception raised by plugin code, keeping it as __cause__ and
        its formatted traceback as the "detail" option.
        """
        if isinstance(error, HandlerFailure):
            return copy.replace(error, **options) if options else error
        failure = cls(
            str(error) or type(error).__name__,
            **{"detail": "".join(traceback.format_exception(error)), **options}
        )
        failure.__cause__ = error
        return failure


class MenuWarning(_Fault, ABC, Warning):
    """
    base of every barkeep warning: emitted through warnings.warn, or printed
    on the console under shell=True.
    """
    default_title = "warning"
    default_code = FaultCode.FLAVOR_MISMATCH

    def __rich__(self):
        return _render(self, _WARNING_STYLES, kind="warning")

    def __trigger__(self) -> None:
        if self.options.get("shell", False):
            console.print(self)
        else:
            warnings.warn(self, stacklevel=len(inspect.stack()))

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **self.options | overrides)


class FlavorMismatchWarning(MenuWarning):
    default_title = "flavor mismatch"
    default_code = FaultCode.FLAVOR_MISMATCH


class UnknownHostVersionWarning(MenuWarning):
    default_title = "unknown host version"
    default_code = FaultCode.UNKNOWN_HOST_VERSION


def trigger(fault, /, **options):
    """
    apply options to a copy of fault (copy.replace) and surface it.

    common options: shell, soft, fancy, colorful, title, code, hint, detail.
    """
    for method in ("__trigger__", "__replace__"):
        if not callable(getattr(fault, method, None)):
            raise TypeError("trigger() argument must define %s()" % method)
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    longer help for a code, from a __docs__ dict in the plugin script, or None.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    return getattr(__import__("__main__"), "__docs__", {}).get(code)

__all__ = (
    "FaultCode",
    "ExitCode",
    "MenuException",
    "ValidationError",
    "UnsupportedAttributeError",
    "InvalidAttributeError",
    "ConflictingAttributesError",
    "NestingDepthError",
    "MisplacedSeparatorError",
    "StreamingUnsupportedError",
    "DispatchShapeError",
    "UnknownCommandError",
    "MissingParametersError",
    "ExtraParametersError",
    "UncastableParameterError",
    "HandlerFailure",
    "MenuWarning",
    "FlavorMismatchWarning",
    "UnknownHostVersionWarning",
    "trigger",
    "getdoc",
)
