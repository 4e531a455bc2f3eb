"""
Barkeep runtime: one executable, two roles.

Overview
- Outcome: what an entry point produced.
  • Success(value): a Menu (render path) or anything/None (command path).
  • Failure(message, kind=HandlerFailure, detail=None): a reported failure.
  Entry points may also just return a Menu, or raise; both are normalized.

- Stream: a restartable, lazy sequence of menus (sync or async) for hosts
  that keep the plugin running and refresh on a marker line.

- Runtime: decides, per invocation, between
  • render mode: no arguments or a leading flag → call main, serialize the menu;
  • dispatch mode: first token names a command → parse, run the handler.

Error handling
- Render path: any failure becomes a synthesized error menu on stdout (the
  host always receives well-formed protocol text) plus a diagnostic on stderr.
- Dispatch path: nothing is written to stdout; the fault is printed on the
  stderr console and the exit code tells the kind (see ExitCode). Handler
  failures also go to the optional notifier.

Quick example:
    >>> from barkeep import Runtime, MenuBuilder, invoke
    >>> def main():
    ...     return MenuBuilder().title("hello").build()
    >>> invoke(Runtime(main))
"""
import asyncio
import copy
import inspect
import os.path
import shlex
import sys
from collections.abc import AsyncIterable, Iterable
from urllib.parse import unquote

from .attributes import Attributes, Image
from .faults import *
from .flavors import Flavor, Host, capabilities as resolve
from .menus import Content, Menu, MenuBuilder, Separator
from .protocol import serialize
from .registry import Registry
from .utils import *


class Outcome(metaclass=ModelType):
    """
    Base of Success and Failure.
    """

    def __bool__(self):
        return isinstance(self, Success)


class Success(Outcome):
    __introspectable__ = ("value",)

    def __init__(self, value=None, /):
        self._value = value


class Failure(Outcome):
    """
    A failure reported by an entry point.

    - message: human-readable text (shown in the error menu).
    - kind: MenuException subclass; decides the title and exit code.
    - detail: optional debugging text (e.g. a traceback).
    """

    __introspectable__ = ("message", "kind", "detail")

    def __init__(self, message, /, kind=HandlerFailure, detail=None):
        if not isinstance(message, str):
            raise TypeError(f"{type(self).__typename__} 'message' must be a string")
        if not isinstance(kind, type) or not issubclass(kind, MenuException):
            raise TypeError(f"{type(self).__typename__} 'kind' must be an error type")
        self._message = message
        self._kind = kind
        self._detail = detail
        self._fault = Unset

    @classmethod
    def from_exception(cls, error, /):
        """
        Capture an exception (barkeep fault or arbitrary error) as a Failure,
        keeping the original so exception() can re-surface it.
        """
        if not isinstance(error, MenuException):
            error = HandlerFailure.from_exception(error)
        failure = cls(str(error), type(error), error.detail)
        failure._fault = error
        return failure

    def exception(self, **options):
        """
        Build the fault to report, with extra options merged in.
        """
        if self._fault is Unset:
            return self._kind(self._message, **({"detail": self._detail} if self._detail else {}) | options)
        return copy.replace(self._fault, **options) if options else self._fault


class Stream(metaclass=ModelType):
    """
    A lazy (possibly unbounded) sequence of menus or outcomes.

    parameters
    - source: Iterable | AsyncIterable | Callable[[], Iterable | AsyncIterable]
      A callable (e.g. a generator function) is called afresh by every
      open(), which makes the stream restartable. A plain iterator can only
      be consumed once.
    """

    __introspectable__ = ("source",)

    def __init__(self, source, /):
        if not isinstance(source, Iterable | AsyncIterable) and not callable(source):
            raise TypeError(f"{type(self).__typename__} 'source' must be iterable or a callable returning one")
        self._source = source

    def open(self):
        source = self._source
        if not isinstance(source, Iterable | AsyncIterable):
            source = source()
        if not isinstance(source, Iterable | AsyncIterable):
            raise TypeError(f"{type(self).__typename__} source returned a non-iterable")
        return source


async def _wait(awaitable, /):
    return await awaitable


def _call(function, /, *args):
    result = function(*args)
    if inspect.isawaitable(result):
        result = asyncio.run(_wait(result))
    return result


def _execute(function, /, *args):
    try:
        value = _call(function, *args)
    except Exception as error:
        return Failure.from_exception(error)
    return value if isinstance(value, Outcome) else Success(value)


def _accepts_host(function, /):
    try:
        parameters = inspect.signature(function).parameters.values()
    except (TypeError, ValueError):
        return False
    return any(parameter.kind in (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
        inspect.Parameter.VAR_POSITIONAL,
    ) for parameter in parameters)


def _tokens(prompt, /):
    if prompt is Unset:
        return sys.argv[1:]
    if isinstance(prompt, str):
        return shlex.split(prompt)
    if isinstance(prompt, Iterable):
        tokens = list(prompt)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("run() argument must be a string or an iterable of strings")
        return tokens
    raise TypeError("run() argument must be a string or an iterable of strings")


class Runtime(metaclass=ModelType):
    """
    Render-or-dispatch entry point of a plugin.

    parameters
    - main: Callable | Menu | Stream
      Menu-producing function. It may take the Host as its only positional
      parameter, may be a coroutine function, and may return a Menu, a
      MenuBuilder, a flat list of items, an Outcome, a Stream, or raise.
    - registry: Registry, optional
      Commands reachable by name as the first argument.
    - flavor: Flavor, optional
      Assume this host instead of detecting it (a mismatch with a detected
      host emits FlavorMismatchWarning).
    - capabilities: Capabilities, optional
      Replaces the flavor's capability row (soft caps, custom indent...).
    - error_title: str, default "Error"
      Top item of the synthesized error menu.
    - error_image: bytes | str | Image, optional
      Template image shown next to the error title.
    - notifier: Callable[[str, str], Any], optional
      Receives (title, message) when a command fails.
    - stdout: text stream, default sys.stdout (looked up at write time).
    - environ: Mapping, default os.environ (read once, here).
    - fancy / colorful: diagnostic rendering flags for the stderr console.
    """

    __introspectable__ = (
        "main",
        "registry",
        "host",
        "capabilities",
        "error_title",
        "error_image",
        "notifier",
        "fancy",
        "colorful",
    )

    def __init__(
            self,
            main,
            /,
            registry=Unset,
            *,
            flavor=Unset,
            capabilities=Unset,
            error_title=Unset,
            error_image=Unset,
            notifier=Unset,
            stdout=Unset,
            environ=Unset,
            fancy=False,
            colorful=True,
    ):
        cls = type(self)
        if not callable(main) and not isinstance(main, Menu | Stream):
            raise TypeError(f"{cls.__typename__} 'main' must be callable, a menu or a stream")
        if not isinstance(registry := coalesce(registry, Registry()), Registry):
            raise TypeError(f"{cls.__typename__} 'registry' must be a registry")
        if not isinstance(error_title := coalesce(error_title, "Error"), str) or not error_title.strip():
            raise TypeError(f"{cls.__typename__} 'error_title' must be a non-empty string")
        if not isinstance(error_image := coalesce(error_image), bytes | str | Image | None):
            raise TypeError(f"{cls.__typename__} 'error_image' must be bytes, a base64 string or an image")
        if not callable(notifier := coalesce(notifier)) and notifier is not None:
            raise TypeError(f"{cls.__typename__} 'notifier' must be callable")

        if flavor is Unset:
            host = Host.detect(environ)
        elif isinstance(flavor, Flavor):
            host = Host(flavor)
            detected = Flavor.detect(environ)
            if detected is not Flavor.BITBAR and detected is not flavor:
                trigger(FlavorMismatchWarning(
                    "assuming %s but the environment looks like %s" % (flavor, detected),
                    hint="drop the explicit flavor or run the plugin from %s" % flavor,
                ))
        else:
            raise TypeError(f"{cls.__typename__} 'flavor' must be a flavor")

        self._main = main
        self._registry = registry
        self._host = host
        self._capabilities = resolve(coalesce(capabilities, host.flavor))
        self._error_title = error_title
        self._error_image = error_image
        self._notifier = notifier
        self._stdout = stdout
        self._fancy = bool(fancy)
        self._colorful = bool(colorful)

    @property
    def flavor(self):
        return self._host.flavor

    # ── output ───────────────────────────────────────────────────────────────
    def _write(self, text, /):
        stream = coalesce(self._stdout, sys.stdout)
        stream.write(text)
        stream.flush()

    def _report(self, fault, /):
        trigger(fault, shell=True, soft=True, fancy=self._fancy, colorful=self._colorful)
        return fault.exit_code

    def error_menu(self, fault, /, *, image=True):
        """
        Build the menu shown in place of a failed render.

        Top: the configured error title (with the error image as a template
        image). Body: the message, then one item per line of detail.
        """
        attributes = Attributes()
        if image and self._error_image is not None:
            attributes.template_image(self._error_image)
        menu = Menu([Content(self._error_title, attributes)])
        menu.append_body(Content(str(fault)))
        for line in str(fault.detail or "").splitlines():
            if line.strip():
                menu.append_body(Content(line))
        return menu

    def _serialize(self, menu, /):
        return serialize(menu, self._host.flavor, capabilities=self._capabilities)

    def _menu(self, outcome, /):
        """
        Turn a render Outcome into (text, exit code), never raising ValidationError.
        """
        if isinstance(outcome, Success):
            match value := outcome.value:
                case Menu():
                    menu = value
                case MenuBuilder():
                    menu = value.build()
                case None:
                    menu = Menu()
                case list() | tuple() if all(isinstance(item, Content | Separator) for item in value):
                    menu = Menu.from_items(value)
                case _:
                    menu = None
                    outcome = Failure(
                        "menu entry point returned %s, not a menu" % type(value).__name__,
                        HandlerFailure,
                    )
            if menu is not None:
                try:
                    return self._serialize(menu), ExitCode.SUCCESS
                except ValidationError as fault:
                    outcome = Failure.from_exception(fault)

        fault = outcome.exception()
        self._report(fault)
        try:
            text = self._serialize(self.error_menu(fault))
        except ValidationError:
            text = self._serialize(self.error_menu(fault, image=False))
        return text, fault.exit_code

    def _emit(self, outcome, /):
        text, code = self._menu(outcome)
        self._write(text)
        return code

    # ── render mode ──────────────────────────────────────────────────────────
    def _render(self):
        if isinstance(self._main, Menu | Stream):
            outcome = Success(self._main)
        elif _accepts_host(self._main):
            outcome = _execute(self._main, self._host)
        else:
            outcome = _execute(self._main)

        if isinstance(outcome, Success) and isinstance(outcome.value, Stream):
            return self._stream(outcome.value)
        return self._emit(outcome)

    # ── streaming mode ───────────────────────────────────────────────────────
    def _stream(self, stream, /):
        if (marker := self._capabilities.stream_marker) is None:
            return self._emit(Failure.from_exception(StreamingUnsupportedError(
                "%s cannot stream menus" % self._host.flavor,
                hint="return a single menu or run the plugin from a streaming host",
            )))
        try:
            source = stream.open()
        except Exception as error:
            return self._emit(Failure.from_exception(error))
        if isinstance(source, AsyncIterable):
            return asyncio.run(self._drain_async(source, marker))
        return self._drain(iter(source), marker)

    def _element(self, value, /):
        outcome = value if isinstance(value, Outcome) else Success(value)
        if isinstance(outcome, Success) and isinstance(outcome.value, Stream):
            return Failure("streams cannot be nested", HandlerFailure)
        return outcome

    def _drain(self, iterator, marker, /):
        code, first = ExitCode.SUCCESS, True
        while True:
            try:
                outcome = self._element(next(iterator))
            except StopIteration:
                return code
            except Exception as error:
                outcome = Failure.from_exception(error)
                iterator = iter(())
            if not first:
                self._write(marker + "\n")
            first = False
            code = self._emit(outcome) or code

    async def _drain_async(self, iterator, marker, /):
        code, first = ExitCode.SUCCESS, True
        iterator = aiter(iterator)
        while True:
            try:
                outcome = self._element(await anext(iterator))
            except StopAsyncIteration:
                return code
            except Exception as error:
                outcome = Failure.from_exception(error)
                iterator = aiter(_empty())
            if not first:
                self._write(marker + "\n")
            first = False
            code = self._emit(outcome) or code

    # ── dispatch mode ────────────────────────────────────────────────────────
    def _notify(self, name, fault, /):
        if self._notifier is None:
            return
        title = self._host.plugin_name or os.path.basename(sys.argv[0]) or "barkeep"
        self._notifier(title, "%s: %s" % (name, fault))

    def _dispatch(self, name, tokens, /):
        # menu items pass their params percent-encoded (see protocol.escape)
        name, tokens = unquote(name), [unquote(token) for token in tokens]
        try:
            descriptor = self._registry.lookup(name)
        except UnknownCommandError as fault:
            if self._registry.fallback is None:
                return self._report(fault)
            outcome = _execute(self._registry.fallback, name, list(tokens))
        else:
            try:
                arguments = descriptor.parse(tokens)
            except DispatchShapeError as fault:
                return self._report(fault)
            outcome = _execute(descriptor.handler, arguments)

        if isinstance(outcome, Failure):
            fault = outcome.exception(command=name)
            self._report(fault)
            self._notify(name, fault)
            return fault.exit_code
        return ExitCode.SUCCESS

    # ── entry points ─────────────────────────────────────────────────────────
    def run(self, prompt=Unset, /):
        """
        Run one invocation and return its exit code (never exits).

        parameters
        - prompt: Unset (sys.argv[1:]) | str (shell-split) | Iterable[str]
          Arguments after the program name.
        """
        tokens = _tokens(prompt)
        if tokens and not tokens[0].startswith("-"):
            return self._dispatch(tokens[0], tokens[1:])
        return self._render()

    def __invoke__(self, prompt=Unset):
        sys.exit(self.run(prompt))


async def _empty():
    return
    yield


def plugin(main=Unset, /, **kwargs):
    """
    Create a Runtime, or return a decorator that turns a function into one.

    Forms
    - runtime = plugin(main, registry=registry, flavor=...)
    - @plugin(registry=registry, error_title="Weather")
      def main(host): ...
    """
    @rename("plugin")
    def wrapper(main, /):
        return Runtime(main, **kwargs)

    return wrapper(main) if main is not Unset else wrapper


def invoke(object, prompt=Unset, /):
    """
    Run a Runtime (or a plain menu-producing callable) and exit the process.
    """
    if hasattr(object, "__invoke__") and callable(object.__invoke__):
        object.__invoke__(prompt)
        return
    if callable(object):
        return invoke(Runtime(object), prompt)
    target = "argument" if prompt is Unset else "first argument"
    raise TypeError(f"invoke() {target} must implement __invoke__ method") from None


__all__ = (
    "Outcome",
    "Success",
    "Failure",
    "Stream",
    "Runtime",
    "plugin",
    "invoke",
)
