r"""
Barkeep command registry: named operations a plugin runs instead of rendering.

Overview
- Parameter specs
  • Positional[_T]: a required slot consuming exactly one token.
  • Variadic[_T]: a trailing slot consuming every remaining token (possibly none)
    as an ordered list.

- Descriptors
  • CommandDescriptor: name + parameter shape + handler. Its params(*args)
    builds the Params that re-invoke this executable with the command, so a
    menu item can run it when clicked.

- Registry lifecycle
  • RegistryBuilder collects descriptors during program setup (register(),
    @command(...), fallback()) and build() freezes it into a Registry.
  • Registry is read-only: lookups and argument parsing only.

Parsing
- Tokens are matched against the shape left to right; each token is passed
  through the slot's converter (type=).
  • too few tokens                   → MissingParametersError
  • extra tokens, no variadic slot   → ExtraParametersError
  • converter raised                 → UncastableParameterError
  All three are DispatchShapeError subclasses (exit code 2).

Quick example:
    >>> from barkeep.registry import RegistryBuilder, Positional
    >>> builder = RegistryBuilder()
    >>> @builder.command("greet", Positional("who"))
    ... def greet(args):
    ...     print("hello", args["who"])
    >>> registry = builder.build()
"""
import builtins
import os.path
import re
import sys
from collections.abc import Sequence
from types import MappingProxyType

from .attributes import Params
from .faults import *
from .utils import *

_NAME = re.compile(r"[^\W\d]\w*")
_COMMAND = re.compile(r"[^\s-]\S*")


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate parameter metadata in place.

    - name: identifier-like string (used for lookups in ParsedArgs).
    - type: callable converter applied to each token.
    - descr: optional non-empty description (None when Unset).
    - choices: optional iterable of allowed (converted) values; duplicates rejected.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} 'name' must be a string")
    elif not _NAME.fullmatch(name):
        raise ValueError(f"{cls.__typename__} 'name' must be an identifier, got {name!r}")

    if not callable(metadata["type"]):
        raise TypeError(f"{cls.__typename__} 'type' must be callable")

    if not isinstance(descr := metadata["descr"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'descr' must be a string")
    elif isinstance(descr, str) and not (descr := descr.strip()):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = coalesce(descr)

    choices = tuple(metadata["choices"])
    if len(set(map(repr, choices))) != len(choices):
        raise ValueError(f"{cls.__typename__} 'choices' cannot contain duplicates")
    metadata["choices"] = choices


class Positional[_T](metaclass=ModelType):
    """
    A required positional slot consuming exactly one token.
    """

    __introspectable__ = ("name", "type", "descr", "choices")

    def __init__(self, name, /, type=str, descr=Unset, choices=()):
        metadata = {"name": name, "type": type, "descr": descr, "choices": choices}
        _sanitize_metadata(builtins.type(self), metadata)
        for key, value in metadata.items():
            setattr(self, "_" + key, value)

    def convert(self, token, /):
        """
        Run a token through the converter, checking choices when declared.

        Raises UncastableParameterError on failure.
        """
        try:
            value = self._type(token)
        except (TypeError, ValueError) as error:
            fault = UncastableParameterError(
                "parameter %r cannot take %r (%s)" % (self._name, token, error),
                hint="pass a value accepted by %s" % getattr(self._type, "__name__", "the converter"),
                parameter=self._name,
            )
            raise fault from error
        if self._choices and value not in self._choices:
            raise UncastableParameterError(
                "parameter %r must be one of %s, got %r" % (self._name, ", ".join(map(repr, self._choices)), token),
                parameter=self._name,
            )
        return value


class Variadic[_T](Positional[_T]):
    """
    A trailing slot consuming every remaining token as an ordered list.
    """


class ParsedArgs(Sequence):
    """
    Converted arguments for one command invocation.

    A sequence of values in shape order (a variadic slot contributes one list),
    also indexable by parameter name.
    """

    def __init__(self, command, values, names, /):
        self._command = command
        self._values = tuple(values)
        self._named = MappingProxyType(dict(zip(names, self._values)))

    @property
    def command(self):
        return self._command

    @property
    def named(self):
        return self._named

    def __getitem__(self, index):
        if isinstance(index, str):
            return self._named[index]
        return self._values[index]

    def __len__(self):
        return len(self._values)

    def __eq__(self, other):
        if isinstance(other, ParsedArgs):
            return (self._command, self._values) == (other._command, other._values)
        if isinstance(other, Sequence) and not isinstance(other, str | bytes):
            return list(self._values) == list(other)
        return NotImplemented

    __hash__ = None

    def __repr__(self):
        return "parsed-args(%s)" % ", ".join("%s=%r" % item for item in self._named.items())


class CommandDescriptor(metaclass=ModelType):
    """
    A named command: parameter shape plus handler.

    parameters
    - name: str
      Unique command token. Must not start with "-" (flags select render mode)
      and must not contain whitespace.
    - shape: Iterable[Positional | Variadic]
      Ordered slots; a Variadic may only come last. Slot names are unique.
    - handler: Callable[[ParsedArgs], Any]
      Called with the parsed arguments. May be a coroutine function.
    - descr: optional short description.
    """

    __introspectable__ = ("name", "shape", "handler", "descr")

    def __init__(self, name, shape=(), handler=Unset, /, descr=Unset):
        cls = type(self)
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} 'name' must be a string")
        elif not _COMMAND.fullmatch(name):
            raise ValueError(f"{cls.__typename__} 'name' must be a single word not starting with '-', got {name!r}")

        shape = tuple(shape)
        for index, slot in enumerate(shape):
            if not isinstance(slot, Positional):
                raise TypeError(f"{cls.__typename__} 'shape' must hold positional or variadic parameters")
            if isinstance(slot, Variadic) and index != len(shape) - 1:
                raise ValueError(f"{cls.__typename__} variadic parameter {slot.name!r} must come last")
        if len({slot.name for slot in shape}) != len(shape):
            raise ValueError(f"{cls.__typename__} 'shape' cannot repeat parameter names")

        if not callable(handler):
            raise TypeError(f"{cls.__typename__} 'handler' must be callable")
        if not isinstance(descr, str | Unset):
            raise TypeError(f"{cls.__typename__} 'descr' must be a string")

        self._name = name
        self._shape = shape
        self._handler = handler
        self._descr = coalesce(descr, getattr(handler, "__doc__", None))

    @property
    def arity(self):
        """
        (minimum, maximum) token counts; maximum is None with a variadic slot.
        """
        required = sum(not isinstance(slot, Variadic) for slot in self._shape)
        variadic = bool(self._shape) and isinstance(self._shape[-1], Variadic)
        return required, None if variadic else required

    def parse(self, tokens, /):
        """
        Match tokens against the shape and convert them.

        Raises MissingParametersError, ExtraParametersError or
        UncastableParameterError.
        """
        tokens = list(tokens)
        minimum, maximum = self.arity
        if len(tokens) < minimum:
            missing = [slot.name for slot in self._shape if not isinstance(slot, Variadic)][len(tokens):]
            raise MissingParametersError(
                "command %r expects %d parameter%s but got %d" % (
                    self._name, minimum, "" if minimum == 1 else "s", len(tokens)
                ),
                hint="missing: %s" % ", ".join(missing),
                command=self._name,
            )
        if maximum is not None and len(tokens) > maximum:
            raise ExtraParametersError(
                "command %r expects %d parameter%s but got %d" % (
                    self._name, maximum, "" if maximum == 1 else "s", len(tokens)
                ),
                hint="unexpected: %s" % " ".join(tokens[maximum:]),
                command=self._name,
            )

        values = []
        for index, slot in enumerate(self._shape):
            if isinstance(slot, Variadic):
                values.append([slot.convert(token) for token in tokens[index:]])
            else:
                values.append(slot.convert(tokens[index]))
        return ParsedArgs(self._name, values, [slot.name for slot in self._shape])

    def params(self, *args):
        """
        Build the Params that re-run this executable with this command.

        The arguments are stringified; they are not checked against the shape
        until the command actually runs. Serialization percent-encodes them and
        the runtime decodes them again before parsing.
        """
        return Params(os.path.abspath(sys.argv[0]), self._name, *args)

    def __call__(self, *args):
        return self.params(*args)


class Registry(metaclass=ModelType):
    """
    Read-only table of commands (plus an optional fallback handler).
    """

    __introspectable__ = ("fallback",)
    __displayable__ = ("commands", "fallback")

    def __init__(self, commands=(), /, fallback=None):
        table = {}
        for descriptor in commands:
            if not isinstance(descriptor, CommandDescriptor):
                raise TypeError(f"{type(self).__typename__} can only hold command descriptors")
            if descriptor.name in table:
                raise ValueError(f"{type(self).__typename__} command {descriptor.name!r} is registered twice")
            table[descriptor.name] = descriptor
        if fallback is not None and not callable(fallback):
            raise TypeError(f"{type(self).__typename__} 'fallback' must be callable")
        self._commands = MappingProxyType(table)
        self._fallback = fallback

    @property
    def commands(self):
        return self._commands

    def __contains__(self, name):
        return name in self._commands

    def __getitem__(self, name):
        return self._commands[name]

    def __iter__(self):
        return iter(self._commands)

    def __len__(self):
        return len(self._commands)

    def get(self, name, default=None, /):
        return self._commands.get(name, default)

    def lookup(self, name, /):
        """
        Return the descriptor for a command token.

        Raises UnknownCommandError when the name is not registered (the
        fallback, if any, is the caller's to invoke).
        """
        try:
            return self._commands[name]
        except KeyError:
            raise UnknownCommandError(
                "unknown command %r" % name,
                hint="known commands: %s" % (", ".join(self._commands) or "none"),
                command=name,
            ) from None


class RegistryBuilder:
    """
    Collect command descriptors during program setup, then freeze them.

    Registration after build() raises RuntimeError; so does registering a
    second fallback or a duplicate command name (ValueError).
    """

    def __init__(self):
        self._commands = {}
        self._fallback = None
        self._frozen = False

    def _check(self):
        if self._frozen:
            raise RuntimeError("registry builder is frozen; register commands before build()")

    def register(self, descriptor, /):
        self._check()
        if not isinstance(descriptor, CommandDescriptor):
            raise TypeError("register() argument must be a command descriptor")
        if descriptor.name in self._commands:
            raise ValueError("command %r is already registered" % descriptor.name)
        self._commands[descriptor.name] = descriptor
        return descriptor

    def command(self, name=Unset, /, *shape, descr=Unset):
        """
        Register a handler as a command.

        Forms
        - @builder.command                          (name taken from the function)
        - @builder.command("name", Positional("x"))  (explicit name and shape)

        Returns the CommandDescriptor, so the decorated name can build Params.
        """
        if callable(name):
            handler, name = name, Unset
            return self.register(CommandDescriptor(handler.__name__, shape, handler, descr=descr))

        def wrapper(handler):
            return self.register(CommandDescriptor(coalesce(name, handler.__name__), shape, handler, descr=descr))

        return rename(wrapper, "command")

    def fallback(self, handler, /):
        """
        Set the handler receiving (name, args) for unknown command tokens.
        """
        self._check()
        if not callable(handler):
            raise TypeError("fallback() argument must be callable")
        if self._fallback is not None:
            raise ValueError("a fallback command is already registered")
        self._fallback = handler
        return handler

    def build(self):
        """
        Freeze the builder and return the finished Registry.
        """
        self._check()
        self._frozen = True
        return Registry(self._commands.values(), fallback=self._fallback)


__all__ = (
    "Positional",
    "Variadic",
    "ParsedArgs",
    "CommandDescriptor",
    "Registry",
    "RegistryBuilder",
)
