"""
Barkeep utilities shared by every layer of the package.

Contents
- Unset: the "argument not given" marker, for parameters where None already
  means something (no color, no dark variant, no fallback).
- coalesce(): swap Unset for a default and leave everything else alone.
- rename(): give generated callables a readable name in tracebacks.
- mirror() / ModelType: read-only properties over "_name" fields, plus the
  repr every value class in barkeep shares.

    >>> coalesce(Unset, 12)
    12
    >>> coalesce(None, 12) is None
    True
"""
import builtins
import functools
import operator
import re
from collections.abc import Mapping, Set
from typing import final


@final
class UnsetType:
    """
    Type of the Unset marker.

    There is exactly one instance. It is falsy, prints as "Unset" and can be
    combined with other types in isinstance() checks (str | Unset).
    """

    def __or__(self, other, /):
        try:
            return type(self) | other
        except TypeError:
            return NotImplemented

    def __ror__(self, other, /):
        try:
            return other | type(self)
        except TypeError:
            return NotImplemented

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


Unset = UnsetType()


def coalesce(object, default=None, /):
    """
    Return default when object is Unset, object otherwise.
    """
    return default if object is Unset else object


def rename(*parameters):
    """
    rename(function, name) renames in place and returns the function;
    rename(name) returns a decorator doing the same.
    """
    if len(parameters) == 1:
        name, = parameters
        if not isinstance(name, str):
            raise TypeError("@rename() argument must be a string")
        return rename(lambda function: rename(function, name), "rename")

    if len(parameters) != 2:
        raise TypeError("rename() takes 1 or 2 arguments (%d given)" % len(parameters))

    function, name = parameters
    if not builtins.callable(function):
        raise TypeError("rename() can only be applied to a callable")
    if not isinstance(name, str):
        raise TypeError("rename() name must be a string")
    try:
        function.__name__ = function.__qualname__ = name
    except (AttributeError, TypeError):
        raise TypeError("rename() cannot rename %r" % function) from None
    return function


def _detach(value):
    # lists, dicts and sets are handed out as fresh copies, all the way down
    match value:
        case list():
            return [_detach(item) for item in value]
        case Mapping():
            return {key: _detach(item) for key, item in value.items()}
        case Set() if not isinstance(value, frozenset):
            return {_detach(item) for item in value}
    return value


def mirror(name, /):
    """
    Read-only property returning a detached copy of self._<name>.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")
    field = "_" + name
    return property(rename(lambda self: _detach(getattr(self, field)), name))


class ModelType(type):
    """
    Metaclass for barkeep value classes.

    A class built with it gets
    - __typename__: the class name in kebab case ("CommandDescriptor" becomes
      "command-descriptor"), used as the subject of validation messages;
    - one mirror() property per name in __introspectable__ that the class
      body does not define itself;
    - __repr__ and __rich_repr__ listing __displayable__ (or, when that is
      Unset, __introspectable__), unless the class writes its own.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        attributes = dict(namespace)
        attributes["__typename__"] = re.sub(r"(?<!^)(?=[A-Z])", "-", name).lower()
        for field in namespace.get("__introspectable__", ()):
            if field not in namespace:
                attributes[field] = mirror(field)
        self = super().__new__(cls, name, bases, attributes)

        if "__rich_repr__" not in namespace:
            def __rich_repr__(self):
                cls = type(self)
                for field in coalesce(cls.__displayable__, cls.__introspectable__):
                    yield field, getattr(self, field)
            self.__rich_repr__ = __rich_repr__

        if "__repr__" not in namespace:
            def __repr__(self):
                fields = map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__())
                return "%s(%s)" % (type(self).__typename__, ", ".join(fields))
            self.__repr__ = __repr__

        return self


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",

    # Types
    "UnsetType",
    "ModelType",

    # Constants
    "Unset",
)
