"""
Barkeep plugin metadata: the comment header hosts read from a plugin script.

Hosts scan the top of a plugin file for lines like

    # <bitbar.title>Weather</bitbar.title>
    # <swiftbar.type>streamable</swiftbar.type>

Metadata.render() produces those lines; paste them below the shebang.
Streaming plugins must declare type="streamable" or SwiftBar will not keep
them running.
"""
import builtins
import re

from .utils import *

_KINDS = ("default", "streamable")
_VARIABLE = re.compile(r"[A-Za-z_]\w*")


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: validate header fields in place.

    - Text fields: Unset or a non-empty, single-line string (trimmed).
    - dependencies: string or iterable of strings (joined with ", ").
    - type: "default" or "streamable".
    - environment: mapping of variable name → default value.
    """
    for name in ("title", "version", "author", "author_github", "desc", "image", "abouturl", "schedule"):
        if not isinstance(value := metadata[name], str | Unset):
            raise TypeError(f"{cls.__typename__} {name!r} must be a string")
        elif isinstance(value, str):
            if not (value := value.strip()):
                raise ValueError(f"{cls.__typename__} {name!r} cannot be empty")
            if "\n" in value or "<" in value:
                raise ValueError(f"{cls.__typename__} {name!r} must be a single line without '<'")
        metadata[name] = coalesce(value)

    match dependencies := metadata["dependencies"]:
        case UnsetType():
            metadata["dependencies"] = None
        case str():
            metadata["dependencies"] = dependencies.strip() or None
        case _:
            metadata["dependencies"] = ", ".join(map(str.strip, dependencies)) or None

    if metadata["type"] not in _KINDS:
        raise ValueError(f"{cls.__typename__} 'type' must be one of {', '.join(_KINDS)}")

    environment = dict(coalesce(metadata["environment"], {}))
    for variable in environment:
        if not isinstance(variable, str) or not _VARIABLE.fullmatch(variable):
            raise ValueError(f"{cls.__typename__} environment variable {variable!r} is not a valid name")
    metadata["environment"] = {variable: str(value) for variable, value in environment.items()}


class Metadata(metaclass=ModelType):
    """
    Plugin metadata header.

    The bitbar.* fields are read by every host; the swiftbar.* switches only
    by SwiftBar (others ignore them).
    """

    __introspectable__ = (
        "title",
        "version",
        "author",
        "author_github",
        "desc",
        "image",
        "dependencies",
        "abouturl",
        "hide_about",
        "hide_run_in_terminal",
        "hide_last_updated",
        "hide_disable_plugin",
        "hide_swiftbar",
        "schedule",
        "refresh_on_open",
        "run_in_bash",
        "type",
        "environment",
    )

    def __init__(
            self,
            title=Unset,
            /,
            version=Unset,
            author=Unset,
            author_github=Unset,
            desc=Unset,
            image=Unset,
            dependencies=Unset,
            abouturl=Unset,
            *,
            hide_about=False,
            hide_run_in_terminal=False,
            hide_last_updated=False,
            hide_disable_plugin=False,
            hide_swiftbar=False,
            schedule=Unset,
            refresh_on_open=False,
            run_in_bash=True,
            type="default",
            environment=Unset,
    ):
        metadata = {
            "title": title,
            "version": version,
            "author": author,
            "author_github": author_github,
            "desc": desc,
            "image": image,
            "dependencies": dependencies,
            "abouturl": abouturl,
            "hide_about": bool(hide_about),
            "hide_run_in_terminal": bool(hide_run_in_terminal),
            "hide_last_updated": bool(hide_last_updated),
            "hide_disable_plugin": bool(hide_disable_plugin),
            "hide_swiftbar": bool(hide_swiftbar),
            "schedule": schedule,
            "refresh_on_open": bool(refresh_on_open),
            "run_in_bash": bool(run_in_bash),
            "type": type,
            "environment": environment,
        }
        _sanitize_metadata(builtins.type(self), metadata)
        for name, value in metadata.items():
            setattr(self, "_" + name, value)

    @property
    def streamable(self):
        return self._type == "streamable"

    def lines(self):
        """
        Yield the header lines (without trailing newlines) in host order.
        """
        for name, tag in (
            ("title", "bitbar.title"),
            ("version", "bitbar.version"),
            ("author", "bitbar.author"),
            ("author_github", "bitbar.author.github"),
            ("desc", "bitbar.desc"),
            ("image", "bitbar.image"),
            ("dependencies", "bitbar.dependencies"),
            ("abouturl", "bitbar.abouturl"),
        ):
            if (value := getattr(self, "_" + name)) is not None:
                yield "# <%s>%s</%s>" % (tag, value, tag)

        for name, tag in (
            ("hide_about", "swiftbar.hideAbout"),
            ("hide_run_in_terminal", "swiftbar.hideRunInTerminal"),
            ("hide_last_updated", "swiftbar.hideLastUpdated"),
            ("hide_disable_plugin", "swiftbar.hideDisablePlugin"),
            ("hide_swiftbar", "swiftbar.hideSwiftBar"),
        ):
            if getattr(self, "_" + name):
                yield "# <%s>true</%s>" % (tag, tag)

        if self._schedule is not None:
            yield "# <swiftbar.schedule>%s</swiftbar.schedule>" % self._schedule
        if self._refresh_on_open:
            yield "# <swiftbar.refreshOnOpen>true</swiftbar.refreshOnOpen>"
        if not self._run_in_bash:
            yield "# <swiftbar.runInBash>false</swiftbar.runInBash>"
        if self.streamable:
            yield "# <swiftbar.type>streamable</swiftbar.type>"
        if self._environment:
            yield "# <swiftbar.environment>[%s]</swiftbar.environment>" % ", ".join(
                "%s:%s" % item for item in sorted(self._environment.items())
            )

    def render(self):
        return "".join(line + "\n" for line in self.lines())

    def __str__(self):
        return self.render()


__all__ = (
    "Metadata",
)
