#!/usr/bin/env python3
import datetime
import subprocess

from barkeep import *

registry = RegistryBuilder()
metadata = Metadata(
    "Clock",
    version="v0.1.0",
    desc="Shows the time and copies it on click.",
    dependencies=["python", "barkeep"],
    hide_run_in_terminal=True,
)


@registry.command("copy", Positional("text"))
def copy(args):
    """Copy a text to the clipboard."""
    subprocess.run(["pbcopy"], input=args["text"].encode(), check=True)


@registry.command("header")
def header(args):
    """Print the metadata header to paste below the shebang."""
    print(metadata, end="")


@plugin(registry=registry.build(), error_title="Clock")
def main(host):
    now = datetime.datetime.now()
    builder = MenuBuilder()
    if host.flavor is Flavor.SWIFTBAR:
        builder.title(now.strftime("%H:%M"), sf_symbol="clock")
    else:
        builder.title(now.strftime("%H:%M"))
    builder.item(now.strftime("%A %d %B %Y"), Attributes().run(copy.params(now.isoformat())))
    with builder.submenu():
        builder.item(now.astimezone(datetime.UTC).strftime("UTC %H:%M"), font_family="Menlo")
    builder.separator()
    builder.item("Refresh", refresh=True)
    return builder


if __name__ == '__main__':
    invoke(main)
