"""
Dispatch runtime tests (render mode, dispatch mode, error menus, streaming).

Scope
- Routing between render and dispatch by the first argument.
- Failures on the render path become an error menu with a non-zero exit.
- Failures on the dispatch path never touch stdout.
- Streaming emits a marker between menus, never after the last one.

Conventions
- Test method names follow CamelCase per project convention.
- Diagnostics are captured by swapping the stderr console for an in-memory one.
"""

from __future__ import annotations

import unittest
from io import StringIO
from unittest import TestCase
from unittest.mock import patch

from rich.console import Console

from barkeep import (
    Attributes,
    Content,
    Menu,
    MenuBuilder,
    Flavor,
    Host,
    Positional,
    Variadic,
    RegistryBuilder,
    Runtime,
    Stream,
    Success,
    Failure,
    invoke,
    plugin,
    serialize,
    parse,
    escape,
)
from barkeep.faults import (
    ExitCode,
    FlavorMismatchWarning,
    HandlerFailure,
    InvalidAttributeError,
)


def hello():
    return Menu([Content("hello")], [Content("world")])


class RuntimeTestCase(TestCase):

    def setUp(self):
        self.stdout = StringIO()
        self.stderr = StringIO()
        patcher = patch("barkeep.faults.console", Console(file=self.stderr, width=200))
        patcher.start()
        self.addCleanup(patcher.stop)

    def runtime(self, main=hello, registry=None, **options):
        options.setdefault("flavor", Flavor.BITBAR)
        options.setdefault("environ", {})
        if registry is not None:
            options["registry"] = registry
        return Runtime(main, stdout=self.stdout, **options)


class TestRenderMode(RuntimeTestCase):

    def testNoArgumentsRenders(self):
        self.assertEqual(self.runtime().run([]), ExitCode.SUCCESS)
        self.assertEqual(self.stdout.getvalue(), "hello\n---\nworld\n")

    def testLeadingFlagRenders(self):
        self.assertEqual(self.runtime().run(["--refresh"]), 0)
        self.assertEqual(self.stdout.getvalue(), serialize(hello(), Flavor.BITBAR))

    def testBuilderAndItemListResults(self):
        self.runtime(lambda: MenuBuilder().title("a").item("b")).run([])
        self.runtime(lambda: [Content("c")]).run([])
        self.assertEqual(self.stdout.getvalue(), "a\n---\nb\nc\n---\n")

    def testHostIsPassed(self):
        seen = []

        def main(host):
            seen.append(host)
            return hello()

        self.runtime(main, flavor=Flavor.XBAR).run([])
        self.assertIsInstance(seen[0], Host)
        self.assertIs(seen[0].flavor, Flavor.XBAR)

    def testDetectedFlavor(self):
        runtime = Runtime(hello, stdout=self.stdout, environ={"SWIFTBAR": "1"})
        self.assertIs(runtime.flavor, Flavor.SWIFTBAR)

    def testAsyncMain(self):
        async def main():
            return hello()

        self.assertEqual(self.runtime(main).run([]), 0)
        self.assertEqual(self.stdout.getvalue(), "hello\n---\nworld\n")

    def testStaticMenu(self):
        self.runtime(hello()).run([])
        self.assertEqual(self.stdout.getvalue(), "hello\n---\nworld\n")

    def testAssumedFlavorMismatchWarns(self):
        with self.assertWarns(FlavorMismatchWarning):
            Runtime(hello, flavor=Flavor.BITBAR, environ={"SWIFTBAR": "1"})


class TestErrorMenu(RuntimeTestCase):

    def testFailureOutcomeBecomesErrorMenu(self):
        code = self.runtime(lambda: Failure("boom")).run([])
        self.assertNotEqual(code, 0)
        self.assertEqual(code, ExitCode.HANDLER)
        self.assertEqual(self.stdout.getvalue(), "Error\n---\nboom\n")
        self.assertIn("boom", self.stderr.getvalue())

    def testRaisedExceptionBecomesErrorMenu(self):
        def main():
            raise ValueError("kaput")

        code = self.runtime(main).run([])
        lines = self.stdout.getvalue().splitlines()
        self.assertEqual(code, ExitCode.HANDLER)
        self.assertEqual(lines[:3], ["Error", "---", "kaput"])
        self.assertEqual(lines.count("---"), 1)
        self.assertTrue(any("ValueError" in line for line in lines[3:]))

    def testInvalidMenuBecomesErrorMenu(self):
        menu = Menu([Content("x", Attributes().sf_symbol("bolt"))])
        code = self.runtime(lambda: menu).run([])
        self.assertEqual(code, ExitCode.VALIDATION)
        self.assertNotIn("sfimage", self.stdout.getvalue())
        self.assertTrue(self.stdout.getvalue().startswith("Error\n---\n"))

    def testConfiguredTitleAndImage(self):
        runtime = self.runtime(lambda: Failure("boom"), error_title="Weather", error_image=b"img")
        runtime.run([])
        self.assertEqual(self.stdout.getvalue(), "Weather | templateImage=aW1n\n---\nboom\n")

    def testBrokenErrorImageIsDropped(self):
        self.runtime(lambda: Failure("boom"), error_image="!!!").run([])
        self.assertEqual(self.stdout.getvalue(), "Error\n---\nboom\n")

    def testFailureKindDecidesExitCode(self):
        self.assertEqual(self.runtime(lambda: Failure("bad", InvalidAttributeError)).run([]), ExitCode.VALIDATION)

    def testUnexpectedResultType(self):
        self.assertEqual(self.runtime(lambda: 42).run([]), ExitCode.HANDLER)
        self.assertIn("int", self.stdout.getvalue())


class TestDispatchMode(RuntimeTestCase):

    def setUp(self):
        super().setUp()
        self.calls = []
        builder = RegistryBuilder()

        @builder.command("greet", Positional("who"))
        def greet(args):
            self.calls.append(("greet", list(args)))

        @builder.command("sum", Positional("first", type=int), Variadic("rest", type=int))
        def total(args):
            self.calls.append(("sum", args["first"] + sum(args["rest"])))

        @builder.command("explode")
        def explode(args):
            raise RuntimeError("kaboom")

        @builder.command("decline")
        def decline(args):
            return Failure("not today")

        @builder.command("later")
        async def later(args):
            self.calls.append(("later",))

        self.registry = builder.build()

    def testRoutesToHandler(self):
        self.assertEqual(self.runtime(registry=self.registry).run(["greet", "world"]), ExitCode.SUCCESS)
        self.assertEqual(self.calls, [("greet", ["world"])])
        self.assertEqual(self.stdout.getvalue(), "")

    def testShellStringPrompt(self):
        self.runtime(registry=self.registry).run("sum 1 2 3")
        self.assertEqual(self.calls, [("sum", 6)])

    def testMissingParameter(self):
        code = self.runtime(registry=self.registry).run(["greet"])
        self.assertEqual(code, ExitCode.DISPATCH)
        self.assertEqual(self.calls, [])
        self.assertEqual(self.stdout.getvalue(), "")
        self.assertIn("greet", self.stderr.getvalue())

    def testUncastableParameter(self):
        self.assertEqual(self.runtime(registry=self.registry).run(["sum", "one"]), ExitCode.DISPATCH)
        self.assertEqual(self.stdout.getvalue(), "")

    def testUnknownCommand(self):
        self.assertEqual(self.runtime(registry=self.registry).run(["nope"]), ExitCode.DISPATCH)
        self.assertEqual(self.stdout.getvalue(), "")
        self.assertIn("nope", self.stderr.getvalue())

    def testFallbackReceivesUnknownCommands(self):
        builder = RegistryBuilder()
        seen = []
        builder.fallback(lambda name, args: seen.append((name, args)))
        self.assertEqual(self.runtime(registry=builder.build()).run(["nope", "x"]), 0)
        self.assertEqual(seen, [("nope", ["x"])])

    def testHandlerFailureReportsAndNotifies(self):
        notes = []
        runtime = self.runtime(registry=self.registry, notifier=lambda title, message: notes.append(message))
        self.assertEqual(runtime.run(["explode"]), ExitCode.HANDLER)
        self.assertEqual(self.stdout.getvalue(), "")
        self.assertEqual(notes, ["explode: kaboom"])
        self.assertIn("RuntimeError", self.stderr.getvalue())

    def testReturnedFailure(self):
        self.assertEqual(self.runtime(registry=self.registry).run(["decline"]), ExitCode.HANDLER)
        self.assertIn("not today", self.stderr.getvalue())

    def testAsyncHandler(self):
        self.assertEqual(self.runtime(registry=self.registry).run(["later"]), 0)
        self.assertEqual(self.calls, [("later",)])

    def testMenuItemParamsReachHandlerUnchanged(self):
        builder = RegistryBuilder()
        seen = []

        @builder.command("echo", Variadic("words"))
        def echo(args):
            seen.append(args["words"])

        words = ["k=v 100%", "a|b", 'say "hi"', "line\nbreak"]
        menu = Menu([Content("copy", Attributes().run(echo.params(*words)))])
        line, = [line for line in parse(serialize(menu, Flavor.SWIFTBAR)) if line.kind == "content"]
        argv = [line.attributes["param%d" % index] for index in range(1, len(words) + 2)]
        self.assertEqual(argv[0], "echo")

        runtime = self.runtime(registry=builder.build(), flavor=Flavor.SWIFTBAR)
        self.assertEqual(runtime.run([escape(token).strip('"') for token in argv]), 0)
        self.assertEqual(seen, [words])

    def testInvokeExits(self):
        with self.assertRaises(SystemExit) as context:
            invoke(self.runtime(registry=self.registry), ["greet", "you"])
        self.assertEqual(context.exception.code, 0)
        with self.assertRaises(SystemExit) as context:
            invoke(self.runtime(registry=self.registry), ["greet"])
        self.assertEqual(context.exception.code, ExitCode.DISPATCH)


class TestStreaming(RuntimeTestCase):

    def menus(self):
        yield Menu([Content("one")])
        yield Menu([Content("two")])

    def testMarkerBetweenMenus(self):
        code = self.runtime(lambda: Stream(self.menus), flavor=Flavor.SWIFTBAR).run([])
        self.assertEqual(code, 0)
        first, second = self.menus()
        self.assertEqual(
            self.stdout.getvalue(),
            serialize(first, Flavor.SWIFTBAR) + "~~~\n" + serialize(second, Flavor.SWIFTBAR),
        )

    def testStreamIsRestartable(self):
        stream = Stream(self.menus)
        self.runtime(stream, flavor=Flavor.SWIFTBAR).run([])
        once = self.stdout.getvalue()
        self.runtime(stream, flavor=Flavor.SWIFTBAR).run([])
        self.assertEqual(self.stdout.getvalue(), once * 2)

    def testAsyncStream(self):
        async def menus():
            for text in ("one", "two"):
                yield Menu([Content(text)])

        self.runtime(Stream(menus), flavor=Flavor.SWIFTBAR).run([])
        self.assertEqual(self.stdout.getvalue(), "one\n---\n~~~\ntwo\n---\n")

    def testFailedElementRendersErrorMenuAndContinues(self):
        def menus():
            yield Failure("hiccup")
            yield Success(Menu([Content("ok")]))

        code = self.runtime(Stream(menus), flavor=Flavor.SWIFTBAR).run([])
        self.assertEqual(code, ExitCode.HANDLER)
        self.assertEqual(self.stdout.getvalue(), "Error\n---\nhiccup\n~~~\nok\n---\n")

    def testRaisingSourceStops(self):
        def menus():
            yield Menu([Content("ok")])
            raise RuntimeError("gone")

        code = self.runtime(Stream(menus), flavor=Flavor.SWIFTBAR).run([])
        self.assertEqual(code, ExitCode.HANDLER)
        self.assertTrue(self.stdout.getvalue().startswith("ok\n---\n~~~\nError\n---\ngone\n"))

    def testUnsupportedFlavor(self):
        code = self.runtime(Stream(self.menus), flavor=Flavor.BITBAR).run([])
        self.assertEqual(code, ExitCode.VALIDATION)
        self.assertNotIn("~~~", self.stdout.getvalue())
        self.assertIn("cannot stream", self.stdout.getvalue())


class TestConstruction(TestCase):

    def testPluginDecorator(self):
        @plugin(flavor=Flavor.XBAR, environ={})
        def main():
            return hello()

        self.assertIsInstance(main, Runtime)
        self.assertIs(main.flavor, Flavor.XBAR)

    def testInvalidMain(self):
        with self.assertRaises(TypeError):
            Runtime("main", environ={})

    def testInvalidRegistry(self):
        with self.assertRaises(TypeError):
            Runtime(hello, {}, environ={})

    def testOutcomeTruthiness(self):
        self.assertTrue(Success())
        self.assertFalse(Failure("x"))
        self.assertIs(Failure.from_exception(ValueError("x")).kind, HandlerFailure)


if __name__ == "__main__":
    unittest.main()
