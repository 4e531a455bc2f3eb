"""
Attribute model tests (storage, colors, images, per-flavor rendering).

Scope
- Storage never fails on values; only unknown option names are rejected.
- image and sf_symbol clear each other.
- render() validates against a flavor's capabilities and emits sorted pairs.

Conventions
- Test method names follow CamelCase per project convention.
- Tests use the public API (Attributes, Color, Image, Params, Flavor).
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from barkeep import Attributes, Color, Image, Params, Flavor, capabilities
from barkeep.faults import (
    UnsupportedAttributeError,
    InvalidAttributeError,
    ConflictingAttributesError,
    ValidationError,
)

BITBAR = Flavor.BITBAR.capabilities
XBAR = Flavor.XBAR.capabilities
SWIFTBAR = Flavor.SWIFTBAR.capabilities


class TestColor(TestCase):
    """Color parsing and formatting."""

    def testShortHexExpands(self):
        self.assertEqual(str(Color.parse("#F00")), "#ff0000")

    def testAlphaIsIgnored(self):
        self.assertEqual(str(Color.parse("#ff000080")), "#ff0000")
        self.assertEqual(str(Color.parse("rgba(1, 2, 3, 0.5)")), "#010203")

    def testFunctionalNotation(self):
        self.assertEqual(str(Color.parse("rgb(255, 128, 0)")), "#ff8000")

    def testNamedColorRendersAsHex(self):
        self.assertEqual(str(Color.parse("Red")), "#ff0000")

    def testCssNames(self):
        for name, expected in (
            ("orange", "#ffa500"),
            ("pink", "#ffc0cb"),
            ("gold", "#ffd700"),
            ("gray", "#808080"),
            ("navy", "#000080"),
            ("teal", "#008080"),
        ):
            with self.subTest(name=name):
                self.assertEqual(Attributes().color(name).render(BITBAR), (("color", expected),))

    def testHslNotation(self):
        self.assertEqual(str(Color.parse("hsl(120, 100%, 50%)")), "#00ff00")
        self.assertEqual(str(Color.parse("hsla(0, 100%, 50%, 0.3)")), "#ff0000")
        self.assertEqual(str(Color.parse("hsl(0, 0%, 100%),hsl(240deg, 100%, 25%)")), "#ffffff,#000080")

    def testThemedColor(self):
        color = Color.parse("#000,#fff")
        self.assertTrue(color.themed)
        self.assertEqual(str(color), "#000000,#ffffff")

    def testTupleColor(self):
        self.assertEqual(Color((0, 16, 255)), Color.parse("#0010ff"))

    def testUnknownNameRejected(self):
        with self.assertRaises(ValueError):
            Color.parse("notacolor")

    def testChannelOutOfRangeRejected(self):
        with self.assertRaises(ValueError):
            Color.parse("rgb(300, 0, 0)")


class TestStorage(TestCase):
    """Attributes are plain storage until rendered."""

    def testSettingInvalidValuesNeverFails(self):
        attributes = Attributes().font_size(-1).color("bogus").href("nope")
        self.assertEqual(attributes["font_size"], -1)
        self.assertEqual(len(attributes), 3)

    def testUnknownOptionRejected(self):
        with self.assertRaises(TypeError):
            Attributes(colour="red")

    def testImageClearsSymbol(self):
        attributes = Attributes().sf_symbol("bolt").image(b"png")
        self.assertNotIn("sf_symbol", attributes)
        self.assertIn("image", attributes)

    def testSymbolClearsImage(self):
        attributes = Attributes().image(b"png").sf_symbol("bolt")
        self.assertNotIn("image", attributes)
        self.assertEqual(attributes["sf_symbol"], "bolt")

    def testNoneClearsOption(self):
        attributes = Attributes(color="red").color(None)
        self.assertFalse(attributes)

    def testRunUsesParams(self):
        attributes = Attributes().run(Params("/bin/echo", "a", 1))
        self.assertEqual(attributes["shell_command"], "/bin/echo")
        self.assertEqual(attributes["shell_params"], ["a", "1"])

    def testCopyIsIndependent(self):
        original = Attributes(color="red")
        duplicate = original.copy().font_size(12)
        self.assertNotIn("font_size", original)
        self.assertNotEqual(original, duplicate)


class TestRender(TestCase):
    """Validation and rendering against capability rows."""

    def testEmptyRendersNothing(self):
        self.assertEqual(Attributes().render(BITBAR), ())

    def testPairsAreSorted(self):
        pairs = Attributes().font_size(12).color("red").font_family("Menlo").render(BITBAR)
        self.assertEqual(pairs, (("color", "#ff0000"), ("font", "Menlo"), ("size", "12")))

    def testShellCommandDefaultsTerminalOff(self):
        pairs = Attributes().shell("/bin/echo", "a", "b").render(BITBAR)
        self.assertEqual(pairs, (
            ("bash", "/bin/echo"),
            ("param1", "a"),
            ("param2", "b"),
            ("terminal", "false"),
        ))

    def testXbarUsesShellKey(self):
        pairs = dict(Attributes().shell("/bin/echo", terminal=True).render(XBAR))
        self.assertEqual(pairs, {"shell": "/bin/echo", "terminal": "true"})

    def testBitbarParamCap(self):
        attributes = Attributes().shell("/bin/echo", *"abcdef")
        with self.assertRaises(InvalidAttributeError):
            attributes.render(BITBAR)
        self.assertEqual(len(attributes.render(XBAR)), 8)

    def testParamCapIsConfigurable(self):
        attributes = Attributes().shell("/bin/echo", *"abcdef")
        self.assertEqual(len(attributes.render(capabilities(Flavor.BITBAR, max_params=6))), 8)

    def testParamsWithoutCommandConflict(self):
        with self.assertRaises(ConflictingAttributesError):
            Attributes(shell_params=["a"]).render(XBAR)

    def testTerminalWithoutCommandConflict(self):
        with self.assertRaises(ConflictingAttributesError):
            Attributes().terminal().render(XBAR)

    def testSymbolUnsupportedOnBitbar(self):
        with self.assertRaises(UnsupportedAttributeError):
            Attributes().sf_symbol("bolt").render(BITBAR)
        self.assertEqual(Attributes().sf_symbol("bolt").render(SWIFTBAR), (("sfimage", "bolt"),))

    def testBackgroundColorOnlyOnSwiftbar(self):
        with self.assertRaises(UnsupportedAttributeError):
            Attributes().background_color("#000").render(XBAR)
        self.assertEqual(Attributes().background_color("#000").render(SWIFTBAR), (("bgcolor", "#000000"),))

    def testThemedColorRequiresThemedHost(self):
        attributes = Attributes().color("#fff", "#000")
        with self.assertRaises(UnsupportedAttributeError):
            attributes.render(BITBAR)
        self.assertEqual(attributes.render(XBAR), (("color", "#ffffff,#000000"),))

    def testInvalidColorRejected(self):
        with self.assertRaises(InvalidAttributeError):
            Attributes().color("bogus").render(BITBAR)

    def testFontSizeMustBePositiveInteger(self):
        for size in (0, -3, 1.5, True, "12"):
            with self.subTest(size=size), self.assertRaises(InvalidAttributeError):
                Attributes().font_size(size).render(BITBAR)

    def testHrefMustBeAbsolute(self):
        with self.assertRaises(InvalidAttributeError):
            Attributes().href("not a url").render(BITBAR)
        self.assertEqual(Attributes().href("https://example.com").render(BITBAR), (("href", "https://example.com"),))

    def testImageIsBase64Encoded(self):
        self.assertEqual(Attributes().image(b"\x89PNG").render(BITBAR), (("image", "iVBORw=="),))
        self.assertEqual(Attributes().template_image("aW1n").render(BITBAR), (("templateImage", "aW1n"),))

    def testInvalidBase64Rejected(self):
        with self.assertRaises(InvalidAttributeError):
            Attributes().image(Image("!!!")).render(BITBAR)

    def testBooleanOptions(self):
        pairs = dict(Attributes().trim(False).emoji().ansi(False).alternate().refresh(False).render(BITBAR))
        self.assertEqual(pairs, {"trim": "false", "emojize": "true", "ansi": "false", "alternate": "true"})

    def testNonBooleanFlagRejected(self):
        with self.assertRaises(InvalidAttributeError):
            Attributes().refresh("yes").render(BITBAR)

    def testErrorsAreValidationErrors(self):
        with self.assertRaises(ValidationError):
            Attributes().sf_symbol("bolt").render(BITBAR)


if __name__ == "__main__":
    unittest.main()
