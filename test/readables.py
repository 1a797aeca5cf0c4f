"""
Readables module behavioral tests (descriptor construction, reading, rendering).

Scope
- Validate metadata sanitization for every variant (names, shorts, descr templates, defaults).
- Validate read() for each variant: consumed counts, success, faults and stored values.
- Validate textualize()/describe() output and introspection (repr, read-only properties).

Conventions
- Test method names follow CamelCase per project convention.
- Descriptors are always built fresh inside each test (they are mutated by read()).
"""

from __future__ import annotations

import unittest
from unittest import TestCase

from optscan import (
    Readable,
    Flag,
    Int,
    Float,
    String,
    IntSequence,
    StringSequence,
    IntRange,
    Reading,
    FaultCode,
    read,
    textualize,
)


class TestConstruction(TestCase):
    """Construction-time normalization and validation."""

    def testFlagDefaults(self):
        verbose = Flag("verbose")
        self.assertEqual(verbose.name, "verbose")
        self.assertIsNone(verbose.short)
        self.assertFalse(verbose.set)
        self.assertFalse(verbose.parametric)
        self.assertEqual(verbose.descr, "no description: %(name)s")

    def testValueDefaults(self):
        self.assertEqual(Int("threads").value, 0)
        self.assertEqual(Float("ratio").value, 0.0)
        self.assertIsNone(String("output").value)
        self.assertEqual(IntSequence("points").value, ())
        self.assertEqual(StringSequence("files").value, ())
        self.assertEqual(IntRange("frames").value, (0, 1, 0))

    def testExplicitDefaults(self):
        threads = Int("threads", 4, "t")
        self.assertEqual(threads.value, 4)
        self.assertEqual(threads.default, 4)
        self.assertEqual(threads.short, "t")
        self.assertTrue(threads.parametric)
        self.assertEqual(IntSequence("points", [1, 2]).value, (1, 2))
        self.assertEqual(IntRange("frames", 3).value, (3, 1, 3))

    def testFloatDefaultAcceptsIntegers(self):
        ratio = Float("ratio", 2)
        self.assertIsInstance(ratio.value, float)
        self.assertEqual(ratio.value, 2.0)

    def testNameIsTrimmed(self):
        self.assertEqual(Flag("  verbose ").name, "verbose")

    def testNameValidation(self):
        with self.assertRaises(TypeError):
            Flag(5)
        with self.assertRaises(ValueError):
            Flag("   ")
        with self.assertRaises(ValueError):
            Flag("--verbose")
        with self.assertRaises(ValueError):
            Flag("out=put")
        with self.assertRaises(ValueError):
            Flag("two words")

    def testShortValidation(self):
        with self.assertRaises(TypeError):
            Flag("verbose", 5)
        with self.assertRaises(ValueError):
            Flag("verbose", "vv")
        with self.assertRaises(ValueError):
            Flag("verbose", "-")
        with self.assertRaises(ValueError):
            Flag("verbose", "=")
        with self.assertRaises(ValueError):
            Flag("verbose", " ")

    def testDescrValidation(self):
        with self.assertRaises(TypeError):
            Flag("verbose", descr=5)
        with self.assertRaises(ValueError):
            Flag("verbose", descr="  ")
        with self.assertRaises(ValueError):
            Flag("verbose", descr="%(unknown)s")

    def testDescrRejectsPositionalConversions(self):
        with self.assertRaises(ValueError):
            Flag("verbose", descr="NO DESCRIPTION: %s")
        with self.assertRaises(ValueError):
            Int("threads", descr="%(name)s defaults to %d")

    def testDescrAllowsEscapedPercent(self):
        ratio = Float("ratio", 0.5, descr="%(name)s in 100%% units")
        self.assertEqual(ratio.describe(), "ratio in 100% units")

    def testDefaultValidation(self):
        with self.assertRaises(TypeError):
            Int("threads", "4")
        with self.assertRaises(TypeError):
            Int("threads", True)
        with self.assertRaises(TypeError):
            Float("ratio", "0.5")
        with self.assertRaises(TypeError):
            String("output", 5)
        with self.assertRaises(TypeError):
            IntSequence("points", "123")
        with self.assertRaises(TypeError):
            IntSequence("points", [1, "2"])
        with self.assertRaises(TypeError):
            StringSequence("files", ["a", 2])
        with self.assertRaises(TypeError):
            IntRange("frames", 1.5)

    def testReadableCannotBeInstantiated(self):
        with self.assertRaises(TypeError):
            Readable()

    def testVariantsAreSealed(self):
        with self.assertRaises(TypeError):
            class Custom(Flag): ...  # NOQA: F-811

    def testPropertiesAreReadOnly(self):
        threads = Int("threads", 1)
        with self.assertRaises(AttributeError):
            threads.value = 5
        with self.assertRaises(AttributeError):
            threads.set = True

    def testRepr(self):
        self.assertEqual(
            repr(Flag("verbose", "v")),
            "flag(name='verbose', short='v', set=False, descr='no description: %(name)s')",
        )
        self.assertTrue(repr(IntSequence("points")).startswith("int-sequence(name='points'"))


class TestRead(TestCase):
    """read(): tokens consumed, success, faults and stored values."""

    def testFlag(self):
        verbose = Flag("verbose")
        self.assertEqual(read(verbose, ("ignored",)), Reading(0, True))
        self.assertTrue(verbose.set)

    def testInt(self):
        threads = Int("threads", 1)
        self.assertEqual(read(threads, ("42", "file")), Reading(1, True, None))
        self.assertEqual(threads.value, 42)
        self.assertTrue(threads.set)

    def testIntNegative(self):
        offset = Int("offset")
        read(offset, ("-7",))
        self.assertEqual(offset.value, -7)

    def testIntPermissivePrefix(self):
        threads = Int("threads", 1)
        self.assertEqual(read(threads, ("12abc",)), Reading(1, True, FaultCode.MALFORMED_VALUE))
        self.assertEqual(threads.value, 12)
        self.assertTrue(threads.set)

    def testIntPermissiveGarbage(self):
        threads = Int("threads", 1)
        self.assertEqual(read(threads, ("abc",)).fault, FaultCode.MALFORMED_VALUE)
        self.assertEqual(threads.value, 0)

    def testIntOverlongDigitsSaturate(self):
        threads = Int("threads", 1)
        self.assertEqual(read(threads, ("9" * 5000,)), Reading(1, True, FaultCode.MALFORMED_VALUE))
        self.assertEqual(threads.value, (1 << 63) - 1)
        read(threads, ("-" + "9" * 5000,))
        self.assertEqual(threads.value, -(1 << 63))

    def testIntOutOfRangeSaturates(self):
        threads = Int("threads")
        self.assertEqual(read(threads, ("9" * 30,)).fault, FaultCode.MALFORMED_VALUE)
        self.assertEqual(threads.value, (1 << 63) - 1)

    def testIntRejectsNonAsciiDigits(self):
        threads = Int("threads", 1)
        self.assertEqual(read(threads, ("٣",)), Reading(1, True, FaultCode.MALFORMED_VALUE))
        self.assertEqual(threads.value, 0)

    def testFloatRejectsNonAsciiDigits(self):
        ratio = Float("ratio", 1.0)
        self.assertEqual(read(ratio, ("٣.5",)).fault, FaultCode.MALFORMED_VALUE)
        self.assertEqual(ratio.value, 0.0)

    def testFloat(self):
        ratio = Float("ratio")
        self.assertEqual(read(ratio, ("2.5",)), Reading(1, True, None))
        self.assertEqual(ratio.value, 2.5)
        read(ratio, ("1e3",))
        self.assertEqual(ratio.value, 1000.0)
        read(ratio, (".5",))
        self.assertEqual(ratio.value, 0.5)

    def testFloatPermissive(self):
        ratio = Float("ratio", 1.0)
        self.assertEqual(read(ratio, ("x",)).fault, FaultCode.MALFORMED_VALUE)
        self.assertEqual(ratio.value, 0.0)

    def testString(self):
        output = String("output")
        self.assertEqual(read(output, ("mesh.ply",)), Reading(1, True))
        self.assertEqual(output.value, "mesh.ply")

    def testStringTakesDashedValues(self):
        output = String("output")
        read(output, ("-weird-",))
        self.assertEqual(output.value, "-weird-")

    def testMissingValue(self):
        for readable in (Int("a", 3), Float("b"), String("c"), IntSequence("d"), StringSequence("e"), IntRange("f")):
            with self.subTest(readable=readable):
                before = readable.value
                self.assertEqual(read(readable, ()), Reading(0, False, FaultCode.MISSING_VALUE))
                self.assertFalse(readable.set)
                self.assertEqual(readable.value, before)

    def testIntSequence(self):
        points = IntSequence("points")
        self.assertEqual(read(points, ("3", "10", "20", "30", "extra")), Reading(4, True, None))
        self.assertEqual(points.value, (10, 20, 30))
        self.assertTrue(points.set)

    def testIntSequenceMalformedItem(self):
        points = IntSequence("points")
        self.assertEqual(read(points, ("2", "10", "x")), Reading(3, True, FaultCode.MALFORMED_VALUE))
        self.assertEqual(points.value, (10, 0))

    def testStringSequence(self):
        files = StringSequence("files")
        self.assertEqual(read(files, ("2", "a.ply", "b.ply", "c.ply")), Reading(3, True))
        self.assertEqual(files.value, ("a.ply", "b.ply"))

    def testSequenceNonPositiveCount(self):
        for count in ("0", "-2", "abc"):
            with self.subTest(count=count):
                files = StringSequence("files", ["keep"])
                self.assertEqual(read(files, (count, "a", "b")), Reading(1, False, FaultCode.INVALID_COUNT))
                self.assertEqual(files.value, ("keep",))
                self.assertFalse(files.set)

    def testSequenceCountExceedsTokens(self):
        points = IntSequence("points")
        self.assertEqual(read(points, ("3", "1", "2")), Reading(1, False, FaultCode.INVALID_COUNT))
        self.assertEqual(points.value, ())

    def testSequenceOverlongCount(self):
        points = IntSequence("points", [7])
        self.assertEqual(read(points, ("9" * 5000, "1")), Reading(1, False, FaultCode.INVALID_COUNT))
        self.assertEqual(points.value, (7,))
        self.assertFalse(points.set)

    def testRangeFull(self):
        frames = IntRange("frames")
        self.assertEqual(read(frames, ("2:3:10",)), Reading(1, True))
        self.assertEqual((frames.start, frames.step, frames.end), (2, 3, 10))
        self.assertTrue(frames.set)

    def testRangeStartEnd(self):
        frames = IntRange("frames")
        read(frames, ("2:10",))
        self.assertEqual(frames.value, (2, 1, 10))

    def testRangeBareInteger(self):
        frames = IntRange("frames")
        read(frames, ("5",))
        self.assertEqual(frames.value, (5, 1, 5))

    def testRangeMalformedResetsToDefault(self):
        frames = IntRange("frames", 4)
        read(frames, ("1:9",))
        self.assertEqual(read(frames, ("abc",)), Reading(1, False, FaultCode.MALFORMED_VALUE))
        self.assertEqual(frames.value, (4, 1, 4))
        self.assertFalse(frames.set)

    def testRangeRejectsTrailingText(self):
        frames = IntRange("frames")
        self.assertFalse(read(frames, ("1:2:3:4",)).success)
        self.assertFalse(read(frames, ("5x",)).success)

    def testRangeOverlongBound(self):
        frames = IntRange("frames", 2)
        self.assertEqual(read(frames, ("1:" + "9" * 5000,)), Reading(1, False, FaultCode.MALFORMED_VALUE))
        self.assertEqual(frames.value, (2, 1, 2))
        self.assertFalse(frames.set)
        self.assertFalse(read(frames, ("9" * 5000,)).success)
        self.assertFalse(read(frames, ("1:" + "9" * 30 + ":5",)).success)

    def testRangeRejectsNonAsciiDigits(self):
        frames = IntRange("frames")
        self.assertFalse(read(frames, ("١:٥",)).success)
        self.assertEqual(frames.value, (0, 1, 0))

    def testRangeValues(self):
        frames = IntRange("frames")
        read(frames, ("1:2:9",))
        self.assertEqual(frames.values, (1, 3, 5, 7, 9))
        read(frames, ("9:-3:0",))
        self.assertEqual(frames.values, (9, 6, 3, 0))
        read(frames, ("4:0:8",))
        self.assertEqual(frames.values, (4,))

    def testRepeatedReadsOverwrite(self):
        threads = Int("threads")
        read(threads, ("2",))
        read(threads, ("5",))
        self.assertEqual(threads.value, 5)
        self.assertTrue(threads.set)

    def testReadRejectsNonReadables(self):
        with self.assertRaises(TypeError):
            read(object(), ("1",))


class TestRendering(TestCase):
    """textualize() and describe()."""

    def testTextualize(self):
        threads = Int("threads", 8)
        ratio = Float("ratio", 1.5)
        points = IntSequence("points", [10, 20])
        frames = IntRange("frames")
        read(frames, ("1:2:9",))
        self.assertEqual(textualize(Flag("verbose")), "")
        self.assertEqual(textualize(threads), "8")
        self.assertEqual(textualize(ratio), "1.500000")
        self.assertEqual(textualize(String("output")), "")
        self.assertEqual(textualize(String("output", "a.ply")), "a.ply")
        self.assertEqual(textualize(points), "10 20")
        self.assertEqual(textualize(frames), "1:2:9")

    def testTextualizeRejectsNonReadables(self):
        with self.assertRaises(TypeError):
            textualize("threads")

    def testDescribeTemplate(self):
        iterations = Int("iterations", 100, descr="--%(name)s <n> [%(value)s]")
        self.assertEqual(iterations.describe(), "--iterations <n> [100]")
        read(iterations, ("250",))
        self.assertEqual(iterations.describe(), "--iterations <n> [250]")

    def testDescribeDefault(self):
        self.assertEqual(Flag("verbose").describe(), "no description: verbose")


if __name__ == "__main__":
    unittest.main()
