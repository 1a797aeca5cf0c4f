"""
Tests for the internal helpers (Unset sentinel, coalesce, rename, mirror, ordinal).

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import copy
import unittest
from unittest import TestCase

from optscan.utils import *


class UnsetTest(TestCase):
    """Semantic guarantees of the Unset sentinel."""

    def testSingleton(self) -> None:
        self.assertIs(UnsetType(), Unset)
        self.assertIs(UnsetType(), UnsetType())

    def testFalsy(self) -> None:
        self.assertFalse(Unset)
        self.assertIsNot(Unset, None)

    def testRepr(self) -> None:
        self.assertEqual(repr(Unset), "Unset")

    def testCopyPreservesIdentity(self) -> None:
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)

    def testUnionWithTypes(self) -> None:
        # isinstance accepts the union built from the sentinel
        self.assertTrue(isinstance(Unset, str | Unset))
        self.assertTrue(isinstance("text", str | Unset))
        self.assertFalse(isinstance(3, str | Unset))

    def testNotSubclassable(self) -> None:
        with self.assertRaises(TypeError):
            class Derived(UnsetType): ...  # NOQA: F-811


class HelpersTest(TestCase):
    """Behavior of coalesce, rename, mirror and ordinal."""

    def testCoalesce(self) -> None:
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 5), 0)
        self.assertEqual(coalesce("", "x"), "")

    def testRenameDirect(self) -> None:
        def function(): ...
        rename(function, "renamed")
        self.assertEqual(function.__name__, "renamed")
        self.assertEqual(function.__qualname__, "renamed")

    def testRenameDecorator(self) -> None:
        @rename("decorated")
        def function(): ...
        self.assertEqual(function.__name__, "decorated")

    def testRenameRejectsBadArguments(self) -> None:
        with self.assertRaises(TypeError):
            rename(5, "name")
        with self.assertRaises(TypeError):
            rename(lambda: None, 5)
        with self.assertRaises(TypeError):
            rename()

    def testMirrorSnapshotsContainers(self) -> None:
        class Holder:
            items = mirror("items")

            def __init__(self):
                self._items = [1, [2, 3]]

        holder = Holder()
        self.assertEqual(holder.items, (1, (2, 3)))
        with self.assertRaises(AttributeError):
            holder.items = ()

    def testMirrorRejectsNonString(self) -> None:
        with self.assertRaises(TypeError):
            mirror(5)

    def testOrdinalWords(self) -> None:
        self.assertEqual(ordinal(1), "first")
        self.assertEqual(ordinal(3), "third")
        self.assertEqual(ordinal(10), "tenth")

    def testOrdinalSuffixes(self) -> None:
        self.assertEqual(ordinal(11), "11th")
        self.assertEqual(ordinal(12), "12th")
        self.assertEqual(ordinal(13), "13th")
        self.assertEqual(ordinal(21), "21st")
        self.assertEqual(ordinal(22), "22nd")
        self.assertEqual(ordinal(23), "23rd")
        self.assertEqual(ordinal(101), "101st")
        self.assertEqual(ordinal(112), "112th")


if __name__ == "__main__":
    unittest.main()
