"""
Tests for the internal helpers.

This module verifies semantic guarantees of the `Unset` sentinel and of the
small helpers built around it:
- Singleton identity, falsy semantics and representation.
- Copying, deep copying and pickling preserve identity.
- Finality (type cannot be subclassed).
- The shared SpecType metaclass.
- coalesce(), rename() and mirror() behavior.
"""
import copy
import pickle
import unittest
from unittest import TestCase

from optbind.utils import *


class TestUnset(TestCase):
    """
    Test suite for the `UnsetType` singleton.
    """

    def testSingleton(self) -> None:
        """
        The constructor returns the exported instance on every call.
        """
        self.assertIs(UnsetType(), Unset)
        self.assertIs(UnsetType(), UnsetType())

    def testFalsely(self) -> None:
        """
        The sentinel is falsy but not equal to other falsy values.
        """
        self.assertFalse(bool(Unset))
        self.assertNotEqual(Unset, None)
        self.assertNotEqual(Unset, 0)

    def testRepr(self) -> None:
        self.assertEqual(repr(Unset), "Unset")

    def testUnion(self) -> None:
        """
        PEP 604 unions work in isinstance checks.
        """
        self.assertTrue(isinstance(Unset, str | Unset))
        self.assertTrue(isinstance("x", Unset | str))
        self.assertFalse(isinstance(3, str | Unset))

    def testCopyDeepcopyPickle(self) -> None:
        """
        copy(), deepcopy() and pickle round-trips preserve the identity.
        """
        self.assertIs(copy.copy(Unset), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)
        self.assertIs(pickle.loads(pickle.dumps(Unset)), Unset)

    def testFinalClass(self) -> None:
        with self.assertRaises(TypeError):
            type("Unset", (UnsetType,), {})


class TestSpecType(TestCase):
    """
    Test suite for the shared `SpecType` metaclass.
    """

    def testFieldsTypenameAndRepr(self) -> None:
        class SampleRecord(metaclass=SpecType):
            __introspectable__ = ("size", "label")

            def __init__(self):
                self._size = 3
                self._label = ["a"]

        record = SampleRecord()
        self.assertEqual(SampleRecord.__typename__, "sample-record")
        self.assertEqual(record.label, ("a",))
        self.assertEqual(repr(record), "sample-record(size=3, label=('a',))")
        self.assertEqual(list(record.__rich_repr__()), [("size", 3), ("label", ("a",))])
        with self.assertRaises(AttributeError):
            record.size = 4

    def testExplicitMembersAreKept(self) -> None:
        class Sample(metaclass=SpecType):
            __introspectable__ = ("value",)

            @property
            def value(self):
                return "explicit"

        self.assertEqual(Sample().value, "explicit")
        self.assertEqual(repr(Sample()), "sample(value='explicit')")


class TestHelpers(TestCase):
    """
    Test suite for coalesce(), rename() and mirror().
    """

    def testCoalesce(self) -> None:
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))
        for value in (None, 0, "", False, []):
            with self.subTest(value=value):
                self.assertIs(coalesce(value, "fallback"), value)

    def testRenameForms(self) -> None:
        def handler():
            pass

        self.assertIs(rename(handler, "renamed"), handler)
        self.assertEqual((handler.__name__, handler.__qualname__), ("renamed", "renamed"))

        @rename("decorated")
        def other():
            pass

        self.assertEqual(other.__name__, "decorated")

    def testRenameRejections(self) -> None:
        with self.assertRaises(TypeError):
            rename(42, "name")
        with self.assertRaises(TypeError):
            rename(print, 42)
        with self.assertRaises(TypeError):
            rename()

    def testMirrorFreezesContainers(self) -> None:
        class Record:
            items = mirror("items")
            table = mirror("table")
            value = mirror("value")

            def __init__(self):
                self._items = [1, 2]
                self._table = {"a": 1}
                self._value = "text"

        record = Record()
        self.assertEqual(record.items, (1, 2))
        with self.assertRaises(TypeError):
            record.table["b"] = 2
        self.assertEqual(record.value, "text")
        with self.assertRaises(AttributeError):
            record.items = ()


if __name__ == "__main__":
    unittest.main()
