"""
Option model tests (spec sanitization, registry invariants, freezing).

Conventions
- Test method names follow CamelCase per project convention.
"""

import unittest
from unittest import TestCase

from maintkit import OptionRegistry, OptionSpec, PositionalSpec
from maintkit.faults import DuplicateOptionError, FaultCode


class TestOptionSpec(TestCase):
    def testDescriptionIsTrimmed(self):
        spec = OptionSpec("limit", "  Maximum rows \n")
        self.assertEqual(spec.description, "Maximum rows")

    def testDefaults(self):
        spec = OptionSpec("verbose")
        self.assertFalse(spec.required)
        self.assertFalse(spec.takes_value)
        self.assertFalse(spec.repeatable)
        self.assertIsNone(spec.short_alias)
        self.assertEqual(spec.group, "specific")

    def testInvalidNamesRejected(self):
        for name in ("", "--limit", "-l", "with space", "trailing-"):
            with self.subTest(name=name), self.assertRaises(ValueError):
                OptionSpec(name)

    def testNonStringNameRejected(self):
        with self.assertRaises(TypeError):
            OptionSpec(42)

    def testShortAliasMustBeOneCharacter(self):
        with self.assertRaises(ValueError):
            OptionSpec("limit", short_alias="lm")

    def testUnknownGroupRejected(self):
        with self.assertRaises(ValueError):
            OptionSpec("limit", group="extra")

    def testEqualityAndHash(self):
        self.assertEqual(OptionSpec("limit", "rows", takes_value=True), OptionSpec("limit", "rows", takes_value=True))
        self.assertEqual(len({PositionalSpec("table"), PositionalSpec("table")}), 1)

    def testPropertiesAreReadOnly(self):
        spec = OptionSpec("limit")
        with self.assertRaises(AttributeError):
            spec.name = "other"


class TestOptionRegistry(TestCase):
    def setUp(self):
        self.registry = OptionRegistry()

    def testAliasResolution(self):
        self.registry.declare_option("limit", "Maximum rows", takes_value=True, short_alias="l")
        self.assertEqual(self.registry.resolve_alias("l"), "limit")
        self.assertIsNone(self.registry.resolve_alias("x"))

    def testDuplicateDeclarationRaises(self):
        self.registry.declare_option("limit")
        with self.assertRaises(DuplicateOptionError) as context:
            self.registry.declare_option("limit")
        self.assertIs(context.exception.options["code"], FaultCode.DUPLICATE_OPTION)

    def testAliasClashRaises(self):
        self.registry.declare_option("limit", short_alias="l")
        with self.assertRaises(ValueError):
            self.registry.declare_option("list", short_alias="l")

    def testUndeclareRemovesAlias(self):
        self.registry.declare_option("limit", short_alias="l")
        self.registry.undeclare("limit")
        self.assertFalse(self.registry.is_declared("limit"))
        self.assertIsNone(self.registry.resolve_alias("l"))
        self.registry.declare_option("list", short_alias="l")

    def testUndeclareUnknownIsNoop(self):
        self.registry.undeclare("missing")

    def testRequiredPositionalAfterOptionalRejected(self):
        self.registry.declare_positional("table", required=False)
        with self.assertRaises(ValueError):
            self.registry.declare_positional("column")

    def testOptionalPositionalsAfterRequired(self):
        self.registry.declare_positional("table")
        self.registry.declare_positional("column", required=False)
        self.registry.declare_positional("value", required=False)
        self.assertEqual([spec.name for spec in self.registry.positionals], ["table", "column", "value"])

    def testFrozenRegistryRejectsChanges(self):
        self.registry.declare_option("limit")
        self.registry.freeze()
        self.assertTrue(self.registry.frozen)
        with self.assertRaises(RuntimeError):
            self.registry.declare_option("other")
        with self.assertRaises(RuntimeError):
            self.registry.declare_positional("table")
        with self.assertRaises(RuntimeError):
            self.registry.undeclare("limit")

    def testBatchSizeAllowedAfterFreeze(self):
        self.registry.declare_batch_size(100)
        self.registry.freeze()
        spec = self.registry.declare_batch_size(500)
        self.assertEqual(spec.description, "Run this many operations per batch, default: 500")
        self.assertTrue(spec.takes_value)
        self.assertEqual(spec.group, "dependent")

    def testGroupsKeepDeclarationOrder(self):
        self.registry.declare_option("zeta")
        self.registry.declare_option("alpha")
        self.registry.declare_option("help", group="generic")
        self.assertEqual([spec.name for spec in self.registry.group("specific")], ["zeta", "alpha"])
        self.assertEqual([spec.name for spec in self.registry.group("generic")], ["help"])

    def testOptionsViewIsReadOnly(self):
        with self.assertRaises(TypeError):
            self.registry.options["limit"] = OptionSpec("limit")


if __name__ == "__main__":
    unittest.main()
