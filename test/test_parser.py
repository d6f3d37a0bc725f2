"""
Argv parser tests (token classes, value consumption, repeats, aliases).

Conventions
- Test method names follow CamelCase per project convention.
"""

import unittest
from unittest import TestCase

from maintkit import ArgvParser, OptionRegistry, PRESENT
from maintkit.faults import DuplicateOptionError, MissingValueError


class TestArgvParser(TestCase):
    def setUp(self):
        self.registry = OptionRegistry()
        self.registry.declare_option("limit", "Maximum rows", takes_value=True, short_alias="l")
        self.registry.declare_option("verbose", "Chatty output", short_alias="v")
        self.registry.declare_option("quiet", "No output", short_alias="q")
        self.registry.declare_option("tag", "Tag to apply", takes_value=True, repeatable=True, short_alias="t")
        self.registry.declare_option("skip", "Skip a table", repeatable=True)
        self.parser = ArgvParser(self.registry)

    def parse(self, *tokens):
        return self.parser.parse(tokens)

    def testPositionalsOnly(self):
        result = self.parse("a", "b")
        self.assertEqual(result.options, {})
        self.assertEqual(result.arguments, ["a", "b"])

    def testLongOptionWithSeparateValue(self):
        result = self.parse("--limit", "10", "table")
        self.assertEqual(result.options, {"limit": "10"})
        self.assertEqual(result.arguments, ["table"])

    def testValueTakingOptionConsumesDashedToken(self):
        result = self.parse("--limit", "--verbose")
        self.assertEqual(result.options, {"limit": "--verbose"})

    def testLongOptionEqualsForm(self):
        result = self.parse("--color=red")
        self.assertEqual(result.options, {"color": "red"})

    def testLongOptionEqualsSplitsOnFirstEquals(self):
        result = self.parse("--expr=a=b")
        self.assertEqual(result.options, {"expr": "a=b"})

    def testFlagIsPresent(self):
        result = self.parse("--verbose")
        self.assertEqual(result.options, {"verbose": PRESENT})

    def testMissingValueRaises(self):
        with self.assertRaises(MissingValueError):
            self.parse("--limit")

    def testShortPack(self):
        result = self.parse("-vq")
        self.assertEqual(result.options, {"verbose": PRESENT, "quiet": PRESENT})

    def testShortValueStopsPack(self):
        result = self.parse("-vlq", "5")
        self.assertEqual(result.options, {"verbose": PRESENT, "limit": "5"})
        self.assertEqual(result.arguments, [])

    def testShortMissingValueRaises(self):
        with self.assertRaises(MissingValueError):
            self.parse("-l")

    def testUnknownShortRecordedAsIs(self):
        result = self.parse("-x")
        self.assertEqual(result.options, {"x": PRESENT})

    def testDoubleDashEndsOptions(self):
        result = self.parse("--verbose", "--", "--quiet", "-v", "x")
        self.assertEqual(result.options, {"verbose": PRESENT})
        self.assertEqual(result.arguments, ["--quiet", "-v", "x"])

    def testSingleDashIsPositional(self):
        result = self.parse("-", "out")
        self.assertEqual(result.arguments, ["-", "out"])
        self.assertEqual(result.options, {})

    def testRepeatableAccumulates(self):
        result = self.parse("--tag", "a", "-t", "b", "--skip", "--skip")
        self.assertEqual(result.options, {"tag": ["a", "b"], "skip": [PRESENT, PRESENT]})

    def testDuplicateNonRepeatableRaises(self):
        with self.assertRaises(DuplicateOptionError) as context:
            self.parse("--verbose", "-v")
        self.assertEqual(str(context.exception), "verbose parameter given twice")

    def testOrderedLogKeepsEveryOccurrence(self):
        result = self.parse("--tag", "a", "-v", "--tag", "b", "--unknown=1")
        self.assertEqual(result.ordered, [
            ("tag", "a"),
            ("verbose", PRESENT),
            ("tag", "b"),
            ("unknown", "1"),
        ])

    def testUnregisteredLongOptionRecorded(self):
        result = self.parse("--whatever")
        self.assertEqual(result.options, {"whatever": PRESENT})


if __name__ == "__main__":
    unittest.main()
