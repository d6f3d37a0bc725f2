"""
Channeled output tests.

The writer is driven against a rich console recording into a StringIO.
"""

import io
import unittest
from unittest import TestCase

from rich.console import Console

from maintkit import ChannelWriter


class TestChannelWriter(TestCase):
    def setUp(self):
        self.stream = io.StringIO()
        self.writer = ChannelWriter(Console(file=self.stream, width=200))

    @property
    def text(self):
        return self.stream.getvalue()

    def testSameChannelStaysOnOneLine(self):
        self.writer.write("a", "progress")
        self.writer.write("b", "progress")
        self.assertEqual(self.text, "ab")

    def testChannelSwitchStartsNewLine(self):
        self.writer.write("a", "one")
        self.writer.write("b", "two")
        self.writer.flush()
        self.assertEqual(self.text, "a\nb\n")

    def testUnchanneledWritesAreLines(self):
        self.writer.write("a", "one")
        self.writer.write("plain")
        self.writer.write("more")
        self.assertEqual(self.text, "a\nplain\nmore\n")
        self.assertTrue(self.writer.at_line_start)
        self.assertIsNone(self.writer.last_channel)

    def testFalseFlushes(self):
        self.writer.write("a", "one")
        self.writer.write(False)
        self.writer.write(None)
        self.assertEqual(self.text, "a\n")

    def testFlushWithoutPendingLineIsNoop(self):
        self.writer.flush()
        self.assertEqual(self.text, "")

    def testLastChannelRecorded(self):
        self.writer.write("a", "one")
        self.assertEqual(self.writer.last_channel, "one")
        self.assertFalse(self.writer.at_line_start)

    def testPrintIsRaw(self):
        self.writer.print("Scanning...")
        self.writer.print("done.\n")
        self.assertEqual(self.text, "Scanning...done.\n")

    def testPrintClosesChanneledLine(self):
        self.writer.write("a", "one")
        self.writer.print("[b]x[/b]\n")
        self.assertEqual(self.text, "a\n[b]x[/b]\n")

    def testTabsAndCarriageReturnsKept(self):
        self.writer.write("a\tb")
        self.writer.write("50%\r", "progress")
        self.writer.flush()
        self.assertEqual(self.text, "a\tb\n50%\r\n")

    def testPrintKeepsControlCharacters(self):
        self.writer.print("id\tname\n\x0c")
        self.assertEqual(self.text, "id\tname\n\x0c")

    def testBackspaceIsSilentOffTerminal(self):
        self.writer.print("3")
        self.writer.backspace(1)
        self.writer.print("2")
        self.assertEqual(self.text, "32")


if __name__ == "__main__":
    unittest.main()
