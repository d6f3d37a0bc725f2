"""
Channeled console output.

A script may interleave labeled progress ("channels") with ordinary output on
one stream. The writer keeps at most one unterminated line pending and starts a
fresh line whenever the channel changes, so labels never land in the middle of
another channel's line.

State (per writer, one writer per script invocation)
- at_line_start: nothing is pending on the current line.
- last_channel: channel of the most recent write (None for unchanneled writes).
"""
from rich.console import Console
from rich.control import Control


class ChannelWriter:
    def __init__(self, console=None):
        self.console = console if console is not None else Console(highlight=False)
        self.at_line_start = True
        self.last_channel = None

    def _emit(self, text):
        self.console.file.write(text)
        self.console.file.flush()

    def flush(self):
        """close the pending line, if any."""
        if not self.at_line_start:
            self._emit("\n")
            self.at_line_start = True

    def write(self, text, channel=None):
        """
        write text on a channel; text of False/None only flushes.

        - a different channel than the previous write starts a new line first.
        - unchanneled writes (channel None) are complete lines.
        """
        if text is False or text is None:
            self.flush()
            return

        if not self.at_line_start and channel != self.last_channel:
            self._emit("\n")

        self._emit(text)
        self.at_line_start = False
        if channel is None:
            self._emit("\n")
            self.at_line_start = True
        self.last_channel = channel

    def print(self, text):
        """
        emit raw text after closing any pending channeled line.

        the text carries its own newlines, so "Scanning..." followed later by
        "done.\\n" stays on one line; channel state is left untouched.
        """
        self.flush()
        self._emit(text)

    def backspace(self, count):
        """move the cursor back count cells (no-op when not writing to a terminal)."""
        self.console.control(Control.move(x=-count))


__all__ = (
    "ChannelWriter",
)
