"""
Maintkit faults (parse, validation, setup and job errors) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every user-facing issue.
  Codes are grouped by domain to keep logs and searches predictable.
- MaintenanceFault: base type that carries message + options and knows how to
  render itself with rich (header, message, hint).
- ScriptExit: an exception group bundling every validation violation of one run,
  so all of them are reported together.
- trigger(): central entry point to surface any fault.

Shell vs embedded
- In shell mode (a real maintenance run), a fault is printed on the error
  console and the process exits with status 1.
- Otherwise (tests, scripts driven from other code) the fault is raised, so the
  caller can inspect it.
"""
import copy
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping
    - parsing (211xx): DUPLICATE_OPTION, MISSING_VALUE, INVALID_VALUE
    - validation (212xx): MISSING_REQUIRED_OPTION, MISSING_REQUIRED_ARGUMENT, UNKNOWN_OPTION
    - setup (213xx): WRONG_CONTEXT, NO_ARGV, MISSING_INSTALL_ROOT, UNREADABLE_SETTINGS,
      MISSING_EXTENSIONS, CHILD_SPAWN, NO_DATASTORE
    - jobs (221xx): REPLICATION_TIMEOUT, COMPLETION_RECORD

    normalize() lets the host remap codes to custom labels while keeping the
    numeric ids stable.
    """
    # --- parse errors (211xx) ---
    DUPLICATE_OPTION            = 21101
    MISSING_VALUE               = 21102
    INVALID_VALUE               = 21103

    # --- validation errors (212xx) ---
    MISSING_REQUIRED_OPTION     = 21201
    MISSING_REQUIRED_ARGUMENT   = 21202
    UNKNOWN_OPTION              = 21203

    # --- setup errors (213xx) ---
    WRONG_CONTEXT               = 21301
    NO_ARGV                     = 21302
    MISSING_INSTALL_ROOT        = 21303
    UNREADABLE_SETTINGS         = 21304
    MISSING_EXTENSIONS          = 21305
    CHILD_SPAWN                 = 21306
    NO_DATASTORE                = 21307

    # --- job faults (221xx) ---
    REPLICATION_TIMEOUT         = 22101
    COMPLETION_RECORD           = 22102

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _surface(fault):
    """
    print a fault (and the optional epilog, usually help text) and exit with status 1.
    """
    target = fault.options.get("console", console)
    target.print(fault)
    if epilog := fault.options.get("epilog"):
        target.file.write(epilog)
        target.file.flush()
    sys.exit(1)


class MaintenanceFault(Exception):
    """
    base fault: a message plus free-form rendering/context options.

    common options
    - title, code, hint: header and advice lines.
    - prog: program name for the header (falls back to __prog__ in __main__).
    - shell: print and exit instead of raising.
    - colorful, fancy: rich styling toggles.
    - console: the rich console receiving the rendering (error console by default).
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return "" if self.message is Unset else self.message

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",
            "error-message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        } | getattr(main, "__styles__", {}))

        colorful = self.options.get("colorful", False)

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            return Text(str(fragment), styles[style])

        prog = getattr(main, "__prog__", self.options.get("prog", "maintenance"))
        code = self.options.get("code")

        header = Text.assemble(
            "[ ",
            text(prog, "prog-name"),
            " - ",
            text(code.normalize() if code is not None else "?", "code"),
            " | ",
            text(str(self.options.get("title", "error")).title(), "error-title"),
            " ]"
        )
        message = text(self, "error-message")
        renders = [message]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(text(" -> ", "hint-arrow"), text(hint, "hint")))

        if self.options.get("fancy", False):
            return Panel(Group(*renders), title=header, title_align="left")

        return Group(header, *renders)

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        _surface(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class ParseError(MaintenanceFault): ...
class DuplicateOptionError(ParseError): ...
class MissingValueError(ParseError): ...
class InvalidValueError(ParseError): ...

class ValidationError(MaintenanceFault): ...
class MissingRequiredOptionError(ValidationError): ...
class MissingRequiredArgumentError(ValidationError): ...
class UnknownOptionError(ValidationError): ...

class SetupError(MaintenanceFault): ...

class ReplicationWaitTimeout(MaintenanceFault): ...
class CompletionRecordInsertFailure(MaintenanceFault): ...


class ScriptExit(ExceptionGroup):
    """
    every validation violation of one invocation, reported in a single pass.
    """

    def __new__(cls, exceptions, **options):
        return super().__new__(cls, "bad invocation", tuple(exceptions))

    def __init__(self, exceptions, **options):
        super().__init__("bad invocation", tuple(exceptions))
        self.options = MappingProxyType(options)

    def __rich__(self):
        return Group(*(copy.replace(exception, **{
            key: value for key, value in self.options.items() if key in ("prog", "colorful")
        }) for exception in self.exceptions))

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        _surface(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.exceptions, **{**self.options, **overrides})


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via copy.replace() before triggering.
    - in shell mode the fault is printed and the process exits; otherwise it is raised.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


__all__ = (
    "FaultCode",
    "MaintenanceFault",
    "ParseError",
    "DuplicateOptionError",
    "MissingValueError",
    "InvalidValueError",
    "ValidationError",
    "MissingRequiredOptionError",
    "MissingRequiredArgumentError",
    "UnknownOptionError",
    "SetupError",
    "ReplicationWaitTimeout",
    "CompletionRecordInsertFailure",
    "ScriptExit",
    "trigger",
)
