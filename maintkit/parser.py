"""
Maintkit argv parser: one left-to-right pass over raw tokens.

Token classes
- "--"            → every remaining token is a positional, verbatim.
- "--name"        → long option. A declared value-taking option always consumes
                    the NEXT token as its value, whatever that token looks like.
                    Any other long token is split on the first "=" (name=value),
                    or recorded as PRESENT when there is no "=".
- "-"             → positional (conventional stdin/stdout marker).
- "-abc"          → packed short options; aliases resolve to long names. A
                    value-taking option claims the next token and ends the pack.
- anything else   → positional.

Recording
- every (name, value) lands in the ordered log, duplicates included.
- repeatable options accumulate a list; a non-repeatable option seen twice is a
  DuplicateOptionError right away.
- names the registry does not know are recorded as-is; rejecting them is the
  validator's job, so scripts may opt into arbitrary flags.
"""
import logging
from collections import deque
from typing import NamedTuple

from .faults import DuplicateOptionError, MissingValueError, FaultCode

logger = logging.getLogger(__name__)

PRESENT = 1
"""value recorded for an option given without a value."""


class ParseResult(NamedTuple):
    options: dict
    arguments: list
    ordered: list


class ArgvParser:
    def __init__(self, registry):
        self.registry = registry

    def _takes_value(self, name):
        spec = self.registry.get(name)
        return spec is not None and spec.takes_value

    def _next_value(self, name, tokens):
        try:
            return tokens.popleft()
        except IndexError:
            raise MissingValueError(
                "%s parameter needs a value after it" % name,
                title="missing value",
                code=FaultCode.MISSING_VALUE,
                hint="pass the value as the next token (for example: --%s <value>)" % name,
                name=name,
            ) from None

    def _record(self, result, name, value):
        result.ordered.append((name, value))

        spec = self.registry.get(name)
        if spec is not None and spec.repeatable:
            result.options.setdefault(name, []).append(value)
        elif name not in result.options:
            result.options[name] = value
        else:
            raise DuplicateOptionError(
                "%s parameter given twice" % name,
                title="duplicate option",
                code=FaultCode.DUPLICATE_OPTION,
                hint="keep a single --%s; only repeatable options can be given more than once" % name,
                name=name,
            )

    def parse(self, tokens):
        """
        parse raw tokens (argv without the program name).

        returns
        - ParseResult(options, arguments, ordered)

        raises
        - MissingValueError when a value-taking option is the last token.
        - DuplicateOptionError when a non-repeatable option repeats.
        """
        tokens = deque(tokens)
        result = ParseResult({}, [], [])

        while tokens:
            token = tokens.popleft()

            if token == "--":
                result.arguments.extend(tokens)
                tokens.clear()
            elif token.startswith("--"):
                name = token[2:]
                if self._takes_value(name):
                    self._record(result, name, self._next_value(name, tokens))
                else:
                    name, sep, value = name.partition("=")
                    self._record(result, name, value if sep else PRESENT)
            elif token == "-":
                result.arguments.append(token)
            elif token.startswith("-"):
                for char in token[1:]:
                    name = char
                    if not self.registry.is_declared(char) and (alias := self.registry.resolve_alias(char)):
                        name = alias
                    if self._takes_value(name):
                        self._record(result, name, self._next_value(name, tokens))
                        break
                    self._record(result, name, PRESENT)
            else:
                result.arguments.append(token)

        logger.debug("parsed %d option(s) and %d argument(s)", len(result.options), len(result.arguments))
        return result


__all__ = (
    "PRESENT",
    "ParseResult",
    "ArgvParser",
)
