"""
Post-parse validation of options and positional arguments.

All checks run to completion, so one invocation reports every violation:
- required options that were not given,
- required positionals with no argument at their index,
- options nobody declared (unless unregistered options are allowed).
"""
from .faults import (
    FaultCode,
    MissingRequiredOptionError,
    MissingRequiredArgumentError,
    UnknownOptionError,
)


def validate(registry, options, arguments, *, allow_unregistered=False):
    """
    collect every violation as a list of faults (empty when the input is valid).
    """
    faults = []

    for name, spec in registry.options.items():
        if spec.required and name not in options:
            faults.append(MissingRequiredOptionError(
                "Param %s required!" % name,
                title="missing required option",
                code=FaultCode.MISSING_REQUIRED_OPTION,
                hint="add --%s to the command line" % name,
                name=name,
            ))

    for index, spec in enumerate(registry.positionals):
        if spec.required and index >= len(arguments):
            faults.append(MissingRequiredArgumentError(
                "Argument <%s> required!" % spec.name,
                title="missing required argument",
                code=FaultCode.MISSING_REQUIRED_ARGUMENT,
                hint="arguments are matched by position; <%s> is number %d" % (spec.name, index + 1),
                name=spec.name,
                index=index,
            ))

    if not allow_unregistered:
        for name in options:
            if not registry.is_declared(name):
                faults.append(UnknownOptionError(
                    "Unexpected option %s!" % name,
                    title="unknown option",
                    code=FaultCode.UNKNOWN_OPTION,
                    hint="run with --help to see the supported options",
                    name=name,
                ))

    return faults


__all__ = (
    "validate",
)
