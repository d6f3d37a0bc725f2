"""
Help text rendering.

render_help() is a pure function of the registry, the description and the
program name; rendering twice from an unmodified registry yields the same text.

Layout
    <description, wrapped>

    Usage: <prog> [--a|--b|...] <required> [optional]

    Generic maintenance parameters:
        --help (-h): Display this help message
    ...
    Script dependent parameters:
    Script specific parameters:
    Arguments:
"""
import os.path
import textwrap

TAB = "    "

SECTIONS = (
    ("generic", "Generic maintenance parameters"),
    ("dependent", "Script dependent parameters"),
    ("specific", "Script specific parameters"),
)


def _wrap(text, width, *, indent=""):
    return textwrap.fill(
        text,
        width=width,
        subsequent_indent=indent,
        break_long_words=False,
        break_on_hyphens=False,
    )


def _entry(spec, width):
    name = spec.name
    if spec.short_alias is not None:
        name += " (-%s)" % spec.short_alias
    return _wrap("%s--%s: %s" % (TAB, name, spec.description), width - 2 * len(TAB), indent=TAB * 2)


def render_help(registry, description, prog, *, width=80):
    """
    render usage text for a script.

    parameters
    - registry: OptionRegistry with the declared options and positionals.
    - description: free text shown first (skipped when empty).
    - prog: program path; only its basename is shown.
    - width: screen width used for wrapping.
    """
    lines = []

    if description:
        lines.extend(["", _wrap(description, width)])

    usage = "Usage: %s" % os.path.basename(prog or "")
    if registry.options:
        usage += " [--%s]" % "|--".join(sorted(registry.options))
    if registry.positionals:
        usage += " " + " ".join(
            ("<%s>" if spec.required else "[%s]") % spec.name for spec in registry.positionals
        )
    lines.extend(["", usage, ""])

    for tag, title in SECTIONS:
        specs = registry.group(tag)
        if tag == "specific":
            specs = sorted(specs, key=lambda spec: spec.name)
        if not specs and tag != "generic":
            continue
        lines.append("%s:" % title)
        lines.extend(_entry(spec, width) for spec in specs)
        lines.append("")

    if registry.positionals:
        lines.append("Arguments:")
        for spec in registry.positionals:
            name = ("<%s>" if spec.required else "[%s]") % spec.name
            lines.append(_wrap("%s%s: %s" % (TAB, name, spec.description), width - 2 * len(TAB), indent=TAB * 2))
        lines.append("")

    return "\n".join(lines) + "\n"


__all__ = (
    "render_help",
)
