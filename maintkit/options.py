r"""
Maintkit option model: specifications and the registry that holds them.

Overview
- Specs
  • OptionSpec: named switch (--name, optionally -a), valued or presence-only,
    single or repeatable.
  • PositionalSpec: argument matched by position, required or optional.

- Registry
  • OptionRegistry: declaration-ordered options and positionals, a short-alias
    side table, and help-group tagging ("generic", "dependent", "specific").
  • Mutable only during the configuration phase; freeze() locks it once parsing
    starts. declare_batch_size() is the single amendment allowed afterwards.

Validation highlights
- Names must match r"[^\W_](-?[^\W_]+)*" (shell-style, no leading dashes).
- Short aliases are exactly one character and unique across the registry.
- A required positional cannot follow an optional one.
- description strings are trimmed; group must be one of the known help groups.

Quick example:
    >>> registry = OptionRegistry()
    >>> limit = registry.declare_option("limit", "Maximum rows", takes_value=True, short_alias="l")
    >>> table = registry.declare_positional("table", "Table to scan")
    >>> registry.resolve_alias("l")
    'limit'
"""
import re
from types import MappingProxyType

from .faults import DuplicateOptionError, FaultCode
from .utils import Unset, coalesce, mirror

GROUPS = ("generic", "dependent", "specific")


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: normalize and validate the fields shared by all specs.

    - name: non-empty shell-style name, stored trimmed.
    - description: string, stored trimmed (may be empty).
    - required: coerced to bool.
    """
    if not isinstance(name := metadata["name"], str):
        raise TypeError(f"{cls.__typename__} name must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} name cannot be empty")
    elif not re.fullmatch(r"[^\W_]([-_]?[^\W_]+)*", name):
        raise ValueError(f"{cls.__typename__} name {name!r} is not a valid shell-style name")
    metadata["name"] = name

    if not isinstance(description := metadata["description"], str):
        raise TypeError(f"{cls.__typename__} description must be a string")
    metadata["description"] = description.strip()

    metadata["required"] = bool(metadata["required"])


def _sanitize_named_metadata(cls, metadata, /):
    """
    Internal: validate option-only fields (alias, arity, help group).
    """
    if not isinstance(alias := coalesce(metadata["short_alias"]), str | None):
        raise TypeError(f"{cls.__typename__} short alias must be a string")
    elif isinstance(alias, str) and (len(alias) != 1 or alias in "-= "):
        raise ValueError(f"{cls.__typename__} short alias must be a single character")
    metadata["short_alias"] = alias

    if metadata["group"] not in GROUPS:
        raise ValueError(f"{cls.__typename__} group must be one of {', '.join(GROUPS)}")

    metadata["takes_value"] = bool(metadata["takes_value"])
    metadata["repeatable"] = bool(metadata["repeatable"])


class OptionSpec:
    """
    Named option specification.

    Properties are read-only mirrors of the sanitized metadata:
    name, description, required, takes_value, short_alias, repeatable, group.
    """
    __typename__ = "option"
    __introspectable__ = ("name", "description", "required", "takes_value", "short_alias", "repeatable", "group")

    def __init__(
            self,
            name,
            description="",
            /,
            required=False,
            takes_value=False,
            short_alias=Unset,
            repeatable=False,
            *,
            group="specific",
    ):
        metadata = {
            "name": name,
            "description": description,
            "required": required,
            "takes_value": takes_value,
            "short_alias": short_alias,
            "repeatable": repeatable,
            "group": group,
        }
        _sanitize_metadata(type(self), metadata)
        _sanitize_named_metadata(type(self), metadata)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    name = mirror("name")
    description = mirror("description")
    required = mirror("required")
    takes_value = mirror("takes_value")
    short_alias = mirror("short_alias")
    repeatable = mirror("repeatable")
    group = mirror("group")

    def __eq__(self, other):
        if not isinstance(other, OptionSpec):
            return NotImplemented
        return tuple(self.__rich_repr__()) == tuple(other.__rich_repr__())

    def __hash__(self):
        return hash(tuple(self.__rich_repr__()))

    def __rich_repr__(self):
        for name in type(self).__introspectable__:
            yield name, getattr(self, name)

    def __repr__(self):
        return "%s(%s)" % (type(self).__typename__, ", ".join("%s=%r" % pair for pair in self.__rich_repr__()))


class PositionalSpec:
    """
    Positional argument specification (name, description, required).
    """
    __typename__ = "argument"
    __introspectable__ = ("name", "description", "required")

    def __init__(self, name, description="", /, required=True):
        metadata = {
            "name": name,
            "description": description,
            "required": required,
        }
        _sanitize_metadata(type(self), metadata)

        for name, object in metadata.items():
            setattr(self, "_" + name, object)

    name = mirror("name")
    description = mirror("description")
    required = mirror("required")

    def __eq__(self, other):
        if not isinstance(other, PositionalSpec):
            return NotImplemented
        return tuple(self.__rich_repr__()) == tuple(other.__rich_repr__())

    def __hash__(self):
        return hash(tuple(self.__rich_repr__()))

    def __rich_repr__(self):
        for name in type(self).__introspectable__:
            yield name, getattr(self, name)

    def __repr__(self):
        return "%s(%s)" % (type(self).__typename__, ", ".join("%s=%r" % pair for pair in self.__rich_repr__()))


class OptionRegistry:
    """
    Declared options and positionals of one script.

    Invariants
    - option names are unique; short aliases are unique across all options.
    - positionals keep declaration order; no required one follows an optional one.
    - after freeze(), only declare_batch_size() may still add an option.
    """

    def __init__(self):
        self._options = {}
        self._aliases = {}
        self._positionals = []
        self._frozen = False

    @property
    def options(self):
        """declared options by name, in declaration order (read-only view)."""
        return MappingProxyType(self._options)

    @property
    def positionals(self):
        """declared positionals, in declaration order."""
        return tuple(self._positionals)

    @property
    def frozen(self):
        return self._frozen

    def freeze(self):
        self._frozen = True

    def _ensure_mutable(self, action):
        if self._frozen:
            raise RuntimeError(f"cannot {action}: the option registry is frozen once parsing has started")

    def _declare(self, spec):
        if spec.name in self._options:
            raise DuplicateOptionError(
                "option %r is already declared" % spec.name,
                title="duplicate option",
                code=FaultCode.DUPLICATE_OPTION,
                hint="call undeclare(%r) first to replace the existing declaration" % spec.name,
                name=spec.name,
            )
        if spec.short_alias is not None and spec.short_alias in self._aliases:
            raise ValueError("short alias %r is already used by option %r" % (
                spec.short_alias, self._aliases[spec.short_alias]
            ))
        self._options[spec.name] = spec
        if spec.short_alias is not None:
            self._aliases[spec.short_alias] = spec.name
        return spec

    def declare_option(
            self,
            name,
            description="",
            required=False,
            takes_value=False,
            short_alias=None,
            repeatable=False,
            *,
            group="specific",
    ):
        """
        declare a named option and return its spec.

        raises
        - DuplicateOptionError when the name is already declared.
        - ValueError for malformed names/aliases or an alias already in use.
        - RuntimeError after freeze().
        """
        self._ensure_mutable("declare option %r" % name)
        return self._declare(OptionSpec(
            name, description, required, takes_value, short_alias, repeatable, group=group
        ))

    def declare_positional(self, name, description="", required=True):
        """
        append a positional argument; a required one cannot follow an optional one.
        """
        self._ensure_mutable("declare argument %r" % name)
        spec = PositionalSpec(name, description, required)
        if spec.required and any(not positional.required for positional in self._positionals):
            raise ValueError("required argument %r cannot follow an optional argument" % spec.name)
        self._positionals.append(spec)
        return spec

    def declare_batch_size(self, default):
        """
        add (or refresh) the dependent --batch-size option; allowed after freeze().
        """
        self._options.pop("batch-size", None)
        return self._declare(OptionSpec(
            "batch-size",
            "Run this many operations per batch, default: %s" % default,
            takes_value=True,
            group="dependent",
        ))

    def undeclare(self, name):
        """
        remove an option (and its alias); unknown names are ignored.
        """
        self._ensure_mutable("undeclare option %r" % name)
        if (spec := self._options.pop(name, None)) is not None and spec.short_alias is not None:
            self._aliases.pop(spec.short_alias, None)

    def is_declared(self, name):
        return name in self._options

    def get(self, name):
        """spec for a declared option, or None."""
        return self._options.get(name)

    def resolve_alias(self, alias):
        """long name for a short alias, or None when the alias is unknown."""
        return self._aliases.get(alias)

    def group(self, tag):
        """specs tagged with a help group, in declaration order."""
        if tag not in GROUPS:
            raise ValueError(f"group must be one of {', '.join(GROUPS)}")
        return tuple(spec for spec in self._options.values() if spec.group == tag)


__all__ = (
    "OptionSpec",
    "PositionalSpec",
    "OptionRegistry",
)
