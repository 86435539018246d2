r"""
optbind option declarations.

Overview
- Option: the option schema attached to one handler parameter.
  • name: external flag name (without dashes), e.g. "output" for --output.
  • type: optional explicit ParameterType (or str/int/float/bool) used when
    the parameter carries no annotation.
  • default: optional default value; text and number options fall back to ""
    and 0 when omitted, flags have no implicit default.
  • aliases: alternate flag names, handed to the token parser as-is.

- ParameterDescriptor: the immutable record stored in the registry, linking a
  parameter position to its resolved type and its Option.

- @option(parameter, name, ...): explicit, decorator-form declaration for
  handlers whose parameters cannot carry an Option default.

Declaring options
- As a parameter default (preferred):
    @command
    def build(output: str = Option("output", aliases=("o",)), jobs: int = Option("jobs")):
        ...

- As stacked decorators (parameter given by name or position):
    @command
    @option("output", "output", aliases=("o",))
    @option("jobs", "jobs", type=int)
    def build(output, jobs):
        ...

Validation highlights
- Names and aliases must match r"[^\W_][\w-]*" and must not start with
  "no-" (the token parser reads --no-x as "x is false").
- Aliases reject duplicates and the option's own name.
- Type legality is not checked here: an unsupported type is kept and
  reported when the command runs.
"""
import re
from collections.abc import Iterable

from .kinds import ParameterType
from .utils import *


def _sanitize_name(cls, name, field, /):
    if not isinstance(name, str):
        raise TypeError(f"{cls.__typename__} {field} must be a string")
    elif not (name := name.strip()):
        raise ValueError(f"{cls.__typename__} {field} cannot be empty")
    elif name.startswith("-"):
        raise ValueError(f"{cls.__typename__} {field} must be given without leading dashes")
    elif not re.fullmatch(r"[^\W_][\w-]*", name):
        raise ValueError(f"{cls.__typename__} {field} must be a valid option name (unicodes are allowed)")
    elif name.startswith("no-"):
        raise ValueError(f"{cls.__typename__} {field} cannot start with 'no-' (reserved for negation)")
    return name


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: validate and normalize Option metadata in place.

    - name: mandatory, see _sanitize_name.
    - aliases: iterable of names (a single string is accepted as one alias);
      duplicates and the option's own name are rejected; stored as a tuple in
      declaration order.
    - type/default: stored untouched.
    """
    metadata["name"] = name = _sanitize_name(cls, metadata["name"], "'name'")

    aliases = metadata["aliases"]
    if isinstance(aliases, str):
        aliases = (aliases,)
    if not isinstance(aliases, Iterable):
        raise TypeError(f"{cls.__typename__} 'aliases' must be iterable")

    sanitized = []
    for alias in aliases:
        alias = _sanitize_name(cls, alias, "aliases")
        if alias == name:
            raise ValueError(f"{cls.__typename__} aliases cannot repeat the option name")
        if alias in sanitized:
            raise ValueError(f"{cls.__typename__} aliases cannot contain duplicates")
        sanitized.append(alias)
    metadata["aliases"] = tuple(sanitized)


class Option(metaclass=SpecType):
    """
    Option schema bound to one handler parameter.

    Instances are immutable; the fields below are exposed read-only.
    `type` and `default` report Unset when they were not given.
    """

    __introspectable__ = (
        "name",
        "type",
        "default",
        "aliases",
    )

    def __new__(cls, name, /, type=Unset, default=Unset, aliases=()):
        """
        Construct an Option.

        Parameters
        - name: str
          Canonical flag name used to look the value up after parsing.
        - type: Unset | ParameterType | type
          Explicit type, consulted only when the parameter has no annotation.
        - default: Any
          Value bound when the option is absent from the argument source.
        - aliases: Iterable[str]
          Alternate flag names (e.g., "o" for --output / -o).
        """
        metadata = {
            "name": name,
            "type": type,
            "default": default,
            "aliases": aliases,
        }
        _sanitize_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    def __setattr__(self, name, value, /):
        if not name.startswith("_") or hasattr(self, name):
            raise AttributeError(f"{type(self).__typename__} is read-only")
        object.__setattr__(self, name, value)


class ParameterDescriptor(metaclass=SpecType):
    """
    Immutable registry record: one option bound to one parameter position.

    Fields
    - position: index of the parameter in the handler's declared parameter
      list (the receiver counts for methods).
    - type: a ParameterType when the declaration was understood; otherwise
      the raw declaration, rejected when the command runs.
    - option: the Option schema.
    - default: the effective default, filled in once at creation:
      the option default when given (and not None), "" for text, 0 for
      number, Unset for flags and unsupported types.
    """

    __introspectable__ = (
        "position",
        "type",
        "option",
        "default",
    )

    def __new__(cls, position, type, option, /):
        if not isinstance(position, int) or isinstance(position, bool):
            raise TypeError(f"{cls.__typename__} 'position' must be an integer")
        if position < 0:
            raise ValueError(f"{cls.__typename__} 'position' must be a non-negative integer")
        if not isinstance(option, Option):
            raise TypeError(f"{cls.__typename__} 'option' must be an option")

        type = ParameterType.resolve(type)
        if option.default is not Unset and option.default is not None:
            default = option.default
        elif isinstance(type, ParameterType):
            default = type.fallback
        else:
            default = Unset

        self = super().__new__(cls)
        object.__setattr__(self, "_position", position)
        object.__setattr__(self, "_type", type)
        object.__setattr__(self, "_option", option)
        object.__setattr__(self, "_default", default)
        return self

    def __setattr__(self, name, value, /):
        raise AttributeError(f"{type(self).__typename__} is read-only")

    @property
    def name(self):
        return self._option.name

    @property
    def aliases(self):
        return self._option.aliases

    def __eq__(self, other, /):
        if not isinstance(other, ParameterDescriptor):
            return NotImplemented
        return (self.position, self.type, self.option) == (other.position, other.type, other.option)

    def __hash__(self):
        return hash((self.position, self.name))


def option(parameter, name, /, *args, **kwargs):
    """
    Decorator form of an option declaration.

    Usage
        @command
        @option("jobs", "jobs", type=int, default=1)
        def build(jobs): ...

    Parameters
    - parameter: str | int
      The handler parameter, by name or by position in the declared
      parameter list. Names are resolved against the handler signature when
      the command registers the declaration.
    - name, *args, **kwargs: forwarded to Option(...).

    Behavior
    - On a plain callable, the declaration is queued on the callable and
      registered by @command.
    - On a Command (decorator placed above @command), it is declared on the
      command directly.
    - Declarations may be stacked in any order: values are bound by declared
      position, not by declaration order.
    """
    if not isinstance(parameter, str | int) or isinstance(parameter, bool):
        raise TypeError("@option() parameter must be a parameter name or a position")
    schema = Option(name, *args, **kwargs)

    @rename("option")
    def wrapper(callback, /):
        if hasattr(callback, "__declare__"):
            callback.__declare__(parameter, schema)
            return callback
        if not callable(callback):
            raise TypeError("@option() must be applied to a callable")
        try:
            declarations = callback.__options__
        except AttributeError:
            declarations = callback.__options__ = []
        declarations.append((parameter, schema))
        return callback

    return wrapper


__all__ = (
    # Classes
    "Option",
    "ParameterDescriptor",

    # Decorators
    "option",
)
