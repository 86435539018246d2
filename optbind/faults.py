"""
optbind faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for every binding issue.
- BindingException / BindingWarning: base types that carry message + options
  and know how to render themselves with rich.
- trigger(): central entry point to surface a fault (raise, warn, or print and
  exit in shell mode).
- getdoc(): optional description lookup for a code from the host application.

Taxonomy
- registration time
  • ConfigurationError: a parameter has no resolvable type, or its position
    cannot be bound (variadic or outside the signature).
  • DuplicatePositionWarning: a position was registered twice; the newest
    declaration replaced the older one.
- wrap time
  • WrapError: @command() was applied to something that is not callable.
- call time
  • InvalidParameterTypeError: a descriptor carries a type outside
    {text, number, flag}.
  • MismatchedValueError: a parsed value does not match the declared type.

Every exception is also a TypeError, so callers that only know the builtin
contract can still catch them.

Integration
- The registry raises registration faults directly through trigger().
- Commands surface call-time faults through Command.trigger(), which merges
  the command's shell/fancy/colorful flags into the fault options.
"""
import copy
import inspect
import sys
import warnings
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset, coalesce

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across the package (stable identifiers).

    grouping
    - registration (2110x): MISSING_TYPE_INFORMATION, INVALID_PARAMETER
    - wrapping (2111x): NOT_INVOCABLE
    - binding (2112x): INVALID_PARAMETER_TYPE, MISMATCHED_VALUE
    - warnings (2211x): DUPLICATE_POSITION
    """
    # --- registration errors ---
    MISSING_TYPE_INFORMATION = 21101
    INVALID_PARAMETER        = 21102

    # --- wrap errors ---
    NOT_INVOCABLE            = 21111

    # --- binding errors ---
    INVALID_PARAMETER_TYPE   = 21121
    MISMATCHED_VALUE         = 21122

    # --- warnings ---
    DUPLICATE_POSITION       = 22111

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__ to
        override numeric ids with friendlier labels.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _render(fault, palette, title_style):
    main = __import__("__main__")
    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))
    colorful = fault.options.get("colorful", False)
    fancy = fault.options.get("fancy", False)

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), styles[style] if colorful else "")

    prog = getattr(main, "__prog__", fault.options.get("prog", "optbind"))
    code = fault.options.get("code")
    header = Text.assemble(
        "[ ",
        text(prog, "prog-name"),
        " - ",
        text(code.normalize() if isinstance(code, FaultCode) else code, "code"),
        " | ",
        text(str(fault.options.get("title", type(fault).__name__)).title(), title_style),
        " ]"
    )
    message = text(fault.message, "message")
    hint = Text.assemble(text(" → ", "hint-arrow"), text(fault.options.get("hint"), "hint"))

    if fancy:
        return Panel(Group(message, hint), title=header, title_align="left")
    return Group(header, message, hint)


class BindingException(Exception):
    """
    base of every error raised while declaring, wrapping or binding options.

    message is the human sentence; options is a read-only mapping of context
    (title, code, hint, position, shell, fancy, colorful, ...).
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message if self.message is not Unset else ""

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #00E5FF",
            "error-title": "bold #FF4DA6",
            "message": "#C8C8D0",
            "hint-arrow": "#9CE19C dim",
            "hint": "italic #9CE19C",
        }, "error-title")

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class ConfigurationError(BindingException, TypeError): ...
class WrapError(BindingException, TypeError): ...
class BindingTypeError(BindingException, TypeError): ...
class InvalidParameterTypeError(BindingTypeError): ...
class MismatchedValueError(BindingTypeError): ...


class BindingWarning(Warning):
    """
    base of non-fatal binding diagnostics.

    outside shell mode the warning goes through the warnings module (so
    filters and catch_warnings apply); in shell mode it is printed.
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(coalesce(message, ""))
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message if self.message is not Unset else ""

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",
            "code": "bold #FFB400",
            "warning-title": "bold #FFC2E0",
            "message": "#D6D6DE",
            "hint-arrow": "#B8EFAF dim",
            "hint": "italic #B8EFAF",
        }, "warning-title")

    def __trigger__(self):
        if not self.options.get("shell", False):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class DuplicatePositionWarning(BindingWarning): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods.
    - options are merged into the fault via copy.replace() before triggering.
    - exceptions are raised (or printed followed by exit status 1 when
      shell=True); warnings are warned (or printed when shell=True).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code from __main__.__docs__.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "FaultCode",
    "BindingException",
    "ConfigurationError",
    "WrapError",
    "BindingTypeError",
    "InvalidParameterTypeError",
    "MismatchedValueError",
    "BindingWarning",
    "DuplicatePositionWarning",
    "trigger",
    "getdoc",
)
