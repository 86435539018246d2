"""
Parameter kinds: the three value categories an option can carry.

- TEXT   → str values; declared via ParameterType.TEXT or the `str` type.
- NUMBER → int/float values (never bool); declared via ParameterType.NUMBER,
           `int` or `float`.
- FLAG   → bool values; declared via ParameterType.FLAG or the `bool` type.

resolve() maps a declaration to a member. Unrecognized declarations are
returned unchanged instead of rejected: legality of a parameter type is
enforced when the command runs, not when the option is registered.
"""
from enum import Enum

from .utils import Unset

_LABELS = {
    "str": "text",
    "int": "number",
    "float": "number",
    "bool": "flag",
    "text": "text",
    "number": "number",
    "flag": "flag",
}


class ParameterType(Enum):
    """
    value category of a bound option.

    the member value is the label used in fault messages.
    """
    TEXT = "text"
    NUMBER = "number"
    FLAG = "flag"

    @classmethod
    def resolve(cls, declared, /):
        """
        translate a declared type into a member when possible.

        accepted forms
        - a ParameterType member (returned as-is)
        - the builtins str, int, float and bool
        - their names as strings, and the labels "text", "number", "flag"

        anything else (list, a custom class, an unknown name, ...) is returned
        unchanged so the command can report it at call time.
        """
        if isinstance(declared, cls):
            return declared
        # bool must win over int: it is a subclass of it
        if declared is bool:
            return cls.FLAG
        if declared is str:
            return cls.TEXT
        if declared is int or declared is float:
            return cls.NUMBER
        # postponed annotations ("str") and kind labels ("text")
        if isinstance(declared, str) and declared in _LABELS:
            return cls(_LABELS[declared])
        return declared

    def accepts(self, value, /):
        """
        check the runtime category of a parsed value against this kind.

        this is a guard, not a converter: no coercion happens here.
        """
        match self:
            case ParameterType.TEXT:
                return isinstance(value, str)
            case ParameterType.NUMBER:
                return isinstance(value, int | float) and not isinstance(value, bool)
            case ParameterType.FLAG:
                return isinstance(value, bool)

    @property
    def fallback(self):
        """
        implicit default used when an option declares none.

        flags have no implicit default (the token parser starts them at False),
        so Unset is returned for them.
        """
        match self:
            case ParameterType.TEXT:
                return ""
            case ParameterType.NUMBER:
                return 0
        return Unset

    def __repr__(self):
        return f"{type(self).__name__}.{self.name}"


TEXT = ParameterType.TEXT
NUMBER = ParameterType.NUMBER
FLAG = ParameterType.FLAG


__all__ = (
    "ParameterType",
    "TEXT",
    "NUMBER",
    "FLAG",
)
