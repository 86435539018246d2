r"""
Token parser: turn an argument vector into a mapping of option values.

The parser follows the minimist conventions so that command-line habits from
other tools carry over. It is deterministic and total: malformed input never
raises, unknown options pass through with best-effort typing.

Forms
- --name=value       → name: value
- --name value       → name: value (unless name is a boolean option or the
                       next token looks like an option)
- --name             → name: True ("" for string options)
- --name true|false  → name: True|False (when a value cannot be taken)
- --no-name          → name: False
- -abc               → a: True, b: True, c: True (c may take the next token)
- -n5 / -n=5         → n: 5
- --                 → every token after it is collected verbatim under "_"
- anything else      → appended to "_"

Typing
- values that look numeric (decimal, exponent, 0x hex) become int/float,
  except for string options;
- boolean options start at False (or their default) and are overwritten,
  never accumulated;
- a key given several times accumulates its values into a list;
- string options given without a value become "".

Configuration (keyword-only, all optional)
- strings: names always kept as strings
- booleans: names treated as presence flags
- defaults: name → value for names absent from the input
- aliases: name → alias or iterable of aliases; aliases are mirrored in both
  directions and share every value.
"""
import re
from collections.abc import Iterable, Mapping

_NUMBER = re.compile(r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:e[-+]?\d+)?", re.ASCII)
_HEXADECIMAL = re.compile(r"0x[0-9a-f]+", re.ASCII | re.IGNORECASE)
_NUMERIC_TAIL = re.compile(r"-?\d+(?:\.\d*)?(?:e-?\d+)?$", re.ASCII)
_OPTION_LIKE = re.compile(r"--?[^-]", re.DOTALL)
_LETTER = re.compile(r"[A-Za-z]")
_BOOLEAN = re.compile(r"true|false")

_missing = object()


def isnumber(value, /):
    """
    tell whether a value is, or reads as, a number.
    """
    if isinstance(value, bool):
        return False
    if isinstance(value, int | float):
        return True
    if not isinstance(value, str):
        return False
    return bool(_HEXADECIMAL.fullmatch(value) or _NUMBER.fullmatch(value))


def tonumber(value, /):
    """
    convert a numeric-looking string into an int (when integral) or a float.
    """
    if not isinstance(value, str):
        return value
    if _HEXADECIMAL.fullmatch(value):
        return int(value, 16)
    try:
        return int(value)
    except ValueError:
        return float(value)


def _aliases(aliases):
    graph = {}
    for key, names in aliases.items():
        names = [names] if isinstance(names, str) else list(names)
        graph[key] = names
        for name in names:
            graph[name] = [key] + [other for other in names if other != name]
    return graph


def parse(argv, /, *, strings=(), booleans=(), defaults=None, aliases=None):
    """
    parse an argument vector.

    parameters
    - argv: Iterable[str]
      the tokens to read (program/script path excluded).
    - strings, booleans, defaults, aliases: see the module documentation.

    returns
    - dict: option name → str | int | float | bool | list, plus "_" holding
      the non-option tokens in order.

    raises
    - TypeError only for a malformed call (argv not an iterable of strings).
    """
    if isinstance(argv, str) or not isinstance(argv, Iterable):
        raise TypeError("parse() argument must be an iterable of strings")
    argv = list(argv)
    if not all(isinstance(token, str) for token in argv):
        raise TypeError("parse() argument must be an iterable of strings")

    defaults = dict(defaults or {})
    graph = _aliases(aliases or {})

    strings = set(strings)
    for key in list(strings):
        strings.update(graph.get(key, ()))
    booleans = set(booleans)
    for key in list(booleans):
        booleans.update(graph.get(key, ()))

    namespace = {"_": []}

    def setkey(key, value):
        current = namespace.get(key, _missing)
        if current is _missing or key in booleans or isinstance(current, bool):
            namespace[key] = value
        elif isinstance(current, list):
            current.append(value)
        else:
            namespace[key] = [current, value]

    def setarg(key, value):
        if key not in strings and isnumber(value):
            value = tonumber(value)
        setkey(key, value)
        for alias in graph.get(key, ()):
            setkey(alias, value)

    for key in sorted(booleans):
        setarg(key, defaults.get(key, False))

    rest = []
    if "--" in argv:
        index = argv.index("--")
        argv, rest = argv[:index], argv[index + 1:]

    index = 0
    while index < len(argv):
        token = argv[index]
        following = argv[index + 1] if index + 1 < len(argv) else None

        if match := re.fullmatch(r"--([^=]+)=(.*)", token, re.DOTALL):
            key, value = match[1], match[2]
            if key in booleans:
                value = value != "false"
            setarg(key, value)

        elif match := re.fullmatch(r"--no-(.+)", token, re.DOTALL):
            setarg(match[1], False)

        elif match := re.fullmatch(r"--(.+)", token, re.DOTALL):
            key = match[1]
            if following is not None and not _OPTION_LIKE.match(following) and key not in booleans:
                setarg(key, following)
                index += 1
            elif following is not None and _BOOLEAN.fullmatch(following):
                setarg(key, following == "true")
                index += 1
            else:
                setarg(key, "" if key in strings else True)

        elif re.match(r"-[^-]+", token, re.DOTALL):
            letters = token[1:-1]
            broken = False
            for position, letter in enumerate(letters):
                tail = token[position + 2:]
                if tail == "-":
                    setarg(letter, tail)
                    continue
                if _LETTER.match(letter) and tail[:1] == "=":
                    setarg(letter, tail[1:])
                    broken = True
                    break
                if _LETTER.match(letter) and _NUMERIC_TAIL.search(tail):
                    setarg(letter, tail)
                    broken = True
                    break
                if position + 1 < len(letters) and re.match(r"\W", letters[position + 1]):
                    setarg(letter, tail)
                    broken = True
                    break
                setarg(letter, "" if letter in strings else True)

            key = token[-1]
            if not broken and key != "-":
                if following and not _OPTION_LIKE.match(following) and key not in booleans:
                    setarg(key, following)
                    index += 1
                elif following and _BOOLEAN.fullmatch(following):
                    setarg(key, following == "true")
                    index += 1
                else:
                    setarg(key, "" if key in strings else True)

        else:
            namespace["_"].append(token if "_" in strings or not isnumber(token) else tonumber(token))

        index += 1

    for key, value in defaults.items():
        if key not in namespace:
            namespace[key] = value
            for alias in graph.get(key, ()):
                namespace[alias] = value

    namespace["_"].extend(rest)
    return namespace


__all__ = (
    "parse",
    "isnumber",
    "tonumber",
)
