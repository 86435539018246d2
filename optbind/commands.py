"""
optbind command layer: bind parsed command-line options to handler parameters.

What this module provides
- ParserConfiguration / compile_configuration(descriptors): turn a handler's
  descriptors into the token-parser configuration (string and boolean option
  names, defaults, aliases).
- CommandSchema: handler-level settings (argument source and fault rendering).
- Command: wraps a handler. On every call it parses the argument source,
  validates each value against its declared type and splices it into the
  call arguments at the parameter's position before running the handler.
- command(...): create a Command or a decorator that produces one.
- invoke(handler, prompt, *args, **kwargs): call a command once with an
  explicit argument source.

Quick start
    from optbind import command, Option, invoke

    class Tool:
        @command
        def run(self, name: str = Option("name"), count: int = Option("count", aliases=("c",)),
                verbose: bool = Option("verbose")):
            print(name, count, verbose)

    Tool().run()                                    # reads sys.argv[1:]
    invoke(Tool().run, "--name x -c 3 --verbose")   # explicit argument source

Pipeline (per call)
1. load the handler descriptors from the registry (none: plain pass-through);
2. bind the call arguments against the handler signature;
3. compile the parser configuration;
4. resolve the argument source (schema argv, else the live sys.argv[1:]);
5. parse the tokens;
6. per descriptor: reject unsupported types, look the value up, check its
   category, overwrite the parameter;
7. call the handler and return its result.
Any fault in steps 1-6 stops the call before the handler body runs.
"""
import functools
import inspect
import shlex
import sys
from collections.abc import Iterable
from inspect import Parameter
from types import MappingProxyType, MethodType
from typing import NamedTuple

from . import tokens
from .faults import *
from .kinds import ParameterType
from .options import Option
from .metadata import registry
from .utils import *


class ParserConfiguration(NamedTuple):
    """
    token-parser configuration derived from a handler's descriptors.

    recomputed on every call; never stored.
    """
    strings: tuple
    booleans: tuple
    defaults: MappingProxyType
    aliases: MappingProxyType


def compile_configuration(descriptors, /):
    """
    compile descriptors into a ParserConfiguration.

    per descriptor
    - text: name added to strings; default recorded (the "" fallback is
      already filled in on the descriptor).
    - flag: name added to booleans; a default is recorded only when declared.
    - number: no list entry (numbers are the parser's residual category);
      default recorded (0 fallback already filled in).
    - unsupported type: not rejected here; the command reports it.

    defaults and aliases are keyed by option name, last write wins.
    """
    strings = []
    booleans = []
    defaults = {}
    aliases = {}

    for descriptor in descriptors:
        if descriptor.type is ParameterType.TEXT:
            strings.append(descriptor.name)
        elif descriptor.type is ParameterType.FLAG:
            booleans.append(descriptor.name)
        if descriptor.default is not Unset:
            defaults[descriptor.name] = descriptor.default
        if descriptor.aliases:
            aliases[descriptor.name] = descriptor.aliases

    return ParserConfiguration(
        tuple(strings),
        tuple(booleans),
        MappingProxyType(defaults),
        MappingProxyType(aliases),
    )


def _tokenize(prompt, /):
    """
    normalize an argument source into a list of tokens.

    - str: split with shlex.split (shell-style quoting)
    - Iterable[str]: taken as-is (empty strings are meaningful values)
    """
    if isinstance(prompt, str):
        return shlex.split(prompt)
    if isinstance(prompt, Iterable):
        tokens = list(prompt)
        for token in tokens:
            if not isinstance(token, str):
                raise TypeError("argument source must be a string or an iterable of strings")
        return tokens
    raise TypeError("argument source must be a string or an iterable of strings")


class CommandSchema(metaclass=SpecType):
    """
    Handler-level binding settings.

    Fields
    - argv: Unset | tuple[str, ...]
      Fixed argument source. When Unset, the live sys.argv[1:] is read at
      every call (never captured at definition time).
    - shell: bool
      Render call-time faults with rich on stderr and exit with status 1
      instead of raising.
    - fancy: bool
      Render faults inside a panel.
    - colorful: bool
      Colorize rendered faults.
    """

    __introspectable__ = (
        "argv",
        "shell",
        "fancy",
        "colorful",
    )

    def __new__(cls, argv=Unset, *, shell=False, fancy=False, colorful=False):
        self = super().__new__(cls)
        self._argv = argv if argv is Unset else tuple(_tokenize(argv))
        self._shell = bool(shell)
        self._fancy = bool(fancy)
        self._colorful = bool(colorful)
        return self


def _is_member(callback):
    """
    tell whether a callable is being defined inside a class body.

    members are registered under their class once __set_name__ runs; other
    callables are registered under the command wrapping them right away.
    """
    head, _, tail = getattr(callback, "__qualname__", "").rpartition(".")
    return bool(head) and not head.endswith("<locals>")


def _signature(callback):
    try:
        return inspect.signature(callback, eval_str=True)
    except NameError:
        # forward references that cannot be resolved yet stay as strings
        return inspect.signature(callback)


class Command(metaclass=SpecType):
    """
    Handler wrapper that binds parsed options to parameters.

    Declarations
    - parameters whose default is an Option;
    - @option(...) decorators below or above @command;
    - registry.register(...) calls made elsewhere for (owner, name).

    Owner and name
    - inside a class body: the class and the attribute name, known once the
      class is created (__set_name__);
    - elsewhere: the command itself and the qualified name, so functions
      built by the same factory never share metadata.

    The command is a descriptor: instance access returns a bound method, so
    the receiver is preserved and counts as position 0.
    """

    __introspectable__ = (
        "name",
        "owner",
        "schema",
        "descriptors",
    )

    def __new__(cls, callback, /, *args, **kwargs):
        """
        Wrap a handler.

        Parameters
        - callback: Callable
          The handler body.
        - *args, **kwargs: a CommandSchema, or the fields forwarded to
          CommandSchema(...) (argv, shell, fancy, colorful).

        Raises
        - WrapError when callback is not callable.
        - ConfigurationError when a declaration cannot be bound (no type,
          variadic parameter, position outside the signature).
        """
        if not callable(callback):
            trigger(WrapError(
                "%r is not callable and cannot be bound to command-line options" % (callback,),
                title="not invocable",
                code=FaultCode.NOT_INVOCABLE,
                hint="apply @command() to a function or a method",
                docs=getdoc(FaultCode.NOT_INVOCABLE)
            ))

        if len(args) == 1 and not kwargs and isinstance(args[0], CommandSchema):
            schema = args[0]
        else:
            schema = CommandSchema(*args, **kwargs)

        self = super().__new__(cls)
        self._callback = callback
        self._schema = schema
        self._signature = _signature(callback)
        self._parameters = tuple(self._signature.parameters.values())
        self._owner = Unset
        self._name = getattr(callback, "__name__", type(callback).__name__)
        self._pending = []
        functools.update_wrapper(self, callback, updated=())

        # declarations carried by the signature, then by stacked @option(...)
        for position, parameter in enumerate(self._parameters):
            if isinstance(parameter.default, Option):
                self._pending.append((position, parameter.default))
        for parameter, declared in reversed(getattr(callback, "__options__", ())):
            self._pending.append((parameter, declared))

        if not _is_member(callback):
            self._bind(self, getattr(callback, "__qualname__", self._name))
        return self

    @property
    def owner(self):
        """
        the class holding this command, or Unset when the command owns its metadata.
        """
        return Unset if self._owner is self else self._owner

    @property
    def descriptors(self):
        """
        the descriptors currently registered for this handler.
        """
        if self._owner is Unset:
            return ()
        return registry.lookup(self._owner, self._name)

    def _position(self, parameter):
        """
        resolve a declaration target (name or position) into a bindable position.
        """
        if isinstance(parameter, str):
            for position, candidate in enumerate(self._parameters):
                if candidate.name == parameter:
                    break
            else:
                position = Unset
        else:
            position = parameter if 0 <= parameter < len(self._parameters) else Unset

        if position is Unset or self._parameters[position].kind in (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD):
            trigger(ConfigurationError(
                "parameter %r of %r cannot be bound to an option" % (parameter, self._name),
                title="invalid parameter",
                code=FaultCode.INVALID_PARAMETER,
                position=parameter,
                hint="declare options on named parameters of %s%s" % (self._name, self._signature),
                docs=getdoc(FaultCode.INVALID_PARAMETER)
            ))
        return position

    def _bind(self, owner, name):
        """
        fix the registry key and flush pending declarations into the registry.
        """
        self._owner = owner
        self._name = name
        pending, self._pending = self._pending, []
        for parameter, schema in pending:
            position = self._position(parameter)
            registry.register(owner, name, position, schema, self._parameters[position].annotation)

    def __set_name__(self, owner, name):
        if self._owner is Unset:
            self._bind(owner, name)

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        return MethodType(self, instance)

    def __declare__(self, parameter, schema, /):
        """
        declare one more option (used by @option() placed above @command).
        """
        if self._owner is Unset:
            self._pending.append((parameter, schema))
            return
        position = self._position(parameter)
        registry.register(self._owner, self._name, position, schema, self._parameters[position].annotation)

    def trigger(self, fault, /, **options):
        """
        surface a call-time fault with this command's rendering settings.
        """
        trigger(
            fault,
            **options,
            prog=self._name,
            shell=self._schema.shell,
            fancy=self._schema.fancy,
            colorful=self._schema.colorful
        )

    def _resolve(self, argv):
        """
        run the parse-and-validate half of the pipeline.

        returns a list of (descriptor, value) pairs in descriptor order.
        """
        if self._owner is Unset:
            # never placed in a class body; the command owns its own metadata
            self._bind(self, self._name)

        descriptors = registry.lookup(self._owner, self._name)
        if not descriptors:
            return []

        configuration = compile_configuration(descriptors)
        source = list(sys.argv[1:]) if argv is Unset else list(argv)
        namespace = tokens.parse(source, **configuration._asdict())

        resolved = []
        for descriptor in descriptors:
            if not isinstance(descriptor.type, ParameterType):
                self.trigger(InvalidParameterTypeError(
                    "parameter %d is not a valid type (%r; must be text, number, or flag)" % (
                        descriptor.position, descriptor.type
                    ),
                    title="invalid parameter type",
                    code=FaultCode.INVALID_PARAMETER_TYPE,
                    position=descriptor.position,
                    hint="declare option %r as str, int, float or bool" % descriptor.name,
                    docs=getdoc(FaultCode.INVALID_PARAMETER_TYPE)
                ))

            value = namespace.get(descriptor.name)

            if not descriptor.type.accepts(value):
                self.trigger(MismatchedValueError(
                    "parameter %d (type %r) is not a %s: got %r for option %r" % (
                        descriptor.position, descriptor.type.value, descriptor.type.value, value, descriptor.name
                    ),
                    title="mismatched value",
                    code=FaultCode.MISMATCHED_VALUE,
                    position=descriptor.position,
                    value=value,
                    hint="pass a %s value once (for example: --%s=<value>)" % (descriptor.type.value, descriptor.name),
                    docs=getdoc(FaultCode.MISMATCHED_VALUE)
                ))

            resolved.append((descriptor, value))
        return resolved

    def _call(self, argv, args, kwargs):
        bound = self._signature.bind_partial(*args, **kwargs)
        resolved = self._resolve(argv)
        if not resolved:
            return self._callback(*args, **kwargs)

        bound.apply_defaults()
        for descriptor, value in resolved:
            parameter = self._parameters[self._position(descriptor.position)]
            bound.arguments[parameter.name] = value
        return self._callback(*bound.args, **bound.kwargs)

    def __call__(self, /, *args, **kwargs):
        return self._call(self._schema.argv, args, kwargs)

    def resolve(self, prompt=Unset, /):
        """
        parse and validate without calling the handler.

        Parameters
        - prompt: Unset | str | Iterable[str]
          Argument source; Unset uses the schema argv, else sys.argv[1:].

        Returns
        - a read-only mapping option name → validated value.
        """
        argv = self._schema.argv if prompt is Unset else _tokenize(prompt)
        return MappingProxyType({descriptor.name: value for descriptor, value in self._resolve(argv)})

    def __invoke__(self, prompt=Unset, /, *args, **kwargs):
        """
        Call the handler once with an explicit argument source.

        Parameters
        - prompt:
          • Unset: the schema argv, else sys.argv[1:].
          • str: split with shlex.split.
          • Iterable[str]: tokens as-is.
        - *args, **kwargs: the call arguments (receiver first for methods).
        """
        argv = self._schema.argv if prompt is Unset else _tokenize(prompt)
        return self._call(argv, args, kwargs)


def command(source=Unset, /, *args, **kwargs):
    """
    Create a Command or return a decorator to build it later.

    Invocation modes
    - Bare decorator:
        @command
        def tool(...): ...
    - Decorator with settings:
        @command(argv=["--name", "x"], shell=True)
        @command(CommandSchema(["--name", "x"]))
    - Direct:
        tool = command(func, ["--name", "x"])

    Returns
    - Command | Callable[[Callable], Command]
    """
    if isinstance(source, CommandSchema | str) or (
            source is not Unset and not callable(source) and isinstance(source, Iterable)
    ):
        # command(schema) / command(argv): settings given positionally
        return command(Unset, source, *args, **kwargs)

    @rename("command")
    def wrapper(source, /):
        return Command(source, *args, **kwargs)

    return wrapper(source) if source is not Unset else wrapper


def invoke(object, prompt=Unset, /, *args, **kwargs):
    """
    Convenience runner for commands and bound command methods.

    Parameters
    - object: a Command, or a Command accessed through an instance.
    - prompt: argument source (see Command.__invoke__).
    - *args, **kwargs: call arguments.

    Raises
    - TypeError when object is not a command.
    """
    if isinstance(object, MethodType) and isinstance(object.__func__, Command):
        return object.__func__.__invoke__(prompt, object.__self__, *args, **kwargs)
    if hasattr(object, "__invoke__") and callable(object.__invoke__):
        return object.__invoke__(prompt, *args, **kwargs)
    target = "argument" if prompt is Unset else "first argument"
    raise TypeError(f"invoke() {target} must be a command")


__all__ = (
    "ParserConfiguration",
    "compile_configuration",
    "CommandSchema",
    "Command",
    "command",
    "invoke",
)
