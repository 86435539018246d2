"""
Process-wide option registry.

The registry maps a handler, identified by (owner, handler name), to the
ordered list of ParameterDescriptor records declared for its parameters.

- owner: the class defining a method, or the module defining a function.
  Owners are held weakly: a class that goes away takes its metadata with it.
- handler name: the attribute name for methods, the qualified name for
  functions.

Writes happen at definition time (class bodies, decorators, setup code);
commands read the list on every call. Registering after a command already ran
is allowed and visible to the next call.

Re-registration
- A second descriptor for a position replaces the first one in place (last
  writer wins per position) and a DuplicatePositionWarning is emitted.

Concurrency
- No locking. Registering for the same handler from several threads at once
  is undefined; callers that need it must serialize registration themselves.
"""
import inspect
import weakref
from collections import defaultdict

from .faults import *
from .kinds import ParameterType
from .options import Option, ParameterDescriptor
from .utils import Unset


def _resolve_type(position, schema, annotation):
    """
    pick the declared type for a parameter.

    order (first match wins)
    1. the parameter annotation, when there is one;
    2. the explicit Option type;
    3. otherwise ConfigurationError.
    """
    if annotation is not Unset and annotation is not inspect.Parameter.empty:
        return ParameterType.resolve(annotation)
    if schema.type is not Unset:
        return ParameterType.resolve(schema.type)
    trigger(ConfigurationError(
        "parameter %d (option %r) has no type information" % (position, schema.name),
        title="missing type information",
        code=FaultCode.MISSING_TYPE_INFORMATION,
        position=position,
        option=schema,
        hint="annotate the parameter (for example: %s: str) or pass type= to the option" % schema.name,
        docs=getdoc(FaultCode.MISSING_TYPE_INFORMATION)
    ))


class Registry:
    """
    Table of handler metadata keyed by (owner, handler name).

    operations
    - register(owner, name, position, schema, annotation=Unset) → descriptor
    - lookup(owner, name) → tuple of descriptors (empty when none)
    - discard(owner, name=Unset): forget one handler, or every handler of owner
    - clear(): forget everything
    - (owner, name) in registry, len(registry), iter(registry)
    """

    def __init__(self):
        self._tables = weakref.WeakKeyDictionary()

    def _table(self, owner):
        try:
            return self._tables.setdefault(owner, defaultdict(list))
        except TypeError:
            raise TypeError("registry owner must support weak references") from None

    def register(self, owner, name, position, schema, /, annotation=Unset):
        """
        append a descriptor for one parameter of a handler.

        parameters
        - owner: class or module (any weak-referenceable object)
        - name: handler name (str)
        - position: parameter index in the handler's declared parameter list
        - schema: Option
        - annotation: static type information of the parameter, when known

        raises
        - ConfigurationError when no type can be resolved; earlier
          registrations for the same handler are left untouched.
        """
        if not isinstance(name, str):
            raise TypeError("registry handler name must be a string")
        if not isinstance(schema, Option):
            raise TypeError("registry schema must be an option")

        descriptor = ParameterDescriptor(position, _resolve_type(position, schema, annotation), schema)
        descriptors = self._table(owner)[name]

        for index, existing in enumerate(descriptors):
            if existing.position == position:
                descriptors[index] = descriptor
                trigger(DuplicatePositionWarning(
                    "parameter %d of %r was declared again; option %r replaces %r" % (
                        position, name, schema.name, existing.name
                    ),
                    title="duplicate declaration",
                    code=FaultCode.DUPLICATE_POSITION,
                    position=position,
                    hint="declare each parameter once",
                    docs=getdoc(FaultCode.DUPLICATE_POSITION)
                ))
                return descriptor

        descriptors.append(descriptor)
        return descriptor

    def lookup(self, owner, name, /):
        try:
            table = self._tables[owner]
        except (KeyError, TypeError):
            return ()
        return tuple(table.get(name, ()))

    def discard(self, owner, name=Unset, /):
        try:
            table = self._tables[owner]
        except (KeyError, TypeError):
            return
        if name is Unset:
            del self._tables[owner]
        else:
            table.pop(name, None)

    def clear(self):
        self._tables.clear()

    def __contains__(self, key, /):
        owner, name = key
        return bool(self.lookup(owner, name))

    def __iter__(self):
        for owner, table in list(self._tables.items()):
            for name, descriptors in table.items():
                if descriptors:
                    yield owner, name

    def __len__(self):
        return sum(1 for _ in self)

    def __repr__(self):
        return f"registry(handlers={len(self)})"


registry = Registry()


def register(owner, name, position, schema, /, annotation=Unset):
    """
    register an option on the process-wide registry.

    this is the explicit form of an option declaration, meant for setup code
    (e.g., a constructor or a module-level definition step):

        register(Tool, "run", 1, Option("verbose", type=bool))
    """
    return registry.register(owner, name, position, schema, annotation)


__all__ = (
    "Registry",
    "registry",
    "register",
)
