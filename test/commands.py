"""
Commands module behavioral tests (binding, defaults, faults, invocation).

Scope
- Validate the call pipeline: parse, validate, splice, call through.
- Validate implicit defaults (text "", number 0, flag False).
- Validate call-time faults and that the handler body never runs on failure.
- Validate owner/name keying for methods and functions, and late-bound argv.
- Validate the parser-configuration compiler.

Conventions
- Test method names follow CamelCase per project convention.
- Tests use the public API (command, option, Option, invoke, register).
"""

from __future__ import annotations

import sys
import unittest
import warnings
from unittest import TestCase, mock

from optbind import (
    command,
    invoke,
    option,
    register,
    registry,
    compile_configuration,
    Command,
    CommandSchema,
    Option,
    ParameterDescriptor,
    ParameterType,
    ConfigurationError,
    WrapError,
    InvalidParameterTypeError,
    MismatchedValueError,
    DuplicatePositionWarning,
)
from optbind.utils import Unset


class TestCommandBinding(TestCase):
    """Behavioral tests for the binding pipeline."""

    def testRoundTripTextOption(self):
        received = []

        class MyCommand:
            @command(argv=["--test", "test-value"])
            def run(self, test: str = Option("test")):
                received.append(test)

        MyCommand().run("")
        self.assertEqual(received, ["test-value"])

    def testHandlerWithoutOptionsPassesThrough(self):
        @command(argv=["--ignored", "value"])
        def tool(a, b=2, *rest, key=None):
            return a, b, rest, key

        self.assertEqual(tool(1, 3, 4, key="k"), (1, 3, (4,), "k"))
        self.assertEqual(tool.descriptors, ())

    def testTextDefaultsToEmptyString(self):
        @command(argv=[])
        def tool(name: str = Option("name")):
            return name

        self.assertEqual(tool(), "")

    def testNumberDefaultsToZero(self):
        @command(argv=[])
        def tool(count: int = Option("count")):
            return count

        self.assertEqual(tool(), 0)
        self.assertIsInstance(tool(), int)

    def testFlagPresentIsTrue(self):
        @command(argv=["--verbose"])
        def tool(verbose: bool = Option("verbose")):
            return verbose

        self.assertIs(tool(), True)

    def testFlagAbsentIsFalse(self):
        @command(argv=[])
        def tool(verbose: bool = Option("verbose")):
            return verbose

        self.assertIs(tool(), False)

    def testNegatedFlagOverridesTrueDefault(self):
        @command(argv=["--no-color"])
        def tool(color: bool = Option("color", default=True)):
            return color

        self.assertIs(tool(), False)

    def testExplicitDefaultsApplyWhenAbsent(self):
        @command(argv=[])
        def tool(jobs: int = Option("jobs", default=4), label: str = Option("label", default="main")):
            return jobs, label

        self.assertEqual(tool(), (4, "main"))

    def testNumericLookingTextStaysString(self):
        @command(argv=["--label", "42"])
        def tool(label: str = Option("label")):
            return label

        self.assertEqual(tool(), "42")

    def testNumbersAreConverted(self):
        @command(argv=["--ratio=0.5", "--count", "3"])
        def tool(ratio: float = Option("ratio"), count: int = Option("count")):
            return ratio, count

        self.assertEqual(tool(), (0.5, 3))

    def testAliasesResolveToCanonicalName(self):
        @command(argv=["-o", "out.txt", "-v"])
        def tool(
                output: str = Option("output", aliases=("o",)),
                verbose: bool = Option("verbose", aliases="v"),
        ):
            return output, verbose

        self.assertEqual(tool(), ("out.txt", True))

    def testSchemaTypeUsedWithoutAnnotation(self):
        @command(argv=["--count", "7"])
        def tool(count=Option("count", type=int)):
            return count

        self.assertEqual(tool(), 7)

    def testKeywordOnlyParameter(self):
        @command(argv=["--mode", "fast"])
        def tool(*, mode: str = Option("mode")):
            return mode

        self.assertEqual(tool(), "fast")
        # parsed values overwrite the caller's own arguments
        self.assertEqual(tool(mode="slow"), "fast")

    def testRepeatedInvocationsAreIdempotent(self):
        @command(argv=["--name", "x"])
        def tool(name: str = Option("name"), count: int = Option("count")):
            return name, count

        first = tool()
        second = tool()
        self.assertEqual(first, second)
        self.assertEqual(first, ("x", 0))

    def testReturnValueIsForwarded(self):
        @command(argv=[])
        def tool(name: str = Option("name", default="value")):
            return name.upper()

        self.assertEqual(tool(), "VALUE")


class TestDeclarationOrder(TestCase):
    """Values follow declared positions, not declaration order."""

    def testStackedOptionsBindByPosition(self):
        @command(argv=["--first", "a", "--second", "b"])
        @option("second", "second", type=str)
        @option("first", "first", type=str)
        def tool(first, second):
            return first, second

        self.assertEqual([descriptor.position for descriptor in tool.descriptors], [1, 0])
        self.assertEqual(tool(), ("a", "b"))

    def testOptionAboveCommandAndByPosition(self):
        @option(1, "b", type=int)
        @command(argv=["--a=1", "--b=2"])
        @option(0, "a", type=int)
        def tool(a, b):
            return a, b

        self.assertIsInstance(tool, Command)
        self.assertEqual(tool(), (1, 2))

    def testMethodPositionsCountTheReceiver(self):
        class Tool:
            @command(argv=["--size", "9"])
            def run(self, size: int = Option("size")):
                return size

        descriptor, = Tool.run.descriptors
        self.assertEqual(descriptor.position, 1)
        self.assertEqual(Tool().run(), 9)


class TestCommandFaults(TestCase):
    """Registration, wrap and call-time faults."""

    def testMissingTypeInformationRaises(self):
        with self.assertRaises(ConfigurationError):
            @command(argv=[])
            def tool(test=Option("test")):
                pass

    def testMissingTypeInformationIsATypeError(self):
        with self.assertRaises(TypeError):
            @command(argv=[])
            def tool(test=Option("test")):
                pass

    def testNonCallableRaisesWrapError(self):
        with self.assertRaises(WrapError):
            command(argv=[])(42)
        with self.assertRaises(WrapError):
            command(42)

    def testVariadicParameterCannotBeBound(self):
        with self.assertRaises(ConfigurationError):
            @command(argv=[])
            @option("rest", "rest", type=str)
            def tool(*rest):
                pass

    def testUnknownParameterCannotBeBound(self):
        with self.assertRaises(ConfigurationError):
            @command(argv=[])
            @option("missing", "missing", type=str)
            def tool(present):
                pass

    def testNumberMismatchRaisesAndSkipsBody(self):
        called = []

        @command(argv=["--count", "many"])
        def tool(count: int = Option("count")):
            called.append(count)

        with self.assertRaises(TypeError) as context:
            tool()
        self.assertIsInstance(context.exception, MismatchedValueError)
        self.assertIn("parameter 0", str(context.exception))
        self.assertEqual(context.exception.options["position"], 0)
        self.assertEqual(called, [])

    def testRepeatedTextOptionIsAMismatch(self):
        @command(argv=["--name", "a", "--name", "b"])
        def tool(name: str = Option("name")):
            pass

        with self.assertRaises(MismatchedValueError):
            tool()

    def testTextGivenAsNegationIsAMismatch(self):
        @command(argv=["--no-name"])
        def tool(name: str = Option("name")):
            pass

        with self.assertRaises(MismatchedValueError):
            tool()

    def testUnsupportedTypeRaisesAtCallTime(self):
        called = []

        @command(argv=[])
        def tool(items: list = Option("items")):
            called.append(items)

        self.assertIs(tool.descriptors[0].type, list)
        with self.assertRaises(InvalidParameterTypeError) as context:
            tool()
        self.assertIn("parameter 0", str(context.exception))
        self.assertEqual(called, [])

    def testRegisteredPositionOutsideSignatureRaisesAtCallTime(self):
        called = []

        class Tool:
            @command(argv=[])
            def run(self):
                called.append(True)

        register(Tool, "run", 5, Option("ghost", type=str))
        with self.assertRaises(ConfigurationError):
            Tool().run()
        self.assertEqual(called, [])

    def testShellModeRendersAndExits(self):
        called = []

        @command(argv=["--count", "x"], shell=True)
        def tool(count: int = Option("count")):
            called.append(count)

        with mock.patch("optbind.faults.console") as console:
            with self.assertRaises(SystemExit) as context:
                tool()
        self.assertEqual(context.exception.code, 1)
        console.print.assert_called_once()
        self.assertIsInstance(console.print.call_args.args[0], MismatchedValueError)
        self.assertEqual(called, [])


class TestCommandOwnership(TestCase):
    """Registry keying, descriptors and argument sources."""

    def testDescriptorsAreKeyedByClassAndName(self):
        class Tool:
            @command(argv=[])
            def run(self, name: str = Option("name")):
                return name

        self.assertIs(Tool.run.owner, Tool)
        self.assertEqual(Tool.run.name, "run")
        self.assertEqual(Tool.run.descriptors[0].name, "name")

    def testFactoryCommandsKeepTheirOwnOptions(self):
        def make(name):
            @command(argv=["--" + name, "v"])
            def tool(value: str = Option(name)):
                return value

            return tool

        with warnings.catch_warnings():
            warnings.simplefilter("error", DuplicatePositionWarning)
            first = make("alpha")
            second = make("beta")

        self.assertEqual([descriptor.name for descriptor in first.descriptors], ["alpha"])
        self.assertEqual([descriptor.name for descriptor in second.descriptors], ["beta"])
        self.assertEqual(first(), "v")
        self.assertEqual(second(), "v")

    def testFunctionCommandOwnsItsMetadata(self):
        @command(argv=["--name", "x"])
        def tool(name: str = Option("name")):
            return name

        self.assertIs(tool.owner, Unset)
        self.assertIn((tool, tool.name), registry)
        self.assertTrue(repr(tool).startswith("command("))

    def testReceiverIsPreserved(self):
        class Tool:
            def __init__(self):
                self.seen = []

            @command(argv=["--count", "3", "-v"])
            def run(self, count: int = Option("count"), verbose: bool = Option("verbose", aliases=("v",))):
                self.seen.append((count, verbose))
                return self

        tool = Tool()
        self.assertIs(tool.run(), tool)
        self.assertEqual(tool.seen, [(3, True)])

    def testInheritedCommandUsesDefiningClass(self):
        class Base:
            @command(argv=["--name", "base"])
            def run(self, name: str = Option("name")):
                return type(self).__name__, name

        class Child(Base):
            pass

        self.assertEqual(Child().run(), ("Child", "base"))

    def testRegistrationAfterInvocationIsVisible(self):
        class Tool:
            @command(argv=["--new", "n"])
            def run(self, value: str = Option("old")):
                return value

        self.assertEqual(Tool().run(), "")
        with self.assertWarns(DuplicatePositionWarning):
            register(Tool, "run", 1, Option("new", type=str))
        self.assertEqual([descriptor.name for descriptor in Tool.run.descriptors], ["new"])
        self.assertEqual(Tool().run(), "n")

    def testLiveArgvIsReadAtCallTime(self):
        @command
        def tool(name: str = Option("name")):
            return name

        with mock.patch.object(sys, "argv", ["prog", "--name", "first"]):
            self.assertEqual(tool(), "first")
        with mock.patch.object(sys, "argv", ["prog", "--name", "second"]):
            self.assertEqual(tool(), "second")

    def testSchemaInstanceAccepted(self):
        @command(CommandSchema(["--name", "x"]))
        def tool(name: str = Option("name")):
            return name

        self.assertEqual(tool.schema.argv, ("--name", "x"))
        self.assertEqual(tool(), "x")

    def testArgvStringIsSplit(self):
        @command(argv="--name 'two words'")
        def tool(name: str = Option("name")):
            return name

        self.assertEqual(tool(), "two words")

    def testWrapperKeepsHandlerIdentity(self):
        @command(argv=[])
        def tool(name: str = Option("name")):
            """tool docstring."""

        self.assertEqual(tool.__name__, "tool")
        self.assertEqual(tool.__doc__, "tool docstring.")
        self.assertTrue(repr(tool).startswith("command("))


class TestInvoke(TestCase):
    """Explicit argument sources via invoke() and resolve()."""

    def testInvokeBoundMethodWithPrompt(self):
        class Tool:
            @command
            def run(self, name: str = Option("name")):
                return name

        self.assertEqual(invoke(Tool().run, "--name 'two words'"), "two words")

    def testInvokeCommandWithTokens(self):
        @command(argv=["--count", "1"])
        def tool(count: int = Option("count")):
            return count

        self.assertEqual(invoke(tool, ["--count", "2"]), 2)
        # the schema argv is untouched
        self.assertEqual(tool(), 1)

    def testInvokeRejectsPlainCallables(self):
        with self.assertRaises(TypeError):
            invoke(lambda: None, "--x")

    def testResolveReturnsStructuredOptions(self):
        @command(argv=["--size", "10", "--label", "x"])
        def tool(
                size: int = Option("size"),
                label: str = Option("label"),
                dry: bool = Option("dry-run"),
        ):
            raise AssertionError("resolve() must not call the handler")

        options = tool.resolve()
        self.assertEqual(dict(options), {"size": 10, "label": "x", "dry-run": False})
        with self.assertRaises(TypeError):
            options["size"] = 11  # read-only mapping

    def testResolveWithPrompt(self):
        @command(argv=[])
        def tool(size: int = Option("size")):
            pass

        self.assertEqual(tool.resolve("--size=3")["size"], 3)


class TestCompileConfiguration(TestCase):
    """Parser-configuration compiler."""

    def testClassifiesByType(self):
        descriptors = [
            ParameterDescriptor(0, ParameterType.TEXT, Option("name")),
            ParameterDescriptor(1, ParameterType.FLAG, Option("verbose", aliases=("v",))),
            ParameterDescriptor(2, ParameterType.NUMBER, Option("count")),
            ParameterDescriptor(3, list, Option("items")),
        ]
        configuration = compile_configuration(descriptors)
        self.assertEqual(configuration.strings, ("name",))
        self.assertEqual(configuration.booleans, ("verbose",))
        self.assertEqual(dict(configuration.defaults), {"name": "", "count": 0})
        self.assertEqual(dict(configuration.aliases), {"verbose": ("v",)})

    def testFlagDefaultRecordedOnlyWhenDeclared(self):
        configuration = compile_configuration([
            ParameterDescriptor(0, ParameterType.FLAG, Option("color", default=True)),
        ])
        self.assertEqual(dict(configuration.defaults), {"color": True})

    def testDuplicateNamesLastWriteWins(self):
        configuration = compile_configuration([
            ParameterDescriptor(0, ParameterType.NUMBER, Option("n", default=1)),
            ParameterDescriptor(1, ParameterType.NUMBER, Option("n", default=2)),
        ])
        self.assertEqual(configuration.defaults["n"], 2)

    def testEmptyDescriptors(self):
        configuration = compile_configuration(())
        self.assertEqual(configuration.strings, ())
        self.assertEqual(configuration.booleans, ())
        self.assertEqual(dict(configuration.defaults), {})
        self.assertEqual(dict(configuration.aliases), {})


if __name__ == "__main__":
    unittest.main()
