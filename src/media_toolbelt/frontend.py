"""
Tool front-end - the shared run loop behind every command.

Each run goes through the same fixed stages:

    parse options -> (help: exit 0)
    validate arguments -> check dependencies -> check inputs exist
    -> execute -> report

Every failure is a ToolError; run_tool is the only place they are caught.
It prints ``prog: message`` to stderr and returns exit status 1. Help and
normal completion return 0.
"""

import logging
import os
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from rich.console import Console
from rich.logging import RichHandler
from rich.prompt import Confirm, FloatPrompt
from rich.text import Text

from . import __version__
from .config import AppConfig, load_config
from .constants import EXIT_FAILURE, EXIT_OK
from .dependencies import DependencyCheck, check_dependencies
from .errors import BatchFailure, InputNotFound, ToolError, UsageError
from .options import HELP_OPTION, QUIET_OPTION, InputKind, OptionParser, OptionSpec, PositionalSpec
from .process import CleanupStack, ExecutionResult, ProcessRunner, signal_guard, signals_ignored
from .runners import BatchCallbacks, BatchResult, ItemOutcome, SequentialBatch

logger = logging.getLogger(__name__)

_EXTENSION_TOKEN = re.compile(r"^\.?[A-Za-z0-9]+$")


@dataclass
class ToolOutcome:
    """What a successful run produced."""

    message: str = ""
    outputs: list[Path] = field(default_factory=list)


@dataclass
class ToolSpec:
    """
    Declarative description of one command-line tool.

    ``requires`` lists dependencies every run needs; ``requires_when`` and
    ``optional_when`` add more based on the parsed values (e.g. montage only
    when an index is requested). Optional dependencies may be missing; the
    tool decides what to skip.
    """

    name: str
    summary: str
    execute: Callable[["ToolContext"], ToolOutcome | None]
    options: list[OptionSpec] = field(default_factory=list)
    positionals: list[PositionalSpec] = field(default_factory=list)
    requires: tuple[str, ...] = ()
    requires_when: Callable[[Mapping[str, object]], Iterable[str]] | None = None
    optional_when: Callable[[Mapping[str, object]], Iterable[str]] | None = None
    validate: Callable[[Mapping[str, object]], None] | None = None
    description: str = ""
    usage: list[str] = field(default_factory=list)
    examples: list[tuple[str, str]] = field(default_factory=list)
    version: str = __version__

    @property
    def all_options(self) -> list[OptionSpec]:
        return [HELP_OPTION, QUIET_OPTION, *self.options]

    def parser(self) -> OptionParser:
        return OptionParser(self.all_options, self.positionals)

    def dependencies(self, values: Mapping[str, object]) -> tuple[str, ...]:
        names = list(self.requires)
        if self.requires_when:
            names.extend(self.requires_when(values))
        return tuple(dict.fromkeys(names))

    def optional_dependencies(self, values: Mapping[str, object]) -> tuple[str, ...]:
        if not self.optional_when:
            return ()
        return tuple(dict.fromkeys(self.optional_when(values)))


@dataclass(frozen=True)
class InvocationSpec:
    """
    Validated inputs for one run. Built only after arguments, dependencies
    and input paths have all been checked.
    """

    tool: str
    inputs: tuple[Path, ...]
    params: Mapping[str, object]
    output: Path | None = None
    quiet: bool = False
    from_pattern: bool = False

    def __post_init__(self):
        object.__setattr__(self, "inputs", tuple(self.inputs))
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    @property
    def input(self) -> Path | None:
        return self.inputs[0] if self.inputs else None

    def get(self, name: str, default=None):
        value = self.params.get(name)
        return default if value is None else value


def derive_output(
    source: Path, suffix: str = "", extension: str | None = None, directory: Path | None = None
) -> Path:
    """
    Build an output path from the input name.

    Examples:
        clip.mov + suffix="-trim"             -> clip-trim.mov
        movie.avi + extension=".mp4"          -> movie.mp4
        a.wmv + ext=".mp4", dir="converted"   -> converted/a.mp4
    """
    ext = source.suffix if extension is None else extension
    parent = source.parent if directory is None else Path(directory)
    return parent / f"{source.stem}{suffix}{ext}"


def _same_file(a: Path, b: Path) -> bool:
    return os.path.abspath(a) == os.path.abspath(b)


class Reporter:
    """Console output for one run. Status lines respect quiet mode; errors never do."""

    def __init__(self, prog: str, quiet: bool = False, color: bool = True):
        self.prog = prog
        self.quiet = quiet
        self.out = Console(soft_wrap=True, highlight=False, no_color=not color)
        self.err = Console(stderr=True, soft_wrap=True, highlight=False, no_color=not color)

    def status(self, message: str) -> None:
        if not self.quiet:
            self.out.print(Text(message, style="cyan"))

    def success(self, message: str) -> None:
        if not self.quiet:
            self.out.print(Text(message, style="green"))

    def warning(self, message: str) -> None:
        if not self.quiet:
            self.err.print(Text.assemble(("Warning: ", "bold yellow"), (message, "yellow")))

    def failure(self, message: str) -> None:
        self.err.print(Text(message, style="red"))

    def error(self, error: ToolError) -> None:
        self.err.print(Text.assemble((f"{self.prog}: ", "bold"), (error.message, "red")))
        if error.hint:
            self.err.print(Text(error.hint, style="yellow"))

    def usage(self, text: str) -> None:
        self.err.print(text, markup=False)

    def help(self, text: Text) -> None:
        self.out.print(text)

    def ask_float(self, question: str, option: str = "--time") -> float:
        """
        Ask for a number on standard input.

        Raises:
            UsageError: If standard input is closed, naming the option that avoids the question
        """
        try:
            return FloatPrompt.ask(Text(question, style="yellow"), console=self.out)
        except EOFError as e:
            raise UsageError(f"{option} is required when not running interactively.", show_usage=False) from e

    def confirm(self, question: str, closed: str = "Pass --yes when not running interactively.") -> bool:
        """Ask a yes/no question, defaulting to no. A closed standard input raises UsageError(closed)."""
        try:
            return Confirm.ask(Text(question, style="bold"), console=self.out, default=False)
        except EOFError as e:
            raise UsageError(closed, show_usage=False) from e


@dataclass
class ToolContext:
    """Everything a tool's execute step needs."""

    invocation: InvocationSpec
    config: AppConfig
    deps: DependencyCheck
    runner: ProcessRunner
    cleanup: CleanupStack
    reporter: Reporter

    @property
    def params(self) -> Mapping[str, object]:
        return self.invocation.params

    @property
    def quiet(self) -> bool:
        return self.invocation.quiet

    def exe(self, name: str) -> str:
        return str(self.deps[name])

    def run(self, name: str, *args, capture: bool = False, check: bool = True) -> ExecutionResult:
        """Run a resolved dependency with the given arguments."""
        return self.runner.run([self.exe(name), *(str(arg) for arg in args)], capture=capture, check=check)

    def claim_output(self, path: Path) -> Path:
        """
        Reserve an output path for this run.

        Raises:
            UsageError: If the path is one of the run's inputs
        """
        path = Path(path)
        if any(_same_file(path, source) for source in self.invocation.inputs):
            raise UsageError(f"Output '{path}' would overwrite the input file.", show_usage=False)
        if not path.exists():
            self.cleanup.partial(path)
        return path

    def confirm_overwrite(self, path: Path) -> None:
        """
        Ask before a tool replaces a file that already exists.

        Raises:
            UsageError: If the answer is no or there is no one to ask
        """
        path = Path(path)
        if not path.exists():
            return
        refused = f"Output '{path}' already exists."
        if not self.reporter.confirm(f"'{path}' already exists. Overwrite it?", closed=refused):
            raise UsageError(refused, show_usage=False)

    def output_path(
        self,
        source: Path,
        *,
        suffix: str = "",
        extension: str | None = None,
        directory: Path | None = None,
        explicit: bool = True,
    ) -> Path:
        """Explicit --output if given (and allowed), otherwise the derived name."""
        if explicit and self.invocation.output is not None:
            return self.claim_output(self.invocation.output)
        return self.claim_output(derive_output(source, suffix, extension, directory))

    def batch(
        self,
        items: Sequence[Path],
        action: Callable[[Path], Path | None],
        noun: str = "files",
        raise_on_failure: bool = True,
    ) -> BatchResult:
        """
        Run an action over items one at a time, reporting each outcome.

        Raises:
            BatchFailure: If any item failed and raise_on_failure is set
        """

        def on_start(item: Path, idx: int, total: int) -> None:
            logger.debug("[%d/%d] %s", idx, total, item)

        def on_complete(outcome: ItemOutcome, idx: int, total: int) -> None:
            if outcome.success:
                if outcome.output is not None:
                    self.cleanup.commit(outcome.output)
                target = outcome.output or outcome.item
                self.reporter.success(f"[{idx}/{total}] {outcome.item} -> {target}")
            else:
                self.reporter.failure(f"[{idx}/{total}] {outcome.item} failed: {outcome.error}")

        callbacks = BatchCallbacks(on_item_start=on_start, on_item_complete=on_complete)
        result = SequentialBatch().run(items, action, callbacks)
        if raise_on_failure and not result.success:
            raise BatchFailure(result.failed, result.total, noun)
        return result


def configure_logging(level: str) -> None:
    """Attach a Rich handler to the package logger (once) and set its level."""
    package_logger = logging.getLogger(__package__)
    package_logger.setLevel(getattr(logging, str(level).upper(), logging.WARNING))
    if not any(isinstance(handler, RichHandler) for handler in package_logger.handlers):
        package_logger.addHandler(RichHandler(console=Console(stderr=True), show_time=False, show_path=False))


def _usage_token(opt: OptionSpec) -> str:
    forms = [f"-{opt.short}"] if opt.short else []
    forms.append(f"--{opt.name}")
    token = "|".join(forms)
    if opt.takes_value:
        token += f"=<{opt.metavar or opt.name.upper()}>"
    return f"[{token}]"


def render_usage(tool: ToolSpec) -> str:
    """Usage lines, e.g. ``Usage: trimvid [-q|--quiet] FILE START [END]``."""
    if tool.usage:
        lines = [f"{tool.name} {line}" for line in tool.usage]
    else:
        tokens = [_usage_token(opt) for opt in tool.all_options if opt is not HELP_OPTION]
        tokens.extend(pos.display for pos in tool.positionals)
        lines = [" ".join([tool.name, *tokens])]
    lines.append(f"{tool.name} [-h|--help]")
    return "\n".join(["Usage: " + lines[0], *("       " + line for line in lines[1:])])


def render_help(tool: ToolSpec) -> Text:
    text = Text()
    text.append(f"{tool.name} {tool.version}\n", style="bold")
    text.append(f"\n{tool.summary}\n", style="cyan")
    if tool.description:
        text.append(f"\n{tool.description.strip()}\n", style="cyan")
    text.append("\n")
    text.append(render_usage(tool) + "\n")

    text.append("\nOptions:\n", style="bold")
    for opt in tool.all_options:
        text.append(f"  {opt.signature():<24} {opt.help}\n")

    if tool.positionals:
        text.append("\nArguments:\n", style="bold")
        for pos in tool.positionals:
            text.append(f"  {pos.display:<24} {pos.help}\n")

    if tool.examples:
        text.append("\nExamples:\n", style="bold")
        for description, command in tool.examples:
            text.append(f"  {description}\n")
            text.append(f"  $ {command}\n", style="green")
    return text


def _expand_extension(token: str) -> list[Path]:
    """Files in the working directory whose extension matches, sorted by name."""
    ext = "." + token.lstrip(".").lower()
    return sorted(Path(p.name) for p in Path.cwd().iterdir() if p.is_file() and p.suffix.lower() == ext)


def resolve_inputs(positionals: Sequence[PositionalSpec], bound: Mapping[str, object]) -> tuple[list[Path], bool]:
    """
    Check every input-naming positional against the filesystem.

    Returns:
        Tuple of (input paths, whether they came from an extension pattern)

    Raises:
        InputNotFound: For the first missing input
    """
    inputs: list[Path] = []
    from_pattern = False

    for pos in positionals:
        if pos.input_kind == InputKind.NONE:
            continue
        value = bound.get(pos.target)
        if value is None:
            continue

        for raw in value if pos.variadic else [value]:
            path = Path(str(raw))
            if pos.input_kind == InputKind.DIRECTORY:
                if not path.is_dir():
                    raise InputNotFound(raw, pos.noun)
                inputs.append(path)
            elif path.is_file():
                inputs.append(path)
            elif pos.input_kind == InputKind.FILE_OR_EXTENSION and _EXTENSION_TOKEN.match(str(raw)):
                matches = _expand_extension(str(raw))
                if not matches:
                    pattern = f"*.{str(raw).lstrip('.')}"
                    raise InputNotFound(pattern, message=f"No '{pattern}' files found in the current directory.")
                inputs.extend(matches)
                from_pattern = True
            else:
                raise InputNotFound(raw, pos.noun)

    return inputs, from_pattern


def prepare_invocation(
    tool: ToolSpec, argv: Sequence[str], config: AppConfig
) -> tuple[InvocationSpec, DependencyCheck]:
    """
    Run the validation stages in order and build the InvocationSpec.

    Raises:
        UsageError: Bad options or arguments
        DependencyMissing: A required executable is not available
        InputNotFound: An input path does not exist
    """
    parsed = tool.parser().parse(argv)
    values = parsed.values()
    if tool.validate:
        tool.validate(values)

    deps = check_dependencies(tool.dependencies(values), tool.optional_dependencies(values), config.tools)

    inputs, from_pattern = resolve_inputs(tool.positionals, parsed.positionals)
    output = values.get("output")
    invocation = InvocationSpec(
        tool=tool.name,
        inputs=tuple(inputs),
        params=values,
        output=Path(str(output)) if output else None,
        quiet=bool(values.get("quiet")),
        from_pattern=from_pattern,
    )
    return invocation, deps


def run_tool(tool: ToolSpec, argv: Sequence[str], config: AppConfig | None = None) -> int:
    """
    Run one tool invocation from start to finish.

    Args:
        tool: Tool definition
        argv: Arguments after the program name
        config: Loaded configuration (loaded from the standard locations if None)

    Returns:
        Process exit status (0 on success or help, 1 on any failure)
    """
    config = config if config is not None else load_config()
    configure_logging(config.logging.level)
    reporter = Reporter(tool.name, color=config.display.color)

    if tool.parser().help_requested(argv):
        reporter.help(render_help(tool))
        return EXIT_OK

    cleanup = CleanupStack()
    completed = False
    try:
        try:
            with signal_guard():
                invocation, deps = prepare_invocation(tool, argv, config)
                reporter.quiet = invocation.quiet
                cleanup.protect(*invocation.inputs)

                ctx = ToolContext(
                    invocation=invocation,
                    config=config,
                    deps=deps,
                    runner=ProcessRunner(quiet=invocation.quiet),
                    cleanup=cleanup,
                    reporter=reporter,
                )
                outcome = tool.execute(ctx) or ToolOutcome()
                completed = True
        finally:
            # A second Ctrl-C must not stop the removal
            with signals_ignored():
                cleanup.close(success=completed)
    except UsageError as e:
        if e.show_usage:
            reporter.usage(render_usage(tool))
        reporter.error(e)
        return EXIT_FAILURE
    except ToolError as e:
        reporter.error(e)
        return EXIT_FAILURE
    except Exception as e:
        logger.debug("Unhandled error in %s", tool.name, exc_info=True)
        reporter.error(ToolError(f"Unexpected error: {type(e).__name__}: {e}"))
        return EXIT_FAILURE

    if outcome.message:
        reporter.success(outcome.message)
    return EXIT_OK
