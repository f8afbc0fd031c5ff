"""
Declarative option tables and the generic parser that consumes them.

Every tool describes its options and positional arguments as OptionSpec /
PositionalSpec entries. OptionParser turns an argv list into ParsedArgs with
typed values, raising UsageError for anything it does not recognize.

Accepted forms:
    --name=value        long option with a value (the only long form)
    --name              long flag
    -n value, -nvalue   short option with a value
    -n=value            short option with a value
    -abc                bundled short flags
    --                  end of options
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from .errors import UsageError


class OptionKind(str, Enum):
    """Value type of an option or positional argument."""

    FLAG = "flag"
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    TIMECODE = "timecode"


class InputKind(str, Enum):
    """What a positional argument names on disk, if anything."""

    NONE = "none"
    FILE = "file"
    DIRECTORY = "directory"
    FILE_OR_EXTENSION = "file_or_extension"


def parse_timecode(value: str) -> float:
    """
    Convert a timecode to seconds.

    Accepts ``SS``, ``MM:SS`` or ``HH:MM:SS``, each component optionally
    fractional (``00:01:02.5``).

    Raises:
        ValueError: If the value is not a non-negative timecode
    """
    parts = value.strip().split(":")
    if not 1 <= len(parts) <= 3 or any(not part for part in parts):
        raise ValueError(f"invalid timecode: {value!r}")

    seconds = 0.0
    for part in parts:
        number = float(part)
        if number < 0 or not math.isfinite(number):
            raise ValueError(f"invalid timecode: {value!r}")
        seconds = seconds * 60 + number
    return seconds


def format_seconds(seconds: float) -> str:
    """Format seconds for an ffmpeg argument, without trailing zeros."""
    return f"{seconds:.6f}".rstrip("0").rstrip(".")


def _convert(kind: OptionKind, raw: str, label: str, minimum: float | None, maximum: float | None):
    if kind in (OptionKind.STRING, OptionKind.FLAG):
        return raw

    try:
        if kind == OptionKind.INT:
            value = int(raw)
        elif kind == OptionKind.FLOAT:
            value = float(raw)
            if not math.isfinite(value):
                raise ValueError(raw)
        else:
            value = parse_timecode(raw)
    except ValueError:
        expected = {
            OptionKind.INT: "a whole number",
            OptionKind.FLOAT: "a number",
            OptionKind.TIMECODE: "a timecode (HH:MM:SS, MM:SS or seconds)",
        }[kind]
        raise UsageError(f"Invalid value '{raw}' for {label}: expected {expected}.") from None

    if minimum is not None and value < minimum:
        raise UsageError(f"Invalid value '{raw}' for {label}: must be at least {minimum:g}.")
    if maximum is not None and value > maximum:
        raise UsageError(f"Invalid value '{raw}' for {label}: must be at most {maximum:g}.")
    return value


@dataclass(frozen=True)
class OptionSpec:
    """One recognized option."""

    name: str
    short: str | None = None
    help: str = ""
    kind: OptionKind = OptionKind.FLAG
    dest: str | None = None
    default: object = None
    metavar: str | None = None
    minimum: float | None = None
    maximum: float | None = None

    @property
    def target(self) -> str:
        return self.dest or self.name.replace("-", "_")

    @property
    def takes_value(self) -> bool:
        return self.kind != OptionKind.FLAG

    @property
    def initial(self):
        if self.kind == OptionKind.FLAG:
            return bool(self.default)
        return self.default

    def convert(self, raw: str, label: str):
        return _convert(self.kind, raw, label, self.minimum, self.maximum)

    def signature(self) -> str:
        """Render the option as shown in usage and help, e.g. ``-r, --rate=KB``."""
        long_form = f"--{self.name}"
        if self.takes_value:
            long_form += f"={self.metavar or self.name.upper()}"
        if self.short:
            return f"-{self.short}, {long_form}"
        return f"    {long_form}"


@dataclass(frozen=True)
class PositionalSpec:
    """One positional argument, in order."""

    name: str
    help: str = ""
    kind: OptionKind = OptionKind.STRING
    required: bool = True
    variadic: bool = False
    default: object = None
    dest: str | None = None
    metavar: str | None = None
    missing_message: str | None = None
    input_kind: InputKind = InputKind.NONE
    noun: str = "File"
    minimum: float | None = None
    maximum: float | None = None

    @property
    def target(self) -> str:
        return self.dest or self.name

    @property
    def display(self) -> str:
        text = self.metavar or self.name.upper()
        if self.variadic:
            text += "..."
        return text if self.required else f"[{text}]"

    @property
    def missing(self) -> str:
        return self.missing_message or f"{self.name.capitalize()} must be provided."

    def convert(self, raw: str):
        return _convert(self.kind, raw, self.metavar or self.name.upper(), self.minimum, self.maximum)


HELP_OPTION = OptionSpec("help", "h", "Display this help message and exit.")
QUIET_OPTION = OptionSpec("quiet", "q", "Quiet mode. Suppress progress and status output.")


@dataclass
class ParsedArgs:
    """Typed result of parsing one argument vector."""

    options: dict[str, object] = field(default_factory=dict)
    positionals: dict[str, object] = field(default_factory=dict)

    def values(self) -> dict[str, object]:
        """Options and positionals merged into one mapping."""
        return {**self.options, **self.positionals}


class OptionParser:
    """Generic parser driven by OptionSpec / PositionalSpec tables."""

    def __init__(self, options: Sequence[OptionSpec], positionals: Sequence[PositionalSpec] = ()):
        self.options = list(options)
        self.positionals = list(positionals)
        self._long = {opt.name: opt for opt in self.options}
        self._short = {opt.short: opt for opt in self.options if opt.short}

        variadic = [pos for pos in self.positionals if pos.variadic]
        if variadic and variadic[-1] is not self.positionals[-1]:
            raise ValueError("only the last positional argument may be variadic")

    def help_requested(self, argv: Sequence[str]) -> bool:
        """
        Check whether -h/--help appears before the first non-option token.

        Unknown options are skipped rather than rejected so that help always
        wins over any other error.
        """
        i = 0
        while i < len(argv):
            arg = argv[i]
            if arg == "--" or not arg.startswith("-") or arg == "-":
                return False
            if arg.startswith("--"):
                if arg == "--help":
                    return True
            else:
                for pos, letter in enumerate(arg[1:], start=1):
                    if letter == "h":
                        return True
                    opt = self._short.get(letter)
                    if opt is not None and opt.takes_value:
                        if pos == len(arg) - 1:
                            i += 1
                        break
            i += 1
        return False

    def parse(self, argv: Sequence[str]) -> ParsedArgs:
        """
        Parse options then bind positional arguments.

        Raises:
            UsageError: Unknown option, missing or malformed value,
                missing or surplus positional argument
        """
        values = {opt.target: opt.initial for opt in self.options}
        rest: list[str] = []

        i = 0
        while i < len(argv):
            arg = argv[i]
            if arg == "--":
                rest = list(argv[i + 1 :])
                break
            if arg.startswith("--"):
                self._parse_long(arg, values)
            elif arg.startswith("-") and arg != "-":
                if self._parse_short(arg, argv[i + 1] if i + 1 < len(argv) else None, values):
                    i += 1
            else:
                rest = list(argv[i:])
                break
            i += 1

        return ParsedArgs(options=values, positionals=self._bind(rest))

    def _parse_long(self, arg: str, values: dict) -> None:
        name, sep, raw = arg[2:].partition("=")
        opt = self._long.get(name)
        if opt is None:
            raise UsageError(f"Unknown option --{name}")

        if not opt.takes_value:
            if sep:
                raise UsageError(f"Option '--{name}' does not take a value.")
            values[opt.target] = True
            return

        if not raw:
            raise _argument_required(f"--{name}")
        values[opt.target] = opt.convert(raw, f"--{name}")

    def _parse_short(self, arg: str, following: str | None, values: dict) -> bool:
        """Parse one ``-x...`` token. Returns True when the next token was consumed as a value."""
        for pos in range(1, len(arg)):
            letter = arg[pos]
            opt = self._short.get(letter)
            if opt is None:
                raise UsageError(f"Unknown option -{letter}")

            if not opt.takes_value:
                values[opt.target] = True
                continue

            raw = arg[pos + 1 :]
            if raw.startswith("="):
                raw = raw[1:]
            consumed = False
            if not raw and pos == len(arg) - 1 and following is not None:
                raw = following
                consumed = True
            if not raw:
                raise _argument_required(f"-{letter}")
            values[opt.target] = opt.convert(raw, f"-{letter}")
            return consumed
        return False

    def _bind(self, rest: list[str]) -> dict[str, object]:
        bound: dict[str, object] = {}
        idx = 0
        for pos in self.positionals:
            if pos.variadic:
                items = rest[idx:]
                idx = len(rest)
                if pos.required and not items:
                    raise UsageError(pos.missing)
                bound[pos.target] = [pos.convert(item) for item in items]
            elif idx < len(rest):
                bound[pos.target] = pos.convert(rest[idx])
                idx += 1
            elif pos.required:
                raise UsageError(pos.missing)
            else:
                bound[pos.target] = pos.default

        if idx < len(rest):
            raise UsageError(f"Unexpected argument '{rest[idx]}'.")
        return bound


def _argument_required(label: str) -> UsageError:
    return UsageError(f"Argument required for option '{label}' but none provided.")
