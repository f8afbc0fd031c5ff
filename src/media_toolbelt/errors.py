"""
Error types raised by the tool front-end and the tools built on it.

Every failure a user can hit maps to a ToolError subclass. The front-end is
the only place these are caught: it prints ``prog: message`` (plus an
optional hint) to stderr and exits with status 1.

Hierarchy:
    ToolError
    ├── UsageError
    ├── DependencyMissing
    ├── InputNotFound
    ├── DelegatedFailure
    │   └── BatchFailure
    └── InterruptedBySignal
"""

import signal


class ToolError(Exception):
    """Base class for all user-facing tool errors."""

    def __init__(self, message: str, *, hint: str | None = None):
        super().__init__(message)
        self.message = message
        self.hint = hint


class UsageError(ToolError):
    """Bad, missing or unknown option or argument."""

    def __init__(self, message: str, *, hint: str | None = None, show_usage: bool = True):
        super().__init__(message, hint=hint)
        self.show_usage = show_usage


class DependencyMissing(ToolError):
    """A required external executable could not be located."""

    def __init__(self, tool: str, url: str | None = None, *, hint: str | None = None):
        message = f"{tool} must be installed"
        if url:
            message += f" <{url}>"
        super().__init__(message + ". Aborting.", hint=hint)
        self.tool = tool
        self.url = url


class InputNotFound(ToolError):
    """A named input file or directory does not exist."""

    def __init__(self, path, noun: str = "File", *, message: str | None = None, hint: str | None = None):
        super().__init__(message or f"{noun} '{path}' not found.", hint=hint)
        self.path = path


class DelegatedFailure(ToolError):
    """An external process exited with a non-zero status."""

    def __init__(self, tool: str, returncode: int, stderr: str = "", *, hint: str | None = None):
        message = f"{tool} failed with exit status {returncode}"
        detail = stderr.strip().splitlines()[-1] if stderr and stderr.strip() else ""
        if detail:
            message += f": {detail}"
        super().__init__(message, hint=hint)
        self.tool = tool
        self.returncode = returncode
        self.stderr = stderr


class BatchFailure(DelegatedFailure):
    """One or more items of a multi-file run failed."""

    def __init__(self, failed: int, total: int, noun: str = "files"):
        ToolError.__init__(self, f"{failed} of {total} {noun} failed.")
        self.tool = ""
        self.returncode = 1
        self.stderr = ""
        self.failed = failed
        self.total = total


class InterruptedBySignal(ToolError):
    """SIGINT or SIGTERM arrived while the tool was running."""

    MESSAGES = {
        signal.SIGINT: "Program interrupted by user.",
        signal.SIGTERM: "Program terminated.",
    }

    def __init__(self, signum: int):
        super().__init__(self.MESSAGES.get(signum, f"Program received signal {signum}."))
        self.signum = signum
