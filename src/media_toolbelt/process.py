"""
Blocking execution of external commands, signal handling and cleanup.
"""

import logging
import shlex
import shutil
import signal
import subprocess
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

from .errors import DelegatedFailure, InterruptedBySignal

logger = logging.getLogger(__name__)


@dataclass
class ExecutionResult:
    """Outcome of one external process."""

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


INTERRUPT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@contextmanager
def _handlers(handler, signals: tuple[int, ...]):
    # Handlers can only be installed from the main thread
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = {sig: signal.signal(sig, handler) for sig in signals}
    try:
        yield
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old if old is not None else signal.SIG_DFL)


@contextmanager
def signal_guard(signals: tuple[int, ...] = INTERRUPT_SIGNALS):
    """
    Turn SIGINT/SIGTERM into InterruptedBySignal for the duration of the block.

    The exception is raised inside whatever blocking call is running; when that
    call is ``subprocess.run`` the child process is killed before it
    propagates. Previous handlers are restored on exit. Outside the main
    thread handlers cannot be installed, so the block runs unguarded.
    """

    def _raise(signum, frame):
        raise InterruptedBySignal(signum)

    with _handlers(_raise, signals):
        yield


@contextmanager
def signals_ignored(signals: tuple[int, ...] = INTERRUPT_SIGNALS):
    """Ignore SIGINT/SIGTERM while the block runs, e.g. while removing partial outputs."""
    with _handlers(signal.SIG_IGN, signals):
        yield


@dataclass
class CleanupStack:
    """
    Files created during a run that must not outlive it.

    Temporaries are always removed. Partial outputs are removed only when the
    run fails. Protected paths (the user's inputs) are never removed.
    """

    temporaries: list[Path] = field(default_factory=list)
    partials: list[Path] = field(default_factory=list)
    protected: set[Path] = field(default_factory=set)

    def protect(self, *paths: Path) -> None:
        self.protected.update(Path(p).resolve() for p in paths)

    def temporary(self, path: Path) -> Path:
        self.temporaries.append(Path(path))
        return Path(path)

    def temp_dir(self, prefix: str = "mtb-") -> Path:
        """Create a temporary directory removed when the run ends."""
        return self.temporary(Path(tempfile.mkdtemp(prefix=prefix)))

    def partial(self, path: Path) -> Path:
        """Track an output that is removed if the run does not complete."""
        self.partials.append(Path(path))
        return Path(path)

    def commit(self, path: Path) -> None:
        """Mark a partial output as complete so a later failure keeps it."""
        self.partials = [p for p in self.partials if p != Path(path)]

    def close(self, success: bool) -> None:
        doomed = list(self.temporaries)
        if not success:
            doomed.extend(self.partials)

        for path in reversed(doomed):
            if path.resolve() in self.protected:
                logger.debug("Not removing protected path %s", path)
                continue
            if path.is_dir():
                shutil.rmtree(path, ignore_errors=True)
            elif path.exists():
                logger.debug("Removing %s", path)
                path.unlink()

        self.temporaries.clear()
        self.partials.clear()


class ProcessRunner:
    """Runs external commands one at a time, waiting for each to finish."""

    def __init__(self, quiet: bool = False):
        self.quiet = quiet
        self.history: list[ExecutionResult] = []

    def run(
        self,
        cmd: list[str],
        *,
        capture: bool = False,
        check: bool = True,
        cwd: Path | None = None,
        timeout: float | None = None,
    ) -> ExecutionResult:
        """
        Run a command to completion.

        Args:
            cmd: Command line, executable first
            capture: Capture stdout (and stderr) instead of forwarding them
            check: Raise DelegatedFailure on a non-zero exit status
            cwd: Working directory for the child
            timeout: Seconds before the child is killed

        Returns:
            ExecutionResult with exit status and any captured output

        Raises:
            DelegatedFailure: If check is set and the command fails
        """
        logger.debug("Running: %s", shlex.join(str(part) for part in cmd))

        # stderr is forwarded to the terminal unless quiet, in which case it is
        # kept for the error message
        capture_stderr = capture or self.quiet
        try:
            proc = subprocess.run(
                [str(part) for part in cmd],
                stdout=subprocess.PIPE if capture else None,
                stderr=subprocess.PIPE if capture_stderr else None,
                text=True,
                cwd=cwd,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise DelegatedFailure(Path(str(cmd[0])).name, -1, f"timed out after {exc.timeout}s") from exc

        result = ExecutionResult(
            command=[str(part) for part in cmd],
            returncode=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
        )
        self.history.append(result)

        if check and not result.ok:
            raise DelegatedFailure(Path(result.command[0]).name, result.returncode, result.stderr)
        return result
