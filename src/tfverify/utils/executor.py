"""Command execution with optional context-aware cancellation."""

import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional

from tfverify.utils.context import RunContext
from tfverify.utils.errors import (
    CommandError,
    ContextCancelledError,
    DeadlineExceededError,
    ErrorContext,
)
from tfverify.utils.logging import TRACE, get_logger

logger = get_logger(__name__)

# Interval between context checks while a subprocess runs
POLL_INTERVAL = 0.05


class CommandExecutor(ABC):
    """Runs an external command and returns its standard output."""

    @abstractmethod
    def execute(self, command: str, *args: str, cwd: Optional[str] = None) -> str:
        """Run a command to completion.

        Raises:
            CommandError: If the command exits non-zero or cannot be started
        """


class ContextAwareCommandExecutor(CommandExecutor):
    """Command executor that can be interrupted through a RunContext."""

    @abstractmethod
    def execute_with_context(
        self,
        ctx: RunContext,
        command: str,
        *args: str,
        cwd: Optional[str] = None
    ) -> str:
        """Run a command, stopping it when ``ctx`` is done.

        Raises:
            ContextError: If the context expired or was cancelled
            CommandError: If the command exits non-zero or cannot be started
        """


class SubprocessCommandExecutor(ContextAwareCommandExecutor):
    """Default executor backed by subprocess."""

    def __init__(self, logger=None):
        self.logger = logger or get_logger(__name__)

    def execute(self, command: str, *args: str, cwd: Optional[str] = None) -> str:
        return self.execute_with_context(RunContext.background(), command, *args, cwd=cwd)

    def execute_with_context(
        self,
        ctx: RunContext,
        command: str,
        *args: str,
        cwd: Optional[str] = None
    ) -> str:
        argv = [command, *args]
        self.logger.debug(f"Executing command: {' '.join(argv)}")

        error = ctx.err()
        if error is not None:
            raise error.annotate(command=' '.join(argv))

        try:
            process = subprocess.Popen(
                argv,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                cwd=cwd,
            )
        except OSError as e:
            raise CommandError(
                f"failed to start {command}: {e}",
                context=ErrorContext(command=' '.join(argv)),
                cause=e
            ) from e

        stdout, stderr = self._wait(ctx, process, argv)

        if process.returncode != 0:
            self.logger.debug(
                f"Command exited with {process.returncode}: {' '.join(argv)}"
            )
            raise CommandError(
                f"{command} exited with status {process.returncode}",
                exit_code=process.returncode,
                stdout=stdout,
                stderr=stderr,
                context=ErrorContext(command=' '.join(argv)),
            )

        self.logger.debug(f"Command finished: output size={len(stdout)} bytes")
        self.logger.log(TRACE, f"Command output: {stdout}")
        return stdout

    def _wait(self, ctx: RunContext, process: subprocess.Popen, argv: List[str]):
        """Wait for the process, killing it if the context ends first."""
        while True:
            timeout = POLL_INTERVAL
            remaining = ctx.remaining()
            if remaining is not None:
                timeout = min(timeout, remaining) or POLL_INTERVAL
            try:
                return process.communicate(timeout=timeout)
            except subprocess.TimeoutExpired:
                pass

            error = ctx.err()
            if error is None:
                continue

            process.kill()
            stdout, stderr = process.communicate()
            command_line = ' '.join(argv)
            if isinstance(error, DeadlineExceededError):
                self.logger.error(f"Command timed out: {command_line}")
                raise DeadlineExceededError(
                    f"command timed out: {command_line}",
                    partial_output=stdout or "",
                    context=ErrorContext(command=command_line),
                )
            self.logger.error(f"Command cancelled: {command_line}")
            raise ContextCancelledError(
                f"command cancelled: {command_line}",
                partial_output=stdout or "",
                context=ErrorContext(command=command_line),
            )


class CommandExecutorWrapper(ContextAwareCommandExecutor):
    """Adapts a plain CommandExecutor to the context-aware interface.

    The context is only checked before dispatch. Once the wrapped command is
    running it is not interrupted, so a deadline that passes mid-command is
    noticed at the next phase boundary instead.
    """

    def __init__(self, executor: CommandExecutor):
        self.executor = executor

    def execute(self, command: str, *args: str, cwd: Optional[str] = None) -> str:
        return self.executor.execute(command, *args, cwd=cwd)

    def execute_with_context(
        self,
        ctx: RunContext,
        command: str,
        *args: str,
        cwd: Optional[str] = None
    ) -> str:
        error = ctx.err()
        if error is not None:
            raise error.annotate(command=' '.join((command, *args)))
        return self.executor.execute(command, *args, cwd=cwd)


def as_context_aware(executor: CommandExecutor) -> ContextAwareCommandExecutor:
    """Return ``executor`` if it is context-aware, otherwise wrap it."""
    if isinstance(executor, ContextAwareCommandExecutor):
        return executor
    return CommandExecutorWrapper(executor)
