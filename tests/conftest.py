"""Shared test fixtures for tfverify."""

import logging
from typing import Dict, List, Optional, Tuple, Union

import pytest

from tfverify.config import VerificationOptions
from tfverify.live.runner import AWSCommandRunner
from tfverify.state.models import ResourceCounts, ServiceResourceCounts
from tfverify.utils.context import RunContext
from tfverify.utils.errors import CommandError
from tfverify.utils.executor import CommandExecutor, ContextAwareCommandExecutor

Response = Union[str, Exception]


class FakeAWSRunner(AWSCommandRunner):
    """Answers AWS CLI queries keyed by their first two arguments.

    ``responses`` maps ``(service, operation)`` to an output string or an
    exception to raise. Service-group queries can also be keyed by
    ``(service, operation, group)``, matched against the query text.
    """

    def __init__(self, responses: Optional[Dict[Tuple[str, ...], Response]] = None, default: str = "0"):
        self.responses = responses or {}
        self.default = default
        self.calls: List[Tuple[str, ...]] = []

    def run_command(self, *args: str, ctx: Optional[RunContext] = None) -> str:
        self.calls.append(args)
        response = self.default
        for key, value in self.responses.items():
            if tuple(args[:2]) != tuple(key[:2]):
                continue
            if len(key) == 3 and f"-{key[2]}" not in " ".join(args):
                continue
            response = value
            if len(key) == 3:
                break
        if isinstance(response, Exception):
            raise response
        return response.strip()


class FakeExecutor(ContextAwareCommandExecutor):
    """Returns canned terraform output and records invocations."""

    def __init__(self, outputs: Optional[Dict[str, Response]] = None):
        self.outputs = outputs or {}
        self.calls: List[Tuple[Tuple[str, ...], Optional[str]]] = []

    def _respond(self, command: str, args: Tuple[str, ...], cwd: Optional[str]) -> str:
        self.calls.append(((command, *args), cwd))
        response = self.outputs.get(args[0] if args else command, "")
        if isinstance(response, Exception):
            raise response
        return response

    def execute(self, command: str, *args: str, cwd: Optional[str] = None) -> str:
        return self._respond(command, args, cwd)

    def execute_with_context(self, ctx, command: str, *args: str, cwd: Optional[str] = None) -> str:
        ctx.raise_if_done()
        return self._respond(command, args, cwd)


class PlainExecutor(CommandExecutor):
    """Executor without context support."""

    def __init__(self, output: str = ""):
        self.output = output
        self.calls = 0

    def execute(self, command: str, *args: str, cwd: Optional[str] = None) -> str:
        self.calls += 1
        return self.output


def not_found(signature: str) -> CommandError:
    return CommandError(
        "aws exited with status 254",
        exit_code=254,
        stderr=f"An error occurred ({signature}) when calling the operation",
    )


def make_counts(vpc=0, rds=0, ecs_cluster=0, **services) -> ResourceCounts:
    """Build counts; service groups are given as (ecs_service, alb, target_group)."""
    return ResourceCounts(
        vpc=vpc,
        rds=rds,
        ecs_cluster=ecs_cluster,
        services={
            group: ServiceResourceCounts(ecs_service=s, alb=a, target_group=t)
            for group, (s, a, t) in services.items()
        },
    )


@pytest.fixture
def options() -> VerificationOptions:
    return VerificationOptions(environment="development")


@pytest.fixture
def env_dir(tmp_path):
    """Terraform root with a development environment directory."""
    (tmp_path / "development").mkdir()
    return tmp_path


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handlers installed by setup_logging."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
