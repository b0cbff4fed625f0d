"""AWS CLI command runners used to query live resources."""

from abc import ABC, abstractmethod
from typing import List, Optional

from tfverify.utils.context import RunContext
from tfverify.utils.executor import CommandExecutor, SubprocessCommandExecutor, as_context_aware
from tfverify.utils.logging import get_logger


class AWSCommandRunner(ABC):
    """Runs an AWS CLI subcommand and returns its trimmed output."""

    @abstractmethod
    def run_command(self, *args: str, ctx: Optional[RunContext] = None) -> str:
        """Run ``aws <args>``.

        Raises:
            CommandError: If the AWS CLI fails; the message includes stderr
            ContextError: If ``ctx`` ends while the command runs
        """


class AWSCLIRunner(AWSCommandRunner):
    """Default runner invoking the ``aws`` executable."""

    def __init__(
        self,
        executor: Optional[CommandExecutor] = None,
        profile: Optional[str] = None,
        region: Optional[str] = None,
        logger=None
    ):
        """Initialize AWS CLI runner.

        Args:
            executor: Executor used to start the CLI
            profile: AWS profile passed as --profile
            region: AWS region passed as --region
            logger: Optional injected logger
        """
        self.logger = logger or get_logger(__name__)
        self.executor = as_context_aware(executor or SubprocessCommandExecutor(logger=self.logger))
        self.profile = profile
        self.region = region

    def _global_args(self) -> List[str]:
        args = []
        if self.profile:
            args.extend(["--profile", self.profile])
        if self.region:
            args.extend(["--region", self.region])
        return args

    def run_command(self, *args: str, ctx: Optional[RunContext] = None) -> str:
        ctx = ctx or RunContext.background()
        output = self.executor.execute_with_context(ctx, "aws", *args, *self._global_args())
        return output.strip()
