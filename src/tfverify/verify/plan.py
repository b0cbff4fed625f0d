"""Terraform plan used as a tie-break when all counts match."""

from dataclasses import dataclass

from tfverify.state.reader import environment_dir
from tfverify.utils.context import RunContext
from tfverify.utils.errors import CommandError, ConfigurationError, ContextError, ErrorContext
from tfverify.utils.executor import CommandExecutor, as_context_aware
from tfverify.utils.logging import as_run_logger

PLAN_ARGS = ("plan", "-lock=false", "-input=false", "-detailed-exitcode")

# Exit codes of `terraform plan -detailed-exitcode`
PLAN_NO_CHANGES = 0
PLAN_CHANGES_PENDING = 2


@dataclass
class PlanResult:
    """Outcome of a terraform plan run."""
    exit_code: int
    output: str = ""

    @property
    def has_changes(self) -> bool:
        return self.exit_code == PLAN_CHANGES_PENDING


class TerraformPlanRunner:
    """Runs ``terraform plan -detailed-exitcode`` in an environment directory."""

    def __init__(self, executor: CommandExecutor, terraform_dir: str, logger=None):
        self.executor = as_context_aware(executor)
        self.terraform_dir = terraform_dir
        self.logger = as_run_logger(logger, __name__)

    def run(self, ctx: RunContext, env: str) -> PlanResult:
        """Run the plan under ``ctx``.

        Args:
            ctx: Run context; the plan process is killed when it ends
            env: Environment name

        Returns:
            PlanResult with exit code 0 (no changes) or 2 (changes pending)

        Raises:
            ContextError: If the context ended, even when the command also failed
            CommandError: If terraform fails with any other exit code
            ConfigurationError: If the environment directory is missing
        """
        log = self.logger.with_fields(environment=env, command="terraform plan")
        env_dir = environment_dir(self.terraform_dir, env)
        if not env_dir.is_dir():
            log.error(f"Environment directory not found: {env_dir}")
            raise ConfigurationError(
                f"Environment directory not found: {env_dir}",
                context=ErrorContext(environment=env)
            )

        log.debug(f"Running terraform {' '.join(PLAN_ARGS)} in {env_dir}")
        try:
            output = self.executor.execute_with_context(ctx, "terraform", *PLAN_ARGS, cwd=str(env_dir))
            exit_code = PLAN_NO_CHANGES
        except ContextError as e:
            e.annotate(command="terraform plan", environment=env)
            raise
        except CommandError as e:
            context_error = ctx.err()
            if context_error is not None:
                log.error(f"terraform plan interrupted: {context_error}")
                raise type(context_error)(
                    f"terraform plan interrupted: {context_error}",
                    partial_output=e.stdout or "",
                    context=ErrorContext(command="terraform plan", environment=env),
                    cause=e
                ) from e
            if e.exit_code != PLAN_CHANGES_PENDING:
                log.error(f"terraform plan failed: {e}")
                raise
            output = e.stdout
            exit_code = PLAN_CHANGES_PENDING

        log.debug(f"terraform plan finished: exit code={exit_code}, output size={len(output)}")
        log.trace(f"terraform plan output: {output}")
        return PlanResult(exit_code=exit_code, output=output)
