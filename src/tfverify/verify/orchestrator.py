"""Orchestrator that sequences fetch, compare and the plan tie-break."""

import uuid
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import List, Optional

from tfverify.live.fetcher import LiveResourceFetcher, setup_hint
from tfverify.state.reader import TerraformStateReader
from tfverify.utils.context import RunContext
from tfverify.utils.errors import (
    ErrorCategory,
    VerificationError,
    is_context_error,
)
from tfverify.utils.logging import as_run_logger
from tfverify.verify.comparison import ComparisonRow, compare_resources, count_mismatches
from tfverify.verify.plan import TerraformPlanRunner


class VerificationState(Enum):
    """States of a verification run."""
    IDLE = "idle"
    FETCHING_LIVE = "fetching_live"
    FETCHING_DECLARED = "fetching_declared"
    COMPARING = "comparing"
    ALL_MATCH = "all_match"
    RUNNING_TIEBREAK = "running_tiebreak"
    MISMATCH = "mismatch"
    FAILED = "failed"


class ExitCode(IntEnum):
    """Process exit codes reported to automation."""
    RECONCILED = 0
    FAILURE = 1
    MISMATCH = 2


@dataclass
class VerificationResult:
    """Outcome of a verification run."""
    exit_code: int
    results: List[ComparisonRow] = field(default_factory=list)
    error: Optional[Exception] = None
    state: VerificationState = VerificationState.IDLE
    plan_output: str = ""

    def is_success(self) -> bool:
        return self.exit_code == ExitCode.RECONCILED

    def is_failed(self) -> bool:
        return self.exit_code == ExitCode.FAILURE

    @property
    def mismatch_count(self) -> int:
        return count_mismatches(self.results)


def _wrap_error(prefix: str, error: Exception) -> Exception:
    """Prefix a stage error, keeping context errors untouched."""
    if is_context_error(error):
        return error
    if isinstance(error, VerificationError):
        wrapped = VerificationError(
            f"{prefix}: {error}",
            category=error.category,
            severity=error.severity,
            context=error.context,
            cause=error,
            suggestions=error.suggestions
        )
    else:
        wrapped = VerificationError(f"{prefix}: {error}", category=ErrorCategory.UNKNOWN, cause=error)
    wrapped.__cause__ = error
    return wrapped


def _stage_error(ctx: RunContext, prefix: str, error: Exception, env: str, command: str) -> Exception:
    """Choose the error reported for a failed stage.

    A context error raised by the stage is kept as is, since it already names
    the command it interrupted. A non-context error that raced with the end of
    the context is replaced by the context error. Context errors are annotated
    with the stage's command and environment where those are not yet set.
    """
    if is_context_error(error):
        return error.annotate(command=command, environment=env)
    context_error = ctx.err()
    if context_error is not None:
        context_error.cause = error
        context_error.__cause__ = error
        return context_error.annotate(command=command, environment=env)
    return _wrap_error(prefix, error)


class VerificationOrchestrator:
    """Runs one verification: live fetch, declared fetch, compare, tie-break.

    The context is checked before each stage and after each fetch; an expired
    or cancelled context is reported in preference to any stage error.
    """

    def __init__(
        self,
        live_fetcher: LiveResourceFetcher,
        state_reader: TerraformStateReader,
        plan_runner: TerraformPlanRunner,
        logger=None
    ):
        """Initialize verification orchestrator.

        Args:
            live_fetcher: Source of live AWS counts
            state_reader: Source of declared Terraform counts
            plan_runner: Runner for the terraform plan tie-break
            logger: Optional injected logger
        """
        self.live_fetcher = live_fetcher
        self.state_reader = state_reader
        self.plan_runner = plan_runner
        self.logger = as_run_logger(logger, __name__)
        self.state = VerificationState.IDLE

    def _transition(self, state: VerificationState, log) -> None:
        log.debug(f"State transition: {self.state.value} -> {state.value}")
        self.state = state

    def _fail(self, error: Exception, log, results: Optional[List[ComparisonRow]] = None) -> VerificationResult:
        self._transition(VerificationState.FAILED, log)
        log.error(f"Verification failed: {error}")
        return VerificationResult(
            exit_code=ExitCode.FAILURE,
            results=results or [],
            error=error,
            state=self.state
        )

    def verify(self, ctx: RunContext, options) -> VerificationResult:
        """Verify that live AWS resources match the Terraform state.

        Args:
            ctx: Context bounding the whole run
            options: VerificationOptions

        Returns:
            VerificationResult with exit code 0 (reconciled), 1 (failure)
            or 2 (mismatch or pending plan changes)
        """
        env = options.environment
        log = self.logger.with_fields(environment=env, run_id=uuid.uuid4().hex[:8])
        self.state = VerificationState.IDLE
        log.info(f"Starting verification of environment {env}")
        log.debug(f"Verification options: {options.model_dump()}")

        context_error = ctx.err()
        if context_error is not None:
            log.error(f"Context already done before verification started: {context_error}")
            return self._fail(context_error.annotate(environment=env), log)

        # Live resources
        self._transition(VerificationState.FETCHING_LIVE, log)
        try:
            live = self.live_fetcher.fetch(ctx, env, options)
        except Exception as e:
            return self._fail(_stage_error(ctx, "AWS resource fetch failed", e, env, "aws"), log)

        context_error = ctx.err()
        if context_error is not None:
            log.error(f"Context done after fetching live resources: {context_error}")
            return self._fail(context_error.annotate(environment=env), log)

        # Declared resources
        self._transition(VerificationState.FETCHING_DECLARED, log)
        try:
            declared = self.state_reader.fetch(ctx, env, options)
        except Exception as e:
            return self._fail(_stage_error(ctx, "Terraform state fetch failed", e, env, "terraform show"), log)

        context_error = ctx.err()
        if context_error is not None:
            log.error(f"Context done after reading Terraform state: {context_error}")
            return self._fail(context_error.annotate(environment=env), log)

        self._transition(VerificationState.COMPARING, log)
        results = compare_resources(live, declared, logger=log)
        mismatches = count_mismatches(results)

        if mismatches > 0:
            self._transition(VerificationState.MISMATCH, log)
            log.warning(f"Found {mismatches} mismatched resource kinds")
            return VerificationResult(
                exit_code=ExitCode.MISMATCH,
                results=results,
                state=self.state
            )

        self._transition(VerificationState.ALL_MATCH, log)

        if live.is_empty() and declared.is_empty():
            log.info("Environment and Terraform state are both empty")
            log.info(setup_hint(env))
            return VerificationResult(exit_code=ExitCode.RECONCILED, results=results, state=self.state)

        if options.skip_plan:
            log.info("All resource counts match, terraform plan skipped")
            return VerificationResult(exit_code=ExitCode.RECONCILED, results=results, state=self.state)

        return self._run_tiebreak(ctx, env, results, log)

    def _run_tiebreak(self, ctx: RunContext, env: str, results: List[ComparisonRow], log) -> VerificationResult:
        context_error = ctx.err()
        if context_error is not None:
            log.error(f"Context done before terraform plan: {context_error}")
            return self._fail(context_error.annotate(environment=env), log, results)

        self._transition(VerificationState.RUNNING_TIEBREAK, log)
        log.debug("All resource counts match, confirming with terraform plan")
        try:
            plan = self.plan_runner.run(ctx, env)
        except Exception as e:
            return self._fail(_stage_error(ctx, "Terraform plan failed", e, env, "terraform plan"), log, results)

        context_error = ctx.err()
        if context_error is not None:
            log.error(f"Context done after terraform plan: {context_error}")
            return self._fail(context_error.annotate(environment=env), log, results)

        if plan.has_changes:
            self._transition(VerificationState.MISMATCH, log)
            log.warning("terraform plan reports pending changes (exit code 2)")
            return VerificationResult(
                exit_code=ExitCode.MISMATCH,
                results=results,
                state=self.state,
                plan_output=plan.output
            )

        self._transition(VerificationState.ALL_MATCH, log)
        log.info("terraform plan reports no changes (exit code 0)")
        return VerificationResult(
            exit_code=ExitCode.RECONCILED,
            results=results,
            state=self.state,
            plan_output=plan.output
        )


def verify_state(
    options,
    live_fetcher: LiveResourceFetcher,
    state_reader: TerraformStateReader,
    plan_runner: TerraformPlanRunner,
    logger=None
) -> VerificationResult:
    """Run a verification bounded by ``options.timeout`` seconds."""
    with RunContext.with_timeout(options.timeout) as ctx:
        orchestrator = VerificationOrchestrator(live_fetcher, state_reader, plan_runner, logger=logger)
        return orchestrator.verify(ctx, options)
