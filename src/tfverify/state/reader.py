"""Acquisition of the declared resource counts from Terraform."""

import json
from pathlib import Path
from typing import Any, Callable, Optional

from tfverify.state.extractor import StateTreeExtractor
from tfverify.state.models import ResourceCounts
from tfverify.utils.context import RunContext
from tfverify.utils.errors import (
    CommandError,
    ConfigurationError,
    ContextError,
    ErrorContext,
)
from tfverify.utils.executor import CommandExecutor, as_context_aware
from tfverify.utils.logging import as_run_logger


def environment_dir(terraform_dir: str, env: str) -> Path:
    """Directory holding the Terraform configuration of an environment."""
    return Path(terraform_dir) / env


class TerraformStateReader:
    """Reads declared state via `terraform show -json` or a saved JSON file."""

    def __init__(
        self,
        executor: CommandExecutor,
        extractor_factory: Callable[..., StateTreeExtractor] = StateTreeExtractor,
        logger=None
    ):
        """Initialize state reader.

        Args:
            executor: Executor used to run terraform
            extractor_factory: Called with ``service_suffix`` and ``logger``
                to build the extractor for each read
            logger: Optional injected logger
        """
        self.executor = as_context_aware(executor)
        self.extractor_factory = extractor_factory
        self.logger = as_run_logger(logger, __name__)

    def fetch(self, ctx: RunContext, env: str, options) -> ResourceCounts:
        """Read and count the declared resources of an environment.

        A terraform failure or an unparseable document degrades to empty
        counts.

        Args:
            ctx: Run context
            env: Environment name
            options: VerificationOptions for the run

        Returns:
            Declared ResourceCounts

        Raises:
            ConfigurationError: If the environment directory or state file is missing
            ContextError: If the context ends while terraform runs
        """
        log = self.logger.with_fields(environment=env)
        log.debug(f"Reading declared state for {env} (suffix={options.service_suffix!r})")

        if options.state_file:
            raw = self._read_state_file(options.state_file, log)
        else:
            raw = self._run_terraform_show(ctx, env, options.terraform_dir, log)
            if raw is None:
                log.info("Returning empty declared resource counts")
                return ResourceCounts()

        document = self._parse(raw, log)
        if document is None:
            return ResourceCounts()

        extractor = self.extractor_factory(service_suffix=options.service_suffix, logger=log)
        counts = extractor.extract(document)

        log.info("Finished reading declared state")
        log.trace(f"Declared resource counts: {counts.model_dump()}")
        return counts

    def _read_state_file(self, state_file: str, log) -> str:
        path = Path(state_file)
        if not path.is_file():
            raise ConfigurationError(
                f"State file not found: {path}",
                context=ErrorContext(additional_info={'state_file': str(path)}),
                suggestions=['Export state with: terraform show -json > state.json']
            )
        log.debug(f"Reading declared state from {path}")
        with open(path, "r") as f:
            return f.read()

    def _run_terraform_show(
        self,
        ctx: RunContext,
        env: str,
        terraform_dir: str,
        log
    ) -> Optional[str]:
        env_dir = environment_dir(terraform_dir, env)
        if not env_dir.is_dir():
            log.error(f"Environment directory not found: {env_dir}")
            raise ConfigurationError(
                f"Environment directory not found: {env_dir}",
                context=ErrorContext(environment=env),
                suggestions=[
                    f"Check that {env} is a valid environment name",
                    'Run from the repository root or pass --terraform-dir',
                ]
            )

        log.with_fields(command='terraform show').debug(f"Running terraform show -json in {env_dir}")
        try:
            return self.executor.execute_with_context(
                ctx, "terraform", "show", "-json", cwd=str(env_dir)
            )
        except ContextError as e:
            e.annotate(command="terraform show", environment=env)
            raise
        except CommandError as e:
            context_error = ctx.err()
            if context_error is not None:
                raise type(context_error)(
                    f"terraform show interrupted: {context_error}",
                    partial_output=e.stdout or "",
                    context=ErrorContext(command="terraform show", environment=env),
                    cause=e
                ) from e
            log.warning(f"terraform show -json failed: {e}")
            return None

    def _parse(self, raw: str, log) -> Optional[Any]:
        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            log.error(f"Failed to parse terraform state JSON: {e}")
            return None
        if not isinstance(document, dict):
            log.error("Terraform state JSON is not an object")
            return None
        return document
