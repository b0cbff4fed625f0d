"""Main CLI entry point."""

import sys
from typing import Optional

import click
from pydantic import ValidationError

from tfverify import __version__
from tfverify.cli.output import console, display_error, display_results, output_json
from tfverify.config import (
    VerificationOptions,
    check_required_variables,
    create_config_manager,
)
from tfverify.live import AWSCLIRunner, LiveResourceFetcher
from tfverify.state import TerraformStateReader
from tfverify.utils.aws_client import AWSClientManager
from tfverify.utils.errors import ConfigurationError, VerificationError
from tfverify.utils.executor import SubprocessCommandExecutor
from tfverify.utils.logging import LEVEL_NAMES, RunLoggerAdapter, get_logger, setup_logging
from tfverify.verify import ExitCode, TerraformPlanRunner, verify_state

logger = get_logger(__name__)


@click.command()
@click.option('--env', help='Environment to verify (default: TF_ENV or development)')
@click.option('--log-level', type=click.Choice(sorted(LEVEL_NAMES), case_sensitive=False),
              help='Log level (default: LOG_LEVEL or info)')
@click.option('--debug', is_flag=True, help='Shortcut for --log-level debug')
@click.option('--skip-plan', is_flag=True, help='Skip the terraform plan check')
@click.option('--ignore-resource-errors', is_flag=True,
              help='Treat AWS resources that do not exist as zero')
@click.option('--timeout', type=float, help='Run timeout in seconds (default: VERIFY_TIMEOUT or 60)')
@click.option('--suffix', help='Service name suffix of a parallel deployment (e.g. -new)')
@click.option('--terraform-dir', help='Directory containing one Terraform directory per environment')
@click.option('--state-file', type=click.Path(dir_okay=False),
              help='Read declared state from a saved `terraform show -json` file')
@click.option('--log-file', type=click.Path(dir_okay=False), help='Also write JSON logs to this file')
@click.option('--no-check', is_flag=True, help='Skip the required AWS variables check')
@click.option('--verify-credentials', is_flag=True, help='Confirm AWS credentials with STS first')
@click.option('--profile', help='AWS profile to use')
@click.option('--region', help='AWS region')
@click.option('--json-output', is_flag=True, help='Print results as JSON')
@click.version_option(__version__, prog_name='tfverify')
def cli(
    env: Optional[str],
    log_level: Optional[str],
    debug: bool,
    skip_plan: bool,
    ignore_resource_errors: bool,
    timeout: Optional[float],
    suffix: Optional[str],
    terraform_dir: Optional[str],
    state_file: Optional[str],
    log_file: Optional[str],
    no_check: bool,
    verify_credentials: bool,
    profile: Optional[str],
    region: Optional[str],
    json_output: bool
):
    """Verify that live AWS resources match the Terraform state.

    Exits 0 when reconciled, 1 on failure, and 2 on a mismatch or when
    terraform plan reports pending changes.
    """
    config = create_config_manager()

    if debug:
        log_level = 'debug'
    log_level = (log_level or config.get_with_default('LOG_LEVEL', 'info')).lower()
    setup_logging(log_level, log_file=log_file, use_colors=not json_output)

    if not no_check:
        try:
            check_required_variables(config)
        except ConfigurationError as e:
            display_error(e)
            sys.exit(ExitCode.FAILURE)

    try:
        options = VerificationOptions.from_config(
            config,
            environment=env,
            skip_plan=skip_plan,
            ignore_resource_errors=ignore_resource_errors,
            timeout=timeout,
            service_suffix=suffix,
            terraform_dir=terraform_dir,
            state_file=state_file,
            log_level=log_level,
        )
    except ValidationError as e:
        display_error(ConfigurationError(f"Invalid options: {e}"))
        sys.exit(ExitCode.FAILURE)

    profile = profile or config.get_with_default('AWS_PROFILE', '') or None
    region = region or config.get_with_default('AWS_REGION', '') or None

    if verify_credentials:
        try:
            AWSClientManager(profile=profile, region=region).validate_credentials()
        except VerificationError as e:
            display_error(e)
            sys.exit(ExitCode.FAILURE)

    if not json_output:
        console.print(f"[bold]Verifying environment:[/bold] [cyan]{options.environment}[/cyan]")

    run_logger = RunLoggerAdapter(get_logger('tfverify'), environment=options.environment)
    executor = SubprocessCommandExecutor(logger=logger)
    result = verify_state(
        options,
        live_fetcher=LiveResourceFetcher(
            AWSCLIRunner(executor, profile=profile, region=region, logger=logger),
            logger=run_logger
        ),
        state_reader=TerraformStateReader(executor, logger=run_logger),
        plan_runner=TerraformPlanRunner(executor, options.terraform_dir, logger=run_logger),
        logger=run_logger,
    )

    if json_output:
        output_json(result, options.environment)
    else:
        display_results(result, options.environment, timeout=options.timeout)

    sys.exit(int(result.exit_code))


if __name__ == '__main__':
    cli()
