"""Example usage of the verification API without the CLI."""

from tfverify.config import VerificationOptions, create_config_manager
from tfverify.live import AWSCLIRunner, LiveResourceFetcher
from tfverify.state import StateTreeExtractor, TerraformStateReader
from tfverify.utils import ErrorHandler, RunContext, SubprocessCommandExecutor, setup_logging
from tfverify.verify import TerraformPlanRunner, VerificationOrchestrator, compare_resources


def example_verify_environment():
    """Example: Full verification of an environment."""
    print("=== Verify Environment ===")

    config = create_config_manager()
    options = VerificationOptions.from_config(config, environment="development", timeout=120)

    executor = SubprocessCommandExecutor()
    orchestrator = VerificationOrchestrator(
        live_fetcher=LiveResourceFetcher(AWSCLIRunner(executor)),
        state_reader=TerraformStateReader(executor),
        plan_runner=TerraformPlanRunner(executor, options.terraform_dir),
    )

    with RunContext.with_timeout(options.timeout) as ctx:
        result = orchestrator.verify(ctx, options)

    for row in result.results:
        status = "✓" if row.is_match else "✗"
        print(f"  {status} {row.resource_name}: AWS={row.aws_count} Terraform={row.terraform_count}")

    if result.error is not None:
        error = ErrorHandler().handle_exception(result.error)
        print(error.to_user_message())

    print(f"Exit code: {int(result.exit_code)}")


def example_compare_saved_states():
    """Example: Compare two saved `terraform show -json` documents offline."""
    print("\n=== Compare Saved States ===")

    blue = {"values": {"root_module": {"resources": [
        {"type": "aws_vpc", "address": "aws_vpc.main", "values": {"id": "vpc-1"}},
        {"type": "aws_ecs_service", "address": "module.api.aws_ecs_service.api"},
    ]}}}
    green = {"values": {"root_module": {"resources": [
        {"type": "aws_vpc", "address": "aws_vpc.main", "values": {"id": "vpc-1"}},
        {"type": "aws_ecs_service", "address": "module.api-new.aws_ecs_service.api"},
    ]}}}

    extractor = StateTreeExtractor(service_suffix="-new")
    rows = compare_resources(StateTreeExtractor().extract(blue), extractor.extract(green))
    for row in rows[:4]:
        print(f"  {row.resource_name}: {row.aws_count} / {row.terraform_count}")


if __name__ == "__main__":
    setup_logging("info")
    example_compare_saved_states()
    example_verify_environment()
