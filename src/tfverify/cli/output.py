"""Console presentation of verification results."""

from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from tfverify.utils.errors import DeadlineExceededError, VerificationError
from tfverify.verify.comparison import ComparisonRow
from tfverify.verify.orchestrator import ExitCode, VerificationResult

console = Console()
err_console = Console(stderr=True)


def build_results_table(results: List[ComparisonRow], env: str) -> Table:
    """Build the comparison table for an environment."""
    table = Table(title=f"Verification results: {env}")
    table.add_column("Resource", style="cyan")
    table.add_column("AWS", justify="right")
    table.add_column("Terraform", justify="right")
    table.add_column("Status")

    for row in results:
        status = "[green]match[/green]" if row.is_match else "[red]mismatch[/red]"
        table.add_row(row.resource_name, str(row.aws_count), str(row.terraform_count), status)

    return table


def display_results(result: VerificationResult, env: str, timeout: Optional[float] = None):
    """Print the table, verdict and any follow-up advice."""
    if result.results:
        console.print(build_results_table(result.results, env))

    if result.exit_code == ExitCode.RECONCILED:
        console.print(Panel(
            f"[green]✓[/green] AWS environment and Terraform state match for {env}",
            title="Verdict",
            border_style="green"
        ))
    elif result.exit_code == ExitCode.MISMATCH:
        if result.mismatch_count:
            message = f"{result.mismatch_count} resource kinds differ between AWS and Terraform"
        else:
            message = "Resource counts match but terraform plan reports pending changes"
        console.print(Panel(f"[yellow]⚠[/yellow] {message}", title="Verdict", border_style="yellow"))
        show_remediation(env)
    else:
        display_error(result.error)
        if isinstance(result.error, DeadlineExceededError):
            show_timeout_advice(timeout)


def display_error(error: Optional[Exception]):
    """Print an error panel to stderr."""
    if error is None:
        message = "Verification failed"
    elif isinstance(error, VerificationError):
        message = error.to_user_message()
    else:
        message = str(error)
    err_console.print(Panel(message, title="[red]Verification failed[/red]", border_style="red"))


def show_remediation(env: str):
    console.print("\n[bold]Remediation options:[/bold]")
    console.print(f"  1. Import missing resources with terraform import: [cyan]make terraform-import TF_ENV={env}[/cyan]")
    console.print("  2. Remove extra resources from state: [cyan]terraform state rm <resource address>[/cyan]")
    console.print(f"  3. Clean up by tag: [cyan]make tag-cleanup TF_ENV={env}[/cyan]")


def show_timeout_advice(timeout: Optional[float]):
    suggested = int(timeout * 2) if timeout else 120
    console.print("\n[bold]The verification timed out. Try:[/bold]")
    console.print(f"  1. Increase the timeout: [cyan]--timeout {suggested}[/cyan]")
    console.print("  2. Skip the terraform plan check: [cyan]--skip-plan[/cyan]")
    console.print("  3. Run [cyan]terraform plan[/cyan] manually in the environment directory")


def result_to_dict(result: VerificationResult, env: str) -> Dict[str, Any]:
    error: Any = None
    if isinstance(result.error, VerificationError):
        error = result.error.to_dict()
    elif result.error is not None:
        error = {'type': type(result.error).__name__, 'message': str(result.error)}

    return {
        'environment': env,
        'exit_code': int(result.exit_code),
        'mismatch_count': result.mismatch_count,
        'results': [row.to_dict() for row in result.results],
        'error': error,
    }


def output_json(result: VerificationResult, env: str):
    """Print the result as JSON to stdout."""
    console.print_json(data=result_to_dict(result, env))
