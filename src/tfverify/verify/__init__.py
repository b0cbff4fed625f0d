"""Comparison, plan tie-break and orchestration of verification runs."""

from tfverify.verify.comparison import ComparisonRow, compare_resources, count_mismatches
from tfverify.verify.orchestrator import (
    ExitCode,
    VerificationOrchestrator,
    VerificationResult,
    VerificationState,
    verify_state,
)
from tfverify.verify.plan import PlanResult, TerraformPlanRunner

__all__ = [
    "ComparisonRow",
    "ExitCode",
    "PlanResult",
    "TerraformPlanRunner",
    "VerificationOrchestrator",
    "VerificationResult",
    "VerificationState",
    "compare_resources",
    "count_mismatches",
    "verify_state",
]
