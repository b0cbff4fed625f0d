"""Comparison of live and declared resource counts."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Sequence

from tfverify.state.models import (
    LABEL_ALB,
    LABEL_ECS_SERVICE,
    LABEL_TARGET_GROUP,
    SERVICE_GROUPS,
    ResourceCounts,
)
from tfverify.utils.logging import as_run_logger


@dataclass(frozen=True)
class ComparisonRow:
    """Live and declared counts of one resource kind."""
    resource_name: str
    aws_count: int
    terraform_count: int
    is_match: bool

    @classmethod
    def of(cls, resource_name: str, aws_count: int, terraform_count: int) -> "ComparisonRow":
        return cls(resource_name, aws_count, terraform_count, aws_count == terraform_count)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compare_resources(
    live: ResourceCounts,
    declared: ResourceCounts,
    logger=None
) -> List[ComparisonRow]:
    """Compare live and declared counts row by row.

    Rows always come in the same order: VPC, RDS and ECS Cluster, then the
    ECS service, ALB and target group of every service group. A group missing
    from either side compares as zero.

    Args:
        live: Counts fetched from AWS
        declared: Counts extracted from Terraform state
        logger: Optional injected logger

    Returns:
        List of ComparisonRow, one per resource kind
    """
    log = as_run_logger(logger, __name__)
    log.debug("Comparing live and declared resources")

    rows = [
        ComparisonRow.of(label, live_count, declared_count)
        for (label, live_count), (_, declared_count) in zip(live.core_counts(), declared.core_counts())
    ]

    for group in SERVICE_GROUPS:
        live_svc = live.service(group)
        declared_svc = declared.service(group)
        rows.extend([
            ComparisonRow.of(f"{group}-{LABEL_ECS_SERVICE}", live_svc.ecs_service, declared_svc.ecs_service),
            ComparisonRow.of(f"{group}-{LABEL_ALB}", live_svc.alb, declared_svc.alb),
            ComparisonRow.of(f"{group}-{LABEL_TARGET_GROUP}", live_svc.target_group, declared_svc.target_group),
        ])

    for row in rows:
        if row.is_match:
            log.debug(f"{row.resource_name} counts match: {row.aws_count}")
        else:
            log.warning(
                f"{row.resource_name} count mismatch: AWS={row.aws_count}, "
                f"Terraform={row.terraform_count}"
            )

    log.info(f"Comparison finished: {count_mismatches(rows)} of {len(rows)} rows mismatched")
    return rows


def count_mismatches(rows: Sequence[ComparisonRow]) -> int:
    return sum(1 for row in rows if not row.is_match)
