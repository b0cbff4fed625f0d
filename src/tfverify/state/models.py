"""Resource count models shared by the declared and live sides."""

from typing import Dict, List, Tuple
from pydantic import BaseModel, Field

# Service groups in comparison order
SERVICE_GROUPS: Tuple[str, ...] = ("api", "graphql", "grpc")

# Suffixes used by parallel deployments of a service group
KNOWN_SERVICE_SUFFIXES: Tuple[str, ...] = ("-new",)

# Terraform resource types counted as core resources
TF_TYPE_VPC = "aws_vpc"
TF_TYPE_RDS = "aws_db_instance"
TF_TYPE_ECS_CLUSTER = "aws_ecs_cluster"

# Terraform resource types attributed to a service group
TF_TYPE_ECS_SERVICE = "aws_ecs_service"
TF_TYPE_ALB = "aws_lb"
TF_TYPE_TARGET_GROUP = "aws_lb_target_group"

# Row labels
LABEL_VPC = "VPC"
LABEL_RDS = "RDS"
LABEL_ECS_CLUSTER = "ECS Cluster"
LABEL_ECS_SERVICE = "ECS Service"
LABEL_ALB = "ALB"
LABEL_TARGET_GROUP = "Target Group"


class ServiceResourceCounts(BaseModel):
    """Counts of the three resources that make up one service group."""

    ecs_service: int = Field(0, description="ECS service count")
    alb: int = Field(0, description="Application load balancer count")
    target_group: int = Field(0, description="Target group count")

    def is_empty(self) -> bool:
        """Check if every count is zero."""
        return self.ecs_service == 0 and self.alb == 0 and self.target_group == 0


class ResourceCounts(BaseModel):
    """Per-type resource counts for one side of a comparison."""

    vpc: int = Field(0, description="VPC count")
    rds: int = Field(0, description="RDS instance count")
    ecs_cluster: int = Field(0, description="ECS cluster count")
    services: Dict[str, ServiceResourceCounts] = Field(
        default_factory=dict, description="Service group counts, keyed by group name"
    )

    def core_counts(self) -> List[Tuple[str, int]]:
        """Core counts as (label, count) pairs in comparison order."""
        return [
            (LABEL_VPC, self.vpc),
            (LABEL_RDS, self.rds),
            (LABEL_ECS_CLUSTER, self.ecs_cluster),
        ]

    def service(self, group: str) -> ServiceResourceCounts:
        """Counts for a service group, or the zero record if absent."""
        return self.services.get(group) or ServiceResourceCounts()

    def ensure_service(self, group: str) -> ServiceResourceCounts:
        """Get the mutable record for a group, creating it when missing."""
        if group not in self.services:
            self.services[group] = ServiceResourceCounts()
        return self.services[group]

    def is_empty(self) -> bool:
        """Check if every count, including service groups, is zero."""
        if any(count != 0 for _, count in self.core_counts()):
            return False
        return all(svc.is_empty() for svc in self.services.values())
