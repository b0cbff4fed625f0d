"""Extraction of deduplicated resource counts from `terraform show -json` output."""

from typing import Any, Dict, Optional, Set, Tuple

from tfverify.state.models import (
    KNOWN_SERVICE_SUFFIXES,
    SERVICE_GROUPS,
    TF_TYPE_ALB,
    TF_TYPE_ECS_CLUSTER,
    TF_TYPE_ECS_SERVICE,
    TF_TYPE_RDS,
    TF_TYPE_TARGET_GROUP,
    TF_TYPE_VPC,
    ResourceCounts,
)
from tfverify.utils.logging import as_run_logger

SERVICE_TYPES = (TF_TYPE_ECS_SERVICE, TF_TYPE_ALB, TF_TYPE_TARGET_GROUP)


class StateTreeExtractor:
    """Walks a Terraform state module tree and counts resources by type.

    A resource appearing at several places in the tree (same type and id)
    is counted once. Malformed parts of the document are skipped instead of
    raising, so a broken document yields zero counts.
    """

    def __init__(self, service_suffix: str = "", logger=None):
        """Initialize extractor.

        Args:
            service_suffix: Suffix that service-shaped resources must carry to
                be attributed to a group (empty selects unsuffixed resources)
            logger: Optional injected logger
        """
        self.service_suffix = service_suffix or ""
        self.logger = as_run_logger(logger, __name__)

    def extract(self, document: Any) -> ResourceCounts:
        """Count resources in a parsed state document.

        Args:
            document: Parsed JSON of ``terraform show -json``

        Returns:
            ResourceCounts for the declared side
        """
        counts = ResourceCounts()

        if not isinstance(document, dict):
            self.logger.warning("State document is not a JSON object, no resources counted")
            return counts

        values = document.get("values")
        if not isinstance(values, dict):
            self.logger.warning("State document has no 'values' section, no resources counted")
            return counts

        root_module = values.get("root_module")
        if not isinstance(root_module, dict):
            self.logger.warning("State document has no 'root_module', no resources counted")
            return counts

        seen: Set[Tuple[str, str]] = set()
        self._process_module(root_module, "root_module", counts, seen)

        self.logger.debug(
            f"Extracted declared counts: vpc={counts.vpc}, rds={counts.rds}, "
            f"ecs_cluster={counts.ecs_cluster}, unique resources={len(seen)}"
        )
        return counts

    def _process_module(
        self,
        module: Dict[str, Any],
        module_address: str,
        counts: ResourceCounts,
        seen: Set[Tuple[str, str]]
    ) -> None:
        self.logger.trace(f"Processing module {module_address}")

        resources = module.get("resources")
        if isinstance(resources, list):
            for resource in resources:
                if not isinstance(resource, dict):
                    self.logger.warning(f"Skipping malformed resource entry in {module_address}")
                    continue
                self._process_resource(resource, counts, seen)

        child_modules = module.get("child_modules")
        if not isinstance(child_modules, list):
            return

        for child in child_modules:
            if not isinstance(child, dict):
                self.logger.warning(f"Skipping malformed child module in {module_address}")
                continue
            child_address = child.get("address")
            if not isinstance(child_address, str) or not child_address:
                child_address = f"{module_address}.child"
            self._process_module(child, child_address, counts, seen)

    def _process_resource(
        self,
        resource: Dict[str, Any],
        counts: ResourceCounts,
        seen: Set[Tuple[str, str]]
    ) -> None:
        resource_type = resource.get("type")
        address = resource.get("address")
        if not isinstance(resource_type, str) or not isinstance(address, str):
            self.logger.debug("Skipping resource without type or address")
            return
        if not resource_type or not address:
            self.logger.debug("Skipping resource with empty type or address")
            return

        resource_id = self._resolve_id(resource, address)
        key = (resource_type, resource_id)
        if key in seen:
            self.logger.debug(f"Skipping duplicate resource {resource_type} ({resource_id})")
            return
        seen.add(key)

        if resource_type == TF_TYPE_VPC:
            counts.vpc += 1
        elif resource_type == TF_TYPE_RDS:
            counts.rds += 1
        elif resource_type == TF_TYPE_ECS_CLUSTER:
            counts.ecs_cluster += 1
        elif resource_type in SERVICE_TYPES:
            self._count_service_resource(resource_type, address, counts)

    @staticmethod
    def _resolve_id(resource: Dict[str, Any], address: str) -> str:
        """Use values.id when present, falling back to the address."""
        values = resource.get("values")
        if isinstance(values, dict):
            resource_id = values.get("id")
            if isinstance(resource_id, str) and resource_id:
                return resource_id
        return address

    def _count_service_resource(self, resource_type: str, address: str, counts: ResourceCounts) -> None:
        group = self.match_service_group(address)
        if group is None:
            self.logger.debug(f"No service group matched {address}, not counted")
            return

        service = counts.ensure_service(group)
        if resource_type == TF_TYPE_ECS_SERVICE:
            service.ecs_service += 1
        elif resource_type == TF_TYPE_ALB:
            service.alb += 1
        else:
            service.target_group += 1

        self.logger.trace(f"Attributed {resource_type} {address} to service group {group}")

    def match_service_group(self, address: str) -> Optional[str]:
        """Return the first service group an address belongs to, if any."""
        for group in SERVICE_GROUPS:
            if group in address and self._suffix_matches(address):
                return group
        return None

    def _suffix_matches(self, address: str) -> bool:
        if self.service_suffix:
            return self.service_suffix in address
        return not any(suffix in address for suffix in KNOWN_SERVICE_SUFFIXES)
