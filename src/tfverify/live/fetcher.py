"""Dependency-ordered fetching of live AWS resource counts."""

from dataclasses import dataclass, field
from typing import Callable, List, Set

from tfverify.live.runner import AWSCommandRunner
from tfverify.state.models import (
    LABEL_ALB,
    LABEL_ECS_CLUSTER,
    LABEL_ECS_SERVICE,
    LABEL_RDS,
    LABEL_TARGET_GROUP,
    LABEL_VPC,
    SERVICE_GROUPS,
    ResourceCounts,
    ServiceResourceCounts,
)
from tfverify.utils.context import RunContext
from tfverify.utils.errors import (
    CountParseError,
    ErrorContext,
    ResourceFetchError,
    is_context_error,
    is_resource_not_found,
)
from tfverify.utils.logging import as_run_logger


@dataclass
class FetchStep:
    """One core resource query and the resources it depends on."""
    name: str
    fetch: Callable[[], int]
    depends_on: List[str] = field(default_factory=list)


def cluster_name(env: str) -> str:
    return f"{env}-shared-cluster"


def service_name(env: str, group: str, suffix: str = "") -> str:
    """Base name shared by a group's ECS service, ALB and target group."""
    return f"{env}-{group}{suffix}"


def setup_hint(env: str) -> str:
    return f"To set up the environment run: make start-api-dev TF_ENV={env}"


class LiveResourceFetcher:
    """Counts the live resources of an environment through the AWS CLI.

    VPC is fetched first. RDS and the ECS cluster depend on it and are only
    skipped when the VPC query failed with an ignored not-found error.
    Service groups are queried only when the cluster exists.
    """

    def __init__(self, runner: AWSCommandRunner, logger=None):
        """Initialize live fetcher.

        Args:
            runner: AWS CLI runner
            logger: Optional injected logger
        """
        self.runner = runner
        self.logger = as_run_logger(logger, __name__)

    def fetch(self, ctx: RunContext, env: str, options) -> ResourceCounts:
        """Fetch live counts for an environment.

        Args:
            ctx: Run context bounding every AWS CLI call
            env: Environment name
            options: VerificationOptions for the run

        Returns:
            Live ResourceCounts

        Raises:
            ResourceFetchError: If a query fails and the failure is not ignored
            ContextError: If the context ends during a query
        """
        log = self.logger.with_fields(environment=env)
        log.debug(f"Fetching live AWS resources for {env}")

        counts = ResourceCounts()
        steps = [
            FetchStep(LABEL_VPC, lambda: self.get_vpc_count(ctx, env)),
            FetchStep(LABEL_RDS, lambda: self.get_rds_count(ctx, env), depends_on=[LABEL_VPC]),
            FetchStep(LABEL_ECS_CLUSTER, lambda: self.get_cluster_count(ctx, env),
                      depends_on=[LABEL_VPC]),
        ]

        skipped: Set[str] = set()
        for step in steps:
            step_log = log.with_fields(resource=step.name)
            missing = [dep for dep in step.depends_on if dep in skipped]
            if missing:
                step_log.info(f"Skipping {step.name}: {missing[0]} does not exist")
                skipped.add(step.name)
                continue

            try:
                count = step.fetch()
            except Exception as e:
                if is_context_error(e):
                    e.annotate(resource=step.name, environment=env)
                    raise
                if not (is_resource_not_found(e) and options.ignore_resource_errors):
                    step_log.error(f"Failed to query {step.name}: {e}")
                    raise ResourceFetchError(
                        step.name, e, not_found=is_resource_not_found(e),
                        context=ErrorContext(environment=env)
                    ) from e
                step_log.warning(f"{step.name} does not exist: {e}")
                step_log.info(setup_hint(env))
                count = 0
                skipped.add(step.name)

            self._set_core_count(counts, step.name, count)
            step_log.debug(f"{step.name} count: {count}")

        if LABEL_ECS_CLUSTER not in skipped and counts.ecs_cluster > 0:
            for group in SERVICE_GROUPS:
                counts.services[group] = self._fetch_group(ctx, env, group, options, log)
        else:
            log.info("No ECS cluster found, skipping service resources")

        log.info("Finished fetching live AWS resources")
        log.trace(f"Live resource counts: {counts.model_dump()}")
        return counts

    @staticmethod
    def _set_core_count(counts: ResourceCounts, name: str, count: int) -> None:
        if name == LABEL_VPC:
            counts.vpc = count
        elif name == LABEL_RDS:
            counts.rds = count
        elif name == LABEL_ECS_CLUSTER:
            counts.ecs_cluster = count

    def _fetch_group(
        self,
        ctx: RunContext,
        env: str,
        group: str,
        options,
        log
    ) -> ServiceResourceCounts:
        group_log = log.with_fields(service=group)
        group_log.debug(f"Fetching resources of service group {group}")
        try:
            service = self.get_service_resources(ctx, env, group, options.service_suffix)
        except ResourceFetchError as e:
            if is_resource_not_found(e.cause) and options.ignore_resource_errors:
                group_log.warning(f"Service group {group} resources not found: {e.cause}")
                return ServiceResourceCounts()
            group_log.error(f"Failed to fetch resources of service group {group}: {e}")
            e.context.environment = env
            raise

        group_log.debug(
            f"Service group {group}: ecs_service={service.ecs_service}, "
            f"alb={service.alb}, target_group={service.target_group}"
        )
        return service

    def get_vpc_count(self, ctx: RunContext, env: str) -> int:
        return self._query_count(
            ctx, LABEL_VPC,
            "ec2", "describe-vpcs",
            "--filters", f"Name=tag:Environment,Values={env}",
            "--query", "length(Vpcs)",
        )

    def get_rds_count(self, ctx: RunContext, env: str) -> int:
        return self._query_count(
            ctx, LABEL_RDS,
            "rds", "describe-db-instances",
            "--query", f"length(DBInstances[?DBInstanceIdentifier=='{env}-postgres'])",
        )

    def get_cluster_count(self, ctx: RunContext, env: str) -> int:
        return self._query_count(
            ctx, LABEL_ECS_CLUSTER,
            "ecs", "list-clusters",
            "--query", f"length(clusterArns[?contains(@,'{cluster_name(env)}')])",
        )

    def get_service_resources(
        self,
        ctx: RunContext,
        env: str,
        group: str,
        suffix: str = ""
    ) -> ServiceResourceCounts:
        """Query the ECS service, ALB and target group counts of a group.

        Raises:
            ResourceFetchError: Naming the first query that failed
            ContextError: If the context ends during a query
        """
        name = service_name(env, group, suffix)
        queries = [
            (LABEL_ECS_SERVICE, (
                "ecs", "list-services",
                "--cluster", cluster_name(env),
                "--query", f"length(serviceArns[?contains(@,'{name}')])",
            )),
            (LABEL_ALB, (
                "elbv2", "describe-load-balancers",
                "--query", f"length(LoadBalancers[?LoadBalancerName=='{name}-alb'])",
            )),
            (LABEL_TARGET_GROUP, (
                "elbv2", "describe-target-groups",
                "--query", f"length(TargetGroups[?TargetGroupName=='{name}-tg'])",
            )),
        ]

        values = []
        for label, args in queries:
            resource = f"{group}-{label}"
            try:
                values.append(self._query_count(ctx, resource, *args))
            except Exception as e:
                if is_context_error(e):
                    e.annotate(resource=resource, environment=env)
                    raise
                raise ResourceFetchError(resource, e, not_found=is_resource_not_found(e)) from e

        return ServiceResourceCounts(ecs_service=values[0], alb=values[1], target_group=values[2])

    def _query_count(self, ctx: RunContext, resource: str, *args: str) -> int:
        """Run a ``--output text`` query and parse the result as an integer.

        Raises:
            CountParseError: If the output is not an integer
        """
        self.logger.debug(f"Query for {resource}: aws {' '.join(args)} --output text")
        output = self.runner.run_command(*args, "--output", "text", ctx=ctx).strip()
        self.logger.trace(f"AWS CLI output ({resource}): {output}")

        try:
            return int(output)
        except ValueError as e:
            raise CountParseError(
                f"failed to parse {resource} count from {output!r}",
                context=ErrorContext(resource=resource),
                cause=e
            ) from e
