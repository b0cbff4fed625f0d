"""Tests for live resource fetching."""

import pytest

from conftest import FakeAWSRunner, not_found
from tfverify.config import VerificationOptions
from tfverify.live.fetcher import LiveResourceFetcher
from tfverify.utils.context import RunContext
from tfverify.utils.errors import (
    CommandError,
    CountParseError,
    DeadlineExceededError,
    ResourceFetchError,
)

IGNORE = VerificationOptions(environment="development", ignore_resource_errors=True)
STRICT = VerificationOptions(environment="development")
BACKGROUND = RunContext.background()


def operations(runner):
    return [call[:2] for call in runner.calls]


def test_fetches_all_resources_when_cluster_exists():
    runner = FakeAWSRunner({
        ("ec2", "describe-vpcs"): "1",
        ("rds", "describe-db-instances"): "1",
        ("ecs", "list-clusters"): "1",
        ("ecs", "list-services", "api"): "2",
        ("elbv2", "describe-load-balancers", "api"): "1",
        ("elbv2", "describe-target-groups", "api"): "1",
    })
    counts = LiveResourceFetcher(runner).fetch(BACKGROUND, "development", STRICT)

    assert (counts.vpc, counts.rds, counts.ecs_cluster) == (1, 1, 1)
    assert set(counts.services) == {"api", "graphql", "grpc"}
    api = counts.services["api"]
    assert (api.ecs_service, api.alb, api.target_group) == (2, 1, 1)
    assert counts.services["grpc"].is_empty()


def test_query_arguments():
    runner = FakeAWSRunner({("ecs", "list-clusters"): "1"})
    options = VerificationOptions(environment="staging", service_suffix="-new")
    LiveResourceFetcher(runner).fetch(BACKGROUND, "staging", options)

    assert runner.calls[0] == (
        "ec2", "describe-vpcs",
        "--filters", "Name=tag:Environment,Values=staging",
        "--query", "length(Vpcs)",
        "--output", "text",
    )
    assert "length(DBInstances[?DBInstanceIdentifier=='staging-postgres'])" in runner.calls[1]
    assert "length(clusterArns[?contains(@,'staging-shared-cluster')])" in runner.calls[2]
    services_call = runner.calls[3]
    assert services_call[:4] == ("ecs", "list-services", "--cluster", "staging-shared-cluster")
    assert "length(serviceArns[?contains(@,'staging-api-new')])" in services_call
    assert "length(LoadBalancers[?LoadBalancerName=='staging-api-new-alb'])" in runner.calls[4]
    assert "length(TargetGroups[?TargetGroupName=='staging-api-new-tg'])" in runner.calls[5]


def test_zero_cluster_skips_service_phase():
    runner = FakeAWSRunner({("ec2", "describe-vpcs"): "1"})
    counts = LiveResourceFetcher(runner).fetch(BACKGROUND, "development", STRICT)

    assert counts.services == {}
    assert ("ecs", "list-services") not in operations(runner)


def test_zero_vpc_does_not_skip_dependents():
    runner = FakeAWSRunner({("rds", "describe-db-instances"): "1"})
    counts = LiveResourceFetcher(runner).fetch(BACKGROUND, "development", STRICT)

    assert counts.vpc == 0
    assert counts.rds == 1
    assert ("ecs", "list-clusters") in operations(runner)


def test_ignored_vpc_not_found_skips_dependents():
    runner = FakeAWSRunner({("ec2", "describe-vpcs"): not_found("VpcNotFound")})
    counts = LiveResourceFetcher(runner).fetch(BACKGROUND, "development", IGNORE)

    assert (counts.vpc, counts.rds, counts.ecs_cluster) == (0, 0, 0)
    assert operations(runner) == [("ec2", "describe-vpcs")]


def test_ignored_cluster_not_found_skips_services():
    runner = FakeAWSRunner({
        ("ec2", "describe-vpcs"): "1",
        ("rds", "describe-db-instances"): "1",
        ("ecs", "list-clusters"): not_found("ClusterNotFoundException"),
    })
    counts = LiveResourceFetcher(runner).fetch(BACKGROUND, "development", IGNORE)

    assert counts.ecs_cluster == 0
    assert counts.services == {}
    assert ("ecs", "list-services") not in operations(runner)


def test_not_found_without_ignore_flag_aborts():
    runner = FakeAWSRunner({("rds", "describe-db-instances"): not_found("DBInstanceNotFound")})
    with pytest.raises(ResourceFetchError) as exc_info:
        LiveResourceFetcher(runner).fetch(BACKGROUND, "development", STRICT)

    assert exc_info.value.resource == "RDS"
    assert exc_info.value.not_found
    assert "RDS" in str(exc_info.value)


def test_other_errors_abort_even_when_ignoring():
    runner = FakeAWSRunner({
        ("ec2", "describe-vpcs"): CommandError("aws exited with status 255", exit_code=255,
                                               stderr="AccessDenied"),
    })
    with pytest.raises(ResourceFetchError) as exc_info:
        LiveResourceFetcher(runner).fetch(BACKGROUND, "development", IGNORE)

    assert exc_info.value.resource == "VPC"
    assert not exc_info.value.not_found
    assert "failed to get VPC" in str(exc_info.value)


def test_unparseable_count_aborts():
    runner = FakeAWSRunner({("ec2", "describe-vpcs"): "None"})
    with pytest.raises(ResourceFetchError) as exc_info:
        LiveResourceFetcher(runner).fetch(BACKGROUND, "development", IGNORE)

    assert isinstance(exc_info.value.cause, CountParseError)


def test_ignored_service_not_found_records_zero_group():
    runner = FakeAWSRunner({
        ("ecs", "list-clusters"): "1",
        ("ecs", "list-services", "graphql"): not_found("ServiceNotFoundException"),
        ("ecs", "list-services", "grpc"): "1",
    })
    counts = LiveResourceFetcher(runner).fetch(BACKGROUND, "development", IGNORE)

    assert counts.services["graphql"].is_empty()
    assert counts.services["grpc"].ecs_service == 1


def test_service_not_found_without_ignore_flag_aborts():
    runner = FakeAWSRunner({
        ("ecs", "list-clusters"): "1",
        ("ecs", "list-services", "api"): not_found("ServiceNotFoundException"),
    })
    with pytest.raises(ResourceFetchError) as exc_info:
        LiveResourceFetcher(runner).fetch(BACKGROUND, "development", STRICT)

    assert exc_info.value.resource == "api-ECS Service"


def test_service_command_failure_aborts_even_when_ignoring():
    runner = FakeAWSRunner({
        ("ecs", "list-clusters"): "1",
        ("elbv2", "describe-target-groups", "api"): CommandError("throttled", exit_code=255),
    })
    with pytest.raises(ResourceFetchError) as exc_info:
        LiveResourceFetcher(runner).fetch(BACKGROUND, "development", IGNORE)

    assert exc_info.value.resource == "api-Target Group"


def test_context_errors_propagate_unwrapped():
    runner = FakeAWSRunner({("rds", "describe-db-instances"): DeadlineExceededError()})
    with pytest.raises(DeadlineExceededError):
        LiveResourceFetcher(runner).fetch(RunContext.background(), "development", IGNORE)


def test_context_errors_name_the_interrupted_query():
    runner = FakeAWSRunner({
        ("ecs", "list-clusters"): "1",
        ("elbv2", "describe-load-balancers", "graphql"): DeadlineExceededError(),
    })
    with pytest.raises(DeadlineExceededError) as exc_info:
        LiveResourceFetcher(runner).fetch(BACKGROUND, "staging", VerificationOptions(environment="staging"))

    assert exc_info.value.context.resource == "graphql-ALB"
    assert exc_info.value.context.environment == "staging"
