"""
Tests for Kubernetes sizing.
"""

from dataclasses import replace
from types import MappingProxyType

import pytest

from infra_sizing.domain.catalogue import EnvironmentKind, NodeRole, Technology
from infra_sizing.domain.errors import ConfigurationError
from infra_sizing.domain.ha_dr_models import (
    ControlPlaneHA,
    DRPattern,
    HADRConfig,
    NodeDistribution,
)
from infra_sizing.domain.workload_models import (
    AppCount,
    ClusterMode,
    OvercommitConfig,
    OvercommitRatio,
    WorkloadConfig,
)
from infra_sizing.services.resource_aggregator import (
    ResourceAggregator,
    ceil_nodes,
    compute_sizing,
    round_up_to_multiple,
)
from infra_sizing.services.tier_catalogue import DEFAULT_TIER_CATALOGUE


def _prod_workload(distribution="openshift", **apps):
    return WorkloadConfig(
        distribution=distribution,
        enabled_environments=frozenset({EnvironmentKind.PROD}),
        app_counts=MappingProxyType({EnvironmentKind.PROD: AppCount(**apps)}),
    )


def test_small_prod_scenario_needs_one_worker(small_prod_workload, four_core_workers):
    """3.0 cores of demand fits on a single 4-core worker."""
    result = compute_sizing(small_prod_workload, node_specs=four_core_workers)
    prod = result.environment(EnvironmentKind.PROD)

    assert prod.raw_cpu == pytest.approx(3.0)
    assert prod.raw_ram_gb == pytest.approx(6.0)
    assert prod.workers == 1
    assert result.total_nodes == 1


def test_managed_control_plane_has_no_nodes(small_prod_workload, four_core_workers):
    """Managed distributions size no control-plane nodes."""
    result = compute_sizing(small_prod_workload, node_specs=four_core_workers)
    assert result.is_managed_control_plane
    assert result.nodes_for(NodeRole.CONTROL_PLANE) == 0


def test_openshift_adds_infra_and_control_plane():
    """Self-managed OpenShift adds infra nodes and an HA control plane."""
    result = compute_sizing(_prod_workload(small=2, medium=2, large=1))
    prod = result.environment(EnvironmentKind.PROD)

    assert prod.workers == 1
    assert prod.nodes_for(NodeRole.INFRA) == 3
    assert prod.nodes_for(NodeRole.CONTROL_PLANE) == 3
    assert result.total_nodes == 7


def test_overcommit_one_keeps_raw_demand(full_workload):
    """With 1.0 overcommit effective demand equals raw demand exactly."""
    result = compute_sizing(full_workload, overcommit=OvercommitConfig())
    for env in result.environments:
        assert env.effective_cpu == env.raw_cpu
        assert env.effective_ram_gb == env.raw_ram_gb


def test_overcommit_divides_demand():
    """Overcommit ratios divide raw demand before node rounding."""
    overcommit = OvercommitConfig(prod=OvercommitRatio(cpu=2.0, memory=1.5))
    result = compute_sizing(_prod_workload(small=2, medium=2, large=1), overcommit=overcommit)
    prod = result.environment(EnvironmentKind.PROD)

    assert prod.effective_cpu == pytest.approx(prod.raw_cpu / 2.0)
    assert prod.effective_ram_gb == pytest.approx(prod.raw_ram_gb / 1.5)


@pytest.mark.parametrize("field_name, ratio", [
    ("overcommit.prod.cpu", OvercommitRatio(cpu=0.5)),
    ("overcommit.prod.memory", OvercommitRatio(memory=0.9)),
    ("overcommit.prod.cpu", OvercommitRatio(cpu=11.0)),
])
def test_invalid_overcommit_rejected(field_name, ratio):
    """Overcommit below 1.0 or above the maximum is rejected, not clamped."""
    with pytest.raises(ConfigurationError) as exc_info:
        compute_sizing(_prod_workload(small=1), overcommit=OvercommitConfig(prod=ratio))
    assert exc_info.value.field == field_name


def test_invalid_replicas_rejected():
    """Replicas outside 1-10 are rejected."""
    workload = replace(_prod_workload(small=1), replicas=MappingProxyType({EnvironmentKind.PROD: 0}))
    with pytest.raises(ConfigurationError) as exc_info:
        compute_sizing(workload)
    assert exc_info.value.field == "replicas.prod"


def test_negative_app_count_rejected():
    """Negative application counts are rejected."""
    with pytest.raises(ConfigurationError):
        compute_sizing(_prod_workload(small=-1))


def test_az_count_below_distribution_minimum_rejected():
    """Multi-AZ with two zones is rejected before sizing."""
    ha_dr = HADRConfig(node_distribution=NodeDistribution.MULTI_AZ, availability_zones=2)
    with pytest.raises(ConfigurationError) as exc_info:
        compute_sizing(_prod_workload(small=1), ha_dr_config=ha_dr)
    assert exc_info.value.field == "ha_dr.availability_zones"


def test_disabled_environment_treated_as_zero():
    """Counts stored for a disabled environment are ignored."""
    workload = WorkloadConfig(
        distribution="kubernetes",
        enabled_environments=frozenset({EnvironmentKind.PROD}),
        app_counts=MappingProxyType({
            EnvironmentKind.PROD: AppCount(small=4),
            EnvironmentKind.DEV: AppCount(small=400),
        }),
    )
    result = compute_sizing(workload)

    assert result.environment(EnvironmentKind.DEV) is None
    assert workload.app_count_for(EnvironmentKind.DEV) == AppCount()
    assert result.total_apps == 4


def test_enabled_environment_without_counts_has_no_nodes():
    """An enabled environment missing from app_counts renders as zero."""
    workload = WorkloadConfig(
        distribution="kubernetes",
        enabled_environments=frozenset({EnvironmentKind.PROD, EnvironmentKind.TEST}),
        app_counts=MappingProxyType({EnvironmentKind.PROD: AppCount(small=4)}),
    )
    result = compute_sizing(workload)
    test_env = result.environment(EnvironmentKind.TEST)

    assert test_env.apps.total == 0
    assert test_env.total_nodes == 0
    assert result.cluster_count == 1


def test_multi_az_spreads_prod_nodes_evenly():
    """Production workers and infra nodes round up to a multiple of the zone count."""
    ha_dr = HADRConfig(node_distribution=NodeDistribution.MULTI_AZ, availability_zones=3)
    result = compute_sizing(_prod_workload(small=2, medium=2, large=1), ha_dr_config=ha_dr)
    prod = result.environment(EnvironmentKind.PROD)

    assert prod.workers == 3
    assert prod.nodes_for(NodeRole.INFRA) == 3


def test_zone_spread_skips_non_prod():
    """Non-production environments are not spread across zones."""
    workload = WorkloadConfig(
        distribution="kubernetes",
        enabled_environments=frozenset({EnvironmentKind.DEV, EnvironmentKind.PROD}),
        app_counts=MappingProxyType({
            EnvironmentKind.DEV: AppCount(small=2),
            EnvironmentKind.PROD: AppCount(small=2),
        }),
    )
    ha_dr = HADRConfig(node_distribution=NodeDistribution.MULTI_AZ, availability_zones=3)
    result = compute_sizing(workload, ha_dr_config=ha_dr)

    assert result.environment(EnvironmentKind.DEV).workers == 1
    assert result.environment(EnvironmentKind.PROD).workers == 3


def test_warm_standby_adds_capacity_to_prod():
    """Warm standby scales production nodes when no DR environment is sized."""
    ha_dr = HADRConfig(dr_pattern=DRPattern.WARM_STANDBY)
    result = compute_sizing(_prod_workload(small=2, medium=2, large=1), ha_dr_config=ha_dr)
    prod = result.environment(EnvironmentKind.PROD)

    assert prod.workers == 2  # ceil(1 x 1.4)
    assert prod.nodes_for(NodeRole.INFRA) == 5  # ceil(3 x 1.4)


def test_standby_not_added_when_dr_environment_sized():
    """A sized DR environment replaces the standby multiplier."""
    apps = AppCount(small=2, medium=2, large=1)
    workload = WorkloadConfig(
        distribution="openshift",
        enabled_environments=frozenset({EnvironmentKind.PROD, EnvironmentKind.DR}),
        app_counts=MappingProxyType({EnvironmentKind.PROD: apps, EnvironmentKind.DR: apps}),
    )
    ha_dr = HADRConfig(dr_pattern=DRPattern.HOT_STANDBY)
    result = compute_sizing(workload, ha_dr_config=ha_dr)

    assert result.environment(EnvironmentKind.PROD).workers == 1
    assert result.environment(EnvironmentKind.DR).workers == 1


def test_single_control_plane():
    """A non-HA control plane is a single node."""
    ha_dr = HADRConfig(control_plane_ha=ControlPlaneHA.SINGLE)
    result = compute_sizing(_prod_workload(small=1), ha_dr_config=ha_dr)
    assert result.nodes_for(NodeRole.CONTROL_PLANE) == 1


def test_large_cluster_gets_five_control_plane_nodes():
    """Clusters above 100 workers get a five-node control plane."""
    result = compute_sizing(_prod_workload(xlarge=1000))
    prod = result.environment(EnvironmentKind.PROD)

    assert prod.workers > 100
    assert prod.nodes_for(NodeRole.CONTROL_PLANE) == 5
    assert prod.nodes_for(NodeRole.INFRA) == 10


@pytest.mark.parametrize("apps, is_prod, expected", [
    (0, True, 0),
    (5, False, 3),
    (49, True, 3),
    (50, True, 5),
    (150, False, 6),
    (1000, True, 10),
])
def test_infra_node_count(apps, is_prod, expected):
    """Infra nodes scale with apps between the minimum and maximum."""
    assert ResourceAggregator.infra_nodes(apps, is_prod) == expected


def test_shared_cluster_has_one_control_plane(full_workload):
    """Shared mode sizes infra and control plane once for all environments."""
    shared = replace(full_workload, cluster_mode=ClusterMode.SHARED_CLUSTER)
    result = compute_sizing(shared)

    assert result.cluster_count == 1
    assert result.nodes_for(NodeRole.CONTROL_PLANE) == 3
    for env in result.environments:
        assert env.nodes_for(NodeRole.CONTROL_PLANE) == 0
        assert env.nodes_for(NodeRole.INFRA) == 0


def test_multi_cluster_counts_each_sized_environment(full_workload):
    """Multi-cluster mode yields one cluster per sized environment."""
    result = compute_sizing(full_workload)
    assert result.cluster_count == 5
    assert result.nodes_for(NodeRole.CONTROL_PLANE) == 15


def test_headroom_disabled_zeroes_headroom(full_workload):
    """Disabling headroom sizes exactly to demand."""
    result = compute_sizing(replace(full_workload, headroom_enabled=False))
    assert all(env.headroom_percent == 0 for env in result.environments)


def test_monotonic_in_app_count():
    """More applications never reduce node or resource totals."""
    previous = None
    for count in range(0, 120, 7):
        result = compute_sizing(_prod_workload(small=count, large=count // 3))
        current = (result.total_nodes, result.total_cpu, result.total_ram_gb)
        if previous is not None:
            assert all(now >= before for now, before in zip(current, previous))
        previous = current


def test_monotonic_in_replicas_and_headroom():
    """Higher replicas or headroom never reduce totals."""
    base = _prod_workload(small=30, medium=20, large=10)
    previous_nodes = 0
    for replicas in range(1, 11):
        workload = replace(base, replicas=MappingProxyType({EnvironmentKind.PROD: replicas}))
        nodes = compute_sizing(workload).total_nodes
        assert nodes >= previous_nodes
        previous_nodes = nodes

    previous_nodes = 0
    for headroom in (0, 10, 25, 37.5, 50, 100, 200):
        workload = replace(base, headroom_percent=MappingProxyType({EnvironmentKind.PROD: headroom}))
        nodes = compute_sizing(workload).total_nodes
        assert nodes >= previous_nodes
        previous_nodes = nodes


def test_inputs_not_mutated(full_workload):
    """Sizing leaves the workload untouched."""
    before = full_workload.to_dict()
    compute_sizing(full_workload)
    assert full_workload.to_dict() == before


def test_ceil_nodes_ignores_float_noise():
    """Values a hair above an integer from float error do not add a node."""
    assert ceil_nodes(0.1 * 3 / 0.3) == 1
    assert ceil_nodes(1.0000001) == 2


def test_round_up_to_multiple():
    """Counts round up to the next multiple."""
    assert round_up_to_multiple(4, 3) == 6
    assert round_up_to_multiple(6, 3) == 6
    assert round_up_to_multiple(5, 1) == 5


def test_warm_standby_keeps_zone_multiple():
    """Standby capacity is added before nodes are spread across zones."""
    ha_dr = HADRConfig(
        node_distribution=NodeDistribution.MULTI_AZ,
        availability_zones=3,
        dr_pattern=DRPattern.WARM_STANDBY,
    )
    result = compute_sizing(_prod_workload(small=2, medium=2, large=1), ha_dr_config=ha_dr)
    prod = result.environment(EnvironmentKind.PROD)

    assert prod.workers == 3
    assert prod.nodes_for(NodeRole.INFRA) == 6  # ceil(3 x 1.4) = 5, rounded up to 6
    assert prod.workers % 3 == 0
    assert prod.nodes_for(NodeRole.INFRA) % 3 == 0


def test_apply_ha_dr_rounds_after_standby():
    """Standby multiplies first, then production counts round to the zone multiple."""
    assert ResourceAggregator.apply_ha_dr(3, True, 1.4, 3) == 6
    assert ResourceAggregator.apply_ha_dr(3, False, 1.4, 3) == 5
    assert ResourceAggregator.apply_ha_dr(0, True, 1.4, 3) == 0


def test_technology_selects_tier_catalogue():
    """Java footprints are twice the .NET footprints for every tier."""
    dotnet = compute_sizing(_prod_workload(small=2, medium=2, large=1))
    java = compute_sizing(replace(_prod_workload(small=2, medium=2, large=1), technology=Technology.JAVA))

    dotnet_prod = dotnet.environment(EnvironmentKind.PROD)
    java_prod = java.environment(EnvironmentKind.PROD)
    assert java_prod.raw_cpu == pytest.approx(2 * dotnet_prod.raw_cpu)
    assert java_prod.raw_ram_gb == pytest.approx(2 * dotnet_prod.raw_ram_gb)
    assert java.technology == Technology.JAVA
    assert java.to_dict()["technology"] == "java"


def test_explicit_tier_catalogue_overrides_technology():
    """A catalogue passed to compute_sizing wins over the technology default."""
    workload = replace(_prod_workload(small=4), technology=Technology.MENDIX)
    result = compute_sizing(workload, tier_catalogue=DEFAULT_TIER_CATALOGUE)
    expected = compute_sizing(_prod_workload(small=4))
    assert result.environment(EnvironmentKind.PROD).raw_cpu == pytest.approx(
        expected.environment(EnvironmentKind.PROD).raw_cpu
    )


def test_sizing_logs_summary(small_prod_workload, four_core_workers, caplog):
    """A completed sizing logs its node and resource totals."""
    with caplog.at_level("INFO", logger="infra_sizing.services.resource_aggregator"):
        compute_sizing(small_prod_workload, node_specs=four_core_workers)
    assert "Sized 1 environment(s) on eks: 1 nodes, 4.0 vCPU, 16.0 GB RAM" in caplog.text
