"""
Tests for multi-year growth projection.
"""

from types import MappingProxyType

import pytest

from infra_sizing.domain.catalogue import EnvironmentKind, SizeTier
from infra_sizing.domain.errors import ConfigurationError
from infra_sizing.domain.growth_models import (
    GrowthConfig,
    GrowthPattern,
    RecommendationType,
    WarningSeverity,
)
from infra_sizing.domain.ha_dr_models import HADRConfig, NodeDistribution
from infra_sizing.domain.vm_models import (
    HAPattern,
    LoadBalancerOption,
    ServerRole,
    VMEnvironmentConfig,
    VMRoleConfig,
    VMSizingInput,
)
from infra_sizing.domain.workload_models import AppCount, WorkloadConfig
from infra_sizing.services.growth_projector import (
    build_growth_plan,
    build_vm_growth_plan,
    growth_factor,
    project_growth,
    project_vm_growth,
    s_curve_progress,
)
from infra_sizing.services.pricing_engine import compute_pricing
from infra_sizing.services.resource_aggregator import compute_sizing
from infra_sizing.services.vm_sizing import compute_vm_sizing


@pytest.fixture
def base_sizing(small_prod_workload, four_core_workers):
    """One 4-core worker carrying 3 vCPU of demand."""
    return compute_sizing(small_prod_workload, node_specs=four_core_workers)


@pytest.fixture
def microk8s_sizing(four_core_workers):
    """150 workers plus a 5-node control plane on MicroK8s."""
    workload = WorkloadConfig(
        distribution="microk8s",
        app_counts=MappingProxyType({EnvironmentKind.PROD: AppCount(xlarge=300)}),
        replicas=MappingProxyType({EnvironmentKind.PROD: 1}),
        headroom_enabled=False,
    )
    return compute_sizing(workload, node_specs=four_core_workers)


def test_linear_growth_adds_constant_amount():
    """Linear growth adds the same share of the base each year."""
    config = GrowthConfig(pattern=GrowthPattern.LINEAR, annual_growth_rate_percent=20)
    assert growth_factor(config, 1) == pytest.approx(1.2)
    assert growth_factor(config, 3) == pytest.approx(1.6)


def test_exponential_growth_compounds():
    """Exponential growth compounds yearly."""
    config = GrowthConfig(pattern=GrowthPattern.EXPONENTIAL, annual_growth_rate_percent=10, projection_years=5)
    assert growth_factor(config, 5) == pytest.approx(1.61051)


def test_s_curve_meets_exponential_at_horizon():
    """S-curve ends where exponential ends but takes a different path."""
    exponential = GrowthConfig(pattern=GrowthPattern.EXPONENTIAL, annual_growth_rate_percent=10, projection_years=5)
    s_curve = GrowthConfig(pattern=GrowthPattern.S_CURVE, annual_growth_rate_percent=10, projection_years=5)

    assert growth_factor(s_curve, 5) == pytest.approx(growth_factor(exponential, 5))
    assert growth_factor(s_curve, 2) != pytest.approx(growth_factor(exponential, 2))
    assert growth_factor(s_curve, 3) != pytest.approx(growth_factor(exponential, 3))


def test_s_curve_progress_is_monotonic():
    """Progress runs from 0 to 1 without going backwards."""
    progress = [s_curve_progress(year, 8) for year in range(0, 9)]
    assert progress[0] == 0.0
    assert progress[-1] == 1.0
    assert progress == sorted(progress)


def test_custom_rates_compound():
    """Custom yearly rates compound, including negative years."""
    config = GrowthConfig(
        pattern=GrowthPattern.CUSTOM,
        projection_years=3,
        custom_rates_percent=(10, 20, -50),
    )
    assert growth_factor(config, 3) == pytest.approx(1.1 * 1.2 * 0.5)


def test_custom_rates_must_cover_horizon(base_sizing):
    """Fewer custom rates than projection years is rejected."""
    config = GrowthConfig(pattern=GrowthPattern.CUSTOM, projection_years=3, custom_rates_percent=(10, 20))
    with pytest.raises(ConfigurationError) as exc_info:
        project_growth(base_sizing, None, config)
    assert exc_info.value.field == "growth.custom_rates_percent"


@pytest.mark.parametrize("years", [0, 11])
def test_projection_years_bounded(base_sizing, years):
    """The horizon must be between one and ten years."""
    with pytest.raises(ConfigurationError):
        project_growth(base_sizing, None, GrowthConfig(projection_years=years))


def test_one_projection_per_year(base_sizing):
    """Years are numbered 1..N."""
    projections = project_growth(base_sizing, None, GrowthConfig(projection_years=5))
    assert [projection.year for projection in projections] == [1, 2, 3, 4, 5]


def test_cost_projection_applies_growth_and_inflation(base_sizing, odc_deployment):
    """Annual cost is base net total times growth factor times inflation."""
    pricing = compute_pricing(base_sizing, odc_deployment)
    config = GrowthConfig(projection_years=3, annual_growth_rate_percent=20, inflation_rate_percent=3)
    projections = project_growth(base_sizing, pricing, config)

    for projection in projections:
        expected = pricing.net_total * projection.growth_factor * 1.03 ** projection.year
        assert projection.cost_snapshot.annual_cost == pytest.approx(expected)


def test_no_cost_without_pricing(base_sizing):
    """Without base pricing the projection carries no cost."""
    projections = project_growth(base_sizing, None, GrowthConfig())
    assert all(projection.cost_snapshot is None for projection in projections)


def test_cost_projection_can_be_disabled(base_sizing, odc_deployment):
    """Cost snapshots are skipped when cost projections are off."""
    pricing = compute_pricing(base_sizing, odc_deployment)
    projections = project_growth(base_sizing, pricing, GrowthConfig(include_cost_projections=False))
    assert all(projection.cost_snapshot is None for projection in projections)


def test_capacity_warning_when_demand_exceeds_workers(base_sizing):
    """Demand beyond today's worker capacity is flagged from the year it happens."""
    config = GrowthConfig(projection_years=2, annual_growth_rate_percent=20)
    first, second = project_growth(base_sizing, None, config)

    assert first.capacity_warnings == ()
    resources = {warning.resource for warning in second.capacity_warnings}
    assert resources == {"cpu", "nodes"}
    cpu_warning = next(w for w in second.capacity_warnings if w.resource == "cpu")
    assert cpu_warning.available == pytest.approx(4.0)
    assert cpu_warning.required == pytest.approx(4.2)


def test_capacity_warnings_can_be_hidden(base_sizing):
    """No capacity warnings when they are switched off."""
    config = GrowthConfig(projection_years=2, annual_growth_rate_percent=20, show_capacity_warnings=False)
    assert all(not projection.capacity_warnings for projection in project_growth(base_sizing, None, config))


def test_projected_workers_never_shrink(base_sizing):
    """Negative growth keeps today's worker pool."""
    config = GrowthConfig(pattern=GrowthPattern.CUSTOM, projection_years=1, custom_rates_percent=(-50,))
    projection = project_growth(base_sizing, None, config)[0]
    assert projection.sizing_snapshot.worker_nodes == base_sizing.total_workers


def test_projection_does_not_modify_base(base_sizing):
    """The base sizing is left untouched."""
    nodes = base_sizing.total_nodes
    project_growth(base_sizing, None, GrowthConfig(projection_years=5, annual_growth_rate_percent=50))
    assert base_sizing.total_nodes == nodes


def test_cluster_limit_warning(microk8s_sizing):
    """Clusters above 70% of the distribution limit raise a warning."""
    plan = build_growth_plan(microk8s_sizing, None, GrowthConfig(annual_growth_rate_percent=0))

    assert microk8s_sizing.total_nodes == 155
    assert len(plan.cluster_warnings) == 3
    assert all(w.severity == WarningSeverity.WARNING for w in plan.cluster_warnings)
    assert plan.cluster_warnings[0].max_nodes == 200


def test_cluster_limit_critical_recommends_split(microk8s_sizing):
    """Clusters above 90% of the limit are critical and suggest a split."""
    plan = build_growth_plan(microk8s_sizing, None, GrowthConfig(annual_growth_rate_percent=20))
    types = {rec.type for rec in plan.recommendations}

    assert plan.cluster_warnings[0].severity == WarningSeverity.CRITICAL
    assert plan.summary.critical_warning_count == 3
    assert RecommendationType.SPLIT_CLUSTER in types


def test_lightweight_distribution_recommends_managed(microk8s_sizing):
    """Large MicroK8s clusters get a managed-service recommendation."""
    plan = build_growth_plan(microk8s_sizing, None, GrowthConfig(annual_growth_rate_percent=0))
    assert RecommendationType.CONSIDER_MANAGED_SERVICE in {rec.type for rec in plan.recommendations}


def test_plan_summary(base_sizing, odc_deployment):
    """Summary reports app and node growth plus cost totals."""
    pricing = compute_pricing(base_sizing, odc_deployment)
    config = GrowthConfig(projection_years=3, pattern=GrowthPattern.LINEAR, annual_growth_rate_percent=50)
    plan = build_growth_plan(base_sizing, pricing, config)
    summary = plan.summary

    assert summary.base_apps == 5
    assert summary.final_apps == 12
    assert summary.total_cost == pytest.approx(
        sum(projection.cost_snapshot.annual_cost for projection in plan.projections)
    )
    assert summary.cost_increase_percent > 75
    assert RecommendationType.ENABLE_AUTOSCALING in {rec.type for rec in plan.recommendations}
    assert RecommendationType.OPTIMIZE_RESOURCES in {rec.type for rec in plan.recommendations}


def test_plan_serializes(base_sizing):
    """The plan converts to plain JSON-ready data."""
    data = build_growth_plan(base_sizing, None, GrowthConfig()).to_dict()
    assert data["config"]["pattern"] == "linear"
    assert len(data["projections"]) == 3
    assert data["summary"]["total_cost"] is None


@pytest.fixture
def multi_az_sizing():
    """32 small apps on EKS spread over three zones: 3 workers with room to spare."""
    workload = WorkloadConfig(
        distribution="eks",
        app_counts=MappingProxyType({EnvironmentKind.PROD: AppCount(small=32)}),
        replicas=MappingProxyType({EnvironmentKind.PROD: 1}),
        headroom_enabled=False,
    )
    ha_dr = HADRConfig(node_distribution=NodeDistribution.MULTI_AZ, availability_zones=3)
    return compute_sizing(workload, ha_dr_config=ha_dr)


def test_multi_az_growth_resizes_like_base(multi_az_sizing):
    """Projected workers match a fresh three-zone sizing of the grown demand."""
    config = GrowthConfig(pattern=GrowthPattern.EXPONENTIAL, annual_growth_rate_percent=150)
    projections = project_growth(multi_az_sizing, None, config)

    assert multi_az_sizing.total_workers == 3
    assert [p.sizing_snapshot.worker_nodes for p in projections] == [3, 6, 9]
    assert all(p.sizing_snapshot.worker_nodes % 3 == 0 for p in projections)
    assert projections[0].capacity_warnings == ()


def test_multi_az_growth_matches_fresh_sizing(multi_az_sizing):
    """Year-one workers equal sizing the scaled app count from scratch."""
    config = GrowthConfig(pattern=GrowthPattern.EXPONENTIAL, annual_growth_rate_percent=150)
    year_one = project_growth(multi_az_sizing, None, config)[0]

    workload = WorkloadConfig(
        distribution="eks",
        app_counts=MappingProxyType({EnvironmentKind.PROD: AppCount(small=80)}),
        replicas=MappingProxyType({EnvironmentKind.PROD: 1}),
        headroom_enabled=False,
    )
    ha_dr = HADRConfig(node_distribution=NodeDistribution.MULTI_AZ, availability_zones=3)
    fresh = compute_sizing(workload, ha_dr_config=ha_dr)

    assert year_one.sizing_snapshot.worker_nodes == fresh.total_workers


def test_nodes_by_environment_is_read_only(base_sizing):
    """Snapshots expose per-environment node counts as a read-only mapping."""
    snapshot = project_growth(base_sizing, None, GrowthConfig())[0].sizing_snapshot
    with pytest.raises(TypeError):
        snapshot.nodes_by_environment["prod"] = 1


@pytest.fixture
def vm_sizing():
    """Three N+1 application servers behind an HA load balancer pair: 5 VMs."""
    vm_input = VMSizingInput(
        environments=MappingProxyType({
            EnvironmentKind.PROD: VMEnvironmentConfig(
                roles=(VMRoleConfig(role=ServerRole.APP, size=SizeTier.MEDIUM, instance_count=2),),
                ha_pattern=HAPattern.N_PLUS_1,
                load_balancer=LoadBalancerOption.HA_PAIR,
            ),
        }),
    )
    return compute_vm_sizing(vm_input)


def test_vm_growth_scales_totals(vm_sizing):
    """VM counts and resources scale with the growth factor and round up."""
    projections = project_vm_growth(vm_sizing, None, GrowthConfig(annual_growth_rate_percent=20))
    year_one = projections[0].sizing_snapshot

    assert vm_sizing.total_vms == 5
    assert year_one.nodes == 6
    assert year_one.worker_nodes == 4
    assert year_one.cpu == 23
    assert year_one.ram_gb == 46
    assert year_one.disk_gb == 480
    assert dict(year_one.nodes_by_environment) == {"prod": 6}
    assert projections[-1].sizing_snapshot.nodes == 8
    assert all(p.capacity_warnings == () for p in projections)


def test_vm_growth_plan(vm_sizing, odc_deployment):
    """The VM plan summarizes VM growth and projects license cost."""
    pricing = compute_pricing(None, odc_deployment)
    config = GrowthConfig(pattern=GrowthPattern.EXPONENTIAL, annual_growth_rate_percent=50)
    plan = build_vm_growth_plan(vm_sizing, pricing, config)

    assert plan.summary.base_nodes == 5
    assert plan.summary.final_nodes == 17  # ceil(5 x 3.375)
    assert plan.cluster_warnings == ()
    assert plan.projections[0].cost_snapshot.annual_cost == pytest.approx(pricing.net_total * 1.5 * 1.03)
    assert RecommendationType.ENABLE_AUTOSCALING in {rec.type for rec in plan.recommendations}
    assert RecommendationType.CONSIDER_MANAGED_SERVICE not in {rec.type for rec in plan.recommendations}
