"""
Growth projector service.
Extrapolates sized resources and cost over a multi-year horizon, flags
capacity shortfalls and derives growth-planning recommendations.
"""
from typing import Dict, List, Optional, Tuple
from types import MappingProxyType
import logging
import math

from infra_sizing.domain.catalogue import NodeRole
from infra_sizing.domain.growth_models import (
    CapacityWarning,
    ClusterLimitWarning,
    CostSnapshot,
    GrowthConfig,
    GrowthPattern,
    GrowthPlan,
    GrowthRecommendation,
    GrowthSummary,
    RecommendationType,
    SizingSnapshot,
    WarningSeverity,
    YearProjection,
)
from infra_sizing.domain.pricing_models import PricingResult
from infra_sizing.domain.sizing_models import EnvironmentSizing, SizingResult
from infra_sizing.domain.vm_models import VMSizingResult
from infra_sizing.domain.workload_models import ClusterMode
from infra_sizing.services.resource_aggregator import ResourceAggregator, ceil_nodes
from infra_sizing.services.tier_catalogue import get_distribution


logger = logging.getLogger(__name__)


# Logistic slope over the whole horizon; higher means a sharper middle.
S_CURVE_STEEPNESS = 6.0

CLUSTER_LIMIT_WARNING_PERCENT = 70.0
CLUSTER_LIMIT_CRITICAL_PERCENT = 90.0
AUTOSCALING_APP_GROWTH_PERCENT = 100.0
NODE_SIZE_GROWTH_PERCENT = 50.0
OPTIMIZE_COST_INCREASE_PERCENT = 75.0
OPTIMIZATION_SAVINGS_PERCENT = 15.0
# Node counts beyond which lightweight distributions become hard to operate.
LIGHTWEIGHT_DISTRIBUTION_LIMITS = {"k3s": 200, "microk8s": 100}


def _logistic(x: float, midpoint: float, steepness: float) -> float:
    return 1.0 / (1.0 + math.exp(-steepness * (x - midpoint)))


def s_curve_progress(year: int, horizon: int) -> float:
    """
    Share of total growth reached by ``year``.

    A logistic curve centred on horizon/2, rescaled so year 0 maps to 0 and
    the final year maps to 1.
    """
    if year <= 0:
        return 0.0
    if year >= horizon:
        return 1.0
    midpoint = horizon / 2
    steepness = S_CURVE_STEEPNESS / horizon
    start = _logistic(0, midpoint, steepness)
    end = _logistic(horizon, midpoint, steepness)
    return (_logistic(year, midpoint, steepness) - start) / (end - start)


def growth_factor(config: GrowthConfig, year: int) -> float:
    """
    Multiplier applied to base-year values in a given year.

    Linear adds the same absolute amount each year, Exponential compounds,
    S-Curve follows a logistic path that meets Exponential at the final year,
    and Custom compounds the per-year rates.
    """
    if year <= 0:
        return 1.0
    rate = config.annual_growth_rate_percent / 100
    if config.pattern == GrowthPattern.LINEAR:
        return 1 + rate * year
    if config.pattern == GrowthPattern.EXPONENTIAL:
        return (1 + rate) ** year
    if config.pattern == GrowthPattern.S_CURVE:
        horizon = config.projection_years
        if year >= horizon:
            return (1 + rate) ** horizon
        return 1 + ((1 + rate) ** horizon - 1) * s_curve_progress(year, horizon)

    factor = 1.0
    for index in range(1, year + 1):
        factor *= 1 + config.rate_for_year(index)
    return factor


def _required_workers(env: EnvironmentSizing, cpu: float, ram: float) -> int:
    worker_group = env.group(NodeRole.WORKER)
    spec = worker_group.spec
    return max(ceil_nodes(cpu / spec.cpu), ceil_nodes(ram / spec.ram_gb), 1)


def _projected_workers(env: EnvironmentSizing, factor: float, availability_zones: int) -> int:
    """
    Re-size an environment's workers for scaled demand.

    Applies the same standby capacity and zone spreading as the base sizing.
    Never shrinks below the current pool.
    """
    if env.workers == 0:
        return 0
    required = _required_workers(env, env.effective_cpu * factor, env.effective_ram_gb * factor)
    provisioned = ResourceAggregator.apply_ha_dr(
        required, env.is_prod, env.standby_capacity, availability_zones
    )
    return max(env.workers, provisioned)


class GrowthProjector:
    """Stateless projector over year indices 1..N."""

    def project(
        self,
        base_sizing: SizingResult,
        base_pricing: Optional[PricingResult],
        config: GrowthConfig,
    ) -> List[YearProjection]:
        """
        Project sizing and cost for each year of the horizon.

        Raises:
            ConfigurationError: If the growth configuration is invalid
        """
        config.validate()
        projections: List[YearProjection] = []
        for year in range(1, config.projection_years + 1):
            factor = growth_factor(config, year)
            snapshot = self._sizing_snapshot(base_sizing, factor)

            warnings: Tuple[CapacityWarning, ...] = ()
            if config.show_capacity_warnings:
                warnings = self._capacity_warnings(year, base_sizing, snapshot)

            projections.append(YearProjection(
                year=year,
                growth_factor=factor,
                sizing_snapshot=snapshot,
                cost_snapshot=self._cost_snapshot(base_pricing, config, year, factor),
                capacity_warnings=warnings,
            ))
            logger.debug(f"Year {year}: factor {factor:.4f}, {snapshot.nodes} nodes, {len(warnings)} warning(s)")
        return projections

    def project_vms(
        self,
        base_sizing: VMSizingResult,
        base_pricing: Optional[PricingResult],
        config: GrowthConfig,
    ) -> List[YearProjection]:
        """
        Project VM counts, resources and cost for each year of the horizon.

        VM layouts carry no per-application demand, so VMs stand in for
        applications and every total scales with the growth factor, rounded
        up per environment. No capacity warnings are raised.

        Raises:
            ConfigurationError: If the growth configuration is invalid
        """
        config.validate()
        projections: List[YearProjection] = []
        for year in range(1, config.projection_years + 1):
            factor = growth_factor(config, year)
            nodes_by_env: Dict[str, int] = {}
            servers = 0
            for env in base_sizing.environments:
                nodes_by_env[env.environment.value] = ceil_nodes(env.total_vms * factor)
                servers += ceil_nodes((env.total_vms - env.load_balancer_vms) * factor)
            vms = sum(nodes_by_env.values())

            snapshot = SizingSnapshot(
                apps=vms,
                nodes=vms,
                worker_nodes=servers,
                cpu=float(ceil_nodes(base_sizing.total_cpu * factor)),
                ram_gb=float(ceil_nodes(base_sizing.total_ram_gb * factor)),
                disk_gb=float(ceil_nodes(base_sizing.total_disk_gb * factor)),
                effective_cpu=base_sizing.total_cpu * factor,
                effective_ram_gb=base_sizing.total_ram_gb * factor,
                nodes_by_environment=MappingProxyType(nodes_by_env),
            )
            projections.append(YearProjection(
                year=year,
                growth_factor=factor,
                sizing_snapshot=snapshot,
                cost_snapshot=self._cost_snapshot(base_pricing, config, year, factor),
            ))
            logger.debug(f"Year {year}: factor {factor:.4f}, {vms} VMs")
        return projections

    def build_plan(
        self,
        base_sizing: SizingResult,
        base_pricing: Optional[PricingResult],
        config: GrowthConfig,
    ) -> GrowthPlan:
        """Project growth and add summary, cluster limit warnings and recommendations."""
        projections = self.project(base_sizing, base_pricing, config)
        cluster_warnings = self._cluster_limit_warnings(base_sizing, projections)
        summary = self._summary(
            base_sizing.total_apps, base_sizing.total_nodes, base_pricing, projections, cluster_warnings
        )
        recommendations = self._recommendations(base_sizing.distribution, projections, summary, cluster_warnings)
        logger.info(
            f"Built {config.projection_years}-year {config.pattern.value} growth plan: "
            f"{summary.base_nodes} -> {summary.final_nodes} nodes, {len(recommendations)} recommendation(s)"
        )
        return GrowthPlan(
            config=config,
            projections=tuple(projections),
            summary=summary,
            cluster_warnings=tuple(cluster_warnings),
            recommendations=tuple(recommendations),
        )

    def build_vm_plan(
        self,
        base_sizing: VMSizingResult,
        base_pricing: Optional[PricingResult],
        config: GrowthConfig,
    ) -> GrowthPlan:
        """Project VM growth and add summary and recommendations."""
        projections = self.project_vms(base_sizing, base_pricing, config)
        summary = self._summary(base_sizing.total_vms, base_sizing.total_vms, base_pricing, projections, [])
        recommendations = self._recommendations(None, projections, summary, [])
        logger.info(
            f"Built {config.projection_years}-year {config.pattern.value} VM growth plan: "
            f"{summary.base_nodes} -> {summary.final_nodes} VMs, {len(recommendations)} recommendation(s)"
        )
        return GrowthPlan(
            config=config,
            projections=tuple(projections),
            summary=summary,
            recommendations=tuple(recommendations),
        )

    @staticmethod
    def _cost_snapshot(
        base_pricing: Optional[PricingResult],
        config: GrowthConfig,
        year: int,
        factor: float,
    ) -> Optional[CostSnapshot]:
        if not config.include_cost_projections or base_pricing is None:
            return None
        inflation = (1 + config.inflation_rate_percent / 100) ** year
        return CostSnapshot(
            annual_cost=base_pricing.net_total * factor * inflation,
            growth_factor=factor,
            inflation_factor=inflation,
        )

    def _sizing_snapshot(self, base: SizingResult, factor: float) -> SizingSnapshot:
        extra_workers = 0
        extra_cpu = 0.0
        extra_ram = 0.0
        extra_disk = 0.0
        nodes_by_env: Dict[str, int] = {}
        for env in base.environments:
            workers = _projected_workers(env, factor, base.availability_zones)
            added = workers - env.workers
            if added:
                spec = env.group(NodeRole.WORKER).spec
                extra_cpu += added * spec.cpu
                extra_ram += added * spec.ram_gb
                extra_disk += added * spec.disk_gb
            extra_workers += added
            nodes_by_env[env.environment.value] = env.total_nodes + added

        snapshot = SizingSnapshot(
            apps=int(round(base.total_apps * factor)),
            nodes=base.total_nodes + extra_workers,
            worker_nodes=base.total_workers + extra_workers,
            cpu=base.total_cpu + extra_cpu,
            ram_gb=base.total_ram_gb + extra_ram,
            disk_gb=base.total_disk_gb + extra_disk,
            effective_cpu=base.total_effective_cpu * factor,
            effective_ram_gb=base.total_effective_ram_gb * factor,
            nodes_by_environment=MappingProxyType(nodes_by_env),
        )
        return snapshot

    @staticmethod
    def _capacity_warnings(year: int, base: SizingResult, snapshot: SizingSnapshot) -> Tuple[CapacityWarning, ...]:
        """Compare projected demand with the worker capacity sized today."""
        cpu_capacity = sum(env.worker_cpu_capacity for env in base.environments)
        ram_capacity = sum(env.worker_ram_capacity_gb for env in base.environments)
        checks = (
            ("cpu", snapshot.effective_cpu, cpu_capacity),
            ("memory", snapshot.effective_ram_gb, ram_capacity),
            ("nodes", float(snapshot.worker_nodes), float(base.total_workers)),
        )
        return tuple(
            CapacityWarning(year=year, resource=resource, required=required, available=available)
            for resource, required, available in checks
            if round(required - available, 9) > 0
        )

    @staticmethod
    def _largest_cluster(base: SizingResult, projection: YearProjection) -> Tuple[str, int]:
        if base.cluster_mode == ClusterMode.SHARED_CLUSTER:
            return "the shared cluster", projection.sizing_snapshot.nodes
        nodes_by_env = projection.sizing_snapshot.nodes_by_environment
        if not nodes_by_env:
            return "the cluster", 0
        name = max(nodes_by_env, key=lambda key: nodes_by_env[key])
        return f"the {name} cluster", nodes_by_env[name]

    def _cluster_limit_warnings(
        self,
        base: SizingResult,
        projections: List[YearProjection],
    ) -> List[ClusterLimitWarning]:
        distribution = get_distribution(base.distribution)
        limit = distribution.max_nodes_per_cluster
        warnings: List[ClusterLimitWarning] = []
        for projection in projections:
            cluster, nodes = self._largest_cluster(base, projection)
            utilization = nodes / limit * 100 if limit else 0.0
            if utilization >= CLUSTER_LIMIT_CRITICAL_PERCENT:
                severity = WarningSeverity.CRITICAL
            elif utilization >= CLUSTER_LIMIT_WARNING_PERCENT:
                severity = WarningSeverity.WARNING
            else:
                continue
            warnings.append(ClusterLimitWarning(
                year=projection.year,
                severity=severity,
                projected_nodes=nodes,
                max_nodes=limit,
                message=(
                    f"Year {projection.year}: {nodes} nodes in {cluster} reach {utilization:.0f}% "
                    f"of the {distribution.display_name} limit of {limit} nodes per cluster."
                ),
            ))
        return warnings

    @staticmethod
    def _summary(
        base_apps: int,
        base_nodes: int,
        base_pricing: Optional[PricingResult],
        projections: List[YearProjection],
        cluster_warnings: List[ClusterLimitWarning],
    ) -> GrowthSummary:
        final = projections[-1]
        costs = [p.cost_snapshot.annual_cost for p in projections if p.cost_snapshot is not None]
        total_cost = sum(costs) if costs else None
        average = total_cost / len(costs) if costs else None
        increase = None
        if costs and base_pricing is not None and base_pricing.net_total > 0:
            increase = (costs[-1] - base_pricing.net_total) / base_pricing.net_total * 100
        return GrowthSummary(
            base_apps=base_apps,
            final_apps=final.sizing_snapshot.apps,
            base_nodes=base_nodes,
            final_nodes=final.sizing_snapshot.nodes,
            total_cost=total_cost,
            average_yearly_cost=average,
            cost_increase_percent=increase,
            capacity_warning_count=sum(len(p.capacity_warnings) for p in projections) + len(cluster_warnings),
            critical_warning_count=sum(1 for w in cluster_warnings if w.severity == WarningSeverity.CRITICAL),
        )

    @staticmethod
    def _recommendations(
        distribution: Optional[str],
        projections: List[YearProjection],
        summary: GrowthSummary,
        cluster_warnings: List[ClusterLimitWarning],
    ) -> List[GrowthRecommendation]:
        recommendations: List[GrowthRecommendation] = []
        years = len(projections)

        if summary.app_growth_percent > AUTOSCALING_APP_GROWTH_PERCENT:
            recommendations.append(GrowthRecommendation(
                type=RecommendationType.ENABLE_AUTOSCALING,
                title="Enable cluster autoscaling",
                description=(
                    f"Applications grow {summary.app_growth_percent:.0f}% over {years} years. "
                    f"Autoscaling lets node pools follow demand instead of pre-provisioning peak capacity."
                ),
            ))

        if summary.node_growth_percent > NODE_SIZE_GROWTH_PERCENT:
            recommendations.append(GrowthRecommendation(
                type=RecommendationType.UPGRADE_NODE_SIZE,
                title="Consider larger worker nodes",
                description=(
                    f"Node count grows {summary.node_growth_percent:.0f}%. Larger nodes reduce "
                    f"per-node overhead and keep the cluster smaller."
                ),
            ))

        critical = [w for w in cluster_warnings if w.severity == WarningSeverity.CRITICAL]
        if critical:
            recommendations.append(GrowthRecommendation(
                type=RecommendationType.SPLIT_CLUSTER,
                title="Plan a cluster split",
                description=critical[0].message + " Split workloads across clusters before this point.",
                year=critical[0].year,
            ))

        if summary.cost_increase_percent is not None and summary.cost_increase_percent > OPTIMIZE_COST_INCREASE_PERCENT:
            final_cost = projections[-1].cost_snapshot.annual_cost
            recommendations.append(GrowthRecommendation(
                type=RecommendationType.OPTIMIZE_RESOURCES,
                title="Optimize resource requests",
                description=(
                    f"Annual cost rises {summary.cost_increase_percent:.0f}%. Right-sizing requests "
                    f"and limits typically saves around {OPTIMIZATION_SAVINGS_PERCENT:.0f}%."
                ),
                potential_savings=final_cost * OPTIMIZATION_SAVINGS_PERCENT / 100,
            ))

        limit = LIGHTWEIGHT_DISTRIBUTION_LIMITS.get(distribution) if distribution else None
        if limit is not None and summary.final_nodes > limit:
            name = get_distribution(distribution).display_name
            recommendations.append(GrowthRecommendation(
                type=RecommendationType.CONSIDER_MANAGED_SERVICE,
                title="Consider a managed Kubernetes service",
                description=(
                    f"{name} is built for small clusters; {summary.final_nodes} projected nodes "
                    f"exceed its practical size of {limit}."
                ),
            ))
        return recommendations


def project_growth(
    base_sizing: SizingResult,
    base_pricing: Optional[PricingResult],
    growth_config: GrowthConfig,
) -> List[YearProjection]:
    """Project sizing and cost snapshots for years 1..N."""
    return GrowthProjector().project(base_sizing, base_pricing, growth_config)


def build_growth_plan(
    base_sizing: SizingResult,
    base_pricing: Optional[PricingResult],
    growth_config: GrowthConfig,
) -> GrowthPlan:
    """Project growth with summary, cluster limit warnings and recommendations."""
    return GrowthProjector().build_plan(base_sizing, base_pricing, growth_config)


def project_vm_growth(
    base_sizing: VMSizingResult,
    base_pricing: Optional[PricingResult],
    growth_config: GrowthConfig,
) -> List[YearProjection]:
    """Project VM sizing and cost snapshots for years 1..N."""
    return GrowthProjector().project_vms(base_sizing, base_pricing, growth_config)


def build_vm_growth_plan(
    base_sizing: VMSizingResult,
    base_pricing: Optional[PricingResult],
    growth_config: GrowthConfig,
) -> GrowthPlan:
    """Project VM growth with summary and recommendations."""
    return GrowthProjector().build_vm_plan(base_sizing, base_pricing, growth_config)
