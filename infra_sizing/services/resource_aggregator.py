"""
Resource aggregator service.
Turns a workload description into per-environment and aggregate node counts
and resource totals.
"""
from typing import List, Optional, Tuple
import logging
import math

from infra_sizing.domain.catalogue import (
    EnvironmentKind,
    NodeRole,
    NodeRoleSpecs,
    TierCatalogue,
    DistributionInfo,
    SizeTier,
)
from infra_sizing.domain.workload_models import (
    AppCount,
    ClusterMode,
    OvercommitConfig,
    WorkloadConfig,
)
from infra_sizing.domain.ha_dr_models import ControlPlaneHA, HADRConfig
from infra_sizing.domain.sizing_models import EnvironmentSizing, NodeGroup, SizingResult
from infra_sizing.services.tier_catalogue import (
    DEFAULT_NODE_SPECS,
    DEFAULT_TIER_CATALOGUE,
    get_distribution,
    get_tier_catalogue,
)


logger = logging.getLogger(__name__)


MIN_WORKER_NODES = 1
MIN_INFRA_NODES = 3
MAX_INFRA_NODES = 10
APPS_PER_INFRA_NODE = 25
LARGE_PROD_APP_THRESHOLD = 50
LARGE_PROD_MIN_INFRA_NODES = 5
LARGE_CLUSTER_WORKER_THRESHOLD = 100
LARGE_CLUSTER_CONTROL_PLANE_NODES = 5


def ceil_nodes(value: float) -> int:
    """Round a fractional node requirement up, ignoring float noise."""
    return int(math.ceil(round(value, 9)))


def round_up_to_multiple(count: int, multiple: int) -> int:
    if count <= 0 or multiple <= 1:
        return count
    return int(math.ceil(count / multiple)) * multiple


class ResourceAggregator:
    """Stateless calculator for Kubernetes node and resource totals."""

    def __init__(
        self,
        tier_catalogue: Optional[TierCatalogue] = None,
    ):
        """
        Initialize the aggregator.

        Args:
            tier_catalogue: Per-application footprint for each size tier; when
                omitted, the workload technology's catalogue is used
        """
        self.tier_catalogue = tier_catalogue

    def compute(
        self,
        workload: WorkloadConfig,
        node_specs: NodeRoleSpecs = DEFAULT_NODE_SPECS,
        overcommit: Optional[OvercommitConfig] = None,
        ha_dr: Optional[HADRConfig] = None,
    ) -> SizingResult:
        """
        Size every enabled environment of a workload.

        Args:
            workload: Application counts and per-environment settings
            node_specs: Node capacity per role and bucket
            overcommit: Overcommit ratios (defaults to no overcommit)
            ha_dr: HA/DR posture (defaults to a single-AZ stacked control plane)

        Returns:
            SizingResult with per-environment and aggregate totals

        Raises:
            ConfigurationError: If any input is invalid
        """
        overcommit = overcommit or OvercommitConfig()
        ha_dr = ha_dr or HADRConfig()

        # Reject bad input before computing anything.
        workload.validate()
        node_specs.validate()
        overcommit.validate()
        ha_dr.validate()
        distribution = get_distribution(workload.distribution)
        catalogue = self.tier_catalogue or get_tier_catalogue(workload.technology)

        shared = workload.cluster_mode == ClusterMode.SHARED_CLUSTER
        dr_site_sized = workload.is_enabled(EnvironmentKind.DR)

        environments: List[EnvironmentSizing] = []
        for environment in workload.ordered_environments():
            environments.append(
                self._size_environment(
                    environment, workload, catalogue, node_specs, overcommit, ha_dr,
                    distribution, shared, dr_site_sized,
                )
            )

        shared_groups: Tuple[NodeGroup, ...] = ()
        if shared:
            shared_groups = self._size_shared_groups(environments, node_specs, ha_dr, distribution)

        result = SizingResult(
            distribution=distribution.key,
            distribution_name=distribution.display_name,
            is_managed_control_plane=distribution.is_managed_control_plane,
            cluster_mode=workload.cluster_mode,
            environments=tuple(environments),
            shared_node_groups=shared_groups,
            ha_dr_summary=ha_dr.summary(),
            ha_dr_cost_multiplier=ha_dr.cost_multiplier(),
            availability_zones=ha_dr.availability_zones,
            technology=workload.technology,
        )
        logger.info(
            f"Sized {len(environments)} environment(s) on {distribution.key}: {result.total_nodes} nodes, "
            f"{result.total_cpu:.1f} vCPU, {result.total_ram_gb:.1f} GB RAM"
        )
        return result

    def raw_demand(
        self,
        apps: AppCount,
        replicas: int,
        headroom_percent: float,
        tier_catalogue: Optional[TierCatalogue] = None,
    ) -> Tuple[float, float]:
        """
        Compute raw CPU and RAM demand before overcommit.

        Returns:
            Tuple of (cpu_cores, ram_gb)
        """
        catalogue = tier_catalogue or self.tier_catalogue or DEFAULT_TIER_CATALOGUE
        cpu = 0.0
        ram = 0.0
        for tier in SizeTier:
            count = apps.count_for(tier)
            if count:
                spec = catalogue.spec_for(tier)
                cpu += count * spec.cpu
                ram += count * spec.ram_gb
        factor = replicas * (1 + headroom_percent / 100)
        return cpu * factor, ram * factor

    def _size_environment(
        self,
        environment: EnvironmentKind,
        workload: WorkloadConfig,
        catalogue: TierCatalogue,
        node_specs: NodeRoleSpecs,
        overcommit: OvercommitConfig,
        ha_dr: HADRConfig,
        distribution: DistributionInfo,
        shared: bool,
        dr_site_sized: bool,
    ) -> EnvironmentSizing:
        apps = workload.app_count_for(environment)
        replicas = workload.replicas_for(environment)
        headroom = workload.headroom_for(environment)
        raw_cpu, raw_ram = self.raw_demand(apps, replicas, headroom, catalogue)

        ratio = overcommit.ratio_for(environment)
        effective_cpu = raw_cpu / ratio.cpu
        effective_ram = raw_ram / ratio.memory

        # A standby site is only added when DR is not sized as its own environment.
        standby = 1.0
        if environment == EnvironmentKind.PROD and not dr_site_sized:
            standby = ha_dr.dr_profile.standby_capacity

        node_groups: List[NodeGroup] = []
        if apps.total > 0:
            is_prod = environment.is_prod
            worker_spec = node_specs.spec_for(NodeRole.WORKER, is_prod)
            workers = max(
                ceil_nodes(effective_cpu / worker_spec.cpu),
                ceil_nodes(effective_ram / worker_spec.ram_gb),
                MIN_WORKER_NODES,
            )
            workers = self.apply_ha_dr(workers, is_prod, standby, ha_dr.availability_zones)
            node_groups.append(NodeGroup(NodeRole.WORKER, workers, worker_spec))

            if not shared:
                if distribution.has_infra_nodes:
                    infra = self.infra_nodes(apps.total, is_prod)
                    infra = self.apply_ha_dr(infra, is_prod, standby, ha_dr.availability_zones)
                    node_groups.append(
                        NodeGroup(NodeRole.INFRA, infra, node_specs.spec_for(NodeRole.INFRA, is_prod))
                    )
                control_plane = self.control_plane_nodes(distribution, ha_dr, workers)
                if control_plane:
                    node_groups.append(
                        NodeGroup(
                            NodeRole.CONTROL_PLANE,
                            control_plane,
                            node_specs.spec_for(NodeRole.CONTROL_PLANE, is_prod),
                        )
                    )

        nodes = {group.role.value: group.count for group in node_groups}
        logger.debug(
            f"{environment.value}: raw cpu={raw_cpu:.3f} ram={raw_ram:.3f}, "
            f"effective cpu={effective_cpu:.3f} ram={effective_ram:.3f}, nodes={nodes}"
        )
        return EnvironmentSizing(
            environment=environment,
            apps=apps,
            replicas=replicas,
            headroom_percent=headroom,
            raw_cpu=raw_cpu,
            raw_ram_gb=raw_ram,
            effective_cpu=effective_cpu,
            effective_ram_gb=effective_ram,
            node_groups=tuple(node_groups),
            standby_capacity=standby,
        )

    def _size_shared_groups(
        self,
        environments: List[EnvironmentSizing],
        node_specs: NodeRoleSpecs,
        ha_dr: HADRConfig,
        distribution: DistributionInfo,
    ) -> Tuple[NodeGroup, ...]:
        """Size the infra pool and control plane of a single shared cluster."""
        sized = [env for env in environments if env.apps.total > 0]
        if not sized:
            return ()
        is_prod = any(env.is_prod for env in sized)
        total_apps = sum(env.apps.total for env in sized)
        total_workers = sum(env.workers for env in sized)

        groups: List[NodeGroup] = []
        if distribution.has_infra_nodes:
            infra = self.apply_ha_dr(
                self.infra_nodes(total_apps, is_prod), is_prod, 1.0, ha_dr.availability_zones
            )
            groups.append(NodeGroup(NodeRole.INFRA, infra, node_specs.spec_for(NodeRole.INFRA, is_prod)))
        control_plane = self.control_plane_nodes(distribution, ha_dr, total_workers)
        if control_plane:
            groups.append(
                NodeGroup(NodeRole.CONTROL_PLANE, control_plane,
                          node_specs.spec_for(NodeRole.CONTROL_PLANE, is_prod))
            )
        return tuple(groups)

    @staticmethod
    def infra_nodes(app_count: int, is_prod: bool) -> int:
        """Infra nodes for routers, registry and monitoring."""
        if app_count <= 0:
            return 0
        count = max(MIN_INFRA_NODES, int(math.ceil(app_count / APPS_PER_INFRA_NODE)))
        if is_prod and app_count >= LARGE_PROD_APP_THRESHOLD:
            count = max(count, LARGE_PROD_MIN_INFRA_NODES)
        return min(count, MAX_INFRA_NODES)

    @staticmethod
    def control_plane_nodes(distribution: DistributionInfo, ha_dr: HADRConfig, workers: int) -> int:
        """Control-plane node count for one cluster."""
        if distribution.is_managed_control_plane or ha_dr.control_plane_ha == ControlPlaneHA.MANAGED:
            return 0
        if ha_dr.control_plane_ha == ControlPlaneHA.SINGLE:
            return 1
        count = ha_dr.control_plane_nodes
        if workers > LARGE_CLUSTER_WORKER_THRESHOLD:
            count = max(count, LARGE_CLUSTER_CONTROL_PLANE_NODES)
        return count

    @staticmethod
    def apply_ha_dr(count: int, is_prod: bool, standby: float, availability_zones: int) -> int:
        """
        Add standby capacity, then spread production nodes evenly across zones.

        Rounding to the zone multiple last keeps the production pool evenly
        spread after standby capacity is added.
        """
        if count <= 0:
            return 0
        if standby != 1.0:
            count = ceil_nodes(count * standby)
        if is_prod:
            count = round_up_to_multiple(count, availability_zones)
        return count


def compute_sizing(
    workload_config: WorkloadConfig,
    node_specs: NodeRoleSpecs = DEFAULT_NODE_SPECS,
    overcommit: Optional[OvercommitConfig] = None,
    ha_dr_config: Optional[HADRConfig] = None,
    tier_catalogue: Optional[TierCatalogue] = None,
) -> SizingResult:
    """
    Compute per-environment and aggregate node/CPU/RAM/disk totals.

    Tier footprints come from ``tier_catalogue`` when given, otherwise from
    the catalogue of the workload's technology.
    """
    aggregator = ResourceAggregator(tier_catalogue=tier_catalogue)
    return aggregator.compute(workload_config, node_specs, overcommit, ha_dr_config)
