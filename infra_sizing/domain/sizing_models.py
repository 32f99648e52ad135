"""
Domain models for sizing results.
Defines node groups, per-environment sizing and the aggregate result.
"""
from typing import List, Dict, Any, Optional, Tuple
from dataclasses import dataclass

from infra_sizing.domain.catalogue import EnvironmentKind, NodeRole, NodeSpec, Technology
from infra_sizing.domain.workload_models import AppCount, ClusterMode


@dataclass(frozen=True)
class NodeGroup:
    """A set of identical nodes serving one role."""
    role: NodeRole
    count: int
    spec: NodeSpec

    @property
    def total_cpu(self) -> float:
        return self.count * self.spec.cpu

    @property
    def total_ram_gb(self) -> float:
        return self.count * self.spec.ram_gb

    @property
    def total_disk_gb(self) -> float:
        return self.count * self.spec.disk_gb

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "role": self.role.value,
            "count": self.count,
            "spec": self.spec.to_dict(),
            "total_cpu": self.total_cpu,
            "total_ram_gb": self.total_ram_gb,
            "total_disk_gb": self.total_disk_gb,
        }


@dataclass(frozen=True)
class EnvironmentSizing:
    """Sizing of a single environment."""
    environment: EnvironmentKind
    apps: AppCount
    replicas: int
    headroom_percent: float
    raw_cpu: float
    raw_ram_gb: float
    effective_cpu: float
    effective_ram_gb: float
    node_groups: Tuple[NodeGroup, ...]
    # Multiplier for standby capacity carried by this environment's nodes.
    standby_capacity: float = 1.0

    @property
    def is_prod(self) -> bool:
        return self.environment.is_prod

    def group(self, role: NodeRole) -> Optional[NodeGroup]:
        for node_group in self.node_groups:
            if node_group.role == role:
                return node_group
        return None

    def nodes_for(self, role: NodeRole) -> int:
        node_group = self.group(role)
        return node_group.count if node_group else 0

    @property
    def workers(self) -> int:
        return self.nodes_for(NodeRole.WORKER)

    @property
    def total_nodes(self) -> int:
        return sum(node_group.count for node_group in self.node_groups)

    @property
    def total_cpu(self) -> float:
        return sum(node_group.total_cpu for node_group in self.node_groups)

    @property
    def total_ram_gb(self) -> float:
        return sum(node_group.total_ram_gb for node_group in self.node_groups)

    @property
    def total_disk_gb(self) -> float:
        return sum(node_group.total_disk_gb for node_group in self.node_groups)

    @property
    def worker_cpu_capacity(self) -> float:
        worker_group = self.group(NodeRole.WORKER)
        return worker_group.total_cpu if worker_group else 0.0

    @property
    def worker_ram_capacity_gb(self) -> float:
        worker_group = self.group(NodeRole.WORKER)
        return worker_group.total_ram_gb if worker_group else 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "environment": self.environment.value,
            "environment_name": self.environment.display_name,
            "is_prod": self.is_prod,
            "apps": self.apps.to_dict(),
            "replicas": self.replicas,
            "headroom_percent": self.headroom_percent,
            "raw_cpu": round(self.raw_cpu, 3),
            "raw_ram_gb": round(self.raw_ram_gb, 3),
            "effective_cpu": round(self.effective_cpu, 3),
            "effective_ram_gb": round(self.effective_ram_gb, 3),
            "node_groups": [node_group.to_dict() for node_group in self.node_groups],
            "standby_capacity": self.standby_capacity,
            "total_nodes": self.total_nodes,
            "total_cpu": self.total_cpu,
            "total_ram_gb": self.total_ram_gb,
            "total_disk_gb": self.total_disk_gb,
        }


@dataclass(frozen=True)
class SizingResult:
    """Per-environment and aggregate node/resource totals."""
    distribution: str
    distribution_name: str
    is_managed_control_plane: bool
    cluster_mode: ClusterMode
    environments: Tuple[EnvironmentSizing, ...]
    shared_node_groups: Tuple[NodeGroup, ...] = ()
    ha_dr_summary: str = "Basic (no HA/DR)"
    ha_dr_cost_multiplier: float = 1.0
    availability_zones: int = 1
    technology: Technology = Technology.DOTNET

    def environment(self, environment: EnvironmentKind) -> Optional[EnvironmentSizing]:
        for env_sizing in self.environments:
            if env_sizing.environment == environment:
                return env_sizing
        return None

    @property
    def cluster_count(self) -> int:
        """Number of clusters (each carrying its own control plane)."""
        sized = [env for env in self.environments if env.total_nodes > 0]
        if self.cluster_mode == ClusterMode.SHARED_CLUSTER:
            return 1 if sized else 0
        return len(sized)

    def _all_groups(self) -> List[NodeGroup]:
        groups = list(self.shared_node_groups)
        for env_sizing in self.environments:
            groups.extend(env_sizing.node_groups)
        return groups

    def nodes_for(self, role: NodeRole) -> int:
        return sum(group.count for group in self._all_groups() if group.role == role)

    @property
    def total_nodes(self) -> int:
        return sum(group.count for group in self._all_groups())

    @property
    def total_workers(self) -> int:
        return self.nodes_for(NodeRole.WORKER)

    @property
    def total_cpu(self) -> float:
        return sum(group.total_cpu for group in self._all_groups())

    @property
    def total_ram_gb(self) -> float:
        return sum(group.total_ram_gb for group in self._all_groups())

    @property
    def total_disk_gb(self) -> float:
        return sum(group.total_disk_gb for group in self._all_groups())

    @property
    def total_apps(self) -> int:
        return sum(env_sizing.apps.total for env_sizing in self.environments)

    @property
    def total_effective_cpu(self) -> float:
        return sum(env_sizing.effective_cpu for env_sizing in self.environments)

    @property
    def total_effective_ram_gb(self) -> float:
        return sum(env_sizing.effective_ram_gb for env_sizing in self.environments)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "distribution": self.distribution,
            "distribution_name": self.distribution_name,
            "is_managed_control_plane": self.is_managed_control_plane,
            "cluster_mode": self.cluster_mode.value,
            "cluster_count": self.cluster_count,
            "technology": self.technology.value,
            "environments": [env_sizing.to_dict() for env_sizing in self.environments],
            "shared_node_groups": [group.to_dict() for group in self.shared_node_groups],
            "ha_dr_summary": self.ha_dr_summary,
            "ha_dr_cost_multiplier": self.ha_dr_cost_multiplier,
            "availability_zones": self.availability_zones,
            "totals": {
                "nodes": self.total_nodes,
                "control_plane_nodes": self.nodes_for(NodeRole.CONTROL_PLANE),
                "infra_nodes": self.nodes_for(NodeRole.INFRA),
                "worker_nodes": self.total_workers,
                "cpu": self.total_cpu,
                "ram_gb": self.total_ram_gb,
                "disk_gb": self.total_disk_gb,
                "apps": self.total_apps,
            },
        }
