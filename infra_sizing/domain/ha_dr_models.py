"""
Domain models for high availability and disaster recovery posture.
"""
from typing import Dict, Any, List, Mapping, Optional
from dataclasses import dataclass, replace
from enum import Enum
from types import MappingProxyType

from infra_sizing.domain.errors import ConfigurationError


# Capacity of a warm standby site as a percentage of production.
WARM_STANDBY_CAPACITY_PERCENT = 40.0


class ControlPlaneHA(str, Enum):
    MANAGED = "managed"
    SINGLE = "single"
    STACKED_HA = "stacked_ha"
    EXTERNAL_ETCD = "external_etcd"


class NodeDistribution(str, Enum):
    SINGLE_AZ = "single_az"
    DUAL_AZ = "dual_az"
    MULTI_AZ = "multi_az"
    MULTI_REGION = "multi_region"


class DRPattern(str, Enum):
    NONE = "none"
    BACKUP_RESTORE = "backup_restore"
    WARM_STANDBY = "warm_standby"
    HOT_STANDBY = "hot_standby"
    ACTIVE_ACTIVE = "active_active"


class BackupStrategy(str, Enum):
    NONE = "none"
    VELERO = "velero"
    KASTEN = "kasten"
    PORTWORX = "portworx"
    CLOUD_NATIVE = "cloud_native"
    CUSTOM = "custom"


@dataclass(frozen=True)
class DistributionRule:
    """AZ constraints for a node distribution."""
    rank: int
    min_zones: int
    exact: bool
    cost_overhead: float
    label: str


NODE_DISTRIBUTION_RULES: Mapping[NodeDistribution, DistributionRule] = MappingProxyType({
    NodeDistribution.SINGLE_AZ: DistributionRule(0, 1, True, 0.0, "Single AZ"),
    NodeDistribution.DUAL_AZ: DistributionRule(1, 2, True, 0.02, "Dual AZ"),
    NodeDistribution.MULTI_AZ: DistributionRule(2, 3, False, 0.03, "Multi-AZ"),
    NodeDistribution.MULTI_REGION: DistributionRule(3, 2, False, 0.20, "Multi-region"),
})


@dataclass(frozen=True)
class DRProfile:
    """Recovery objectives, standby capacity and cost overhead of a DR pattern."""
    rto_minutes: Optional[int]
    rpo_minutes: Optional[int]
    standby_capacity: float  # multiplier applied to production node counts
    cost_overhead: float
    label: str


DR_PROFILES: Mapping[DRPattern, DRProfile] = MappingProxyType({
    DRPattern.NONE: DRProfile(None, None, 1.0, 0.0, "No DR"),
    DRPattern.BACKUP_RESTORE: DRProfile(24 * 60, 24 * 60, 1.0, 0.08, "Backup & restore"),
    DRPattern.WARM_STANDBY: DRProfile(
        4 * 60, 60, 1.0 + WARM_STANDBY_CAPACITY_PERCENT / 100, 0.40, "Warm standby"
    ),
    DRPattern.HOT_STANDBY: DRProfile(15, 5, 2.0, 0.90, "Hot standby"),
    DRPattern.ACTIVE_ACTIVE: DRProfile(0, 0, 2.0, 1.10, "Active-active"),
})

BACKUP_COST_OVERHEAD: Mapping[BackupStrategy, float] = MappingProxyType({
    BackupStrategy.NONE: 0.0,
    BackupStrategy.VELERO: 0.02,
    BackupStrategy.KASTEN: 0.05,
    BackupStrategy.PORTWORX: 0.08,
    BackupStrategy.CLOUD_NATIVE: 0.03,
    BackupStrategy.CUSTOM: 0.0,
})

BACKUP_LABELS: Mapping[BackupStrategy, str] = MappingProxyType({
    BackupStrategy.VELERO: "Velero",
    BackupStrategy.KASTEN: "Kasten K10",
    BackupStrategy.PORTWORX: "Portworx",
    BackupStrategy.CLOUD_NATIVE: "Cloud-native snapshots",
    BackupStrategy.CUSTOM: "Custom backup",
})

STACKED_HA_OVERHEAD_PER_NODE = 0.10
EXTERNAL_ETCD_OVERHEAD_PER_NODE = 0.12
EXTERNAL_ETCD_BASE_OVERHEAD = 0.15


@dataclass(frozen=True)
class HADRConfig:
    """High availability and disaster recovery configuration."""
    control_plane_ha: ControlPlaneHA = ControlPlaneHA.STACKED_HA
    control_plane_nodes: int = 3
    node_distribution: NodeDistribution = NodeDistribution.SINGLE_AZ
    availability_zones: int = 1
    dr_pattern: DRPattern = DRPattern.NONE
    backup_strategy: BackupStrategy = BackupStrategy.NONE
    backup_frequency_hours: int = 24
    backup_retention_days: int = 30
    rto_minutes: Optional[int] = None
    rpo_minutes: Optional[int] = None

    @property
    def has_ha_control_plane(self) -> bool:
        return self.control_plane_ha in (ControlPlaneHA.STACKED_HA, ControlPlaneHA.EXTERNAL_ETCD)

    @property
    def dr_profile(self) -> DRProfile:
        return DR_PROFILES[self.dr_pattern]

    @property
    def effective_rto_minutes(self) -> Optional[int]:
        """Configured RTO, or the DR pattern's default."""
        if self.rto_minutes is not None:
            return self.rto_minutes
        return self.dr_profile.rto_minutes

    @property
    def effective_rpo_minutes(self) -> Optional[int]:
        if self.rpo_minutes is not None:
            return self.rpo_minutes
        return self.dr_profile.rpo_minutes

    def validate(self) -> None:
        """
        Validate the HA/DR configuration.

        Raises:
            ConfigurationError: If AZ count or control-plane node count is invalid.
        """
        rule = NODE_DISTRIBUTION_RULES[self.node_distribution]
        if self.availability_zones < rule.min_zones:
            raise ConfigurationError(
                "ha_dr.availability_zones",
                f"{rule.label} requires at least {rule.min_zones} availability zone(s)"
            )
        if rule.exact and self.availability_zones != rule.min_zones:
            raise ConfigurationError(
                "ha_dr.availability_zones",
                f"{rule.label} requires exactly {rule.min_zones} availability zone(s)"
            )
        if self.has_ha_control_plane:
            if self.control_plane_nodes < 3 or self.control_plane_nodes % 2 == 0:
                raise ConfigurationError(
                    "ha_dr.control_plane_nodes",
                    "HA control planes need an odd number of nodes, at least 3, for etcd quorum"
                )
        if self.backup_strategy != BackupStrategy.NONE:
            if self.backup_frequency_hours <= 0:
                raise ConfigurationError("ha_dr.backup_frequency_hours", "Backup frequency must be positive")
            if self.backup_retention_days <= 0:
                raise ConfigurationError("ha_dr.backup_retention_days", "Backup retention must be positive")

    def with_node_distribution(self, node_distribution: NodeDistribution) -> "HADRConfig":
        """
        Return a copy using a different node distribution.

        Moving to a stricter distribution raises the AZ count to its minimum.
        Moving to a looser one never raises it; exact distributions pin the
        count to their required value.
        """
        current = NODE_DISTRIBUTION_RULES[self.node_distribution]
        target = NODE_DISTRIBUTION_RULES[node_distribution]
        zones = self.availability_zones
        if target.exact:
            if target.rank > current.rank or zones > target.min_zones:
                zones = target.min_zones
        elif target.rank > current.rank and zones < target.min_zones:
            zones = target.min_zones
        return replace(self, node_distribution=node_distribution, availability_zones=zones)

    def cost_multiplier(self) -> float:
        """Relative infrastructure cost of this posture versus a basic cluster."""
        multiplier = 1.0
        if self.control_plane_ha == ControlPlaneHA.STACKED_HA:
            multiplier += STACKED_HA_OVERHEAD_PER_NODE * (self.control_plane_nodes - 1)
        elif self.control_plane_ha == ControlPlaneHA.EXTERNAL_ETCD:
            multiplier += (
                EXTERNAL_ETCD_OVERHEAD_PER_NODE * (self.control_plane_nodes - 1)
                + EXTERNAL_ETCD_BASE_OVERHEAD
            )
        multiplier += NODE_DISTRIBUTION_RULES[self.node_distribution].cost_overhead
        multiplier += self.dr_profile.cost_overhead
        # Backup tooling is part of every DR pattern, so only priced on its own.
        if self.dr_pattern == DRPattern.NONE:
            multiplier += BACKUP_COST_OVERHEAD[self.backup_strategy]
        return round(multiplier, 4)

    def summary(self) -> str:
        """Short human-readable description of the posture."""
        parts: List[str] = []
        if self.control_plane_ha == ControlPlaneHA.STACKED_HA:
            parts.append(f"{self.control_plane_nodes}-node HA control plane")
        elif self.control_plane_ha == ControlPlaneHA.EXTERNAL_ETCD:
            parts.append(f"{self.control_plane_nodes}-node control plane with external etcd")
        if self.node_distribution != NodeDistribution.SINGLE_AZ:
            label = NODE_DISTRIBUTION_RULES[self.node_distribution].label
            parts.append(f"{label} ({self.availability_zones} zones)")
        if self.dr_pattern != DRPattern.NONE:
            parts.append(f"{self.dr_profile.label} DR")
        if self.backup_strategy != BackupStrategy.NONE:
            parts.append(
                f"{BACKUP_LABELS[self.backup_strategy]} backups every "
                f"{self.backup_frequency_hours}h, {self.backup_retention_days}d retention"
            )
        if not parts:
            return "Basic (no HA/DR)"
        return " • ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "control_plane_ha": self.control_plane_ha.value,
            "control_plane_nodes": self.control_plane_nodes,
            "node_distribution": self.node_distribution.value,
            "availability_zones": self.availability_zones,
            "dr_pattern": self.dr_pattern.value,
            "backup_strategy": self.backup_strategy.value,
            "backup_frequency_hours": self.backup_frequency_hours,
            "backup_retention_days": self.backup_retention_days,
            "rto_minutes": self.effective_rto_minutes,
            "rpo_minutes": self.effective_rpo_minutes,
            "cost_multiplier": self.cost_multiplier(),
            "summary": self.summary(),
        }
