"""
Static catalogue models: size tiers, environments, node roles and
Kubernetes distribution capabilities.
"""
from typing import Dict, Any, Mapping, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from infra_sizing.domain.errors import ConfigurationError


class SizeTier(str, Enum):
    """Application size tier."""
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    XLARGE = "xlarge"


class Technology(str, Enum):
    """Application runtime; selects the per-application tier footprints."""
    DOTNET = "dotnet"
    JAVA = "java"
    NODEJS = "nodejs"
    PYTHON = "python"
    GO = "go"
    MENDIX = "mendix"
    OUTSYSTEMS = "outsystems"

    @property
    def display_name(self) -> str:
        return TECHNOLOGY_DISPLAY_NAMES[self]


TECHNOLOGY_DISPLAY_NAMES: Mapping[Technology, str] = MappingProxyType({
    Technology.DOTNET: ".NET",
    Technology.JAVA: "Java",
    Technology.NODEJS: "Node.js",
    Technology.PYTHON: "Python",
    Technology.GO: "Go",
    Technology.MENDIX: "Mendix",
    Technology.OUTSYSTEMS: "OutSystems",
})


class EnvironmentKind(str, Enum):
    """Deployment environment."""
    DEV = "dev"
    TEST = "test"
    STAGE = "stage"
    PROD = "prod"
    DR = "dr"

    @property
    def is_prod(self) -> bool:
        """Prod and DR share the production sizing bucket."""
        return self in (EnvironmentKind.PROD, EnvironmentKind.DR)

    @property
    def display_name(self) -> str:
        return ENVIRONMENT_DISPLAY_NAMES[self]


ENVIRONMENT_ORDER: Tuple[EnvironmentKind, ...] = (
    EnvironmentKind.DEV,
    EnvironmentKind.TEST,
    EnvironmentKind.STAGE,
    EnvironmentKind.PROD,
    EnvironmentKind.DR,
)

ENVIRONMENT_DISPLAY_NAMES: Mapping[EnvironmentKind, str] = MappingProxyType({
    EnvironmentKind.DEV: "Development",
    EnvironmentKind.TEST: "Test",
    EnvironmentKind.STAGE: "Staging",
    EnvironmentKind.PROD: "Production",
    EnvironmentKind.DR: "Disaster Recovery",
})


class NodeRole(str, Enum):
    """Kubernetes node role."""
    CONTROL_PLANE = "control_plane"
    WORKER = "worker"
    INFRA = "infra"


class HostingProvider(str, Enum):
    """Where a distribution's nodes run."""
    ON_PREM = "on_prem"
    AWS = "aws"
    AZURE = "azure"
    GCP = "gcp"
    OCI = "oci"


class LicenseBasis(str, Enum):
    """How a distribution subscription is billed."""
    NONE = "none"
    PER_NODE = "per_node"
    PER_CORE = "per_core"


@dataclass(frozen=True)
class TierSpec:
    """CPU and RAM footprint of one application of a size tier."""
    cpu: float
    ram_gb: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"cpu": self.cpu, "ram_gb": self.ram_gb}


@dataclass(frozen=True)
class TierCatalogue:
    """Immutable mapping of size tier to per-application footprint."""
    tiers: Mapping[SizeTier, TierSpec]

    def spec_for(self, tier: SizeTier) -> TierSpec:
        try:
            return self.tiers[tier]
        except KeyError:
            raise ConfigurationError("tier_catalogue", f"No footprint defined for tier '{tier.value}'")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {tier.value: spec.to_dict() for tier, spec in self.tiers.items()}


@dataclass(frozen=True)
class NodeSpec:
    """Capacity of a single node."""
    cpu: float
    ram_gb: float
    disk_gb: float

    def validate(self, field_name: str) -> None:
        if self.cpu <= 0:
            raise ConfigurationError(f"{field_name}.cpu", "Node CPU must be greater than zero")
        if self.ram_gb <= 0:
            raise ConfigurationError(f"{field_name}.ram_gb", "Node RAM must be greater than zero")
        if self.disk_gb < 0:
            raise ConfigurationError(f"{field_name}.disk_gb", "Node disk cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"cpu": self.cpu, "ram_gb": self.ram_gb, "disk_gb": self.disk_gb}


@dataclass(frozen=True)
class NodeRoleSpecs:
    """Node specs for every role in the prod and non-prod buckets."""
    prod: Mapping[NodeRole, NodeSpec]
    non_prod: Mapping[NodeRole, NodeSpec]

    def spec_for(self, role: NodeRole, is_prod: bool) -> NodeSpec:
        table = self.prod if is_prod else self.non_prod
        try:
            return table[role]
        except KeyError:
            bucket = "prod" if is_prod else "non_prod"
            raise ConfigurationError(f"node_specs.{bucket}", f"No spec defined for role '{role.value}'")

    def validate(self) -> None:
        for bucket, table in (("prod", self.prod), ("non_prod", self.non_prod)):
            for role, spec in table.items():
                spec.validate(f"node_specs.{bucket}.{role.value}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "prod": {role.value: spec.to_dict() for role, spec in self.prod.items()},
            "non_prod": {role.value: spec.to_dict() for role, spec in self.non_prod.items()},
        }


@dataclass(frozen=True)
class DistributionInfo:
    """Capabilities of a Kubernetes distribution."""
    key: str
    display_name: str
    is_managed_control_plane: bool
    has_infra_nodes: bool
    provider: HostingProvider
    max_nodes_per_cluster: int = 2000
    license_basis: LicenseBasis = LicenseBasis.NONE
    vendor: Optional[str] = None

    @property
    def is_on_prem(self) -> bool:
        return self.provider == HostingProvider.ON_PREM

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "key": self.key,
            "display_name": self.display_name,
            "is_managed_control_plane": self.is_managed_control_plane,
            "has_infra_nodes": self.has_infra_nodes,
            "provider": self.provider.value,
            "max_nodes_per_cluster": self.max_nodes_per_cluster,
            "license_basis": self.license_basis.value,
            "vendor": self.vendor,
        }


@dataclass(frozen=True)
class SizingDefaults:
    """Per-environment defaults applied when a workload leaves a value unset."""
    replicas: Mapping[EnvironmentKind, int] = field(default_factory=lambda: MappingProxyType({
        EnvironmentKind.DEV: 1,
        EnvironmentKind.TEST: 1,
        EnvironmentKind.STAGE: 2,
        EnvironmentKind.PROD: 3,
        EnvironmentKind.DR: 3,
    }))
    headroom_percent: Mapping[EnvironmentKind, float] = field(default_factory=lambda: MappingProxyType({
        EnvironmentKind.DEV: 33.0,
        EnvironmentKind.TEST: 33.0,
        EnvironmentKind.STAGE: 0.0,
        EnvironmentKind.PROD: 37.5,
        EnvironmentKind.DR: 37.5,
    }))
