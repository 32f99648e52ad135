"""
Domain models for workload descriptions.
Defines application counts, overcommit ratios and the workload configuration
consumed by the resource aggregator.
"""
from typing import Dict, Any, FrozenSet, Mapping, Optional
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from infra_sizing.domain.catalogue import (
    SizeTier,
    EnvironmentKind,
    ENVIRONMENT_ORDER,
    SizingDefaults,
    Technology,
)
from infra_sizing.domain.errors import ConfigurationError


MIN_REPLICAS = 1
MAX_REPLICAS = 10
MAX_CPU_OVERCOMMIT = 10.0
MAX_MEMORY_OVERCOMMIT = 4.0


class ClusterMode(str, Enum):
    """How environments map onto clusters."""
    MULTI_CLUSTER = "multi_cluster"  # one cluster per environment
    SHARED_CLUSTER = "shared_cluster"  # one cluster, environments as namespaces


@dataclass(frozen=True)
class AppCount:
    """Number of applications per size tier in one environment."""
    small: int = 0
    medium: int = 0
    large: int = 0
    xlarge: int = 0

    @property
    def total(self) -> int:
        return self.small + self.medium + self.large + self.xlarge

    def count_for(self, tier: SizeTier) -> int:
        return getattr(self, tier.name.lower())

    def validate(self, field_name: str) -> None:
        for tier in SizeTier:
            if self.count_for(tier) < 0:
                raise ConfigurationError(
                    f"{field_name}.{tier.value}",
                    "Application count cannot be negative"
                )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "small": self.small,
            "medium": self.medium,
            "large": self.large,
            "xlarge": self.xlarge,
            "total": self.total,
        }


ZERO_APPS = AppCount()


@dataclass(frozen=True)
class OvercommitRatio:
    """CPU and memory overcommit ratios; 1.0 means no overcommit."""
    cpu: float = 1.0
    memory: float = 1.0

    def validate(self, field_name: str) -> None:
        if self.cpu < 1.0:
            raise ConfigurationError(f"{field_name}.cpu", "CPU overcommit ratio must be at least 1.0")
        if self.cpu > MAX_CPU_OVERCOMMIT:
            raise ConfigurationError(
                f"{field_name}.cpu",
                f"CPU overcommit ratio cannot exceed {MAX_CPU_OVERCOMMIT}"
            )
        if self.memory < 1.0:
            raise ConfigurationError(f"{field_name}.memory", "Memory overcommit ratio must be at least 1.0")
        if self.memory > MAX_MEMORY_OVERCOMMIT:
            raise ConfigurationError(
                f"{field_name}.memory",
                f"Memory overcommit ratio cannot exceed {MAX_MEMORY_OVERCOMMIT}"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"cpu": self.cpu, "memory": self.memory}


@dataclass(frozen=True)
class OvercommitConfig:
    """Overcommit ratios for the prod and non-prod buckets."""
    prod: OvercommitRatio = field(default_factory=OvercommitRatio)
    non_prod: OvercommitRatio = field(default_factory=OvercommitRatio)

    def ratio_for(self, environment: EnvironmentKind) -> OvercommitRatio:
        return self.prod if environment.is_prod else self.non_prod

    def validate(self) -> None:
        self.prod.validate("overcommit.prod")
        self.non_prod.validate("overcommit.non_prod")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"prod": self.prod.to_dict(), "non_prod": self.non_prod.to_dict()}


@dataclass(frozen=True)
class WorkloadConfig:
    """
    Workload description for one sizing run.

    Missing per-environment entries follow one policy, exposed through the
    ``*_for`` helpers: a disabled or absent environment has zero applications,
    and absent replica/headroom entries take the documented defaults.
    """
    distribution: str
    enabled_environments: FrozenSet[EnvironmentKind] = frozenset({EnvironmentKind.PROD})
    app_counts: Mapping[EnvironmentKind, AppCount] = field(default_factory=dict)
    replicas: Mapping[EnvironmentKind, int] = field(default_factory=dict)
    headroom_percent: Mapping[EnvironmentKind, float] = field(default_factory=dict)
    headroom_enabled: bool = True
    cluster_mode: ClusterMode = ClusterMode.MULTI_CLUSTER
    technology: Technology = Technology.DOTNET
    defaults: SizingDefaults = field(default_factory=SizingDefaults)

    def is_enabled(self, environment: EnvironmentKind) -> bool:
        return environment in self.enabled_environments

    def app_count_for(self, environment: EnvironmentKind) -> AppCount:
        """Applications in an environment; zero when disabled or absent."""
        if not self.is_enabled(environment):
            return ZERO_APPS
        return self.app_counts.get(environment, ZERO_APPS)

    def replicas_for(self, environment: EnvironmentKind) -> int:
        value = self.replicas.get(environment)
        if value is None:
            return self.defaults.replicas.get(environment, MIN_REPLICAS)
        return value

    def headroom_for(self, environment: EnvironmentKind) -> float:
        """Headroom percentage; zero when headroom is disabled."""
        if not self.headroom_enabled:
            return 0.0
        value = self.headroom_percent.get(environment)
        if value is None:
            return self.defaults.headroom_percent.get(environment, 0.0)
        return value

    def ordered_environments(self):
        """Enabled environments in canonical order."""
        return [env for env in ENVIRONMENT_ORDER if self.is_enabled(env)]

    def validate(self) -> None:
        """
        Validate the workload.

        Raises:
            ConfigurationError: If any count, replica or headroom value is invalid.
        """
        if not self.distribution:
            raise ConfigurationError("distribution", "Distribution is required")
        for environment, counts in self.app_counts.items():
            counts.validate(f"app_counts.{environment.value}")
        for environment in ENVIRONMENT_ORDER:
            replicas = self.replicas_for(environment)
            if not MIN_REPLICAS <= replicas <= MAX_REPLICAS:
                raise ConfigurationError(
                    f"replicas.{environment.value}",
                    f"Replicas must be between {MIN_REPLICAS} and {MAX_REPLICAS}"
                )
            if self.headroom_for(environment) < 0:
                raise ConfigurationError(
                    f"headroom_percent.{environment.value}",
                    "Headroom cannot be negative"
                )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "distribution": self.distribution,
            "enabled_environments": [env.value for env in self.ordered_environments()],
            "app_counts": {
                env.value: self.app_count_for(env).to_dict() for env in self.ordered_environments()
            },
            "replicas": {env.value: self.replicas_for(env) for env in self.ordered_environments()},
            "headroom_percent": {
                env.value: self.headroom_for(env) for env in self.ordered_environments()
            },
            "headroom_enabled": self.headroom_enabled,
            "cluster_mode": self.cluster_mode.value,
            "technology": self.technology.value,
        }


def freeze_mapping(values: Optional[Mapping]) -> Mapping:
    """Read-only copy of a caller-supplied mapping."""
    return MappingProxyType(dict(values or {}))
