"""
Domain models for multi-year growth projection.
"""
from typing import Dict, Any, Mapping, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from infra_sizing.domain.errors import ConfigurationError


MAX_PROJECTION_YEARS = 10


class GrowthPattern(str, Enum):
    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    S_CURVE = "s_curve"
    CUSTOM = "custom"


class WarningSeverity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"


class RecommendationType(str, Enum):
    ENABLE_AUTOSCALING = "enable_autoscaling"
    UPGRADE_NODE_SIZE = "upgrade_node_size"
    SPLIT_CLUSTER = "split_cluster"
    OPTIMIZE_RESOURCES = "optimize_resources"
    CONSIDER_MANAGED_SERVICE = "consider_managed_service"


@dataclass(frozen=True)
class GrowthConfig:
    """Projection horizon, growth shape and cost settings."""
    projection_years: int = 3
    annual_growth_rate_percent: float = 20.0
    pattern: GrowthPattern = GrowthPattern.LINEAR
    custom_rates_percent: Tuple[float, ...] = ()
    include_cost_projections: bool = True
    inflation_rate_percent: float = 3.0
    show_capacity_warnings: bool = True

    def rate_for_year(self, year: int) -> float:
        """Growth rate of a given year (1-based) as a fraction."""
        if self.pattern == GrowthPattern.CUSTOM:
            return self.custom_rates_percent[year - 1] / 100
        return self.annual_growth_rate_percent / 100

    def validate(self) -> None:
        """
        Validate the growth configuration.

        Raises:
            ConfigurationError: If the horizon, rates or inflation are invalid.
        """
        if not 1 <= self.projection_years <= MAX_PROJECTION_YEARS:
            raise ConfigurationError(
                "growth.projection_years",
                f"Projection years must be between 1 and {MAX_PROJECTION_YEARS}"
            )
        if self.annual_growth_rate_percent < 0:
            raise ConfigurationError("growth.annual_growth_rate_percent", "Growth rate cannot be negative")
        if self.inflation_rate_percent < 0:
            raise ConfigurationError("growth.inflation_rate_percent", "Inflation rate cannot be negative")
        if self.pattern == GrowthPattern.CUSTOM:
            if len(self.custom_rates_percent) < self.projection_years:
                raise ConfigurationError(
                    "growth.custom_rates_percent",
                    f"Custom pattern needs {self.projection_years} yearly rates, "
                    f"got {len(self.custom_rates_percent)}"
                )
            for index, rate in enumerate(self.custom_rates_percent[:self.projection_years]):
                if rate <= -100:
                    raise ConfigurationError(
                        f"growth.custom_rates_percent[{index}]",
                        "Yearly rate must be greater than -100%"
                    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "projection_years": self.projection_years,
            "annual_growth_rate_percent": self.annual_growth_rate_percent,
            "pattern": self.pattern.value,
            "custom_rates_percent": list(self.custom_rates_percent),
            "include_cost_projections": self.include_cost_projections,
            "inflation_rate_percent": self.inflation_rate_percent,
            "show_capacity_warnings": self.show_capacity_warnings,
        }


@dataclass(frozen=True)
class CapacityWarning:
    """Projected demand exceeding currently sized capacity."""
    year: int
    resource: str  # "cpu" | "memory" | "nodes"
    required: float
    available: float

    @property
    def shortfall(self) -> float:
        return self.required - self.available

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "year": self.year,
            "resource": self.resource,
            "required": round(self.required, 2),
            "available": round(self.available, 2),
            "shortfall": round(self.shortfall, 2),
        }


@dataclass(frozen=True)
class SizingSnapshot:
    """Projected resource totals for one year."""
    apps: int
    nodes: int
    worker_nodes: int
    cpu: float
    ram_gb: float
    disk_gb: float
    effective_cpu: float
    effective_ram_gb: float
    nodes_by_environment: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "apps": self.apps,
            "nodes": self.nodes,
            "worker_nodes": self.worker_nodes,
            "cpu": self.cpu,
            "ram_gb": self.ram_gb,
            "disk_gb": self.disk_gb,
            "effective_cpu": round(self.effective_cpu, 3),
            "effective_ram_gb": round(self.effective_ram_gb, 3),
            "nodes_by_environment": dict(self.nodes_by_environment),
        }


@dataclass(frozen=True)
class CostSnapshot:
    """Projected annual cost for one year."""
    annual_cost: float
    growth_factor: float
    inflation_factor: float

    @property
    def monthly_cost(self) -> float:
        return self.annual_cost / 12

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "annual_cost": round(self.annual_cost, 2),
            "monthly_cost": round(self.monthly_cost, 2),
            "growth_factor": round(self.growth_factor, 4),
            "inflation_factor": round(self.inflation_factor, 4),
        }


@dataclass(frozen=True)
class YearProjection:
    """One projected year."""
    year: int
    growth_factor: float
    sizing_snapshot: SizingSnapshot
    cost_snapshot: Optional[CostSnapshot] = None
    capacity_warnings: Tuple[CapacityWarning, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "year": self.year,
            "growth_factor": round(self.growth_factor, 4),
            "sizing": self.sizing_snapshot.to_dict(),
            "cost": self.cost_snapshot.to_dict() if self.cost_snapshot else None,
            "capacity_warnings": [warning.to_dict() for warning in self.capacity_warnings],
        }


@dataclass(frozen=True)
class ClusterLimitWarning:
    """Projected node count approaching a distribution's per-cluster limit."""
    year: int
    severity: WarningSeverity
    projected_nodes: int
    max_nodes: int
    message: str

    @property
    def utilization_percent(self) -> float:
        return self.projected_nodes / self.max_nodes * 100 if self.max_nodes else 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "year": self.year,
            "severity": self.severity.value,
            "projected_nodes": self.projected_nodes,
            "max_nodes": self.max_nodes,
            "utilization_percent": round(self.utilization_percent, 1),
            "message": self.message,
        }


@dataclass(frozen=True)
class GrowthRecommendation:
    type: RecommendationType
    title: str
    description: str
    year: Optional[int] = None
    potential_savings: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "year": self.year,
            "potential_savings": round(self.potential_savings, 2) if self.potential_savings is not None else None,
        }


@dataclass(frozen=True)
class GrowthSummary:
    """Headline numbers over the projection horizon."""
    base_apps: int
    final_apps: int
    base_nodes: int
    final_nodes: int
    total_cost: Optional[float]
    average_yearly_cost: Optional[float]
    cost_increase_percent: Optional[float]
    capacity_warning_count: int
    critical_warning_count: int

    @property
    def app_growth(self) -> int:
        return self.final_apps - self.base_apps

    @property
    def app_growth_percent(self) -> float:
        return (self.app_growth / self.base_apps * 100) if self.base_apps else 0.0

    @property
    def node_growth(self) -> int:
        return self.final_nodes - self.base_nodes

    @property
    def node_growth_percent(self) -> float:
        return (self.node_growth / self.base_nodes * 100) if self.base_nodes else 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "base_apps": self.base_apps,
            "final_apps": self.final_apps,
            "app_growth": self.app_growth,
            "app_growth_percent": round(self.app_growth_percent, 1),
            "base_nodes": self.base_nodes,
            "final_nodes": self.final_nodes,
            "node_growth": self.node_growth,
            "node_growth_percent": round(self.node_growth_percent, 1),
            "total_cost": round(self.total_cost, 2) if self.total_cost is not None else None,
            "average_yearly_cost": (
                round(self.average_yearly_cost, 2) if self.average_yearly_cost is not None else None
            ),
            "cost_increase_percent": (
                round(self.cost_increase_percent, 1) if self.cost_increase_percent is not None else None
            ),
            "capacity_warning_count": self.capacity_warning_count,
            "critical_warning_count": self.critical_warning_count,
        }


@dataclass(frozen=True)
class GrowthPlan:
    """Projections plus summary, cluster limit warnings and recommendations."""
    config: GrowthConfig
    projections: Tuple[YearProjection, ...]
    summary: GrowthSummary
    cluster_warnings: Tuple[ClusterLimitWarning, ...] = ()
    recommendations: Tuple[GrowthRecommendation, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "config": self.config.to_dict(),
            "projections": [projection.to_dict() for projection in self.projections],
            "summary": self.summary.to_dict(),
            "cluster_warnings": [warning.to_dict() for warning in self.cluster_warnings],
            "recommendations": [rec.to_dict() for rec in self.recommendations],
        }
