"""
API routes for cluster and VM sizing, pricing and growth projection.
"""
from dataclasses import replace
from typing import Dict, Any, List, Optional
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
import logging

from infra_sizing.core.config import config
from infra_sizing.domain.catalogue import EnvironmentKind, NodeRole, NodeRoleSpecs, NodeSpec, SizeTier, Technology
from infra_sizing.domain.errors import ConfigurationError
from infra_sizing.domain.growth_models import GrowthConfig, GrowthPattern
from infra_sizing.domain.ha_dr_models import (
    BackupStrategy,
    ControlPlaneHA,
    DRPattern,
    HADRConfig,
    NodeDistribution,
)
from infra_sizing.domain.pricing_models import (
    AddOn,
    DeploymentConfig,
    DeploymentType,
    Discount,
    DiscountScope,
    DiscountType,
    InfraProvider,
    LowCodePlatform,
    PricingResult,
    SelfManagedCloud,
    ServiceOffering,
    ServiceRegion,
)
from infra_sizing.domain.sizing_models import SizingResult
from infra_sizing.domain.vm_models import (
    HAPattern,
    LoadBalancerOption,
    ServerRole,
    VMEnvironmentConfig,
    VMRoleConfig,
    VMSizingInput,
)
from infra_sizing.domain.workload_models import (
    AppCount,
    ClusterMode,
    OvercommitConfig,
    OvercommitRatio,
    WorkloadConfig,
    freeze_mapping,
)
from infra_sizing.services.growth_projector import build_growth_plan, build_vm_growth_plan
from infra_sizing.services.infrastructure_pricing import InfrastructurePricingError
from infra_sizing.services.pricing_engine import PricingEngineError, compute_pricing
from infra_sizing.services.pricing_tables import DEFAULT_PRICING_TABLES
from infra_sizing.services.resource_aggregator import compute_sizing
from infra_sizing.services.tier_catalogue import DEFAULT_NODE_SPECS, list_distributions
from infra_sizing.services.validation_rules import evaluate_configuration
from infra_sizing.services.vm_sizing import compute_vm_sizing


logger = logging.getLogger(__name__)
router = APIRouter()

PRICING_TABLES = replace(
    DEFAULT_PRICING_TABLES,
    hours_per_month=config.HOURS_PER_MONTH,
    months_per_year=config.MONTHS_PER_YEAR,
)


class AppCountModel(BaseModel):
    """Applications per size tier."""
    small: int = Field(default=0, description="Small applications")
    medium: int = Field(default=0, description="Medium applications")
    large: int = Field(default=0, description="Large applications")
    xlarge: int = Field(default=0, description="Extra-large applications")


class OvercommitRatioModel(BaseModel):
    cpu: float = Field(default=1.0, description="CPU overcommit ratio")
    memory: float = Field(default=1.0, description="Memory overcommit ratio")


class OvercommitModel(BaseModel):
    prod: OvercommitRatioModel = Field(default_factory=OvercommitRatioModel)
    non_prod: OvercommitRatioModel = Field(default_factory=OvercommitRatioModel)


class NodeSpecModel(BaseModel):
    cpu: float = Field(..., description="vCPU per node")
    ram_gb: float = Field(..., description="RAM per node in GB")
    disk_gb: float = Field(default=0, description="Disk per node in GB")


class NodeSpecsModel(BaseModel):
    """Per-role overrides; roles left out keep the default spec."""
    prod: Dict[NodeRole, NodeSpecModel] = Field(default_factory=dict)
    non_prod: Dict[NodeRole, NodeSpecModel] = Field(default_factory=dict)


class HADRModel(BaseModel):
    control_plane_ha: ControlPlaneHA = Field(default=ControlPlaneHA.STACKED_HA)
    control_plane_nodes: int = Field(default=3, description="Control plane nodes under HA")
    node_distribution: NodeDistribution = Field(default=NodeDistribution.SINGLE_AZ)
    availability_zones: int = Field(default=1)
    dr_pattern: DRPattern = Field(default=DRPattern.NONE)
    backup_strategy: BackupStrategy = Field(default=BackupStrategy.NONE)
    backup_frequency_hours: int = Field(default=24)
    backup_retention_days: int = Field(default=30)
    rto_minutes: Optional[int] = Field(default=None, description="Override of the DR pattern RTO")
    rpo_minutes: Optional[int] = Field(default=None, description="Override of the DR pattern RPO")


class SizingRequest(BaseModel):
    """Request model for cluster sizing."""
    distribution: str = Field(..., description="Distribution key, e.g. 'openshift' or 'eks'")
    technology: Technology = Field(default=Technology.DOTNET, description="Application runtime")
    environments: List[EnvironmentKind] = Field(
        default_factory=lambda: [EnvironmentKind.PROD],
        description="Enabled environments"
    )
    app_counts: Dict[EnvironmentKind, AppCountModel] = Field(default_factory=dict)
    replicas: Dict[EnvironmentKind, int] = Field(default_factory=dict)
    headroom_percent: Dict[EnvironmentKind, float] = Field(default_factory=dict)
    headroom_enabled: bool = Field(default=True)
    cluster_mode: ClusterMode = Field(default=ClusterMode.MULTI_CLUSTER)
    overcommit: Optional[OvercommitModel] = Field(None, description="Overcommit ratios")
    ha_dr: Optional[HADRModel] = Field(None, description="HA/DR configuration")
    node_specs: Optional[NodeSpecsModel] = Field(None, description="Node spec overrides")


class DiscountModel(BaseModel):
    type: DiscountType = Field(..., description="percentage or fixed_amount")
    scope: DiscountScope = Field(default=DiscountScope.TOTAL)
    value: float = Field(..., description="Percentage (0-100) or currency amount")
    notes: Optional[str] = Field(None)


class DeploymentModel(BaseModel):
    """Platform, region and feature selections."""
    platform: Optional[LowCodePlatform] = Field(None, description="Low-code platform, if any")
    deployment_type: DeploymentType = Field(default=DeploymentType.CLOUD)
    region: ServiceRegion = Field(default=ServiceRegion.AMERICAS)
    total_application_objects: int = Field(default=150)
    internal_users: int = Field(default=100)
    external_users: int = Field(default=0)
    use_unlimited_users: bool = Field(default=False)
    appshield: bool = Field(default=False)
    appshield_user_volume: Optional[int] = Field(None)
    addons: Dict[AddOn, int] = Field(default_factory=dict, description="Add-on quantities")
    services: Dict[ServiceOffering, int] = Field(default_factory=dict, description="Service quantities")
    self_managed_cloud: Optional[SelfManagedCloud] = Field(None)
    vm_instance: Optional[str] = Field(None)
    self_managed_environments: int = Field(default=4)
    front_end_servers_per_environment: int = Field(default=2)
    infrastructure_provider: InfraProvider = Field(default=InfraProvider.NONE)
    discount: Optional[DiscountModel] = Field(None)


class PricingRequest(BaseModel):
    """Request model for pricing; sizing is optional for license-only quotes."""
    sizing: Optional[SizingRequest] = Field(None, description="Workload to size and price")
    deployment: DeploymentModel = Field(..., description="Deployment selections")


class GrowthModel(BaseModel):
    projection_years: int = Field(default=3)
    annual_growth_rate_percent: float = Field(default=20.0)
    pattern: GrowthPattern = Field(default=GrowthPattern.LINEAR)
    custom_rates_percent: List[float] = Field(default_factory=list)
    include_cost_projections: bool = Field(default=True)
    inflation_rate_percent: float = Field(default=3.0)
    show_capacity_warnings: bool = Field(default=True)


class GrowthRequest(BaseModel):
    """Request model for growth projection."""
    sizing: SizingRequest = Field(..., description="Base workload")
    deployment: Optional[DeploymentModel] = Field(None, description="Deployment for cost projection")
    growth: GrowthModel = Field(default_factory=GrowthModel)


class VMRoleModel(BaseModel):
    role: ServerRole = Field(..., description="Server role")
    size: SizeTier = Field(default=SizeTier.MEDIUM)
    instance_count: int = Field(default=1)
    disk_gb: int = Field(default=100)
    custom_cpu: Optional[int] = Field(None, description="vCPU override per instance")
    custom_ram_gb: Optional[int] = Field(None, description="RAM override per instance in GB")
    name: Optional[str] = Field(None)


class VMEnvironmentModel(BaseModel):
    roles: List[VMRoleModel] = Field(default_factory=list)
    ha_pattern: HAPattern = Field(default=HAPattern.NONE)
    load_balancer: LoadBalancerOption = Field(default=LoadBalancerOption.NONE)
    storage_gb: int = Field(default=100)


class VMSizingRequest(BaseModel):
    """Request model for VM sizing; environments present are the enabled ones."""
    technology: Technology = Field(default=Technology.DOTNET)
    environments: Dict[EnvironmentKind, VMEnvironmentModel] = Field(default_factory=dict)
    system_overhead_percent: float = Field(default=15.0)


class VMGrowthRequest(BaseModel):
    """Request model for VM growth projection."""
    sizing: VMSizingRequest = Field(..., description="Base VM layout")
    deployment: Optional[DeploymentModel] = Field(None, description="Deployment for license cost projection")
    growth: GrowthModel = Field(default_factory=GrowthModel)


def _node_specs(model: Optional[NodeSpecsModel]) -> NodeRoleSpecs:
    if model is None:
        return DEFAULT_NODE_SPECS
    prod = dict(DEFAULT_NODE_SPECS.prod)
    non_prod = dict(DEFAULT_NODE_SPECS.non_prod)
    for role, spec in model.prod.items():
        prod[role] = NodeSpec(cpu=spec.cpu, ram_gb=spec.ram_gb, disk_gb=spec.disk_gb)
    for role, spec in model.non_prod.items():
        non_prod[role] = NodeSpec(cpu=spec.cpu, ram_gb=spec.ram_gb, disk_gb=spec.disk_gb)
    return NodeRoleSpecs(prod=freeze_mapping(prod), non_prod=freeze_mapping(non_prod))


def _overcommit(model: Optional[OvercommitModel]) -> OvercommitConfig:
    if model is None:
        return OvercommitConfig()
    return OvercommitConfig(
        prod=OvercommitRatio(cpu=model.prod.cpu, memory=model.prod.memory),
        non_prod=OvercommitRatio(cpu=model.non_prod.cpu, memory=model.non_prod.memory),
    )


def _ha_dr(model: Optional[HADRModel]) -> HADRConfig:
    if model is None:
        return HADRConfig()
    return HADRConfig(
        control_plane_ha=model.control_plane_ha,
        control_plane_nodes=model.control_plane_nodes,
        node_distribution=model.node_distribution,
        availability_zones=model.availability_zones,
        dr_pattern=model.dr_pattern,
        backup_strategy=model.backup_strategy,
        backup_frequency_hours=model.backup_frequency_hours,
        backup_retention_days=model.backup_retention_days,
        rto_minutes=model.rto_minutes,
        rpo_minutes=model.rpo_minutes,
    )


def _workload(request: SizingRequest) -> WorkloadConfig:
    if len(set(request.environments)) > config.MAX_ENVIRONMENTS:
        raise ConfigurationError(
            "environments",
            f"At most {config.MAX_ENVIRONMENTS} environments can be sized"
        )
    app_counts = {
        environment: AppCount(small=counts.small, medium=counts.medium, large=counts.large, xlarge=counts.xlarge)
        for environment, counts in request.app_counts.items()
    }
    return WorkloadConfig(
        distribution=request.distribution,
        enabled_environments=frozenset(request.environments),
        app_counts=freeze_mapping(app_counts),
        replicas=freeze_mapping(request.replicas),
        headroom_percent=freeze_mapping(request.headroom_percent),
        headroom_enabled=request.headroom_enabled,
        cluster_mode=request.cluster_mode,
        technology=request.technology,
    )


def _vm_input(request: VMSizingRequest) -> VMSizingInput:
    environments = {
        environment: VMEnvironmentConfig(
            roles=tuple(
                VMRoleConfig(
                    role=role.role,
                    size=role.size,
                    instance_count=role.instance_count,
                    disk_gb=role.disk_gb,
                    custom_cpu=role.custom_cpu,
                    custom_ram_gb=role.custom_ram_gb,
                    name=role.name,
                )
                for role in env.roles
            ),
            ha_pattern=env.ha_pattern,
            load_balancer=env.load_balancer,
            storage_gb=env.storage_gb,
        )
        for environment, env in request.environments.items()
    }
    return VMSizingInput(
        technology=request.technology,
        environments=freeze_mapping(environments),
        system_overhead_percent=request.system_overhead_percent,
    )


def _growth_config(growth: GrowthModel) -> GrowthConfig:
    if growth.projection_years > config.MAX_PROJECTION_YEARS:
        raise ConfigurationError(
            "growth.projection_years",
            f"Projection years cannot exceed {config.MAX_PROJECTION_YEARS}"
        )
    return GrowthConfig(
        projection_years=growth.projection_years,
        annual_growth_rate_percent=growth.annual_growth_rate_percent,
        pattern=growth.pattern,
        custom_rates_percent=tuple(growth.custom_rates_percent),
        include_cost_projections=growth.include_cost_projections,
        inflation_rate_percent=growth.inflation_rate_percent,
        show_capacity_warnings=growth.show_capacity_warnings,
    )


def _price(sizing: Optional[SizingResult], deployment: DeploymentModel) -> PricingResult:
    try:
        return compute_pricing(sizing, _deployment(deployment), PRICING_TABLES)
    except (PricingEngineError, InfrastructurePricingError) as error:
        raise HTTPException(
            status_code=400,
            detail=f"Failed to price deployment: {str(error)}"
        ) from error


def _deployment(model: DeploymentModel) -> DeploymentConfig:
    discount = None
    if model.discount is not None:
        discount = Discount(
            type=model.discount.type,
            scope=model.discount.scope,
            value=model.discount.value,
            notes=model.discount.notes,
        )
    return DeploymentConfig(
        platform=model.platform,
        deployment_type=model.deployment_type,
        region=model.region,
        total_application_objects=model.total_application_objects,
        internal_users=model.internal_users,
        external_users=model.external_users,
        use_unlimited_users=model.use_unlimited_users,
        appshield=model.appshield,
        appshield_user_volume=model.appshield_user_volume,
        addons=freeze_mapping(model.addons),
        services=freeze_mapping(model.services),
        self_managed_cloud=model.self_managed_cloud,
        vm_instance=model.vm_instance,
        self_managed_environments=model.self_managed_environments,
        front_end_servers_per_environment=model.front_end_servers_per_environment,
        infrastructure_provider=model.infrastructure_provider,
        discount=discount,
    )


def _size(request: SizingRequest) -> SizingResult:
    return compute_sizing(
        _workload(request),
        node_specs=_node_specs(request.node_specs),
        overcommit=_overcommit(request.overcommit),
        ha_dr_config=_ha_dr(request.ha_dr),
    )


def _invalid(error: ConfigurationError) -> HTTPException:
    logger.info(f"Rejected configuration: {error}")
    return HTTPException(status_code=422, detail=error.to_dict())


@router.get("/api/distributions")
def get_distributions() -> Dict[str, Any]:
    """
    List supported Kubernetes distributions and their capabilities.

    Returns:
        JSON response with the distribution capability table
    """
    return {
        "status": "ok",
        "distributions": [distribution.to_dict() for distribution in list_distributions()],
    }


@router.post("/api/sizing")
def size_workload(sizing_request: SizingRequest) -> Dict[str, Any]:
    """
    Size clusters for a workload.

    Args:
        sizing_request: Workload, overcommit, HA/DR and node spec selections

    Returns:
        JSON response with the sizing result and configuration findings

    Raises:
        HTTPException: 422 for invalid configuration, 500 for unexpected errors
    """
    try:
        workload = _workload(sizing_request)
        overcommit = _overcommit(sizing_request.overcommit)
        ha_dr = _ha_dr(sizing_request.ha_dr)
        sizing = compute_sizing(
            workload,
            node_specs=_node_specs(sizing_request.node_specs),
            overcommit=overcommit,
            ha_dr_config=ha_dr,
        )
        findings = evaluate_configuration(workload, sizing, overcommit, ha_dr)

        return {
            "status": "ok",
            "sizing": sizing.to_dict(),
            "findings": [finding.to_dict() for finding in findings],
        }

    except HTTPException:
        raise
    except ConfigurationError as error:
        raise _invalid(error) from error
    except Exception as error:
        logger.exception("Unexpected error while sizing workload")
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred while sizing the workload"
        ) from error


@router.post("/api/pricing")
def price_deployment(pricing_request: PricingRequest) -> Dict[str, Any]:
    """
    Price a deployment, optionally including sized infrastructure.

    Args:
        pricing_request: Optional workload plus deployment selections

    Returns:
        JSON response with the sizing result (or null) and the pricing breakdown

    Raises:
        HTTPException: 422 for invalid configuration, 500 for unexpected errors
    """
    try:
        sizing = _size(pricing_request.sizing) if pricing_request.sizing else None
        pricing = _price(sizing, pricing_request.deployment)

        return {
            "status": "ok",
            "sizing": sizing.to_dict() if sizing else None,
            "pricing": pricing.to_dict(),
        }

    except HTTPException:
        raise
    except ConfigurationError as error:
        raise _invalid(error) from error
    except Exception as error:
        logger.exception("Unexpected error while pricing deployment")
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred while pricing the deployment"
        ) from error


@router.post("/api/growth")
def project_growth_plan(growth_request: GrowthRequest) -> Dict[str, Any]:
    """
    Project sizing and cost growth over several years.

    Args:
        growth_request: Base workload, optional deployment and growth settings

    Returns:
        JSON response with yearly projections, summary, warnings and recommendations

    Raises:
        HTTPException: 422 for invalid configuration, 500 for unexpected errors
    """
    try:
        growth_config = _growth_config(growth_request.growth)
        sizing = _size(growth_request.sizing)
        pricing = None
        if growth_request.deployment is not None:
            pricing = _price(sizing, growth_request.deployment)

        plan = build_growth_plan(sizing, pricing, growth_config)

        return {
            "status": "ok",
            "growth": plan.to_dict(),
        }

    except HTTPException:
        raise
    except ConfigurationError as error:
        raise _invalid(error) from error
    except Exception as error:
        logger.exception("Unexpected error while projecting growth")
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred while projecting growth"
        ) from error


@router.post("/api/vm/sizing")
def size_vms(vm_request: VMSizingRequest) -> Dict[str, Any]:
    """
    Size virtual machines per server role and environment.

    Args:
        vm_request: Technology, per-environment VM layouts and system overhead

    Returns:
        JSON response with the VM sizing result

    Raises:
        HTTPException: 422 for invalid configuration, 500 for unexpected errors
    """
    try:
        sizing = compute_vm_sizing(_vm_input(vm_request))

        return {
            "status": "ok",
            "sizing": sizing.to_dict(),
        }

    except HTTPException:
        raise
    except ConfigurationError as error:
        raise _invalid(error) from error
    except Exception as error:
        logger.exception("Unexpected error while sizing VMs")
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred while sizing the VMs"
        ) from error


@router.post("/api/vm/growth")
def project_vm_growth_plan(growth_request: VMGrowthRequest) -> Dict[str, Any]:
    """
    Project VM counts and cost growth over several years.

    Args:
        growth_request: Base VM layout, optional deployment and growth settings

    Returns:
        JSON response with the base VM sizing and the growth plan

    Raises:
        HTTPException: 422 for invalid configuration, 500 for unexpected errors
    """
    try:
        growth_config = _growth_config(growth_request.growth)
        sizing = compute_vm_sizing(_vm_input(growth_request.sizing))
        pricing = None
        if growth_request.deployment is not None:
            pricing = _price(None, growth_request.deployment)

        plan = build_vm_growth_plan(sizing, pricing, growth_config)

        return {
            "status": "ok",
            "sizing": sizing.to_dict(),
            "growth": plan.to_dict(),
        }

    except HTTPException:
        raise
    except ConfigurationError as error:
        raise _invalid(error) from error
    except Exception as error:
        logger.exception("Unexpected error while projecting VM growth")
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred while projecting VM growth"
        ) from error
