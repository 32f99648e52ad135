"""
Domain models for tiered pricing.
Defines pricing tables, deployment selections, discounts and the itemized
pricing result.
"""
from typing import List, Dict, Any, Mapping, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from infra_sizing.domain.errors import ConfigurationError


class LowCodePlatform(str, Enum):
    ODC = "odc"
    O11 = "o11"


class DeploymentType(str, Enum):
    CLOUD = "cloud"
    SELF_MANAGED = "self_managed"


class ServiceRegion(str, Enum):
    AFRICA = "africa"
    MIDDLE_EAST = "middle_east"
    AMERICAS = "americas"
    EUROPE = "europe"
    ASIA_PACIFIC = "asia_pacific"


class AddOn(str, Enum):
    SUPPORT_24X7_PREMIUM = "support_24x7_premium"
    SUPPORT_24X7_EXTENDED = "support_24x7_extended"
    HIGH_AVAILABILITY = "high_availability"
    SENTRY = "sentry"
    NON_PROD_ENVIRONMENT = "non_prod_environment"
    NON_PROD_RUNTIME = "non_prod_runtime"
    LOAD_TEST_ENVIRONMENT = "load_test_environment"
    ENVIRONMENT_PACK = "environment_pack"
    DISASTER_RECOVERY = "disaster_recovery"
    LOG_STREAMING = "log_streaming"
    DATABASE_REPLICA = "database_replica"
    PRIVATE_GATEWAY = "private_gateway"

    @property
    def display_name(self) -> str:
        return ADD_ON_NAMES[self]


ADD_ON_NAMES: Mapping[AddOn, str] = MappingProxyType({
    AddOn.SUPPORT_24X7_PREMIUM: "Support 24x7 Premium",
    AddOn.SUPPORT_24X7_EXTENDED: "Support 24x7 Extended",
    AddOn.HIGH_AVAILABILITY: "High Availability",
    AddOn.SENTRY: "Sentry",
    AddOn.NON_PROD_ENVIRONMENT: "Non-Production Environment",
    AddOn.NON_PROD_RUNTIME: "Non-Production Runtime",
    AddOn.LOAD_TEST_ENVIRONMENT: "Load Test Environment",
    AddOn.ENVIRONMENT_PACK: "Environment Pack",
    AddOn.DISASTER_RECOVERY: "Disaster Recovery",
    AddOn.LOG_STREAMING: "Log Streaming",
    AddOn.DATABASE_REPLICA: "Database Replica",
    AddOn.PRIVATE_GATEWAY: "Private Gateway",
})


class AddOnBasis(str, Enum):
    PER_AO_PACK = "per_ao_pack"
    FLAT = "flat"


class Eligibility(str, Enum):
    ANY = "any"
    CLOUD_ONLY = "cloud_only"
    SELF_MANAGED_ONLY = "self_managed_only"


class ServiceOffering(str, Enum):
    ESSENTIAL_SUCCESS_PLAN = "essential_success_plan"
    PREMIER_SUCCESS_PLAN = "premier_success_plan"
    DEDICATED_GROUP_SESSION = "dedicated_group_session"
    PUBLIC_SESSION = "public_session"
    EXPERT_DAY = "expert_day"

    @property
    def display_name(self) -> str:
        return SERVICE_NAMES[self]


SERVICE_NAMES: Mapping[ServiceOffering, str] = MappingProxyType({
    ServiceOffering.ESSENTIAL_SUCCESS_PLAN: "Essential Success Plan",
    ServiceOffering.PREMIER_SUCCESS_PLAN: "Premier Success Plan",
    ServiceOffering.DEDICATED_GROUP_SESSION: "Dedicated Group Session",
    ServiceOffering.PUBLIC_SESSION: "Public Session",
    ServiceOffering.EXPERT_DAY: "Expert Day",
})


class InfraProvider(str, Enum):
    """Where the sized Kubernetes nodes are priced."""
    NONE = "none"
    AWS = "aws"
    AZURE = "azure"
    GCP = "gcp"
    ON_PREM = "on_prem"


class SelfManagedCloud(str, Enum):
    """Hosting for self-managed low-code front-end servers."""
    AZURE = "azure"
    AWS = "aws"
    ON_PREMISES = "on_premises"


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


class DiscountScope(str, Enum):
    TOTAL = "total"
    LICENSE_ONLY = "license_only"
    ADD_ONS_ONLY = "add_ons_only"
    SERVICES_ONLY = "services_only"

    @property
    def display_name(self) -> str:
        return {
            DiscountScope.TOTAL: "Total",
            DiscountScope.LICENSE_ONLY: "License Only",
            DiscountScope.ADD_ONS_ONLY: "Add-Ons Only",
            DiscountScope.SERVICES_ONLY: "Services Only",
        }[self]


class CostCategory(str, Enum):
    LICENSE = "License"
    ADD_ON = "Add-On"
    SERVICE = "Service"
    INFRASTRUCTURE = "Infrastructure"


CATEGORY_ORDER: Tuple[CostCategory, ...] = (
    CostCategory.LICENSE,
    CostCategory.ADD_ON,
    CostCategory.SERVICE,
    CostCategory.INFRASTRUCTURE,
)


@dataclass(frozen=True)
class TierBracket:
    """
    A contiguous quantity range with its price.

    ``max_quantity`` of None marks the terminal "and above" bracket. A bracket
    with ``flat_amount`` charges that amount regardless of pack count.
    """
    min_quantity: int
    max_quantity: Optional[int]
    price_per_pack: float = 0.0
    pack_size: int = 1
    flat_amount: Optional[float] = None

    @property
    def is_flat(self) -> bool:
        return self.flat_amount is not None

    def contains(self, quantity: float) -> bool:
        if quantity < self.min_quantity:
            return False
        return self.max_quantity is None or quantity <= self.max_quantity

    @property
    def label(self) -> str:
        if self.max_quantity is None:
            return f"{self.min_quantity:,}+"
        return f"{self.min_quantity:,}-{self.max_quantity:,}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "min_quantity": self.min_quantity,
            "max_quantity": self.max_quantity,
            "price_per_pack": round(self.price_per_pack, 2),
            "pack_size": self.pack_size,
            "flat_amount": round(self.flat_amount, 2) if self.flat_amount is not None else None,
        }


@dataclass(frozen=True)
class BracketResolution:
    """Outcome of resolving a quantity against a bracket list."""
    bracket: TierBracket
    pack_count: int
    amount: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "bracket": self.bracket.label,
            "pack_count": self.pack_count,
            "amount": round(self.amount, 2),
        }


@dataclass(frozen=True)
class AddOnRate:
    """Price and gating of a platform add-on."""
    price: float
    basis: AddOnBasis = AddOnBasis.PER_AO_PACK
    eligibility: Eligibility = Eligibility.ANY
    per_quantity: bool = False  # multiply by the selected quantity


@dataclass(frozen=True)
class PlatformRates:
    """License and add-on rates of one low-code platform."""
    display_name: str
    base_price: float
    ao_pack_price: float
    internal_user_brackets: Tuple[TierBracket, ...]
    external_user_brackets: Tuple[TierBracket, ...]
    addons: Mapping[AddOn, AddOnRate] = field(default_factory=dict)
    # Pairs of add-ons that cannot be bought together.
    exclusive_addons: Tuple[Tuple[AddOn, AddOn], ...] = ()
    # Add-on -> add-ons whose capability it already includes.
    includes: Mapping[AddOn, Tuple[AddOn, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class VmInstanceRate:
    """Hourly rate of a VM size used for self-managed front-end servers."""
    name: str
    vcpu: int
    ram_gb: int
    hourly: float


@dataclass(frozen=True)
class CloudRateCard:
    """Unit rates for pricing Kubernetes nodes on a cloud provider."""
    cpu_per_hour: float
    ram_gb_per_hour: float
    ssd_per_gb_month: float
    managed_control_plane_per_hour: float = 0.0


@dataclass(frozen=True)
class OnPremRates:
    """Unit costs for an on-premises data center."""
    server_base_cost: float = 15_000.0
    cost_per_core: float = 200.0
    cost_per_gb_ram: float = 15.0
    cost_per_tb_ssd: float = 200.0
    cores_per_server: int = 64
    hardware_refresh_years: int = 4
    maintenance_percent: float = 10.0
    rack_unit_per_month: float = 100.0
    rack_units_per_server: int = 2
    watts_per_server: float = 500.0
    power_per_kwh: float = 0.12
    pue: float = 1.6
    cooling_percent: float = 40.0
    devops_monthly_salary: float = 12_000.0
    nodes_per_devops_engineer: int = 50
    sysadmin_monthly_salary: float = 8_000.0
    sysadmin_ratio: float = 0.5
    dba_monthly_salary: float = 10_000.0
    include_dba: bool = False
    # Yearly subscription per node (or per core for core-licensed distributions).
    distribution_license_per_year: Mapping[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class PricingTables:
    """
    Rate tables consumed by the pricing engine.

    Owned by the settings surface; the engine only reads them.
    """
    platforms: Mapping[LowCodePlatform, PlatformRates]
    appshield_brackets: Tuple[TierBracket, ...]
    service_rates: Mapping[ServiceRegion, Mapping[ServiceOffering, float]]
    vm_rates: Mapping[SelfManagedCloud, Tuple[VmInstanceRate, ...]] = field(default_factory=dict)
    cloud_rate_cards: Mapping[InfraProvider, CloudRateCard] = field(default_factory=dict)
    on_prem: OnPremRates = field(default_factory=OnPremRates)
    ao_pack_size: int = 150
    included_ao_packs: int = 0
    internal_users_included: int = 100
    unlimited_users_per_ao_pack: float = 60_500.0
    default_appshield_user_volume: int = 10_000
    hours_per_month: int = 730
    months_per_year: int = 12


@dataclass(frozen=True)
class Discount:
    """A single discount applied to one scope of the quote."""
    type: DiscountType
    scope: DiscountScope
    value: float
    notes: Optional[str] = None

    def validate(self) -> None:
        if self.value < 0:
            raise ConfigurationError("discount.value", "Discount cannot be negative")
        if self.type == DiscountType.PERCENTAGE and self.value > 100:
            raise ConfigurationError("discount.value", "Percentage discount cannot exceed 100")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "type": self.type.value,
            "scope": self.scope.value,
            "value": self.value,
            "notes": self.notes,
        }


@dataclass(frozen=True)
class DeploymentConfig:
    """Platform, region and feature selections for a quote."""
    platform: Optional[LowCodePlatform] = None
    deployment_type: DeploymentType = DeploymentType.CLOUD
    region: ServiceRegion = ServiceRegion.AMERICAS
    total_application_objects: int = 150
    internal_users: int = 100
    external_users: int = 0
    use_unlimited_users: bool = False
    appshield: bool = False
    appshield_user_volume: Optional[int] = None
    addons: Mapping[AddOn, int] = field(default_factory=dict)
    services: Mapping[ServiceOffering, int] = field(default_factory=dict)
    self_managed_cloud: Optional[SelfManagedCloud] = None
    vm_instance: Optional[str] = None
    self_managed_environments: int = 4
    front_end_servers_per_environment: int = 2
    infrastructure_provider: InfraProvider = InfraProvider.NONE
    discount: Optional[Discount] = None

    @property
    def is_self_managed(self) -> bool:
        return self.deployment_type == DeploymentType.SELF_MANAGED

    def selected_addons(self) -> List[Tuple[AddOn, int]]:
        """Add-ons with a positive quantity, in declaration order."""
        return [(addon, self.addons[addon]) for addon in AddOn if self.addons.get(addon, 0) > 0]

    def validate(self) -> None:
        """
        Validate quantities.

        Raises:
            ConfigurationError: If any count or quantity is negative.
        """
        counts = {
            "total_application_objects": self.total_application_objects,
            "internal_users": self.internal_users,
            "external_users": self.external_users,
            "self_managed_environments": self.self_managed_environments,
            "front_end_servers_per_environment": self.front_end_servers_per_environment,
        }
        for name, value in counts.items():
            if value < 0:
                raise ConfigurationError(name, "Value cannot be negative")
        if self.appshield_user_volume is not None and self.appshield_user_volume < 0:
            raise ConfigurationError("appshield_user_volume", "Value cannot be negative")
        for addon, quantity in self.addons.items():
            if quantity < 0:
                raise ConfigurationError(f"addons.{addon.value}", "Quantity cannot be negative")
        for service, quantity in self.services.items():
            if quantity < 0:
                raise ConfigurationError(f"services.{service.value}", "Quantity cannot be negative")
        if self.discount is not None:
            self.discount.validate()


@dataclass(frozen=True)
class PricingLineItem:
    """One row of the itemized quote."""
    category: CostCategory
    name: str
    amount: float
    is_included: bool = False
    quantity: Optional[float] = None
    unit: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "category": self.category.value,
            "name": self.name,
            "amount": round(self.amount, 2),
            "is_included": self.is_included,
            "quantity": self.quantity,
            "unit": self.unit,
        }


@dataclass(frozen=True)
class CostTotals:
    """Subtotals, discount and multi-year totals of a quote (annual amounts)."""
    license_subtotal: float
    addons_subtotal: float
    services_subtotal: float
    infrastructure_subtotal: float
    discount_amount: float
    discount_description: Optional[str]

    @property
    def gross_total(self) -> float:
        return (
            self.license_subtotal
            + self.addons_subtotal
            + self.services_subtotal
            + self.infrastructure_subtotal
        )

    @property
    def net_total(self) -> float:
        return self.gross_total - self.discount_amount

    @property
    def total_per_month(self) -> float:
        return self.net_total / 12

    @property
    def total_per_year(self) -> float:
        return self.net_total

    @property
    def total_three_year(self) -> float:
        return self.net_total * 3

    @property
    def total_five_year(self) -> float:
        return self.net_total * 5

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "license_subtotal": round(self.license_subtotal, 2),
            "addons_subtotal": round(self.addons_subtotal, 2),
            "services_subtotal": round(self.services_subtotal, 2),
            "infrastructure_subtotal": round(self.infrastructure_subtotal, 2),
            "discount_amount": round(self.discount_amount, 2),
            "discount_description": self.discount_description,
            "gross_total": round(self.gross_total, 2),
            "net_total": round(self.net_total, 2),
            "total_per_month": round(self.total_per_month, 2),
            "total_per_year": round(self.total_per_year, 2),
            "total_three_year": round(self.total_three_year, 2),
            "total_five_year": round(self.total_five_year, 2),
        }


@dataclass(frozen=True)
class PricingResult:
    """Itemized, read-only pricing snapshot."""
    line_items: Tuple[PricingLineItem, ...]
    totals: CostTotals
    warnings: Tuple[str, ...] = ()
    platform: Optional[LowCodePlatform] = None
    deployment_type: DeploymentType = DeploymentType.CLOUD
    region: ServiceRegion = ServiceRegion.AMERICAS
    ao_pack_count: int = 0
    internal_user_pack_count: int = 0
    external_user_pack_count: int = 0
    appshield_user_volume: int = 0

    def costs_for(self, category: CostCategory) -> Dict[str, float]:
        """Name -> amount for one category, in line-item order."""
        return {item.name: item.amount for item in self.line_items if item.category == category}

    @property
    def license_costs(self) -> Dict[str, float]:
        return self.costs_for(CostCategory.LICENSE)

    @property
    def addon_costs(self) -> Dict[str, float]:
        return self.costs_for(CostCategory.ADD_ON)

    @property
    def service_costs(self) -> Dict[str, float]:
        return self.costs_for(CostCategory.SERVICE)

    @property
    def infrastructure_costs(self) -> Dict[str, float]:
        return self.costs_for(CostCategory.INFRASTRUCTURE)

    @property
    def net_total(self) -> float:
        return self.totals.net_total

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "platform": self.platform.value if self.platform else None,
            "deployment_type": self.deployment_type.value,
            "region": self.region.value,
            "ao_pack_count": self.ao_pack_count,
            "internal_user_pack_count": self.internal_user_pack_count,
            "external_user_pack_count": self.external_user_pack_count,
            "appshield_user_volume": self.appshield_user_volume,
            "license_costs": {k: round(v, 2) for k, v in self.license_costs.items()},
            "addon_costs": {k: round(v, 2) for k, v in self.addon_costs.items()},
            "service_costs": {k: round(v, 2) for k, v in self.service_costs.items()},
            "infrastructure_costs": {k: round(v, 2) for k, v in self.infrastructure_costs.items()},
            "totals": self.totals.to_dict(),
            "warnings": list(self.warnings),
            "line_items": [item.to_dict() for item in self.line_items],
        }
