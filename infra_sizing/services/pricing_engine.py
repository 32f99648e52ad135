"""
Pricing engine service.
Resolves license, add-on, service and infrastructure costs for a deployment
and composes the itemized, discounted quote.
"""
from typing import Dict, List, Optional, Tuple
import logging
import math

from infra_sizing.domain.pricing_models import (
    AddOn,
    AddOnBasis,
    AddOnRate,
    CATEGORY_ORDER,
    CostCategory,
    DeploymentConfig,
    DeploymentType,
    Eligibility,
    LowCodePlatform,
    PlatformRates,
    PricingLineItem,
    PricingResult,
    PricingTables,
    ServiceOffering,
)
from infra_sizing.domain.sizing_models import SizingResult
from infra_sizing.services.bracket_resolver import resolve_bracket, validate_brackets
from infra_sizing.services.discount import aggregate_totals
from infra_sizing.services.infrastructure_pricing import InfrastructurePricer
from infra_sizing.services.pricing_tables import DEFAULT_PRICING_TABLES


logger = logging.getLogger(__name__)


class PricingEngineError(Exception):
    """Raised when pricing tables are missing rates required by a selection."""
    pass


def cloud_only_warning(name: str) -> str:
    return f"{name} is a Cloud-only feature. It will be ignored for self-managed deployments."


def self_managed_only_warning(name: str) -> str:
    return f"{name} is a Self-Managed-only feature. It will be ignored for cloud deployments."


def included_warning(including: str, included: str) -> str:
    return f"{including} already includes {included}. {included} add-on will be ignored."


def exclusive_warning(kept: str, suppressed: str) -> str:
    return f"{kept} and {suppressed} cannot be combined. {suppressed} will be ignored."


class _QuoteBuilder:
    """Collects line items and warnings for one pricing run."""

    def __init__(self):
        self.items: List[PricingLineItem] = []
        self.warnings: List[str] = []

    def add(self, category: CostCategory, name: str, amount: float, is_included: bool = False,
            quantity: Optional[float] = None, unit: Optional[str] = None) -> None:
        self.items.append(PricingLineItem(
            category=category,
            name=name,
            amount=amount,
            is_included=is_included,
            quantity=quantity,
            unit=unit,
        ))

    def warn(self, message: str) -> None:
        logger.warning(f"Pricing warning: {message}")
        self.warnings.append(message)

    def subtotal(self, category: CostCategory) -> float:
        return sum(item.amount for item in self.items if item.category == category)

    def ordered_items(self) -> Tuple[PricingLineItem, ...]:
        """Line items grouped by category, insertion order within a category."""
        return tuple(
            item for category in CATEGORY_ORDER for item in self.items if item.category == category
        )


class PricingEngine:
    """Stateless calculator for itemized quotes."""

    def __init__(self, tables: PricingTables = DEFAULT_PRICING_TABLES):
        """
        Initialize the pricing engine.

        Args:
            tables: Rate tables (read only)
        """
        self.tables = tables
        self.infrastructure = InfrastructurePricer(tables)

    def ao_pack_count(self, application_objects: int) -> int:
        """AO packs needed; partial packs round up, at least one pack."""
        if self.tables.ao_pack_size <= 0:
            raise PricingEngineError("AO pack size must be positive")
        return max(1, int(math.ceil(application_objects / self.tables.ao_pack_size)))

    def validate_tables(self) -> None:
        """
        Check every bracket list in the rate tables.

        Raises:
            ConfigurationError: If a bracket list is empty, gapped or overlapping
        """
        for platform, rates in self.tables.platforms.items():
            validate_brackets(
                rates.internal_user_brackets,
                f"pricing_tables.{platform.value}.internal_user_brackets",
            )
            validate_brackets(
                rates.external_user_brackets,
                f"pricing_tables.{platform.value}.external_user_brackets",
            )
        validate_brackets(self.tables.appshield_brackets, "pricing_tables.appshield_brackets")

    def compute(self, sizing: Optional[SizingResult], deployment: DeploymentConfig) -> PricingResult:
        """
        Price a deployment.

        Args:
            sizing: Sized cluster to price as infrastructure (optional)
            deployment: Platform, region and feature selections

        Returns:
            PricingResult with line items, totals and warnings

        Raises:
            ConfigurationError: If the deployment has invalid quantities or the
                rate tables have malformed brackets
            PricingEngineError: If the tables lack rates for a selection
        """
        deployment.validate()
        self.validate_tables()
        quote = _QuoteBuilder()
        deployment_type = deployment.deployment_type
        ao_packs = 0
        internal_packs = 0
        external_packs = 0
        appshield_volume = 0

        if deployment.platform is not None:
            rates = self.tables.platforms.get(deployment.platform)
            if rates is None:
                raise PricingEngineError(f"No rates configured for platform {deployment.platform.value}")

            if deployment.platform == LowCodePlatform.ODC and deployment.is_self_managed:
                quote.warn(
                    f"{rates.display_name} is only available as a cloud service. "
                    f"Self-managed settings will be ignored."
                )
                deployment_type = DeploymentType.CLOUD
            elif not deployment.is_self_managed and deployment.self_managed_cloud is not None:
                quote.warn("Self-managed hosting settings are ignored for cloud deployments.")

            ao_packs = self.ao_pack_count(deployment.total_application_objects)
            internal_packs, external_packs = self._price_license(quote, rates, deployment, ao_packs)
            appshield_volume = self._price_platform_addons(
                quote, rates, deployment, deployment_type, ao_packs
            )
            if deployment.platform == LowCodePlatform.O11 and deployment_type == DeploymentType.SELF_MANAGED:
                items, warnings = self.infrastructure.price_self_managed_servers(deployment)
                quote.items.extend(items)
                for warning in warnings:
                    quote.warn(warning)

        self._price_services(quote, deployment)

        if sizing is not None:
            items, warnings = self.infrastructure.price_kubernetes(sizing, deployment.infrastructure_provider)
            quote.items.extend(items)
            for warning in warnings:
                quote.warn(warning)

        totals = aggregate_totals(
            license_subtotal=quote.subtotal(CostCategory.LICENSE),
            addons_subtotal=quote.subtotal(CostCategory.ADD_ON),
            services_subtotal=quote.subtotal(CostCategory.SERVICE),
            infrastructure_subtotal=quote.subtotal(CostCategory.INFRASTRUCTURE),
            discount=deployment.discount,
        )
        result = PricingResult(
            line_items=quote.ordered_items(),
            totals=totals,
            warnings=tuple(quote.warnings),
            platform=deployment.platform,
            deployment_type=deployment_type,
            region=deployment.region,
            ao_pack_count=ao_packs,
            internal_user_pack_count=internal_packs,
            external_user_pack_count=external_packs,
            appshield_user_volume=appshield_volume,
        )
        logger.info(
            f"Priced deployment: gross {totals.gross_total:.2f}, discount {totals.discount_amount:.2f}, "
            f"net {totals.net_total:.2f}, {len(quote.warnings)} warning(s)"
        )
        return result

    def _price_license(
        self,
        quote: _QuoteBuilder,
        rates: PlatformRates,
        deployment: DeploymentConfig,
        ao_packs: int,
    ) -> Tuple[int, int]:
        """Platform base and user licensing. Returns (internal_packs, external_packs)."""
        quote.add(CostCategory.LICENSE, f"{rates.display_name} Platform", rates.base_price)

        if deployment.use_unlimited_users:
            quote.add(
                CostCategory.LICENSE,
                "Unlimited Users",
                self.tables.unlimited_users_per_ao_pack * ao_packs,
                quantity=ao_packs,
                unit="AO packs",
            )
            return 0, 0

        internal_packs = 0
        included = self.tables.internal_users_included
        billable_internal = max(0, deployment.internal_users - included)
        if billable_internal > 0:
            resolution = resolve_bracket(billable_internal, rates.internal_user_brackets)
            internal_packs = resolution.pack_count
            quote.add(CostCategory.LICENSE, "Internal Users", resolution.amount,
                      quantity=internal_packs, unit=f"packs of {resolution.bracket.pack_size}")
        else:
            quote.add(CostCategory.LICENSE, "Internal Users", 0.0, is_included=True,
                      quantity=deployment.internal_users, unit="users")

        external_packs = 0
        if deployment.external_users > 0:
            resolution = resolve_bracket(deployment.external_users, rates.external_user_brackets)
            external_packs = resolution.pack_count
            quote.add(CostCategory.LICENSE, "External Users", resolution.amount,
                      quantity=external_packs, unit=f"packs of {resolution.bracket.pack_size}")
        return internal_packs, external_packs

    def _price_platform_addons(
        self,
        quote: _QuoteBuilder,
        rates: PlatformRates,
        deployment: DeploymentConfig,
        deployment_type: DeploymentType,
        ao_packs: int,
    ) -> int:
        """AO packs, AppShield and platform add-ons. Returns the AppShield user volume."""
        billable_packs = max(0, ao_packs - self.tables.included_ao_packs)
        quote.add(
            CostCategory.ADD_ON,
            "Application Objects",
            billable_packs * rates.ao_pack_price,
            is_included=billable_packs == 0,
            quantity=ao_packs,
            unit=f"packs of {self.tables.ao_pack_size}",
        )

        appshield_volume = 0
        if deployment.appshield:
            if deployment.use_unlimited_users:
                appshield_volume = deployment.appshield_user_volume or self.tables.default_appshield_user_volume
            else:
                appshield_volume = deployment.internal_users + deployment.external_users
            resolution = resolve_bracket(appshield_volume, self.tables.appshield_brackets)
            quote.add(CostCategory.ADD_ON, "AppShield", resolution.amount,
                      quantity=appshield_volume, unit="users")

        active = self._eligible_addons(quote, rates, deployment, deployment_type, ao_packs)

        for first, second in rates.exclusive_addons:
            if first in active and second in active:
                # Ties keep the first of the pair.
                kept, suppressed = (first, second) if active[first][1] >= active[second][1] else (second, first)
                del active[suppressed]
                quote.warn(exclusive_warning(kept.display_name, suppressed.display_name))

        included_by: Dict[AddOn, AddOn] = {}
        for addon in list(active):
            if addon not in active:
                continue
            for subsumed in rates.includes.get(addon, ()):
                if subsumed in active:
                    del active[subsumed]
                    included_by[subsumed] = addon
                    quote.warn(included_warning(addon.display_name, subsumed.display_name))

        for addon in AddOn:
            if addon in active:
                quantity, amount = active[addon]
                quote.add(CostCategory.ADD_ON, addon.display_name, amount, quantity=quantity)
            elif addon in included_by:
                quote.add(CostCategory.ADD_ON, addon.display_name, 0.0, is_included=True,
                          quantity=deployment.addons.get(addon))
        return appshield_volume

    def _eligible_addons(
        self,
        quote: _QuoteBuilder,
        rates: PlatformRates,
        deployment: DeploymentConfig,
        deployment_type: DeploymentType,
        ao_packs: int,
    ) -> Dict[AddOn, Tuple[int, float]]:
        """Selected add-ons the deployment can use, mapped to (quantity, amount)."""
        self_managed = deployment_type == DeploymentType.SELF_MANAGED
        active: Dict[AddOn, Tuple[int, float]] = {}
        for addon, quantity in deployment.selected_addons():
            rate = rates.addons.get(addon)
            if rate is None:
                quote.warn(f"{addon.display_name} is not offered on {rates.display_name}. It will be ignored.")
                continue
            if rate.eligibility == Eligibility.CLOUD_ONLY and self_managed:
                quote.warn(cloud_only_warning(addon.display_name))
                continue
            if rate.eligibility == Eligibility.SELF_MANAGED_ONLY and not self_managed:
                quote.warn(self_managed_only_warning(addon.display_name))
                continue
            active[addon] = (quantity, self.addon_amount(rate, quantity, ao_packs))
        return active

    @staticmethod
    def addon_amount(rate: AddOnRate, quantity: int, ao_packs: int) -> float:
        amount = rate.price
        if rate.basis == AddOnBasis.PER_AO_PACK:
            amount *= ao_packs
        if rate.per_quantity:
            amount *= quantity
        return amount

    def _price_services(self, quote: _QuoteBuilder, deployment: DeploymentConfig) -> None:
        selected = [
            (service, deployment.services[service])
            for service in ServiceOffering
            if deployment.services.get(service, 0) > 0
        ]
        if not selected:
            return
        regional = self.tables.service_rates.get(deployment.region)
        if regional is None:
            raise PricingEngineError(f"No service rates configured for region {deployment.region.value}")
        for service, quantity in selected:
            rate = regional.get(service)
            if rate is None:
                raise PricingEngineError(
                    f"No rate configured for {service.display_name} in {deployment.region.value}"
                )
            quote.add(CostCategory.SERVICE, service.display_name, rate * quantity, quantity=quantity)


def compute_pricing(
    sizing_result: Optional[SizingResult],
    deployment_config: DeploymentConfig,
    pricing_tables: PricingTables = DEFAULT_PRICING_TABLES,
) -> PricingResult:
    """Compute the license/add-on/service/infrastructure breakdown with discount and totals."""
    return PricingEngine(pricing_tables).compute(sizing_result, deployment_config)
