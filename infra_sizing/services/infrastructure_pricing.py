"""
Infrastructure pricing.
Prices sized Kubernetes nodes on a cloud rate card or as on-premises TCO,
and self-managed low-code front-end servers on cloud VMs.
All amounts are annual.
"""
from typing import List, Optional, Tuple
import logging
import math

from infra_sizing.domain.catalogue import DistributionInfo, HostingProvider, LicenseBasis
from infra_sizing.domain.errors import ConfigurationError
from infra_sizing.domain.pricing_models import (
    CostCategory,
    DeploymentConfig,
    InfraProvider,
    PricingLineItem,
    PricingTables,
    SelfManagedCloud,
    VmInstanceRate,
)
from infra_sizing.domain.sizing_models import SizingResult
from infra_sizing.services.tier_catalogue import get_distribution


logger = logging.getLogger(__name__)


PROVIDER_HOSTING = {
    InfraProvider.AWS: HostingProvider.AWS,
    InfraProvider.AZURE: HostingProvider.AZURE,
    InfraProvider.GCP: HostingProvider.GCP,
    InfraProvider.ON_PREM: HostingProvider.ON_PREM,
}


class InfrastructurePricingError(Exception):
    """Raised when pricing tables lack the rates a selection needs."""
    pass


def _line(name: str, amount: float, quantity: Optional[float] = None, unit: Optional[str] = None) -> PricingLineItem:
    return PricingLineItem(
        category=CostCategory.INFRASTRUCTURE,
        name=name,
        amount=amount,
        quantity=quantity,
        unit=unit,
    )


def recommend_vm_instance(
    cloud: SelfManagedCloud,
    tables: PricingTables,
    min_vcpu: int = 4,
    min_ram_gb: int = 16,
) -> VmInstanceRate:
    """
    Cheapest VM size meeting the CPU and RAM minimums.

    Falls back to the largest size when none qualifies.
    """
    sizes = tables.vm_rates.get(cloud)
    if not sizes:
        raise InfrastructurePricingError(f"No VM rates configured for {cloud.value}")
    candidates = [size for size in sizes if size.vcpu >= min_vcpu and size.ram_gb >= min_ram_gb]
    if not candidates:
        return max(sizes, key=lambda size: (size.vcpu, size.ram_gb))
    return min(candidates, key=lambda size: size.hourly)


class InfrastructurePricer:
    """Annual infrastructure cost for nodes and servers."""

    def __init__(self, tables: PricingTables):
        self.tables = tables

    @property
    def hours_per_year(self) -> int:
        return self.tables.hours_per_month * self.tables.months_per_year

    def price_self_managed_servers(self, deployment: DeploymentConfig) -> Tuple[List[PricingLineItem], List[str]]:
        """
        Price front-end servers of a self-managed low-code installation.

        On-premises hosting carries no VM charge; the customer supplies hardware.

        Returns:
            Tuple of (line_items, warnings)
        """
        cloud = deployment.self_managed_cloud
        if cloud is None or cloud == SelfManagedCloud.ON_PREMISES:
            return [], []

        sizes = self.tables.vm_rates.get(cloud)
        if not sizes:
            raise InfrastructurePricingError(f"No VM rates configured for {cloud.value}")

        warnings: List[str] = []
        instance = None
        if deployment.vm_instance:
            instance = next((size for size in sizes if size.name == deployment.vm_instance), None)
            if instance is None:
                warnings.append(
                    f"VM size '{deployment.vm_instance}' is not available on {cloud.value}; "
                    f"using the recommended size instead."
                )
        if instance is None:
            instance = recommend_vm_instance(cloud, self.tables)

        servers = deployment.self_managed_environments * deployment.front_end_servers_per_environment
        amount = instance.hourly * self.hours_per_year * servers
        logger.debug(f"Self-managed servers: {servers} x {instance.name} at {instance.hourly:.3f}/h")
        return [_line(f"Front-end Servers ({instance.name})", amount, servers, "servers")], warnings

    def price_kubernetes(
        self,
        sizing: SizingResult,
        provider: InfraProvider,
    ) -> Tuple[List[PricingLineItem], List[str]]:
        """
        Price the sized cluster nodes.

        Returns:
            Tuple of (line_items, warnings)
        """
        if provider == InfraProvider.NONE or sizing.total_nodes == 0:
            return [], []

        distribution = get_distribution(sizing.distribution)
        warnings: List[str] = []
        hosting = PROVIDER_HOSTING[provider]
        if distribution.provider != HostingProvider.ON_PREM and distribution.provider != hosting:
            warnings.append(
                f"{distribution.display_name} runs on {distribution.provider.value}; "
                f"nodes are priced with {provider.value} rates."
            )

        if provider == InfraProvider.ON_PREM:
            items = self._price_on_prem(sizing)
        else:
            items = self._price_cloud(sizing, distribution, provider)
        items.extend(self._distribution_licenses(sizing, distribution))
        return items, warnings

    def _price_cloud(
        self,
        sizing: SizingResult,
        distribution: DistributionInfo,
        provider: InfraProvider,
    ) -> List[PricingLineItem]:
        card = self.tables.cloud_rate_cards.get(provider)
        if card is None:
            raise InfrastructurePricingError(f"No cloud rate card configured for {provider.value}")

        items = [
            _line("Compute (vCPU)", sizing.total_cpu * card.cpu_per_hour * self.hours_per_year,
                  sizing.total_cpu, "vCPU"),
            _line("Compute (RAM)", sizing.total_ram_gb * card.ram_gb_per_hour * self.hours_per_year,
                  sizing.total_ram_gb, "GB"),
            _line("Block Storage (SSD)",
                  sizing.total_disk_gb * card.ssd_per_gb_month * self.tables.months_per_year,
                  sizing.total_disk_gb, "GB"),
        ]
        if distribution.is_managed_control_plane and card.managed_control_plane_per_hour > 0:
            clusters = sizing.cluster_count
            items.append(
                _line("Managed Control Plane",
                      card.managed_control_plane_per_hour * self.hours_per_year * clusters,
                      clusters, "clusters")
            )
        return items

    def _price_on_prem(self, sizing: SizingResult) -> List[PricingLineItem]:
        rates = self.tables.on_prem
        if rates.hardware_refresh_years <= 0:
            raise ConfigurationError("on_prem.hardware_refresh_years", "Refresh period must be positive")

        servers = max(1, int(math.ceil(sizing.total_cpu / rates.cores_per_server)))
        capex = (
            servers * rates.server_base_cost
            + sizing.total_cpu * rates.cost_per_core
            + sizing.total_ram_gb * rates.cost_per_gb_ram
        )
        storage_capex = sizing.total_disk_gb / 1000 * rates.cost_per_tb_ssd
        months = self.tables.months_per_year

        rack = servers * rates.rack_units_per_server * rates.rack_unit_per_month * months
        kwh = servers * rates.watts_per_server * self.hours_per_year / 1000
        power = kwh * rates.power_per_kwh * rates.pue
        cooling = power * rates.cooling_percent / 100

        engineers = int(math.ceil(sizing.total_nodes / rates.nodes_per_devops_engineer))
        labor = engineers * rates.devops_monthly_salary * months
        labor += max(1.0, engineers * rates.sysadmin_ratio) * rates.sysadmin_monthly_salary * months
        if rates.include_dba:
            labor += rates.dba_monthly_salary * months

        logger.debug(f"On-prem: {servers} server(s), capex {capex:.2f}, {engineers} engineer(s)")
        return [
            _line("Server Hardware (amortized)", capex / rates.hardware_refresh_years, servers, "servers"),
            _line("Storage Hardware (amortized)", storage_capex / rates.hardware_refresh_years,
                  sizing.total_disk_gb, "GB"),
            _line("Hardware Maintenance", (capex + storage_capex) * rates.maintenance_percent / 100),
            _line("Rack Space", rack, servers * rates.rack_units_per_server, "U"),
            _line("Power & Cooling", power + cooling, kwh, "kWh"),
            _line("Operations Staff", labor, engineers, "FTE"),
        ]

    def _distribution_licenses(self, sizing: SizingResult, distribution: DistributionInfo) -> List[PricingLineItem]:
        rate = self.tables.on_prem.distribution_license_per_year.get(distribution.key, 0.0)
        if distribution.license_basis == LicenseBasis.NONE or rate <= 0:
            return []
        if distribution.license_basis == LicenseBasis.PER_CORE:
            quantity, unit = sizing.total_cpu, "cores"
        else:
            quantity, unit = sizing.total_nodes, "nodes"
        return [_line(f"{distribution.display_name} Subscription", quantity * rate, quantity, unit)]
