"""
Tier catalogue service.
Holds the default tier footprints, node role specs and the distribution
capability table, and resolves lookups against them.
"""
from typing import Dict, List, Mapping, Optional
from types import MappingProxyType
import logging

from infra_sizing.domain.catalogue import (
    SizeTier,
    Technology,
    TierSpec,
    TierCatalogue,
    NodeRole,
    NodeSpec,
    NodeRoleSpecs,
    DistributionInfo,
    HostingProvider,
    LicenseBasis,
)
from infra_sizing.domain.errors import ConfigurationError


logger = logging.getLogger(__name__)


def _tiers(small, medium, large, xlarge) -> TierCatalogue:
    """Catalogue from (cpu, ram_gb) pairs, smallest tier first."""
    return TierCatalogue(tiers=MappingProxyType({
        tier: TierSpec(cpu=cpu, ram_gb=ram_gb)
        for tier, (cpu, ram_gb) in zip(SizeTier, (small, medium, large, xlarge))
    }))


# Node.js and Python small apps need 1 GB for runtime heap and worker overhead.
TECHNOLOGY_TIER_CATALOGUES: Mapping[Technology, TierCatalogue] = MappingProxyType({
    Technology.DOTNET: _tiers((0.25, 0.5), (0.5, 1.0), (1.0, 2.0), (2.0, 4.0)),
    Technology.JAVA: _tiers((0.5, 1.0), (1.0, 2.0), (2.0, 4.0), (4.0, 8.0)),
    Technology.NODEJS: _tiers((0.25, 1.0), (0.5, 1.0), (1.0, 2.0), (2.0, 4.0)),
    Technology.PYTHON: _tiers((0.25, 1.0), (0.5, 1.0), (1.0, 2.0), (2.0, 4.0)),
    Technology.GO: _tiers((0.125, 0.25), (0.25, 0.5), (0.5, 1.0), (1.0, 2.0)),
    Technology.MENDIX: _tiers((1.0, 2.0), (2.0, 4.0), (4.0, 8.0), (8.0, 16.0)),
    Technology.OUTSYSTEMS: _tiers((1.0, 2.0), (2.0, 4.0), (4.0, 8.0), (8.0, 16.0)),
})

DEFAULT_TECHNOLOGY = Technology.DOTNET
DEFAULT_TIER_CATALOGUE = TECHNOLOGY_TIER_CATALOGUES[DEFAULT_TECHNOLOGY]

DEFAULT_NODE_SPECS = NodeRoleSpecs(
    prod=MappingProxyType({
        NodeRole.CONTROL_PLANE: NodeSpec(cpu=8, ram_gb=32, disk_gb=200),
        NodeRole.INFRA: NodeSpec(cpu=8, ram_gb=32, disk_gb=500),
        NodeRole.WORKER: NodeSpec(cpu=16, ram_gb=64, disk_gb=200),
    }),
    non_prod=MappingProxyType({
        NodeRole.CONTROL_PLANE: NodeSpec(cpu=8, ram_gb=32, disk_gb=100),
        NodeRole.INFRA: NodeSpec(cpu=8, ram_gb=32, disk_gb=200),
        NodeRole.WORKER: NodeSpec(cpu=8, ram_gb=32, disk_gb=100),
    }),
)


def _distribution(key: str, display_name: str, managed: bool, infra: bool,
                  provider: HostingProvider, max_nodes: int = 2000,
                  license_basis: LicenseBasis = LicenseBasis.NONE,
                  vendor: Optional[str] = None) -> DistributionInfo:
    return DistributionInfo(
        key=key,
        display_name=display_name,
        is_managed_control_plane=managed,
        has_infra_nodes=infra,
        provider=provider,
        max_nodes_per_cluster=max_nodes,
        license_basis=license_basis,
        vendor=vendor,
    )


# Adding a distribution is a row here; no engine code branches on its key
# except the growth recommendations for lightweight distributions.
DISTRIBUTIONS: Mapping[str, DistributionInfo] = MappingProxyType({
    info.key: info for info in (
        _distribution("openshift", "Red Hat OpenShift", False, True, HostingProvider.ON_PREM,
                      2000, LicenseBasis.PER_NODE, "Red Hat"),
        _distribution("kubernetes", "Kubernetes (vanilla)", False, False, HostingProvider.ON_PREM,
                      5000, vendor="CNCF"),
        _distribution("rancher", "Rancher RKE", False, False, HostingProvider.ON_PREM,
                      2000, LicenseBasis.PER_NODE, "SUSE"),
        _distribution("rke2", "Rancher RKE2", False, False, HostingProvider.ON_PREM,
                      2000, vendor="SUSE"),
        _distribution("k3s", "K3s", False, False, HostingProvider.ON_PREM, 500, vendor="SUSE"),
        _distribution("microk8s", "MicroK8s", False, False, HostingProvider.ON_PREM, 200,
                      vendor="Canonical"),
        _distribution("charmed", "Charmed Kubernetes", False, False, HostingProvider.ON_PREM,
                      2000, LicenseBasis.PER_NODE, "Canonical"),
        _distribution("tanzu", "VMware Tanzu", False, False, HostingProvider.ON_PREM,
                      2000, LicenseBasis.PER_CORE, "Broadcom"),
        _distribution("eks", "Amazon EKS", True, False, HostingProvider.AWS, 5000, vendor="AWS"),
        _distribution("aks", "Azure AKS", True, False, HostingProvider.AZURE, 5000, vendor="Microsoft"),
        _distribution("gke", "Google GKE", True, False, HostingProvider.GCP, 15000, vendor="Google"),
        _distribution("oke", "Oracle OKE", True, False, HostingProvider.OCI, 2000, vendor="Oracle"),
        _distribution("rosa", "Red Hat OpenShift on AWS", True, True, HostingProvider.AWS,
                      2000, vendor="Red Hat"),
        _distribution("aro", "Azure Red Hat OpenShift", True, True, HostingProvider.AZURE,
                      2000, vendor="Red Hat"),
    )
})


def get_distribution(key: str) -> DistributionInfo:
    """
    Look up a distribution by key.

    Raises:
        ConfigurationError: If the key is not in the capability table.
    """
    normalized = (key or "").strip().lower()
    info = DISTRIBUTIONS.get(normalized)
    if info is None:
        raise ConfigurationError("distribution", f"Unknown distribution '{key}'")
    return info


def list_distributions() -> List[DistributionInfo]:
    """Return every known distribution, on-prem first, then by display name."""
    return sorted(
        DISTRIBUTIONS.values(),
        key=lambda info: (not info.is_on_prem, info.display_name),
    )


def get_tier_catalogue(technology) -> TierCatalogue:
    """
    Look up the tier footprints of an application technology.

    Accepts a Technology or its key.

    Raises:
        ConfigurationError: If the technology is unknown.
    """
    try:
        return TECHNOLOGY_TIER_CATALOGUES[Technology((technology or "").strip().lower())]
    except ValueError:
        raise ConfigurationError("technology", f"Unknown technology '{technology}'")


def build_tier_catalogue(
    overrides: Optional[Dict[SizeTier, TierSpec]] = None,
    technology: Technology = DEFAULT_TECHNOLOGY,
) -> TierCatalogue:
    """
    Build a tier catalogue from a technology's defaults with optional per-tier overrides.

    The defaults are never modified; a new catalogue is returned.
    """
    base = get_tier_catalogue(technology)
    if not overrides:
        return base

    tiers = dict(base.tiers)
    for tier, spec in overrides.items():
        if spec.cpu < 0 or spec.ram_gb < 0:
            raise ConfigurationError(
                f"tier_catalogue.{tier.value}",
                "Tier CPU and RAM cannot be negative"
            )
        tiers[tier] = spec
    logger.debug(f"Built tier catalogue with overrides for {[tier.value for tier in overrides]}")
    return TierCatalogue(tiers=MappingProxyType(tiers))
