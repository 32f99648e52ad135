"""
Default pricing tables.
List prices (USD, annual unless noted) used when the caller supplies no
rate sheet of its own.
"""
from types import MappingProxyType

from infra_sizing.domain.pricing_models import (
    AddOn,
    AddOnBasis,
    AddOnRate,
    CloudRateCard,
    Eligibility,
    InfraProvider,
    LowCodePlatform,
    OnPremRates,
    PlatformRates,
    PricingTables,
    SelfManagedCloud,
    ServiceOffering,
    ServiceRegion,
    TierBracket,
    VmInstanceRate,
)


ODC_RATES = PlatformRates(
    display_name="OutSystems Developer Cloud",
    base_price=30_250.0,
    ao_pack_price=18_150.0,
    internal_user_brackets=(
        TierBracket(0, None, price_per_pack=6_050.0, pack_size=100),
    ),
    external_user_brackets=(
        TierBracket(0, None, price_per_pack=6_050.0, pack_size=1_000),
    ),
    addons=MappingProxyType({
        AddOn.SUPPORT_24X7_EXTENDED: AddOnRate(6_050.0),
        AddOn.SUPPORT_24X7_PREMIUM: AddOnRate(9_680.0),
        AddOn.HIGH_AVAILABILITY: AddOnRate(18_150.0, eligibility=Eligibility.CLOUD_ONLY),
        AddOn.SENTRY: AddOnRate(33_880.0, eligibility=Eligibility.CLOUD_ONLY),
        AddOn.NON_PROD_RUNTIME: AddOnRate(6_050.0, per_quantity=True),
        AddOn.PRIVATE_GATEWAY: AddOnRate(1_210.0),
    }),
    exclusive_addons=((AddOn.SUPPORT_24X7_PREMIUM, AddOn.SUPPORT_24X7_EXTENDED),),
    includes=MappingProxyType({AddOn.SENTRY: (AddOn.HIGH_AVAILABILITY,)}),
)

O11_RATES = PlatformRates(
    display_name="OutSystems 11 Enterprise",
    base_price=36_300.0,
    ao_pack_price=36_300.0,
    internal_user_brackets=(
        TierBracket(0, 1_000, price_per_pack=4_840.0, pack_size=100),
        TierBracket(1_001, 10_000, price_per_pack=2_420.0, pack_size=100),
        TierBracket(10_001, None, price_per_pack=1_210.0, pack_size=100),
    ),
    external_user_brackets=(
        TierBracket(0, 10_000, price_per_pack=4_840.0, pack_size=1_000),
        TierBracket(10_001, 250_000, price_per_pack=1_210.0, pack_size=1_000),
        TierBracket(250_001, None, price_per_pack=242.0, pack_size=1_000),
    ),
    addons=MappingProxyType({
        AddOn.SUPPORT_24X7_PREMIUM: AddOnRate(3_630.0),
        AddOn.NON_PROD_ENVIRONMENT: AddOnRate(3_630.0, per_quantity=True),
        AddOn.LOAD_TEST_ENVIRONMENT: AddOnRate(
            6_050.0, eligibility=Eligibility.CLOUD_ONLY, per_quantity=True
        ),
        AddOn.ENVIRONMENT_PACK: AddOnRate(9_680.0, per_quantity=True),
        AddOn.HIGH_AVAILABILITY: AddOnRate(12_100.0, eligibility=Eligibility.CLOUD_ONLY),
        AddOn.SENTRY: AddOnRate(24_200.0, eligibility=Eligibility.CLOUD_ONLY),
        AddOn.DISASTER_RECOVERY: AddOnRate(12_100.0, eligibility=Eligibility.SELF_MANAGED_ONLY),
        AddOn.LOG_STREAMING: AddOnRate(
            7_260.0, basis=AddOnBasis.FLAT, eligibility=Eligibility.CLOUD_ONLY, per_quantity=True
        ),
        AddOn.DATABASE_REPLICA: AddOnRate(
            96_800.0, basis=AddOnBasis.FLAT, eligibility=Eligibility.CLOUD_ONLY, per_quantity=True
        ),
    }),
    includes=MappingProxyType({AddOn.SENTRY: (AddOn.HIGH_AVAILABILITY,)}),
)

APPSHIELD_BRACKETS = (
    TierBracket(0, 10_000, flat_amount=18_150.0),
    TierBracket(10_001, 50_000, flat_amount=32_670.0),
    TierBracket(50_001, 100_000, flat_amount=54_450.0),
    TierBracket(100_001, 500_000, flat_amount=96_800.0),
    TierBracket(500_001, 1_000_000, flat_amount=169_400.0),
    TierBracket(1_000_001, None, flat_amount=242_000.0),
)

# Regional rate sheets override these per region.
DEFAULT_SERVICE_RATES = MappingProxyType({
    ServiceOffering.ESSENTIAL_SUCCESS_PLAN: 30_250.0,
    ServiceOffering.PREMIER_SUCCESS_PLAN: 60_500.0,
    ServiceOffering.DEDICATED_GROUP_SESSION: 3_820.0,
    ServiceOffering.PUBLIC_SESSION: 720.0,
    ServiceOffering.EXPERT_DAY: 2_640.0,
})

VM_RATES = MappingProxyType({
    SelfManagedCloud.AZURE: (
        VmInstanceRate("F4s_v2", 4, 8, 0.169),
        VmInstanceRate("D4s_v3", 4, 16, 0.192),
        VmInstanceRate("D8s_v3", 8, 32, 0.384),
        VmInstanceRate("D16s_v3", 16, 64, 0.768),
    ),
    SelfManagedCloud.AWS: (
        VmInstanceRate("m5.large", 2, 8, 0.096),
        VmInstanceRate("m5.xlarge", 4, 16, 0.192),
        VmInstanceRate("m5.2xlarge", 8, 32, 0.384),
    ),
})

# us-east-1 / East US / us-central1 on-demand list prices.
CLOUD_RATE_CARDS = MappingProxyType({
    InfraProvider.AWS: CloudRateCard(
        cpu_per_hour=0.048, ram_gb_per_hour=0.006, ssd_per_gb_month=0.08,
        managed_control_plane_per_hour=0.10,
    ),
    InfraProvider.AZURE: CloudRateCard(
        cpu_per_hour=0.048, ram_gb_per_hour=0.006, ssd_per_gb_month=0.075,
        managed_control_plane_per_hour=0.0,
    ),
    InfraProvider.GCP: CloudRateCard(
        cpu_per_hour=0.0335, ram_gb_per_hour=0.0045, ssd_per_gb_month=0.17,
        managed_control_plane_per_hour=0.10,
    ),
})

ON_PREM_RATES = OnPremRates(
    distribution_license_per_year=MappingProxyType({
        "openshift": 2_500.0,
        "tanzu": 1_500.0,
        "rancher": 1_000.0,
        "charmed": 500.0,
    }),
)

DEFAULT_PRICING_TABLES = PricingTables(
    platforms=MappingProxyType({
        LowCodePlatform.ODC: ODC_RATES,
        LowCodePlatform.O11: O11_RATES,
    }),
    appshield_brackets=APPSHIELD_BRACKETS,
    service_rates=MappingProxyType({region: DEFAULT_SERVICE_RATES for region in ServiceRegion}),
    vm_rates=VM_RATES,
    cloud_rate_cards=CLOUD_RATE_CARDS,
    on_prem=ON_PREM_RATES,
)
