"""
Tests for VM sizing.
"""

from types import MappingProxyType

import pytest

from infra_sizing.domain.catalogue import EnvironmentKind, SizeTier, Technology
from infra_sizing.domain.errors import ConfigurationError
from infra_sizing.domain.vm_models import (
    HAPattern,
    LoadBalancerOption,
    ServerRole,
    VMEnvironmentConfig,
    VMRoleConfig,
    VMSizingInput,
)
from infra_sizing.services.vm_sizing import VMSizer, compute_vm_sizing


def _vm_input(*roles, technology=Technology.DOTNET, overhead=15.0, environment=EnvironmentKind.PROD, **env_kwargs):
    return VMSizingInput(
        technology=technology,
        environments=MappingProxyType({environment: VMEnvironmentConfig(roles=roles, **env_kwargs)}),
        system_overhead_percent=overhead,
    )


def test_app_servers_with_ha_pair():
    """N+1 app servers behind an HA load balancer pair."""
    result = compute_vm_sizing(_vm_input(
        VMRoleConfig(role=ServerRole.APP, size=SizeTier.MEDIUM, instance_count=2),
        ha_pattern=HAPattern.N_PLUS_1,
        load_balancer=LoadBalancerOption.HA_PAIR,
    ))
    prod = result.environment(EnvironmentKind.PROD)
    app = prod.roles[0]

    assert app.total_instances == 3  # ceil(2 x 1.5)
    assert app.cpu_per_instance == 5  # ceil(4 x 1.15)
    assert app.ram_per_instance_gb == 10  # ceil(8 x 1.15)
    assert prod.load_balancer_vms == 2
    assert prod.total_vms == 5
    assert prod.total_cpu == 19
    assert prod.total_ram_gb == 38
    assert prod.total_disk_gb == 400  # 3 x 100 role disk + 100 storage
    assert result.total_load_balancer_vms == 2


def test_high_memory_technologies_get_more_ram():
    """Java, Mendix and OutSystems get 1.5x RAM per instance."""
    database = VMRoleConfig(role=ServerRole.DATABASE, size=SizeTier.SMALL)
    dotnet = compute_vm_sizing(_vm_input(database, overhead=0))
    java = compute_vm_sizing(_vm_input(database, technology=Technology.JAVA, overhead=0))

    assert dotnet.environments[0].roles[0].ram_per_instance_gb == 16
    assert java.environments[0].roles[0].ram_per_instance_gb == 24
    assert java.environments[0].roles[0].cpu_per_instance == 4


@pytest.mark.parametrize("role, size, expected", [
    (ServerRole.WEB, SizeTier.SMALL, (2, 4)),
    (ServerRole.CACHE, SizeTier.LARGE, (8, 32)),
    (ServerRole.SEARCH, SizeTier.XLARGE, (32, 128)),
    (ServerRole.BASTION, SizeTier.XLARGE, (2, 4)),
])
def test_role_specs(role, size, expected):
    """Each role and tier maps to its base vCPU and RAM."""
    assert VMSizer.role_spec(role, size, Technology.GO) == expected


def test_custom_resources_override_tier():
    """Custom CPU and RAM replace the tier spec before overhead."""
    result = compute_vm_sizing(_vm_input(
        VMRoleConfig(role=ServerRole.WEB, custom_cpu=6, custom_ram_gb=10),
        overhead=10,
    ))
    web = result.environments[0].roles[0]
    assert web.cpu_per_instance == 7  # ceil(6.6)
    assert web.ram_per_instance_gb == 11


@pytest.mark.parametrize("ha_pattern, instances, expected", [
    (HAPattern.NONE, 3, 3),
    (HAPattern.ACTIVE_ACTIVE, 3, 6),
    (HAPattern.ACTIVE_PASSIVE, 1, 2),
    (HAPattern.N_PLUS_2, 3, 6),  # ceil(5.01)
])
def test_ha_pattern_multiplies_instances(ha_pattern, instances, expected):
    """HA patterns scale instance counts and round up."""
    result = compute_vm_sizing(_vm_input(
        VMRoleConfig(role=ServerRole.APP, instance_count=instances),
        ha_pattern=ha_pattern,
    ))
    assert result.environments[0].roles[0].total_instances == expected


def test_cloud_load_balancer_adds_no_vms():
    """Managed load balancers are not sized as VMs."""
    result = compute_vm_sizing(_vm_input(
        VMRoleConfig(role=ServerRole.WEB),
        load_balancer=LoadBalancerOption.CLOUD,
    ))
    assert result.total_vms == 1
    assert result.total_load_balancer_vms == 0


def test_environments_follow_standard_order():
    """Results list environments in dev-to-DR order."""
    role = (VMRoleConfig(role=ServerRole.APP),)
    vm_input = VMSizingInput(environments=MappingProxyType({
        EnvironmentKind.DR: VMEnvironmentConfig(roles=role),
        EnvironmentKind.PROD: VMEnvironmentConfig(roles=role),
        EnvironmentKind.DEV: VMEnvironmentConfig(roles=role),
    }))
    result = compute_vm_sizing(vm_input)

    assert [env.environment for env in result.environments] == [
        EnvironmentKind.DEV, EnvironmentKind.PROD, EnvironmentKind.DR,
    ]
    assert result.total_vms == 3


def test_production_required():
    """A VM layout without production is rejected."""
    with pytest.raises(ConfigurationError) as exc_info:
        compute_vm_sizing(_vm_input(VMRoleConfig(role=ServerRole.APP), environment=EnvironmentKind.DEV))
    assert exc_info.value.field == "environments"


def test_environment_needs_a_role():
    """Enabled environments must define at least one role."""
    with pytest.raises(ConfigurationError) as exc_info:
        compute_vm_sizing(_vm_input())
    assert exc_info.value.field == "environments.prod.roles"


@pytest.mark.parametrize("role_kwargs, field_name", [
    ({"instance_count": 0}, "environments.prod.roles[0].instance_count"),
    ({"instance_count": 101}, "environments.prod.roles[0].instance_count"),
    ({"disk_gb": 5}, "environments.prod.roles[0].disk_gb"),
    ({"custom_cpu": 0}, "environments.prod.roles[0].custom_cpu"),
])
def test_invalid_role_rejected(role_kwargs, field_name):
    """Out-of-range role settings name the offending field."""
    with pytest.raises(ConfigurationError) as exc_info:
        compute_vm_sizing(_vm_input(VMRoleConfig(role=ServerRole.APP, **role_kwargs)))
    assert exc_info.value.field == field_name


@pytest.mark.parametrize("overhead", [-1, 51])
def test_system_overhead_bounded(overhead):
    """System overhead must stay between 0 and 50 percent."""
    with pytest.raises(ConfigurationError) as exc_info:
        compute_vm_sizing(_vm_input(VMRoleConfig(role=ServerRole.APP), overhead=overhead))
    assert exc_info.value.field == "system_overhead_percent"


def test_result_serializes():
    """The VM result converts to JSON-ready data with totals."""
    data = compute_vm_sizing(_vm_input(
        VMRoleConfig(role=ServerRole.DATABASE, name="Primary DB"),
        technology=Technology.MENDIX,
    )).to_dict()

    assert data["technology"] == "mendix"
    assert data["technology_name"] == "Mendix"
    assert data["environments"][0]["roles"][0]["name"] == "Primary DB"
    assert data["totals"]["vms"] == 1
