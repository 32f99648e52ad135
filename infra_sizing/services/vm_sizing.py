"""
VM sizing service.
Sizes per-role virtual machines for each environment, adding HA instances,
load balancer VMs and operating-system overhead.
"""
from typing import List, Mapping, Tuple
from types import MappingProxyType
import logging

from infra_sizing.domain.catalogue import EnvironmentKind, SizeTier, Technology
from infra_sizing.domain.vm_models import (
    HAPattern,
    LoadBalancerOption,
    ServerRole,
    VMEnvironmentConfig,
    VMEnvironmentResult,
    VMRoleConfig,
    VMRoleResult,
    VMSizingInput,
    VMSizingResult,
)
from infra_sizing.services.resource_aggregator import ceil_nodes


logger = logging.getLogger(__name__)


def _specs(small, medium, large, xlarge) -> Mapping[SizeTier, Tuple[int, int]]:
    return MappingProxyType(dict(zip(SizeTier, (small, medium, large, xlarge))))


_GENERAL = _specs((2, 4), (4, 8), (8, 16), (16, 32))
_MEMORY_HEAVY = _specs((4, 16), (8, 32), (16, 64), (32, 128))

# (vCPU, RAM GB) per instance before technology and overhead adjustments.
VM_ROLE_SPECS: Mapping[ServerRole, Mapping[SizeTier, Tuple[int, int]]] = MappingProxyType({
    ServerRole.WEB: _GENERAL,
    ServerRole.APP: _GENERAL,
    ServerRole.DATABASE: _MEMORY_HEAVY,
    ServerRole.CACHE: _specs((2, 8), (4, 16), (8, 32), (16, 64)),
    ServerRole.MESSAGE_QUEUE: _GENERAL,
    ServerRole.SEARCH: _MEMORY_HEAVY,
    ServerRole.STORAGE: _GENERAL,
    ServerRole.MONITORING: _GENERAL,
})
# Bastion hosts are fixed size whatever tier is requested.
BASTION_SPEC = (2, 4)

HA_MULTIPLIERS: Mapping[HAPattern, float] = MappingProxyType({
    HAPattern.NONE: 1.0,
    HAPattern.ACTIVE_ACTIVE: 2.0,
    HAPattern.ACTIVE_PASSIVE: 2.0,
    HAPattern.N_PLUS_1: 1.5,
    HAPattern.N_PLUS_2: 1.67,
})

# (VMs, vCPU per VM, RAM GB per VM)
LOAD_BALANCER_SPECS: Mapping[LoadBalancerOption, Tuple[int, int, int]] = MappingProxyType({
    LoadBalancerOption.NONE: (0, 0, 0),
    LoadBalancerOption.SINGLE: (1, 2, 4),
    LoadBalancerOption.HA_PAIR: (2, 2, 4),
    LoadBalancerOption.CLOUD: (0, 0, 0),
})

HIGH_MEMORY_MULTIPLIER = 1.5
HIGH_MEMORY_TECHNOLOGIES = frozenset({Technology.JAVA, Technology.MENDIX, Technology.OUTSYSTEMS})


class VMSizer:
    """Stateless calculator for VM counts and resource totals."""

    @staticmethod
    def role_spec(role: ServerRole, size: SizeTier, technology: Technology) -> Tuple[int, int]:
        """
        Base (vCPU, RAM GB) of one instance.

        JVM-based and low-code runtimes get extra memory.
        """
        if role == ServerRole.BASTION:
            cpu, ram = BASTION_SPEC
        else:
            cpu, ram = VM_ROLE_SPECS[role][size]
        if technology in HIGH_MEMORY_TECHNOLOGIES:
            ram = int(ram * HIGH_MEMORY_MULTIPLIER)
        return cpu, ram

    def compute(self, vm_input: VMSizingInput) -> VMSizingResult:
        """
        Size every environment of a VM deployment.

        Args:
            vm_input: Technology, per-environment layouts and system overhead

        Returns:
            VMSizingResult with per-environment and aggregate totals

        Raises:
            ConfigurationError: If any input is invalid
        """
        vm_input.validate()
        environments: List[VMEnvironmentResult] = [
            self._size_environment(environment, vm_input.environments[environment], vm_input)
            for environment in vm_input.ordered_environments()
        ]
        result = VMSizingResult(
            technology=vm_input.technology,
            environments=tuple(environments),
            system_overhead_percent=vm_input.system_overhead_percent,
        )
        logger.info(
            f"Sized {len(environments)} VM environment(s) for {vm_input.technology.value}: "
            f"{result.total_vms} VMs, {result.total_cpu} vCPU, {result.total_ram_gb} GB RAM"
        )
        return result

    def _size_environment(
        self,
        environment: EnvironmentKind,
        env_config: VMEnvironmentConfig,
        vm_input: VMSizingInput,
    ) -> VMEnvironmentResult:
        ha_multiplier = HA_MULTIPLIERS[env_config.ha_pattern]
        roles = tuple(
            self._size_role(role_config, ha_multiplier, vm_input)
            for role_config in env_config.roles
        )
        lb_vms, lb_cpu, lb_ram = LOAD_BALANCER_SPECS[env_config.load_balancer]
        return VMEnvironmentResult(
            environment=environment,
            ha_pattern=env_config.ha_pattern,
            load_balancer=env_config.load_balancer,
            roles=roles,
            load_balancer_vms=lb_vms,
            load_balancer_cpu=lb_vms * lb_cpu,
            load_balancer_ram_gb=lb_vms * lb_ram,
            storage_gb=env_config.storage_gb,
        )

    def _size_role(self, role_config: VMRoleConfig, ha_multiplier: float, vm_input: VMSizingInput) -> VMRoleResult:
        base_cpu, base_ram = self.role_spec(role_config.role, role_config.size, vm_input.technology)
        cpu = role_config.custom_cpu if role_config.custom_cpu is not None else base_cpu
        ram = role_config.custom_ram_gb if role_config.custom_ram_gb is not None else base_ram

        overhead = 1 + vm_input.system_overhead_percent / 100
        return VMRoleResult(
            role=role_config.role,
            name=role_config.display_name,
            size=role_config.size,
            base_instances=role_config.instance_count,
            total_instances=ceil_nodes(role_config.instance_count * ha_multiplier),
            cpu_per_instance=ceil_nodes(cpu * overhead),
            ram_per_instance_gb=ceil_nodes(ram * overhead),
            disk_per_instance_gb=role_config.disk_gb,
        )


def compute_vm_sizing(vm_input: VMSizingInput) -> VMSizingResult:
    """Compute per-role, per-environment and aggregate VM totals."""
    return VMSizer().compute(vm_input)
