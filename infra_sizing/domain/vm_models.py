"""
Domain models for virtual-machine sizing.
Defines server roles, HA and load balancer options, per-environment VM
layouts and the sizing result.
"""
from typing import Dict, Any, List, Mapping, Optional, Tuple
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType

from infra_sizing.domain.catalogue import ENVIRONMENT_ORDER, EnvironmentKind, SizeTier, Technology
from infra_sizing.domain.errors import ConfigurationError


MIN_ROLE_INSTANCES = 1
MAX_ROLE_INSTANCES = 100
MIN_ROLE_DISK_GB = 10
MAX_ROLE_DISK_GB = 10_000
MAX_ENVIRONMENT_STORAGE_GB = 1_000_000
MAX_SYSTEM_OVERHEAD_PERCENT = 50.0


class ServerRole(str, Enum):
    """Function a group of VMs serves."""
    WEB = "web"
    APP = "app"
    DATABASE = "database"
    CACHE = "cache"
    MESSAGE_QUEUE = "message_queue"
    SEARCH = "search"
    STORAGE = "storage"
    MONITORING = "monitoring"
    BASTION = "bastion"

    @property
    def display_name(self) -> str:
        return SERVER_ROLE_NAMES[self]


SERVER_ROLE_NAMES: Mapping[ServerRole, str] = MappingProxyType({
    ServerRole.WEB: "Web Server",
    ServerRole.APP: "Application Server",
    ServerRole.DATABASE: "Database Server",
    ServerRole.CACHE: "Cache Server",
    ServerRole.MESSAGE_QUEUE: "Message Queue",
    ServerRole.SEARCH: "Search Server",
    ServerRole.STORAGE: "Storage Server",
    ServerRole.MONITORING: "Monitoring Server",
    ServerRole.BASTION: "Bastion Host",
})


class HAPattern(str, Enum):
    """Instance redundancy applied to every role of an environment."""
    NONE = "none"
    ACTIVE_ACTIVE = "active_active"
    ACTIVE_PASSIVE = "active_passive"
    N_PLUS_1 = "n_plus_1"
    N_PLUS_2 = "n_plus_2"


class LoadBalancerOption(str, Enum):
    NONE = "none"
    SINGLE = "single"
    HA_PAIR = "ha_pair"
    CLOUD = "cloud"  # managed service, sized as no VMs


@dataclass(frozen=True)
class VMRoleConfig:
    """One server role in an environment; custom values override the tier spec."""
    role: ServerRole
    size: SizeTier = SizeTier.MEDIUM
    instance_count: int = 1
    disk_gb: int = 100
    custom_cpu: Optional[int] = None
    custom_ram_gb: Optional[int] = None
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.role.display_name

    def validate(self, field_name: str) -> None:
        if not MIN_ROLE_INSTANCES <= self.instance_count <= MAX_ROLE_INSTANCES:
            raise ConfigurationError(
                f"{field_name}.instance_count",
                f"Instance count must be between {MIN_ROLE_INSTANCES} and {MAX_ROLE_INSTANCES}"
            )
        if not MIN_ROLE_DISK_GB <= self.disk_gb <= MAX_ROLE_DISK_GB:
            raise ConfigurationError(
                f"{field_name}.disk_gb",
                f"Disk must be between {MIN_ROLE_DISK_GB:,} and {MAX_ROLE_DISK_GB:,} GB"
            )
        if self.custom_cpu is not None and self.custom_cpu <= 0:
            raise ConfigurationError(f"{field_name}.custom_cpu", "Custom CPU must be greater than zero")
        if self.custom_ram_gb is not None and self.custom_ram_gb <= 0:
            raise ConfigurationError(f"{field_name}.custom_ram_gb", "Custom RAM must be greater than zero")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "role": self.role.value,
            "name": self.display_name,
            "size": self.size.value,
            "instance_count": self.instance_count,
            "disk_gb": self.disk_gb,
            "custom_cpu": self.custom_cpu,
            "custom_ram_gb": self.custom_ram_gb,
        }


@dataclass(frozen=True)
class VMEnvironmentConfig:
    """VM layout of one environment."""
    roles: Tuple[VMRoleConfig, ...]
    ha_pattern: HAPattern = HAPattern.NONE
    load_balancer: LoadBalancerOption = LoadBalancerOption.NONE
    storage_gb: int = 100

    def validate(self, field_name: str) -> None:
        if not self.roles:
            raise ConfigurationError(f"{field_name}.roles", "At least one server role is required")
        if not 0 <= self.storage_gb <= MAX_ENVIRONMENT_STORAGE_GB:
            raise ConfigurationError(
                f"{field_name}.storage_gb",
                f"Storage must be between 0 and {MAX_ENVIRONMENT_STORAGE_GB:,} GB"
            )
        for index, role in enumerate(self.roles):
            role.validate(f"{field_name}.roles[{index}]")


@dataclass(frozen=True)
class VMSizingInput:
    """
    VM deployment description for one sizing run.

    Environments present in ``environments`` are the enabled ones.
    """
    technology: Technology = Technology.DOTNET
    environments: Mapping[EnvironmentKind, VMEnvironmentConfig] = field(default_factory=dict)
    system_overhead_percent: float = 15.0

    def ordered_environments(self) -> List[EnvironmentKind]:
        return [env for env in ENVIRONMENT_ORDER if env in self.environments]

    def validate(self) -> None:
        """
        Validate the VM deployment.

        Raises:
            ConfigurationError: If production is missing or any layout is invalid.
        """
        if EnvironmentKind.PROD not in self.environments:
            raise ConfigurationError("environments", "Production environment must always be sized")
        if not 0 <= self.system_overhead_percent <= MAX_SYSTEM_OVERHEAD_PERCENT:
            raise ConfigurationError(
                "system_overhead_percent",
                f"System overhead must be between 0 and {MAX_SYSTEM_OVERHEAD_PERCENT:.0f}%"
            )
        for environment in self.ordered_environments():
            self.environments[environment].validate(f"environments.{environment.value}")


@dataclass(frozen=True)
class VMRoleResult:
    """Sized instances of one server role."""
    role: ServerRole
    name: str
    size: SizeTier
    base_instances: int
    total_instances: int
    cpu_per_instance: int
    ram_per_instance_gb: int
    disk_per_instance_gb: int

    @property
    def total_cpu(self) -> int:
        return self.total_instances * self.cpu_per_instance

    @property
    def total_ram_gb(self) -> int:
        return self.total_instances * self.ram_per_instance_gb

    @property
    def total_disk_gb(self) -> int:
        return self.total_instances * self.disk_per_instance_gb

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "role": self.role.value,
            "name": self.name,
            "size": self.size.value,
            "base_instances": self.base_instances,
            "total_instances": self.total_instances,
            "cpu_per_instance": self.cpu_per_instance,
            "ram_per_instance_gb": self.ram_per_instance_gb,
            "disk_per_instance_gb": self.disk_per_instance_gb,
            "total_cpu": self.total_cpu,
            "total_ram_gb": self.total_ram_gb,
            "total_disk_gb": self.total_disk_gb,
        }


@dataclass(frozen=True)
class VMEnvironmentResult:
    """VM sizing of a single environment."""
    environment: EnvironmentKind
    ha_pattern: HAPattern
    load_balancer: LoadBalancerOption
    roles: Tuple[VMRoleResult, ...]
    load_balancer_vms: int = 0
    load_balancer_cpu: int = 0
    load_balancer_ram_gb: int = 0
    storage_gb: int = 0

    @property
    def is_prod(self) -> bool:
        return self.environment.is_prod

    @property
    def total_vms(self) -> int:
        return sum(role.total_instances for role in self.roles) + self.load_balancer_vms

    @property
    def total_cpu(self) -> int:
        return sum(role.total_cpu for role in self.roles) + self.load_balancer_cpu

    @property
    def total_ram_gb(self) -> int:
        return sum(role.total_ram_gb for role in self.roles) + self.load_balancer_ram_gb

    @property
    def total_disk_gb(self) -> int:
        return sum(role.total_disk_gb for role in self.roles) + self.storage_gb

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "environment": self.environment.value,
            "environment_name": self.environment.display_name,
            "is_prod": self.is_prod,
            "ha_pattern": self.ha_pattern.value,
            "load_balancer": self.load_balancer.value,
            "roles": [role.to_dict() for role in self.roles],
            "load_balancer_vms": self.load_balancer_vms,
            "load_balancer_cpu": self.load_balancer_cpu,
            "load_balancer_ram_gb": self.load_balancer_ram_gb,
            "storage_gb": self.storage_gb,
            "total_vms": self.total_vms,
            "total_cpu": self.total_cpu,
            "total_ram_gb": self.total_ram_gb,
            "total_disk_gb": self.total_disk_gb,
        }


@dataclass(frozen=True)
class VMSizingResult:
    """Per-environment and aggregate VM totals."""
    technology: Technology
    environments: Tuple[VMEnvironmentResult, ...]
    system_overhead_percent: float = 0.0

    def environment(self, environment: EnvironmentKind) -> Optional[VMEnvironmentResult]:
        for env_result in self.environments:
            if env_result.environment == environment:
                return env_result
        return None

    @property
    def total_vms(self) -> int:
        return sum(env.total_vms for env in self.environments)

    @property
    def total_cpu(self) -> int:
        return sum(env.total_cpu for env in self.environments)

    @property
    def total_ram_gb(self) -> int:
        return sum(env.total_ram_gb for env in self.environments)

    @property
    def total_disk_gb(self) -> int:
        return sum(env.total_disk_gb for env in self.environments)

    @property
    def total_load_balancer_vms(self) -> int:
        return sum(env.load_balancer_vms for env in self.environments)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "technology": self.technology.value,
            "technology_name": self.technology.display_name,
            "system_overhead_percent": self.system_overhead_percent,
            "environments": [env.to_dict() for env in self.environments],
            "totals": {
                "vms": self.total_vms,
                "cpu": self.total_cpu,
                "ram_gb": self.total_ram_gb,
                "disk_gb": self.total_disk_gb,
                "load_balancer_vms": self.total_load_balancer_vms,
            },
        }
