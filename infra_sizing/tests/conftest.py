"""
Shared pytest fixtures for sizing, pricing and growth tests.
"""

import sys
from pathlib import Path
from types import MappingProxyType

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest
from fastapi.testclient import TestClient

from infra_sizing.domain.catalogue import EnvironmentKind, NodeRole, NodeRoleSpecs, NodeSpec
from infra_sizing.domain.pricing_models import DeploymentConfig, LowCodePlatform
from infra_sizing.domain.workload_models import AppCount, WorkloadConfig
from infra_sizing.services.tier_catalogue import DEFAULT_NODE_SPECS


@pytest.fixture
def client():
    """FastAPI test client."""
    from infra_sizing.main import app
    return TestClient(app)


@pytest.fixture
def small_prod_workload():
    """Prod-only workload: 2 small, 2 medium, 1 large app, 1 replica, 20% headroom."""
    return WorkloadConfig(
        distribution="eks",
        enabled_environments=frozenset({EnvironmentKind.PROD}),
        app_counts=MappingProxyType({EnvironmentKind.PROD: AppCount(small=2, medium=2, large=1)}),
        replicas=MappingProxyType({EnvironmentKind.PROD: 1}),
        headroom_percent=MappingProxyType({EnvironmentKind.PROD: 20.0}),
    )


@pytest.fixture
def four_core_workers():
    """Default node specs with 4-core / 16 GB workers in both buckets."""
    worker = NodeSpec(cpu=4, ram_gb=16, disk_gb=100)
    prod = dict(DEFAULT_NODE_SPECS.prod)
    non_prod = dict(DEFAULT_NODE_SPECS.non_prod)
    prod[NodeRole.WORKER] = worker
    non_prod[NodeRole.WORKER] = worker
    return NodeRoleSpecs(prod=MappingProxyType(prod), non_prod=MappingProxyType(non_prod))


@pytest.fixture
def full_workload():
    """All five environments on OpenShift with a mixed portfolio."""
    apps = AppCount(small=10, medium=8, large=4, xlarge=2)
    return WorkloadConfig(
        distribution="openshift",
        enabled_environments=frozenset(EnvironmentKind),
        app_counts=MappingProxyType({environment: apps for environment in EnvironmentKind}),
    )


@pytest.fixture
def odc_deployment():
    """ODC cloud deployment with 450 application objects."""
    return DeploymentConfig(
        platform=LowCodePlatform.ODC,
        total_application_objects=450,
    )


@pytest.fixture
def sizing_payload():
    """JSON body for /api/sizing."""
    return {
        "distribution": "openshift",
        "environments": ["dev", "prod"],
        "app_counts": {
            "dev": {"small": 5, "medium": 5},
            "prod": {"small": 5, "medium": 5, "large": 2},
        },
    }


@pytest.fixture
def vm_payload():
    """JSON body for /api/vm/sizing: two N+1 app servers behind an HA pair."""
    return {
        "technology": "dotnet",
        "environments": {
            "prod": {
                "roles": [{"role": "app", "size": "medium", "instance_count": 2}],
                "ha_pattern": "n_plus_1",
                "load_balancer": "ha_pair",
            },
        },
    }
