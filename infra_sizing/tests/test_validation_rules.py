"""
Tests for the configuration review rules.
"""

from types import MappingProxyType

from infra_sizing.domain.catalogue import EnvironmentKind
from infra_sizing.domain.ha_dr_models import HADRConfig, NodeDistribution
from infra_sizing.domain.validation_models import FindingSeverity
from infra_sizing.domain.workload_models import (
    AppCount,
    OvercommitConfig,
    OvercommitRatio,
    WorkloadConfig,
)
from infra_sizing.services.resource_aggregator import compute_sizing
from infra_sizing.services.validation_rules import evaluate_configuration, findings_to_warnings


MULTI_AZ = HADRConfig(node_distribution=NodeDistribution.MULTI_AZ, availability_zones=3)


def _workload(distribution="eks", apps=None, **kwargs):
    apps = apps or {EnvironmentKind.PROD: AppCount(small=4)}
    return WorkloadConfig(
        distribution=distribution,
        enabled_environments=frozenset(apps),
        app_counts=MappingProxyType(apps),
        **kwargs
    )


def _review(workload, overcommit=None, ha_dr=None):
    sizing = compute_sizing(workload, overcommit=overcommit, ha_dr_config=ha_dr)
    return evaluate_configuration(workload, sizing, overcommit, ha_dr)


def _ids(findings):
    return {finding.id for finding in findings}


def test_well_sized_configuration_looks_good():
    """A balanced multi-AZ production setup only gets informational findings."""
    workload = _workload(apps={EnvironmentKind.PROD: AppCount(xlarge=20)})
    findings = _review(workload, ha_dr=MULTI_AZ)

    assert _ids(findings) == {"overcommit-none-prod", "config-good"}
    assert findings[-1].severity == FindingSeverity.SUCCESS


def test_oversized_dev_environment():
    """Dev larger than 60% of prod is flagged as a cost issue."""
    workload = _workload(apps={
        EnvironmentKind.DEV: AppCount(xlarge=100),
        EnvironmentKind.PROD: AppCount(small=4),
    })
    findings = _review(workload)
    finding = next(f for f in findings if f.id == "env-dev-oversized")

    assert finding.severity == FindingSeverity.WARNING
    assert "34 nodes" in finding.message


def test_high_non_prod_replicas():
    """Non-production replicas above two are noted."""
    workload = _workload(
        apps={EnvironmentKind.TEST: AppCount(small=2), EnvironmentKind.PROD: AppCount(small=4)},
        replicas=MappingProxyType({EnvironmentKind.TEST: 3}),
    )
    assert "replicas-high-test" in _ids(_review(workload))


def test_low_prod_replicas(small_prod_workload):
    """A single production replica is a high-availability warning."""
    findings = _review(small_prod_workload)
    assert "replicas-low-prod" in _ids(findings)
    assert "config-good" not in _ids(findings)


def test_small_openshift_deployment():
    """OpenShift under 15 nodes suggests a lighter distribution."""
    assert "dist-openshift-small" in _ids(_review(_workload(distribution="openshift")))


def test_large_vanilla_kubernetes():
    """Large vanilla clusters get managed, infra-node and cluster-size findings."""
    workload = _workload(distribution="kubernetes", apps={EnvironmentKind.PROD: AppCount(xlarge=400)})
    ids = _ids(_review(workload, ha_dr=MULTI_AZ))

    assert {"dist-managed-suggestion", "dist-infra-suggestion", "cluster-large-prod"} <= ids


def test_headroom_disabled():
    """Disabled headroom is a warning and skips the non-prod headroom check."""
    workload = _workload(
        headroom_enabled=False,
        headroom_percent=MappingProxyType({EnvironmentKind.DEV: 80.0}),
    )
    ids = _ids(_review(workload))

    assert "headroom-disabled" in ids
    assert "headroom-high-nonprod" not in ids


def test_high_non_prod_headroom():
    """Non-production headroom above 50% is noted."""
    workload = _workload(headroom_percent=MappingProxyType({EnvironmentKind.DEV: 60.0}))
    assert "headroom-high-nonprod" in _ids(_review(workload))


def test_high_overcommit_in_prod():
    """Aggressive production overcommit is a warning for CPU and memory."""
    overcommit = OvercommitConfig(prod=OvercommitRatio(cpu=5.0, memory=3.0))
    ids = _ids(_review(_workload(), overcommit=overcommit))

    assert {"overcommit-high-cpu", "overcommit-high-memory"} <= ids
    assert "overcommit-none-prod" not in ids


def test_small_production_cluster():
    """Production with apps and fewer than three workers is a warning."""
    assert "cluster-small-prod" in _ids(_review(_workload()))


def test_single_az_production():
    """Single-zone production is flagged; multi-AZ is not."""
    workload = _workload()
    assert "ha-single-az-prod" in _ids(_review(workload))
    assert "ha-single-az-prod" not in _ids(_review(workload, ha_dr=MULTI_AZ))


def test_dr_environment_acknowledged():
    """A sized DR environment adds a success finding."""
    workload = _workload(apps={
        EnvironmentKind.PROD: AppCount(small=4),
        EnvironmentKind.DR: AppCount(small=4),
    })
    assert "dr-configured" in _ids(_review(workload))


def test_findings_most_severe_first():
    """Findings are ordered from most to least severe."""
    workload = _workload(apps={
        EnvironmentKind.DEV: AppCount(xlarge=100),
        EnvironmentKind.PROD: AppCount(small=4),
        EnvironmentKind.DR: AppCount(small=4),
    })
    ranks = [finding.severity.rank for finding in _review(workload)]
    assert ranks == sorted(ranks, reverse=True)


def test_findings_to_warnings_skips_success():
    """Only non-success findings are rendered as warnings."""
    workload = _workload(apps={EnvironmentKind.PROD: AppCount(xlarge=20)})
    findings = _review(workload, ha_dr=MULTI_AZ)
    warnings = findings_to_warnings(findings)

    assert len(warnings) == 1
    assert warnings[0].startswith("No Resource Overcommit in Production:")
