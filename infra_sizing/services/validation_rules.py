"""
Configuration review rules.
Inspects a workload and its sizing result and produces findings about
over-provisioning, availability and distribution fit.
"""
from typing import List, Optional
import logging

from infra_sizing.domain.catalogue import EnvironmentKind, NodeRole
from infra_sizing.domain.ha_dr_models import HADRConfig, NodeDistribution
from infra_sizing.domain.sizing_models import SizingResult
from infra_sizing.domain.validation_models import (
    FindingCategory,
    FindingSeverity,
    ValidationFinding,
)
from infra_sizing.domain.workload_models import OvercommitConfig, WorkloadConfig


logger = logging.getLogger(__name__)


NON_PROD_SHARE_OF_PROD = 0.6
MAX_NON_PROD_REPLICAS = 2
MIN_PROD_REPLICAS = 2
SMALL_OPENSHIFT_NODES = 15
LARGE_VANILLA_NODES = 50
INFRA_NODE_SUGGESTION_NODES = 30
MAX_NON_PROD_HEADROOM = 50.0
HIGH_CPU_OVERCOMMIT = 4.0
HIGH_MEMORY_OVERCOMMIT = 2.0
LARGE_CLUSTER_WORKERS = 200
MIN_PROD_WORKERS = 3


class ConfigurationReview:
    """Applies the review rules to one sizing run."""

    def __init__(
        self,
        workload: WorkloadConfig,
        sizing: SizingResult,
        overcommit: OvercommitConfig,
        ha_dr: HADRConfig,
    ):
        self.workload = workload
        self.sizing = sizing
        self.overcommit = overcommit
        self.ha_dr = ha_dr
        self.findings: List[ValidationFinding] = []

    def _add(
        self,
        finding_id: str,
        severity: FindingSeverity,
        category: FindingCategory,
        title: str,
        message: str,
        recommendation: Optional[str] = None,
    ) -> None:
        self.findings.append(
            ValidationFinding(finding_id, severity, category, title, message, recommendation)
        )

    def run(self) -> List[ValidationFinding]:
        self._check_environment_balance()
        self._check_replicas()
        self._check_distribution()
        self._check_headroom()
        self._check_overcommit()
        self._check_cluster_size()
        self._check_availability()
        self._add_positive_feedback()
        # Most severe first; stable within a severity
        return sorted(self.findings, key=lambda finding: -finding.severity.rank)

    def _check_environment_balance(self) -> None:
        prod = self.sizing.environment(EnvironmentKind.PROD)
        if prod is None or prod.total_nodes == 0:
            return
        for environment in (EnvironmentKind.DEV, EnvironmentKind.TEST):
            env_sizing = self.sizing.environment(environment)
            if env_sizing is None or env_sizing.total_nodes <= prod.total_nodes * NON_PROD_SHARE_OF_PROD:
                continue
            share = env_sizing.total_nodes * 100 // prod.total_nodes
            self._add(
                f"env-{environment.value}-oversized",
                FindingSeverity.WARNING,
                FindingCategory.COST,
                f"{environment.display_name} Environment May Be Over-Provisioned",
                f"{environment.display_name} environment ({env_sizing.total_nodes} nodes) is {share}% "
                f"of production ({prod.total_nodes} nodes).",
                f"Consider reducing {environment.display_name.lower()} replicas or using smaller "
                f"node specs for cost savings.",
            )

    def _check_replicas(self) -> None:
        for env_sizing in self.sizing.environments:
            if env_sizing.is_prod or env_sizing.replicas <= MAX_NON_PROD_REPLICAS:
                continue
            name = env_sizing.environment.display_name
            self._add(
                f"replicas-high-{env_sizing.environment.value}",
                FindingSeverity.INFO,
                FindingCategory.COST,
                f"High Replica Count in {name}",
                f"{name} environment has {env_sizing.replicas} replicas per app.",
                "Non-production environments typically use 1-2 replicas. Consider reducing for cost savings.",
            )

        prod = self.sizing.environment(EnvironmentKind.PROD)
        if prod is not None and prod.replicas < MIN_PROD_REPLICAS:
            self._add(
                "replicas-low-prod",
                FindingSeverity.WARNING,
                FindingCategory.HIGH_AVAILABILITY,
                "Low Production Replicas",
                f"Production has only {prod.replicas} replica per application.",
                "Consider at least 2-3 replicas for high availability in production.",
            )

    def _check_distribution(self) -> None:
        total_nodes = self.sizing.total_nodes
        distribution = self.sizing.distribution

        if distribution == "openshift" and total_nodes < SMALL_OPENSHIFT_NODES:
            self._add(
                "dist-openshift-small",
                FindingSeverity.INFO,
                FindingCategory.DISTRIBUTION,
                "OpenShift May Be Overkill",
                f"Your deployment has only {total_nodes} nodes. "
                f"OpenShift is designed for larger enterprise deployments.",
                "Consider K3s, MicroK8s, or a managed service (EKS/AKS/GKE) for smaller deployments.",
            )

        if distribution == "kubernetes" and total_nodes > LARGE_VANILLA_NODES:
            self._add(
                "dist-managed-suggestion",
                FindingSeverity.INFO,
                FindingCategory.DISTRIBUTION,
                "Consider Managed Kubernetes",
                f"With {total_nodes} nodes, managing vanilla Kubernetes can be complex.",
                "Consider EKS, AKS, GKE, or OKE to reduce control plane operations.",
            )

        if total_nodes > INFRA_NODE_SUGGESTION_NODES and self.sizing.nodes_for(NodeRole.INFRA) == 0:
            self._add(
                "dist-infra-suggestion",
                FindingSeverity.INFO,
                FindingCategory.BEST_PRACTICE,
                "Consider Dedicated Infrastructure Nodes",
                f"Your deployment has {total_nodes} nodes without dedicated infrastructure nodes.",
                "Dedicate nodes to monitoring, logging and ingress on larger deployments.",
            )

    def _check_headroom(self) -> None:
        if not self.workload.headroom_enabled:
            self._add(
                "headroom-disabled",
                FindingSeverity.WARNING,
                FindingCategory.SIZING,
                "Headroom Is Disabled",
                "Resource headroom is disabled. Clusters will be sized exactly to current needs.",
                "Enable headroom (20-40%) to absorb growth and burst traffic.",
            )
            return

        dev = self.workload.headroom_for(EnvironmentKind.DEV)
        test = self.workload.headroom_for(EnvironmentKind.TEST)
        if dev > MAX_NON_PROD_HEADROOM or test > MAX_NON_PROD_HEADROOM:
            self._add(
                "headroom-high-nonprod",
                FindingSeverity.INFO,
                FindingCategory.COST,
                "High Headroom in Non-Production",
                f"Dev ({dev:g}%) or Test ({test:g}%) have high headroom percentages.",
                "Consider lower headroom (20-33%) for non-production to reduce costs.",
            )

    def _check_overcommit(self) -> None:
        prod = self.overcommit.prod
        if prod.cpu <= 1.0 and prod.memory <= 1.0:
            self._add(
                "overcommit-none-prod",
                FindingSeverity.INFO,
                FindingCategory.COST,
                "No Resource Overcommit in Production",
                "Production has no CPU or memory overcommit (1:1 ratio).",
                "Some CPU overcommit (1.5-2x) is common in production to improve utilization.",
            )
        if prod.cpu > HIGH_CPU_OVERCOMMIT:
            self._add(
                "overcommit-high-cpu",
                FindingSeverity.WARNING,
                FindingCategory.SIZING,
                "High CPU Overcommit in Production",
                f"Production CPU overcommit is {prod.cpu:g}x.",
                "Overcommit above 4x may degrade performance at peak. Consider 2-3x for production.",
            )
        if prod.memory > HIGH_MEMORY_OVERCOMMIT:
            self._add(
                "overcommit-high-memory",
                FindingSeverity.WARNING,
                FindingCategory.SIZING,
                "High Memory Overcommit in Production",
                f"Production memory overcommit is {prod.memory:g}x.",
                "Memory overcommit above 2x can cause OOM kills. Consider 1.0-1.5x for production.",
            )

    def _check_cluster_size(self) -> None:
        for env_sizing in self.sizing.environments:
            name = env_sizing.environment.display_name
            if env_sizing.workers > LARGE_CLUSTER_WORKERS:
                self._add(
                    f"cluster-large-{env_sizing.environment.value}",
                    FindingSeverity.WARNING,
                    FindingCategory.BEST_PRACTICE,
                    f"Large Cluster in {name}",
                    f"{name} cluster has {env_sizing.workers} worker nodes.",
                    "Consider splitting into multiple clusters for isolation and easier management.",
                )
            if env_sizing.is_prod and env_sizing.apps.total > 0 and env_sizing.workers < MIN_PROD_WORKERS:
                self._add(
                    f"cluster-small-{env_sizing.environment.value}",
                    FindingSeverity.WARNING,
                    FindingCategory.HIGH_AVAILABILITY,
                    f"Small Cluster in {name}",
                    f"{name} has only {env_sizing.workers} workers.",
                    "Minimum 3 workers recommended for high availability.",
                )

    def _check_availability(self) -> None:
        prod = self.sizing.environment(EnvironmentKind.PROD)
        if prod is None or prod.total_nodes == 0:
            return
        if self.ha_dr.node_distribution == NodeDistribution.SINGLE_AZ:
            self._add(
                "ha-single-az-prod",
                FindingSeverity.WARNING,
                FindingCategory.HIGH_AVAILABILITY,
                "Production Runs in a Single Availability Zone",
                "All production nodes are placed in one availability zone.",
                "Spread production across at least 3 zones to survive a zone outage.",
            )

    def _add_positive_feedback(self) -> None:
        if not any(finding.is_issue for finding in self.findings):
            self._add(
                "config-good",
                FindingSeverity.SUCCESS,
                FindingCategory.GENERAL,
                "Configuration Looks Good",
                "No significant issues detected in this sizing configuration.",
            )
        if self.sizing.environment(EnvironmentKind.DR) is not None:
            self._add(
                "dr-configured",
                FindingSeverity.SUCCESS,
                FindingCategory.HIGH_AVAILABILITY,
                "DR Environment Configured",
                "A disaster recovery environment is included in the sizing.",
            )


def evaluate_configuration(
    workload: WorkloadConfig,
    sizing: SizingResult,
    overcommit: Optional[OvercommitConfig] = None,
    ha_dr: Optional[HADRConfig] = None,
) -> List[ValidationFinding]:
    """
    Review a sizing run.

    Args:
        workload: Workload the sizing was computed from
        sizing: Result of compute_sizing
        overcommit: Overcommit ratios used (defaults to none)
        ha_dr: HA/DR configuration used (defaults to HADRConfig())

    Returns:
        Findings ordered from most to least severe
    """
    review = ConfigurationReview(
        workload,
        sizing,
        overcommit or OvercommitConfig(),
        ha_dr or HADRConfig(),
    )
    findings = review.run()
    issues = sum(1 for finding in findings if finding.is_issue)
    logger.info(f"Configuration review produced {len(findings)} finding(s), {issues} issue(s)")
    return findings


def findings_to_warnings(findings: List[ValidationFinding]) -> List[str]:
    """Render every non-success finding as a warning string."""
    return [
        finding.to_text()
        for finding in findings
        if finding.severity != FindingSeverity.SUCCESS
    ]
