"""
Domain models for configuration findings.
Defines the structure of rule-based recommendations about a sizing run.
"""
from typing import Dict, Any, Optional
from dataclasses import dataclass
from enum import Enum


class FindingSeverity(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Ordering weight; higher is more severe."""
        return SEVERITY_RANK[self]


SEVERITY_RANK = {
    FindingSeverity.SUCCESS: 0,
    FindingSeverity.INFO: 1,
    FindingSeverity.WARNING: 2,
    FindingSeverity.CRITICAL: 3,
}


class FindingCategory(str, Enum):
    GENERAL = "general"
    SIZING = "sizing"
    COST = "cost"
    HIGH_AVAILABILITY = "high_availability"
    DISTRIBUTION = "distribution"
    ENVIRONMENT = "environment"
    BEST_PRACTICE = "best_practice"


@dataclass(frozen=True)
class ValidationFinding:
    """A single rule outcome about a sizing configuration."""
    id: str
    severity: FindingSeverity
    category: FindingCategory
    title: str
    message: str
    recommendation: Optional[str] = None

    @property
    def is_issue(self) -> bool:
        """Warnings and critical findings count as issues."""
        return self.severity.rank >= FindingSeverity.WARNING.rank

    def to_text(self) -> str:
        text = f"{self.title}: {self.message}"
        if self.recommendation:
            text += f" {self.recommendation}"
        return text

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "severity": self.severity.value,
            "category": self.category.value,
            "title": self.title,
            "message": self.message,
            "recommendation": self.recommendation,
        }
