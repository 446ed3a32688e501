"""Analysis result models.

Shape of the structured output produced by a completed analysis:

    AnalysisResults
    ├── security: SecurityResults (findings with OWASP/CWE/CVSS metadata)
    ├── soc2: SOC2Results (control violations and readiness score)
    ├── iso27001: optional free-form compliance section
    ├── rag: RAGResults (retrieval strategy comparison)
    ├── certifications: recommended certification roadmap
    └── mcp_insights: optional database insights

Fields serialize with camelCase aliases (certTopics, atRisk, ...) so the JSON
matches what polling clients already consume. Input accepts either form.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model emitting camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============ SECURITY ============


class SecurityFinding(CamelModel):
    """Single vulnerability located in the submitted code."""

    id: int
    type: str
    severity: str = Field(description="critical, high, medium or low")
    file: str = "snippet"
    line: int = 0
    owasp: str = ""
    cwe: str = ""
    cvss: float = Field(default=0.0, ge=0.0, le=10.0)
    description: str = ""
    code: str = ""
    fix: str = ""
    cert_topics: List[str] = Field(default_factory=list)


class SecurityResults(CamelModel):
    total: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    findings: List[SecurityFinding] = Field(default_factory=list)

    @classmethod
    def from_findings(cls, findings: List[SecurityFinding]) -> "SecurityResults":
        """Build results with counters derived from the findings list."""
        by_severity: Dict[str, int] = {}
        for finding in findings:
            key = finding.severity.lower()
            by_severity[key] = by_severity.get(key, 0) + 1
        return cls(
            total=len(findings),
            critical=by_severity.get("critical", 0),
            high=by_severity.get("high", 0),
            medium=by_severity.get("medium", 0),
            findings=findings,
        )


# ============ SOC 2 ============


class SOC2Violation(CamelModel):
    """Trust-services control the code puts at risk."""

    id: int
    control_id: str
    category: str = ""
    title: str
    severity: str
    description: str = ""
    impact: str = ""
    business_risk: str = ""
    remediation: str = ""
    time_to_fix: str = ""


class SOC2Results(CamelModel):
    readiness: float = Field(default=0.0, ge=0.0, le=100.0)
    passed: int = 0
    at_risk: int = 0
    failed: int = 0
    violations: List[SOC2Violation] = Field(default_factory=list)


# ============ RAG ============


class RAGStrategy(CamelModel):
    name: str
    accuracy: float
    latency: float
    precision: float
    recall: float
    winner: Optional[bool] = None


class RAGResults(CamelModel):
    strategies: List[RAGStrategy] = Field(default_factory=list)
    winner: str = ""
    reason: str = ""
    phase: Optional[str] = None


# ============ CERTIFICATIONS ============


class CertificationResults(CamelModel):
    """Recommended certification covering topics raised by the findings."""

    id: int
    name: str
    phase: int = 1
    duration: str = ""
    cost: float = 0.0
    coverage: float = Field(default=0.0, ge=0.0, le=100.0)
    topics: List[str] = Field(default_factory=list)
    priority: str = "medium"


class AnalysisResults(CamelModel):
    """Complete output of one analysis run."""

    security: SecurityResults
    soc2: SOC2Results
    iso27001: Optional[Dict[str, Any]] = None
    rag: RAGResults
    certifications: List[CertificationResults] = Field(default_factory=list)
    mcp_insights: Optional[Dict[str, Any]] = None
