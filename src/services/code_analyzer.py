"""
LLM-backed code analyzer.

Pipeline (one LLM call per stage, reported through on_stage):
1. Security scan -> SecurityResults (counters recomputed from findings)
2. SOC 2 review -> SOC2Results
3. RAG strategy comparison -> RAGResults (winner flagged)
4. Certification roadmap -> CertificationResults list

Any stage failure aborts the analysis; the caller owns session state.
"""

from typing import Any, Dict, List, Optional

import structlog
from pydantic import ValidationError

from src.core.config import Settings
from src.core.exceptions import AnalysisFailedError
from src.domain.models.results import (
    AnalysisResults,
    CertificationResults,
    RAGResults,
    SecurityFinding,
    SecurityResults,
    SOC2Results,
)
from src.llm.client import LLMClient, get_llm_client
from src.llm.prompts.analysis import (
    STAGE_MESSAGES,
    SYSTEM_PROMPT,
    get_certification_prompt,
    get_rag_prompt,
    get_security_prompt,
    get_soc2_prompt,
    parse_json_response,
)
from src.services.protocols import StageCallback

log = structlog.get_logger(__name__)


class LLMCodeAnalyzer:
    """Runs the four analysis stages against one LLM client."""

    def __init__(self, llm_client: LLMClient):
        self.llm = llm_client

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "LLMCodeAnalyzer":
        """Build an analyzer using the configured LLM provider."""
        return cls(llm_client=get_llm_client(settings))

    async def _ask(self, stage: str, prompt: str) -> Dict[str, Any]:
        response = await self.llm.complete(prompt, system=SYSTEM_PROMPT)
        return parse_json_response(response.content, stage)

    async def analyze(self, code: str, on_stage: StageCallback) -> AnalysisResults:
        """
        Analyze a code snippet through all four stages.

        Raises:
            AnalysisFailedError: A stage returned data that does not fit the
                result models
            LLMError: Provider call or response parsing failed
        """
        try:
            on_stage(1, STAGE_MESSAGES[1])
            security_data = await self._ask("security", get_security_prompt(code))
            findings = [
                SecurityFinding.model_validate(f)
                for f in security_data.get("findings", [])
            ]
            security = SecurityResults.from_findings(findings)
            findings_json: List[Dict[str, Any]] = [
                f.model_dump(by_alias=True) for f in findings
            ]

            on_stage(2, STAGE_MESSAGES[2])
            soc2_data = await self._ask("soc2", get_soc2_prompt(code, findings_json))
            soc2 = SOC2Results.model_validate(soc2_data)

            on_stage(3, STAGE_MESSAGES[3])
            rag_data = await self._ask("rag", get_rag_prompt(findings_json))
            rag = RAGResults.model_validate(rag_data)
            for strategy in rag.strategies:
                strategy.winner = strategy.name == rag.winner

            on_stage(4, STAGE_MESSAGES[4])
            cert_data = await self._ask(
                "certifications", get_certification_prompt(findings_json)
            )
            certifications = [
                CertificationResults.model_validate(c)
                for c in cert_data.get("certifications", [])
            ]
        except ValidationError as e:
            log.error("analysis_result_invalid", error_count=e.error_count())
            raise AnalysisFailedError(f"Analysis returned invalid data: {e}") from e

        log.info(
            "code_analysis_complete",
            findings=security.total,
            critical=security.critical,
            soc2_violations=len(soc2.violations),
            rag_winner=rag.winner,
            certifications=len(certifications),
        )

        return AnalysisResults(
            security=security,
            soc2=soc2,
            rag=rag,
            certifications=certifications,
        )
