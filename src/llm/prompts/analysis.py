"""
Prompts for the four analysis stages.

Stages:
1. Security scan: OWASP/CWE findings with fixes
2. SOC 2 review: trust-services controls the code puts at risk
3. RAG comparison: retrieval strategies for remediation guidance
4. Certification roadmap: training that covers the findings

Every prompt asks for a single JSON object so responses can be parsed with
parse_json_response().
"""

import json
import re
from typing import Any, Dict, List

import structlog

from src.core.exceptions import LLMResponseParseError

log = structlog.get_logger(__name__)

MAX_CODE_CHARS = 12000

SYSTEM_PROMPT = """You are a senior application security and compliance auditor.
You review code snippets and answer ONLY with a single valid JSON object.
No prose, no markdown, no comments inside the JSON."""


STAGE_MESSAGES = {
    1: "Scanning code for security vulnerabilities",
    2: "Evaluating SOC 2 control coverage",
    3: "Comparing retrieval strategies for remediation guidance",
    4: "Building certification roadmap",
}


def _code_block(code: str) -> str:
    if len(code) > MAX_CODE_CHARS:
        code = code[:MAX_CODE_CHARS] + "\n# ... truncated ..."
    return f"```\n{code}\n```"


def get_security_prompt(code: str) -> str:
    return f"""Find security vulnerabilities in this code.

{_code_block(code)}

Respond with:
{{
  "findings": [
    {{
      "id": 1,
      "type": "SQL Injection",
      "severity": "critical|high|medium|low",
      "file": "snippet",
      "line": 12,
      "owasp": "A03:2021 - Injection",
      "cwe": "CWE-89",
      "cvss": 9.8,
      "description": "what is wrong and why it is exploitable",
      "code": "the offending line",
      "fix": "corrected code or concrete remediation",
      "certTopics": ["Secure coding", "Input validation"]
    }}
  ]
}}
Return an empty findings list if the code is clean."""


def get_soc2_prompt(code: str, findings: List[Dict[str, Any]]) -> str:
    return f"""Assess this code against SOC 2 trust services criteria
(security, availability, processing integrity, confidentiality, privacy).

{_code_block(code)}

Security findings already identified:
{json.dumps(findings, indent=2)}

Respond with:
{{
  "readiness": 0-100,
  "passed": <controls satisfied>,
  "atRisk": <controls at risk>,
  "failed": <controls failed>,
  "violations": [
    {{
      "id": 1,
      "controlId": "CC6.1",
      "category": "Logical Access",
      "title": "short title",
      "severity": "critical|high|medium|low",
      "description": "...",
      "impact": "...",
      "businessRisk": "...",
      "remediation": "...",
      "timeToFix": "2 hours"
    }}
  ]
}}"""


def get_rag_prompt(findings: List[Dict[str, Any]]) -> str:
    return f"""Compare retrieval strategies (e.g. vector search, hybrid BM25 + vector,
graph retrieval) for retrieving remediation guidance for these findings:
{json.dumps(findings, indent=2)}

Respond with:
{{
  "strategies": [
    {{"name": "Hybrid", "accuracy": 0-100, "latency": <ms>, "precision": 0-100, "recall": 0-100}}
  ],
  "winner": "<strategy name>",
  "reason": "one sentence"
}}"""


def get_certification_prompt(findings: List[Dict[str, Any]]) -> str:
    topics = sorted({t for f in findings for t in f.get("certTopics", [])})
    return f"""Recommend security certifications for a developer whose code produced
these findings. Topics to cover: {", ".join(topics) or "general secure coding"}.

Respond with:
{{
  "certifications": [
    {{
      "id": 1,
      "name": "certification name",
      "phase": 1,
      "duration": "4 weeks",
      "cost": <USD>,
      "coverage": 0-100,
      "topics": ["..."],
      "priority": "high|medium|low"
    }}
  ]
}}"""


def _strip_markdown_fences(text: str) -> str:
    """Strip markdown code fences from LLM response."""
    text = text.strip()
    if text.startswith("```json"):
        text = text[7:]
    elif text.startswith("```"):
        text = text[3:]
    if text.endswith("```"):
        text = text[:-3]
    return text.strip()


def _repair_json(text: str) -> str:
    """Attempt to repair common LLM JSON generation errors.

    Handles trailing commas, missing commas between objects, and truncated
    output (unbalanced brackets/braces).
    """
    text = re.sub(r"(\})\s*\n\s*(\{)", r"\1,\n\2", text)

    open_braces = text.count("{") - text.count("}")
    open_brackets = text.count("[") - text.count("]")
    if open_brackets > 0:
        text += "]" * open_brackets
    if open_braces > 0:
        text += "}" * open_braces

    # Trailing commas last, so closers added above are covered too
    text = re.sub(r",\s*\]", "]", text)
    text = re.sub(r",\s*\}", "}", text)
    return text


def parse_json_response(response_text: str, stage: str) -> Dict[str, Any]:
    """
    Parse an LLM stage response into a dict.

    Args:
        response_text: Raw LLM response (should be JSON)
        stage: Stage name for error reporting

    Raises:
        LLMResponseParseError: If response is not a JSON object even after repair
    """
    text = _strip_markdown_fences(response_text)

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        repaired = _repair_json(text)
        try:
            data = json.loads(repaired)
        except json.JSONDecodeError as e:
            raise LLMResponseParseError(
                f"Invalid JSON in {stage} response: {e}"
            ) from e
        log.warning(
            "llm_json_repaired",
            stage=stage,
            original_length=len(text),
            repaired_length=len(repaired),
        )

    if not isinstance(data, dict):
        raise LLMResponseParseError(f"{stage} response must be a JSON object")

    return data
