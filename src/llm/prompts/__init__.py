# noqa
from src.llm.prompts.analysis import (
    SYSTEM_PROMPT,
    STAGE_MESSAGES,
    get_security_prompt,
    get_soc2_prompt,
    get_rag_prompt,
    get_certification_prompt,
    parse_json_response,
)

__all__ = [
    "SYSTEM_PROMPT",
    "STAGE_MESSAGES",
    "get_security_prompt",
    "get_soc2_prompt",
    "get_rag_prompt",
    "get_certification_prompt",
    "parse_json_response",
]
