"""Test helpers shared across test modules."""

import asyncio
from typing import Callable, List, Optional, Tuple

from src.core.config import Settings
from src.domain.models.results import AnalysisResults


def make_settings(**flags) -> Settings:
    """Settings with every provider flag explicitly set (None unless given).

    Ignores .env, and explicit values override any environment variables.
    """
    values = dict(
        groq_api_key=None,
        perplexity_api_key=None,
        openai_api_key=None,
        tiger_database_url=None,
        llm_provider=None,
    )
    values.update(flags)
    return Settings(_env_file=None, **values)


class FakeAnalyzer:
    """Scriptable stand-in for the code analyzer."""

    def __init__(
        self,
        results: Optional[AnalysisResults] = None,
        error: Optional[Exception] = None,
        stages: Tuple[int, ...] = (),
        release: Optional[asyncio.Event] = None,
    ):
        self.results = results
        self.error = error
        self.stages = stages
        self.release = release
        self.calls: List[str] = []

    async def analyze(self, code: str, on_stage: Callable[[int, str], None]):
        self.calls.append(code)
        for stage in self.stages:
            on_stage(stage, f"stage {stage}")
        if self.release is not None:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.results
