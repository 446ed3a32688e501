"""
Service protocol definitions (interfaces).

Defines formal interfaces for services using Python's typing.Protocol so the
analysis service can be driven by any collaborator with the right shape.
"""

from typing import Callable, Protocol

from src.domain.models.results import AnalysisResults

# Called with (stage, message) as real analysis milestones occur; stage in 1..4
StageCallback = Callable[[int, str], None]


class ICodeAnalyzer(Protocol):
    """
    Protocol for code analyzers.

    Implementations run the full analysis of one code snippet and report
    stage milestones through the callback with non-decreasing stage numbers.
    """

    async def analyze(self, code: str, on_stage: StageCallback) -> AnalysisResults:
        """
        Analyze a code snippet.

        Args:
            code: Source code to analyze
            on_stage: Callback invoked zero or more times as stages start

        Returns:
            AnalysisResults for the snippet

        Raises:
            Exception: Any failure; the caller marks the session as error
        """
        ...
