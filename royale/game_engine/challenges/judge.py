"""Submission judge for elimination rounds.

Runs a submission against every validator of a question through the sandbox.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from royale.core.metrics import record_submission
from royale.game_engine.challenges.questions import Question
from royale.game_engine.challenges.sandbox import CodeSandbox, SandboxError, SandboxResult

logger = logging.getLogger(__name__)


@dataclass
class JudgeResult:
    """Complete result of judging a submission."""
    passed: bool  # All validators accepted
    passed_validators: int
    total_validators: int
    results: list[SandboxResult] = field(default_factory=list)
    error: Optional[SandboxError] = None

    @property
    def outcome(self) -> str:
        if self.passed:
            return "passed"
        if self.error is SandboxError.TIMEOUT:
            return "timeout"
        if self.error:
            return "error"
        return "failed"


class SubmissionJudge:
    """Judges submissions against a question's validators.

    Validators run in order and judging stops at the first rejection, so a
    submission that hangs costs at most one sandbox deadline.
    """

    def __init__(self, sandbox: CodeSandbox | None = None):
        self.sandbox = sandbox or CodeSandbox()

    async def judge(self, code: str, question: Question) -> JudgeResult:
        results: list[SandboxResult] = []
        error = None

        for validator in question.validators:
            result = await self.sandbox.evaluate(code, validator)
            results.append(result)
            if not result.passed:
                error = result.error
                break

        passed_count = sum(1 for r in results if r.passed)
        judged = JudgeResult(
            passed=passed_count == len(question.validators),
            passed_validators=passed_count,
            total_validators=len(question.validators),
            results=results,
            error=error,
        )

        record_submission(judged.outcome)
        if error:
            logger.info(f"Submission rejected: {error.value} ({results[-1].detail})")
        return judged
