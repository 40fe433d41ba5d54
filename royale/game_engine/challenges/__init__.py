"""Coding challenges - question bank, sandbox and judge.

Participants submit a single Python expression evaluating to a callable;
the judge runs it in an isolated child process against each validator.
"""

from royale.game_engine.challenges.judge import JudgeResult, SubmissionJudge
from royale.game_engine.challenges.questions import (
    Question,
    QuestionBank,
    Validator,
    default_question_bank,
    load_question_bank,
)
from royale.game_engine.challenges.sandbox import CodeSandbox, SandboxError, SandboxResult

__all__ = [
    "CodeSandbox",
    "JudgeResult",
    "Question",
    "QuestionBank",
    "SandboxError",
    "SandboxResult",
    "SubmissionJudge",
    "Validator",
    "default_question_bank",
    "load_question_bank",
]
