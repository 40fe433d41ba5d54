"""Challenge questions for the elimination rounds.

A question is a prompt, an optional starter template and the validators a
submission must satisfy. Submissions are single Python expressions that
evaluate to a callable; every validator calls it with fixed arguments and
compares the return value.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

from royale.core.exceptions import QuestionBankError, QuestionOutOfRangeError

logger = logging.getLogger(__name__)


def strict_equals(value: Any, expected: Any) -> bool:
    """Compare JSON values without letting bools stand in for numbers."""
    if isinstance(expected, bool) or isinstance(value, bool):
        return type(value) is type(expected) and value == expected
    if isinstance(expected, (int, float)):
        return isinstance(value, (int, float)) and value == expected
    if isinstance(expected, (list, tuple)):
        return (
            isinstance(value, (list, tuple))
            and len(value) == len(expected)
            and all(strict_equals(v, e) for v, e in zip(value, expected))
        )
    if isinstance(expected, dict):
        return (
            isinstance(value, dict)
            and value.keys() == expected.keys()
            and all(strict_equals(value[k], expected[k]) for k in expected)
        )
    return type(value) is type(expected) and value == expected


@dataclass(frozen=True)
class Validator:
    """Calls the submission with ``args`` and expects ``expected`` back."""
    args: tuple[Any, ...] = ()
    expected: Any = None

    def accepts(self, value: Any) -> bool:
        return strict_equals(value, self.expected)


@dataclass(frozen=True)
class Question:
    """A single timed challenge."""
    prompt: str
    validators: tuple[Validator, ...]
    code_template: Optional[str] = None


class QuestionBank:
    """Ordered, read-only sequence of questions."""

    def __init__(self, questions: Sequence[Question]):
        if not questions:
            raise QuestionBankError("Question bank cannot be empty")
        for index, question in enumerate(questions):
            if not question.validators:
                raise QuestionBankError(f"Question {index} has no validators")
        self._questions: tuple[Question, ...] = tuple(questions)

    def get(self, index: int) -> Question:
        if index < 0 or index >= len(self._questions):
            raise QuestionOutOfRangeError(index, len(self._questions))
        return self._questions[index]

    def count(self) -> int:
        return len(self._questions)


# Built-in challenges
QUESTIONS: list[Question] = [
    Question(
        prompt=(
            "Write a function that accepts a list of numbers and returns the sum "
            "of the products of every two adjacent items."
        ),
        code_template="lambda arr: 0",
        validators=(
            Validator(args=([1, 2, 3],), expected=8),
            Validator(args=([5],), expected=0),
            Validator(args=([2, -1, 4],), expected=-6),
        ),
    ),
    Question(
        prompt="Write a function that returns the words of a sentence in reverse order.",
        code_template="lambda sentence: sentence",
        validators=(
            Validator(args=("hello big world",), expected="world big hello"),
            Validator(args=("solo",), expected="solo"),
        ),
    ),
    Question(
        prompt="Write a function that counts the vowels (a, e, i, o, u) in a string, ignoring case.",
        code_template="lambda text: 0",
        validators=(
            Validator(args=("Sandbox",), expected=2),
            Validator(args=("AEIOU xyz",), expected=5),
            Validator(args=("",), expected=0),
        ),
    ),
]


def default_question_bank() -> QuestionBank:
    return QuestionBank(QUESTIONS)


# Question file schema

class ValidatorSpec(BaseModel):
    args: list[Any] = Field(default_factory=list)
    expected: Any = None


class QuestionSpec(BaseModel):
    prompt: str = Field(..., min_length=1)
    code_template: Optional[str] = None
    validators: list[ValidatorSpec] = Field(..., min_length=1)

    def to_question(self) -> Question:
        return Question(
            prompt=self.prompt,
            code_template=self.code_template,
            validators=tuple(
                Validator(args=tuple(v.args), expected=v.expected)
                for v in self.validators
            ),
        )


class QuestionFile(BaseModel):
    questions: list[QuestionSpec] = Field(..., min_length=1)


def load_question_bank(path: Optional[Path] = None) -> QuestionBank:
    """Load questions from a JSON file, or the built-in set when no path is given.

    The file holds ``{"questions": [{"prompt": ..., "code_template": ...,
    "validators": [{"args": [...], "expected": ...}]}]}``.
    """
    if path is None:
        return default_question_bank()

    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise QuestionBankError(f"Cannot read question file {path}: {e}") from e

    try:
        spec = QuestionFile.model_validate(raw)
    except ValidationError as e:
        raise QuestionBankError(f"Invalid question file {path}: {e}") from e

    bank = QuestionBank([q.to_question() for q in spec.questions])
    logger.info(f"Loaded {bank.count()} questions from {path}")
    return bank
