"""Subprocess-based sandbox for challenge submissions.

Each evaluation runs in a fresh, isolated child interpreter with no network
or filesystem capabilities exposed to the submission:
- ``python -I`` (no environment, no user site, no cwd on sys.path)
- Restricted builtins and no dunder attribute access
- Address-space, CPU and file-size rlimits
- Hard wall-clock deadline; the child is killed when it expires
"""

import asyncio
import json
import logging
import math
import sys
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from royale.config import settings
from royale.core.metrics import record_sandbox_run
from royale.game_engine.challenges.questions import Validator

logger = logging.getLogger(__name__)

RUNNER_SOURCE = (Path(__file__).parent / "runner.py").read_text(encoding="utf-8")


class SandboxError(str, Enum):
    """Why a submission could not produce a value."""
    EMPTY_CODE = "empty_code"
    CODE_TOO_LONG = "code_too_long"
    SYNTAX_ERROR = "syntax_error"
    FORBIDDEN = "forbidden"
    RUNTIME_ERROR = "runtime_error"
    OUTPUT_TOO_LARGE = "output_too_large"
    TIMEOUT = "timeout"
    CRASHED = "crashed"


@dataclass
class SandboxResult:
    """Outcome of evaluating one submission against one validator."""
    passed: bool
    duration_ms: int
    value: Any = None
    error: Optional[SandboxError] = None
    detail: Optional[str] = None


class CodeSandbox:
    """Evaluates untrusted submissions in isolated child processes.

    ``evaluate`` never raises: every failure mode, including a submission that
    never terminates, comes back as a failed ``SandboxResult``.
    """

    def __init__(
        self,
        timeout_ms: int | None = None,
        memory_limit_mb: int | None = None,
        max_code_length: int | None = None,
        python: str = sys.executable,
    ):
        self.timeout_ms = timeout_ms or settings.sandbox_timeout_ms
        self.memory_limit_mb = memory_limit_mb or settings.sandbox_memory_limit_mb
        self.max_code_length = max_code_length or settings.sandbox_max_code_length
        self.python = python

    def validate_code(self, code: str) -> Optional[SandboxError]:
        """Cheap checks before paying for a process."""
        if not code or not code.strip():
            return SandboxError.EMPTY_CODE
        if len(code) > self.max_code_length:
            return SandboxError.CODE_TOO_LONG
        return None

    async def evaluate(
        self,
        code: str,
        validator: Validator,
        deadline_ms: int | None = None,
    ) -> SandboxResult:
        """Run ``code`` against ``validator`` under a wall-clock deadline.

        Args:
            code: Submission source; a single expression evaluating to a callable
            validator: Arguments to call it with and the expected return value
            deadline_ms: Override for the configured deadline

        Returns:
            SandboxResult with ``passed`` set only when the value matched
        """
        problem = self.validate_code(code)
        if problem:
            return SandboxResult(passed=False, duration_ms=0, error=problem)

        deadline_ms = deadline_ms or self.timeout_ms
        job = json.dumps({
            "code": code,
            "args": list(validator.args),
            "memory_limit_mb": self.memory_limit_mb,
            "cpu_seconds": math.ceil(deadline_ms / 1000) + 1,
        }).encode()

        start_time = time.perf_counter()
        try:
            result = await self._run(job, deadline_ms, validator)
        except Exception as e:
            logger.exception(f"Sandbox failed to run submission: {e}")
            result = SandboxResult(
                passed=False,
                duration_ms=0,
                error=SandboxError.CRASHED,
                detail=str(e),
            )
        elapsed = time.perf_counter() - start_time
        result.duration_ms = int(elapsed * 1000)
        record_sandbox_run(elapsed)
        return result

    async def _run(self, job: bytes, deadline_ms: int, validator: Validator) -> SandboxResult:
        proc = await asyncio.create_subprocess_exec(
            self.python, "-I", "-c", RUNNER_SOURCE,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(input=job),
                timeout=deadline_ms / 1000,
            )
        except asyncio.TimeoutError:
            return SandboxResult(
                passed=False,
                duration_ms=deadline_ms,
                error=SandboxError.TIMEOUT,
            )
        finally:
            # Also reached on cancellation; the child must never outlive its job
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                await proc.wait()


        if proc.returncode != 0 or not stdout:
            return SandboxResult(
                passed=False,
                duration_ms=0,
                error=SandboxError.CRASHED,
                detail=stderr.decode(errors="replace")[:2000] or f"exit code {proc.returncode}",
            )

        try:
            payload = json.loads(stdout.decode())
        except (UnicodeDecodeError, json.JSONDecodeError):
            return SandboxResult(passed=False, duration_ms=0, error=SandboxError.CRASHED)

        if payload.get("status") != "ok":
            try:
                error = SandboxError(payload.get("kind"))
            except ValueError:
                error = SandboxError.CRASHED
            return SandboxResult(
                passed=False,
                duration_ms=0,
                error=error,
                detail=payload.get("detail"),
            )

        value = payload.get("value")
        return SandboxResult(
            passed=validator.accepts(value),
            duration_ms=0,
            value=value,
        )
