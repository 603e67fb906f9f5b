"""Data models for the judging pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class TestCaseHeader:
    """Ordered descriptor of a single test case."""

    __test__ = False

    serial: int


@dataclass(frozen=True)
class TestCase:
    """Literal input and expected output of a test case."""

    __test__ = False

    input: str
    expected_output: str


@dataclass
class FailedSample:
    """Diagnostic record for a test case the submission did not pass."""

    serial: int
    input: str = ""
    expected: str = ""
    actual: str = ""
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the submission response shape."""
        data: dict[str, Any] = {
            "serial": self.serial,
            "input": self.input,
            "expected": self.expected,
            "actual": self.actual,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class SubmissionResult:
    """Aggregate outcome of judging one submission."""

    passed_count: int = 0
    total_count: int = 0
    failed_samples: list[FailedSample] = field(default_factory=list)
    aborted: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the submission response shape.

        ``failedSamples`` is only present when at least one case failed.
        """
        data: dict[str, Any] = {
            "passedCount": self.passed_count,
            "totalCount": self.total_count,
        }
        if self.failed_samples:
            data["failedSamples"] = [s.to_dict() for s in self.failed_samples]
        return data
