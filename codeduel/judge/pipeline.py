"""Judging of a submission against every test case of a problem."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from codeduel.core.constants import FAILED_SAMPLE_LIMIT, SAMPLE_TEXT_LIMIT

from .executor import ExecutionClient, ExecutionError
from .models import FailedSample, SubmissionResult, TestCaseHeader
from .normalizer import normalize_output, normalize_text
from .testcases import TestCaseError, TestCaseProvider

logger = logging.getLogger(__name__)


@dataclass
class CaseOutcome:
    """Result of running one test case."""

    serial: int
    passed: bool
    sample: Optional[FailedSample] = None
    fatal: bool = False


def _sample(
    serial: int, stdin: str, expected: str, actual: str, error: Optional[str] = None
) -> FailedSample:
    return FailedSample(
        serial=serial,
        input=stdin[:SAMPLE_TEXT_LIMIT],
        expected=expected[:SAMPLE_TEXT_LIMIT],
        actual=actual[:SAMPLE_TEXT_LIMIT],
        error=error,
    )


class JudgingPipeline:
    """Drives the executor across all test cases of a problem.

    Cases run one at a time unless ``max_workers`` is raised, in which case
    at most that many executions are in flight at once. Either way the
    outcomes are folded in ascending serial order. The executor and provider
    open one HTTP session per worker thread.
    """

    def __init__(
        self,
        executor: ExecutionClient,
        provider: TestCaseProvider,
        max_workers: int = 1,
    ) -> None:
        self.executor = executor
        self.provider = provider
        self.max_workers = max(1, int(max_workers))

    def run_case(
        self, script: str, language: str, problem_id: str, header: TestCaseHeader
    ) -> CaseOutcome:
        """Fetch, execute and compare a single test case."""
        serial = header.serial
        try:
            case = self.provider.fetch(problem_id, serial)
        except TestCaseError as e:
            logger.warning(f"Test case {serial}: could not fetch ({e.message})")
            return CaseOutcome(serial, False, _sample(serial, "", "", "", e.message))

        stdin = normalize_text(case.input)
        expected = normalize_text(case.expected_output)
        try:
            actual = normalize_output(self.executor.execute(script, language, stdin))
        except ExecutionError as e:
            logger.error(
                f"Test case {serial}: execution error ({e.kind.value}) {e.message}"
            )
            return CaseOutcome(
                serial,
                False,
                _sample(serial, stdin, expected, "", e.message),
                fatal=e.is_fatal,
            )

        if actual == expected:
            logger.info(f"Test case {serial}: PASSED")
            return CaseOutcome(serial, True)

        logger.info(f"Test case {serial}: FAILED")
        logger.debug(f"Expected: {expected!r} Actual: {actual!r}")
        return CaseOutcome(serial, False, _sample(serial, stdin, expected, actual))

    def _sequential(
        self,
        script: str,
        language: str,
        problem_id: str,
        headers: list[TestCaseHeader],
    ) -> Iterator[CaseOutcome]:
        for header in headers:
            yield self.run_case(script, language, problem_id, header)

    def _concurrent(
        self,
        script: str,
        language: str,
        problem_id: str,
        headers: list[TestCaseHeader],
    ) -> Iterator[CaseOutcome]:
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [
                pool.submit(self.run_case, script, language, problem_id, header)
                for header in headers
            ]
            try:
                for future in futures:
                    yield future.result()
            finally:
                for future in futures:
                    future.cancel()

    def judge(self, script: str, language: str, problem_id: str) -> SubmissionResult:
        """Judge a submission and return the aggregate result.

        Raises:
            ValueError: If script, language or problem_id is empty.
            TestCaseError: If the problem's test case headers are unavailable.
        """
        if not script or not language or not problem_id:
            raise ValueError("Script, language and problem ID are required.")

        headers = self.provider.list_headers(problem_id)
        result = SubmissionResult(total_count=len(headers))

        if self.max_workers > 1:
            outcomes = self._concurrent(script, language, problem_id, headers)
        else:
            outcomes = self._sequential(script, language, problem_id, headers)

        try:
            for outcome in outcomes:
                if outcome.passed:
                    result.passed_count += 1
                elif (
                    outcome.sample is not None
                    and len(result.failed_samples) < FAILED_SAMPLE_LIMIT
                ):
                    result.failed_samples.append(outcome.sample)

                if outcome.fatal:
                    logger.error(
                        f"Executor unavailable at test case {outcome.serial}; "
                        f"skipping the remaining cases of problem {problem_id}"
                    )
                    result.aborted = True
                    break
        finally:
            outcomes.close()

        logger.info(
            f"Problem {problem_id}: {result.passed_count}/{result.total_count} passed"
        )
        return result
