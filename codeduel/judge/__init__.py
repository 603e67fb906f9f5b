"""Code judging: execution client, test case provider and pipeline."""

from __future__ import annotations

from flask import current_app

from .executor import ExecutionClient, ExecutionError, ExecutionErrorKind
from .models import FailedSample, SubmissionResult, TestCase, TestCaseHeader
from .normalizer import normalize_output, normalize_text
from .pipeline import JudgingPipeline
from .testcases import TestCaseError, TestCaseProvider


def get_execution_client() -> ExecutionClient:
    """Build an execution client from the current app's configuration."""
    config = current_app.config
    return ExecutionClient(
        client_id=config.get("JDOODLE_CLIENT_ID"),
        client_secret=config.get("JDOODLE_CLIENT_SECRET"),
        endpoint=config["EXECUTOR_URL"],
        timeout=config["REMOTE_TIMEOUT"],
        version_index=config["EXECUTOR_VERSION_INDEX"],
    )


def get_judging_pipeline() -> JudgingPipeline:
    """Build a judging pipeline from the current app's configuration."""
    config = current_app.config
    provider = TestCaseProvider(
        base_url=config["TESTCASE_API_URL"], timeout=config["REMOTE_TIMEOUT"]
    )
    return JudgingPipeline(
        get_execution_client(), provider, max_workers=config["JUDGE_MAX_WORKERS"]
    )


__all__ = [
    "ExecutionClient",
    "ExecutionError",
    "ExecutionErrorKind",
    "FailedSample",
    "JudgingPipeline",
    "SubmissionResult",
    "TestCase",
    "TestCaseError",
    "TestCaseHeader",
    "TestCaseProvider",
    "get_execution_client",
    "get_judging_pipeline",
    "normalize_output",
    "normalize_text",
]
