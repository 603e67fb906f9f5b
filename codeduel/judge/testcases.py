"""Client for the remote test case catalog."""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

import requests

from codeduel.core.constants import DEFAULT_REMOTE_TIMEOUT, DEFAULT_TESTCASE_API_URL

from .models import TestCase, TestCaseHeader

logger = logging.getLogger(__name__)


class TestCaseError(Exception):
    """Raised when test cases cannot be retrieved."""

    __test__ = False

    def __init__(self, message: str) -> None:
        """Initialize the error."""
        super().__init__(message)
        self.message = message


class TestCaseProvider:
    """Reads test case headers and bodies for a problem."""

    __test__ = False

    def __init__(
        self,
        base_url: str = DEFAULT_TESTCASE_API_URL,
        timeout: float = DEFAULT_REMOTE_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        """The injected session, otherwise one session per calling thread."""
        if self._session is not None:
            return self._session
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = requests.Session()
        return session

    def _get_json(self, url: str) -> Any:
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise TestCaseError(f"Test case service unreachable: {e}") from e
        if not response.ok:
            raise TestCaseError(
                f"Test case service returned HTTP {response.status_code} for {url}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise TestCaseError(f"Malformed test case response from {url}") from e

    def list_headers(self, problem_id: str) -> list[TestCaseHeader]:
        """Return the problem's test case headers in ascending serial order."""
        data = self._get_json(f"{self.base_url}/testcases/{problem_id}/header")
        try:
            headers = [TestCaseHeader(serial=int(h["serial"])) for h in data["headers"]]
        except (KeyError, TypeError, ValueError) as e:
            raise TestCaseError(
                f"Malformed test case headers for problem {problem_id}"
            ) from e
        headers.sort(key=lambda h: h.serial)
        logger.debug(f"Problem {problem_id} has {len(headers)} test cases")
        return headers

    def fetch(self, problem_id: str, serial: int) -> TestCase:
        """Return the literal input and expected output of one test case."""
        data = self._get_json(f"{self.base_url}/testcases/{problem_id}/{serial}")
        try:
            return TestCase(input=data["in"], expected_output=data["out"])
        except (KeyError, TypeError) as e:
            raise TestCaseError(
                f"Malformed test case {serial} for problem {problem_id}"
            ) from e
