"""Client for the remote sandboxed code executor."""

from __future__ import annotations

import enum
import logging
import threading
from typing import Any, Optional

import requests

from codeduel.core.constants import DEFAULT_EXECUTOR_URL, DEFAULT_REMOTE_TIMEOUT

from .normalizer import normalize_output

logger = logging.getLogger(__name__)

# Statuses meaning the executor refuses our account rather than the script.
BACKEND_REFUSAL_STATUSES = frozenset({401, 403, 429})
HTTP_OK = 200
HTTP_SERVER_ERROR = 500


def _status_code(data: dict[str, Any]) -> Optional[int]:
    try:
        return int(data["statusCode"])
    except (KeyError, TypeError, ValueError):
        return None


class ExecutionErrorKind(enum.Enum):
    """Why an execution attempt failed."""

    TIMEOUT = "timeout"
    BACKEND_UNAVAILABLE = "backend_unavailable"
    EXECUTION_FAILED = "execution_failed"


class ExecutionError(Exception):
    """Raised when the executor could not run a script."""

    def __init__(
        self,
        message: str,
        kind: ExecutionErrorKind = ExecutionErrorKind.EXECUTION_FAILED,
    ) -> None:
        """Initialize the error."""
        super().__init__(message)
        self.message = message
        self.kind = kind

    @property
    def is_fatal(self) -> bool:
        """Whether the executor as a whole is unusable for further cases."""
        return self.kind is ExecutionErrorKind.BACKEND_UNAVAILABLE


class ExecutionClient:
    """Runs one (script, language, stdin) triple per call on the executor."""

    def __init__(  # noqa: PLR0913
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        endpoint: str = DEFAULT_EXECUTOR_URL,
        timeout: float = DEFAULT_REMOTE_TIMEOUT,
        version_index: str = "0",
        session: Optional[requests.Session] = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.endpoint = endpoint
        self.timeout = timeout
        self.version_index = version_index
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

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _post(self, payload: dict[str, Any]) -> requests.Response:
        try:
            return self.session.post(self.endpoint, json=payload, timeout=self.timeout)
        except requests.Timeout as e:
            raise ExecutionError(
                f"Executor timed out after {self.timeout}s", ExecutionErrorKind.TIMEOUT
            ) from e
        except requests.RequestException as e:
            raise ExecutionError(
                f"Executor unreachable: {e}", ExecutionErrorKind.BACKEND_UNAVAILABLE
            ) from e

    @staticmethod
    def _classify_status(status: int) -> ExecutionErrorKind:
        if status in BACKEND_REFUSAL_STATUSES or status >= HTTP_SERVER_ERROR:
            return ExecutionErrorKind.BACKEND_UNAVAILABLE
        return ExecutionErrorKind.EXECUTION_FAILED

    def execute(self, script: str, language: str, stdin: str = "") -> str:
        """Execute a script remotely and return its normalized stdout.

        Raises:
            ValueError: If script or language is empty.
            ExecutionError: If the executor could not run the script.
        """
        if not script:
            raise ValueError("Script is required.")
        if not language:
            raise ValueError("Language is required.")

        payload = {
            "clientId": self.client_id,
            "clientSecret": self.client_secret,
            "script": script,
            "language": language,
            "stdin": stdin or "",
            "versionIndex": self.version_index,
        }
        response = self._post(payload)

        if not response.ok:
            raise ExecutionError(
                f"Executor returned HTTP {response.status_code}",
                self._classify_status(response.status_code),
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ExecutionError("Executor returned a non-JSON response") from e
        if not isinstance(data, dict):
            raise ExecutionError("Executor returned an unexpected payload")

        logger.debug(
            f"Executor status={data.get('statusCode')} "
            f"memory={data.get('memory')} cpuTime={data.get('cpuTime')}"
        )

        status = _status_code(data)
        if data.get("error"):
            kind = (
                self._classify_status(status)
                if status is not None
                else ExecutionErrorKind.EXECUTION_FAILED
            )
            raise ExecutionError(f"Executor error: {data['error']}", kind)

        if status is not None and status != HTTP_OK:
            raise ExecutionError(
                f"Executor reported status {status}", self._classify_status(status)
            )

        output = data.get("output")
        if output is None:
            # The script ran but printed nothing.
            if data.get("memory") is not None or data.get("cpuTime") is not None:
                return ""
            raise ExecutionError("No output returned from executor")

        return normalize_output(output)

    def check_credentials(self) -> dict[str, Any]:
        """Run a trivial script to verify the executor accepts our account."""
        if not self.has_credentials:
            return {
                "success": False,
                "output": None,
                "error": "Executor credentials not configured",
            }
        try:
            output = self.execute("print('Hello World')", "python3")
        except ExecutionError as e:
            logger.warning(f"Executor self-test failed: {e.message}")
            return {"success": False, "output": None, "error": e.message}
        return {"success": output == "Hello World", "output": output, "error": None}
