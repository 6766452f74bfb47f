"""deploykit exception hierarchy.

Every failure raised by a deploy phase is a DeployError carrying a stable
``code`` from one of the taxonomies below, so callers can decide fatality
without string matching on messages.
"""

from typing import Literal

ConfigErrorCode = Literal[
    "CONFIG_PROFILE_NOT_FOUND",
    "CONFIG_PROFILE_FILE_NOT_FOUND",
    "CONFIG_DUPLICATE_PROFILE",
    "CONFIG_PROFILE_INVALID",
    "CONFIG_INVALID_RESTART_MODE",
]
TestErrorCode = Literal["TEST_COMMAND_NOT_FOUND", "TEST_FAILED", "TEST_INTERRUPTED"]
BuildErrorCode = Literal["BUILD_COMMAND_NOT_FOUND", "BUILD_FAILED", "BUILD_INTERRUPTED"]
SyncErrorCode = Literal["SYNC_NO_LOCAL_OUTPUT_DIR", "SYNC_SSH_FAILED", "SYNC_RSYNC_FAILED"]
Pm2ErrorCode = Literal[
    "PM2_SSH_FAILED",
    "PM2_CONFIG_COMPARE_FAILED",
    "PM2_CONFIG_UPLOAD_FAILED",
    "PM2_COMMAND_FAILED",
    "PM2_STATUS_QUERY_FAILED",
    "PM2_HEALTHCHECK_FAILED",
    "PM2_APP_NAME_NOT_FOUND",
]
ChurnErrorCode = Literal[
    "CHURN_NO_CLIENT_DIR",
    "CHURN_REMOTE_MANIFEST_FETCH_FAILED",
    "CHURN_REMOTE_MANIFEST_UPLOAD_FAILED",
    "CHURN_COMPUTE_FAILED",
]


class DeployError(Exception):
    """Base exception for all deploykit errors."""

    def __init__(self, message: str = "", *, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code

    @property
    def message(self) -> str:
        return str(self)


class ConfigError(DeployError):
    """Missing, unreadable or invalid deploy profile configuration."""

    def __init__(self, message: str = "", *, code: ConfigErrorCode) -> None:
        super().__init__(message, code=code)


class TestRunError(DeployError):
    """The project's test suite could not run or did not pass."""

    __test__ = False

    def __init__(self, message: str = "", *, code: TestErrorCode) -> None:
        super().__init__(message, code=code)


class BuildError(DeployError):
    """The application build could not run or did not succeed."""

    def __init__(self, message: str = "", *, code: BuildErrorCode) -> None:
        super().__init__(message, code=code)


class SyncError(DeployError):
    """Mirroring the build output to the remote host failed."""

    def __init__(self, message: str = "", *, code: SyncErrorCode) -> None:
        super().__init__(message, code=code)


class Pm2Error(DeployError):
    """Updating or health-checking the remote PM2 app failed."""

    def __init__(self, message: str = "", *, code: Pm2ErrorCode) -> None:
        super().__init__(message, code=code)


class ChurnError(DeployError):
    """Client churn computation failed."""

    def __init__(self, message: str = "", *, code: ChurnErrorCode) -> None:
        super().__init__(message, code=code)


class TransportError(DeployError):
    """The remote shell could not be started at all.

    Distinct from a remote command that ran and exited non-zero.
    """
