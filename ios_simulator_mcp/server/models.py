"""Pydantic Data Models for iOS Simulator MCP Server

Type-safe models for the remote target, command results, host setup checks
and reconciliation reports.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

# ============================================================================
# Remote Target
# ============================================================================


class AuthMethod(str, Enum):
    """SSH authentication method, in priority order"""

    PRIVATE_KEY = "private_key"
    PASSWORD = "password"
    AGENT = "agent"


class RemoteTarget(BaseModel):
    """Remote macOS host reached over SSH

    Exactly one authentication method is used, chosen by priority:
    private key path, then password, then the local SSH agent.
    """

    host: str = Field(..., description="macOS host IP or hostname")
    port: int = Field(default=22, description="SSH port")
    username: str = Field(default="user", description="SSH username")
    key_path: Optional[str] = Field(default=None, description="Path to SSH private key")
    password: Optional[str] = Field(default=None, description="SSH password", repr=False)

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {
                "host": "192.168.1.50",
                "port": 22,
                "username": "builder",
                "key_path": "~/.ssh/id_ed25519",
            }
        },
    }

    @property
    def auth_method(self) -> AuthMethod:
        if self.key_path:
            return AuthMethod.PRIVATE_KEY
        if self.password:
            return AuthMethod.PASSWORD
        return AuthMethod.AGENT

    @property
    def address(self) -> str:
        """user@host:port, for logs and reports"""
        return f"{self.username}@{self.host}:{self.port}"


# ============================================================================
# Session / Command Execution
# ============================================================================


class SessionState(str, Enum):
    """Lifecycle of the pooled SSH session"""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    BROKEN = "broken"


class CommandResult(BaseModel):
    """Captured output of a successful command"""

    stdout: str = ""
    stderr: str = ""


class SessionStatus(BaseModel):
    """Snapshot of the remote session for the remote://session resource"""

    mode: str = Field(..., description="'local' or 'remote'")
    state: SessionState = SessionState.DISCONNECTED
    target: Optional[str] = Field(default=None, description="user@host:port")
    auth_method: Optional[AuthMethod] = None
    connected_at: Optional[datetime] = None
    tool_paths: Dict[str, str] = Field(default_factory=dict)


# ============================================================================
# Host Setup (Reconciliation)
# ============================================================================


class CheckStatus(str, Enum):
    """Outcome of a single host check"""

    SATISFIED = "satisfied"
    MISSING = "missing"  # automatable, becomes a needed action
    BLOCKING = "blocking"  # must be resolved manually


class CheckResult(BaseModel):
    """Result of one analysis check"""

    name: str
    status: CheckStatus
    detail: str
    info: List[str] = Field(default_factory=list, description="Versions, counts, process lines")
    action: Optional[str] = Field(default=None, description="Remediation action key if MISSING")


class ActionStatus(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"
    NOT_RUN = "not_run"


class PlannedAction(BaseModel):
    """Remediation action selected during analysis"""

    key: str
    title: str
    rank: int


class ActionOutcome(BaseModel):
    """Result of applying one remediation action"""

    key: str
    title: str
    status: ActionStatus
    detail: Optional[str] = None
    log_tail: Optional[str] = None


class ReconcileOutcome(str, Enum):
    """Where the reconciliation run stopped"""

    DRY_RUN = "dry_run"
    BLOCKED = "blocked"
    ALREADY_CONFIGURED = "already_configured"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    APPLIED = "applied"
    PARTIAL = "partial"


class ReconciliationReport(BaseModel):
    """Full record of a reconciliation run"""

    host: str
    username: str
    dry_run: bool = False
    auto_confirm: bool = False
    checks: List[CheckResult] = Field(default_factory=list)
    planned: List[PlannedAction] = Field(default_factory=list)
    outcomes: List[ActionOutcome] = Field(default_factory=list)
    outcome: Optional[ReconcileOutcome] = None
    verification: List[str] = Field(default_factory=list)

    @property
    def missing_requirements(self) -> List[CheckResult]:
        return [c for c in self.checks if c.status == CheckStatus.BLOCKING]

    @property
    def needed_actions(self) -> List[CheckResult]:
        return [c for c in self.checks if c.status == CheckStatus.MISSING]


# ============================================================================
# Error Models
# ============================================================================


class ErrorCode(str, Enum):
    """Machine-readable error codes for tool responses"""

    # Connection
    SSH_CONNECTION_FAILED = "SSH_CONNECTION_FAILED"
    AUTH_FAILED = "AUTH_FAILED"

    # Execution
    COMMAND_FAILED = "COMMAND_FAILED"
    TRANSFER_FAILED = "TRANSFER_FAILED"
    SETUP_REQUIRED = "SETUP_REQUIRED"

    # Validation / internal
    INVALID_PARAMETER = "INVALID_PARAMETER"
    INTERNAL_ERROR = "INTERNAL_ERROR"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ErrorResponse(BaseModel):
    """Structured error returned by tools"""

    error: str
    error_code: Optional[str] = None
    details: Optional[str] = None
    suggested_action: Optional[str] = None
    context: Optional[Dict[str, Any]] = None
    server_version: str = "unknown"
    timestamp: str = Field(default_factory=_utc_now)

    model_config = {
        "json_schema_extra": {
            "example": {
                "error": "SSH connection failed",
                "error_code": "SSH_CONNECTION_FAILED",
                "details": "[Errno 61] Connection refused",
                "suggested_action": "Enable Remote Login on the Mac",
                "server_version": "0.3.0",
            }
        }
    }
