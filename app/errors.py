# app/errors.py
from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    ACCESS_DENIED = "access_denied"
    PARENT_UNREACHABLE = "parent_unreachable"
    ALREADY_EXISTS = "already_exists"
    ALREADY_TRASHED = "already_trashed"
    EDIT_NOT_FOUND = "edit_not_found"
    OPERATION_FAILED = "operation_failed"
    PROBE_FAILED = "probe_failed"
    CONFIG = "config"
    INVALID_ARGUMENTS = "invalid_arguments"
    UNKNOWN_TOOL = "unknown_tool"
    INTERNAL = "internal"


class SandboxError(Exception):
    """
    Base for every expected failure of a filesystem operation.
    The dispatcher turns these into error results; they never end the process.
    """
    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class AccessDenied(SandboxError):
    kind = ErrorKind.ACCESS_DENIED


class ParentUnreachable(SandboxError):
    kind = ErrorKind.PARENT_UNREACHABLE


class AlreadyExists(SandboxError):
    kind = ErrorKind.ALREADY_EXISTS


class AlreadyTrashed(SandboxError):
    kind = ErrorKind.ALREADY_TRASHED


class EditNotFound(SandboxError):
    kind = ErrorKind.EDIT_NOT_FOUND

    def __init__(self, old_text: str, path: Optional[str] = None):
        self.old_text = old_text
        super().__init__(f"Could not find exact match for edit:\n{old_text}", path)


class OperationFailed(SandboxError):
    """Underlying OS error, wrapped with what we were doing at the time."""
    kind = ErrorKind.OPERATION_FAILED

    def __init__(self, action: str, path: str, cause: OSError):
        self.action = action
        self.cause = cause
        detail = cause.strerror or str(cause)
        super().__init__(f"Failed to {action} {path}: {detail}", path)


class ProbeFailed(SandboxError):
    kind = ErrorKind.PROBE_FAILED


class ConfigError(SandboxError):
    """Invalid startup configuration. Fatal: raised before any operation is accepted."""
    kind = ErrorKind.CONFIG
