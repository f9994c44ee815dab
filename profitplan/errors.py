"""Error taxonomy for the allocator.

Every error carries a short code and a user-facing ``message`` that the UI
can show inline; ``details`` holds extra context for logs.
"""
from typing import Any, Optional


class AllocatorError(Exception):
    code = "PPA000"
    default_message = "Something went wrong."

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details = details
        super().__init__(f"[{self.code}] {self.message}")


class AuthError(AllocatorError):
    """Retryable sign-in failure."""


class InvalidEmail(AuthError):
    code = "AUTH001"
    default_message = "Please enter a valid email"


class NoPendingCode(AuthError):
    code = "AUTH002"
    default_message = "No magic link found for this email. Please request a new one."


class CodeExpired(AuthError):
    code = "AUTH003"
    default_message = "This magic link has expired. Please request a new one."


class CodeMismatch(AuthError):
    code = "AUTH004"
    default_message = "Invalid code. Please try again."


class TooManyAttempts(CodeMismatch):
    code = "AUTH005"
    default_message = "Too many invalid codes. Please request a new one."


class InvalidTransition(AllocatorError):
    code = "AUTH009"
    default_message = "That action is not available right now."


class ProfileLoadFailed(AllocatorError):
    code = "PROF001"
    default_message = "Could not load your saved buckets. Using defaults."


class ProfileSaveFailed(AllocatorError):
    code = "PROF002"
    default_message = "Save failed. Please try again."


class ExportPreconditionFailed(AllocatorError):
    code = "EXP001"
    default_message = "Please calculate allocations first!"


class CodeStoreUnavailable(AuthError):
    code = "STORE001"
    default_message = "Sign-in is temporarily unavailable. Please try again."
