"""Custom exception hierarchy for the club voting API."""

from __future__ import annotations


class AppError(Exception):
    """Base application error with a stable machine-readable code."""

    def __init__(self, message: str, code: str, status_code: int = 400) -> None:
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict[str, str]:
        """Serialize the error in the API standard shape."""
        return {"error": self.message, "code": self.code}


class NotFoundError(AppError):
    """Raised when a requested resource does not exist."""

    def __init__(self, resource: str) -> None:
        super().__init__(message=f"{resource} not found", code="NOT_FOUND", status_code=404)


class ForbiddenError(AppError):
    """Raised when the user lacks permission for the action."""

    def __init__(self, reason: str = "You don't have permission") -> None:
        super().__init__(message=reason, code="FORBIDDEN", status_code=403)


class ConflictError(AppError):
    """Raised on duplicate/conflicting operations."""

    def __init__(self, reason: str, code: str = "CONFLICT") -> None:
        super().__init__(message=reason, code=code, status_code=409)


class VersionConflictError(ConflictError):
    """Raised when an optimistic-concurrency save loses against another writer."""

    def __init__(self, club_id: str, expected_version: int) -> None:
        self.club_id = club_id
        self.expected_version = expected_version
        super().__init__(
            f"Club {club_id} was modified concurrently (expected version {expected_version})",
            code="VERSION_CONFLICT",
        )


class InvalidStateTransitionError(ConflictError):
    """Raised when the voting status does not allow the requested operation."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason, code="INVALID_STATE_TRANSITION")


class DuplicateVoteError(ConflictError):
    """Raised when a member votes twice in the same round."""

    def __init__(self) -> None:
        super().__init__(
            "You have already voted in this voting. Votes cannot be changed.",
            code="ALREADY_VOTED",
        )


class DuplicateCandidateError(ConflictError):
    """Raised when a media item is nominated twice."""

    def __init__(self, media_id: str) -> None:
        self.media_id = media_id
        super().__init__(
            f"Media {media_id} is already a candidate",
            code="DUPLICATE_CANDIDATE",
        )


class UnauthorizedError(AppError):
    """Raised when the caller is not authenticated."""

    def __init__(self, reason: str = "Unauthorized") -> None:
        super().__init__(message=reason, code="UNAUTHORIZED", status_code=401)


class InvalidInputError(AppError):
    """Raised for request payload or parameter validation issues."""

    def __init__(self, reason: str) -> None:
        super().__init__(message=reason, code="INVALID_INPUT", status_code=422)


class DataAccessError(AppError):
    """Raised when the database rejects or cannot serve a request."""

    def __init__(self, reason: str = "Database request failed") -> None:
        super().__init__(message=reason, code="DATABASE_ERROR", status_code=503)
