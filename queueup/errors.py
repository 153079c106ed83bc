from typing import Any, Dict, Iterable, List, Optional, Union

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from queueup.config import logger


# Custom exceptions
class AppException(Exception):
    """Base exception for application-specific errors."""

    def __init__(self, status_code: int, detail: Union[str, Dict[str, Any]]):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


class DatabaseException(AppException):
    """Exception for database-related errors."""

    def __init__(self, detail: str = "Database error occurred"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail
        )


class AuthenticationException(AppException):
    """Exception for authentication-related errors."""

    def __init__(self, detail: str = "Authentication failed"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class AuthorizationException(AppException):
    """Exception for authorization-related errors."""

    def __init__(self, detail: str = "Not authorized to perform this action"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class ResourceNotFoundException(AppException):
    """Exception for resource not found errors."""

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class BadRequestException(AppException):
    """Exception for bad request errors."""

    def __init__(self, detail: Union[str, Dict[str, Any]] = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


# Admission errors: recoverable, reported to the acting user only
class AdmissionError(AppException):
    def __init__(self, detail: str, status_code: int = status.HTTP_409_CONFLICT):
        super().__init__(status_code=status_code, detail=detail)


class AlreadyQueued(AdmissionError):
    def __init__(self, detail: str = "You are already in the queue"):
        super().__init__(detail)


class QueueFull(AdmissionError):
    def __init__(self, detail: str = "The queue is already full"):
        super().__init__(detail)


class RoleFull(AdmissionError):
    def __init__(self, role: str):
        self.role = role
        super().__init__(f"The {role} role is full")


class UnknownRole(AdmissionError):
    def __init__(self, role: str):
        self.role = role
        super().__init__(
            f"Unknown role: {role}",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )


class NotQueued(AdmissionError):
    def __init__(self, detail: str = "You are not in the queue"):
        super().__init__(detail, status_code=status.HTTP_404_NOT_FOUND)


class RolePromptExpired(AdmissionError):
    def __init__(self, detail: str = "You did not pick a role in time"):
        super().__init__(detail, status_code=status.HTTP_408_REQUEST_TIMEOUT)


# Draft and vote errors: recoverable, the session continues
class DraftError(AppException):
    def __init__(self, detail: str, status_code: int = status.HTTP_409_CONFLICT):
        super().__init__(status_code=status_code, detail=detail)


class AlreadyPicked(DraftError):
    def __init__(self, player_id: str):
        self.player_id = player_id
        super().__init__(f"Player {player_id} is already taken")


class LaneResolved(DraftError):
    def __init__(self, role: str):
        self.role = role
        super().__init__(f"The {role} lane is already resolved")


class NotYourTurn(DraftError):
    def __init__(self, captain_id: str):
        self.captain_id = captain_id
        super().__init__(
            f"It is not your turn, {captain_id} is on the pick",
            status_code=status.HTTP_403_FORBIDDEN,
        )


class NotEligible(DraftError):
    def __init__(self, detail: str = "You are not eligible for this action"):
        super().__init__(detail, status_code=status.HTTP_403_FORBIDDEN)


class TooManyVotes(DraftError):
    def __init__(self, limit: int = 2):
        super().__init__(f"You already selected {limit} captains, unselect one first")


class DuplicateVote(DraftError):
    def __init__(self, side: str):
        super().__init__(f"You already voted for {side}")


class NoVoteToClear(DraftError):
    def __init__(self):
        super().__init__("You have no vote to clear")


class VoteClosed(DraftError):
    def __init__(self, detail: str = "Voting is closed"):
        super().__init__(detail)


class NoActiveSession(DraftError):
    def __init__(self, detail: str = "No session is in that phase"):
        super().__init__(detail, status_code=status.HTTP_404_NOT_FOUND)


# Rating errors: fatal to the current session
class RatingError(AppException):
    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail
        )


class IncompleteRoster(RatingError):
    def __init__(self, detail: str = "Both teams must have 5 players before rating is applied"):
        super().__init__(detail)


class MissingPlayerRecord(RatingError):
    def __init__(self, missing: Iterable[str]):
        self.missing: List[str] = list(missing)
        super().__init__(f"Missing player records for: {', '.join(self.missing)}")


# Time-bound and external-resource failures: fatal, trigger rollback
class SessionAborted(AppException):
    def __init__(
        self,
        detail: str,
        blocking: Optional[Iterable[str]] = None,
        status_code: int = status.HTTP_504_GATEWAY_TIMEOUT,
    ):
        self.blocking: List[str] = list(blocking or [])
        super().__init__(status_code=status_code, detail=detail)


class PresenceTimeout(SessionAborted):
    def __init__(self, missing: Iterable[str]):
        missing = list(missing)
        super().__init__(
            f"Not all members joined the voice room in time: {', '.join(missing)}",
            blocking=missing,
        )


class DraftTimeout(SessionAborted):
    def __init__(self, blocking: Iterable[str]):
        blocking = list(blocking)
        super().__init__(
            f"The draft did not finish in time, waiting on: {', '.join(blocking)}",
            blocking=blocking,
        )


class RoomUnavailable(SessionAborted):
    def __init__(self, detail: str = "Room provisioning failed"):
        super().__init__(detail, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


# Exception handlers
async def app_exception_handler(request: Request, exc: AppException):
    """Handler for application-specific exceptions."""
    if exc.status_code >= 500:
        logger.error(f"Application error: {exc.detail} (Status: {exc.status_code})")
    else:
        logger.info(f"Rejected action: {exc.detail} (Status: {exc.status_code})")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    formatted_errors = [
        {
            "type": error["type"],
            "loc": error["loc"],
            "msg": error["msg"],
        }
        for error in exc.errors()
    ]

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": formatted_errors},
    )


async def pydantic_validation_exception_handler(request: Request, exc: ValidationError):
    """Handler for Pydantic validation errors."""
    errors = exc.errors()
    logger.error(f"Pydantic validation error: {errors}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": [{"loc": e["loc"], "msg": e["msg"]} for e in errors]},
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError):
    """Handler for SQLAlchemy errors."""
    logger.error(f"Database error: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Database error occurred. Please try again later."},
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handler for all other exceptions."""
    logger.error(f"Unexpected error: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected error occurred. Please try again later."},
    )


# Function to register exception handlers with FastAPI app
def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI application."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, pydantic_validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Exception handlers registered")
