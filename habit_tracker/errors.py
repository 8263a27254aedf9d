"""Typed errors raised by the habit tracker.

Each error carries the HTTP status the API layer responds with; the app-level
exception handler in :mod:`habit_tracker.main` turns them into
``{"detail": message}`` bodies.
"""


class HabitTrackerError(Exception):
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(HabitTrackerError):
    status_code = 400
    default_message = "Validation failed"


class InvalidScheduleError(ValidationError):
    default_message = "Active days are required for weekly habits"


class ScheduleViolationError(HabitTrackerError):
    status_code = 400
    default_message = "This habit is not active on this day"


class AuthenticationError(HabitTrackerError):
    status_code = 401
    default_message = "Could not validate credentials"


class NotFoundError(HabitTrackerError):
    status_code = 404
    default_message = "Resource not found"


class HabitNotFoundError(NotFoundError):
    default_message = "Habit not found"


class LogNotFoundError(NotFoundError):
    default_message = "Habit log not found"


class CategoryNotFoundError(NotFoundError):
    default_message = "Category not found"


class UserNotFoundError(NotFoundError):
    default_message = "User not found"


class ConflictError(HabitTrackerError):
    status_code = 409
    default_message = "Resource already exists"


class TransactionError(HabitTrackerError):
    default_message = "Transaction failed"


class DataCorruptionError(HabitTrackerError):
    default_message = "Stored data could not be read"
