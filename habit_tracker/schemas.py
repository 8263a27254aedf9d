import math
from datetime import date, datetime, timedelta
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from . import config
from .errors import ValidationError
from .schedule import FrequencyType


# ----- Auth -----
class RegisterIn(BaseModel):
    name: str = Field(..., min_length=2, max_length=100, pattern=r"^[a-zA-Z\s]+$")
    email: EmailStr
    password: str = Field(..., min_length=6)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class LoginIn(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    created_at: datetime


class AuthOut(BaseModel):
    user: UserOut
    token: str
    token_type: str = "bearer"


class ProfileOut(UserOut):
    total_habits: int = 0
    active_habits: int = 0
    total_logged_days: int = 0


class ProfileUpdate(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters")
        return v


# ----- Categories -----
class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Category name is required")
        return v


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str]
    created_at: datetime
    updated_at: datetime


# ----- Habits -----
class HabitCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    category_id: int = Field(..., ge=1)
    frequency_type: FrequencyType = FrequencyType.DAILY
    active_days: Optional[List[int]] = None
    target_count: int = Field(1, ge=1, le=10)


class HabitUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    category_id: Optional[int] = Field(None, ge=1)
    frequency_type: Optional[FrequencyType] = None
    active_days: Optional[List[int]] = None
    target_count: Optional[int] = Field(None, ge=1, le=10)
    is_active: Optional[bool] = None


class HabitOut(BaseModel):
    id: int
    name: str
    description: Optional[str]
    category_id: int
    category_name: Optional[str] = None
    frequency_type: FrequencyType
    active_days: Optional[List[int]]
    target_count: int
    is_active: bool
    created_at: datetime
    updated_at: datetime


class StreakOut(BaseModel):
    current_streak: int
    longest_streak: int
    last_completed_date: Optional[date]


class HabitDetailOut(HabitOut):
    current_streak: int = 0
    longest_streak: int = 0
    last_completed_date: Optional[date] = None
    effective_streak: int = 0
    total_logs: int = 0
    completed_logs: int = 0
    completion_rate: float = 0.0


class StreakAnalytics(BaseModel):
    total_logged_days: int = 0
    completed_days: int = 0
    success_rate: float = 0.0
    first_log_date: Optional[date] = None
    last_log_date: Optional[date] = None


class StreakHistoryItem(BaseModel):
    date: date
    is_completed: bool
    completed_count: int


class HabitStreaksOut(StreakOut):
    habit: HabitOut
    effective_streak: int
    analytics: StreakAnalytics
    recent_streak_breaks: List[date]
    streak_history: List[StreakHistoryItem]


class StatisticsOut(BaseModel):
    total_habits: int
    active_habits: int
    total_logged_days: int
    total_completions: int
    overall_completion_rate: float
    best_streak: int


# ----- Logs -----
class HabitLogCreate(BaseModel):
    habit_id: int = Field(..., ge=1)
    date: date
    completed_count: int = Field(1, ge=0, le=10)
    is_completed: bool = True
    notes: Optional[str] = Field("", max_length=500)

    @field_validator("date")
    @classmethod
    def within_log_window(cls, v):
        today = date.today()
        if v < today - timedelta(days=config.LOG_WINDOW_PAST_DAYS):
            raise ValueError(f"Cannot log habits older than {config.LOG_WINDOW_PAST_DAYS} days")
        if v > today + timedelta(days=config.LOG_WINDOW_FUTURE_DAYS):
            raise ValueError("Cannot log habits for future dates beyond tomorrow")
        return v


class HabitLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    habit_id: int
    user_id: int
    date: date
    completed_count: int
    is_completed: bool
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime
    habit_name: Optional[str] = None


class LogResult(BaseModel):
    log: HabitLogOut
    streak: StreakOut


class TodayHabit(BaseModel):
    id: int
    name: str
    description: Optional[str]
    category_id: int
    category_name: Optional[str]
    frequency_type: FrequencyType
    active_days: Optional[List[int]]
    target_count: int
    completed_count: int
    is_completed: bool
    notes: Optional[str]
    current_streak: int


class TodaySummary(BaseModel):
    total_habits: int
    completed_habits: int
    pending_habits: int
    completion_rate: int


class TodayOut(BaseModel):
    date: date
    summary: TodaySummary
    habits: List[TodayHabit]


class CalendarDay(BaseModel):
    date: date
    total_habits: int
    completed_habits: int
    completion_rate: float
    habit_details: List[str]


# ----- Pagination -----
class Pagination(BaseModel):
    current_page: int
    items_per_page: int
    total_pages: int
    total_count: int
    has_next_page: bool
    has_prev_page: bool

    @property
    def offset(self) -> int:
        return (self.current_page - 1) * self.items_per_page


def calculate_pagination(page: int, limit: int, total_count: int) -> Pagination:
    total_pages = math.ceil(total_count / limit) if limit else 0
    return Pagination(
        current_page=page,
        items_per_page=limit,
        total_pages=total_pages,
        total_count=total_count,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )


class HabitPage(BaseModel):
    items: List[HabitOut]
    pagination: Pagination


class HabitLogPage(BaseModel):
    items: List[HabitLogOut]
    pagination: Pagination


def validate_date_range(start_date: Optional[date], end_date: Optional[date]):
    if start_date and end_date:
        if end_date < start_date:
            raise ValidationError("End date must be after start date")
        if (end_date - start_date).days > config.MAX_DATE_RANGE_DAYS:
            raise ValidationError(f"Date range cannot exceed {config.MAX_DATE_RANGE_DAYS} days")


class DeletedLogOut(BaseModel):
    message: str
    streak: StreakOut
