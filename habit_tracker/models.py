import datetime as dt
from datetime import datetime, date
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from .streaks import StreakState


# ----- Models -----
class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(index=True, unique=True)
    hashed_password: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Category(SQLModel, table=True):
    __tablename__ = "categories"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True, unique=True)
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Habit(SQLModel, table=True):
    __tablename__ = "habits"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(index=True, foreign_key="users.id")
    category_id: int = Field(index=True, foreign_key="categories.id")
    name: str
    description: Optional[str] = None
    frequency_type: str = Field(default="daily")  # daily/weekly
    active_days: Optional[str] = None  # JSON array of weekdays 1-7
    target_count: int = Field(default=1)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class HabitLog(SQLModel, table=True):
    __tablename__ = "habit_logs"
    __table_args__ = (UniqueConstraint("habit_id", "date", name="uq_habit_log_date"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    habit_id: int = Field(index=True, foreign_key="habits.id")
    user_id: int = Field(index=True, foreign_key="users.id")
    completed_count: int = Field(default=1, ge=0)
    is_completed: bool = Field(default=True)
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    date: dt.date = Field(index=True)


class Streak(SQLModel, table=True):
    __tablename__ = "streaks"
    __table_args__ = (UniqueConstraint("habit_id", "user_id", name="uq_streak_habit_user"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    habit_id: int = Field(index=True, foreign_key="habits.id")
    user_id: int = Field(index=True, foreign_key="users.id")
    current_streak: int = Field(default=0)
    longest_streak: int = Field(default=0)
    last_completed_date: Optional[date] = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def to_state(self) -> StreakState:
        return StreakState(
            current_streak=self.current_streak,
            longest_streak=self.longest_streak,
            last_completed_date=self.last_completed_date,
        )

    def apply(self, state: StreakState):
        self.current_streak = state.current_streak
        self.longest_streak = state.longest_streak
        self.last_completed_date = state.last_completed_date
        self.updated_at = datetime.utcnow()
