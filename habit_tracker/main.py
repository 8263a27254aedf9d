"""Habit Tracker API (FastAPI + SQLModel).

Run:
    uvicorn habit_tracker.main:app --reload

Endpoints (high-level):
- POST /api/auth/register, POST /api/auth/login -> JWT token
- GET/PUT /api/auth/profile, GET /api/auth/verify
- CRUD /api/categories
- CRUD /api/habits, GET /api/habits/statistics, GET /api/habits/{id}/streaks
- POST /api/logs -> log a day and update the streak
- GET /api/logs, /api/logs/today, /api/logs/calendar
- DELETE /api/logs/{id} -> delete a day and rebuild the streak
"""
import logging
from collections import OrderedDict
from datetime import date, datetime, timedelta
from typing import List, Optional

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import func
from sqlmodel import Session, select

from . import __version__, config, streaks, tracking
from .database import create_db_and_tables, get_session
from .errors import (
    AuthenticationError,
    CategoryNotFoundError,
    ConflictError,
    DataCorruptionError,
    HabitTrackerError,
    InvalidScheduleError,
    ValidationError,
)
from .models import Category, Habit, HabitLog, Streak, User
from .schedule import (
    FrequencyType,
    active_days_for_display,
    decode_active_days,
    encode_active_days,
    is_countable_day,
    validate_active_days,
)
from .schemas import (
    AuthOut,
    CalendarDay,
    CategoryIn,
    CategoryOut,
    DeletedLogOut,
    HabitCreate,
    HabitDetailOut,
    HabitLogCreate,
    HabitLogOut,
    HabitLogPage,
    HabitOut,
    HabitPage,
    HabitStreaksOut,
    HabitUpdate,
    LogResult,
    LoginIn,
    ProfileOut,
    ProfileUpdate,
    RegisterIn,
    StatisticsOut,
    StreakAnalytics,
    StreakHistoryItem,
    StreakOut,
    TodayHabit,
    TodayOut,
    TodaySummary,
    UserOut,
    calculate_pagination,
    validate_date_range,
)
from .security import get_current_user, get_password_hash, token_for, verify_password

logger = logging.getLogger(__name__)

# ----- App -----
app = FastAPI(title="Habit Tracker API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup():
    config.configure_logging()
    create_db_and_tables()


@app.exception_handler(HabitTrackerError)
def handle_habit_tracker_error(request, exc: HabitTrackerError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def _count(session: Session, query) -> int:
    return session.exec(query).one() or 0


def _rate(part: int, total: int) -> float:
    return round(part * 100.0 / total, 2) if total else 0.0


def _streak_out(state: streaks.StreakState) -> StreakOut:
    return StreakOut(
        current_streak=state.current_streak,
        longest_streak=state.longest_streak,
        last_completed_date=state.last_completed_date,
    )


def _habit_out(habit: Habit, category_name: Optional[str]) -> HabitOut:
    return HabitOut(
        id=habit.id,
        name=habit.name,
        description=habit.description,
        category_id=habit.category_id,
        category_name=category_name,
        frequency_type=habit.frequency_type,
        active_days=active_days_for_display(habit.active_days),
        target_count=habit.target_count,
        is_active=habit.is_active,
        created_at=habit.created_at,
        updated_at=habit.updated_at,
    )


def _category_name(session: Session, category_id: int) -> Optional[str]:
    category = session.get(Category, category_id)
    return category.name if category else None


def _require_category(session: Session, category_id: int) -> Category:
    category = session.get(Category, category_id)
    if category is None:
        raise ValidationError("Invalid category ID")
    return category


# ----- Misc -----
@app.get("/")
def read_root():
    return {
        "message": "Habit Tracker API",
        "version": __version__,
        "endpoints": {
            "auth": "/api/auth",
            "categories": "/api/categories",
            "habits": "/api/habits",
            "logs": "/api/logs",
            "health": "/health",
        },
    }


@app.get("/health")
def health():
    return {
        "status": "OK",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": config.ENVIRONMENT,
    }


# ----- Auth endpoints -----
@app.post("/api/auth/register", response_model=AuthOut, status_code=201)
def register(user_in: RegisterIn, session: Session = Depends(get_session)):
    existing = session.exec(select(User).where(User.email == user_in.email)).first()
    if existing:
        raise ConflictError("Email already registered")
    user = User(name=user_in.name.strip(), email=user_in.email, hashed_password=get_password_hash(user_in.password))
    with tracking.unit_of_work(session, "register user"):
        session.add(user)
    session.refresh(user)
    logger.info("Registered user %s", user.id)
    return AuthOut(user=UserOut.model_validate(user), token=token_for(user))


@app.post("/api/auth/login", response_model=AuthOut)
def login(credentials: LoginIn, session: Session = Depends(get_session)):
    user = session.exec(select(User).where(User.email == credentials.email)).first()
    if not user or not verify_password(credentials.password, user.hashed_password):
        raise AuthenticationError("Incorrect email or password")
    return AuthOut(user=UserOut.model_validate(user), token=token_for(user))


@app.get("/api/auth/profile", response_model=ProfileOut)
def get_profile(current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    total_habits = _count(session, select(func.count()).select_from(Habit).where(Habit.user_id == current_user.id))
    active_habits = _count(
        session,
        select(func.count()).select_from(Habit).where(Habit.user_id == current_user.id, Habit.is_active == True),  # noqa: E712
    )
    total_logged_days = _count(
        session, select(func.count(func.distinct(HabitLog.date))).where(HabitLog.user_id == current_user.id)
    )
    return ProfileOut(
        id=current_user.id,
        name=current_user.name,
        email=current_user.email,
        created_at=current_user.created_at,
        total_habits=total_habits,
        active_habits=active_habits,
        total_logged_days=total_logged_days,
    )


@app.put("/api/auth/profile", response_model=UserOut)
def update_profile(
    profile_in: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    with tracking.unit_of_work(session, "update profile"):
        current_user.name = profile_in.name
        current_user.updated_at = datetime.utcnow()
        session.add(current_user)
    session.refresh(current_user)
    return UserOut.model_validate(current_user)


@app.get("/api/auth/verify")
def verify_token(current_user: User = Depends(get_current_user)):
    return {"user": UserOut.model_validate(current_user), "message": "Token is valid"}


# ----- Category endpoints -----
@app.get("/api/categories", response_model=List[CategoryOut])
def list_categories(current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    return session.exec(select(Category).order_by(Category.name)).all()


@app.get("/api/categories/{category_id}", response_model=CategoryOut)
def get_category(category_id: int, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    category = session.get(Category, category_id)
    if category is None:
        raise CategoryNotFoundError()
    return category


@app.post("/api/categories", response_model=CategoryOut, status_code=201)
def create_category(
    category_in: CategoryIn,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    if session.exec(select(Category).where(Category.name == category_in.name)).first():
        raise ConflictError("Category name already exists")
    category = Category(name=category_in.name, description=category_in.description)
    with tracking.unit_of_work(session, "create category"):
        session.add(category)
    session.refresh(category)
    return category


@app.put("/api/categories/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    category_in: CategoryIn,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    category = session.get(Category, category_id)
    if category is None:
        raise CategoryNotFoundError()
    duplicate = session.exec(
        select(Category).where(Category.name == category_in.name, Category.id != category_id)
    ).first()
    if duplicate:
        raise ConflictError("Category name already exists")
    with tracking.unit_of_work(session, "update category"):
        category.name = category_in.name
        category.description = category_in.description
        category.updated_at = datetime.utcnow()
        session.add(category)
    session.refresh(category)
    return category


@app.delete("/api/categories/{category_id}")
def delete_category(category_id: int, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    category = session.get(Category, category_id)
    if category is None:
        raise CategoryNotFoundError()
    in_use = _count(session, select(func.count()).select_from(Habit).where(Habit.category_id == category_id))
    if in_use:
        raise ValidationError(f"Cannot delete category. It has {in_use} habit(s) using it.")
    with tracking.unit_of_work(session, "delete category"):
        session.delete(category)
    return {"message": "Category deleted successfully"}


# ----- Habit endpoints -----
@app.post("/api/habits", response_model=HabitOut, status_code=201)
def create_habit(habit_in: HabitCreate, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    category = _require_category(session, habit_in.category_id)
    active_days = validate_active_days(habit_in.frequency_type, habit_in.active_days)
    habit = Habit(
        user_id=current_user.id,
        category_id=habit_in.category_id,
        name=habit_in.name.strip(),
        description=habit_in.description,
        frequency_type=habit_in.frequency_type.value,
        active_days=encode_active_days(active_days),
        target_count=habit_in.target_count,
    )
    with tracking.unit_of_work(session, "create habit"):
        session.add(habit)
        session.flush()
        session.add(Streak(habit_id=habit.id, user_id=current_user.id))
    session.refresh(habit)
    logger.info("Created %s habit %s for user %s", habit.frequency_type, habit.id, current_user.id)
    return _habit_out(habit, category.name)


@app.get("/api/habits", response_model=HabitPage)
def list_habits(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category_id: Optional[int] = None,
    is_active: str = Query("true", pattern="^(true|false|all)$"),
    frequency_type: Optional[FrequencyType] = None,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    conditions = [Habit.user_id == current_user.id]
    if category_id:
        conditions.append(Habit.category_id == category_id)
    if is_active != "all":
        conditions.append(Habit.is_active == (is_active == "true"))
    if frequency_type:
        conditions.append(Habit.frequency_type == frequency_type.value)

    total = _count(session, select(func.count()).select_from(Habit).where(*conditions))
    pagination = calculate_pagination(page, limit, total)
    rows = session.exec(
        select(Habit, Category.name)
        .join(Category, Category.id == Habit.category_id, isouter=True)
        .where(*conditions)
        .order_by(Habit.created_at.desc(), Habit.id.desc())
        .offset(pagination.offset)
        .limit(limit)
    ).all()
    return HabitPage(items=[_habit_out(h, name) for h, name in rows], pagination=pagination)


@app.get("/api/habits/statistics", response_model=StatisticsOut)
def habit_statistics(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    validate_date_range(start_date, end_date)
    habit_base = select(func.count()).select_from(Habit).where(Habit.user_id == current_user.id)
    total_habits = _count(session, habit_base)
    active_habits = _count(session, habit_base.where(Habit.is_active == True))  # noqa: E712

    log_conditions = [HabitLog.user_id == current_user.id]
    if start_date:
        log_conditions.append(HabitLog.date >= start_date)
    if end_date:
        log_conditions.append(HabitLog.date <= end_date)
    total_logs = _count(session, select(func.count()).select_from(HabitLog).where(*log_conditions))
    total_completions = _count(
        session,
        select(func.count()).select_from(HabitLog).where(*log_conditions, HabitLog.is_completed == True),  # noqa: E712
    )
    total_logged_days = _count(session, select(func.count(func.distinct(HabitLog.date))).where(*log_conditions))
    best_streak = _count(session, select(func.max(Streak.longest_streak)).where(Streak.user_id == current_user.id))

    return StatisticsOut(
        total_habits=total_habits,
        active_habits=active_habits,
        total_logged_days=total_logged_days,
        total_completions=total_completions,
        overall_completion_rate=_rate(total_completions, total_logs),
        best_streak=best_streak,
    )


@app.get("/api/habits/{habit_id}", response_model=HabitDetailOut)
def get_habit(habit_id: int, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    habit = tracking.get_owned_habit(session, habit_id, current_user.id)
    state = tracking.streak_state(session, habit_id, current_user.id)
    total_logs = _count(session, select(func.count()).select_from(HabitLog).where(HabitLog.habit_id == habit_id))
    completed_logs = _count(
        session,
        select(func.count()).select_from(HabitLog).where(HabitLog.habit_id == habit_id, HabitLog.is_completed == True),  # noqa: E712
    )
    return HabitDetailOut(
        **_habit_out(habit, _category_name(session, habit.category_id)).model_dump(),
        current_streak=state.current_streak,
        longest_streak=state.longest_streak,
        last_completed_date=state.last_completed_date,
        effective_streak=streaks.effective_streak(state, date.today()),
        total_logs=total_logs,
        completed_logs=completed_logs,
        completion_rate=_rate(completed_logs, total_logs),
    )


@app.get("/api/habits/{habit_id}/streaks", response_model=HabitStreaksOut)
def get_habit_streaks(habit_id: int, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    habit = tracking.get_owned_habit(session, habit_id, current_user.id)
    state = tracking.streak_state(session, habit_id, current_user.id)
    today = date.today()
    owned = [HabitLog.habit_id == habit_id, HabitLog.user_id == current_user.id]

    total_logged_days = _count(session, select(func.count(func.distinct(HabitLog.date))).where(*owned))
    completed_days = _count(
        session, select(func.count()).select_from(HabitLog).where(*owned, HabitLog.is_completed == True)  # noqa: E712
    )
    first_log, last_log = session.exec(select(func.min(HabitLog.date), func.max(HabitLog.date)).where(*owned)).one()

    breaks = session.exec(
        select(HabitLog.date)
        .where(*owned, HabitLog.is_completed == False, HabitLog.date >= today - timedelta(days=90))  # noqa: E712
        .order_by(HabitLog.date.desc())
        .limit(5)
    ).all()
    history = session.exec(
        select(HabitLog).where(*owned, HabitLog.date >= today - timedelta(days=30)).order_by(HabitLog.date)
    ).all()

    return HabitStreaksOut(
        habit=_habit_out(habit, _category_name(session, habit.category_id)),
        current_streak=state.current_streak,
        longest_streak=state.longest_streak,
        last_completed_date=state.last_completed_date,
        effective_streak=streaks.effective_streak(state, today),
        analytics=StreakAnalytics(
            total_logged_days=total_logged_days,
            completed_days=completed_days,
            success_rate=_rate(completed_days, total_logged_days),
            first_log_date=first_log,
            last_log_date=last_log,
        ),
        recent_streak_breaks=list(breaks),
        streak_history=[
            StreakHistoryItem(date=log.date, is_completed=log.is_completed, completed_count=log.completed_count)
            for log in history
        ],
    )


@app.put("/api/habits/{habit_id}", response_model=HabitOut)
def update_habit(
    habit_id: int,
    habit_in: HabitUpdate,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    habit = tracking.get_owned_habit(session, habit_id, current_user.id)
    updates = habit_in.model_dump(exclude_unset=True)
    if not updates:
        raise ValidationError("No fields to update")

    if updates.get("category_id") is not None:
        _require_category(session, updates["category_id"])

    if "frequency_type" in updates or "active_days" in updates:
        frequency_type = updates.pop("frequency_type", None) or habit.frequency_type
        if "active_days" in updates:
            active_days = updates.pop("active_days")
        else:
            active_days = active_days_for_display(habit.active_days)
        schedule = validate_active_days(frequency_type, active_days)
        updates["frequency_type"] = FrequencyType(frequency_type).value
        updates["active_days"] = encode_active_days(schedule)

    with tracking.unit_of_work(session, "update habit"):
        for key, value in updates.items():
            if value is None and key in ("name", "category_id", "target_count", "is_active"):
                continue
            setattr(habit, key, value)
        habit.updated_at = datetime.utcnow()
        session.add(habit)
    session.refresh(habit)
    return _habit_out(habit, _category_name(session, habit.category_id))


@app.delete("/api/habits/{habit_id}")
def delete_habit(habit_id: int, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    tracking.delete_habit(session, habit_id, current_user.id)
    return {"message": "Habit deleted successfully"}


# ----- Habit log endpoints -----
def _log_out(log: HabitLog, habit_name: Optional[str]) -> HabitLogOut:
    out = HabitLogOut.model_validate(log)
    out.habit_name = habit_name
    return out


@app.post("/api/logs", response_model=LogResult)
def log_habit(log_in: HabitLogCreate, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    log, state = tracking.log_completion(
        session,
        habit_id=log_in.habit_id,
        user_id=current_user.id,
        day=log_in.date,
        is_completed=log_in.is_completed,
        completed_count=log_in.completed_count,
        notes=log_in.notes,
    )
    habit = session.get(Habit, log.habit_id)
    return LogResult(log=_log_out(log, habit.name if habit else None), streak=_streak_out(state))


@app.get("/api/logs", response_model=HabitLogPage)
def list_logs(
    habit_id: Optional[int] = None,
    log_date: Optional[date] = Query(None, alias="date"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    validate_date_range(start_date, end_date)
    conditions = [HabitLog.user_id == current_user.id]
    if habit_id:
        conditions.append(HabitLog.habit_id == habit_id)
    if log_date:
        conditions.append(HabitLog.date == log_date)
    else:
        if start_date:
            conditions.append(HabitLog.date >= start_date)
        if end_date:
            conditions.append(HabitLog.date <= end_date)

    total = _count(session, select(func.count()).select_from(HabitLog).where(*conditions))
    pagination = calculate_pagination(page, limit, total)
    rows = session.exec(
        select(HabitLog, Habit.name)
        .join(Habit, Habit.id == HabitLog.habit_id)
        .where(*conditions)
        .order_by(HabitLog.date.desc(), HabitLog.created_at.desc())
        .offset(pagination.offset)
        .limit(limit)
    ).all()
    return HabitLogPage(items=[_log_out(log, name) for log, name in rows], pagination=pagination)


@app.get("/api/logs/today", response_model=TodayOut)
def todays_habits(current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    today = date.today()
    rows = session.exec(
        select(Habit, Category.name)
        .join(Category, Category.id == Habit.category_id, isouter=True)
        .where(Habit.user_id == current_user.id, Habit.is_active == True)  # noqa: E712
        .order_by(Category.name, Habit.name)
    ).all()

    habits = []
    for habit, category_name in rows:
        try:
            scheduled = is_countable_day(habit.frequency_type, decode_active_days(habit.active_days), today)
        except (DataCorruptionError, InvalidScheduleError) as exc:
            logger.warning("Skipping habit %s with unusable schedule: %s", habit.id, exc.message)
            continue
        if not scheduled:
            continue
        log = session.exec(
            select(HabitLog).where(HabitLog.habit_id == habit.id, HabitLog.date == today)
        ).first()
        streak = tracking.streak_state(session, habit.id, current_user.id)
        habits.append(
            TodayHabit(
                id=habit.id,
                name=habit.name,
                description=habit.description,
                category_id=habit.category_id,
                category_name=category_name,
                frequency_type=habit.frequency_type,
                active_days=active_days_for_display(habit.active_days),
                target_count=habit.target_count,
                completed_count=log.completed_count if log else 0,
                is_completed=log.is_completed if log else False,
                notes=log.notes if log else None,
                current_streak=streak.current_streak,
            )
        )

    completed = sum(1 for h in habits if h.is_completed)
    summary = TodaySummary(
        total_habits=len(habits),
        completed_habits=completed,
        pending_habits=len(habits) - completed,
        completion_rate=round(completed * 100 / len(habits)) if habits else 0,
    )
    return TodayOut(date=today, summary=summary, habits=habits)


@app.get("/api/logs/calendar", response_model=List[CalendarDay])
def habit_calendar(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    habit_id: Optional[int] = None,
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    validate_date_range(start_date, end_date)
    if not (start_date and end_date):
        end_date = date.today()
        start_date = end_date - timedelta(days=30)

    conditions = [HabitLog.user_id == current_user.id, HabitLog.date >= start_date, HabitLog.date <= end_date]
    if habit_id:
        conditions.append(HabitLog.habit_id == habit_id)
    rows = session.exec(
        select(HabitLog, Habit.name)
        .join(Habit, Habit.id == HabitLog.habit_id)
        .where(*conditions)
        .order_by(HabitLog.date, Habit.name)
    ).all()

    days = OrderedDict()
    for log, name in rows:
        days.setdefault(log.date, []).append((name, log.is_completed))

    calendar = []
    for day, entries in days.items():
        completed = sum(1 for _, done in entries if done)
        calendar.append(
            CalendarDay(
                date=day,
                total_habits=len(entries),
                completed_habits=completed,
                completion_rate=_rate(completed, len(entries)),
                habit_details=[f"{name}:{int(done)}" for name, done in entries],
            )
        )
    return calendar


@app.delete("/api/logs/{log_id}", response_model=DeletedLogOut)
def delete_habit_log(log_id: int, current_user: User = Depends(get_current_user), session: Session = Depends(get_session)):
    state = tracking.delete_log(session, log_id, current_user.id)
    return DeletedLogOut(message="Habit log deleted successfully", streak=_streak_out(state))
