# backend/formadb/apps/training/schemas.py

from __future__ import annotations

import datetime as dt
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .models import AttendanceStatus, DEFAULT_MAX_PARTICIPANTS
from ..accounts.schemas import UserSummary


# ---------------------------------------------------------------------------
# FORMATIONS + LEVELS
# ---------------------------------------------------------------------------


class FormationCreate(BaseModel):
    """
    created_by_user_id comes from the current user in the router.
    """

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    duration_hours: int = Field(..., ge=1, description="Total duration in hours.")
    start_date: Optional[dt.date] = Field(None, description="Defaults to today.")
    default_trainer_id: Optional[str] = None


class FormationUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    duration_hours: Optional[int] = Field(None, ge=1)
    start_date: Optional[dt.date] = None
    default_trainer_id: Optional[str] = None
    is_active: Optional[bool] = None


class LevelCreate(BaseModel):
    order: int = Field(..., ge=1)
    title: Optional[str] = None


class LevelRead(BaseModel):
    id: str
    formation_id: str
    order: int
    title: str

    class Config:
        from_attributes = True


class FormationRead(BaseModel):
    id: str
    title: str
    description: str
    duration_hours: int
    start_date: dt.date
    created_by_user_id: Optional[str] = None
    default_trainer_id: Optional[str] = None
    is_active: bool
    color: str
    pattern: str
    levels: List[LevelRead] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# SESSIONS
# ---------------------------------------------------------------------------


class SessionCreate(BaseModel):
    formation_id: str
    level_id: str
    date: dt.date
    start_time: str = Field(..., min_length=1)
    end_time: str = Field(..., min_length=1)
    trainer_id: Optional[str] = Field(
        None,
        description="Falls back to the formation's default trainer when omitted.",
    )
    max_participants: int = Field(DEFAULT_MAX_PARTICIPANTS, ge=1)


class SessionUpdate(BaseModel):
    level_id: Optional[str] = None
    date: Optional[dt.date] = None
    start_time: Optional[str] = Field(None, min_length=1)
    end_time: Optional[str] = Field(None, min_length=1)
    trainer_id: Optional[str] = None
    max_participants: Optional[int] = Field(None, ge=1)


class SessionRead(BaseModel):
    id: str
    formation_id: str
    level_id: str
    date: dt.date
    start_time: str
    end_time: str
    trainer_id: Optional[str] = None
    max_participants: int
    participant_ids: List[str] = []
    created_at: datetime

    class Config:
        from_attributes = True


class EnrollmentRequest(BaseModel):
    user_id: Optional[str] = Field(
        None,
        description="Defaults to the current user; staff may enrol someone else.",
    )


class BulkEnrollmentResult(BaseModel):
    formation_id: str
    user_id: str
    sessions_touched: int = Field(..., description="Sessions the user is now enrolled in.")
    newly_enrolled: int
    skipped_full: int = 0


# ---------------------------------------------------------------------------
# ATTENDANCE
# ---------------------------------------------------------------------------


class AttendanceMark(BaseModel):
    session_id: str
    participant_id: str
    status: AttendanceStatus


class AttendanceUpdate(BaseModel):
    status: AttendanceStatus


class AttendanceRead(BaseModel):
    id: str
    session_id: str
    participant_id: str
    status: AttendanceStatus
    marked_by_user_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AttendanceHistoryItem(BaseModel):
    attendance_id: str
    status: AttendanceStatus
    session_id: str
    session_date: dt.date
    formation_id: str
    formation_title: str
    level_id: Optional[str] = None
    level_order: Optional[int] = None
    level_title: Optional[str] = None
    marked_at: datetime


# ---------------------------------------------------------------------------
# PROGRESS
# ---------------------------------------------------------------------------


class FormationProgress(BaseModel):
    """
    Single participant against every session of the formation.
    """

    formation_id: str
    participant_id: str
    total_sessions: int
    attended_sessions: int
    missed_sessions: int
    remaining_sessions: int
    progress_percent: int


class LevelProgress(BaseModel):
    level_id: str
    order: int
    title: str
    total_sessions: int
    attended_sessions: int
    missed_sessions: int = 0
    remaining_sessions: int
    validated: bool
    status: str = Field(..., description="locked / pending / in_progress / validated")


class EnrolledParticipantStats(BaseModel):
    """
    Bulk view: totals only count sessions the participant is enrolled in.
    """

    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    attended: int
    total: int
    progress_percent: int


# ---------------------------------------------------------------------------
# CERTIFICATION
# ---------------------------------------------------------------------------


class EligibilityResult(BaseModel):
    eligible: bool
    reason: Optional[str] = None
    total_sessions: Optional[int] = None
    attended_count: Optional[int] = None


class CertificationStatus(BaseModel):
    user_id: str
    formation_id: str
    state: str = Field(..., description="ineligible / eligible / certified")
    eligibility: EligibilityResult
    certificate_code: Optional[str] = None


class CertificateIssue(BaseModel):
    user_id: str
    formation_id: str


class CertificateRead(BaseModel):
    id: str
    user_id: str
    formation_id: str
    certificate_code: str
    issued_at: datetime
    issued_by_user_id: Optional[str] = None

    class Config:
        from_attributes = True


# ---------------------------------------------------------------------------
# STUDENT DASHBOARD
# ---------------------------------------------------------------------------


class DashboardSession(BaseModel):
    id: str
    title: str
    date: dt.date
    attendance_status: str


class DashboardFormation(BaseModel):
    id: str
    title: str
    description: str
    color: str
    pattern: str
    progress_percent: int
    levels: List[LevelProgress]
    sessions: List[DashboardSession]
    certificate_code: Optional[str] = None


class UpcomingSession(BaseModel):
    id: str
    formation_title: str
    level_title: Optional[str] = None
    date: dt.date
    start_time: str
    end_time: str
    trainer_name: Optional[str] = None


class MissedSession(BaseModel):
    id: str
    formation_title: str
    date: dt.date


class DashboardStats(BaseModel):
    total_formations: int
    total_sessions_attended: int
    total_missed_sessions: int


class StudentDashboard(BaseModel):
    stats: DashboardStats
    formations: List[DashboardFormation]
    upcoming_sessions: List[UpcomingSession]
    missed_sessions: List[MissedSession]


class FormationStatsResponse(BaseModel):
    formation_id: str
    participants: List[EnrolledParticipantStats]


class SessionWithParticipants(SessionRead):
    participants: List[UserSummary] = []
