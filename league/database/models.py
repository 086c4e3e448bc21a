"""
league.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables:
- leaders             — League participants, raw counters + derived fields
- score_history       — Append-only weekly snapshots per leader
- tasks               — Admin-defined tasks worth points
- task_completions    — One row per (task, leader) completion
- rituals             — Daily / weekly / RMR ritual instances
- ritual_attendance   — Presence per (ritual, leader)
- peer_evaluations    — Kudos between leaders (assist points)
- anonymous_feedback  — Unsigned feedback; the sender earns assist points
- energy_check_ins    — One energy check-in per leader per day
- var_requests        — Point disputes reviewed by an admin
- settings            — Admin-configurable key-value store
- admin_log           — Append-only audit trail
"""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all League ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class RitualType(enum.StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    RMR = "rmr"


class VarRequestType(enum.StrEnum):
    """What a VAR dispute is about — decides which counter gets restored."""
    RITUAL_ABSENCE = "ritual_absence"
    TASK_DELAY = "task_delay"


class FeedbackType(enum.StrEnum):
    POSITIVE = "positive"
    IMPROVEMENT = "improvement"


class VarStatus(enum.StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AdminActionType(enum.StrEnum):
    """Categories of admin mutations recorded in admin_log."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    VAR_APPROVE = "VAR_APPROVE"
    VAR_REJECT = "VAR_REJECT"


# ---------------------------------------------------------------------------
# Leaders
# ---------------------------------------------------------------------------
class Leader(Base):
    __tablename__ = "leaders"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    team: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    position: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    photo: Mapped[str | None] = mapped_column(String(500), default=None)
    # Admins manage the league but don't compete in it
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False)

    # Raw counters
    task_points: Mapped[int] = mapped_column(Integer, default=0)
    fan_score: Mapped[float] = mapped_column(Float, default=0.0)  # 0–10
    assist_points: Mapped[int] = mapped_column(Integer, default=0)
    ritual_points: Mapped[int] = mapped_column(Integer, default=0)

    # Derived — written back by leader_service, never edited by hand
    overall: Mapped[int] = mapped_column(Integer, default=0)
    consistency_score: Mapped[float] = mapped_column(Float, default=0.0)
    momentum: Mapped[float] = mapped_column(Float, default=0.0)
    trend: Mapped[str] = mapped_column(String(10), default="stable")
    rank_change: Mapped[int] = mapped_column(Integer, default=0)

    strengths: Mapped[list | None] = mapped_column(JSONB, default=list)
    improvements: Mapped[list | None] = mapped_column(JSONB, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    history: Mapped[list[ScoreHistoryEntry]] = relationship(
        back_populates="leader", cascade="all, delete-orphan",
        order_by="ScoreHistoryEntry.id",
    )

    __table_args__ = (
        Index("ix_leaders_overall_desc", "overall"),
        Index("ix_leaders_team", "team"),
    )

    def __repr__(self) -> str:
        return f"<Leader id={self.id} name={self.name!r} overall={self.overall}>"


# ---------------------------------------------------------------------------
# ScoreHistoryEntry — weekly snapshot, append-only
# ---------------------------------------------------------------------------
class ScoreHistoryEntry(Base):
    __tablename__ = "score_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    leader_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("leaders.id", ondelete="CASCADE"), nullable=False
    )
    week: Mapped[str] = mapped_column(String(10), nullable=False)  # e.g. "2026-W42"
    overall: Mapped[int] = mapped_column(Integer, default=0)
    task_points: Mapped[int] = mapped_column(Integer, default=0)
    fan_score: Mapped[float] = mapped_column(Float, default=0.0)
    assist_points: Mapped[int] = mapped_column(Integer, default=0)
    ritual_points: Mapped[int] = mapped_column(Integer, default=0)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    leader: Mapped[Leader] = relationship(back_populates="history")

    __table_args__ = (
        UniqueConstraint("leader_id", "week", name="uq_score_history_leader_week"),
    )

    def __repr__(self) -> str:
        return f"<ScoreHistoryEntry leader={self.leader_id} week={self.week!r} overall={self.overall}>"


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------
class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    week_number: Mapped[int] = mapped_column(Integer, default=1)
    # Deleting a task deactivates it so completions keep their history
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Task id={self.id} title={self.title!r} points={self.points}>"


class TaskCompletion(Base):
    __tablename__ = "task_completions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
    )
    leader_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("leaders.id", ondelete="CASCADE"), nullable=False
    )
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("task_id", "leader_id", name="uq_task_completions_task_leader"),
    )


# ---------------------------------------------------------------------------
# Rituals
# ---------------------------------------------------------------------------
class Ritual(Base):
    __tablename__ = "rituals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(10), nullable=False)  # RitualType
    ritual_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_rituals_date", "date"),
    )

    def __repr__(self) -> str:
        return f"<Ritual id={self.id} name={self.name!r} date={self.ritual_date}>"


class RitualAttendance(Base):
    __tablename__ = "ritual_attendance"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ritual_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("rituals.id", ondelete="CASCADE"), nullable=False
    )
    leader_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("leaders.id", ondelete="CASCADE"), nullable=False
    )
    present: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (
        UniqueConstraint("ritual_id", "leader_id", name="uq_ritual_attendance_ritual_leader"),
    )


# ---------------------------------------------------------------------------
# PeerEvaluation — kudos that award assist points
# ---------------------------------------------------------------------------
class PeerEvaluation(Base):
    __tablename__ = "peer_evaluations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    from_leader_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("leaders.id", ondelete="CASCADE"), nullable=False
    )
    to_leader_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("leaders.id", ondelete="CASCADE"), nullable=False
    )
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    qualities: Mapped[list | None] = mapped_column(JSONB, default=list)
    points_awarded: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_peer_evaluations_to_leader", "to_leader_id"),
    )


# ---------------------------------------------------------------------------
# AnonymousFeedback — sender kept out of the row, only a per-day hash
# ---------------------------------------------------------------------------
class AnonymousFeedback(Base):
    """Feedback a leader receives without knowing who sent it.

    ``feedback_hash`` digests (sender, receiver, day); the unique
    constraint on it allows one feedback per pair per day.
    """
    __tablename__ = "anonymous_feedback"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    to_leader_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("leaders.id", ondelete="CASCADE"), nullable=False
    )
    feedback_text: Mapped[str] = mapped_column(Text, nullable=False)
    feedback_type: Mapped[str] = mapped_column(String(20), nullable=False)  # FeedbackType
    feedback_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    feedback_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    points_to_sender: Mapped[int] = mapped_column(Integer, default=0)
    is_approved: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("feedback_hash", "date", name="uq_anonymous_feedback_hash_date"),
        Index("ix_anonymous_feedback_to_leader", "to_leader_id"),
    )


# ---------------------------------------------------------------------------
# EnergyCheckIn — one per leader per day
# ---------------------------------------------------------------------------
class EnergyCheckIn(Base):
    __tablename__ = "energy_check_ins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    leader_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("leaders.id", ondelete="CASCADE"), nullable=False
    )
    energy_level: Mapped[int] = mapped_column(Integer, nullable=False)  # 1–5
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    points_awarded: Mapped[int] = mapped_column(Integer, default=0)
    checkin_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("leader_id", "date", name="uq_energy_check_ins_leader_date"),
    )


# ---------------------------------------------------------------------------
# VarRequest — "video assistant referee" point disputes
# ---------------------------------------------------------------------------
class VarRequest(Base):
    """A leader contests a ritual absence or a late task.

    ``points_at_risk`` is what the leader stands to recover; approving the
    request restores it to the matching counter.
    """
    __tablename__ = "var_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    leader_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("leaders.id", ondelete="CASCADE"), nullable=False
    )
    request_type: Mapped[str] = mapped_column(String(20), nullable=False)  # VarRequestType
    ritual_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("rituals.id", ondelete="SET NULL"), nullable=True
    )
    task_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    evidence_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default=VarStatus.PENDING.value)
    admin_response: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    points_at_risk: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_var_requests_status", "status", "created_at"),
        Index("ix_var_requests_leader", "leader_id"),
    )

    def __repr__(self) -> str:
        return f"<VarRequest id={self.id} leader={self.leader_id} status={self.status}>"


# ---------------------------------------------------------------------------
# AdminLog — append-only audit trail
# ---------------------------------------------------------------------------
class AdminLog(Base):
    __tablename__ = "admin_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[str] = mapped_column(String(36), nullable=False)
    action_type: Mapped[str] = mapped_column(String(50), nullable=False)
    target_table: Mapped[str] = mapped_column(String(50), nullable=False)
    target_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    before_snapshot: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    after_snapshot: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_admin_log_actor_time", "actor_id", "timestamp"),
        Index("ix_admin_log_target", "target_table", "target_id", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<AdminLog id={self.id} actor={self.actor_id} action={self.action_type}>"


# ---------------------------------------------------------------------------
# Setting — admin-configurable key-value store
# ---------------------------------------------------------------------------
class Setting(Base):
    """Key-value configuration store.

    Scoring weights and point rules live here so admins can tune the league
    without redeploying.  Values are stored as JSON strings.
    """
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value_json: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    description: Mapped[str | None] = mapped_column(Text, default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Setting key={self.key!r} category={self.category!r}>"
