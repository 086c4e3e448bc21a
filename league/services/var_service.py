"""
league.services.var_service — VAR Point Disputes
=================================================

A leader who missed a ritual or delivered a task late can ask an admin to
review it ("VAR").  Approval restores what was lost:

* ``ritual_absence`` — the attendance is marked present and ritual points
  are recomputed from it.
* ``task_delay`` — ``points_at_risk`` is added back to ``task_points``.

Either way ``overall`` is recomputed in the same transaction, and the
decision is written to ``admin_log``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import Engine, func, select
from sqlalchemy.orm import Session

from league.database.models import (
    AdminActionType,
    AdminLog,
    Ritual,
    Task,
    VarRequest,
    VarRequestType,
    VarStatus,
)
from league.engine.points import var_approval_rate
from league.services.leader_service import adjust_counter, get_leader_row
from league.services.ritual_service import recalculate_ritual_points, upsert_attendance
from league.services.settings_service import load_scoring_config

logger = logging.getLogger(__name__)

_OPEN_STATUSES = (VarStatus.PENDING.value, VarStatus.APPROVED.value)


@dataclass(frozen=True, slots=True)
class VarStatistics:
    total: int
    pending: int
    approved: int
    rejected: int
    approval_rate: float


def _snapshot(request: VarRequest) -> dict:
    return {
        "status": request.status,
        "points_at_risk": request.points_at_risk,
        "admin_response": request.admin_response,
    }


# ---------------------------------------------------------------------------
# Leader side
# ---------------------------------------------------------------------------
def has_existing_request(
    session: Session,
    leader_id: str,
    ritual_id: int | None = None,
    task_id: int | None = None,
) -> bool:
    """True if a pending or approved request already covers this ritual/task."""
    stmt = select(VarRequest.id).where(
        VarRequest.leader_id == leader_id,
        VarRequest.status.in_(_OPEN_STATUSES),
    )
    if ritual_id is not None:
        stmt = stmt.where(VarRequest.ritual_id == ritual_id)
    if task_id is not None:
        stmt = stmt.where(VarRequest.task_id == task_id)
    return session.scalar(stmt.limit(1)) is not None


def create_request(
    engine: Engine,
    *,
    leader_id: str,
    request_type: str,
    reason: str,
    ritual_id: int | None = None,
    task_id: int | None = None,
    evidence_url: str | None = None,
    points_at_risk: int = 0,
) -> VarRequest:
    """Open a dispute.

    Raises
    ------
    ValueError
        If the type is unknown, its ritual/task reference is missing, or a
        pending/approved request already covers the same ritual or task.
    LookupError
        If the leader, ritual or task doesn't exist.
    """
    try:
        kind = VarRequestType(request_type)
    except ValueError:
        raise ValueError(f"Unknown VAR request type: {request_type!r}") from None
    if points_at_risk < 0:
        raise ValueError("points_at_risk must be >= 0")
    if kind is VarRequestType.RITUAL_ABSENCE and ritual_id is None:
        raise ValueError("A ritual_absence request needs a ritual_id")
    if kind is VarRequestType.TASK_DELAY and task_id is None:
        raise ValueError("A task_delay request needs a task_id")

    with Session(engine, expire_on_commit=False) as session:
        get_leader_row(session, leader_id)
        if ritual_id is not None and session.get(Ritual, ritual_id) is None:
            raise LookupError(f"Ritual not found: {ritual_id}")
        if task_id is not None and session.get(Task, task_id) is None:
            raise LookupError(f"Task not found: {task_id}")
        if has_existing_request(session, leader_id, ritual_id, task_id):
            raise ValueError("A VAR request for this item is already open or approved")

        request = VarRequest(
            leader_id=leader_id,
            request_type=kind.value,
            ritual_id=ritual_id,
            task_id=task_id,
            reason=reason,
            evidence_url=evidence_url,
            points_at_risk=points_at_risk,
            status=VarStatus.PENDING.value,
        )
        session.add(request)
        session.commit()

    logger.info("VAR request %s opened by %s (%s)", request.id, leader_id, kind.value)
    return request


def get_leader_requests(engine: Engine, leader_id: str) -> list[VarRequest]:
    with Session(engine, expire_on_commit=False) as session:
        return list(session.scalars(
            select(VarRequest)
            .where(VarRequest.leader_id == leader_id)
            .order_by(VarRequest.created_at.desc(), VarRequest.id.desc())
        ).all())


# ---------------------------------------------------------------------------
# Admin side
# ---------------------------------------------------------------------------
def get_pending(engine: Engine) -> list[VarRequest]:
    """Pending requests, oldest first."""
    with Session(engine, expire_on_commit=False) as session:
        return list(session.scalars(
            select(VarRequest)
            .where(VarRequest.status == VarStatus.PENDING.value)
            .order_by(VarRequest.created_at, VarRequest.id)
        ).all())


def _pending_request(session: Session, request_id: int) -> VarRequest:
    request = session.get(VarRequest, request_id)
    if request is None:
        raise LookupError(f"VAR request not found: {request_id}")
    if request.status != VarStatus.PENDING.value:
        raise ValueError(f"VAR request {request_id} was already {request.status}")
    return request


def _review(
    session: Session,
    request: VarRequest,
    status: VarStatus,
    admin_id: str,
    admin_response: str | None,
) -> None:
    before = _snapshot(request)
    request.status = status.value
    request.admin_response = admin_response
    request.reviewed_by = admin_id
    request.reviewed_at = datetime.now(UTC)

    action = AdminActionType.VAR_APPROVE if status is VarStatus.APPROVED else AdminActionType.VAR_REJECT
    session.add(AdminLog(
        actor_id=admin_id,
        action_type=action.value,
        target_table="var_requests",
        target_id=str(request.id),
        before_snapshot=before,
        after_snapshot=_snapshot(request),
        reason=admin_response,
    ))


def approve_request(
    engine: Engine,
    request_id: int,
    admin_id: str,
    admin_response: str | None = None,
) -> int:
    """Approve a pending request and restore the leader's points.

    Returns the restored counter's new value.

    Raises
    ------
    LookupError
        If the request (or its leader) doesn't exist.
    ValueError
        If the request was already reviewed.
    """
    with Session(engine) as session:
        request = _pending_request(session, request_id)
        leader = get_leader_row(session, request.leader_id)

        if request.request_type == VarRequestType.RITUAL_ABSENCE.value and request.ritual_id is not None:
            upsert_attendance(session, request.ritual_id, leader.id, present=True)
            session.flush()
            restored = recalculate_ritual_points(session, leader, datetime.now(UTC).date())
        else:
            field = (
                "ritual_points"
                if request.request_type == VarRequestType.RITUAL_ABSENCE.value
                else "task_points"
            )
            config = load_scoring_config(session)
            restored = adjust_counter(session, leader, field, request.points_at_risk, config.weights)

        _review(session, request, VarStatus.APPROVED, admin_id, admin_response)
        session.commit()

    logger.info("VAR request %s approved by %s", request_id, admin_id)
    return restored


def reject_request(
    engine: Engine,
    request_id: int,
    admin_id: str,
    admin_response: str,
) -> None:
    """Reject a pending request.  No points move."""
    with Session(engine) as session:
        request = _pending_request(session, request_id)
        _review(session, request, VarStatus.REJECTED, admin_id, admin_response)
        session.commit()

    logger.info("VAR request %s rejected by %s", request_id, admin_id)


def get_statistics(engine: Engine) -> VarStatistics:
    with Session(engine) as session:
        counts = dict(session.execute(
            select(VarRequest.status, func.count(VarRequest.id)).group_by(VarRequest.status)
        ).all())

    pending = counts.get(VarStatus.PENDING.value, 0)
    approved = counts.get(VarStatus.APPROVED.value, 0)
    rejected = counts.get(VarStatus.REJECTED.value, 0)
    return VarStatistics(
        total=sum(counts.values()),
        pending=pending,
        approved=approved,
        rejected=rejected,
        approval_rate=var_approval_rate(approved, rejected),
    )
