"""
league.services.task_service — Tasks & Task Completion
=======================================================

Completing a task adds its points to the leader's ``task_points``;
un-completing it takes them back.  Completion is idempotent per
(task, leader): the unique constraint on ``task_completions`` is the
source of truth, so a repeated completion never pays out twice.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from league.database.models import Task, TaskCompletion
from league.services.leader_service import adjust_counter, get_leader_row
from league.services.settings_service import load_scoring_config

logger = logging.getLogger(__name__)


def create_task(
    engine: Engine,
    *,
    title: str,
    points: int,
    description: str = "",
    week_number: int = 1,
    created_by: str | None = None,
) -> Task:
    if points < 0:
        raise ValueError("Task points must be >= 0")
    with Session(engine, expire_on_commit=False) as session:
        task = Task(
            title=title,
            description=description,
            points=points,
            week_number=week_number,
            created_by=created_by,
            is_active=True,
        )
        session.add(task)
        session.commit()
        logger.info("Task created: %r (%d pts)", title, points)
        return task


def list_active_tasks(engine: Engine) -> list[Task]:
    with Session(engine, expire_on_commit=False) as session:
        return list(session.scalars(
            select(Task).where(Task.is_active.is_(True)).order_by(Task.created_at.desc(), Task.id.desc())
        ).all())


def get_completed_task_ids(engine: Engine, leader_id: str) -> set[int]:
    with Session(engine) as session:
        return set(session.scalars(
            select(TaskCompletion.task_id).where(TaskCompletion.leader_id == leader_id)
        ).all())


def complete_task(engine: Engine, task_id: int, leader_id: str) -> bool:
    """Mark *task_id* done for *leader_id* and award its points.

    Returns ``True`` if points were awarded, ``False`` if the task was
    already completed by this leader.

    Raises
    ------
    LookupError
        If the task doesn't exist or is inactive, or the leader doesn't exist.
    """
    with Session(engine) as session:
        task = session.get(Task, task_id)
        if task is None or not task.is_active:
            raise LookupError(f"Task not found or inactive: {task_id}")
        leader = get_leader_row(session, leader_id)

        already_done = session.scalar(
            select(TaskCompletion.id).where(
                TaskCompletion.task_id == task_id,
                TaskCompletion.leader_id == leader_id,
            )
        )
        if already_done is not None:
            return False

        # Concurrent completions race past the check above; the unique
        # constraint decides which one pays out.
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(TaskCompletion(task_id=task_id, leader_id=leader_id))
                session.flush()
        except IntegrityError:
            logger.debug("Task %s already completed by %s", task_id, leader_id)
            return False

        points = task.points
        config = load_scoring_config(session)
        adjust_counter(session, leader, "task_points", points, config.weights)
        session.commit()

    logger.info("Task %s completed by %s (+%d)", task_id, leader_id, points)
    return True


def uncomplete_task(engine: Engine, task_id: int, leader_id: str) -> bool:
    """Remove a completion and take its points back (never below 0).

    Returns ``False`` if there was nothing to undo.
    """
    with Session(engine) as session:
        completion = session.scalar(
            select(TaskCompletion).where(
                TaskCompletion.task_id == task_id,
                TaskCompletion.leader_id == leader_id,
            )
        )
        if completion is None:
            return False

        task = session.get(Task, task_id)
        leader = get_leader_row(session, leader_id)
        session.delete(completion)
        if task is not None:
            config = load_scoring_config(session)
            adjust_counter(session, leader, "task_points", -task.points, config.weights)
        session.commit()

    logger.info("Task %s uncompleted by %s", task_id, leader_id)
    return True


def deactivate_task(engine: Engine, task_id: int) -> None:
    """Soft-delete a task; completions and awarded points are kept."""
    with Session(engine) as session:
        task = session.get(Task, task_id)
        if task is None:
            raise LookupError(f"Task not found: {task_id}")
        task.is_active = False
        session.commit()
