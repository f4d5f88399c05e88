"""Objectives JSON API: same commands as the Discord webhook, for tools and admins."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import require_admin_key
from app.config import settings
from app.db import get_session
from app.objectives import reminders, service
from app.objectives.errors import (
    CooldownActive,
    InvalidFrequency,
    MissingArguments,
    ObjectiveExists,
    ObjectiveNotFound,
)
from app.objectives.models import (
    ObjectiveCreate,
    ObjectiveOut,
    ObjectiveStatusOut,
    SubmissionCreate,
    SubmissionOut,
    SweepReportOut,
)
from app.objectives.notifier import Notifier

router = APIRouter(tags=["objectives"], dependencies=[Depends(require_admin_key)])


def get_notifier(request: Request) -> Notifier:
    notifier = getattr(request.app.state, "notifier", None)
    if notifier is None:
        raise HTTPException(status_code=503, detail="Reminder delivery is not configured")
    return notifier


# ---------------------------------------------------------------------------
# /objectives/{user_id}
# ---------------------------------------------------------------------------


@router.get("/objectives/{user_id}", response_model=list[ObjectiveStatusOut])
async def list_objectives(
    user_id: str,
    session: AsyncSession = Depends(get_session),
) -> list[ObjectiveStatusOut]:
    statuses = await service.list_statuses(session, user_id)
    return [
        ObjectiveStatusOut(
            name=s.name,
            frequency=s.frequency,
            available="now" if s.available_now else s.available_at,
            streak=s.streak,
        )
        for s in statuses
    ]


@router.post("/objectives/{user_id}", response_model=ObjectiveOut, status_code=201)
async def create_objective(
    user_id: str,
    body: ObjectiveCreate,
    session: AsyncSession = Depends(get_session),
) -> ObjectiveOut:
    try:
        record = await service.create(session, user_id, body.name, body.frequency)
    except (MissingArguments, InvalidFrequency) as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except ObjectiveExists as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return ObjectiveOut(
        user_id=record.user_id,
        name=record.name,
        frequency=record.frequency,
        last_submitted=record.last_submitted,
        streak=record.streak,
        last_streak_day=record.last_streak_day,
        last_reminded=record.last_reminded,
    )


@router.delete("/objectives/{user_id}/{name}", status_code=204)
async def delete_objective(
    user_id: str,
    name: str,
    session: AsyncSession = Depends(get_session),
) -> Response:
    try:
        await service.delete(session, user_id, name)
    except MissingArguments as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except ObjectiveNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return Response(status_code=204)


@router.post("/objectives/{user_id}/{name}/submissions", response_model=SubmissionOut)
async def submit_objective(
    user_id: str,
    name: str,
    body: SubmissionCreate,
    session: AsyncSession = Depends(get_session),
) -> SubmissionOut:
    try:
        result = await service.submit(session, user_id, name, body.attachment_url)
    except MissingArguments as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except ObjectiveNotFound as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except CooldownActive as exc:
        raise HTTPException(
            status_code=429,
            detail={"message": str(exc), "next_allowed": exc.next_allowed},
        )
    return SubmissionOut(
        objective=result.objective,
        streak=result.streak,
        next_allowed=result.next_allowed,
        attachment_url=result.attachment_url,
    )


# ---------------------------------------------------------------------------
# /reminders/sweep
# ---------------------------------------------------------------------------


@router.post("/reminders/sweep", response_model=SweepReportOut)
async def run_sweep(
    session: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
) -> SweepReportOut:
    """Run one reminder pass now instead of waiting for the scheduler."""
    report = await reminders.sweep(
        session, notifier, stale_after_ms=settings.reminder_stale_hours * reminders.HOUR_MS
    )
    return SweepReportOut(
        checked_at=report.checked_at,
        reminded=[f"{u}/{n}" for u, n in report.reminded],
        failed=[f"{u}/{n}" for u, n in report.failed],
    )
