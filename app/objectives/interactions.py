"""Discord interactions webhook: slash commands in, command outcomes out.

Request signatures are expected to be verified upstream of this service.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import get_session
from app.objectives import presenter, service
from app.objectives.errors import ObjectiveError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["interactions"])

PING = 1
APPLICATION_COMMAND = 2


class CommandOption(BaseModel):
    name: str
    type: int | None = None
    value: Any = None


class CommandData(BaseModel):
    name: str
    options: list[CommandOption] = Field(default_factory=list)
    resolved: dict[str, Any] | None = None

    def option(self, name: str) -> Any:
        for opt in self.options:
            if opt.name == name:
                return opt.value
        return None


class Interaction(BaseModel):
    type: int
    id: str | None = None
    data: CommandData | None = None
    member: dict[str, Any] | None = None
    user: dict[str, Any] | None = None
    attachments: list[dict[str, Any]] | None = None

    model_config = {"extra": "allow"}

    @property
    def user_id(self) -> str | None:
        member_user = (self.member or {}).get("user") or {}
        return member_user.get("id") or (self.user or {}).get("id")


def resolve_attachment_url(interaction: Interaction) -> str | None:
    """Find the image option's URL in whichever shape Discord delivered it."""
    data = interaction.data
    value = data.option("image") if data else None
    if not value:
        return None
    if isinstance(value, dict):
        return value.get("url")
    if not isinstance(value, str):
        return None
    attachments = (data.resolved or {}).get("attachments") or {}
    if value in attachments:
        return attachments[value].get("url")
    for att in interaction.attachments or []:
        if att.get("id") == value:
            return att.get("url")
    return None


def _text_option(data: CommandData, name: str) -> str | None:
    value = data.option(name)
    return value if isinstance(value, str) else None


async def _run_command(session: AsyncSession, interaction: Interaction) -> dict[str, Any]:
    data = interaction.data
    command = data.name
    user_id = interaction.user_id
    if not user_id:
        logger.error("command %s carried no user id", command)
        raise HTTPException(status_code=400, detail="Interaction has no user")

    try:
        if command == "submit":
            result = await service.submit(
                session,
                user_id,
                _text_option(data, "objective"),
                resolve_attachment_url(interaction),
            )
            return presenter.submission_accepted(user_id, result)

        if command == "create_objective":
            record = await service.create(
                session, user_id, _text_option(data, "name"), _text_option(data, "frequency")
            )
            return presenter.objective_created(record)

        if command == "list_objectives":
            return presenter.objective_list(await service.list_statuses(session, user_id))

        if command == "delete_objective":
            name = _text_option(data, "name")
            await service.delete(session, user_id, name)
            return presenter.objective_deleted(name.strip())
    except ObjectiveError as exc:
        return presenter.error(command, exc)

    logger.error("unknown command: %s", command)
    raise HTTPException(status_code=400, detail=f"Unknown command: {command}")


@router.post("/interactions")
async def interactions(
    interaction: Interaction,
    session: AsyncSession = Depends(get_session),
) -> dict:
    if interaction.type == PING:
        return {"type": presenter.PONG}

    if interaction.type == APPLICATION_COMMAND and interaction.data is not None:
        return await _run_command(session, interaction)

    raise HTTPException(status_code=404, detail=f"Unhandled interaction type: {interaction.type}")
