"""Discord message formatting for command outcomes."""

from __future__ import annotations

from typing import Any

from app.objectives.errors import (
    CooldownActive,
    InvalidFrequency,
    MissingArguments,
    ObjectiveError,
    ObjectiveExists,
    ObjectiveNotFound,
)
from app.objectives.models import ObjectiveRecord, ObjectiveStatus, SubmissionResult

# Discord interaction constants
PONG = 1
CHANNEL_MESSAGE_WITH_SOURCE = 4
EPHEMERAL = 1 << 6

STREAK_DISPLAY_ABOVE = 3


def relative_timestamp(epoch_ms: int) -> str:
    return f"<t:{epoch_ms // 1000}:R>"


def mention(user_id: str) -> str:
    return f"<@{user_id}>"


def message(content: str, *, ephemeral: bool = True) -> dict[str, Any]:
    data: dict[str, Any] = {"content": content}
    if ephemeral:
        data["flags"] = EPHEMERAL
    return {"type": CHANNEL_MESSAGE_WITH_SOURCE, "data": data}


def submission_accepted(user_id: str, result: SubmissionResult) -> dict[str, Any]:
    description = f"Objective '{result.objective}' completed!"
    if result.streak > STREAK_DISPLAY_ABOVE:
        description += f"\nStreak: {result.streak} 🔥"
    return {
        "type": CHANNEL_MESSAGE_WITH_SOURCE,
        "data": {
            "embeds": [
                {"description": description, "image": {"url": result.attachment_url}},
                {
                    "description": f"{mention(user_id)} will be able to submit this objective again "
                    f"{relative_timestamp(result.next_allowed)}"
                },
            ],
        },
    }


def objective_created(record: ObjectiveRecord) -> dict[str, Any]:
    return message(f'Objective "{record.name}" ({record.frequency}) created!')


def objective_deleted(name: str) -> dict[str, Any]:
    return message(f'Objective "{name}" has been deleted forever.')


def objective_list(statuses: list[ObjectiveStatus]) -> dict[str, Any]:
    if not statuses:
        return message("You have no objectives.")
    lines = []
    for s in statuses:
        when = "Available now" if s.available_now else relative_timestamp(s.available_at)
        line = f"- *{s.name}* ({s.frequency}) - {when}"
        if s.streak > STREAK_DISPLAY_ABOVE:
            line += f" | Streak: {s.streak} 🔥"
        lines.append(line)
    return message("Your objectives:\n" + "\n".join(lines))


def _missing_text(command: str, exc: MissingArguments) -> str:
    if command == "submit":
        if set(exc.missing) == {"image", "objective"}:
            return "Missing both image and objective."
        return f"Missing {exc.missing[0]}."
    if command == "create_objective":
        return "Objective name and frequency are required."
    return "Objective name is required."


def error(command: str, exc: ObjectiveError) -> dict[str, Any]:
    """Ephemeral reply for a failed command."""
    if isinstance(exc, MissingArguments):
        return message(_missing_text(command, exc))
    if isinstance(exc, InvalidFrequency):
        return message(f'Unknown frequency "{exc.frequency}". Use daily, weekly or monthly.')
    if isinstance(exc, ObjectiveExists):
        return message(f'Objective "{exc.name}" already exists.')
    if isinstance(exc, ObjectiveNotFound):
        if command == "submit":
            return message(
                f'Objective "{exc.name}" not found. Please create it first with /create_objective.'
            )
        return message(f'Objective "{exc.name}" not found.')
    if isinstance(exc, CooldownActive):
        return message(
            f"You have already submitted **{exc.name}**. Try again {relative_timestamp(exc.next_allowed)}."
        )
    return message(str(exc))
