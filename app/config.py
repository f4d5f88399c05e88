from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./objectives.db"
    log_level: str = "INFO"

    # JSON API key. None disables auth on /objectives and /reminders.
    api_key: str | None = None

    # Discord bot used for reminder DMs
    bot_token: str | None = None
    discord_api_base: str = "https://discord.com/api/v10"
    notifier_timeout_seconds: float = 10.0

    # Reminder sweep
    reminders_enabled: bool = True
    reminder_interval_seconds: float = 3600.0  # hourly
    reminder_stale_hours: int = 24

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
