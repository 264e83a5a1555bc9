"""Environment-driven settings for the Ziwei Doushu API."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

import pytz
from dotenv import load_dotenv


ENV_FILE = Path(__file__).with_name('.env')

if ENV_FILE.exists():
    load_dotenv(dotenv_path=ENV_FILE, encoding='utf-8')


def _split_origins(value: str) -> List[str]:
    return [origin.strip() for origin in value.split(',') if origin.strip()]


@dataclass(frozen=True)
class Settings:
    app_env: str = 'development'
    log_level: str = 'INFO'
    timezone: str = 'Asia/Shanghai'
    allowed_origins: List[str] = field(default_factory=lambda: ['*'])

    @property
    def tzinfo(self):
        return pytz.timezone(self.timezone)

    @property
    def cors_origins(self) -> List[str]:
        # Any origin outside production
        if self.app_env == 'production':
            return self.allowed_origins
        return ['*']


def load_settings() -> Settings:
    timezone = os.environ.get('ZIWEI_TIMEZONE', 'Asia/Shanghai')
    try:
        pytz.timezone(timezone)
    except pytz.exceptions.UnknownTimeZoneError:
        raise ValueError(f"Unknown timezone in ZIWEI_TIMEZONE: {timezone}")

    return Settings(
        app_env=os.environ.get('APP_ENV', 'development'),
        log_level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
        timezone=timezone,
        allowed_origins=_split_origins(os.environ.get('ALLOWED_ORIGINS', '*')),
    )


settings = load_settings()
