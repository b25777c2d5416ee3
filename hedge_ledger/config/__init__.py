"""Configuration package for runtime settings and startup validation."""

from .settings import (
	MEMORY_DATABASE_URL_PREFIX,
	AppSettings,
	SettingsLoadError,
	config_load_database_url,
	config_load_settings,
)

__all__ = [
	"MEMORY_DATABASE_URL_PREFIX",
	"AppSettings",
	"SettingsLoadError",
	"config_load_settings",
	"config_load_database_url",
]
