from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SOURCES = ['ambito', 'dolarhoy', 'cronista', 'wise', 'nubank', 'nomad']


class Settings(BaseSettings):
	DATABASE_URL: str = 'sqlite+aiosqlite:///./quotes.db'

	# Aggregation
	QUOTE_CACHE_TTL_SECONDS: int = 30
	REQUEST_TIMEOUT_SECONDS: int = 10
	REFRESH_INTERVAL_SECONDS: int = 30
	FALLBACK_QUOTES_ENABLED: bool = True
	ENABLED_SOURCES: list[str] = DEFAULT_SOURCES
	USER_AGENT: str = (
		'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
		'(KHTML, like Gecko) Chrome/126.0.0.0 Safari/537.36'
	)

	# Application
	APP_NAME: str = 'Dollar Quotes API'
	ENVIRONMENT: str = 'development'
	DEBUG: bool = True
	CORS_ORIGIN: str = '*'
	HOST: str = '0.0.0.0'
	PORT: int = 8000

	# Logging
	LOG_LEVEL: str = 'INFO'
	LOG_JSON: bool = False

	model_config = SettingsConfigDict(env_file='.env', case_sensitive=False, extra='ignore')


@lru_cache
def get_settings() -> Settings:
	return Settings()
