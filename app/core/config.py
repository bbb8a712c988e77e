from typing import Optional
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///./study_buddy.db", alias="DATABASE_URL"
    )
    history_limit: int = Field(default=15, alias="HISTORY_LIMIT")
    daily_limit: int = Field(default=5, alias="DAILY_LIMIT")


class GameSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    # Knowledge Dash
    dash_time_limit: int = Field(default=30, alias="DASH_TIME_LIMIT")
    dash_lives: int = Field(default=3, alias="DASH_LIVES")
    dash_settle_delay: float = Field(default=0.6, alias="DASH_SETTLE_DELAY")
    dash_tick_interval: float = Field(default=1.0, alias="DASH_TICK_INTERVAL")

    # Concept Matcher
    match_pair_count: int = Field(default=4, alias="MATCH_PAIR_COUNT")
    match_delay: float = Field(default=0.6, alias="MATCH_DELAY")
    mismatch_delay: float = Field(default=1.2, alias="MISMATCH_DELAY")


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    name: str = Field(default="study-buddy", alias="APP_NAME")
    version: str = Field(default="v1", alias="API_VERSION")
    port: int = Field(default=9000, alias="APP_PORT")
    mode: str = Field(default="prod", alias="MODE")

    @computed_field
    def is_production(self) -> bool:
        return self.mode != "dev"

    @computed_field
    def is_testing(self) -> bool:
        return self.mode == "test"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=lambda: AppSettings())
    store: StoreSettings = Field(default_factory=lambda: StoreSettings())
    games: GameSettings = Field(default_factory=lambda: GameSettings())

    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    openrouter_api_key: Optional[str] = Field(default=None, alias="OPENROUTER_API_KEY")

    # Model provider selection: "google" or "openrouter"
    model_provider: str = Field(default="google", alias="MODEL_PROVIDER")
    google_model: str = Field(default="gemini-2.5-flash", alias="GOOGLE_MODEL")
    openrouter_model: str = Field(
        default="google/gemini-2.5-flash", alias="OPENROUTER_MODEL"
    )


settings = Settings()
