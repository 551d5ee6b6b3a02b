from __future__ import annotations

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # exploration engine
    max_iterations: int = 1000
    settle_delay_ms: int = 200
    persist_output: bool = True
    combo_warning_threshold: int = 50
    fill_value: str = "test"
    min_select_rows: int = 5
    output_filename: str = "dom.json"
    combo_output_filename: str = "dom-combos.json"

    # browser
    headless: bool = True
    navigation_wait_ms: int = 1500
    user_data_dir: str | None = None

    # bookkeeping and artifact storage
    database_url: str = "sqlite:///./dom_xray.db"
    storage_backend: str = "local"
    output_dir: str = "output"
    minio_endpoint: str = "localhost:9000"
    minio_access_key: str | None = None
    minio_secret_key: str | None = None
    minio_bucket: str = "dom-xray"
    minio_secure: bool = False


def get_settings() -> Settings:
    return Settings()


settings = get_settings()
