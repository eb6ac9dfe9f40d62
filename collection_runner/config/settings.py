from __future__ import annotations

import shlex
from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_ENV: str = "production"
    ALLOWED_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    DATA_ROOT: str = "."
    COLLECTIONS_DIR: str = "collections"
    ENVIRONMENTS_DIR: str = "environments"
    RESULTS_DIR: str = "allure-results"
    REPORT_DIR: str = "allure-report"
    PUBLIC_DIR: str = "public"
    CONFIG_PATH: str = "config.json"

    REMOTE_API_BASE_URL: str = "https://api.getpostman.com"
    REMOTE_API_TIMEOUT: float = 30.0

    NEWMAN_COMMAND: str = "newman"
    NEWMAN_REPORTERS: str = "cli,allure,json"
    ALLURE_COMMAND: str = "npx allure-commandline"
    PUBLIC_BASE_URL: str = "http://localhost:3000"

    MAX_PARALLEL_RUNS: int = 4
    RUN_TIMEOUT_SEC: int = 0
    REPORT_TIMEOUT_SEC: int = 600

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    def _under_root(self, value: str) -> Path:
        path = Path(value).expanduser()
        if not path.is_absolute():
            path = Path(self.DATA_ROOT).expanduser() / path
        return path.resolve()

    @property
    def collections_path(self) -> Path:
        return self._under_root(self.COLLECTIONS_DIR)

    @property
    def environments_path(self) -> Path:
        return self._under_root(self.ENVIRONMENTS_DIR)

    @property
    def results_path(self) -> Path:
        return self._under_root(self.RESULTS_DIR)

    @property
    def report_path(self) -> Path:
        return self._under_root(self.REPORT_DIR)

    @property
    def public_path(self) -> Path:
        return self._under_root(self.PUBLIC_DIR)

    @property
    def config_path(self) -> Path:
        return self._under_root(self.CONFIG_PATH)

    @property
    def remote_api_base_url(self) -> str:
        return self.REMOTE_API_BASE_URL.rstrip("/")

    @property
    def public_base_url(self) -> str:
        return self.PUBLIC_BASE_URL.rstrip("/")

    @property
    def newman_command(self) -> list[str]:
        return shlex.split(self.NEWMAN_COMMAND) or ["newman"]

    @property
    def newman_reporters(self) -> str:
        reporters = [r.strip() for r in self.NEWMAN_REPORTERS.split(",") if r.strip()]
        # Response capture reads the json export, so the json reporter is always on.
        if "json" not in reporters:
            reporters.append("json")
        return ",".join(reporters)

    @property
    def allure_command(self) -> list[str]:
        return shlex.split(self.ALLURE_COMMAND) or ["allure"]

    @property
    def max_parallel_runs(self) -> int | None:
        return self.MAX_PARALLEL_RUNS if self.MAX_PARALLEL_RUNS > 0 else None

    @property
    def run_timeout(self) -> float | None:
        return float(self.RUN_TIMEOUT_SEC) if self.RUN_TIMEOUT_SEC > 0 else None

    @property
    def report_timeout(self) -> float | None:
        return float(self.REPORT_TIMEOUT_SEC) if self.REPORT_TIMEOUT_SEC > 0 else None


settings = Settings()
