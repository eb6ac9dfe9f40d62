"""Runtime config edited from the UI, persisted as a flat JSON file.

Unlike :mod:`collection_runner.config.settings`, which is process configuration
read from the environment, this holds the user's remote credentials and the
local/remote mode switch. Every update rewrites the whole file synchronously.
"""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from collection_runner.core.errors import ConfigReadError
from collection_runner.core.logger import get_logger

logger = get_logger(__name__)


class RunnerConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    api_key: str = Field(default="", alias="apiKey")
    workspace_id: str = Field(default="", alias="workspaceId")
    use_api_mode: bool = Field(default=True, alias="useApiMode")

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


def read_config_file(path: Path) -> RunnerConfig:
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        return RunnerConfig()
    except OSError as exc:
        raise ConfigReadError(f"Cannot read {path}: {exc}") from exc
    if not raw.strip():
        return RunnerConfig()
    try:
        return RunnerConfig.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as exc:
        raise ConfigReadError(f"Invalid config in {path}: {exc}") from exc


class ConfigStore:
    def __init__(self, path: Path):
        self.path = Path(path)
        self._config = RunnerConfig()

    @classmethod
    def load(cls, path: Path) -> "ConfigStore":
        store = cls(path)
        store.path.parent.mkdir(parents=True, exist_ok=True)
        store.path.touch(exist_ok=True)
        try:
            store._config = read_config_file(store.path)
        except ConfigReadError as exc:
            logger.error("config.read_failed", path=str(store.path), error=str(exc))
            store._config = RunnerConfig()
        return store

    @property
    def current(self) -> RunnerConfig:
        return self._config

    def replace(self, config: RunnerConfig) -> RunnerConfig:
        self.path.write_text(json.dumps(config.to_wire(), indent=2), encoding="utf-8")
        self._config = config
        logger.info(
            "config.updated",
            path=str(self.path),
            workspace_id=config.workspace_id,
            use_api_mode=config.use_api_mode,
            api_key_set=bool(config.api_key),
        )
        return config
