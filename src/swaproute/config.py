"""
User settings, read from `~/.config/swaproute/config.toml`.

Any value can be overridden from the environment with the `SWAPROUTE_` prefix, using a double
underscore between nested keys, e.g. `SWAPROUTE_ROUTING__REFERENCE_TRADE_SIZE=10`.
"""

import tomllib
from pathlib import Path
from typing import Annotated

import pydantic
import tomlkit
from pydantic import BaseModel, HttpUrl, WebsocketUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from swaproute.logging import logger
from swaproute.types.aliases import ChainId

CONFIG_DIR = Path.home() / ".config" / "swaproute"
CONFIG_FILE = CONFIG_DIR / "config.toml"

type Endpoint = HttpUrl | WebsocketUrl | Path
type PositiveInt = Annotated[int, pydantic.Field(gt=0)]


class IngestionSettings(BaseModel):
    max_concurrency: PositiveInt = 10
    max_batch_size: PositiveInt = 500
    max_retries: PositiveInt = 5


class RoutingSettings(BaseModel):
    # Whole units of the input token used to quote edge costs
    reference_trade_size: PositiveInt = 1
    accept_approximate_solutions: bool = True
    full_rebuild_on_event: bool = False


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SWAPROUTE_",
        env_nested_delimiter="__",
    )

    rpc: dict[ChainId, Endpoint] = pydantic.Field(default_factory=dict)
    ingestion: IngestionSettings = pydantic.Field(default_factory=IngestionSettings)
    routing: RoutingSettings = pydantic.Field(default_factory=RoutingSettings)

    @field_validator("rpc", mode="after")
    @classmethod
    def resolve_ipc_paths(cls, endpoints: dict[ChainId, Endpoint]) -> dict[ChainId, Endpoint]:
        """
        IPC socket paths are stored absolute with the home directory expanded. URLs pass through.
        """

        resolved: dict[ChainId, Endpoint] = {}
        for chain_id, endpoint in endpoints.items():
            match endpoint:
                case Path():
                    resolved[chain_id] = endpoint.expanduser().absolute()
                case _:
                    resolved[chain_id] = endpoint
        return resolved


def load_config_from_file(config_path: Path) -> Settings:
    with config_path.open("rb") as file:
        return Settings.model_validate(tomllib.load(file))


def save_config_to_file(config: Settings, config_path: Path = CONFIG_FILE) -> None:
    document = tomlkit.document()
    document.add(tomlkit.comment("swaproute settings"))
    document.update(config.model_dump(mode="json"))
    config_path.write_text(tomlkit.dumps(document))


def _load_or_create_settings() -> Settings:
    if not CONFIG_DIR.exists():
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)
        logger.info(f"Created a configuration directory at {CONFIG_DIR}.")

    if CONFIG_FILE.exists():
        return load_config_from_file(CONFIG_FILE)

    default_settings = Settings()
    save_config_to_file(default_settings)
    logger.info(f"Created a configuration file at {CONFIG_FILE}.")
    return default_settings


settings = _load_or_create_settings()
