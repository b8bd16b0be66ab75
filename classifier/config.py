import json
from pathlib import Path

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from classifier.models import ClassifierConfig


class ConfigError(Exception):
    """Raised when the classification config file cannot be loaded."""


class Settings(BaseSettings):
    """
    Centralized application settings. Pydantic's BaseSettings will automatically
    load these from environment variables or a .env file.
    """
    # --- Morningstar endpoints ---
    MORNINGSTAR_DOMAIN: str = Field("de", description="Country domain of the Morningstar website (morningstar.<domain>).")
    MORNINGSTAR_BASE_URL: str = Field(
        "https://www.emea-api.morningstar.com/ecint/v1",
        description="Base URL of the securities (ecint) API.",
    )
    MORNINGSTAR_SAL_BASE_URL: str = Field(
        "https://www.us-api.morningstar.com/sal/sal-service",
        description="Base URL of the SAL API used for stock details.",
    )
    MORNINGSTAR_SEARCH_URL: str = Field(
        "https://global.morningstar.com/api/v1/{domain}/search/securities",
        description="Website search endpoint used to find a stock secid by ISIN.",
    )
    MORNINGSTAR_VIEW_ID: str = Field("snapshot", description="Default view requested from the securities API.")
    MORNINGSTAR_TOKEN: str = Field("", description="Bearer token sent with every API request.")

    # --- Request parameters ---
    CURRENCY_ID: str = Field("EUR", description="Currency used by the securities API.")
    LANGUAGE_ID: str = Field("en-UK", description="Language used by the provider APIs.")
    SAL_VERSION: str = Field("4.65.0", description="Version parameter of the equityOverview endpoint.")
    REQUEST_TIMEOUT_SECONDS: float = Field(20.0, description="Timeout of a single HTTP request.")
    REQUEST_DELAY_SECONDS: float = Field(0.5, description="Pause between two securities to go easy on the API.")

    # --- System Parameters ---
    CLASSIFIER_CONFIG_PATH: str = Field("config/default.json", description="Taxonomy, mapping and embedding config file.")
    LOG_LEVEL: str = Field("INFO", description="Level of the application loggers.")

    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')


def load_classifier_config(path) -> ClassifierConfig:
    """
    Reads the taxonomy configuration file once and returns it as an immutable
    ClassifierConfig. Any problem with the file is reported as a ConfigError.
    """
    config_path = Path(path)
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            raw = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"Config file not found: {config_path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {config_path} is not valid JSON: {e}") from e

    try:
        return ClassifierConfig(**raw)
    except (TypeError, ValidationError) as e:
        raise ConfigError(f"Invalid classifier config in {config_path}: {e}") from e


settings = Settings()
