from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
import yaml

from fleetdesk.exceptions import ConfigError

class AppSettings(BaseSettings):
    name: str = "FleetDesk"
    version: str = "1.0.0"

class PathSettings(BaseSettings):
    data_dir: Path = Path("./data")
    db_path: Path = Path("./data/fleetdesk.db")


class ImportSettings(BaseSettings):
    # Column delimiter of spreadsheet pastes (Excel/Sheets copy uses tabs).
    delimiter: str = "\t"
    min_columns: int = 4
    default_mode: str = "merge"  # merge|replace
    # Also treat (date, route, weight, boxes) matches as duplicates.
    match_content: bool = False
    preview_rows: int = 10


class SecuritySettings(BaseSettings):
    """
    Deployment guardrails for the import routes.
    """
    import_token: Optional[str] = None  # shared key required on write routes when set
    max_upload_mb: int = 15  # Content-Length cap for POST /imports/*

class LoggingSettings(BaseSettings):
    log_requests: bool = True
    level: str = "INFO"

class StorageSettings(BaseSettings):
    """
    Runtime persistence selection:
    - sqlite (local/dev default)
    - firestore (cloud)
    """
    backend: str = "sqlite"  # sqlite|firestore
    firestore_project_id: Optional[str] = None
    firestore_database: str = "(default)"
    firestore_collection: str = "importedData"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_nested_delimiter="__", env_file=".env", extra="ignore")
    app: AppSettings = AppSettings()
    paths: PathSettings = PathSettings()
    imports: ImportSettings = ImportSettings()
    security: SecuritySettings = SecuritySettings()
    logging: LoggingSettings = LoggingSettings()
    storage: StorageSettings = StorageSettings()

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Settings":
        # Load from default path if exists
        default_path = Path("config/settings.yaml")
        path = config_path or (default_path if default_path.exists() else None)

        if not path:
            return cls()

        try:
            with open(path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Failed to load settings from {path}: {exc}") from exc

        if not isinstance(config_data, dict):
            raise ConfigError(f"Settings file {path} must contain a mapping")
        return cls(**config_data)

settings = Settings.load()
