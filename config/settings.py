"""Configuration settings and data models."""

import json
from typing import Dict, List, Optional, Literal
from pydantic import BaseModel, Field, field_validator
import yaml
from pathlib import Path


class StorageConfig(BaseModel):
    """Where contestants, tournaments and matches are stored."""

    backend: Literal["memory", "sqlite"] = Field(
        default="sqlite", description="Storage backend (memory, sqlite)"
    )
    db_path: str = Field(default="tournaments.db", description="SQLite database file")
    timeout: float = Field(
        default=30.0, description="Seconds to wait for the SQLite write lock"
    )

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v):
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v


class EngineConfig(BaseModel):
    """Tournament engine behaviour."""

    rng_seed: Optional[int] = Field(
        default=None, description="Seed for field draws and bracket shuffles"
    )
    rank_window: int = Field(
        default=100, ge=1, description="Leaderboard size used for contestant ranks"
    )


class RosterConfig(BaseModel):
    """Contestants created at startup."""

    names: List[str] = Field(default=[], description="Contestant names to seed")
    default_nationality: Optional[str] = Field(
        default=None, description="Nationality given to seeded contestants"
    )
    starting_points: int = Field(
        default=1000, ge=0, description="Ranking points of a new contestant"
    )
    images: Dict[str, List[str]] = Field(
        default={}, description="Image URLs keyed by contestant id or name"
    )


class SystemConfig(BaseModel):
    """System-wide configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    host: str = Field(default="0.0.0.0", description="HTTP bind address")
    port: int = Field(default=8000, description="HTTP port")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v):
        if not 0 < v < 65536:
            raise ValueError("port must be between 1 and 65535")
        return v


class AppConfig(BaseModel):
    """Complete application configuration."""

    storage: StorageConfig
    engine: EngineConfig
    roster: RosterConfig
    system: SystemConfig

    @classmethod
    def load_from_file(cls, config_path: Path) -> "AppConfig":
        """Load configuration from a JSON or YAML file."""
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "r", encoding="utf-8") as f:
            if config_path.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")

        # Validate required sections
        required_sections = ["storage", "engine", "roster", "system"]
        missing_sections = [
            section for section in required_sections if section not in data
        ]
        if missing_sections:
            raise ValueError(f"Missing required config sections: {missing_sections}")

        return cls(**data)

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to YAML file."""
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self.model_dump(),
                f,
                default_flow_style=False,
                indent=2,
            )


def get_default_config(config_path: Path = Path("tournament_config.yaml")) -> AppConfig:
    """Load configuration from tournament_config.yaml, creating it if needed."""
    if not config_path.exists():
        get_template_config().save_to_file(config_path)
    return AppConfig.load_from_file(config_path)


def get_template_config() -> AppConfig:
    """Get template configuration for config file generation."""
    return AppConfig(
        storage=StorageConfig(
            backend="sqlite",
            db_path="tournaments.db",
            timeout=30.0,
        ),
        engine=EngineConfig(
            rng_seed=None,
            rank_window=100,
        ),
        roster=RosterConfig(
            names=[f"Contestant {i:03d}" for i in range(1, 129)],
            default_nationality=None,
            starting_points=1000,
        ),
        system=SystemConfig(
            log_level="INFO",
            host="0.0.0.0",
            port=8000,
        ),
    )
