from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import yaml


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {val!r}") from None


def _env_list(name: str, default: str = "") -> List[str]:
    val = os.getenv(name, default)
    return [x.strip() for x in val.split(";") if x.strip()]


@dataclass
class LoggingConfig:
    level: str = "INFO"
    log_dir: str = "logs"
    filename: str = "repmed.log"
    structured: bool = False

    def file_path(self) -> Path:
        return Path(self.log_dir) / self.filename


@dataclass
class BootstrapConfig:
    """Resampling and interval options for one analysis run.

    Replications, seed and worker count can be overridden through the
    REPMED_REPLICATIONS, REPMED_SEED and REPMED_MAX_WORKERS environment
    variables; REPMED_METHODS takes a ``;``-separated method list.
    """

    replications: int = field(default_factory=lambda: _env_int("REPMED_REPLICATIONS", 5000))
    confidence_levels: List[float] = field(default_factory=lambda: [0.95])
    methods: List[str] = field(
        default_factory=lambda: _env_list("REPMED_METHODS", "basic") or ["basic"]
    )
    seed: Optional[int] = field(default_factory=lambda: _env_int("REPMED_SEED", 42))
    singular_policy: str = "discard"  # discard | abort
    max_discard_fraction: float = 0.05
    block_size: int = 1000
    max_workers: Optional[int] = field(default_factory=lambda: _env_int("REPMED_MAX_WORKERS", None))
    deadline_seconds: Optional[float] = None
    variance_estimator: Optional[str] = None  # None | "sobel"
    progress: bool = False


@dataclass
class DataConfig:
    columns: Optional[Dict[str, str]] = None  # maps roles m1/m2/y1/y2 to table columns


@dataclass
class AppConfig:
    logging: LoggingConfig = None  # type: ignore[assignment]
    bootstrap: BootstrapConfig = None  # type: ignore[assignment]
    data: DataConfig = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.logging is None:
            self.logging = LoggingConfig()
        if self.bootstrap is None:
            self.bootstrap = BootstrapConfig()
        if self.data is None:
            self.data = DataConfig()

    @staticmethod
    def from_dict(payload: dict) -> "AppConfig":
        return AppConfig(
            logging=LoggingConfig(**(payload.get("logging") or {})),
            bootstrap=BootstrapConfig(**(payload.get("bootstrap") or {})),
            data=DataConfig(**(payload.get("data") or {})),
        )

    @staticmethod
    def from_json(path: str | Path) -> "AppConfig":
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
        return AppConfig.from_dict(payload)

    @staticmethod
    def from_yaml(path: str | Path) -> "AppConfig":
        with open(path, "r", encoding="utf-8") as f:
            payload = yaml.safe_load(f) or {}
        return AppConfig.from_dict(payload)

    @staticmethod
    def from_file(path: str | Path) -> "AppConfig":
        """Load a .json, .yaml or .yml configuration file."""
        suffix = Path(path).suffix.lower()
        if suffix in {".yaml", ".yml"}:
            return AppConfig.from_yaml(path)
        if suffix == ".json":
            return AppConfig.from_json(path)
        raise ValueError(f"Unsupported config format: {suffix}")

    def to_dict(self) -> dict:
        return {
            "logging": asdict(self.logging),
            "bootstrap": asdict(self.bootstrap),
            "data": asdict(self.data),
        }

    def to_json(self, path: str | Path) -> None:
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        with open(p, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)


def default_app_config() -> AppConfig:
    return AppConfig(
        logging=LoggingConfig(),
        bootstrap=BootstrapConfig(),
        data=DataConfig(),
    )
