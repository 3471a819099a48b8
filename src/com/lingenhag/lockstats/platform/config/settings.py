# src/com/lingenhag/lockstats/platform/config/settings.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

from com.lingenhag.lockstats.domain.models import GenesisDay

load_dotenv()

ENV_PREFIX = "LOCKSTATS"


@dataclass(frozen=True)
class Settings:
    config: Dict[str, Any]

    @classmethod
    def load(cls, config_path: str = "config.yaml") -> "Settings":
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logging.warning(f"Konfigurationsdatei {config_path} nicht gefunden. Verwende Defaults.")
            config = {}
        return cls(config=config)

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Umgebungsvariable LOCKSTATS_<SECTION>_<KEY> hat Vorrang vor config.yaml."""
        env_value = os.getenv(f"{ENV_PREFIX}_{section}_{key}".upper())
        if env_value is not None and env_value.strip():
            return env_value
        return (self.config.get(section) or {}).get(key, default)

    def genesis(self) -> GenesisDay:
        defaults = GenesisDay()
        return GenesisDay(
            label=str(self.get("genesis", "label", defaults.label)),
            timestamp=int(self.get("genesis", "timestamp", defaults.timestamp)),
            seconds_per_day=int(self.get("genesis", "seconds_per_day", defaults.seconds_per_day)),
        )

    def db_path(self) -> str:
        return str(self.get("database", "default_path", "data/lockstats.duckdb"))
