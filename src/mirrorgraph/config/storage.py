"""Table store configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Literal, cast

from .errors import ConfigurationError

APP_DIR_NAME: Final[str] = "mirrorgraph"
DEFAULT_DATASET: Final[str] = "mirror_mode_fun"

type BackendKind = Literal["sql", "memory"]
_BACKENDS: Final[frozenset[str]] = frozenset({"sql", "memory"})


@dataclass(frozen=True, slots=True)
class StorageConfig:
    data_dir: Path
    dataset: str = DEFAULT_DATASET
    backend: BackendKind = "sql"
    database_uri_override: str | None = None

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def ensure_data_dir(self) -> Path:
        data_dir = self.resolve_data_dir()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def database_path(self, *, ensure: bool = True) -> Path:
        base = self.ensure_data_dir() if ensure else self.resolve_data_dir()
        return base / f"{self.dataset}.db"

    def database_uri(self) -> str:
        if self.database_uri_override:
            return self.database_uri_override
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class RelationNames:
    """Names of the relations the identity pipeline owns."""

    snapshot_prefix: str = "identities_"
    current: str = "identities_current"
    permutations: str = "identity_permutations"

    def snapshot(self, day_key: str) -> str:
        return f"{self.snapshot_prefix}{day_key}"


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv("MIRRORGRAPH_DATA_DIR")
    data_dir = Path(env_dir) if env_dir else _default_data_dir()
    backend = (os.getenv("MIRRORGRAPH_BACKEND") or "sql").strip().lower()
    if backend not in _BACKENDS:
        raise ConfigurationError(f"Unsupported MIRRORGRAPH_BACKEND: {backend}")
    return StorageConfig(
        data_dir=data_dir,
        dataset=os.getenv("MIRRORGRAPH_DATASET") or DEFAULT_DATASET,
        backend=cast("BackendKind", backend),
        database_uri_override=os.getenv("DATABASE_URI") or None,
    )
