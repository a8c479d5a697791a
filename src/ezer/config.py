"""Configuration loading from environment variables, ezer.toml and .ezer/config.yaml."""

from __future__ import annotations

import logging
import os
import re
import sys
from dataclasses import dataclass
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import yaml

logger = logging.getLogger(__name__)

_CONFIG_FILENAME = "ezer.toml"
_PROJECT_CONFIG_FILENAME = "config.yaml"
_DEFAULT_DATA_DIR = ".ezer"
_DEFAULT_FEEDBACK_URL = "https://github.com/dtinth/ezer/issues/new"
_FALLBACK_PREFIX = "ez"

PREFIX_PATTERN = re.compile(r"[a-z0-9]{2,}")


@dataclass
class EzerConfig:
    """Top-level ezer configuration."""

    project_dir: Path
    data_dir: str = _DEFAULT_DATA_DIR
    log_level: str = "WARNING"
    feedback_url: str = _DEFAULT_FEEDBACK_URL

    @property
    def root(self) -> Path:
        """Directory holding config.yaml and memory/."""
        return self.project_dir / self.data_dir


def load_config(config_path: Path | None = None) -> EzerConfig:
    """Load configuration from environment variables and optional ezer.toml.

    Priority: environment variables > ezer.toml > defaults.
    """
    file_data: dict = {}
    if config_path and config_path.exists():
        file_data = tomllib.loads(config_path.read_text())
    else:
        # Search current dir and ~/.ezer/
        for candidate in [Path.cwd() / _CONFIG_FILENAME, Path.home() / ".ezer" / _CONFIG_FILENAME]:
            if candidate.exists():
                file_data = tomllib.loads(candidate.read_text())
                break

    project_dir = os.getenv("EZER_PROJECT_DIR", file_data.get("project_dir"))
    return EzerConfig(
        project_dir=Path(project_dir) if project_dir else Path.cwd(),
        data_dir=os.getenv("EZER_DATA_DIR", file_data.get("data_dir", _DEFAULT_DATA_DIR)),
        log_level=os.getenv("EZER_LOG_LEVEL", file_data.get("log_level", "WARNING")),
        feedback_url=os.getenv(
            "EZER_FEEDBACK_URL", file_data.get("feedback_url", _DEFAULT_FEEDBACK_URL)
        ),
    )


def derive_prefix(dir_name: str) -> str:
    """Build an id prefix from a directory name.

    Takes the first letter of every ``-``/``_`` separated segment. Short
    results fall back to the first two characters of the name, and anything
    that still is not two ``[a-z0-9]`` characters becomes ``ez``.
    """
    segments = re.split(r"[-_]", dir_name)
    prefix = "".join(s[:1] for s in segments)
    if len(prefix) < 2:
        prefix = dir_name[:2]
    prefix = re.sub(r"[^a-z0-9]", "", prefix.lower())
    if len(prefix) < 2:
        alnum = re.sub(r"[^a-z0-9]", "", dir_name.lower())
        prefix = alnum[:2] if len(alnum) >= 2 else _FALLBACK_PREFIX
    return prefix


@dataclass
class ProjectConfig:
    """Per-project settings persisted in ``.ezer/config.yaml``.

    Only the id prefix lives here. It is derived from the project directory
    name the first time and written out lazily, on the first id generated.
    """

    path: Path
    prefix: str
    persisted: bool = False

    @classmethod
    def load(cls, root: Path, project_dir: Path) -> ProjectConfig:
        path = root / _PROJECT_CONFIG_FILENAME
        data = _read_yaml(path)
        prefix = data.get("prefix")
        if isinstance(prefix, str) and PREFIX_PATTERN.fullmatch(prefix):
            return cls(path=path, prefix=prefix, persisted=True)
        if prefix is not None:
            logger.warning("Ignoring invalid prefix %r in %s", prefix, path)
        return cls(path=path, prefix=derive_prefix(project_dir.resolve().name))

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            yaml.safe_dump({"prefix": self.prefix}, sort_keys=False), encoding="utf-8"
        )
        self.persisted = True
        logger.info("Saved project prefix %r to %s", self.prefix, self.path)


def _read_yaml(path: Path) -> dict:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}
