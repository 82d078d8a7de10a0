#!filepath: mempool_splitter/config/app_config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ValidationError

from .log_config import LogConfig
from .store_config import StoreConfig
from .output_config import OutputConfig
from .poll_config import PollConfig
from mempool_splitter.utils.errors import ConfigError
from mempool_splitter.utils.path import PathManager
from mempool_splitter import logs


def default_config_path() -> Path:
    """
    包内默认配置：mempool_splitter/config/base.yml
    """
    return Path(__file__).with_name("base.yml")


@dataclass(frozen=True)
class ResolvedPaths:
    """已展开（~ / $VAR）的运行期路径。"""

    db_path: Path
    partition_dir: Path
    archive_file: Path
    watermark_file: Path


class AppConfig(BaseModel):
    log: LogConfig = LogConfig()
    store: StoreConfig
    output: OutputConfig = OutputConfig()
    poll: PollConfig = PollConfig()

    @classmethod
    def load(cls, path: str | Path | None = None) -> "AppConfig":
        """
        加载 YAML 配置 + .env
        - 默认使用包内 config/base.yml
        - .env 从当前工作目录向上查找
        - 环境变量覆盖：
            MEMPOOL_DB_PATH        → store.path
            MEMPOOL_OUTPUT_DIR     → output.*（统一改根目录）
            MEMPOOL_POLL_INTERVAL  → poll.interval_seconds
        """
        # 1) 先加载 .env（不覆盖已有环境变量）
        load_dotenv(find_dotenv(usecwd=True))

        # 2) 决定配置文件路径
        if path is None:
            path = default_config_path()
        path = Path(path)

        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        # 3) 读取 YAML
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Config file is not valid YAML: {path}: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigError(f"Config root must be a mapping: {path}")

        # 4) 环境变量覆盖
        cls._apply_env_overrides(raw)

        try:
            cfg = cls(**raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid config {path}:\n{e}") from e

        logs.debug(f"[AppConfig] loaded {path}")
        return cfg

    @staticmethod
    def _apply_env_overrides(raw: dict) -> None:
        db_path = os.getenv("MEMPOOL_DB_PATH")
        if db_path:
            raw.setdefault("store", {})["path"] = db_path

        out_dir = os.getenv("MEMPOOL_OUTPUT_DIR")
        if out_dir:
            raw["output"] = {
                "partition_dir": f"{out_dir}/contracts",
                "archive_file": f"{out_dir}/output.json",
                "watermark_file": f"{out_dir}/watermark.txt",
            }

        interval = os.getenv("MEMPOOL_POLL_INTERVAL")
        if interval:
            raw.setdefault("poll", {})["interval_seconds"] = interval

    def resolved_paths(self) -> ResolvedPaths:
        """
        展开所有路径；任何一个无法展开都会抛 ConfigError（启动即失败）。
        """
        return ResolvedPaths(
            db_path=PathManager.expand(self.store.path),
            partition_dir=PathManager.expand(self.output.partition_dir),
            archive_file=PathManager.expand(self.output.archive_file),
            watermark_file=PathManager.expand(self.output.watermark_file),
        )
