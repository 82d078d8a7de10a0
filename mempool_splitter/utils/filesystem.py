#!filepath: mempool_splitter/utils/filesystem.py
import os
from pathlib import Path
from typing import List, Optional

from mempool_splitter import logs

TMP_SUFFIX = ".tmp"


class FileSystem:
    """
    统一文件系统工具
    - 自动创建目录
    - 安全写入文件（临时文件 → fsync → rename）
    - 扫描目录 / 清理残留临时文件
    """

    @staticmethod
    def ensure_dir(path: str | Path) -> Path:
        """
        创建目录（如果不存在）
        """
        p = Path(path)
        if not p.exists():
            p.mkdir(parents=True, exist_ok=True)
            logs.debug(f"[FS] 创建目录: {p}")
        return p

    @staticmethod
    def tmp_path(path: str | Path) -> Path:
        """
        output.json → output.json.tmp（保留原后缀，state.json / state.txt 不会共用同一个 tmp）
        """
        path = Path(path)
        return path.with_name(path.name + TMP_SUFFIX)

    @staticmethod
    def safe_write(path: str | Path, data: bytes) -> None:
        """
        原子写入（避免部分写入导致文件损坏）
        写入步骤：
            1) 先写入 tmp 文件并 fsync
            2) os.replace → 正式文件（同一目录内 rename 是原子的）

        崩溃时磁盘上要么是旧内容，要么是新内容。
        """
        path = Path(path)
        FileSystem.ensure_dir(path.parent)

        tmp_path = FileSystem.tmp_path(path)

        with open(tmp_path, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())

        os.replace(tmp_path, path)
        logs.debug(f"[FS] 原子写入完成: {path} ({len(data)} bytes)")

    @staticmethod
    def scan_dir(path: str | Path, suffix: Optional[str] = None) -> List[Path]:
        """
        返回目录下所有文件（可按后缀过滤）
        """
        p = Path(path)
        if not p.exists():
            return []

        files = []
        for f in p.iterdir():
            if f.is_file():
                if suffix is None or f.suffix == suffix:
                    files.append(f)

        return sorted(files)

    @staticmethod
    def clean_temp_files(path: str | Path, suffix=TMP_SUFFIX) -> int:
        """
        删除目录下所有 *.tmp 临时文件（上次进程在 rename 前崩溃的残留）
        返回删除的数量
        """
        p = Path(path)
        count = 0

        if not p.exists():
            return 0

        for f in p.rglob(f"*{suffix}"):
            f.unlink()
            count += 1
            logs.debug(f"[FS] 删除临时文件: {f}")

        return count
