#!filepath: tests/meta/test_watermark.py
from pathlib import Path

import pytest

from mempool_splitter.meta.watermark import U64_MAX, WatermarkStore
from mempool_splitter.utils.errors import PersistenceWriteError


def test_save_then_load(tmp_path):
    store = WatermarkStore(tmp_path / "add" / "watermark.txt")

    store.save(1_700_000_000)

    assert store.path.read_text() == "1700000000"
    assert store.load() == 1_700_000_000
    assert store.try_load() == (1_700_000_000, True)


def test_missing_file_is_zero(tmp_path):
    store = WatermarkStore(tmp_path / "watermark.txt")

    assert not store.exists()
    assert store.try_load() == (0, False)


@pytest.mark.parametrize("content", ["", "abc", "-1", str(U64_MAX + 1), "1.5", "\xff"])
def test_bad_content_is_zero(tmp_path, content):
    """无法解析 / 越界 → 0，不抛异常"""
    path = tmp_path / "watermark.txt"
    path.write_text(content, encoding="utf-8")

    value, ok = WatermarkStore(path).try_load()

    assert value == 0
    assert ok is False


def test_surrounding_whitespace_is_tolerated(tmp_path):
    path = tmp_path / "watermark.txt"
    path.write_text("42\n")

    assert WatermarkStore(path).load() == 42


def test_u64_bounds(tmp_path):
    store = WatermarkStore(tmp_path / "watermark.txt")

    store.save(U64_MAX)
    assert store.load() == U64_MAX

    for bad in (-1, U64_MAX + 1, True, 1.0, "10"):
        with pytest.raises(ValueError):
            store.save(bad)

    # 非法值不会改动已有文件
    assert store.load() == U64_MAX


def test_write_failure_raises(tmp_path, monkeypatch):
    store = WatermarkStore(tmp_path / "watermark.txt")
    store.save(10)

    def boom(src, dst):
        raise OSError("read-only file system")

    monkeypatch.setattr("os.replace", boom)

    with pytest.raises(PersistenceWriteError):
        store.save(20)

    monkeypatch.undo()
    assert store.load() == 10


def test_unstatable_path_is_zero(tmp_path, monkeypatch):
    """父目录不可搜索（Path.exists 抛 PermissionError）→ 0，不抛异常"""
    store = WatermarkStore(tmp_path / "locked" / "watermark.txt")

    def denied(self, *args, **kwargs):
        raise PermissionError(13, "Permission denied", str(self))

    monkeypatch.setattr(Path, "exists", denied)

    assert store.try_load() == (0, False)
    assert store.exists() is False


def test_cleanup_removes_stale_tmp(tmp_path):
    store = WatermarkStore(tmp_path / "watermark.txt")
    store.save(5)
    (tmp_path / "watermark.txt.tmp").write_text("partial")

    assert store.cleanup() == 1
    assert store.cleanup() == 0
    assert store.load() == 5
