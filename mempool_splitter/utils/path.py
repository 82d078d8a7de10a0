#!filepath: mempool_splitter/utils/path.py
import os
import re
from pathlib import Path

from mempool_splitter import logs
from mempool_splitter.utils.errors import ConfigError

# expandvars 不认识的变量会原样保留
_UNRESOLVED_VAR = re.compile(r"\$(\{[^}]*\}|[A-Za-z_][A-Za-z0-9_]*)")


class PathManager:
    """
    路径解析：

        "~/stacks/mempool.sqlite"      → /home/<user>/stacks/mempool.sqlite
        "$STACKS_HOME/mempool.sqlite"  → <env>/mempool.sqlite
        "$UNSET/x.json"                → ConfigError（启动阶段致命）

    所有配置路径在进入 PollLoop 之前统一经过 expand()。
    """

    @classmethod
    def expand(cls, raw: str | Path) -> Path:
        text = str(raw).strip()
        if not text:
            raise ConfigError("empty path in configuration")

        expanded = os.path.expandvars(os.path.expanduser(text))

        if expanded.startswith("~"):
            raise ConfigError(f"cannot expand home directory in path: {raw!r}")

        unresolved = _UNRESOLVED_VAR.search(expanded)
        if unresolved:
            raise ConfigError(
                f"unset environment variable {unresolved.group(0)} in path: {raw!r}"
            )

        p = Path(expanded)
        logs.debug(f"[PathManager] expand {raw!r} -> {p}")
        return p
