#!filepath: mempool_splitter/__init__.py

from .utils.logger import Logging, logs
from .utils.retry import Retry
from .utils.filesystem import FileSystem
from .utils.path import PathManager

__version__ = "0.1.0"

# alias 简化调用
retry = Retry
fs = FileSystem
path = PathManager

__all__ = [
    "logs", "Logging",
    "retry",
    "fs",
    "path",
    "__version__",
]
