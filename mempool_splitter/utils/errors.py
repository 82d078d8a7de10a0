# mempool_splitter/utils/errors.py
class UserInputError(RuntimeError):
    """
    Raised for invalid user-provided config (paths, table names, etc).
    Should NOT print traceback.
    """


class ConfigError(UserInputError):
    """配置无法加载 / 路径无法展开。启动阶段致命，进程直接退出。"""


class CodecError(ValueError):
    """交易二进制无法按 wire format 解析。"""


class PipelineError(RuntimeError):
    """
    单个 poll 周期内的致命错误。

    PollLoop 捕获后记录 error 日志，下一个 tick 以同一 watermark 重试，
    进程本身不退出。
    """


class StoreAccessError(PipelineError):
    """mempool 数据库连接 / 查询失败。"""


class TransactionDecodeError(PipelineError):
    def __init__(self, message: str, *, txid: str = "", accept_time: int | None = None):
        super().__init__(message)
        self.txid = txid
        self.accept_time = accept_time


class PersistenceWriteError(PipelineError):
    """archive / watermark / partition 写盘失败（磁盘满、权限等）。"""
