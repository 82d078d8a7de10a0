#!filepath: mempool_splitter/adapters/mempool_source_adapter.py
from __future__ import annotations

import re
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, List, Optional

from mempool_splitter import logs
from mempool_splitter.adapters.base_adapter import BaseAdapter
from mempool_splitter.core.types import MempoolEntry, Transaction
from mempool_splitter.engines.transaction_decoder_engine import decode_transaction
from mempool_splitter.utils.errors import ConfigError, StoreAccessError, TransactionDecodeError
from mempool_splitter.utils.retry import Retry

Decoder = Callable[[bytes, str], Transaction]

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# sqlite INTEGER 是有符号 64 位
_SQLITE_INT_MAX = 2 ** 63 - 1
_U64_MAX = 2 ** 64 - 1


def _is_transient(e: Exception) -> bool:
    msg = str(e).lower()
    return "locked" in msg or "busy" in msg


class MempoolSourceAdapter(BaseAdapter):
    """
    MempoolSourceAdapter（Transaction Source）

    允许：
        - 只读打开 mempool.sqlite（每次 fetch 打开 / 关闭）
        - 按 accept_time 增量查询
        - 调用 decoder 把 tx BLOB 解成 Transaction

    禁止：
        - 写 / 删除 mempool 中的任何行
        - 跳过解码失败的行（整批失败，下个 tick 用同一 watermark 重试）
    """

    def __init__(
        self,
        db_path: str | Path,
        *,
        table: str = "mempool",
        decoder: Optional[Decoder] = None,
        busy_retries: int = 3,
        retry_delay: float = 0.2,
        inst=None,
    ) -> None:
        super().__init__(inst)
        if not _IDENTIFIER.fullmatch(table):
            raise ConfigError(f"invalid mempool table name: {table!r}")

        self.db_path = Path(db_path)
        self.table = table
        self.decoder: Decoder = decoder or decode_transaction
        self.busy_retries = busy_retries
        self.retry_delay = retry_delay

        self._sql = (
            f"SELECT txid, accept_time, tx FROM {table} "
            f"WHERE accept_time > ? ORDER BY accept_time ASC, rowid ASC"
        )

    @contextmanager
    def _get_conn(self):
        """只读连接；文件不存在时 sqlite 会抛 OperationalError 而不是新建空库"""
        uri = f"{self.db_path.resolve().as_uri()}?mode=ro"
        conn = sqlite3.connect(uri, uri=True, timeout=5.0)
        try:
            yield conn
        finally:
            conn.close()

    def _query(self, watermark: int) -> list:
        with self._get_conn() as conn:
            return conn.execute(self._sql, (watermark,)).fetchall()

    # --------------------------------------------------
    def fetch_since(self, watermark: int) -> List[MempoolEntry]:
        """
        accept_time > watermark 的全部行，按 accept_time 升序
        """
        if watermark >= _SQLITE_INT_MAX:
            return []

        with self.timer("fetch_since"):
            try:
                rows = Retry.run(
                    self._query,
                    watermark,
                    exceptions=(sqlite3.OperationalError,),
                    max_attempts=self.busy_retries,
                    delay=self.retry_delay,
                    retry_if=_is_transient,
                )
            except sqlite3.Error as e:
                raise StoreAccessError(f"mempool query failed on {self.db_path}: {e}") from e

            entries = [self._decode_row(row) for row in rows]

        if entries:
            logs.info(
                f"[MempoolSource] {len(entries)} new rows "
                f"(accept_time {entries[0].accept_time} .. {entries[-1].accept_time})"
            )
        return entries

    def _decode_row(self, row: tuple) -> MempoolEntry:
        txid, accept_time, blob = row

        if isinstance(txid, (bytes, bytearray)):
            txid = bytes(txid).hex()

        if not txid:
            raise TransactionDecodeError("mempool row without txid", accept_time=accept_time)

        if isinstance(accept_time, bool) or not isinstance(accept_time, int) or not 0 <= accept_time <= _U64_MAX:
            raise TransactionDecodeError(
                f"invalid accept_time {accept_time!r} for tx {txid}", txid=txid
            )

        if isinstance(blob, str):
            try:
                blob = bytes.fromhex(blob.removeprefix("0x"))
            except ValueError as e:
                raise TransactionDecodeError(
                    f"tx {txid}: text tx column is not hex", txid=txid, accept_time=accept_time
                ) from e

        if not blob:
            raise TransactionDecodeError(
                f"tx {txid}: empty tx column", txid=txid, accept_time=accept_time
            )

        try:
            tx = self.decoder(bytes(blob), str(txid))
        except Exception as e:
            raise TransactionDecodeError(
                f"tx {txid} (accept_time={accept_time}) failed to decode: {e}",
                txid=txid,
                accept_time=accept_time,
            ) from e

        return MempoolEntry(tx=tx, accept_time=accept_time)
