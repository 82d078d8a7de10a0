# tests/conftest.py
from __future__ import annotations

import sqlite3
import struct
from pathlib import Path
from typing import Optional, Sequence

import pytest
from loguru import logger

from mempool_splitter.core.types import (
    Authorization,
    CoinbasePayload,
    ContractCallPayload,
    MempoolEntry,
    SpendingCondition,
    TokenTransferPayload,
    Transaction,
)


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)
    yield


# ============================================================
# Stacks wire format 构造器（只覆盖测试需要的子集）
# ============================================================
class TxWire:
    SIGNER = bytes(range(1, 21))
    CONTRACT_HASH = bytes([0xAB] * 20)

    @staticmethod
    def u8(v: int) -> bytes:
        return struct.pack(">B", v)

    @staticmethod
    def u16(v: int) -> bytes:
        return struct.pack(">H", v)

    @staticmethod
    def u32(v: int) -> bytes:
        return struct.pack(">I", v)

    @staticmethod
    def u64(v: int) -> bytes:
        return struct.pack(">Q", v)

    @classmethod
    def name(cls, s: str) -> bytes:
        raw = s.encode("ascii")
        return cls.u8(len(raw)) + raw

    @classmethod
    def singlesig(cls, nonce: int = 0, fee: int = 180, hash_mode: int = 0x00) -> bytes:
        return (
            cls.u8(hash_mode)
            + cls.SIGNER
            + cls.u64(nonce)
            + cls.u64(fee)
            + cls.u8(0x00)              # compressed key
            + bytes(65)                 # signature
        )

    @classmethod
    def multisig(cls, nonce: int = 0, fee: int = 180) -> bytes:
        return (
            cls.u8(0x01)
            + cls.SIGNER
            + cls.u64(nonce)
            + cls.u64(fee)
            + cls.u32(2)
            + cls.u8(0x02) + bytes([0x11] * 65)   # compressed signature
            + cls.u8(0x00) + bytes([0x02] * 33)   # compressed public key
            + cls.u16(2)
        )

    @classmethod
    def standard_auth(cls, nonce: int = 0, fee: int = 180) -> bytes:
        return cls.u8(0x04) + cls.singlesig(nonce, fee)

    @classmethod
    def sponsored_auth(cls) -> bytes:
        return cls.u8(0x05) + cls.singlesig(1, 0) + cls.singlesig(7, 500)

    @classmethod
    def envelope(
        cls,
        payload: bytes,
        *,
        auth: Optional[bytes] = None,
        version: int = 0x00,
        chain_id: int = 0x00000001,
        post_conditions: Sequence[bytes] = (),
        anchor_mode: int = 0x03,
        post_condition_mode: int = 0x02,
    ) -> bytes:
        return (
            cls.u8(version)
            + cls.u32(chain_id)
            + (auth if auth is not None else cls.standard_auth())
            + cls.u8(anchor_mode)
            + cls.u8(post_condition_mode)
            + cls.u32(len(post_conditions))
            + b"".join(post_conditions)
            + payload
        )

    # ---------------- payloads ----------------
    @classmethod
    def contract_call(
        cls,
        contract_name: str,
        function_name: str = "transfer",
        args: Sequence[bytes] = (),
        address_version: int = 22,
    ) -> bytes:
        return (
            cls.u8(0x02)
            + cls.u8(address_version)
            + cls.CONTRACT_HASH
            + cls.name(contract_name)
            + cls.name(function_name)
            + cls.u32(len(args))
            + b"".join(args)
        )

    @classmethod
    def token_transfer(cls, amount: int = 1000, memo: bytes = b"") -> bytes:
        return (
            cls.u8(0x00)
            + cls.u8(0x05) + cls.u8(22) + cls.SIGNER      # standard principal
            + cls.u64(amount)
            + memo.ljust(34, b"\x00")
        )

    @classmethod
    def smart_contract(cls, name: str, code: str, clarity_version: Optional[int] = None) -> bytes:
        body = code.encode("utf-8")
        head = cls.u8(0x01) if clarity_version is None else cls.u8(0x06) + cls.u8(clarity_version)
        return head + cls.name(name) + cls.u32(len(body)) + body

    @classmethod
    def coinbase(cls) -> bytes:
        return cls.u8(0x04) + bytes([0x42] * 32)

    # ---------------- clarity values ----------------
    @classmethod
    def uint(cls, v: int) -> bytes:
        return cls.u8(0x01) + v.to_bytes(16, "big")

    @classmethod
    def int_(cls, v: int) -> bytes:
        return cls.u8(0x00) + v.to_bytes(16, "big", signed=True)

    @classmethod
    def buffer(cls, data: bytes) -> bytes:
        return cls.u8(0x02) + cls.u32(len(data)) + data

    @classmethod
    def ascii(cls, s: str) -> bytes:
        raw = s.encode("ascii")
        return cls.u8(0x0D) + cls.u32(len(raw)) + raw

    @classmethod
    def some(cls, inner: bytes) -> bytes:
        return cls.u8(0x0A) + inner

    @classmethod
    def tuple_(cls, **items: bytes) -> bytes:
        out = cls.u8(0x0C) + cls.u32(len(items))
        for key, value in items.items():
            out += cls.name(key) + value
        return out

    @classmethod
    def stx_post_condition(cls, code: int = 0x03, amount: int = 1000) -> bytes:
        return cls.u8(0x00) + cls.u8(0x01) + cls.u8(code) + cls.u64(amount)


@pytest.fixture
def wire() -> type[TxWire]:
    return TxWire


# ============================================================
# 内存 Transaction 构造
# ============================================================
def _auth() -> Authorization:
    return Authorization(
        auth_type="standard",
        origin=SpendingCondition(
            hash_mode=0x00,
            signer=TxWire.SIGNER.hex(),
            nonce=0,
            fee=180,
            key_encoding=0,
            signature="00" * 65,
        ),
    )


@pytest.fixture
def make_tx():
    """
    make_tx("t1", "alpha")  → contract-call 到 alpha
    make_tx("t2")           → token transfer（NO_NAME）
    """

    def _make(txid: str, contract: Optional[str] = None, *, coinbase: bool = False) -> Transaction:
        if coinbase:
            payload = CoinbasePayload(data="42" * 32)
        elif contract is None:
            payload = TokenTransferPayload(
                recipient="SP000000000000000000002Q6VF78", amount=1000, memo="00" * 34
            )
        else:
            payload = ContractCallPayload(
                contract_address="SP000000000000000000002Q6VF78",
                contract_name=contract,
                function_name="transfer",
            )
        return Transaction(
            txid=txid,
            version=0,
            chain_id=1,
            auth=_auth(),
            anchor_mode=3,
            post_condition_mode=2,
            payload=payload,
        )

    return _make


@pytest.fixture
def make_entry(make_tx):
    def _make(txid: str, accept_time: int, contract: Optional[str] = None) -> MempoolEntry:
        return MempoolEntry(tx=make_tx(txid, contract), accept_time=accept_time)

    return _make


# ============================================================
# 临时 mempool.sqlite
# ============================================================
class MempoolDB:
    """
    与 stacks-node mempool 表兼容的最小 schema：
        mempool(txid TEXT, accept_time INTEGER, tx BLOB)
    """

    def __init__(self, path: Path, table: str = "mempool"):
        self.path = path
        self.table = table
        with sqlite3.connect(path) as conn:
            conn.execute(
                f"CREATE TABLE IF NOT EXISTS {table} "
                f"(txid TEXT NOT NULL, accept_time INTEGER NOT NULL, tx BLOB NOT NULL)"
            )
        conn.close()

    def insert(self, txid, accept_time, tx) -> None:
        conn = sqlite3.connect(self.path)
        try:
            with conn:
                conn.execute(
                    f"INSERT INTO {self.table} (txid, accept_time, tx) VALUES (?, ?, ?)",
                    (txid, accept_time, tx),
                )
        finally:
            conn.close()

    def insert_call(self, txid: str, accept_time: int, contract: str, function: str = "transfer") -> None:
        self.insert(txid, accept_time, TxWire.envelope(TxWire.contract_call(contract, function)))

    def insert_transfer(self, txid: str, accept_time: int) -> None:
        self.insert(txid, accept_time, TxWire.envelope(TxWire.token_transfer()))


@pytest.fixture
def make_mempool_db(tmp_path: Path):
    def _make(name: str = "mempool.sqlite", table: str = "mempool") -> MempoolDB:
        return MempoolDB(tmp_path / name, table=table)

    return _make


@pytest.fixture
def mempool_db(make_mempool_db) -> MempoolDB:
    return make_mempool_db()


@pytest.fixture
def fake_decoder(make_tx):
    """
    tx 列直接存 contract 名（ascii），b"-" → token transfer；
    b"boom" → 解码失败
    """

    def _decode(raw: bytes, txid: str) -> Transaction:
        if raw == b"boom":
            raise ValueError("cannot decode")
        name = raw.decode("ascii")
        return make_tx(txid, None if name == "-" else name)

    return _decode
