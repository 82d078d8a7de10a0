#!filepath: mempool_splitter/engines/partition_key_engine.py
from __future__ import annotations

import re

from mempool_splitter.core.types import ContractCallPayload, Transaction
from mempool_splitter.engines.base import BaseEngine

SENTINEL_KEY = "NO_NAME"

# Clarity contract name 字母表；同时保证可以直接作为文件名
_SAFE_KEY = re.compile(r"[A-Za-z][A-Za-z0-9_-]{0,127}")


def sanitize_key(name: object) -> str:
    """
    不合法的名字（路径分隔符、NUL、'.'/'..'、超长、非 str ...）一律降级为 SENTINEL_KEY
    """
    if isinstance(name, str) and _SAFE_KEY.fullmatch(name):
        return name
    return SENTINEL_KEY


def partition_key(payload: object) -> str:
    """
    payload → partition key

    - ContractCallPayload → contract_name
    - 其它变体            → SENTINEL_KEY
    """
    if isinstance(payload, ContractCallPayload):
        return sanitize_key(payload.contract_name)
    return SENTINEL_KEY


class PartitionKeyEngine(BaseEngine[Transaction, str]):
    """
    PartitionKeyEngine（纯函数）

    Input:
        - Transaction
    Output:
        - partition key（str），可直接拼成 <key>.json

    保证：
        - 永不抛异常：宁可路由到 NO_NAME，也不能丢交易
        - 确定性：同一 payload 永远得到同一个 key
    """

    def process(self, event: Transaction) -> str:
        return partition_key(getattr(event, "payload", None))
