#!filepath: mempool_splitter/engines/clarity.py
"""
Clarity value 反序列化 → JSON 友好的 dict

    uint u1000        → {"type": "uint", "value": "1000"}
    (some 'SP...)     → {"type": "some", "value": {"type": "principal", "value": "SP..."}}
    {a: true}         → {"type": "tuple", "value": {"a": {"type": "bool", "value": true}}}

128 位整数以字符串保存，避免 JSON 消费端精度丢失。
"""
from __future__ import annotations

from mempool_splitter.engines.byte_reader import ByteReader
from mempool_splitter.engines.c32 import c32_address
from mempool_splitter.utils.errors import CodecError

MAX_DEPTH = 64

T_INT = 0x00
T_UINT = 0x01
T_BUFFER = 0x02
T_TRUE = 0x03
T_FALSE = 0x04
T_STANDARD_PRINCIPAL = 0x05
T_CONTRACT_PRINCIPAL = 0x06
T_OK = 0x07
T_ERR = 0x08
T_NONE = 0x09
T_SOME = 0x0A
T_LIST = 0x0B
T_TUPLE = 0x0C
T_STRING_ASCII = 0x0D
T_STRING_UTF8 = 0x0E

_WRAPPERS = {T_OK: "ok", T_ERR: "err", T_SOME: "some"}


def read_address(reader: ByteReader) -> str:
    """version(1) + hash160(20) → c32 地址"""
    version = reader.u8()
    try:
        return c32_address(version, reader.read(20))
    except ValueError as e:
        raise CodecError(str(e)) from e


def read_principal(reader: ByteReader, type_id: int) -> str:
    address = read_address(reader)
    if type_id == T_CONTRACT_PRINCIPAL:
        name = reader.ascii_u8_prefixed("contract name")
        return f"{address}.{name}"
    return address


def read_principal_value(reader: ByteReader) -> str:
    """读取一个必须是 principal 的 clarity value（token transfer 收款方等）"""
    type_id = reader.u8()
    if type_id not in (T_STANDARD_PRINCIPAL, T_CONTRACT_PRINCIPAL):
        raise CodecError(f"expected principal value, got type 0x{type_id:02x}")
    return read_principal(reader, type_id)


def read_value(reader: ByteReader, depth: int = 0) -> dict:
    if depth > MAX_DEPTH:
        raise CodecError(f"clarity value nested deeper than {MAX_DEPTH}")

    type_id = reader.u8()

    if type_id == T_INT:
        return {"type": "int", "value": str(reader.i128())}
    if type_id == T_UINT:
        return {"type": "uint", "value": str(reader.u128())}
    if type_id == T_BUFFER:
        return {"type": "buffer", "value": "0x" + reader.u32_prefixed().hex()}
    if type_id == T_TRUE:
        return {"type": "bool", "value": True}
    if type_id == T_FALSE:
        return {"type": "bool", "value": False}
    if type_id in (T_STANDARD_PRINCIPAL, T_CONTRACT_PRINCIPAL):
        return {"type": "principal", "value": read_principal(reader, type_id)}
    if type_id in _WRAPPERS:
        return {"type": _WRAPPERS[type_id], "value": read_value(reader, depth + 1)}
    if type_id == T_NONE:
        return {"type": "none"}
    if type_id == T_LIST:
        count = reader.u32()
        return {"type": "list", "value": [read_value(reader, depth + 1) for _ in range(count)]}
    if type_id == T_TUPLE:
        count = reader.u32()
        items = {}
        for _ in range(count):
            name = reader.ascii_u8_prefixed("tuple key")
            items[name] = read_value(reader, depth + 1)
        return {"type": "tuple", "value": items}
    if type_id == T_STRING_ASCII:
        raw = reader.u32_prefixed()
        try:
            return {"type": "string-ascii", "value": raw.decode("ascii")}
        except UnicodeDecodeError as e:
            raise CodecError("invalid string-ascii value") from e
    if type_id == T_STRING_UTF8:
        raw = reader.u32_prefixed()
        try:
            return {"type": "string-utf8", "value": raw.decode("utf-8")}
        except UnicodeDecodeError as e:
            raise CodecError("invalid string-utf8 value") from e

    raise CodecError(f"unknown clarity type 0x{type_id:02x} at offset {reader.position - 1}")


def decode_value(raw: bytes) -> dict:
    """单个完整 value（不允许尾随字节）"""
    reader = ByteReader(raw)
    value = read_value(reader)
    if not reader.at_end():
        raise CodecError(f"{reader.remaining} trailing bytes after clarity value")
    return value
