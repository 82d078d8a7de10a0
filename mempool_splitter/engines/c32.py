#!filepath: mempool_splitter/engines/c32.py
"""
c32check 地址编码（Stacks 人类可读地址）

    address = "S" + C32[version] + c32encode(hash160 + checksum)
    checksum = sha256(sha256(version_byte + hash160))[:4]
"""
from __future__ import annotations

import hashlib

C32_ALPHABET = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"

# 单签 / 多签地址版本
MAINNET_SINGLESIG = 22      # SP...
MAINNET_MULTISIG = 20       # SM...
TESTNET_SINGLESIG = 26      # ST...
TESTNET_MULTISIG = 21       # SN...

_SINGLESIG_HASH_MODES = {0x00, 0x02}


def c32_encode(data: bytes) -> str:
    """
    大整数转 base32，再按输入的前导 0x00 字节数补 '0'
    """
    value = int.from_bytes(data, "big")
    digits = []
    while value > 0:
        value, rem = divmod(value, 32)
        digits.append(C32_ALPHABET[rem])

    leading = len(data) - len(data.lstrip(b"\x00"))
    return "0" * leading + "".join(reversed(digits))


def c32_checksum(payload: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(payload).digest()).digest()[:4]


def c32_address(version: int, hash160: bytes) -> str:
    if not 0 <= version < 32:
        raise ValueError(f"c32 address version out of range: {version}")
    if len(hash160) != 20:
        raise ValueError(f"hash160 must be 20 bytes, got {len(hash160)}")
    checksum = c32_checksum(bytes([version]) + hash160)
    return "S" + C32_ALPHABET[version] + c32_encode(hash160 + checksum)


def address_for_hash_mode(hash_mode: int, signer_hex: str, mainnet: bool) -> str:
    """
    由 spending condition 推导 origin 地址（单签 P2PKH/P2WPKH，其余视为多签）
    """
    single = hash_mode in _SINGLESIG_HASH_MODES
    if mainnet:
        version = MAINNET_SINGLESIG if single else MAINNET_MULTISIG
    else:
        version = TESTNET_SINGLESIG if single else TESTNET_MULTISIG
    return c32_address(version, bytes.fromhex(signer_hex))
