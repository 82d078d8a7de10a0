#!filepath: mempool_splitter/engines/transaction_decoder_engine.py
from __future__ import annotations

from mempool_splitter.core.types import (
    AuthField,
    Authorization,
    CoinbasePayload,
    ContractCallPayload,
    OpaquePayload,
    Payload,
    PostCondition,
    SmartContractPayload,
    SpendingCondition,
    TokenTransferPayload,
    Transaction,
)
from mempool_splitter.engines import clarity
from mempool_splitter.engines.base import BaseEngine
from mempool_splitter.engines.byte_reader import ByteReader
from mempool_splitter.utils.errors import CodecError

AUTH_STANDARD = 0x04
AUTH_SPONSORED = 0x05

SINGLESIG_HASH_MODES = {0x00, 0x02}
MULTISIG_HASH_MODES = {0x01, 0x03, 0x05, 0x07}

PAYLOAD_TOKEN_TRANSFER = 0x00
PAYLOAD_SMART_CONTRACT = 0x01
PAYLOAD_CONTRACT_CALL = 0x02
PAYLOAD_COINBASE = 0x04
PAYLOAD_COINBASE_TO_ALT = 0x05
PAYLOAD_VERSIONED_SMART_CONTRACT = 0x06

PC_STX = 0x00
PC_FUNGIBLE = 0x01
PC_NONFUNGIBLE = 0x02

PC_PRINCIPAL_ORIGIN = 0x01
PC_PRINCIPAL_STANDARD = 0x02
PC_PRINCIPAL_CONTRACT = 0x03

_PUBKEY_LEN = 33
_SIGNATURE_LEN = 65
_MEMO_LEN = 34
_COINBASE_LEN = 32


class TransactionDecoderEngine(BaseEngine[bytes, Transaction]):
    """
    Stacks 交易 consensus wire format 解码器

    Input:
        - mempool 表 tx 列的原始字节
    Output:
        - Transaction（frozen dataclass）

    契约：
        - 截断 / 未知 tag / 尾随字节 → CodecError
        - payload 在交易最末尾，未展开解析的 payload 类型整体保存为 OpaquePayload
        - 不做签名校验 / 语义校验
    """

    def process(self, event: bytes) -> Transaction:
        return self.decode(event)

    def decode(self, raw: bytes, txid: str = "") -> Transaction:
        reader = ByteReader(raw)

        version = reader.u8()
        chain_id = reader.u32()
        auth = self._read_authorization(reader)
        anchor_mode = reader.u8()
        post_condition_mode = reader.u8()

        count = reader.u32()
        post_conditions = tuple(self._read_post_condition(reader) for _ in range(count))

        payload = self._read_payload(reader)

        if not reader.at_end():
            raise CodecError(f"{reader.remaining} trailing bytes after transaction payload")

        return Transaction(
            txid=txid,
            version=version,
            chain_id=chain_id,
            auth=auth,
            anchor_mode=anchor_mode,
            post_condition_mode=post_condition_mode,
            post_conditions=post_conditions,
            payload=payload,
        )

    # --------------------------------------------------
    # authorization
    # --------------------------------------------------
    def _read_authorization(self, reader: ByteReader) -> Authorization:
        auth_type = reader.u8()
        if auth_type == AUTH_STANDARD:
            return Authorization("standard", self._read_spending_condition(reader))
        if auth_type == AUTH_SPONSORED:
            origin = self._read_spending_condition(reader)
            sponsor = self._read_spending_condition(reader)
            return Authorization("sponsored", origin, sponsor)
        raise CodecError(f"unknown authorization type 0x{auth_type:02x}")

    def _read_spending_condition(self, reader: ByteReader) -> SpendingCondition:
        hash_mode = reader.u8()
        signer = reader.read(20).hex()
        nonce = reader.u64()
        fee = reader.u64()

        if hash_mode in SINGLESIG_HASH_MODES:
            key_encoding = reader.u8()
            signature = reader.read(_SIGNATURE_LEN).hex()
            return SpendingCondition(
                hash_mode=hash_mode,
                signer=signer,
                nonce=nonce,
                fee=fee,
                key_encoding=key_encoding,
                signature=signature,
            )

        if hash_mode in MULTISIG_HASH_MODES:
            count = reader.u32()
            fields = tuple(self._read_auth_field(reader) for _ in range(count))
            required = reader.u16()
            return SpendingCondition(
                hash_mode=hash_mode,
                signer=signer,
                nonce=nonce,
                fee=fee,
                fields=fields,
                signatures_required=required,
            )

        raise CodecError(f"unknown hash mode 0x{hash_mode:02x}")

    @staticmethod
    def _read_auth_field(reader: ByteReader) -> AuthField:
        tag = reader.u8()
        if tag in (0x00, 0x01):
            return AuthField("public_key", tag == 0x00, reader.read(_PUBKEY_LEN).hex())
        if tag in (0x02, 0x03):
            return AuthField("signature", tag == 0x02, reader.read(_SIGNATURE_LEN).hex())
        raise CodecError(f"unknown auth field tag 0x{tag:02x}")

    # --------------------------------------------------
    # post conditions
    # --------------------------------------------------
    def _read_post_condition(self, reader: ByteReader) -> PostCondition:
        kind = reader.u8()
        principal = self._read_pc_principal(reader)

        if kind == PC_STX:
            code = reader.u8()
            return PostCondition("stx", principal, code, amount=reader.u64())

        if kind == PC_FUNGIBLE:
            asset = self._read_asset_info(reader)
            code = reader.u8()
            return PostCondition("fungible", principal, code, amount=reader.u64(), asset=asset)

        if kind == PC_NONFUNGIBLE:
            asset = self._read_asset_info(reader)
            value = clarity.read_value(reader)
            code = reader.u8()
            return PostCondition("non_fungible", principal, code, asset=asset, asset_value=value)

        raise CodecError(f"unknown post-condition type 0x{kind:02x}")

    @staticmethod
    def _read_pc_principal(reader: ByteReader) -> str:
        tag = reader.u8()
        if tag == PC_PRINCIPAL_ORIGIN:
            return "origin"
        if tag == PC_PRINCIPAL_STANDARD:
            return clarity.read_address(reader)
        if tag == PC_PRINCIPAL_CONTRACT:
            address = clarity.read_address(reader)
            return f"{address}.{reader.ascii_u8_prefixed('contract name')}"
        raise CodecError(f"unknown post-condition principal 0x{tag:02x}")

    @staticmethod
    def _read_asset_info(reader: ByteReader) -> str:
        address = clarity.read_address(reader)
        contract_name = reader.ascii_u8_prefixed("contract name")
        asset_name = reader.ascii_u8_prefixed("asset name")
        return f"{address}.{contract_name}::{asset_name}"

    # --------------------------------------------------
    # payload
    # --------------------------------------------------
    def _read_payload(self, reader: ByteReader) -> Payload:
        type_id = reader.u8()

        if type_id == PAYLOAD_TOKEN_TRANSFER:
            recipient = clarity.read_principal_value(reader)
            amount = reader.u64()
            memo = reader.read(_MEMO_LEN).hex()
            return TokenTransferPayload(recipient=recipient, amount=amount, memo=memo)

        if type_id == PAYLOAD_SMART_CONTRACT:
            return self._read_smart_contract(reader, clarity_version=None)

        if type_id == PAYLOAD_VERSIONED_SMART_CONTRACT:
            version = reader.u8()
            return self._read_smart_contract(reader, clarity_version=version)

        if type_id == PAYLOAD_CONTRACT_CALL:
            address = clarity.read_address(reader)
            contract_name = reader.ascii_u8_prefixed("contract name")
            function_name = reader.ascii_u8_prefixed("function name")
            count = reader.u32()
            args = tuple(clarity.read_value(reader) for _ in range(count))
            return ContractCallPayload(
                contract_address=address,
                contract_name=contract_name,
                function_name=function_name,
                function_args=args,
            )

        if type_id == PAYLOAD_COINBASE:
            return CoinbasePayload(data=reader.read(_COINBASE_LEN).hex())

        if type_id == PAYLOAD_COINBASE_TO_ALT:
            data = reader.read(_COINBASE_LEN).hex()
            return CoinbasePayload(data=data, recipient=clarity.read_principal_value(reader))

        return OpaquePayload(type_id=type_id, raw=reader.read_rest().hex())

    @staticmethod
    def _read_smart_contract(reader: ByteReader, clarity_version: int | None) -> SmartContractPayload:
        name = reader.ascii_u8_prefixed("contract name")
        body = reader.u32_prefixed()
        try:
            code = body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise CodecError(f"contract {name} code body is not valid text") from e
        return SmartContractPayload(contract_name=name, code_body=code, clarity_version=clarity_version)


_DEFAULT_DECODER = TransactionDecoderEngine()


def decode_transaction(raw: bytes, txid: str = "") -> Transaction:
    """Transaction Source 默认使用的解码函数。"""
    return _DEFAULT_DECODER.decode(raw, txid)
