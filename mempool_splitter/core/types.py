#!filepath: mempool_splitter/core/types.py
"""
解码后的 Stacks 交易（唯一真相）

- 全部为 frozen dataclass：值语义，可以在 archive / 多个 partition 之间随意复制
- to_dict() / from_dict() 是 JSON 落盘格式，字段顺序固定，保证重写文件字节稳定
- payload 是带 TYPE 标签的变体，partition key 直接按变体类型取字段
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional, Tuple


# ============================================================
# Authorization
# ============================================================
@dataclass(frozen=True, slots=True)
class AuthField:
    kind: str           # "public_key" | "signature"
    compressed: bool
    value: str          # hex

    def to_dict(self) -> dict:
        return {"kind": self.kind, "compressed": self.compressed, "value": self.value}

    @classmethod
    def from_dict(cls, d: dict) -> "AuthField":
        return cls(kind=str(d["kind"]), compressed=bool(d["compressed"]), value=str(d["value"]))


@dataclass(frozen=True, slots=True)
class SpendingCondition:
    hash_mode: int
    signer: str                          # hash160 hex
    nonce: int
    fee: int

    # single-sig
    key_encoding: Optional[int] = None
    signature: Optional[str] = None

    # multi-sig
    fields: Tuple[AuthField, ...] = ()
    signatures_required: Optional[int] = None

    @property
    def is_multisig(self) -> bool:
        return self.signatures_required is not None

    def to_dict(self) -> dict:
        d: Dict[str, Any] = {
            "hash_mode": self.hash_mode,
            "signer": self.signer,
            "nonce": self.nonce,
            "fee": self.fee,
        }
        if self.is_multisig:
            d["fields"] = [f.to_dict() for f in self.fields]
            d["signatures_required"] = self.signatures_required
        else:
            d["key_encoding"] = self.key_encoding
            d["signature"] = self.signature
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "SpendingCondition":
        return cls(
            hash_mode=int(d["hash_mode"]),
            signer=str(d["signer"]),
            nonce=int(d["nonce"]),
            fee=int(d["fee"]),
            key_encoding=d.get("key_encoding"),
            signature=d.get("signature"),
            fields=tuple(AuthField.from_dict(f) for f in d.get("fields", ())),
            signatures_required=d.get("signatures_required"),
        )


@dataclass(frozen=True, slots=True)
class Authorization:
    auth_type: str                       # "standard" | "sponsored"
    origin: SpendingCondition
    sponsor: Optional[SpendingCondition] = None

    def to_dict(self) -> dict:
        return {
            "auth_type": self.auth_type,
            "origin": self.origin.to_dict(),
            "sponsor": self.sponsor.to_dict() if self.sponsor else None,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Authorization":
        sponsor = d.get("sponsor")
        return cls(
            auth_type=str(d["auth_type"]),
            origin=SpendingCondition.from_dict(d["origin"]),
            sponsor=SpendingCondition.from_dict(sponsor) if sponsor else None,
        )


# ============================================================
# Post conditions
# ============================================================
@dataclass(frozen=True, slots=True)
class PostCondition:
    kind: str                            # "stx" | "fungible" | "non_fungible"
    principal: str                       # "origin" | address | address.contract
    condition_code: int
    amount: Optional[int] = None
    asset: Optional[str] = None          # address.contract::asset
    asset_value: Optional[dict] = None   # clarity value（NFT）

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "principal": self.principal,
            "condition_code": self.condition_code,
            "amount": self.amount,
            "asset": self.asset,
            "asset_value": self.asset_value,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "PostCondition":
        return cls(
            kind=str(d["kind"]),
            principal=str(d["principal"]),
            condition_code=int(d["condition_code"]),
            amount=d.get("amount"),
            asset=d.get("asset"),
            asset_value=d.get("asset_value"),
        )


# ============================================================
# Payload 变体
# ============================================================
@dataclass(frozen=True, slots=True)
class TokenTransferPayload:
    TYPE: ClassVar[str] = "token_transfer"

    recipient: str
    amount: int
    memo: str                            # hex（34 bytes）

    def to_dict(self) -> dict:
        return {"type": self.TYPE, "recipient": self.recipient, "amount": self.amount, "memo": self.memo}

    @classmethod
    def from_dict(cls, d: dict) -> "TokenTransferPayload":
        return cls(recipient=str(d["recipient"]), amount=int(d["amount"]), memo=str(d["memo"]))


@dataclass(frozen=True, slots=True)
class SmartContractPayload:
    TYPE: ClassVar[str] = "smart_contract"

    contract_name: str
    code_body: str
    clarity_version: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "type": self.TYPE,
            "contract_name": self.contract_name,
            "code_body": self.code_body,
            "clarity_version": self.clarity_version,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "SmartContractPayload":
        return cls(
            contract_name=str(d["contract_name"]),
            code_body=str(d["code_body"]),
            clarity_version=d.get("clarity_version"),
        )


@dataclass(frozen=True, slots=True)
class ContractCallPayload:
    TYPE: ClassVar[str] = "contract_call"

    contract_address: str
    contract_name: str
    function_name: str
    function_args: Tuple[dict, ...] = ()

    @property
    def contract_id(self) -> str:
        return f"{self.contract_address}.{self.contract_name}"

    def to_dict(self) -> dict:
        return {
            "type": self.TYPE,
            "contract_address": self.contract_address,
            "contract_name": self.contract_name,
            "function_name": self.function_name,
            "function_args": list(self.function_args),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ContractCallPayload":
        return cls(
            contract_address=str(d["contract_address"]),
            contract_name=str(d["contract_name"]),
            function_name=str(d["function_name"]),
            function_args=tuple(d.get("function_args", ())),
        )


@dataclass(frozen=True, slots=True)
class CoinbasePayload:
    TYPE: ClassVar[str] = "coinbase"

    data: str                            # hex（32 bytes）
    recipient: Optional[str] = None

    def to_dict(self) -> dict:
        return {"type": self.TYPE, "data": self.data, "recipient": self.recipient}

    @classmethod
    def from_dict(cls, d: dict) -> "CoinbasePayload":
        return cls(data=str(d["data"]), recipient=d.get("recipient"))


@dataclass(frozen=True, slots=True)
class OpaquePayload:
    """未展开解析的 payload（poison microblock / tenure change / nakamoto coinbase / 未知）。"""

    TYPE: ClassVar[str] = "opaque"

    type_id: int
    raw: str                             # hex，payload tag 之后的全部字节

    def to_dict(self) -> dict:
        return {"type": self.TYPE, "type_id": self.type_id, "raw": self.raw}

    @classmethod
    def from_dict(cls, d: dict) -> "OpaquePayload":
        return cls(type_id=int(d["type_id"]), raw=str(d["raw"]))


Payload = TokenTransferPayload | SmartContractPayload | ContractCallPayload | CoinbasePayload | OpaquePayload

PAYLOAD_TYPES: Dict[str, type] = {
    cls.TYPE: cls
    for cls in (
        TokenTransferPayload,
        SmartContractPayload,
        ContractCallPayload,
        CoinbasePayload,
        OpaquePayload,
    )
}


def payload_from_dict(d: dict) -> Payload:
    tag = d.get("type")
    cls = PAYLOAD_TYPES.get(tag)
    if cls is None:
        raise ValueError(f"unknown payload type: {tag!r}")
    return cls.from_dict(d)


# ============================================================
# Transaction
# ============================================================
@dataclass(frozen=True, slots=True)
class Transaction:
    txid: str
    version: int
    chain_id: int
    auth: Authorization
    anchor_mode: int
    post_condition_mode: int
    payload: Payload
    post_conditions: Tuple[PostCondition, ...] = field(default_factory=tuple)

    @property
    def is_mainnet(self) -> bool:
        return self.version == 0x00

    def to_dict(self) -> dict:
        """
        JSON 落盘格式（archive / partition 共用）
        """
        return {
            "txid": self.txid,
            "version": self.version,
            "chain_id": self.chain_id,
            "auth": self.auth.to_dict(),
            "anchor_mode": self.anchor_mode,
            "post_condition_mode": self.post_condition_mode,
            "post_conditions": [pc.to_dict() for pc in self.post_conditions],
            "payload": self.payload.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Transaction":
        """
        反序列化；任何结构问题统一抛 ValueError，由调用方决定降级策略。
        """
        if not isinstance(d, dict):
            raise ValueError(f"transaction record must be an object, got {type(d).__name__}")
        try:
            return cls(
                txid=str(d["txid"]),
                version=int(d["version"]),
                chain_id=int(d["chain_id"]),
                auth=Authorization.from_dict(d["auth"]),
                anchor_mode=int(d["anchor_mode"]),
                post_condition_mode=int(d["post_condition_mode"]),
                post_conditions=tuple(PostCondition.from_dict(pc) for pc in d.get("post_conditions", ())),
                payload=payload_from_dict(d["payload"]),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"malformed transaction record: {e!r}") from e


@dataclass(frozen=True, slots=True)
class MempoolEntry:
    """Transaction Source 的输出单元：(tx, accept_time)"""

    tx: Transaction
    accept_time: int
