#!filepath: tests/engine/test_transaction_decoder_engine.py
import pytest

from mempool_splitter.core.types import (
    CoinbasePayload,
    ContractCallPayload,
    OpaquePayload,
    SmartContractPayload,
    TokenTransferPayload,
    Transaction,
)
from mempool_splitter.engines.byte_reader import ByteReader
from mempool_splitter.engines.transaction_decoder_engine import (
    TransactionDecoderEngine,
    decode_transaction,
)
from mempool_splitter.utils.errors import CodecError


def test_contract_call(wire):
    raw = wire.envelope(wire.contract_call("alpha", "swap-x-for-y", args=[wire.uint(7)]))

    tx = decode_transaction(raw, txid="0xabc")

    assert tx.txid == "0xabc"
    assert tx.version == 0 and tx.is_mainnet
    assert tx.chain_id == 1
    assert tx.anchor_mode == 3
    assert tx.post_condition_mode == 2

    assert isinstance(tx.payload, ContractCallPayload)
    assert tx.payload.contract_name == "alpha"
    assert tx.payload.function_name == "swap-x-for-y"
    assert tx.payload.contract_address.startswith("SP")
    assert tx.payload.function_args == ({"type": "uint", "value": "7"},)
    assert tx.payload.contract_id == f"{tx.payload.contract_address}.alpha"


def test_standard_singlesig_auth(wire):
    tx = decode_transaction(wire.envelope(wire.coinbase(), auth=wire.standard_auth(nonce=9, fee=300)))

    auth = tx.auth
    assert auth.auth_type == "standard"
    assert auth.sponsor is None
    assert auth.origin.nonce == 9
    assert auth.origin.fee == 300
    assert auth.origin.signer == wire.SIGNER.hex()
    assert auth.origin.key_encoding == 0
    assert not auth.origin.is_multisig


def test_sponsored_auth(wire):
    tx = decode_transaction(wire.envelope(wire.coinbase(), auth=wire.sponsored_auth()))

    assert tx.auth.auth_type == "sponsored"
    assert tx.auth.origin.nonce == 1
    assert tx.auth.sponsor.nonce == 7
    assert tx.auth.sponsor.fee == 500


def test_multisig_auth(wire):
    tx = decode_transaction(wire.envelope(wire.coinbase(), auth=wire.u8(0x04) + wire.multisig()))

    origin = tx.auth.origin
    assert origin.is_multisig
    assert origin.signatures_required == 2
    assert [f.kind for f in origin.fields] == ["signature", "public_key"]
    assert all(f.compressed for f in origin.fields)


def test_token_transfer(wire):
    tx = decode_transaction(wire.envelope(wire.token_transfer(amount=2500, memo=b"hi")))

    assert isinstance(tx.payload, TokenTransferPayload)
    assert tx.payload.amount == 2500
    assert tx.payload.recipient.startswith("SP")
    assert tx.payload.memo.startswith(b"hi".hex())


def test_smart_contract_and_versioned(wire):
    plain = decode_transaction(wire.envelope(wire.smart_contract("token", "(ok true)")))
    versioned = decode_transaction(wire.envelope(wire.smart_contract("token", "(ok true)", clarity_version=2)))

    assert isinstance(plain.payload, SmartContractPayload)
    assert plain.payload.code_body == "(ok true)"
    assert plain.payload.clarity_version is None
    assert versioned.payload.clarity_version == 2


def test_coinbase(wire):
    tx = decode_transaction(wire.envelope(wire.coinbase()))

    assert isinstance(tx.payload, CoinbasePayload)
    assert tx.payload.data == "42" * 32
    assert tx.payload.recipient is None


def test_unknown_payload_kept_opaque(wire):
    """新的 payload 类型不阻塞 pipeline：整体保存为 OpaquePayload"""
    tx = decode_transaction(wire.envelope(wire.u8(0x08) + b"\x01\x02\x03"))

    assert isinstance(tx.payload, OpaquePayload)
    assert tx.payload.type_id == 0x08
    assert tx.payload.raw == "010203"


def test_stx_post_condition(wire):
    raw = wire.envelope(wire.contract_call("alpha"), post_conditions=[wire.stx_post_condition(0x03, 1000)])

    tx = decode_transaction(raw)

    assert len(tx.post_conditions) == 1
    pc = tx.post_conditions[0]
    assert pc.kind == "stx"
    assert pc.principal == "origin"
    assert pc.condition_code == 0x03
    assert pc.amount == 1000


def test_testnet_version(wire):
    tx = decode_transaction(wire.envelope(wire.coinbase(), version=0x80, chain_id=0x80000000))
    assert not tx.is_mainnet


def test_roundtrip_through_dict(wire):
    """JSON 落盘格式可以无损还原（archive / partition 依赖这一点）"""
    tx = decode_transaction(
        wire.envelope(
            wire.contract_call("alpha", args=[wire.tuple_(a=wire.uint(1))]),
            auth=wire.sponsored_auth(),
            post_conditions=[wire.stx_post_condition()],
        ),
        txid="t1",
    )

    assert Transaction.from_dict(tx.to_dict()) == tx


@pytest.mark.parametrize(
    "mutate",
    [
        lambda raw: raw[:-1],            # 截断
        lambda raw: raw + b"\x00",       # 尾随字节
        lambda raw: raw[:5] + b"\x09" + raw[6:],  # 未知 auth type
        lambda raw: b"",
    ],
)
def test_malformed_transactions(wire, mutate):
    raw = wire.envelope(wire.contract_call("alpha"))
    with pytest.raises(CodecError):
        decode_transaction(mutate(raw))


def test_unknown_hash_mode(wire):
    auth = wire.u8(0x04) + wire.singlesig(hash_mode=0x09)
    with pytest.raises(CodecError):
        decode_transaction(wire.envelope(wire.coinbase(), auth=auth))


def test_engine_process_stream(wire):
    engine = TransactionDecoderEngine()
    raws = [wire.envelope(wire.contract_call("a")), wire.envelope(wire.coinbase())]

    kinds = [tx.payload.TYPE for tx in engine.process_stream(raws)]

    assert kinds == ["contract_call", "coinbase"]


def test_byte_reader_truncation():
    reader = ByteReader(b"\x00\x01")
    assert reader.u16() == 1
    assert reader.at_end()
    with pytest.raises(CodecError):
        reader.u8()
