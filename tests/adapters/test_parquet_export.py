#!filepath: tests/adapters/test_parquet_export.py
import pyarrow as pa
import pyarrow.parquet as pq

from mempool_splitter.adapters.parquet_export_adapter import EXPORT_SCHEMA, ParquetExportAdapter
from mempool_splitter.engines.transaction_decoder_engine import decode_transaction


def test_to_table_flattens_transactions(make_tx):
    txs = [make_tx("t1", "alpha"), make_tx("t2"), make_tx("t3", coinbase=True)]

    table = ParquetExportAdapter.to_table(txs)

    assert table.schema == EXPORT_SCHEMA
    assert table.column("txid").to_pylist() == ["t1", "t2", "t3"]
    assert table.column("payload_type").to_pylist() == ["contract_call", "token_transfer", "coinbase"]
    assert table.column("partition_key").to_pylist() == ["alpha", "NO_NAME", "NO_NAME"]
    assert table.column("contract_name").to_pylist() == ["alpha", None, None]
    assert table.column("nonce").type == pa.uint64()
    assert table.column("sponsored").to_pylist() == [False, False, False]


def test_origin_signer_is_c32_address(wire):
    tx = decode_transaction(wire.envelope(wire.contract_call("alpha"), auth=wire.sponsored_auth()), "t1")

    row = ParquetExportAdapter.to_table([tx]).to_pylist()[0]

    assert row["origin_signer"].startswith("SP")
    assert row["sponsored"] is True
    assert row["nonce"] == 1


def test_run_writes_parquet(tmp_path, make_tx):
    out = tmp_path / "export" / "archive.parquet"

    rows = ParquetExportAdapter().run([make_tx("t1", "alpha"), make_tx("t2", "beta")], out)

    assert rows == 2
    table = pq.read_table(out)
    assert table.column("contract_name").to_pylist() == ["alpha", "beta"]


def test_empty_archive_exports_empty_table(tmp_path):
    out = tmp_path / "empty.parquet"

    assert ParquetExportAdapter().run([], out) == 0
    assert pq.read_table(out).num_rows == 0
