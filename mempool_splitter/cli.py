#!filepath: mempool_splitter/cli.py
from pathlib import Path
from typing import Optional

import typer
from rich import print
from rich.markup import escape
from rich.table import Table

from mempool_splitter import __version__, logs
from mempool_splitter.config.app_config import AppConfig
from mempool_splitter.utils.errors import PipelineError, UserInputError

app = typer.Typer(help="Stacks mempool splitter CLI")


def _load_config(config: Optional[Path]) -> AppConfig:
    cfg = AppConfig.load(config)
    logs.apply(cfg.log)
    return cfg


def _fail(e: UserInputError) -> None:
    print(f"[red]{escape(str(e))}[/red]")
    raise typer.Exit(code=2)


@app.command()
def version():
    print(f"v{__version__}")


@app.command()
def run(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML 配置文件"),
    db: Optional[Path] = typer.Option(None, "--db", help="覆盖 store.path"),
    interval: Optional[float] = typer.Option(None, "--interval", min=0.001, help="轮询间隔（秒）"),
    once: bool = typer.Option(False, "--once", help="只跑一个周期后退出"),
):
    """
    持续轮询 mempool，按合约名拆分交易（Ctrl-C / SIGTERM 退出前落盘）
    """
    from mempool_splitter.workflows.mempool_split_workflow import build_poll_loop

    try:
        cfg = _load_config(config)
        loop = build_poll_loop(cfg, db_path=db, interval=interval, handle_signals=True)
    except UserInputError as e:
        _fail(e)

    print(f"[green]Polling {loop.source.db_path} every {loop.interval}s[/green]")
    state = loop.run_forever(max_cycles=1 if once else None)
    print(f"[blue]watermark={state.watermark} archive={len(state.archive)}[/blue]")


@app.command()
def status(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML 配置文件"),
):
    """
    查看 watermark / archive / 各 partition 交易数
    """
    from mempool_splitter.adapters.partition_writer_adapter import PartitionWriterAdapter
    from mempool_splitter.meta.archive import TransactionArchive
    from mempool_splitter.meta.watermark import WatermarkStore

    try:
        paths = _load_config(config).resolved_paths()
    except UserInputError as e:
        _fail(e)

    watermark = WatermarkStore(paths.watermark_file)
    archive = TransactionArchive(paths.archive_file)
    writer = PartitionWriterAdapter(paths.partition_dir)

    wm = watermark.load() if watermark.exists() else 0
    size = len(archive.load()) if archive.exists() else 0

    print(f"watermark: [bold]{wm}[/bold]  ({paths.watermark_file})")
    print(f"archive:   [bold]{size}[/bold] transactions  ({paths.archive_file})")

    table = Table(title=f"partitions ({paths.partition_dir})")
    table.add_column("partition")
    table.add_column("transactions", justify="right")
    try:
        counts = writer.counts()
    except PipelineError as e:
        print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    for key, count in counts.items():
        table.add_row(key, str(count))
    print(table)


@app.command()
def export(
    out: Path = typer.Argument(..., help="输出 parquet 文件"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML 配置文件"),
):
    """
    archive → parquet（zstd），便于离线分析
    """
    from mempool_splitter.adapters.parquet_export_adapter import ParquetExportAdapter
    from mempool_splitter.meta.archive import TransactionArchive

    try:
        paths = _load_config(config).resolved_paths()
    except UserInputError as e:
        _fail(e)

    transactions = TransactionArchive(paths.archive_file).load()
    try:
        rows = ParquetExportAdapter().run(transactions, out)
    except PipelineError as e:
        print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    print(f"[green]exported {rows} transactions -> {out}[/green]")


if __name__ == "__main__":
    app()

# python -m mempool_splitter.cli run --once
