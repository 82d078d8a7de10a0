#!filepath: mempool_splitter/config/output_config.py
from pydantic import BaseModel


class OutputConfig(BaseModel):
    partition_dir: str = "add/contracts"
    archive_file: str = "add/output.json"
    watermark_file: str = "add/watermark.txt"
