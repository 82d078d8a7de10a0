#!filepath: mempool_splitter/config/store_config.py
from pydantic import BaseModel, Field


class StoreConfig(BaseModel):
    """
    mempool 数据库（stacks-node 的 mempool.sqlite）
    """
    path: str
    table: str = Field(default="mempool", pattern=r"^[A-Za-z_][A-Za-z0-9_]*$")

    # "database is locked" 时的重试
    busy_retries: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=0.2, ge=0)
