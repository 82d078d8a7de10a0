# mempool_splitter/config/poll_config.py
from pydantic import BaseModel, Field


class PollConfig(BaseModel):
    interval_seconds: float = Field(default=1.0, gt=0)
