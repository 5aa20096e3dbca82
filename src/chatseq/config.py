from pydantic import PositiveFloat, PositiveInt
from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str  # MongoDB URL including database name, e.g. mongodb://localhost:27017/chatseq
    redis_url: str  # Fast counter store, e.g. redis://localhost:6379/0
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 3000
    debug: bool = False
    cors_origins: list[str] = []
    allocation_max_attempts: PositiveInt = 5  # Counter increments tried per allocation before giving up
    store_timeout: PositiveFloat = 2.0  # Seconds allowed for each fast/durable store call during allocation
    reconcile_on_start: bool = True
    reconcile_sample_size: PositiveInt = 10  # Scopes of each kind reconciled by a sampled pass
    monitor_sample_size: PositiveInt = 10  # Scopes of each kind inspected by the consistency check
    rebuild_batch_size: PositiveInt = 500  # Parents fetched per page during a full counter rebuild

    model_config = {
        "env_file": [".env"],
        "env_prefix": "CHATSEQ_",
        "extra": "ignore",
    }
