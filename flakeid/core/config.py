from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENV: str = "dev"
    WORKER_ID: Optional[int] = None
    EPOCH: int = 1577808000000
    TIME_BITS: int = 41
    WORKER_BITS: int = 12
    SEQUENCE_BITS: int = 10
    NON_INCREASING: bool = False
    MAX_BATCH_SIZE: int = 1000
    LOG_LEVEL: str = "DEBUG"

    class Config:
        env_file = ".env"


settings = Settings()
