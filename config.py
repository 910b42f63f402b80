# config.py
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    helius_api_key: Optional[str] = None
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"
    commitment: str = "confirmed"
    request_timeout: float = 10
    retry_attempts: int = 3
    pool_size: int = 10
    include_native_transfers: bool = True
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @property
    def rpc_url(self) -> str:
        if self.helius_api_key:
            return f"https://mainnet.helius-rpc.com/?api-key={self.helius_api_key}"
        return self.solana_rpc_url

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )

settings = Settings()
