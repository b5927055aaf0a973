"""Application configuration and environment settings"""
from typing import Dict

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class HttpSettings(BaseModel):
    """Settings shared by the HTTP API clients"""
    timeout: float = Field(..., description="Request timeout in seconds")
    retries: int = Field(..., description="Attempts per request before giving up")


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    # Upstream APIs
    BEEFY_API_URL: str = Field("https://databarn.beefy.com/api/v1/beefy", description="Vault data API base URL")
    DEFI_LLAMA_API_URL: str = Field("https://coins.llama.fi", description="Block-by-timestamp index base URL")

    # One JSON-RPC endpoint per network id
    RPC_URLS: Dict[str, str] = Field(
        default={
            'ethereum-mainnet': 'https://eth.merkle.io',
            'arbitrum-one': 'https://arb1.arbitrum.io/rpc',
            'op-mainnet': 'https://mainnet.optimism.io',
            'celo-mainnet': 'https://forno.celo.org',
            'polygon-pos-mainnet': 'https://polygon-rpc.com',
            'base-mainnet': 'https://mainnet.base.org',
        },
        description="JSON-RPC URL per network id"
    )

    REQUEST_TIMEOUT: float = Field(30.0, description="HTTP request timeout in seconds")
    REQUEST_RETRIES: int = Field(3, description="Attempts per HTTP request")

    # Attribution settings
    BLOCK_WINDOW_SIZE: int = Field(10_000, description="Blocks per fee log query")
    TVL_SPAN_DAYS: int = Field(7, description="Longest span accepted by the TVL history endpoint")
    FIXED_POINT_DECIMALS: int = Field(18, description="Fixed-point scale used when allocating fees")

    LOG_LEVEL: str = Field("INFO", description="Root log level")

    # Input/Output directories with defaults
    INPUT_DIR: str = Field("/input", description="Directory containing address files")
    OUTPUT_DIR: str = Field("/output", description="Directory for output files")

    @property
    def http_settings(self) -> HttpSettings:
        """Get HTTP client settings as a separate model"""
        return HttpSettings(
            timeout=self.REQUEST_TIMEOUT,
            retries=self.REQUEST_RETRIES
        )

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True
    )


settings = Settings()
