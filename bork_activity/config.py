"""Application configuration and environment settings"""
from typing import Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class BlockberrySettings(BaseModel):
    """Blockberry activity/balance API settings"""
    api_key: Optional[str] = Field(None, description="Blockberry API key")
    base_url: str = Field(..., description="Blockberry Sui API root")
    page_size: int = Field(..., description="Records requested per activity page")
    timeout: float = Field(..., description="Per-request timeout in seconds")

class PriceSettings(BaseModel):
    """DexScreener price lookup settings"""
    base_url: str = Field(..., description="Token price endpoint root")
    batch_size: int = Field(..., description="Maximum coin ids per price request")
    timeout: float = Field(..., description="Per-request timeout in seconds")

class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    # Blockberry settings
    BLOCKBERRY_API_KEY: Optional[str] = Field(None, description="Blockberry API key sent as x-api-key")
    BLOCKBERRY_API_URL: str = Field("https://api.blockberry.one/sui/v1", description="Blockberry Sui API root")

    # Price service
    PRICE_API_URL: str = Field("https://api.dexscreener.com/tokens/v1/sui", description="DexScreener token endpoint")
    PRICE_BATCH_SIZE: int = Field(30, ge=1, description="Maximum coin ids per price request")

    # Fallback wallet when the caller gives none
    DEFAULT_WALLET_ADDRESS: Optional[str] = Field(None, description="Wallet used when no address is supplied")

    # Pagination
    PAGE_SIZE: int = Field(20, ge=1, description="Records per activity page")
    MAX_PAGES: Optional[int] = Field(None, ge=1, description="Stop after this many pages (unlimited if unset)")
    PAGE_DELAY_SECONDS: float = Field(1.5, ge=0, description="Minimum delay between successful pages")

    # Rate limiting and retries
    BACKOFF_BASE_SECONDS: float = Field(3.0, ge=0, description="First backoff delay after a 429")
    MAX_RATE_LIMIT_RETRIES: int = Field(5, ge=1, description="Consecutive 429s tolerated on activity pages")
    BALANCE_RATE_LIMIT_RETRIES: int = Field(3, ge=1, description="Consecutive 429s tolerated on the balance query")
    TRANSPORT_RETRIES: int = Field(3, ge=1, description="Attempts per request on connection errors")
    TRANSPORT_RETRY_DELAY: float = Field(1.0, ge=0, description="Delay between transport retries")
    REQUEST_TIMEOUT: float = Field(15.0, gt=0, description="Per-request HTTP timeout in seconds")

    # Output
    OUTPUT_DIR: str = Field("/output", description="Directory for output files")
    LOG_LEVEL: str = Field("INFO", description="Root log level")

    @property
    def blockberry(self) -> BlockberrySettings:
        """Get Blockberry settings as a separate model"""
        return BlockberrySettings(
            api_key=self.BLOCKBERRY_API_KEY,
            base_url=self.BLOCKBERRY_API_URL.rstrip('/'),
            page_size=self.PAGE_SIZE,
            timeout=self.REQUEST_TIMEOUT
        )

    @property
    def prices(self) -> PriceSettings:
        """Get price service settings as a separate model"""
        return PriceSettings(
            base_url=self.PRICE_API_URL.rstrip('/'),
            batch_size=self.PRICE_BATCH_SIZE,
            timeout=self.REQUEST_TIMEOUT
        )

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='ignore'
    )

settings = Settings()
