from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv(override=True)

class Settings(BaseSettings):
    PROJECT_NAME: str = "Wallet Login"
    # Application settings
    VERSION: str | None = "0.1.0"
    HOST: str | None = "127.0.0.1"
    PORT: int | None = 8001
    CORS_ORIGINS: List[str] = ["*"]

    # Logging
    LOG_LEVEL: str = "INFO"

    # Login configuration
    ENCODE_KEY: str | None = None
    ENCODE_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_SECONDS: int = 900 # 15 minutes
    TOKEN_ISSUER: str = "wallet-login"

    # Debug settings
    DEBUG: bool = False

    class Config:
        env_file = ".env"

# Instantiate the settings
settings = Settings()
