from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List


class Settings(BaseSettings):
    MONGODB_URL : str = "mongodb://localhost:27017"
    MONGODB_REGION_URLS : Dict[str, str] = {}
    MONGODB_DATABASE : str = "reviews"

    DB_REGION : str = Field(
        default="emea",
        validation_alias=AliasChoices("AIO_DB_REGION", "DB_REGION")
    )
    DB_COLLECTION : str = "reviews"
    DB_KEEP_ALIVE : bool = True
    STORE_TIMEOUT_SECONDS : float = 10.0

    LOG_LEVEL : str = "WARNING"
    CORS_ORIGINS : List[str] = ["http://localhost:3000"]

    model_config = SettingsConfigDict(
        env_file = ".env",
        extra = "ignore"
    )

    def url_for_region(self, region: str) -> str:
        return self.MONGODB_REGION_URLS.get(region, self.MONGODB_URL)


Config = Settings()
