from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    github_token: Optional[str] = None
    github_api_url: str = "https://api.github.com"
    per_page: int = 30  # GitHub REST default page size for /starred
    unauthenticated_star_limit: int = 500  # Stop after page one above this without a token
    request_timeout: int = 30
    user_agent: str = "Starcorn/1.0"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
