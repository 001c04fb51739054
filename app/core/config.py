from pydantic_settings import BaseSettings
from typing import Optional, List

class Settings(BaseSettings):
    PROJECT_NAME: str = "Assessment Scoring Engine"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 2  # 2 days

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
    ]

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./assessment.db"
    TEST_DATABASE_URL: Optional[str] = None

    # Semantic (open-ended) evaluation service
    SEMANTIC_EVALUATOR_URL: str = "http://localhost:54321/functions/v1/evaluate-open-ended"
    SEMANTIC_EVALUATOR_TIMEOUT_SECONDS: float = 30.0

    # Open-ended questions are graded on submit only unless this is enabled
    LIVE_CHECK_OPEN_ENDED: bool = True

    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = False
    SLOW_REQUEST_THRESHOLD_MS: int = 5000

    class Config:
        env_file = ".env"

settings = Settings()
