from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # JWT settings read from environment (or .env); defaults are safe for dev.
    JWT_SECRET: str = "dev-secret-change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_MIN: int = 60 * 24 * 7  # access token TTL minutes (7 days)

    # Password hashing: bcrypt cost and size of the dedicated hashing pool
    BCRYPT_ROUNDS: int = 12
    HASH_WORKERS: int = 4

    # Task progress labels (free-form; these are only defaults)
    DEFAULT_PROGRESS: str = "Not Started"
    COMPLETED_PROGRESS: str = "Completed"

    # CORS: allow specific origins (credentials need explicit origins, not "*")
    CORS_ALLOW_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    # Security headers toggles
    SECURITY_ENABLE_HSTS: bool = False  # enable in production behind HTTPS
    SECURITY_CSP: str = "default-src 'self'; frame-ancestors 'none'"

    # Bind address for the `taskboard` console script
    HOST: str = "127.0.0.1"
    PORT: int = 5000

    # Logging / diagnostics
    LOG_LEVEL: str = "INFO"
    REQUEST_ID_HEADER: str = "X-Request-ID"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )


settings = Settings()
