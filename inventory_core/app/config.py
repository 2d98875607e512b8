import os
import hashlib
import warnings

from dotenv import load_dotenv

load_dotenv()


def get_secret_key(env_name: str = "SECRET_KEY") -> str:
    """
    Get a signing key from environment with validation.
    NEVER use a default secret key in production!
    """
    secret = os.getenv(env_name)

    if not secret:
        env = os.getenv("ENVIRONMENT", "development")
        if env == "production":
            raise RuntimeError(
                f"CRITICAL: {env_name} environment variable must be set in production! "
                "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
            )
        warnings.warn(
            f"Using development signing key. Set {env_name} for production!",
            RuntimeWarning
        )
        # Deterministic so tokens survive a hot-reload in development
        secret = hashlib.sha256(f"dev-mode-insecure-{env_name}".encode("utf-8")).hexdigest()

    if len(secret) < 32:
        raise RuntimeError(f"{env_name} must be at least 32 characters")

    return secret


def get_cors_origins():
    """Get CORS origins from environment or use defaults for development"""
    origins_env = os.getenv("CORS_ORIGINS", "")
    if origins_env:
        return [o.strip() for o in origins_env.split(",") if o.strip()]
    return [
        "http://127.0.0.1:3000",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ]


class Settings:
    environment: str = os.getenv("ENVIRONMENT", "development")

    database_url: str = os.getenv("DATABASE_URL", "")
    database_echo: bool = os.getenv("DATABASE_ECHO", "False").lower() == "true"

    secret_key: str = get_secret_key("SECRET_KEY")
    refresh_secret_key: str = get_secret_key("REFRESH_SECRET_KEY")
    access_token_expire_minutes: int = int(os.getenv("TOKEN_EXPIRE_MINUTES", "60"))
    refresh_token_expire_days: int = int(os.getenv("REFRESH_TOKEN_EXPIRE_DAYS", "7"))
    bcrypt_rounds: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

    cors_origins = get_cors_origins()

    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_format: str = os.getenv("LOG_FORMAT", "json")

    port: int = int(os.getenv("PORT", "8000"))


settings = Settings()
