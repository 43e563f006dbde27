from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    DATABASE_URL: str

    # If DEV and you hit SSL cert issues on Windows, set DB_SSL_VERIFY=false in .env
    DB_SSL_VERIFY: bool = True

    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    SUPER_ADMIN_EMAIL: str | None = None
    SUPER_ADMIN_PASSWORD: str | None = None
    SUPER_ADMIN_NAME: str | None = "System Admin"
    ENV: str = "dev"  # "dev", "prod" or "test"

    # --- EMAIL SETTINGS ---
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    EMAILS_FROM_EMAIL: str = "no-reply@hod-approval.local"
    EMAILS_FROM_NAME: str = "HOD Approval System"
    FRONTEND_URL: str = "http://localhost:5173"

    # --- EXIT PASS ---
    EXIT_PASS_PREFIX: str = "EP"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

settings = Settings()
