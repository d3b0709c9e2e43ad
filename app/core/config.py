from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str

    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 120  # 2 hours
    REFRESH_TOKEN_EXPIRE_MINUTES: int = 10080  # 7 days

    # Seed administrator
    ADMIN_PHONE: str = "+233200000000"
    ADMIN_EMAIL: str = "admin@studentsunion.org"
    ADMIN_PASSWORD: str = "admin123"

    # Reports start from the union's first recorded year
    FIRST_REPORT_YEAR: int = 2022

    TIMEZONE: str = "Africa/Accra"
    CURRENCY: str = "GHS"

    class Config:
        env_file = ".env"


settings = Settings()
