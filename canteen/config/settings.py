from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Database
    database_url: str = "duckdb://./canteen/data/canteen.duckdb"

    # JWT
    jwt_secret_key: str = "change-me-canteen-development-secret-key"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24

    # API
    api_title: str = "Canteen API"
    api_version: str = "1.0.0"
    api_prefix: str = "/api/v1"
    host: str = "127.0.0.1"
    port: int = 8000

    # Deadlines are evaluated in this zone
    timezone: str = "Europe/Prague"
    order_cutoff_hour: int = 0
    exchange_cutoff_hour: int = 12

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    debug: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
