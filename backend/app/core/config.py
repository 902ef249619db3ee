from datetime import date

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:8080"
    COMPANY_NAME: str = "Musterfirma"

    # Database – SQLite für lokale Entwicklung
    DATABASE_URL: str = "sqlite+aiosqlite:///./stempel.db"

    # Security
    SECRET_KEY: str = "dev_secret_key_change_in_production_min_32_chars!!"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # RFID-Terminal: gemeinsamer Schlüssel für /terminal/punch.
    # Leer lassen = Terminal-Endpunkt deaktiviert.
    TERMINAL_API_KEY: str = ""

    # Zeitkonto
    # Ab diesem Tag rechnet die Vorgesetzten-Übersicht den Überstundensaldo.
    OVERTIME_EPOCH: date = date(2024, 1, 1)
    # ISO-Code für den Feiertagsimport (workalendar), z.B. DE-BW, DE-BY, AT
    HOLIDAY_REGION: str = "DE-BW"

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",")]

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
