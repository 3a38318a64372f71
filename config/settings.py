import os
from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # Storage
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///data/tradevault.db")
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")
    SEED_ON_STARTUP: bool = _as_bool(os.getenv("SEED_ON_STARTUP", "true"))

    # API
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Analytics
    BASE_BALANCE: float = float(os.getenv("BASE_BALANCE", "100000"))

    # AI
    ANTHROPIC_API_KEY: str = os.getenv("ANTHROPIC_API_KEY", "")
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "")
    GOOGLE_API_KEY: str = os.getenv("GOOGLE_API_KEY", "")
    GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")
    AI_PROVIDER: str = os.getenv("AI_PROVIDER", "groq")

    def ai_key(self) -> str:
        """API key for the configured AI provider ("" when unset)."""
        return {
            "groq": self.GROQ_API_KEY,
            "gemini": self.GOOGLE_API_KEY,
            "anthropic": self.ANTHROPIC_API_KEY,
            "openai": self.OPENAI_API_KEY,
        }.get(self.AI_PROVIDER, "")

    def validate(self):
        errors = []
        if not self.DATABASE_URL.startswith("sqlite:///"):
            errors.append("DATABASE_URL must be a sqlite:/// URL")
        if self.BASE_BALANCE <= 0:
            errors.append("BASE_BALANCE must be positive")
        if self.AI_PROVIDER not in ("groq", "gemini", "anthropic", "openai"):
            errors.append(f"Unknown AI_PROVIDER: {self.AI_PROVIDER}")
        return errors


settings = Settings()
