"""
Application configuration loaded from environment variables / .env file.
"""

from pydantic_settings import BaseSettings

DEFAULT_REPLY_TEMPLATE = (
    '🎙️ *Transcrição do áudio:*\n\n"{transcript}"\n\n_Powered by Cris AI 🤖_'
)


class ConfigError(RuntimeError):
    """A required setting is missing or unusable; the service must not start."""


class Settings(BaseSettings):
    # Groq transcription API
    groq_api_key: str = ""
    groq_api_url: str = "https://api.groq.com/openai/v1/audio/transcriptions"
    groq_model: str = "whisper-large-v3-turbo"
    groq_timeout: float = 20.0

    # Messaging collaborator, as "package.module:factory"
    messaging_backend: str = ""
    session_store_dsn: str = "file:login-store.db?_foreign_keys=on"

    # Voice note handling
    message_timeout: float = 30.0
    reply_template: str = DEFAULT_REPLY_TEMPLATE
    connect_on_startup: bool = False

    # API server
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def require(self) -> None:
        """Raise ``ConfigError`` if a setting needed at startup is missing."""
        if not self.groq_api_key:
            raise ConfigError(
                "GROQ_API_KEY is not set in .env file or environment variables"
            )
        if "{transcript}" not in self.reply_template:
            raise ConfigError("REPLY_TEMPLATE must contain a {transcript} placeholder")
        try:
            self.reply_template.format(transcript="")
        except (KeyError, IndexError, ValueError) as exc:
            raise ConfigError(
                f"REPLY_TEMPLATE is not a valid format string: {exc!r}; "
                "use {{ and }} for literal braces"
            ) from exc


settings = Settings()
