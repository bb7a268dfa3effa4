from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    HOST: str = "127.0.0.1"
    HTTP_PORT: int = 51248
    WS_PORT: int = 51247

    # Last step of LLM settings resolution when nothing else is configured
    FALLBACK_LLM_PROVIDER: str = "ollama"
    FALLBACK_LLM_MODEL: str = "mistral-7b"

    AGENT_PREFLIGHT_CHECKS: bool = True

    LOG_LEVEL: str = "INFO"

    model_config = {
        "env_prefix": "ORCHESTRATOR_BRIDGE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def http_base_url(self) -> str:
        return f"http://{self.HOST}:{self.HTTP_PORT}"

    @property
    def ws_url(self) -> str:
        return f"ws://{self.HOST}:{self.WS_PORT}/"


settings = Settings()
