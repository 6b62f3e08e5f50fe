"""Runtime settings, read from the environment (and `.env`) once at the entry point."""
import os
from typing import Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator

from .errors import ConfigurationError

# env var -> Settings field
ENV_KEYS = {
    "OLLAMA_BASE_URL": "ollama_base_url",
    "OLLAMA_MODEL": "ollama_model",
    "OLLAMA_VISION_MODEL": "ollama_vision_model",
    "OLLAMA_EMBED_MODEL": "ollama_embed_model",
    "OLLAMA_TIMEOUT": "ollama_timeout",
    "OLLAMA_TEMPERATURE": "ollama_temperature",
    "OLLAMA_TOP_P": "ollama_top_p",
    "OLLAMA_NUM_PREDICT": "ollama_num_predict",
    "OLLAMA_SEED": "ollama_seed",
    "CHUNK_SIZE": "chunk_size",
    "CHUNK_OVERLAP": "chunk_overlap",
    "MIN_CHUNK_LENGTH": "min_chunk_length",
    "MIN_EXTRACTED_LENGTH": "min_extracted_length",
    "CHAT_MATCH_THRESHOLD": "chat_match_threshold",
    "CHAT_MATCH_COUNT": "chat_match_count",
    "POLICY_MATCH_THRESHOLD": "policy_match_threshold",
    "POLICY_MATCH_COUNT": "policy_match_count",
    "ARTIFACT_TIMEOUT": "artifact_timeout",
    "INTEGRATION_TIMEOUT": "integration_timeout",
    "JIRA_DOMAIN": "jira_domain",
    "JIRA_EMAIL": "jira_email",
    "JIRA_API_TOKEN": "jira_api_token",
    "JIRA_PROJECT_KEY": "jira_project_key",
    "GITHUB_TARGET": "github_target",
    "GITHUB_TOKEN": "github_token",
    "CORS_ORIGINS": "cors_origins",
    "LOG_LEVEL": "log_level",
}


def load_env() -> None:
    """Load `.env` from the working directory into os.environ (existing values win)."""
    load_dotenv(find_dotenv(usecwd=True))


def parse_origins(value: Optional[str]) -> list[str]:
    return [o.strip() for o in (value or "*").split(",") if o.strip()]


class Settings(BaseModel):
    # ── Ollama ──
    ollama_base_url: str = "http://127.0.0.1:11434"
    ollama_model: str = Field(min_length=1)
    ollama_vision_model: Optional[str] = None
    ollama_embed_model: str = "nomic-embed-text"
    ollama_timeout: float = Field(120, gt=0)
    ollama_temperature: float = 0.0
    ollama_top_p: float = 1.0
    ollama_num_predict: int = 1024
    ollama_seed: int = 42

    # ── Chunking / ingestion ──
    chunk_size: int = Field(1000, gt=0)
    chunk_overlap: int = Field(200, gt=0)
    min_chunk_length: int = Field(50, ge=0)
    min_extracted_length: int = Field(20, ge=1)

    # ── Retrieval ──
    chat_match_threshold: float = Field(0.5, ge=-1, le=1)
    chat_match_count: int = Field(4, gt=0)
    policy_match_threshold: float = Field(0.25, ge=-1, le=1)
    policy_match_count: int = Field(5, gt=0)

    # ── Other external calls ──
    artifact_timeout: float = Field(30, gt=0)
    integration_timeout: float = Field(30, gt=0)

    jira_domain: Optional[str] = None
    jira_email: Optional[str] = None
    jira_api_token: Optional[str] = None
    jira_project_key: Optional[str] = None
    github_target: Optional[str] = None
    github_token: Optional[str] = None

    cors_origins: str = "*"
    log_level: str = "INFO"

    @model_validator(mode="after")
    def _check_overlap(self):
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("CHUNK_OVERLAP must be smaller than CHUNK_SIZE")
        return self

    @property
    def vision_model(self) -> str:
        return self.ollama_vision_model or self.ollama_model

    @property
    def cors_origin_list(self) -> list[str]:
        return parse_origins(self.cors_origins)


def load_settings(env: Optional[dict] = None) -> Settings:
    """Build Settings from `env` (defaults to os.environ after loading `.env`)."""
    if env is None:
        load_env()
        env = os.environ
    values = {field: env[key] for key, field in ENV_KEYS.items() if env.get(key)}
    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
