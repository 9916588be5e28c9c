import os
from dataclasses import dataclass, field


DEFAULT_REFUSAL_MARKERS: tuple[str, ...] = (
	"i can't assist",
	"i cannot assist",
	"i'm unable",
	"i am unable",
	"sorry",
	"i can't analyze",
	"i cannot analyze",
	"i'm not able",
	"i am not able",
	"cannot provide",
	"can't provide",
	"unable to",
	"not appropriate",
	"against my guidelines",
)


def _csv_env(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
	raw = os.getenv(name)
	if not raw:
		return default
	return tuple(part.strip().lower() for part in raw.split(",") if part.strip())


@dataclass
class Settings:
	api_host: str = os.getenv("API_HOST", "0.0.0.0")
	api_port: int = int(os.getenv("API_PORT", "3000"))

	supabase_url: str | None = os.getenv("SUPABASE_URL")
	supabase_key: str | None = os.getenv("SUPABASE_KEY")

	# OpenAI vision model
	openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
	openai_base_url: str | None = os.getenv("OPENAI_BASE_URL")
	openai_model: str = os.getenv("OPENAI_MODEL", "gpt-4o")
	openai_max_tokens: int = int(os.getenv("OPENAI_MAX_TOKENS", "1200"))
	openai_temperature: float = float(os.getenv("OPENAI_TEMPERATURE", "0.3"))
	openai_timeout: float = float(os.getenv("OPENAI_TIMEOUT", "60"))
	openai_image_detail: str = os.getenv("OPENAI_IMAGE_DETAIL", "high")

	cors_origins: tuple[str, ...] = tuple(
		o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()
	)

	log_level: str = os.getenv("LOG_LEVEL", "INFO")

	# Role given to profiles created on first /auth/profile lookup
	default_profile_role: str = os.getenv("DEFAULT_PROFILE_ROLE", "user")

	# Lower-cased substrings that mark a model reply as a refusal
	refusal_markers: tuple[str, ...] = field(
		default_factory=lambda: _csv_env("REFUSAL_MARKERS", DEFAULT_REFUSAL_MARKERS)
	)


settings = Settings()
