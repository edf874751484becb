from chaincv.ai.providers.openai_provider import OpenAIProvider
from chaincv.ai.types import ModelAdapter
from chaincv.core.config import Settings


def get_model_adapter(settings: Settings) -> ModelAdapter:
    if settings.ai_provider == "openai":
        return OpenAIProvider(
            model=settings.ai_model,
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            timeout_s=settings.openai_timeout_s,
            max_retries=settings.openai_max_retries,
            temperature=settings.ai_temperature,
            max_output_tokens=settings.ai_max_output_tokens,
        )

    raise ValueError(f"Unsupported AI_PROVIDER='{settings.ai_provider}'")
