from typing import Optional

from google import genai
from google.genai import types
from loguru import logger

from .config import Settings
from .errors import MissingCredentialsError, ModelRequestError

# -----------------------------
# RESPONSE SCHEMA (structured mode)
# -----------------------------
_STRING = types.Schema(type=types.Type.STRING)

ASSESSMENT_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "impression": _STRING,
        "probableConditions": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "condition": _STRING,
                    "likelihood": _STRING,
                    "explanation": _STRING,
                },
                required=["condition", "likelihood", "explanation"],
            ),
        ),
        "recommendedActions": types.Schema(type=types.Type.ARRAY, items=_STRING),
        "triageStatus": _STRING,
        "suggestedDoctor": types.Schema(
            type=types.Type.OBJECT,
            properties={
                "name": _STRING,
                "department": _STRING,
                "timing": _STRING,
                "charges": _STRING,
                "reasonForReferral": _STRING,
            },
            required=["name", "department", "timing", "charges", "reasonForReferral"],
        ),
    },
    required=[
        "impression",
        "probableConditions",
        "recommendedActions",
        "triageStatus",
        "suggestedDoctor",
    ],
)


def build_generation_config(
    settings: Settings, response_schema: Optional[types.Schema] = None
) -> types.GenerateContentConfig:
    """JSON with a schema when one is given, plain text otherwise."""
    thinking = types.ThinkingConfig(thinking_budget=settings.thinking_budget)
    if response_schema is None:
        return types.GenerateContentConfig(
            response_mime_type="text/plain",
            thinking_config=thinking,
        )
    return types.GenerateContentConfig(
        response_mime_type="application/json",
        response_schema=response_schema,
        thinking_config=thinking,
    )


# -----------------------------
# CLIENT
# -----------------------------
class GeminiClient:
    """
    Thin async wrapper around the Gemini SDK.

    The API key is read when a request is made, not at startup, so a missing
    key only shows up as a failed analysis. One SDK client is kept per key.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client: Optional[genai.Client] = None
        self._client_key: Optional[str] = None

    def _sdk_client(self, api_key: str) -> genai.Client:
        if self._client is None or self._client_key != api_key:
            self._client = genai.Client(api_key=api_key)
            self._client_key = api_key
        return self._client

    async def generate(self, prompt: str, response_schema: Optional[types.Schema] = None) -> str:
        api_key = self.settings.google_api_key
        if not api_key:
            raise MissingCredentialsError("Missing GOOGLE_API_KEY environment variable.")

        config = build_generation_config(self.settings, response_schema)
        try:
            client = self._sdk_client(api_key)
            response = await client.aio.models.generate_content(
                model=self.settings.llm_model,
                contents=prompt,
                config=config,
            )
        except Exception as e:
            raise ModelRequestError(f"Gemini request failed: {e}") from e

        text = response.text or ""
        logger.debug("Gemini returned {} chars from {}", len(text), self.settings.llm_model)
        return text

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aio.aclose()
            self._client = None
            self._client_key = None
