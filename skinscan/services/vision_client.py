from __future__ import annotations
from typing import Any, Dict, List

from openai import AsyncOpenAI, OpenAIError

from skinscan.config import settings
from skinscan.schemas import RawModelReply
from skinscan.utils.logging import get_logger


logger = get_logger("vision")

SYSTEM_PROMPT = (
    "You are a skincare and beauty routine assistant.\n"
    "Give non-medical, cosmetic observations based only on what is visible in the photo.\n"
    "Never diagnose diseases or name medical conditions.\n"
    "If details cannot be seen reliably, return an empty concerns array and a basic gentle routine.\n"
    "If the person appears to be under 18, return empty concerns and a basic routine.\n"
    "Output valid JSON only."
)

USER_PROMPT = (
    "From the visible appearance in the photo, list cosmetic skincare concerns "
    "(e.g. shine, dry-looking areas, visible redness, uneven tone, visible pores, blemish-like spots). "
    "Then propose a gentle routine.\n\n"
    "Return JSON ONLY:\n"
    "{\n"
    '  "concerns": [{"name": "...", "area": "...", "description": "...", "confidence": 0.0}],\n'
    '  "routine": {"morning": ["..."], "evening": ["..."]},\n'
    '  "ingredientsToConsider": ["..."],\n'
    '  "avoidIfSensitive": ["..."],\n'
    '  "overallSummary": "..."\n'
    "}\n\n"
    "Rules:\n"
    "- confidence between 0.0 and 1.0\n"
    "- if details are unclear or the skin looks fine: concerns=[]\n"
    "- JSON only"
)


class UpstreamUnavailableError(RuntimeError):
    """The model endpoint could not be reached or rejected the call."""


class VisionClient:
    def __init__(self, client: AsyncOpenAI | None = None) -> None:
        if client is None and not settings.openai_api_key:
            logger.warning("OPENAI_API_KEY is not set; vision calls will fail")
        # Built on first use, inside complete_vision's OpenAIError handling
        self._client = client
        self.model = settings.openai_model

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                timeout=settings.openai_timeout,
            )
        return self._client

    def _messages(self, system_instructions: str, user_instructions: str, image_ref: str) -> List[Dict[str, Any]]:
        return [
            {"role": "system", "content": system_instructions},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": user_instructions},
                    {
                        "type": "image_url",
                        "image_url": {"url": image_ref, "detail": settings.openai_image_detail},
                    },
                ],
            },
        ]

    async def complete_vision(
        self,
        image_ref: str,
        system_instructions: str = SYSTEM_PROMPT,
        user_instructions: str = USER_PROMPT,
    ) -> RawModelReply:
        """
        Send one image to the model and return the reply fields the classifier needs.

        Single attempt: any transport or API error is raised as
        UpstreamUnavailableError and is not retried here.
        """
        logger.info(f"Vision request model={self.model} image_ref_len={len(image_ref)}")
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=self._messages(system_instructions, user_instructions, image_ref),
                response_format={"type": "json_object"},
                max_tokens=settings.openai_max_tokens,
                temperature=settings.openai_temperature,
            )
        except OpenAIError as e:
            logger.error(f"Vision call failed: {e}")
            raise UpstreamUnavailableError("AI service temporarily unavailable") from e

        return reply_from_completion(response)


def reply_from_completion(response: Any) -> RawModelReply:
    choices = getattr(response, "choices", None) or []
    if not choices:
        logger.warning("Vision completion carried no choices")
        return RawModelReply()

    choice = choices[0]
    msg = getattr(choice, "message", None)
    reply = RawModelReply(
        content=getattr(msg, "content", None),
        refusal=getattr(msg, "refusal", None),
        finish_reason=getattr(choice, "finish_reason", None),
    )
    logger.info(
        f"Vision reply finish_reason={reply.finish_reason} "
        f"has_content={reply.content is not None} has_refusal={reply.refusal is not None}"
    )
    if reply.content:
        logger.debug(f"Vision content preview: {reply.content[:300]}")
    return reply
