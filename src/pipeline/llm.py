# file: src/pipeline/llm.py
import json
from typing import Any, Dict, List

import httpx
from pydantic import ValidationError

from pipeline.errors import UpstreamFailure
from pipeline.models import Animation, FacialExpression, SegmentDraft
from utils.httpx_manager import HttpxManager

SYSTEM_PROMPT = """
You are a virtual girlfriend.
You will always reply with a JSON array of messages. With a maximum of 3 messages.
Each message has a text, facialExpression, and animation property.
The different facial expressions are: smile, sad, angry, surprised, funnyFace, and default.
The different animations are: Talking_0, Talking_1, Talking_2, Crying, Laughing, Rumba, Idle, Terrified, and Angry.
"""

_EXPRESSIONS = {e.value for e in FacialExpression}
_ANIMATIONS = {a.value for a in Animation}


class OpenAIChatClient:
    """Chat completion adapter: user message in, raw JSON text of the reply out."""

    def __init__(self, httpx_manager: HttpxManager, logger_manager: object, config: dict):
        self.httpx_manager = httpx_manager
        self.config = config
        self.logger = logger_manager.create_logger(logger_name="OpenAIChatClient",
                                                   logging_level=config.get("LOGGING_LEVEL", "INFO"))
        self.url = config["BASE_URL"].rstrip("/") + "/chat/completions"

    @property
    def configured(self) -> bool:
        key = self.config.get("API_KEY") or ""
        return key not in ("", "-")

    def build_payload(self, user_message: str) -> Dict[str, Any]:
        return {
            "model": self.config["CHAT_MODEL"],
            "max_tokens": self.config["MAX_TOKENS"],
            "temperature": self.config["TEMPERATURE"],
            "response_format": {"type": "json_object"},
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_message or "Hello"},
            ],
        }

    async def complete(self, user_message: str) -> str:
        headers = {"Authorization": f"Bearer {self.config['API_KEY']}", "Content-Type": "application/json"}
        try:
            data = await self.httpx_manager.post_json(self.url, self.build_payload(user_message),
                                                      headers=headers, step="llm")
        except httpx.HTTPStatusError as e:
            raise UpstreamFailure("llm", f"chat completion rejected (HTTP {e.response.status_code})")
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise UpstreamFailure("llm", "chat completion without choices[0].message.content")
        if not isinstance(content, str):
            raise UpstreamFailure("llm", "chat completion content is not text")
        self.logger.debug(f"Chat completion: {len(content)} chars")
        return content


def decode_segments(raw: str, logger: Any, max_segments: int = 3) -> List[SegmentDraft]:
    """
    Reply text → ordered segment drafts.
    Accepted shapes: a JSON array, or an object with exactly one array-valued
    property (json_object mode usually wraps the array as {"messages": [...]}).
    Anything else is an UpstreamFailure for the request.
    """
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        raise UpstreamFailure("llm", "reply is not valid JSON")

    if isinstance(decoded, list):
        items = decoded
    elif isinstance(decoded, dict):
        arrays = [(key, value) for key, value in decoded.items() if isinstance(value, list)]
        if len(arrays) != 1:
            raise UpstreamFailure("llm", f"reply object has {len(arrays)} array properties, expected 1")
        key, items = arrays[0]
        logger.info(f"LLM reply wrapped in object; using array property '{key}'")
    else:
        raise UpstreamFailure("llm", f"reply is a JSON {type(decoded).__name__}, expected array")

    if len(items) > max_segments:
        logger.warning(f"LLM returned {len(items)} segments; keeping the first {max_segments}")
        items = items[:max_segments]

    drafts = []
    for index, item in enumerate(items):
        if not isinstance(item, dict) or not isinstance(item.get("text"), str):
            raise UpstreamFailure("llm", "segment without text", index=index)
        item = dict(item)
        if item.get("facialExpression") not in _EXPRESSIONS:
            logger.warning(f"Segment {index}: unknown facialExpression {item.get('facialExpression')!r}, using default")
            item["facialExpression"] = FacialExpression.DEFAULT.value
        if item.get("animation") not in _ANIMATIONS:
            logger.warning(f"Segment {index}: unknown animation {item.get('animation')!r}, using Idle")
            item["animation"] = Animation.IDLE.value
        try:
            drafts.append(SegmentDraft.model_validate(item))
        except ValidationError as e:
            raise UpstreamFailure("llm", f"segment does not validate ({e.error_count()} errors)", index=index)
    return drafts
