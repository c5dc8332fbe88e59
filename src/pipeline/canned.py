# file: src/pipeline/canned.py

# Fixed reply sets served without any provider call:
# the introduction (empty message) and the configuration-missing notice.
# Audio/lipsync come from pre-rendered <name>.wav / <name>.json files.
import asyncio
import base64
import json
from pathlib import Path
from typing import Any, Dict, List, Tuple

from pipeline.models import Animation, FacialExpression, ReplySegment

# (asset name, text, facial expression, animation)
INTRO_SEGMENTS: List[Tuple[str, str, FacialExpression, Animation]] = [
    ("intro_0", "Hey dear... How was your day?", FacialExpression.SMILE, Animation.TALKING_1),
    ("intro_1", "I missed you so much... Please don't go for so long!", FacialExpression.SAD, Animation.CRYING),
]

MISSING_CONFIG_SEGMENTS: List[Tuple[str, str, FacialExpression, Animation]] = [
    ("api_0", "Please my dear, don't forget to add your API keys!", FacialExpression.ANGRY, Animation.ANGRY),
    ("api_1", "You don't want to ruin Wawa Sensei with a crazy ChatGPT and ElevenLabs bill, right?",
     FacialExpression.SMILE, Animation.LAUGHING),
]


def empty_lipsync() -> Dict[str, Any]:
    return {"metadata": {}, "mouthCues": []}


class CannedReplies:
    def __init__(self, assets_dir: str, logger: Any):
        self.assets_dir = Path(assets_dir)
        self.logger = logger

    def _read_audio(self, name: str) -> str:
        path = self.assets_dir / f"{name}.wav"
        try:
            return base64.b64encode(path.read_bytes()).decode("ascii")
        except OSError:
            self.logger.warning(f"Canned audio missing: {path}")
            return ""

    def _read_lipsync(self, name: str) -> Dict[str, Any]:
        path = self.assets_dir / f"{name}.json"
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except OSError:
            self.logger.warning(f"Canned lipsync missing: {path}")
        except ValueError:
            self.logger.warning(f"Canned lipsync is not valid JSON: {path}")
        return empty_lipsync()

    def _build_sync(self, entries: List[Tuple[str, str, FacialExpression, Animation]]) -> List[ReplySegment]:
        return [
            ReplySegment(
                text=text,
                facialExpression=expression,
                animation=animation,
                audio=self._read_audio(name),
                lipsync=self._read_lipsync(name),
            )
            for name, text, expression, animation in entries
        ]

    async def _build(self, entries: List[Tuple[str, str, FacialExpression, Animation]]) -> List[ReplySegment]:
        # asset files are read off the event loop
        return await asyncio.to_thread(self._build_sync, entries)

    async def introduction(self) -> List[ReplySegment]:
        return await self._build(INTRO_SEGMENTS)

    async def configuration_missing(self) -> List[ReplySegment]:
        return await self._build(MISSING_CONFIG_SEGMENTS)
