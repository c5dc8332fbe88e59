# file: src/pipeline/orchestrator.py
import asyncio
import base64
import json
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from pipeline.canned import CannedReplies
from pipeline.converters import Converter
from pipeline.errors import UpstreamFailure
from pipeline.llm import OpenAIChatClient, decode_segments
from pipeline.models import ReplySegment, SegmentDraft
from pipeline.tts import ElevenLabsClient


@dataclass
class PipelineRun:
    """Scratch space of one run. Files are keyed by segment index inside the run's own directory."""
    run_id: str
    workdir: Path

    def asset(self, index: int, suffix: str) -> Path:
        return self.workdir / f"message_{index}{suffix}"


class ReplyPipeline:
    """
    User utterance → ordered, fully enriched reply segments.

    empty utterance          → introduction set (no provider call)
    missing LLM/TTS key      → configuration-missing set (no provider call)
    otherwise                → LLM, then per segment in order: TTS, transcode, lipsync

    Any UpstreamFailure aborts the run; no partial segment list leaves this class.
    """

    def __init__(self, logger_manager: object, config: dict, llm: OpenAIChatClient, tts: ElevenLabsClient,
                 transcoder: Converter, extractor: Converter, canned: Optional[CannedReplies] = None):
        self.config = config
        self.logger = logger_manager.create_logger(logger_name="ReplyPipeline",
                                                   logging_level=config.get("LOGGING_LEVEL", "INFO"))
        self.llm = llm
        self.tts = tts
        self.transcoder = transcoder
        self.extractor = extractor
        self.canned = canned or CannedReplies(config["CANNED_AUDIO_DIR"], self.logger)
        self.scratch_root = Path(config["SCRATCH_DIR"])
        self.max_segments = config.get("MAX_SEGMENTS", 3)
        self._runs = asyncio.Semaphore(max(1, config.get("MAX_CONCURRENT_RUNS", 4)))

    @property
    def providers_configured(self) -> bool:
        return self.llm.configured and self.tts.configured

    async def run(self, user_message: Optional[str]) -> List[ReplySegment]:
        if not user_message:
            self.logger.debug("Empty message: serving introduction")
            return await self.canned.introduction()
        if not self.providers_configured:
            self.logger.warning("Provider API keys missing: serving configuration-missing replies")
            return await self.canned.configuration_missing()

        async with self._runs:
            run = self._open_run()
            try:
                return await self._generate(run, user_message)
            except UpstreamFailure as e:
                where = f"segment {e.index} " if e.index is not None else ""
                self.logger.error(f"Run {run.run_id} failed at {where}step '{e.step}': {e.message}")
                raise
            finally:
                shutil.rmtree(run.workdir, ignore_errors=True)

    def _open_run(self) -> PipelineRun:
        run_id = uuid.uuid4().hex[:12]
        workdir = self.scratch_root / f"run-{run_id}"
        workdir.mkdir(parents=True, exist_ok=False)
        return PipelineRun(run_id=run_id, workdir=workdir)

    async def _generate(self, run: PipelineRun, user_message: str) -> List[ReplySegment]:
        raw = await self.llm.complete(user_message)
        drafts = decode_segments(raw, self.logger, max_segments=self.max_segments)
        self.logger.info(f"Run {run.run_id}: {len(drafts)} segment(s) from the language model")

        segments = []
        # Sequential on purpose: step b and c read what step a wrote for the same index
        for index, draft in enumerate(drafts):
            segments.append(await self._enrich(run, index, draft))
        return segments

    async def _enrich(self, run: PipelineRun, index: int, draft: SegmentDraft) -> ReplySegment:
        audio = await self._step(index, "tts", self.tts.synthesize(draft.text))
        mp3_path = run.asset(index, ".mp3")
        await asyncio.to_thread(mp3_path.write_bytes, audio)

        wav_path = await self._step(index, "transcode", self.transcoder.convert(mp3_path))
        cues_path = await self._step(index, "lipsync", self.extractor.convert(wav_path))
        lipsync = await asyncio.to_thread(self._read_lipsync, cues_path, index)

        return ReplySegment(
            **draft.model_dump(),
            audio=base64.b64encode(audio).decode("ascii"),
            lipsync=lipsync,
        )

    async def _step(self, index: int, step: str, awaitable) -> Any:
        """Await one provider/tool call and pin any failure to this segment and step."""
        try:
            return await awaitable
        except UpstreamFailure as e:
            if e.index is None:
                e.index = index
            e.step = step
            raise

    @staticmethod
    def _read_lipsync(path: Path, index: int) -> Dict[str, Any]:
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            raise UpstreamFailure("lipsync", f"unreadable cue file {path.name}", index=index)
