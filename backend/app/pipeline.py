"""Two-stage voice-over generation: analysis draft, then marketing polish."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Callable, TypedDict

from langgraph.graph import END, START, StateGraph

from app.errors import classify_service_error
from app.generation_client import GenerationClient, Part, user_content
from app.media import EncodedPart, MediaFile, encode_media
from app.prompts import PipelineConfig

logger = logging.getLogger(__name__)

STEP1_FALLBACK_TEXT = "Step 1 produced no content."
STEP2_FALLBACK_TEXT = "Step 2 produced no content."
DRAFT_FRAME_TEMPLATE = (
    "This is the intermediate draft generated from the video and the PDF:\n\n{draft}\n\n"
)


class PipelineStage(str, Enum):
    """Checkpoints reported while a run is in flight."""

    PREPARING = "preparing"
    ANALYZING = "analyzing"
    POLISHING = "polishing"


@dataclass(slots=True, frozen=True)
class ProgressEvent:
    stage: PipelineStage
    message: str


@dataclass(slots=True, frozen=True)
class PipelineResult:
    step1_output: str
    step2_output: str


ProgressSink = Callable[[ProgressEvent], None]


class PipelineState(TypedDict):
    """LangGraph state threaded through the ordered steps."""

    pdf_part: EncodedPart | None
    video_part: EncodedPart | None
    step1_output: str
    step2_output: str


def build_step1_parts(prompt1: str, pdf_part: EncodedPart, video_part: EncodedPart) -> list[Part]:
    return [{"text": prompt1}, pdf_part.to_part(), video_part.to_part()]


def build_step2_parts(step1_output: str, prompt2: str) -> list[Part]:
    return [{"text": DRAFT_FRAME_TEMPLATE.format(draft=step1_output)}, {"text": prompt2}]


async def _generate(
    client: GenerationClient,
    config: PipelineConfig,
    parts: list[Part],
    fallback: str,
) -> str:
    try:
        text = await client.generate(config.model_id, user_content(parts))
    except Exception as exc:
        logger.warning("pipeline.remote_failed model=%s error=%s", config.model_id, exc)
        raise classify_service_error(exc, config.model_id) from exc
    return text or fallback


def _build_graph(
    pdf: MediaFile,
    video: MediaFile,
    config: PipelineConfig,
    on_progress: ProgressSink,
    client: GenerationClient,
):
    async def prepare_node(state: PipelineState) -> dict[str, EncodedPart]:
        on_progress(
            ProgressEvent(
                PipelineStage.PREPARING,
                f"Preparing files (model: {config.model_id})...",
            )
        )
        try:
            async with asyncio.TaskGroup() as group:
                pdf_task = group.create_task(encode_media(pdf))
                video_task = group.create_task(encode_media(video))
        except ExceptionGroup as failures:
            # A failed read cancels its sibling; surface the first error as-is.
            raise failures.exceptions[0] from None
        return {"pdf_part": pdf_task.result(), "video_part": video_task.result()}

    async def analyze_node(state: PipelineState) -> dict[str, str]:
        on_progress(
            ProgressEvent(
                PipelineStage.ANALYZING,
                "Step 1: analyzing the video and the configuration sheet... (this can take a minute)",
            )
        )
        parts = build_step1_parts(config.prompt1, state["pdf_part"], state["video_part"])
        step1_output = await _generate(client, config, parts, STEP1_FALLBACK_TEXT)
        logger.info("pipeline.step1.complete model=%s chars=%s", config.model_id, len(step1_output))
        return {"step1_output": step1_output}

    async def polish_node(state: PipelineState) -> dict[str, str]:
        on_progress(
            ProgressEvent(
                PipelineStage.POLISHING,
                "Step 2: writing the final voice-over script...",
            )
        )
        parts = build_step2_parts(state["step1_output"], config.prompt2)
        step2_output = await _generate(client, config, parts, STEP2_FALLBACK_TEXT)
        logger.info("pipeline.step2.complete model=%s chars=%s", config.model_id, len(step2_output))
        return {"step2_output": step2_output}

    graph_builder = StateGraph(PipelineState)
    graph_builder.add_node("prepare", prepare_node)
    graph_builder.add_node("analyze", analyze_node)
    graph_builder.add_node("polish", polish_node)
    graph_builder.add_edge(START, "prepare")
    graph_builder.add_edge("prepare", "analyze")
    graph_builder.add_edge("analyze", "polish")
    graph_builder.add_edge("polish", END)
    return graph_builder.compile()


async def run_pipeline(
    pdf: MediaFile | None,
    video: MediaFile | None,
    config: PipelineConfig,
    on_progress: ProgressSink,
    *,
    client: GenerationClient,
) -> PipelineResult:
    """Encode both files, draft with stage 1, polish with stage 2.

    Any remote failure aborts the run with a classified ``ServiceError``; no
    partial result is returned. Encoding failures raise ``MediaReadError``
    before any remote call.
    """
    if pdf is None or video is None:
        raise ValueError("Both a PDF and a video file are required")

    logger.info(
        "pipeline.start model=%s pdf=%s pdf_bytes=%s video=%s video_bytes=%s",
        config.model_id,
        pdf.name,
        pdf.size,
        video.name,
        video.size,
    )
    graph = _build_graph(pdf, video, config, on_progress, client)
    output = await graph.ainvoke(
        {
            "pdf_part": None,
            "video_part": None,
            "step1_output": "",
            "step2_output": "",
        }
    )
    return PipelineResult(
        step1_output=output["step1_output"],
        step2_output=output["step2_output"],
    )


_DONE = object()


async def stream_pipeline(
    pdf: MediaFile | None,
    video: MediaFile | None,
    config: PipelineConfig,
    *,
    client: GenerationClient,
) -> AsyncIterator[ProgressEvent | PipelineResult]:
    """Yield progress events, then the result; re-raise the run's error."""
    queue: asyncio.Queue[object] = asyncio.Queue()
    task = asyncio.create_task(run_pipeline(pdf, video, config, queue.put_nowait, client=client))
    task.add_done_callback(lambda _task: queue.put_nowait(_DONE))
    try:
        while (item := await queue.get()) is not _DONE:
            yield item  # type: ignore[misc]
        yield task.result()
    finally:
        if not task.done():
            task.cancel()
