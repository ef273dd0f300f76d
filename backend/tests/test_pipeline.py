"""Unit tests for app.pipeline."""

import asyncio
import base64

import pytest

from app.errors import MediaReadError, ServiceAuthError, ServiceError, ServiceNotFoundError
from app.media import MediaFile
from app.pipeline import (
    STEP1_FALLBACK_TEXT,
    STEP2_FALLBACK_TEXT,
    PipelineResult,
    PipelineStage,
    ProgressEvent,
    run_pipeline,
    stream_pipeline,
)
from app.prompts import DEFAULT_MODEL_ID, PipelineConfig


def _config(**overrides):
    values = {"model_id": "gemini-2.5-flash", "prompt1": "PROMPT-ONE", "prompt2": "PROMPT-TWO"}
    values.update(overrides)
    return PipelineConfig.build(**values)


class TestHappyPath:
    async def test_returns_both_outputs_and_emits_ordered_progress(
        self, scripted_client, pdf_file, video_file
    ):
        client = scripted_client("DRAFT", "FINAL")
        events: list[ProgressEvent] = []

        result = await run_pipeline(pdf_file, video_file, _config(), events.append, client=client)

        assert result == PipelineResult(step1_output="DRAFT", step2_output="FINAL")
        assert [e.stage for e in events] == [
            PipelineStage.PREPARING,
            PipelineStage.ANALYZING,
            PipelineStage.POLISHING,
        ]
        assert "gemini-2.5-flash" in events[0].message

    async def test_step1_request_has_prompt_pdf_video_in_order(
        self, scripted_client, pdf_file, video_file
    ):
        client = scripted_client("DRAFT", "FINAL")

        await run_pipeline(pdf_file, video_file, _config(), lambda _e: None, client=client)

        model, contents = client.calls[0]
        assert model == "gemini-2.5-flash"
        assert len(contents) == 1
        assert contents[0]["role"] == "user"
        parts = contents[0]["parts"]
        assert parts[0] == {"text": "PROMPT-ONE"}
        assert parts[1]["inline_data"]["mime_type"] == "application/pdf"
        assert base64.b64decode(parts[1]["inline_data"]["data"]) == b"%PDF-1.4 config sheet"
        assert parts[2]["inline_data"]["mime_type"] == "video/mp4"

    async def test_step2_request_embeds_draft_then_prompt2(
        self, scripted_client, pdf_file, video_file
    ):
        client = scripted_client("DRAFT", "FINAL")

        await run_pipeline(pdf_file, video_file, _config(), lambda _e: None, client=client)

        model, contents = client.calls[1]
        assert model == "gemini-2.5-flash"
        parts = contents[0]["parts"]
        assert len(parts) == 2
        assert "intermediate draft" in parts[0]["text"]
        assert "DRAFT" in parts[0]["text"]
        assert parts[1] == {"text": "PROMPT-TWO"}

    async def test_blank_prompts_use_defaults_and_invalid_model_falls_back(
        self, scripted_client, pdf_file, video_file
    ):
        client = scripted_client("DRAFT", "FINAL")
        config = PipelineConfig.build("not-a-model", "", "   ")

        await run_pipeline(pdf_file, video_file, config, lambda _e: None, client=client)

        assert client.calls[0][0] == DEFAULT_MODEL_ID
        assert client.calls[0][1][0]["parts"][0]["text"] == config.prompt1
        assert config.prompt1.strip()


class TestEmptyResults:
    async def test_empty_step1_uses_fallback_and_is_embedded_in_step2(
        self, scripted_client, pdf_file, video_file
    ):
        client = scripted_client("", "FINAL")

        result = await run_pipeline(pdf_file, video_file, _config(), lambda _e: None, client=client)

        assert result.step1_output == STEP1_FALLBACK_TEXT
        step2_text = client.calls[1][1][0]["parts"][0]["text"]
        assert STEP1_FALLBACK_TEXT in step2_text

    async def test_none_step2_uses_fallback(self, scripted_client, pdf_file, video_file):
        client = scripted_client("DRAFT", None)

        result = await run_pipeline(pdf_file, video_file, _config(), lambda _e: None, client=client)

        assert result.step2_output == STEP2_FALLBACK_TEXT


class TestFailures:
    async def test_403_on_step1_raises_auth_error_and_skips_step2(
        self, scripted_client, pdf_file, video_file
    ):
        client = scripted_client(RuntimeError("403 PERMISSION_DENIED"), "FINAL")
        events: list[ProgressEvent] = []

        with pytest.raises(ServiceAuthError) as exc_info:
            await run_pipeline(pdf_file, video_file, _config(), events.append, client=client)

        assert len(client.calls) == 1
        assert exc_info.value.model_id == "gemini-2.5-flash"
        assert "gemini-2.5-flash" in str(exc_info.value)
        assert PipelineStage.POLISHING not in [e.stage for e in events]

    async def test_404_on_step2_raises_not_found_without_partial_result(
        self, scripted_client, pdf_file, video_file
    ):
        client = scripted_client("DRAFT", RuntimeError("404 models/x is not found"))

        with pytest.raises(ServiceNotFoundError):
            await run_pipeline(pdf_file, video_file, _config(), lambda _e: None, client=client)

        assert len(client.calls) == 2

    async def test_timeout_surfaces_as_service_error(self, scripted_client, pdf_file, video_file):
        client = scripted_client(TimeoutError("Deadline exceeded"))

        with pytest.raises(ServiceError) as exc_info:
            await run_pipeline(pdf_file, video_file, _config(), lambda _e: None, client=client)

        assert exc_info.value.raw_message == "Deadline exceeded"
        assert isinstance(exc_info.value.__cause__, TimeoutError)

    async def test_read_failure_aborts_before_any_remote_call(self, scripted_client, pdf_file, tmp_path):
        client = scripted_client("DRAFT", "FINAL")
        missing_video = MediaFile.from_path(tmp_path / "missing.mp4")

        with pytest.raises(MediaReadError):
            await run_pipeline(pdf_file, missing_video, _config(), lambda _e: None, client=client)

        assert client.calls == []

    async def test_read_failure_cancels_the_other_read(self, scripted_client):
        client = scripted_client("DRAFT", "FINAL")
        cancelled = asyncio.Event()

        async def slow_read():
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return b""

        async def failing_read():
            raise OSError("device not ready")

        pdf = MediaFile("config.pdf", "application/pdf", 0, slow_read)
        video = MediaFile("walkaround.mp4", "video/mp4", 0, failing_read)

        with pytest.raises(MediaReadError, match="device not ready"):
            await asyncio.wait_for(
                run_pipeline(pdf, video, _config(), lambda _e: None, client=client),
                timeout=5,
            )

        assert cancelled.is_set()
        assert client.calls == []

    async def test_missing_file_is_rejected_before_progress(self, scripted_client, pdf_file):
        client = scripted_client("DRAFT", "FINAL")
        events: list[ProgressEvent] = []

        with pytest.raises(ValueError):
            await run_pipeline(pdf_file, None, _config(), events.append, client=client)

        assert events == []
        assert client.calls == []


class TestStreamPipeline:
    async def test_yields_progress_then_result(self, scripted_client, pdf_file, video_file):
        client = scripted_client("DRAFT", "FINAL")

        items = [item async for item in stream_pipeline(pdf_file, video_file, _config(), client=client)]

        assert [item.stage for item in items[:3]] == [
            PipelineStage.PREPARING,
            PipelineStage.ANALYZING,
            PipelineStage.POLISHING,
        ]
        assert items[-1] == PipelineResult(step1_output="DRAFT", step2_output="FINAL")

    async def test_reraises_classified_error(self, scripted_client, pdf_file, video_file):
        client = scripted_client(RuntimeError("401 API key not valid"))
        seen = []

        with pytest.raises(ServiceAuthError):
            async for item in stream_pipeline(pdf_file, video_file, _config(), client=client):
                seen.append(item)

        assert [item.stage for item in seen] == [PipelineStage.PREPARING, PipelineStage.ANALYZING]
