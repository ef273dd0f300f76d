"""FastAPI application for the vehicle voice-over script generator."""

import logging
import mimetypes
import shutil
from contextlib import asynccontextmanager
from pathlib import Path
from uuid import uuid4

from fastapi import BackgroundTasks, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import cleanup, jobs
from app.config import SETUP_INSTRUCTIONS, Settings
from app.errors import ErrorKind, ScriptGenerationError, ServiceAuthError, error_kind_of
from app.generation_client import GenerationClient, build_generation_client
from app.media import MediaFile
from app.pipeline import ProgressEvent, run_pipeline
from app.prompts import SUPPORTED_MODELS, PipelineConfig, PromptStore, SettingsStore
from app.schemas import (
    JobResult,
    JobStatus,
    ModelOption,
    PromptsReset,
    PromptsResponse,
    PromptsUpdate,
    SettingsResponse,
    SettingsUpdate,
    SetupStatus,
)

logger = logging.getLogger(__name__)

SETTINGS = Settings.from_env()
TEMP_MEDIA_DIR = Path(SETTINGS.temp_media_dir)
SETTINGS_STORE = SettingsStore(SETTINGS.settings_file)
PROMPT_STORE = PromptStore()
_generation_client: GenerationClient | None = None


def get_generation_client() -> GenerationClient:
    """Build and cache the Gemini generation client."""
    global _generation_client
    if _generation_client is None:
        _generation_client = build_generation_client(SETTINGS)
    return _generation_client


def _startup_validate_settings() -> None:
    """Log missing credentials during startup validation."""
    missing = SETTINGS.missing_llm_fields()
    if missing:
        logger.warning(
            "Missing generation configuration at startup: %s. "
            "Script generation is disabled until configured.\n%s",
            ", ".join(missing),
            SETUP_INSTRUCTIONS,
        )


def _is_pdf(upload: UploadFile) -> bool:
    filename = (upload.filename or "").lower()
    return upload.content_type == "application/pdf" or filename.endswith(".pdf")


def _is_video(upload: UploadFile) -> bool:
    if upload.content_type and upload.content_type.startswith("video/"):
        return True
    guessed, _ = mimetypes.guess_type(upload.filename or "")
    return bool(guessed and guessed.startswith("video/"))


def _extract_extension(filename: str | None, default: str) -> str:
    """Extract normalized extension token without leading dot."""
    if not filename:
        return default
    extension = Path(filename).suffix.strip().lower().lstrip(".")
    normalized = "".join(ch for ch in extension if ch.isalnum())
    return normalized or default


async def _stage_upload(upload: UploadFile, destination: Path, job_id: str) -> int:
    """Stream an upload to the job's staging directory with a size check."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    size = 0
    try:
        with destination.open("wb") as f:
            while chunk := await upload.read(1024 * 1024):
                size += len(chunk)
                if size > SETTINGS.max_upload_bytes:
                    raise HTTPException(
                        413,
                        f"File exceeds {SETTINGS.max_upload_bytes // (1024 * 1024)} MB limit",
                    )
                f.write(chunk)
    except HTTPException:
        shutil.rmtree(TEMP_MEDIA_DIR / job_id, ignore_errors=True)
        raise
    except Exception as e:
        shutil.rmtree(TEMP_MEDIA_DIR / job_id, ignore_errors=True)
        raise HTTPException(500, str(e))
    return size


async def process_generation(
    job_id: str,
    pdf_file: MediaFile,
    video_file: MediaFile,
    config: PipelineConfig,
) -> None:
    """Background task: run both generation stages and record the outcome."""

    def on_progress(event: ProgressEvent) -> None:
        jobs.set_job_progress(job_id, event.stage.value, event.message)

    try:
        result = await run_pipeline(
            pdf_file,
            video_file,
            config,
            on_progress,
            client=get_generation_client(),
        )
        jobs.complete_job(
            job_id,
            {
                "model_id": config.model_id,
                "step1_output": result.step1_output,
                "step2_output": result.step2_output,
            },
        )
        logger.info("generation.completed job_id=%s model=%s", job_id, config.model_id)
    except ServiceAuthError as e:
        logger.exception("Authorization failed for job %s", job_id)
        jobs.fail_job(
            job_id,
            f"{e} Check that GOOGLE_API_KEY is valid and has access to model {e.model_id}.",
            e.kind.value,
        )
    except ScriptGenerationError as e:
        logger.exception("Script generation failed for job %s", job_id)
        jobs.fail_job(job_id, str(e), e.kind.value)
    except Exception as e:
        logger.exception("Unexpected failure for job %s", job_id)
        jobs.fail_job(job_id, str(e), error_kind_of(e).value)
    finally:
        cleanup.remove_job_dir(str(TEMP_MEDIA_DIR), job_id)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: validate settings, start scheduler. Shutdown: stop scheduler."""
    _startup_validate_settings()
    cleanup.setup_scheduler(str(TEMP_MEDIA_DIR), SETTINGS.cleanup_max_age_hours)
    yield
    cleanup.shutdown_scheduler()


app = FastAPI(
    title="Vehicle Voice-Over Script API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _settings_response(saved: bool | None = None) -> SettingsResponse:
    return SettingsResponse(
        model_id=SETTINGS_STORE.load_model_id(),
        supported_models=[
            ModelOption(model_id=model_id, label=label) for model_id, label in SUPPORTED_MODELS.items()
        ],
        saved=saved,
    )


@app.get("/setup", response_model=SetupStatus)
async def get_setup():
    """Report whether the generation credential is configured."""
    missing = SETTINGS.missing_llm_fields()
    return SetupStatus(
        configured=not missing,
        missing=missing,
        instructions=SETUP_INSTRUCTIONS if missing else None,
    )


@app.get("/settings", response_model=SettingsResponse)
async def get_settings():
    return _settings_response()


@app.put("/settings", response_model=SettingsResponse)
async def update_settings(body: SettingsUpdate):
    """Persist the model id; unsupported ids leave the stored value unchanged."""
    saved = SETTINGS_STORE.save(body.model_id)
    return _settings_response(saved=saved)


@app.get("/prompts", response_model=PromptsResponse)
async def get_prompts():
    return PromptsResponse(prompt1=PROMPT_STORE.prompt1, prompt2=PROMPT_STORE.prompt2)


@app.put("/prompts", response_model=PromptsResponse)
async def update_prompts(body: PromptsUpdate):
    PROMPT_STORE.update(prompt1=body.prompt1, prompt2=body.prompt2)
    return PromptsResponse(prompt1=PROMPT_STORE.prompt1, prompt2=PROMPT_STORE.prompt2)


@app.post("/prompts/reset", response_model=PromptsResponse)
async def reset_prompts(body: PromptsReset):
    """Restore default prompts; requires explicit confirmation."""
    if not PROMPT_STORE.reset_prompts(confirm=body.confirm):
        raise HTTPException(409, "Resetting prompts requires confirm=true")
    return PromptsResponse(prompt1=PROMPT_STORE.prompt1, prompt2=PROMPT_STORE.prompt2)


@app.post("/generate")
async def generate(
    background_tasks: BackgroundTasks,
    pdf: UploadFile = File(...),
    video: UploadFile = File(...),
    confirm_large_video: bool = Form(default=False),
):
    """Accept both uploads, return job_id immediately, generate in background."""
    if SETTINGS.missing_llm_fields():
        raise HTTPException(503, {"error": ErrorKind.CONFIG.value, "instructions": SETUP_INSTRUCTIONS})
    if not pdf.filename or not video.filename:
        raise HTTPException(422, "Both a PDF and a video file are required")
    if not _is_pdf(pdf):
        raise HTTPException(422, "Configuration sheet must be a PDF file")
    if not _is_video(video):
        raise HTTPException(422, "Vehicle video must be a video file")
    if jobs.has_active_job():
        raise HTTPException(409, "A generation run is already in progress")

    # Reserve the run before the first await.
    config = PROMPT_STORE.build_config(SETTINGS_STORE.load_model_id())
    job_id = jobs.create_job(job_id=str(uuid4()), metadata={"model_id": config.model_id})

    input_dir = TEMP_MEDIA_DIR / job_id / "input"
    pdf_path = input_dir / f"config.{_extract_extension(pdf.filename, 'pdf')}"
    video_path = input_dir / f"video.{_extract_extension(video.filename, 'mp4')}"
    try:
        await _stage_upload(pdf, pdf_path, job_id)
        video_size = await _stage_upload(video, video_path, job_id)
    except HTTPException:
        jobs.discard_job(job_id)
        raise

    if video_size > SETTINGS.large_video_confirm_bytes and not confirm_large_video:
        shutil.rmtree(TEMP_MEDIA_DIR / job_id, ignore_errors=True)
        jobs.discard_job(job_id)
        raise HTTPException(
            409,
            f"Video is larger than {SETTINGS.large_video_confirm_bytes // (1024 * 1024)} MB; "
            "processing may be slow. Resubmit with confirm_large_video=true to continue.",
        )

    logger.info(
        "upload.accepted job_id=%s model=%s video_bytes=%s",
        job_id,
        config.model_id,
        video_size,
    )
    background_tasks.add_task(
        process_generation,
        job_id,
        MediaFile.from_path(pdf_path, "application/pdf"),
        MediaFile.from_path(video_path, video.content_type),
        config,
    )
    return JSONResponse({"job_id": job_id}, status_code=202)


@app.get("/status/{job_id}", response_model=JobStatus)
async def get_status(job_id: str):
    """Return job status (processing, completed, failed) with progress."""
    job = jobs.get_job(job_id)
    if job is None:
        raise HTTPException(404, "Job not found")
    return JobStatus(
        job_id=job_id,
        status=job["status"],
        stage=job.get("stage", job["status"]),
        message=job.get("message"),
        model_id=job.get("model_id"),
        error=job.get("error"),
        error_kind=job.get("error_kind"),
    )


@app.get("/results/{job_id}", response_model=JobResult)
async def get_results(job_id: str):
    """Return both generated texts when completed."""
    job = jobs.get_job(job_id)
    if job is None:
        raise HTTPException(404, "Job not found")
    if job["status"] == "processing":
        return JSONResponse({"detail": "Job is still processing"}, status_code=409)
    if job["status"] == "failed":
        return JSONResponse(
            {
                "detail": "Job failed",
                "error": job.get("error", "Unknown error"),
                "error_kind": job.get("error_kind"),
            },
            status_code=409,
        )
    return JobResult(job_id=job_id, **job["result"])
