"""In-memory generation run state."""

import uuid
from typing import Any


jobs: dict[str, dict[str, Any]] = {}


def create_job(metadata: dict[str, Any] | None = None, job_id: str | None = None) -> str:
    """Create a new job, return job_id."""
    assigned_job_id = job_id or str(uuid.uuid4())
    job_record: dict[str, Any] = {
        "status": "processing",
        "stage": "reading_files",
        "message": None,
    }
    if metadata:
        job_record.update(metadata)
    jobs[assigned_job_id] = job_record
    return assigned_job_id


def get_job(job_id: str) -> dict[str, Any] | None:
    """Return job dict or None if not found."""
    return jobs.get(job_id)


def has_active_job() -> bool:
    """Return True while any run is still processing."""
    return any(record.get("status") == "processing" for record in jobs.values())


def complete_job(job_id: str, result: dict[str, Any]) -> None:
    """Mark job as completed with result payload."""
    job_record = jobs.get(job_id, {})
    job_record["status"] = "completed"
    job_record["stage"] = "completed"
    job_record["message"] = None
    job_record["result"] = result
    job_record.pop("error", None)
    job_record.pop("error_kind", None)
    jobs[job_id] = job_record


def fail_job(job_id: str, error: str, error_kind: str | None = None) -> None:
    """Mark job as failed; any partial result is dropped."""
    job_record = jobs.get(job_id, {})
    job_record["status"] = "failed"
    job_record["stage"] = "failed"
    job_record["error"] = error
    job_record["error_kind"] = error_kind
    job_record.pop("result", None)
    jobs[job_id] = job_record


def discard_job(job_id: str) -> None:
    """Forget a reserved job whose upload was rejected."""
    jobs.pop(job_id, None)


def set_job_progress(job_id: str, stage: str, message: str | None = None) -> None:
    """Record the current pipeline checkpoint of a processing job."""
    job_record = jobs.get(job_id)
    if job_record is None:
        return
    if job_record.get("status") == "processing":
        job_record["stage"] = stage
        job_record["message"] = message
    jobs[job_id] = job_record
