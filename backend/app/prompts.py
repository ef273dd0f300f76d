"""Default stage prompts, model selection and local settings persistence."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MODEL_ID = "gemini-3-pro-preview"
SUPPORTED_MODELS: dict[str, str] = {
    "gemini-3-pro-preview": "Gemini 3.0 Pro",
    "gemini-2.5-flash": "Gemini 2.5 Flash",
}
MODEL_SETTING_KEY = "gemini_model_id"

DEFAULT_PROMPT_1 = (
    "You are a senior automotive content analyst.\n"
    "You are given two inputs: a vehicle configuration sheet (PDF) and a walk-around "
    "video of the same vehicle.\n\n"
    "Task:\n"
    "- Watch the whole video and list the key shots in chronological order with "
    "approximate timestamps.\n"
    "- For each shot, note which vehicle feature is visible and match it to the "
    "corresponding line of the configuration sheet (trim, engine, dimensions, "
    "equipment, options).\n"
    "- Flag any feature shown in the video that the sheet does not confirm, and any "
    "highlight on the sheet that never appears on screen.\n"
    "- Write a first-draft narration that follows the shot order and transitions "
    "naturally from one feature to the next.\n\n"
    "Rules:\n"
    "- Use only facts present in the sheet or clearly visible in the video.\n"
    "- Keep numbers and model names exactly as written in the sheet."
)

DEFAULT_PROMPT_2 = (
    "You are an automotive marketing copywriter.\n"
    "Rewrite the intermediate draft above into a final voice-over script for a short "
    "vehicle promotion video.\n\n"
    "Requirements:\n"
    "- Open with a hook in the first sentence and close with a clear call to action.\n"
    "- Keep the shot order of the draft so the narration stays in sync with the video.\n"
    "- Lead with selling points a buyer cares about; translate specifications into "
    "benefits.\n"
    "- Short, spoken sentences; no bullet points, headings or stage directions.\n"
    "- Do not invent features, prices or figures that are not in the draft.\n\n"
    "Return only the voice-over script."
)


def is_supported_model(model_id: str | None) -> bool:
    return isinstance(model_id, str) and model_id.strip() in SUPPORTED_MODELS


def normalize_model_id(model_id: str | None) -> str:
    """Return the trimmed model id, or the default when it is unsupported."""
    if is_supported_model(model_id):
        return model_id.strip()  # type: ignore[union-attr]
    return DEFAULT_MODEL_ID


@dataclass(slots=True, frozen=True)
class PipelineConfig:
    """Model and prompts used for one pipeline run."""

    model_id: str
    prompt1: str
    prompt2: str

    @classmethod
    def build(
        cls,
        model_id: str | None = None,
        prompt1: str | None = None,
        prompt2: str | None = None,
    ) -> "PipelineConfig":
        """Validate the model id and fall back to default prompts when blank."""
        return cls(
            model_id=normalize_model_id(model_id),
            prompt1=prompt1 if prompt1 and prompt1.strip() else DEFAULT_PROMPT_1,
            prompt2=prompt2 if prompt2 and prompt2.strip() else DEFAULT_PROMPT_2,
        )


class PromptStore:
    """Session-scoped editable prompts."""

    def __init__(self) -> None:
        self.prompt1 = DEFAULT_PROMPT_1
        self.prompt2 = DEFAULT_PROMPT_2

    def update(self, prompt1: str | None = None, prompt2: str | None = None) -> None:
        if prompt1 is not None:
            self.prompt1 = prompt1
        if prompt2 is not None:
            self.prompt2 = prompt2

    def reset_prompt1(self) -> None:
        self.prompt1 = DEFAULT_PROMPT_1

    def reset_prompt2(self) -> None:
        self.prompt2 = DEFAULT_PROMPT_2

    def reset_prompts(self, confirm: bool) -> bool:
        """Restore both default prompts; callers must pass explicit confirmation."""
        if not confirm:
            return False
        self.reset_prompt1()
        self.reset_prompt2()
        return True

    def build_config(self, model_id: str | None) -> PipelineConfig:
        return PipelineConfig.build(model_id, self.prompt1, self.prompt2)


class SettingsStore:
    """JSON key-value file holding the selected model id."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, object]:
        if not self.path.is_file():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("settings.read_failed path=%s error=%s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def load_model_id(self) -> str:
        """Return the persisted model id, restoring the default when invalid."""
        stored = self._read().get(MODEL_SETTING_KEY)
        if isinstance(stored, str) and is_supported_model(stored):
            return stored.strip()
        if stored is not None:
            logger.warning("settings.invalid_model_id value=%r default=%s", stored, DEFAULT_MODEL_ID)
        return DEFAULT_MODEL_ID

    def save(self, model_id: str) -> bool:
        """Persist a supported model id; unsupported values leave the file untouched."""
        if not is_supported_model(model_id):
            logger.info("settings.rejected_model_id value=%r", model_id)
            return False
        data = self._read()
        data[MODEL_SETTING_KEY] = model_id.strip()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return True
