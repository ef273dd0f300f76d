"""Command-line front-end: generate a voice-over script from local files."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from app.config import Settings
from app.errors import ConfigError, ScriptGenerationError, ServiceAuthError
from app.generation_client import GenerationClient, build_generation_client
from app.media import MediaFile
from app.pipeline import ProgressEvent, run_pipeline
from app.prompts import SUPPORTED_MODELS, PipelineConfig, SettingsStore

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate a vehicle voice-over script.")
    parser.add_argument("--pdf", required=True, help="Vehicle configuration sheet (PDF)")
    parser.add_argument("--video", required=True, help="Vehicle video")
    parser.add_argument(
        "--model",
        choices=sorted(SUPPORTED_MODELS),
        default=None,
        help="Model id; defaults to the persisted selection",
    )
    parser.add_argument("--prompt1-file", help="Text file overriding the step 1 prompt")
    parser.add_argument("--prompt2-file", help="Text file overriding the step 2 prompt")
    parser.add_argument("--save-model", action="store_true", help="Persist --model as the default")
    parser.add_argument("--output-dir", help="Write step1.txt and step2.txt here")
    return parser


def _read_prompt(path: str | None) -> str | None:
    if not path:
        return None
    return Path(path).read_text(encoding="utf-8")


def _print_progress(event: ProgressEvent) -> None:
    print(f"[{event.stage.value}] {event.message}", flush=True)


def main(argv: list[str] | None = None, client: GenerationClient | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    args = _build_parser().parse_args(argv)
    settings = Settings.from_env()

    try:
        generation_client = client or build_generation_client(settings)
    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    store = SettingsStore(settings.settings_file)
    if args.model and args.save_model:
        store.save(args.model)
    try:
        prompt1 = _read_prompt(args.prompt1_file)
        prompt2 = _read_prompt(args.prompt2_file)
    except (OSError, UnicodeDecodeError) as exc:
        print(f"Error: cannot read prompt file: {exc}", file=sys.stderr)
        return 2
    config = PipelineConfig.build(args.model or store.load_model_id(), prompt1, prompt2)

    try:
        result = asyncio.run(
            run_pipeline(
                MediaFile.from_path(args.pdf),
                MediaFile.from_path(args.video),
                config,
                _print_progress,
                client=generation_client,
            )
        )
    except ServiceAuthError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        print(
            f"Check that your API key is valid and has access to model {exc.model_id}.",
            file=sys.stderr,
        )
        return 1
    except ScriptGenerationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print("\n=== Intermediate analysis draft ===\n")
    print(result.step1_output)
    print("\n=== Final voice-over script ===\n")
    print(result.step2_output)

    if args.output_dir:
        output_dir = Path(args.output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        (output_dir / "step1.txt").write_text(result.step1_output, encoding="utf-8")
        (output_dir / "step2.txt").write_text(result.step2_output, encoding="utf-8")
        logger.info("cli.outputs_written dir=%s", output_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
