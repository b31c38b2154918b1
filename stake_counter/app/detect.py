"""Command line entry point: count stakes in a photo and optionally review doubts."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Callable, Optional

import cv2

from stake_counter.adapters.image_source import load_image
from stake_counter.adapters.onnx_engine import ProgressEvent, load_engine
from stake_counter.app.settings import AppSettings, load_settings, setup_logging
from stake_counter.core.errors import StakeCounterError
from stake_counter.core.review import ReviewController, ReviewState
from stake_counter.core.session import DetectionSession
from stake_counter.services.pipeline import DetectionPipeline
from stake_counter.utils.annotate import annotate_image

LOGGER = logging.getLogger(__name__)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Stake Counter - detect and count stakes in a photo")
    parser.add_argument("--image", type=str, required=True, help="Path to the input photo")
    parser.add_argument("--model", type=str, default=None, help="Path to ONNX weights file")
    parser.add_argument("--conf", type=float, default=None, help="Minimum confidence to keep a detection")
    parser.add_argument("--doubt", type=float, default=None, help="Confidence below which detections need review")
    parser.add_argument("--iou", type=float, default=None, help="IoU threshold for NMS")
    parser.add_argument("--input-size", type=int, default=None, help="Square model input size")
    parser.add_argument("--review", action="store_true", help="Review doubtful detections interactively")
    parser.add_argument("--output", type=str, default=None, help="Path to write the annotated image")
    parser.add_argument("--json", action="store_true", help="Print the final session as JSON")
    parser.add_argument("--log-format", choices=["text", "json"], default=None, help="Logging format")
    return parser


def resolve_settings(args: argparse.Namespace) -> AppSettings:
    overrides = {}
    if args.model:
        overrides["model_path"] = Path(args.model)
    if args.conf is not None:
        overrides["confidence_threshold"] = args.conf
    if args.doubt is not None:
        overrides["doubt_threshold"] = args.doubt
    if args.iou is not None:
        overrides["iou_threshold"] = args.iou
    if args.input_size:
        overrides["model_input_size"] = args.input_size
    if args.log_format:
        overrides["log_format"] = args.log_format

    settings = load_settings(**overrides)
    return settings


def _log_progress(event: ProgressEvent) -> None:
    LOGGER.debug("Model load progress %d%%: %s", event.percent, event.message)


def _prompt_decision(position: int, total: int, confidence: float) -> str:
    while True:
        raw = input(f"[{position}/{total}] doubt conf={confidence:.2f} - accept (a), reject (r), stop (q): ").strip().lower()
        if raw in {"a", "r", "q"}:
            return raw
        print("Please answer 'a', 'r' or 'q'.")


def review_doubts(
    controller: ReviewController,
    prompt: Callable[[int, int, float], str] = _prompt_decision,
) -> ReviewState:
    """Drive a review pass from the terminal until done or the operator stops."""

    if not controller.start_review():
        print("No doubts to review.")
        return controller.state
    while controller.is_reviewing:
        current = controller.current()
        if current is None:
            controller.refresh()
            break
        position, total = controller.progress()
        answer = prompt(position, total, current.confidence)
        if answer == "a":
            controller.accept(current.id)
        elif answer == "r":
            controller.reject(current.id)
        else:
            LOGGER.info("Review stopped with %d doubts pending", controller.session.pending_doubts)
            break
    return controller.state


def summarize(session: DetectionSession) -> str:
    return (
        f"Stakes: {session.total_confirmed} | IA base: {session.ia_base} | "
        f"accepted: {session.manually_accepted} | added: {session.manually_added} | "
        f"pending doubts: {session.pending_doubts} | rejected: {len(session.rejected)}"
    )


def run_detection(args: argparse.Namespace) -> int:
    settings = resolve_settings(args)
    setup_logging(settings)

    try:
        image = load_image(args.image)
        engine = load_engine(settings.model_path, settings.onnx_providers, progress=_log_progress)
        result = DetectionPipeline(engine, settings).analyze(image)
    except StakeCounterError as exc:
        LOGGER.error("Analysis failed: %s", exc)
        return 1

    session = result.session
    if args.review:
        controller = ReviewController(
            session,
            crop_padding=settings.review_crop_padding,
            crop_max_size=settings.review_crop_max_size,
        )
        review_doubts(controller)

    print(summarize(session))

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        annotated = annotate_image(image, session.snapshot())
        cv2.imwrite(str(output_path), cv2.cvtColor(annotated, cv2.COLOR_RGB2BGR))
        LOGGER.info("Annotated image saved to %s", output_path)

    if args.json:
        snapshot = session.snapshot()
        payload = {
            "counters": snapshot.counters(),
            "confirmed": [det.to_dict() for det in snapshot.confirmed],
            "doubt": [det.to_dict() for det in snapshot.doubt],
            "rejected": [det.to_dict() for det in snapshot.rejected],
        }
        print(json.dumps(payload, indent=2))
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    sys.exit(run_detection(args))


if __name__ == "__main__":  # pragma: no cover
    main()
