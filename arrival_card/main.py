from __future__ import annotations

import argparse
import base64
import json
from datetime import datetime
from pathlib import Path

from .automation import submit_arrival_card
from .config import load_config
from .models import ApplicantForm, ProgressEvent
from .utils.logging_utils import build_logger, mask_passport

DATA_URL_PREFIX = "data:image/png;base64,"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="arrival-card", description="Submit an All Indonesia arrival card.")
    parser.add_argument("applicant", type=Path, help="JSON file with the applicant form")
    return parser.parse_args(argv)


def load_applicant(path: Path) -> ApplicantForm:
    with path.open(encoding="utf-8") as handle:
        return ApplicantForm.from_dict(json.load(handle))


def write_qr(image_data: str, target: Path) -> Path | None:
    if not image_data.startswith(DATA_URL_PREFIX):
        return None
    target.write_bytes(base64.b64decode(image_data[len(DATA_URL_PREFIX):]))
    return target


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    run_id = datetime.now().strftime("%Y%m%d_%H%M%S")

    try:
        config = load_config()
        form = load_applicant(args.applicant)
    except (ValueError, OSError) as exc:
        print(f"Config error: {exc}")
        return 2

    run_dir = config.runs_dir / run_id
    logger = build_logger(run_dir / "run.log")
    logger.info("Starting arrival card run_id=%s", run_id)
    logger.info("Headless=%s Portal=%s", config.headless, config.portal_url)
    logger.info("Passport ending with %s", mask_passport(form.passport_number))

    def _on_progress(event: ProgressEvent) -> None:
        print(f"[{event.progress:3d}%] {event.message}")

    result = submit_arrival_card(form, config, on_progress=_on_progress, logger=logger, run_dir=run_dir)

    run_dir.mkdir(parents=True, exist_ok=True)
    payload = result.to_dict()
    (run_dir / "result.json").write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

    if result.ok and result.artifact is not None:
        qr_path = write_qr(result.artifact.image_data, run_dir / "qr.png")
        print("SUCCESS")
        print(f"Arrival card: {result.artifact.arrival_card_number or 'unknown'}")
        if qr_path is not None:
            print(f"QR code: {qr_path}")
        print(f"Artifacts: {run_dir}")
        return 0

    error = payload["error"]
    print("FAILED")
    print(f"Reason [{error['code']}]: {error['message']}")
    print(f"Fill the form manually at {result.fallback_url}")
    print(f"Artifacts: {run_dir}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
