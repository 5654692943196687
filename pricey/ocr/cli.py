"""CLI entry point for the receipt extraction pipeline."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv

from .config import load_config, validate_config
from .db import JobQueueDB, ResultPersisterDB
from .errors import ConfigurationError, PipelineError
from .logging_config import setup_logging
from .models import ReceiptJob
from .providers import create_provider
from .reconcile import apply_reconciliation


def main(argv: list[str] | None = None) -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog="pricey-ocr",
        description="Receipt extraction: OCR / vision model -> structured receipt data",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to the configuration file (TOML)",
    )

    sub = parser.add_subparsers(dest="command")

    # extract
    extract_parser = sub.add_parser("extract", help="Extract one receipt image now")
    extract_parser.add_argument("--image", type=str, required=True, help="Receipt image")
    extract_parser.add_argument(
        "--text", type=str, default=None, metavar="FILE",
        help="Use existing OCR text instead of running Tesseract",
    )
    extract_parser.add_argument("--json", action="store_true", help="Print JSON")

    # submit
    submit_parser = sub.add_parser("submit", help="Queue a receipt for extraction")
    submit_parser.add_argument("receipt_id", type=str)
    submit_parser.add_argument(
        "image_ref", type=str, help="Image path relative to storage.image_dir"
    )

    # status
    status_parser = sub.add_parser("status", help="Show a job and its result")
    status_parser.add_argument("receipt_id", type=str)
    status_parser.add_argument("--json", action="store_true", help="Print JSON")

    # worker
    sub.add_parser("worker", help="Process queued receipts until interrupted")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    config = load_config(args.config)
    setup_logging(config.logging.level, config.logging.json)
    try:
        validate_config(config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    match args.command:
        case "extract":
            asyncio.run(_cmd_extract(config, args))
        case "submit":
            _cmd_submit(config, args)
        case "status":
            _cmd_status(config, args)
        case "worker":
            try:
                asyncio.run(_cmd_worker(config))
            except KeyboardInterrupt:
                print("Stopped.")


def _print_receipt(receipt) -> None:
    print(f"Store:      {receipt.store_name or '-'}")
    print(f"Date:       {receipt.purchase_date or '-'}")
    total = f"{receipt.total_amount} {receipt.currency}" if receipt.total_amount is not None else "-"
    print(f"Total:      {total}")
    print(f"Confidence: {receipt.confidence:.0%}")
    print(f"Reconciled: {'yes' if receipt.reconciled else 'no'}")
    if receipt.items:
        print(f"\nItems ({len(receipt.items)}):")
        for item in receipt.items:
            qty = f"{item.quantity} x " if item.quantity > 1 else ""
            print(f"  {qty}{item.name:<30} {item.price:>9}")


async def _cmd_extract(config, args) -> None:
    try:
        image_bytes = Path(args.image).read_bytes()
        provider = create_provider(config)

        text = None
        text_confidence = None
        if args.text:
            text = Path(args.text).read_text(encoding="utf-8")
        elif provider.requires_text:
            from .recognition import TesseractOCR

            ocr = TesseractOCR(language=config.ocr.language, max_width=config.ocr.max_width)
            result = await asyncio.to_thread(ocr.recognize, image_bytes)
            text, text_confidence = result.text, result.confidence

        receipt = await provider.extract(
            image_bytes, text, text_confidence=text_confidence
        )
    except (OSError, PipelineError) as e:
        print(f"Extraction failed: {e}", file=sys.stderr)
        sys.exit(1)

    receipt = apply_reconciliation(receipt, config.extraction.reconcile_tolerance)
    if args.json:
        print(json.dumps(receipt.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_receipt(receipt)


def _cmd_submit(config, args) -> None:
    queue = JobQueueDB(config.database.path)
    try:
        job = ReceiptJob(id=args.receipt_id, image_ref=args.image_ref)
        if queue.enqueue(job.id, job.image_ref):
            print(f"Queued {job.id}")
        else:
            print(f"{job.id} is already queued or done; nothing to do")
    finally:
        queue.close()


def _cmd_status(config, args) -> None:
    queue = JobQueueDB(config.database.path)
    persister = ResultPersisterDB(config.database.path)
    try:
        job = queue.get(args.receipt_id)
        if job is None:
            print(f"No job with id {args.receipt_id}", file=sys.stderr)
            sys.exit(1)
        receipt = persister.get_receipt(job.id)
    finally:
        queue.close()
        persister.close()

    if args.json:
        data = {
            "id": job.id,
            "image_ref": job.image_ref,
            "status": job.status.value,
            "attempts": job.attempts,
            "last_error": job.last_error,
            "updated_at": job.updated_at.isoformat(),
            "receipt": receipt.to_dict() if receipt else None,
        }
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return

    print(f"Job {job.id}: {job.status.value} (attempts: {job.attempts})")
    if job.last_error:
        print(f"Last error: {job.last_error}")
    if receipt is not None:
        print()
        _print_receipt(receipt)


async def _cmd_worker(config) -> None:
    from .orchestrator import JobOrchestrator
    from .scheduler import MaintenanceScheduler
    from .storage import FileSystemImageStore

    provider = create_provider(config)
    ocr = None
    if provider.requires_text:
        from .recognition import TesseractOCR

        ocr = TesseractOCR(language=config.ocr.language, max_width=config.ocr.max_width)

    queue = JobQueueDB(config.database.path)
    persister = ResultPersisterDB(config.database.path)
    orchestrator = JobOrchestrator(
        queue=queue,
        persister=persister,
        images=FileSystemImageStore(config.storage.image_dir),
        provider=provider,
        ocr=ocr,
        config=config.orchestrator,
        reconcile_tolerance=config.extraction.reconcile_tolerance,
    )
    scheduler = MaintenanceScheduler(queue, config.orchestrator)
    scheduler.start()
    print(f"Worker running ({config.orchestrator.concurrency} slots). Ctrl+C to stop.")
    try:
        await orchestrator.run()
    finally:
        scheduler.stop()
        queue.close()
        persister.close()
