"""Command-line interface for KTP extraction.

Provides subcommands for extracting a single card to JSON and for
processing a folder of card photographs into a CSV file.
"""

import argparse
import csv
import json
import sys
import time
from pathlib import Path

from ktp_ocr.errors import InvalidImageError, RecognitionFailedError
from ktp_ocr.extraction.document import ExtractedDocument
from ktp_ocr.ocr.tesseract_engine import TesseractEngine
from ktp_ocr.pipeline import ExtractionPipeline, load_image
from ktp_ocr.utils.config import AppConfig, load_config
from ktp_ocr.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.tiff", "*.tif", "*.bmp")
_META_COLUMNS = ["filename", "status", "processing_time_s", "error"]

EXIT_INVALID_IMAGE = 2
EXIT_RECOGNITION_FAILED = 3


def _find_images(input_dir: Path) -> list[Path]:
    """Find all supported image files in a directory.

    Args:
        input_dir: Directory to scan.

    Returns:
        Sorted list of image paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def _build_components(
    config: AppConfig | None = None,
) -> tuple[ExtractionPipeline, TesseractEngine]:
    if config is None:
        config = load_config()
    pipeline = ExtractionPipeline.from_config(config)
    engine = TesseractEngine.from_config(config.ocr)
    return pipeline, engine


def extract_single(
    file_path: Path,
    include_raw: bool = False,
    config: AppConfig | None = None,
) -> dict[str, object]:
    """Extract the fields of one card photograph.

    Args:
        file_path: Path to the image file.
        include_raw: Add the recognized text under ``raw_text``.
        config: Loaded configuration. Defaults to ``configs/config.yaml``.

    Returns:
        Dictionary with ``filename``, ``fields`` and optionally
        ``raw_text``.

    Raises:
        InvalidImageError: If the file is not a usable image.
        RecognitionFailedError: If Tesseract did not complete.
    """
    pipeline, engine = _build_components(config)
    result = pipeline.run_with_engine(load_image(file_path), engine)

    output: dict[str, object] = {
        "filename": file_path.name,
        "fields": result.document.to_dict(),
    }
    if include_raw:
        output["raw_text"] = result.raw_text
    return output


def process_folder(
    input_dir: Path,
    output_csv: Path,
    verbose: bool = False,
    config: AppConfig | None = None,
) -> dict[str, int]:
    """Extract every card photograph in a folder and write a CSV.

    A file that fails is recorded as a ``failed`` row and the batch
    continues.

    Args:
        input_dir: Directory containing image files.
        output_csv: Path for the output CSV file.
        verbose: Print per-file progress.
        config: Loaded configuration. Defaults to ``configs/config.yaml``.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    files = _find_images(input_dir)
    if not files:
        logger.warning("No images found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    pipeline, engine = _build_components(config)
    logger.info("Found %d images to process", len(files))

    rows: list[dict[str, object]] = []
    successful = 0
    failed = 0

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Processing [{i}/{len(files)}]: {file_path.name}")

        start_time = time.time()
        row: dict[str, object] = {"filename": file_path.name}
        try:
            result = pipeline.run_with_engine(load_image(file_path), engine)
        except (InvalidImageError, RecognitionFailedError) as exc:
            logger.error("Failed to process %s: %s", file_path.name, exc)
            row.update(status="failed", error=str(exc))
            failed += 1
        else:
            row.update(status="success", error=None)
            row.update(result.document.to_dict())
            successful += 1
        row["processing_time_s"] = round(time.time() - start_time, 2)
        rows.append(row)

    _write_csv(rows, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": successful, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(rows: list[dict[str, object]], output_path: Path) -> None:
    """Write one row per image, with a column for every KTP field."""
    columns = _META_COLUMNS + ExtractedDocument.field_names()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(rows)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def format_table(fields: dict[str, str | None]) -> str:
    """Render extracted fields as aligned ``label: value`` lines.

    Absent fields are hidden; RT and RW share one row.
    """
    rows = ExtractedDocument(**fields).display_rows()
    if not rows:
        return "No fields extracted."
    width = max(len(label) for label, _ in rows)
    return "\n".join(f"{label.ljust(width)} : {value}" for label, value in rows)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="KTP identity card OCR",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c", "--config", type=Path, default=None, help="YAML configuration file"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    single_parser = subparsers.add_parser("extract", help="Extract a single card")
    single_parser.add_argument("file", type=Path, help="Card image to process")
    single_parser.add_argument(
        "--raw", action="store_true", help="Include the recognized text"
    )
    single_parser.add_argument(
        "--table", action="store_true", help="Print a table instead of JSON"
    )
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of cards")
    batch_parser.add_argument("input_dir", type=Path, help="Directory with images")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    args = parser.parse_args(argv)

    config = load_config(args.config)
    # stdout carries the JSON output
    setup_logging(config.log_level, stream=sys.stderr)

    if args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        try:
            result = extract_single(args.file, args.raw, config)
        except InvalidImageError as exc:
            print(f"Error: invalid image: {exc}", file=sys.stderr)
            sys.exit(EXIT_INVALID_IMAGE)
        except RecognitionFailedError as exc:
            print(f"Error: recognition did not complete: {exc}", file=sys.stderr)
            sys.exit(EXIT_RECOGNITION_FAILED)

        if args.table:
            output_str = format_table(result["fields"])
            if args.raw:
                output_str += f"\n\nRaw OCR Text:\n{result['raw_text']}"
        else:
            output_str = json.dumps(result, indent=2)

        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    elif args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, args.verbose, config)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
