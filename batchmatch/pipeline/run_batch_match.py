"""
Command-line runner for BatchMatch.

Matches one OCR capture (text or text file) against a batch list and
prints or saves the classification.
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..ingestion.batch_loader import load_batch_records
from ..ingestion.batch_record import BatchRecord
from ..match.engine import BatchMatchEngine
from ..normalize.config import (DEFAULT_CONFIG_PATH, get_default_matching_config, load_matching_config,
                                save_matching_config, validate_matching_config)
from ..reporting.match_report import build_match_report, save_match_report

logger = logging.getLogger(__name__)


class BatchMatchPipeline:
    """
    Runs a single capture through loading, matching and reporting.
    """

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH, overrides: Optional[Dict] = None):
        """
        Initialize pipeline with configuration.

        Args:
            config_path: Path to configuration file
            overrides: Matching section overrides from the command line

        Raises:
            ValueError: If the resulting configuration is invalid
        """
        self.config = load_matching_config(config_path)
        if overrides:
            self.config["matching"].update(overrides)

        if not validate_matching_config(self.config):
            raise ValueError(f"Invalid matching configuration: {config_path}")

        self.engine = BatchMatchEngine(self.config)
        logger.info("Initialized BatchMatch pipeline")

    def run(self, batches: List[BatchRecord], extracted_text: str,
            ocr_confidence: Optional[float] = None,
            output_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Match a capture and optionally save the report.

        Args:
            batches: Candidate batches
            extracted_text: Raw OCR text
            ocr_confidence: OCR confidence, if known
            output_path: Report destination (.csv or .json)

        Returns:
            Match report dictionary
        """
        start_time = time.time()

        try:
            result = self.engine.match(batches, extracted_text, ocr_confidence=ocr_confidence)
            label_fields = self.engine.extract_label_fields(extracted_text)

            report = build_match_report(result, extracted_text, label_fields)
            report["duration"] = time.time() - start_time
            report["batch_count"] = len(batches)

            if output_path:
                save_match_report(result, output_path, extracted_text, label_fields)

            return report
        finally:
            self.engine.dispose()


def _read_text(args: argparse.Namespace) -> str:
    if args.text is not None:
        return args.text
    return Path(args.text_file).read_text()


def main(argv: Optional[List[str]] = None):
    """Main entry point for BatchMatch."""
    parser = argparse.ArgumentParser(description="BatchMatch OCR Batch Confirmation")
    text_group = parser.add_mutually_exclusive_group()
    text_group.add_argument("--text", help="OCR text of the capture")
    text_group.add_argument("--text-file", help="File containing the OCR text")
    parser.add_argument("--batches", help="Batch list (CSV, JSON records or session payload)")
    parser.add_argument("--session", help="Session label for batch files without one")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Configuration file path")
    parser.add_argument("--threshold", type=float, help="Identifier similarity threshold")
    parser.add_argument("--floor", type=float, help="Nearest match similarity floor")
    parser.add_argument("--ocr-confidence", type=float, help="OCR confidence of the capture")
    parser.add_argument("--output", help="Report output path (.csv or .json)")
    parser.add_argument("--dump-config", help="Write the default configuration to this path and exit")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--log-file", help="Also write logs to this file")

    args = parser.parse_args(argv)

    # Setup logging
    handlers = [logging.StreamHandler()]
    if args.log_file:
        Path(args.log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(args.log_file))

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers
    )

    if args.dump_config:
        if not save_matching_config(get_default_matching_config(), args.dump_config):
            sys.exit(1)
        return

    if not args.batches or (args.text is None and args.text_file is None):
        parser.error("--batches and one of --text/--text-file are required")

    overrides = {}
    if args.threshold is not None:
        overrides["identifier_threshold"] = args.threshold
    if args.floor is not None:
        overrides["nearest_match_floor"] = args.floor

    try:
        batches = load_batch_records(args.batches, args.session)
        pipeline = BatchMatchPipeline(args.config, overrides)
        report = pipeline.run(batches, _read_text(args), args.ocr_confidence, args.output)

        stats = report["statistics"]

        # Print summary
        print("\n" + "="*50)
        print("BATCH MATCH SUMMARY")
        print("="*50)
        print(f"Candidate Batches: {report['batch_count']:,}")
        print(f"Match Type: {stats['match_type']}")
        for match in report["exact_matches"] or report["nearest_matches"]:
            print(f"  {match['identifier']}: {int(match['similarity'] * 100)}% "
                  f"(expiry {'found' if match['expiry_valid'] else 'not found'})")
        print(f"Auto Confirmable: {stats['auto_confirmable']}")
        print(f"Duration: {report['duration'] * 1000:.1f} ms")
        print("="*50)

    except (OSError, ValueError) as e:
        logger.error(f"Batch matching failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
