#!/usr/bin/env python3
"""Command-line interface for re-scoring every pending or errored submission."""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from evalent.libs.config_loader import load_all_configs
from evalent.tools.storage.store import YamlDirectoryStore
from .batch_scorer import BatchScorer
from .status import ProcessingStatus

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
LOG = logging.getLogger(__name__)


def main():
    """Main entry point for evalent-score-batch command."""
    parser = argparse.ArgumentParser(
        description='Score all waiting submissions in parallel',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Score every pending or errored submission
  evalent-score-batch --data-dir data/

  # Only retry submissions that failed
  evalent-score-batch --data-dir data/ --status error

  # Recover submissions left mid-run by a crashed process
  evalent-score-batch --data-dir data/ --status scoring --status ai_evaluation

  # More concurrent pipeline runs, summary to a specific file
  evalent-score-batch --data-dir data/ --max-threads 8 --summary scoring_results.yaml
        """
    )
    parser.add_argument(
        '--data-dir', '-d',
        type=Path,
        required=True,
        help='Data directory holding schools, students, grade configs, answer keys and submissions'
    )
    parser.add_argument(
        '--config-dir', '-c',
        type=str,
        default=None,
        help='Directory of YAML config files (default: project config/)'
    )
    parser.add_argument(
        '--status',
        choices=[s.value for s in ProcessingStatus],
        action='append',
        default=None,
        help='Status to select (repeatable; default: pending and error)'
    )
    parser.add_argument(
        '--summary', '-o',
        type=Path,
        default=None,
        help='Path to save summary YAML file (default: scoring_summary_TIMESTAMP.yaml in data dir)'
    )
    parser.add_argument(
        '--max-threads', '-t',
        type=int,
        default=None,
        help='Maximum number of concurrent pipeline runs (overrides config value)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not args.data_dir.is_dir():
        LOG.error(f"Data directory does not exist: {args.data_dir}")
        sys.exit(1)

    try:
        configs = load_all_configs(args.config_dir)
        store = YamlDirectoryStore(args.data_dir)
        scorer = BatchScorer(configs, store, max_concurrent=args.max_threads)
    except Exception as e:
        LOG.error(f"Failed to initialize batch scorer: {e}")
        sys.exit(1)

    if args.status:
        submission_ids = scorer.find_submission_ids([ProcessingStatus(s) for s in args.status])
    else:
        submission_ids = scorer.find_submission_ids()

    results = scorer.score_all(submission_ids)
    if not results:
        LOG.error("No submissions were scored")
        sys.exit(1)

    if args.summary is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        summary_path = args.data_dir / f"scoring_summary_{timestamp}.yaml"
    else:
        summary_path = args.summary

    try:
        scorer.save_summary(results, summary_path)
    except Exception as e:
        LOG.error(f"Failed to save summary: {e}")

    successful = [r for r in results if r.success]
    failed = [r for r in results if not r.success]

    print(f"\n{'='*60}")
    print("Batch Scoring Complete")
    print(f"{'='*60}")
    print(f"Total submissions: {len(results)}")
    print(f"Successfully scored: {len(successful)}")
    print(f"Failed: {len(failed)}")

    if successful:
        print("\nRecommendations:")
        for r in successful:
            rec = r.recommendation
            print(f"  {r.submission_id}: {rec.recommendation_band.value} ({rec.overall_academic_pct}%)")

    if failed:
        print("\nFailed submissions:")
        for r in failed:
            print(f"  {r.submission_id}: {r.error}")

    print(f"\nSummary saved to: {summary_path}")

    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
