#!/usr/bin/env python3
"""Command-line interface for ingesting and scoring a single submission."""

import argparse
import json
import logging
import sys
from pathlib import Path

import yaml

from evalent.libs.config_loader import load_all_configs
from evalent.tools.intake.webhook import receive_submission
from evalent.tools.storage.store import YamlDirectoryStore
from .pipeline import ScoringPipeline

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
LOG = logging.getLogger(__name__)


def main():
    """Main entry point for evalent-score command."""
    parser = argparse.ArgumentParser(
        description='Score admissions assessment submissions',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Store a webhook payload as a pending submission, then score it
  evalent-score --data-dir data/ ingest payload.json --form-id 2401 --form-submission-id 58812 --score

  # Score (or re-score) one stored submission
  evalent-score --data-dir data/ score 0b8e7c1e-6f3d-4d55-9b0f-1f1c8a0f4e21

  # Use a different config directory
  evalent-score --data-dir data/ --config-dir my_config/ score <submission-id>
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
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    score_parser = subparsers.add_parser('score', help='Run the scoring pipeline for a submission')
    score_parser.add_argument('submission_id', help='Id of the stored submission')

    ingest_parser = subparsers.add_parser('ingest', help='Store a raw webhook payload as a pending submission')
    ingest_parser.add_argument('payload', type=Path, help='JSON file with the raw answer map')
    ingest_parser.add_argument('--form-id', required=True, help='Form id the answers came from')
    ingest_parser.add_argument('--form-submission-id', required=True, help="The form provider's submission id")
    ingest_parser.add_argument('--score', action='store_true', help='Score the submission straight away')

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if not args.data_dir.is_dir():
        LOG.error(f"Data directory does not exist: {args.data_dir}")
        sys.exit(1)

    try:
        configs = load_all_configs(args.config_dir)
        store = YamlDirectoryStore(args.data_dir)
    except Exception as e:
        LOG.error(f"Failed to initialize: {e}")
        sys.exit(1)

    submission_id = getattr(args, 'submission_id', None)
    if args.command == 'ingest':
        if not args.payload.is_file():
            LOG.error(f"Payload file does not exist: {args.payload}")
            sys.exit(1)
        try:
            with open(args.payload, 'r') as f:
                raw_answers = json.load(f)
            result = receive_submission(store, args.form_id, args.form_submission_id, raw_answers)
        except Exception as e:
            LOG.error(f"Intake failed: {e}")
            sys.exit(1)

        print(yaml.dump(result.model_dump(mode='json'), default_flow_style=False, sort_keys=False))
        if not args.score or result.duplicate:
            return
        submission_id = result.submission_id

    pipeline = ScoringPipeline(configs, store)
    outcome = pipeline.run(submission_id)

    print(f"\n{'='*50}")
    print(f"Scoring {'Complete' if outcome.success else 'Failed'}")
    print(f"{'='*50}")
    print(yaml.dump(outcome.to_dict(), default_flow_style=False, sort_keys=False, allow_unicode=True))

    if not outcome.success:
        sys.exit(1)


if __name__ == "__main__":
    main()
