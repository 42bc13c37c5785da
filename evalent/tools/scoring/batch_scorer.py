"""Re-score many submissions concurrently using async/await."""

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

import yaml
from tqdm.asyncio import tqdm

from evalent.libs.config_loader import ConfigType, get_config
from evalent.tools.notify.mailer import Mailer
from evalent.tools.storage.store import SubmissionStore
from .judge import Judge
from .pipeline import PipelineOutcome, ScoringPipeline
from .status import ProcessingStatus

LOG = logging.getLogger(__name__)

RESCORABLE = (ProcessingStatus.PENDING, ProcessingStatus.ERROR)


class BatchScorer:
    """Run the scoring pipeline over every submission waiting in a store."""

    def __init__(self, configs: ConfigType, store: SubmissionStore,
                 judge: Optional[Judge] = None, mailer: Optional[Mailer] = None,
                 max_concurrent: Optional[int] = None):
        """
        Args:
            configs: Configuration dictionary
            store: Submission store to read and update
            judge: Optional judge override
            mailer: Optional mailer override
            max_concurrent: Maximum number of concurrent pipeline runs (overrides config)
        """
        self.configs = configs
        self.store = store
        self.pipeline = ScoringPipeline(configs, store, judge=judge, mailer=mailer)

        if max_concurrent is not None:
            self.max_concurrent = max_concurrent
        else:
            self.max_concurrent = get_config("tools.max_threads", configs, default=4)

        LOG.info("BatchScorer initialized with max_concurrent=%d", self.max_concurrent)

    def find_submission_ids(self, statuses: Iterable[ProcessingStatus] = RESCORABLE) -> List[str]:
        return [s.id for s in self.store.list_submissions(statuses)]

    async def score_all_async(self, submission_ids: Optional[List[str]] = None) -> List[PipelineOutcome]:
        """
        Score submissions with bounded concurrency.

        Args:
            submission_ids: Submissions to score (defaults to every pending or errored one)

        Returns:
            Outcomes sorted by submission id
        """
        if submission_ids is None:
            submission_ids = self.find_submission_ids()
        if not submission_ids:
            LOG.warning("No submissions to score")
            return []

        LOG.info("Scoring %d submissions", len(submission_ids))
        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def score_with_semaphore(submission_id: str) -> PipelineOutcome:
            async with semaphore:
                return await self.pipeline.run_async(submission_id)

        tasks = [score_with_semaphore(sid) for sid in submission_ids]
        results = []
        for coro in tqdm.as_completed(tasks, total=len(tasks), desc="Scoring submissions"):
            outcome = await coro
            results.append(outcome)
            if outcome.success:
                LOG.debug("Completed: %s - %s", outcome.submission_id,
                          outcome.recommendation.recommendation_band.value)
            else:
                LOG.warning("Failed: %s - %s", outcome.submission_id, outcome.error)

        results.sort(key=lambda r: r.submission_id)
        return results

    def score_all(self, submission_ids: Optional[List[str]] = None) -> List[PipelineOutcome]:
        """Synchronous wrapper for score_all_async."""
        return asyncio.run(self.score_all_async(submission_ids))

    def save_summary(self, results: List[PipelineOutcome], output_path: Path):
        """
        Save a scoring summary to a YAML file.

        Args:
            results: Pipeline outcomes
            output_path: Path to save summary file
        """
        successful = [r for r in results if r.success]
        failed = [r for r in results if not r.success]

        bands = {}
        for r in successful:
            band = r.recommendation.recommendation_band.value
            bands[band] = bands.get(band, 0) + 1

        summary = {
            'scoring_summary': {
                'timestamp': datetime.now().isoformat(),
                'total_submissions': len(results),
                'successful': len(successful),
                'failed': len(failed),
                'average_overall_pct': (
                    round(sum(r.recommendation.overall_academic_pct for r in successful) / len(successful), 1)
                    if successful else 0
                ),
                'recommendation_bands': bands,
            },
            'submissions': [r.to_dict() for r in results],
        }

        with open(output_path, 'w') as f:
            yaml.dump(summary, f, default_flow_style=False, sort_keys=False, allow_unicode=True)

        LOG.info("Summary saved to %s", output_path)
