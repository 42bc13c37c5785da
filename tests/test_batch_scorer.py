"""Tests for batch scoring and the command-line entry points."""

import json
import tempfile
from pathlib import Path

import pytest
import yaml
from unittest.mock import patch

from evalent.tools.scoring import batch_cli, cli
from evalent.tools.scoring.batch_scorer import BatchScorer
from evalent.tools.scoring.models import Submission
from evalent.tools.scoring.status import ProcessingStatus
from evalent.tools.storage.store import YamlDirectoryStore
from tests.fakes import FakeJudge, FakeMailer, routing_judge


@pytest.fixture
def scorer(sample_config, store, fake_judge, fake_mailer):
    store.insert_submission(Submission(id="sub-2", school_id="school-1", grade=7,
                                       jotform_submission_id="js-2",
                                       raw_answers=store.get_submission("sub-1").raw_answers))
    return BatchScorer(sample_config, store, judge=fake_judge, mailer=fake_mailer)


def test_batch_scorer_uses_config_threads(sample_config, store):
    """Test that BatchScorer uses the thread count from config."""
    scorer = BatchScorer(sample_config, store, judge=FakeJudge(), mailer=FakeMailer())
    assert scorer.max_concurrent == 2


def test_batch_scorer_max_concurrent_override(sample_config, store):
    scorer = BatchScorer(sample_config, store, judge=FakeJudge(), mailer=FakeMailer(), max_concurrent=6)
    assert scorer.max_concurrent == 6


def test_find_submission_ids(scorer, store):
    """Test that pending and errored submissions are selected."""
    store.update_submission("sub-2", {"processing_status": ProcessingStatus.ERROR})

    assert scorer.find_submission_ids() == ["sub-1", "sub-2"]
    assert scorer.find_submission_ids([ProcessingStatus.ERROR]) == ["sub-2"]


@pytest.mark.asyncio
async def test_score_interrupted_submissions(scorer, store):
    """Test that submissions left mid-run can be selected and re-scored."""
    store.update_submission("sub-2", {"processing_status": ProcessingStatus.SCORING})
    store.update_submission("sub-2", {"processing_status": ProcessingStatus.AI_EVALUATION})

    assert scorer.find_submission_ids() == ["sub-1"]
    interrupted = scorer.find_submission_ids([ProcessingStatus.SCORING, ProcessingStatus.AI_EVALUATION])
    assert interrupted == ["sub-2"]

    results = await scorer.score_all_async(interrupted)

    assert [r.success for r in results] == [True]
    assert store.get_submission("sub-2").processing_status is ProcessingStatus.COMPLETE


@pytest.mark.asyncio
async def test_score_all(scorer, store, fake_mailer):
    """Test scoring every waiting submission."""
    results = await scorer.score_all_async()

    assert [r.submission_id for r in results] == ["sub-1", "sub-2"]
    assert all(r.success for r in results)
    assert len(fake_mailer.sent) == 2
    assert scorer.find_submission_ids() == []


@pytest.mark.asyncio
async def test_score_all_nothing_to_do(scorer):
    await scorer.score_all_async()
    assert await scorer.score_all_async() == []


@pytest.mark.asyncio
async def test_score_all_reports_failures(scorer, store):
    store.insert_submission(Submission(id="sub-3", grade=9))
    results = await scorer.score_all_async()

    failed = [r for r in results if not r.success]
    assert [r.submission_id for r in failed] == ["sub-3"]
    assert store.get_submission("sub-3").processing_status is ProcessingStatus.ERROR


def test_save_summary(scorer):
    """Test writing the YAML summary."""
    results = scorer.score_all()

    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "summary.yaml"
        scorer.save_summary(results, path)
        with open(path) as f:
            summary = yaml.safe_load(f)

    stats = summary["scoring_summary"]
    assert stats["total_submissions"] == 2
    assert stats["successful"] == 2
    assert stats["failed"] == 0
    assert stats["average_overall_pct"] == 78.3
    assert stats["recommendation_bands"] == {"Ready to admit": 2}
    assert [s["submission_id"] for s in summary["submissions"]] == ["sub-1", "sub-2"]


def _write_data_dir(root: Path, answer_keys):
    (root / "answer_keys").mkdir()
    with open(root / "answer_keys" / "grade7.csv", "w") as f:
        f.write("grade,question_number,domain,question_type,label,option_a,option_b,option_c,option_d,correct_answer\n")
        for key in answer_keys:
            if key.question_type.value == "MCQ":
                f.write(f"7,{key.question_number},{key.domain.value},MCQ,{key.label},"
                        f"{key.option_a},{key.option_b},{key.option_c},{key.option_d},{key.correct_answer}\n")
    with open(root / "grade_configs.yaml", "w") as f:
        yaml.dump([{"school_id": "school-1", "grade": 7, "jotform_form_id": "form-7"}], f)


class TestCLI:
    """Test the evalent-score and evalent-score-batch commands."""

    def test_ingest_and_score(self, answer_keys, raw_answers, sample_config):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _write_data_dir(root, answer_keys)
            payload = root / "payload.json"
            payload.write_text(json.dumps(raw_answers))

            def make_pipeline(configs, store):
                from evalent.tools.scoring.pipeline import ScoringPipeline
                return ScoringPipeline(sample_config, store, judge=FakeJudge(routing_judge), mailer=FakeMailer())

            argv = ["evalent-score", "--data-dir", str(root), "ingest", str(payload),
                    "--form-id", "form-7", "--form-submission-id", "js-77", "--score"]
            with patch("sys.argv", argv), patch.object(cli, "ScoringPipeline", side_effect=make_pipeline):
                cli.main()

            saved = YamlDirectoryStore(root).list_submissions()
            assert len(saved) == 1
            assert saved[0].jotform_submission_id == "js-77"
            assert saved[0].processing_status is ProcessingStatus.COMPLETE

    def test_missing_data_dir(self):
        argv = ["evalent-score", "--data-dir", "/nonexistent/data", "score", "sub-1"]
        with patch("sys.argv", argv):
            with pytest.raises(SystemExit) as exc:
                cli.main()
        assert exc.value.code == 1

    def test_score_unknown_submission_exits(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            argv = ["evalent-score", "--data-dir", tmpdir, "score", "nope"]
            with patch("sys.argv", argv), \
                    patch.object(cli, "ScoringPipeline") as mock_pipeline:
                mock_pipeline.return_value.run.return_value.success = False
                mock_pipeline.return_value.run.return_value.to_dict.return_value = {"error": "Submission not found"}
                with pytest.raises(SystemExit) as exc:
                    cli.main()
        assert exc.value.code == 1

    def test_batch_writes_summary(self, answer_keys, raw_answers, sample_config):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            _write_data_dir(root, answer_keys)
            YamlDirectoryStore(root).insert_submission(
                Submission(id="sub-1", school_id="school-1", grade=7, raw_answers=raw_answers))

            def make_scorer(configs, store, max_concurrent=None):
                return BatchScorer(sample_config, store, judge=FakeJudge(routing_judge),
                                   mailer=FakeMailer(), max_concurrent=max_concurrent)

            summary_path = root / "summary.yaml"
            argv = ["evalent-score-batch", "--data-dir", str(root), "--summary", str(summary_path)]
            with patch("sys.argv", argv), patch.object(batch_cli, "BatchScorer", side_effect=make_scorer):
                batch_cli.main()

            with open(summary_path) as f:
                summary = yaml.safe_load(f)
            assert summary["scoring_summary"]["successful"] == 1
