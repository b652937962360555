import logging
import os

import git
import pytest

from ailog_cli.activity import ActivityEntry, ActivityLog, now_ms
from ailog_cli.attribution import (
    CHOICE_DETAILS,
    CHOICE_NO,
    CHOICE_YES,
    FLAG_FILENAME,
    MAX_PROMPT_ROUNDS,
    AttributionCoordinator,
    AttributionFlag,
    AttributionState,
    add_attribution_trailer,
    analyze_staged_changes,
    ask_until_decided,
)
from ailog_cli.config import Config
from ailog_cli.detectors.engine import DetectionEngine
from ailog_cli.errors import FlagError, RecorderError
from ailog_cli.git_client import get_staged_added_text
from ailog_cli.recorder import CommitRecorder
from ailog_cli.session import SessionStore
from tests.helpers import ADD_JS, AI_LIKE_PYTHON, HUMAN_LIKE_PYTHON, commit, stage


class FakePrompt:
    def __init__(self, *answers):
        self.answers = list(answers)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.answers.pop(0) if self.answers else CHOICE_NO


class Recorded:
    def __init__(self):
        self.calls = []

    def __call__(self, *args):
        self.calls.append(args)


class FakeRecorder:
    def __init__(self, fail=False):
        self.records = []
        self.fail = fail

    def record(self, record):
        if self.fail:
            raise RecorderError("database is locked")
        self.records.append(record)
        return True


@pytest.fixture
def flag(git_dir):
    return AttributionFlag.for_git_dir(git_dir)


@pytest.fixture
def session(git_dir):
    return SessionStore.for_git_dir(git_dir)


@pytest.fixture
def config():
    return Config()


def coordinator_for(repo, config, session, **kwargs):
    kwargs.setdefault("engine", DetectionEngine(activity_log=ActivityLog.for_git_dir(repo.git_dir),
                                                repo_root=repo.working_tree_dir))
    return AttributionCoordinator(repo, config, session, **kwargs)


class TestAttributionFlag:
    def test_lifecycle(self, flag):
        assert not flag.exists()
        stamp = flag.write()
        assert flag.exists()
        assert flag.read() == stamp
        assert flag.clear() is True
        assert not flag.exists()

    def test_clearing_absent_flag_is_silent(self, flag):
        assert flag.clear() is False
        assert flag.read() is None

    def test_double_write_refreshes(self, flag, git_dir):
        flag.write()
        flag.write()
        assert flag.exists()
        assert [p for p in os.listdir(git_dir) if "ATTRIBUTION" in p.upper()] == [FLAG_FILENAME]

    def test_consume_claims_once(self, flag):
        stamp = flag.write()
        assert flag.consume() == stamp
        assert flag.consume() is None
        assert not flag.exists()

    def test_consume_leaves_nothing_behind(self, flag, git_dir):
        flag.write()
        flag.consume()
        assert not [p for p in os.listdir(git_dir) if FLAG_FILENAME in p]

    def test_racing_consumers(self, flag):
        flag.write()
        other = AttributionFlag(flag.path)
        results = [flag.consume(), other.consume()]
        assert sum(r is not None for r in results) == 1


class TestTrailer:
    def test_appended(self):
        assert add_attribution_trailer("Fix bug\n", "Co-authored-by: A <a@b.c>") == \
            "Fix bug\n\nCo-authored-by: A <a@b.c>"

    def test_existing_trailer_kept(self):
        message = "Fix bug\n\nCo-authored-by: Someone <s@e.com>\n"
        assert add_attribution_trailer(message, "Co-authored-by: A <a@b.c>") == message


class TestPrompt:
    def test_yes(self):
        assert ask_until_decided(FakePrompt(CHOICE_YES), Recorded()) is True

    def test_no(self):
        assert ask_until_decided(FakePrompt(CHOICE_NO), Recorded()) is False

    def test_details_then_yes(self):
        details = Recorded()
        assert ask_until_decided(FakePrompt(CHOICE_DETAILS, CHOICE_YES), details) is True
        assert len(details.calls) == 1

    def test_bounded(self):
        ask = FakePrompt(*[CHOICE_DETAILS] * 10)
        details = Recorded()
        assert ask_until_decided(ask, details) is False
        assert ask.calls == MAX_PROMPT_ROUNDS
        assert len(details.calls) == MAX_PROMPT_ROUNDS


class TestAnalyzeStaged:
    def test_nothing_staged(self, repo):
        analysis = analyze_staged_changes(repo, DetectionEngine())
        assert analysis.files == []
        assert not analysis.has_ai_content

    def test_flags_ai_like_file(self, repo):
        stage(repo, "pkg/collector.py", AI_LIKE_PYTHON)
        stage(repo, "pkg/const.py", HUMAN_LIKE_PYTHON)
        analysis = analyze_staged_changes(repo, DetectionEngine())

        assert sorted(analysis.files) == ["pkg/collector.py", "pkg/const.py"]
        assert analysis.has_ai_content
        assert list(analysis.flagged) == ["pkg/collector.py"]
        assert analysis.results["pkg/const.py"].confidence == 0

    def test_activity_log_pushes_over_threshold(self, repo):
        path = stage(repo, "math.js", ADD_JS)
        log = ActivityLog.for_git_dir(repo.git_dir)
        log.append(ActivityEntry(str(path), now_ms(), "editor.action.inlineSuggest.commit"))

        engine = DetectionEngine(activity_log=log, repo_root=repo.working_tree_dir)
        result = analyze_staged_changes(repo, engine).results["math.js"]
        assert result.is_ai_generated
        assert result.confidence == 100

    def test_diff_failure_skips_only_that_file(self, repo, monkeypatch):
        stage(repo, "pkg/broken.py", AI_LIKE_PYTHON)
        stage(repo, "pkg/collector.py", AI_LIKE_PYTHON)

        def flaky(repo, path):
            if path == "pkg/broken.py":
                raise git.exc.GitCommandError("diff", 128)
            return get_staged_added_text(repo, path)

        monkeypatch.setattr("ailog_cli.attribution.get_staged_added_text", flaky)
        analysis = analyze_staged_changes(repo, DetectionEngine())

        assert sorted(analysis.files) == ["pkg/broken.py", "pkg/collector.py"]
        assert "pkg/broken.py" not in analysis.results
        assert analysis.results["pkg/collector.py"].is_ai_generated
        assert analysis.has_ai_content


class TestPreCommit:
    def test_yes_writes_flag(self, repo, config, session, flag):
        stage(repo, "collector.py", AI_LIKE_PYTHON)
        report = Recorded()
        coordinator = coordinator_for(repo, config, session)

        analysis = coordinator.pre_commit(FakePrompt(CHOICE_YES), report, Recorded())
        assert analysis.has_ai_content
        assert len(report.calls) == 1
        assert flag.exists()
        assert coordinator.state == AttributionState.AWAITING_DECISION

    def test_no_leaves_no_flag(self, repo, config, session, flag):
        stage(repo, "collector.py", AI_LIKE_PYTHON)
        coordinator = coordinator_for(repo, config, session)
        coordinator.pre_commit(FakePrompt(CHOICE_NO), Recorded(), Recorded())
        assert not flag.exists()
        assert coordinator.state == AttributionState.IDLE

    def test_details_rerenders(self, repo, config, session, flag):
        stage(repo, "collector.py", AI_LIKE_PYTHON)
        details = Recorded()
        coordinator_for(repo, config, session).pre_commit(FakePrompt(CHOICE_DETAILS, CHOICE_YES), Recorded(), details)
        assert len(details.calls) == 1
        assert details.calls[0][0].has_ai_content
        assert flag.exists()

    def test_human_change_is_not_prompted(self, repo, config, session, flag):
        stage(repo, "const.py", HUMAN_LIKE_PYTHON)
        ask = FakePrompt(CHOICE_YES)
        coordinator_for(repo, config, session).pre_commit(ask, Recorded(), Recorded())
        assert ask.calls == 0
        assert not flag.exists()

    def test_non_interactive_means_no(self, repo, config, session, flag):
        stage(repo, "collector.py", AI_LIKE_PYTHON)
        ask = FakePrompt(CHOICE_YES)
        report = Recorded()
        coordinator_for(repo, config, session).pre_commit(ask, report, Recorded(), interactive=False)
        assert ask.calls == 0
        assert len(report.calls) == 1
        assert not flag.exists()

    def test_manual_override_skips_detection(self, repo, config, session, flag):
        stage(repo, "collector.py", AI_LIKE_PYTHON)
        session.toggle()
        ask = FakePrompt(CHOICE_YES)
        assert coordinator_for(repo, config, session).pre_commit(ask, Recorded(), Recorded()) is None
        assert ask.calls == 0

    def test_stale_flag_is_cleared(self, repo, config, session, flag):
        flag.write()
        stage(repo, "const.py", HUMAN_LIKE_PYTHON)
        coordinator = coordinator_for(repo, config, session)
        assert coordinator.state == AttributionState.AWAITING_DECISION

        coordinator.pre_commit(FakePrompt(), Recorded(), Recorded())
        assert not flag.exists()
        assert coordinator.state == AttributionState.IDLE

    def test_threshold_from_config(self, repo, session, flag):
        stage(repo, "math.js", ADD_JS)
        config = Config(confidence_threshold=60)
        engine = DetectionEngine.from_config(config)
        coordinator_for(repo, config, session, engine=engine).pre_commit(FakePrompt(CHOICE_YES), Recorded(), Recorded())
        assert flag.exists()

    def test_flag_write_failure_is_not_fatal(self, repo, config, session, flag, monkeypatch, caplog):
        def fail(self):
            raise FlagError("Could not write attribution flag: disk full")

        monkeypatch.setattr(AttributionFlag, "write", fail)
        stage(repo, "collector.py", AI_LIKE_PYTHON)
        coordinator = coordinator_for(repo, config, session)

        with caplog.at_level(logging.ERROR, logger="ailog_cli.attribution"):
            analysis = coordinator.pre_commit(FakePrompt(CHOICE_YES), Recorded(), Recorded())

        assert analysis.has_ai_content
        assert not flag.exists()
        assert coordinator.state == AttributionState.IDLE
        assert "disk full" in caplog.text

    def test_stale_flag_removal_failure_is_not_fatal(self, repo, config, session, flag, monkeypatch, caplog):
        flag.write()

        def fail(self):
            raise FlagError("Could not remove attribution flag: read-only file system")

        monkeypatch.setattr(AttributionFlag, "clear", fail)
        stage(repo, "const.py", HUMAN_LIKE_PYTHON)
        coordinator = coordinator_for(repo, config, session)

        with caplog.at_level(logging.ERROR, logger="ailog_cli.attribution"):
            analysis = coordinator.pre_commit(FakePrompt(), Recorded(), Recorded())

        assert analysis.files == ["const.py"]
        assert coordinator.state == AttributionState.AWAITING_DECISION
        assert "read-only file system" in caplog.text


class TestPostCommit:
    def test_flag_marks_commit_as_ai(self, repo, config, session, flag):
        stage(repo, "collector.py", AI_LIKE_PYTHON)
        flag.write()
        new = commit(repo, "Add collector")
        recorder = FakeRecorder()

        outcome = coordinator_for(repo, config, session, recorder=recorder).post_commit()
        assert outcome.commit_hash == new.hexsha
        assert outcome.flag_present and outcome.is_ai_generated
        assert outcome.notes.endswith(config.attribution_string)
        assert not flag.exists()

        [record] = recorder.records
        assert record.commit_hash == new.hexsha
        assert record.is_ai_generated is True
        assert record.committer == "Test User"
        assert record.repo == "project"
        assert record.code_volume_delta == AI_LIKE_PYTHON.count("\n")

    def test_without_flag(self, repo, config, session):
        stage(repo, "const.py", HUMAN_LIKE_PYTHON)
        commit(repo, "Add constant")
        recorder = FakeRecorder()

        outcome = coordinator_for(repo, config, session, recorder=recorder).post_commit()
        assert outcome.is_ai_generated is False
        assert outcome.notes == "Add constant"
        assert recorder.records[0].is_ai_generated is False

    def test_git_history_untouched(self, repo, config, session, flag):
        stage(repo, "collector.py", AI_LIKE_PYTHON)
        flag.write()
        new = commit(repo, "Add collector")
        coordinator_for(repo, config, session, recorder=FakeRecorder()).post_commit()
        assert repo.head.commit.hexsha == new.hexsha
        assert "Co-authored-by" not in repo.head.commit.message

    def test_manual_override_is_consumed(self, repo, config, session, flag):
        stage(repo, "const.py", HUMAN_LIKE_PYTHON)
        commit(repo)
        session.toggle()

        outcome = coordinator_for(repo, config, session, recorder=FakeRecorder()).post_commit()
        assert outcome.is_ai_generated and outcome.override_used
        assert not outcome.flag_present
        assert "Co-authored-by" not in outcome.notes
        assert session.load().mark_next_commit is False

    def test_recorder_failure_is_not_fatal(self, repo, config, session, flag):
        stage(repo, "collector.py", AI_LIKE_PYTHON)
        flag.write()
        commit(repo)
        outcome = coordinator_for(repo, config, session, recorder=FakeRecorder(fail=True)).post_commit()
        assert outcome.is_ai_generated
        assert outcome.recorded is False
        assert not flag.exists()

    def test_recorded_once_per_hash(self, repo, config, session, flag, tmp_path):
        stage(repo, "collector.py", AI_LIKE_PYTHON)
        flag.write()
        commit(repo)
        recorder = CommitRecorder(tmp_path / "commits.db")
        coordinator = coordinator_for(repo, config, session, recorder=recorder)

        assert coordinator.post_commit().recorded is True
        assert coordinator.post_commit().recorded is False
        assert len(recorder.recent()) == 1

    def test_unborn_branch(self, tmp_path, config):
        empty = git.Repo.init(tmp_path / "empty")
        session = SessionStore.for_git_dir(empty.git_dir)
        outcome = AttributionCoordinator(empty, config, session, recorder=FakeRecorder()).post_commit()
        assert outcome.commit_hash is None
        assert outcome.state == AttributionState.IDLE

    def test_flag_claim_failure_still_records(self, repo, config, session, flag, monkeypatch, caplog):
        stage(repo, "collector.py", AI_LIKE_PYTHON)
        flag.write()
        new = commit(repo, "Add collector")

        def fail(self):
            raise FlagError("Could not claim attribution flag: permission denied")

        monkeypatch.setattr(AttributionFlag, "consume", fail)
        recorder = FakeRecorder()
        coordinator = coordinator_for(repo, config, session, recorder=recorder)

        with caplog.at_level(logging.ERROR, logger="ailog_cli.attribution"):
            outcome = coordinator.post_commit()

        assert outcome.commit_hash == new.hexsha
        assert outcome.flag_present is False
        assert outcome.is_ai_generated is False
        assert outcome.state == AttributionState.RECORDED
        assert [r.commit_hash for r in recorder.records] == [new.hexsha]
        assert flag.exists()
        assert coordinator.state == AttributionState.AWAITING_DECISION
        assert "permission denied" in caplog.text

    def test_full_cycle(self, repo, config, session, flag, tmp_path):
        stage(repo, "collector.py", AI_LIKE_PYTHON)
        recorder = CommitRecorder(tmp_path / "commits.db")

        coordinator_for(repo, config, session).pre_commit(FakePrompt(CHOICE_YES), Recorded(), Recorded())
        new = commit(repo, "Add collector")
        coordinator = coordinator_for(repo, config, session, recorder=recorder)
        outcome = coordinator.post_commit()

        [record] = recorder.recent()
        assert record.commit_hash == new.hexsha
        assert record.is_ai_generated
        assert outcome.state == AttributionState.RECORDED
        assert coordinator.state == AttributionState.IDLE
        assert not flag.exists()
