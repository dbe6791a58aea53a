from contextlib import contextmanager

import pytest
from typer.testing import CliRunner

from newsagg.cli.app import app
from newsagg.models import AdapterResult, RunSummary

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr("newsagg.cli.common.configure_logging", lambda *args, **kwargs: None)


class FakeOrchestrator:
    def __init__(self, summary):
        self.summary = summary
        self.calls = []

    def run(self, force=False, source=None):
        self.calls.append({"force": force, "source": source})
        return self.summary


@pytest.fixture
def fetch_with(monkeypatch):
    def install(summary, connected=True):
        orchestrator = FakeOrchestrator(summary)
        monkeypatch.setattr("newsagg.cli.fetch.validate_connection", lambda db_config: connected)
        monkeypatch.setattr("newsagg.cli.fetch.build_orchestrator", lambda config: orchestrator)
        return orchestrator

    return install


def test_fetch_exits_zero_on_success(config, fetch_with):
    orchestrator = fetch_with(
        RunSummary(
            total_fetched=3,
            total_stored=3,
            adapters=[AdapterResult(name="GuardianAdapter", fetched=3, stored=3, new=3)],
        )
    )

    result = runner.invoke(app, ["fetch", "--source", "guardian", "--force"], obj=config)

    assert result.exit_code == 0, result.output
    assert "Fetch completed" in result.output
    assert orchestrator.calls == [{"force": True, "source": "guardian"}]


def test_fetch_exits_one_on_adapter_errors(config, fetch_with):
    fetch_with(RunSummary(total_fetched=1, errors=["Error with NytAdapter: boom"]))

    result = runner.invoke(app, ["fetch"], obj=config)

    assert result.exit_code == 1
    assert "Errors encountered: 1" in result.output


def test_fetch_skip_is_not_a_failure(config, fetch_with):
    fetch_with(RunSummary(skipped=True, skip_reason="too_soon"))

    result = runner.invoke(app, ["fetch"], obj=config)

    assert result.exit_code == 0
    assert "too soon" in result.output


def test_fetch_fails_without_database(config, fetch_with):
    orchestrator = fetch_with(RunSummary(), connected=False)

    result = runner.invoke(app, ["fetch"], obj=config)

    assert result.exit_code == 1
    assert orchestrator.calls == []


class FakeStorage:
    def __init__(self, matching=5, fail=False):
        self.matching = matching
        self.fail = fail
        self.deleted = 0
        self.cutoffs = []

    def count_older_than(self, conn, cutoff):
        self.cutoffs.append(cutoff)
        return self.matching

    def delete_older_than(self, conn, cutoff):
        if self.fail:
            raise RuntimeError("deadlock detected")
        self.deleted = self.matching
        return self.matching


@pytest.fixture
def cleanup_storage(monkeypatch):
    def install(**kwargs):
        storage = FakeStorage(**kwargs)

        @contextmanager
        def fake_connection(db_config):
            yield object()

        monkeypatch.setattr("newsagg.cli.cleanup.get_connection", fake_connection)
        monkeypatch.setattr("newsagg.cli.cleanup.ArticleStorage", lambda: storage)
        return storage

    return install


def test_cleanup_dry_run_deletes_nothing(config, cleanup_storage):
    storage = cleanup_storage(matching=5)

    result = runner.invoke(app, ["cleanup", "--days", "30", "--dry-run"], obj=config)

    assert result.exit_code == 0, result.output
    assert "Found 5 articles to delete" in result.output
    assert "DRY RUN" in result.output
    assert storage.deleted == 0


def test_cleanup_deletes_with_yes(config, cleanup_storage):
    storage = cleanup_storage(matching=5)

    result = runner.invoke(app, ["cleanup", "--yes"], obj=config)

    assert result.exit_code == 0, result.output
    assert storage.deleted == 5
    assert "Successfully deleted 5 articles" in result.output


def test_cleanup_uses_configured_days(config_model, config, cleanup_storage):
    config_model.cleanup.days = 7
    storage = cleanup_storage(matching=0)

    result = runner.invoke(app, ["cleanup"], obj=config)

    assert result.exit_code == 0
    assert "older than 7 days" in result.output
    assert "No articles to clean up" in result.output
    assert storage.deleted == 0


def test_cleanup_can_be_cancelled(config, cleanup_storage):
    storage = cleanup_storage(matching=5)

    result = runner.invoke(app, ["cleanup"], obj=config, input="n\n")

    assert result.exit_code == 0
    assert "Cleanup cancelled" in result.output
    assert storage.deleted == 0


def test_cleanup_failure_exits_one(config, cleanup_storage):
    cleanup_storage(matching=5, fail=True)

    result = runner.invoke(app, ["cleanup", "-y"], obj=config)

    assert result.exit_code == 1
    assert "Failed to clean up articles" in result.output


def test_validate_config(config):
    result = runner.invoke(app, ["validate-config"], obj=config)

    assert result.exit_code == 0
    assert "Configuration is valid" in result.output


def test_validate_config_reports_errors(config_model, config):
    config_model.providers.nyt.api_key = None

    result = runner.invoke(app, ["validate-config"], obj=config)

    assert result.exit_code == 1
    assert "nyt API key is missing" in result.output


def test_missing_config_file(tmp_path):
    result = runner.invoke(app, ["--config", str(tmp_path / "nope.yaml"), "fetch"])

    assert result.exit_code == 1
    assert "Config file not found" in result.output


@pytest.fixture
def init_without_database(monkeypatch):
    monkeypatch.setattr("newsagg.cli.init.validate_connection", lambda db_config: True)
    monkeypatch.setattr("newsagg.cli.init.init_database", lambda db_config: None)


def test_init_writes_to_global_config_path(tmp_path, init_without_database):
    target = tmp_path / "custom" / "newsagg.yaml"

    result = runner.invoke(app, ["--config", str(target), "init", "--db-name", "news_test"])

    assert result.exit_code == 0
    assert target.exists()
    assert "news_test" in target.read_text()


def test_init_config_path_option_wins(tmp_path, init_without_database):
    result = runner.invoke(
        app,
        ["--config", str(tmp_path / "global.yaml"), "init", "--config-path", str(tmp_path / "local.yaml")],
    )

    assert result.exit_code == 0
    assert (tmp_path / "local.yaml").exists()
    assert not (tmp_path / "global.yaml").exists()
