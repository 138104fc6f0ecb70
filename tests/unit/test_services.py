import copy
from pathlib import Path

from opentelemetry import trace as trace_api
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode
import pytest

from network_domain_sync.adapters import BLOGS_TABLE, NETWORK_OPTIONS, SITE_TABLE, FakeNetworkStore, FakeNotifier
from network_domain_sync.adapters.notifier import SmtpNotifier
from network_domain_sync.config import MigrationSettings
from network_domain_sync.domain.model import StorageError
from network_domain_sync.observability.context import get_trace_context, set_trace_context
from network_domain_sync.observability.metrics import REGISTRY
from network_domain_sync.observability.tracing import init_tracing
from network_domain_sync.service_layer import services
from network_domain_sync.service_layer.detector import SKIP_DISABLED, SKIP_NO_DRIFT
from network_domain_sync.service_layer.services import bootstrap, notifier_from_settings, run


def _settings(**kwargs) -> MigrationSettings:
    values = {"target_domain": "example.local", "network_id": 1}
    values.update(kwargs)
    return MigrationSettings(_env_file=None, **values)


def _runs(outcome: str) -> float:
    return REGISTRY.get_sample_value("domain_sync_runs_total", {"outcome": outcome}) or 0.0


def _snapshot(store: FakeNetworkStore) -> tuple[dict, dict]:
    return copy.deepcopy(store.tables), copy.deepcopy(store.options)


@pytest.mark.unit
class TestRun:
    def test_migrates_drifted_network(self, network_store: FakeNetworkStore) -> None:
        result = run(_settings(url_scheme="https"), network_store)

        assert result.migrated
        assert result.network_id == 1
        assert result.old_domain == "example.com"
        assert result.new_domain == "example.local"
        assert result.tenants_updated == 2
        assert result.network_url == "https://example.local"
        assert result.notified is False
        assert network_store.tables[SITE_TABLE][0]["domain"] == "example.local"

    def test_no_drift_writes_nothing(self, network_store: FakeNetworkStore) -> None:
        before = _snapshot(network_store)

        result = run(_settings(target_domain="staging.example.com"), network_store)

        assert result.state == "skipped"
        assert result.skip_reason == SKIP_NO_DRIFT
        assert network_store.writes == []
        assert _snapshot(network_store) == before

    def test_second_run_is_a_no_op(self, network_store: FakeNetworkStore) -> None:
        settings = _settings(url_scheme="https", strip_www=True, admin_email="ops@example.local")
        run(settings, network_store)
        after_first = _snapshot(network_store)
        writes = len(network_store.writes)

        second = run(settings, network_store)

        assert second.state == "skipped"
        assert second.skip_reason == SKIP_NO_DRIFT
        assert len(network_store.writes) == writes
        assert _snapshot(network_store) == after_first

    def test_disabled_run_is_skipped(self, network_store: FakeNetworkStore) -> None:
        skipped_before = _runs("skipped")

        result = run(_settings(disabled=True), network_store)

        assert result.skip_reason == SKIP_DISABLED
        assert network_store.writes == []
        assert _runs("skipped") == skipped_before + 1

    def test_storage_error_propagates(self, network_store: FakeNetworkStore) -> None:
        network_store.fail_on.add(BLOGS_TABLE)
        failed_before = _runs("failed")

        with pytest.raises(StorageError):
            run(_settings(), network_store)

        assert _runs("failed") == failed_before + 1
        assert network_store.tables[SITE_TABLE][0]["domain"] == "example.com"

    def test_notifies_after_migration(self, network_store: FakeNetworkStore, notifier: FakeNotifier) -> None:
        result = run(_settings(notify=True), network_store, notifier)

        assert result.notified is True
        assert [n.to for n in notifier.sent] == ["admin@example.com"]
        assert notifier.sent[0].subject == "[example.local] Network Domain Updated"

    def test_notification_uses_admin_override(self, network_store: FakeNetworkStore, notifier: FakeNotifier) -> None:
        run(_settings(notify=True, admin_email="ops@example.local"), network_store, notifier)

        assert network_store.options[NETWORK_OPTIONS]["admin_email"] == "ops@example.local"
        assert notifier.sent[0].to == "ops@example.local"

    def test_notification_failure_does_not_fail_run(self, network_store: FakeNetworkStore) -> None:
        failing = FakeNotifier(error=OSError("connection refused"))

        result = run(_settings(notify=True), network_store, failing)

        assert result.migrated
        assert result.notified is False

    def test_line_break_in_subject_override_does_not_fail_run(self, network_store: FakeNetworkStore) -> None:
        failed_before = REGISTRY.get_sample_value("domain_sync_notifications_total", {"status": "failed"}) or 0.0
        notifier = SmtpNotifier("127.0.0.1", 1, sender="domain-sync@example.local")

        result = run(_settings(notify='{"subject": "line one\\nline two"}'), network_store, notifier)

        assert result.migrated
        assert result.notified is False
        assert network_store.tables[SITE_TABLE][0]["domain"] == "example.local"
        assert REGISTRY.get_sample_value("domain_sync_notifications_total", {"status": "failed"}) == failed_before + 1

    def test_run_restores_trace_context(self, network_store: FakeNetworkStore) -> None:
        set_trace_context("aa" * 16, "bb" * 8)

        run(_settings(), network_store)
        run(_settings(disabled=True), network_store)

        assert get_trace_context() == {"trace_id": "aa" * 16, "span_id": "bb" * 8}

    def test_run_restores_trace_context_on_failure(self, network_store: FakeNetworkStore) -> None:
        set_trace_context("aa" * 16, "bb" * 8)
        network_store.fail_on.add(BLOGS_TABLE)

        with pytest.raises(StorageError):
            run(_settings(), network_store)

        assert "network_id" not in get_trace_context()

    def test_skipped_run_does_not_notify(self, network_store: FakeNetworkStore, notifier: FakeNotifier) -> None:
        run(_settings(target_domain="example.com", notify=True), network_store, notifier)

        assert notifier.sent == []

    def test_notification_without_notifier(self, network_store: FakeNetworkStore) -> None:
        result = run(_settings(notify=True), network_store)

        assert result.migrated
        assert result.notified is False


@pytest.mark.unit
class TestRunTracing:
    @staticmethod
    def _setup_exporter() -> InMemorySpanExporter:
        exporter = InMemorySpanExporter()
        provider = trace_api.get_tracer_provider()
        if not isinstance(provider, TracerProvider):
            provider = init_tracing("test-service")
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        return exporter

    def test_run_records_span(self, network_store: FakeNetworkStore) -> None:
        exporter = self._setup_exporter()

        run(_settings(), network_store)

        spans = [span for span in exporter.get_finished_spans() if span.name == "domain_sync.run"]
        assert len(spans) == 1
        assert spans[0].attributes["domain_sync.target_domain"] == "example.local"
        assert spans[0].attributes["domain_sync.old_domain"] == "example.com"

    def test_failed_run_marks_span_error(self, network_store: FakeNetworkStore) -> None:
        exporter = self._setup_exporter()
        network_store.fail_on.add(SITE_TABLE)

        with pytest.raises(StorageError):
            run(_settings(), network_store)

        spans = [span for span in exporter.get_finished_spans() if span.name == "domain_sync.run"]
        assert spans[-1].status.status_code == StatusCode.ERROR


@pytest.mark.unit
class TestBootstrap:
    @pytest.fixture(autouse=True)
    def _keep_log_handlers(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(services, "configure_logging", lambda *args, **kwargs: None)

    def test_writes_metrics_textfile(self, network_store: FakeNetworkStore, tmp_path: Path) -> None:
        textfile = tmp_path / "metrics" / "domain_sync.prom"

        result = bootstrap(network_store, _settings(metrics_textfile=textfile))

        assert result.migrated
        assert "domain_sync_runs_total" in textfile.read_text()

    def test_writes_metrics_textfile_on_failure(self, network_store: FakeNetworkStore, tmp_path: Path) -> None:
        textfile = tmp_path / "domain_sync.prom"
        network_store.fail_on.add(BLOGS_TABLE)

        with pytest.raises(StorageError):
            bootstrap(network_store, _settings(metrics_textfile=textfile))

        assert textfile.exists()

    def test_reads_settings_from_environment(self, network_store: FakeNetworkStore, monkeypatch) -> None:
        monkeypatch.setenv("NETWORK_LOCAL_DOMAIN", "example.local")
        monkeypatch.setenv("SITE_ID_CURRENT_SITE", "1")
        monkeypatch.chdir(Path(__file__).parent)

        result = bootstrap(network_store)

        assert result.migrated

    def test_builds_smtp_notifier_when_enabled(self, network_store: FakeNetworkStore, monkeypatch) -> None:
        notifier = FakeNotifier()
        monkeypatch.setattr(services, "notifier_from_settings", lambda settings: notifier)

        result = bootstrap(network_store, _settings(notify="qa@example.local"))

        assert result.notified is True
        assert [n.to for n in notifier.sent] == ["qa@example.local"]

    def test_supplied_notifier_wins(self, network_store: FakeNetworkStore, notifier: FakeNotifier) -> None:
        bootstrap(network_store, _settings(notify=True), notifier)

        assert len(notifier.sent) == 1


@pytest.mark.unit
def test_notifier_from_settings() -> None:
    settings = _settings(smtp_host="mail.internal", smtp_port=2525, smtp_username="relay", smtp_starttls=True)

    notifier = notifier_from_settings(settings)

    assert isinstance(notifier, SmtpNotifier)
    assert (notifier.host, notifier.port) == ("mail.internal", 2525)
    assert notifier.sender == "domain-sync@example.local"
    assert notifier.username == "relay"
    assert notifier.password is None
    assert notifier.starttls is True
