"""Migration use cases invoked by the host platform's bootstrap sequence."""

import logging
import time

from network_domain_sync.adapters.network_store import AbstractNetworkStore
from network_domain_sync.adapters.notifier import AbstractNotifier, SmtpNotifier
from network_domain_sync.config import MigrationSettings
from network_domain_sync.domain.model import MigrationResult, StorageError
from network_domain_sync.observability.context import get_trace_context, trace_context
from network_domain_sync.observability.logging import configure_logging
from network_domain_sync.observability.metrics import RUN_COUNT, RUN_LATENCY, track_latency, write_metrics_textfile
from network_domain_sync.observability.tracing import configure_trace_exporter, create_span, init_tracing
from network_domain_sync.service_layer.detector import DomainChangeDetector
from network_domain_sync.service_layer.notifications import NotificationDispatcher
from network_domain_sync.service_layer.rewrite import DomainRewriteEngine


logger = logging.getLogger(__name__)


def notifier_from_settings(settings: MigrationSettings) -> SmtpNotifier:
    return SmtpNotifier(
        settings.smtp_host,
        settings.smtp_port,
        sender=settings.get_smtp_sender(),
        username=settings.smtp_username or None,
        password=settings.smtp_password or None,
        starttls=settings.smtp_starttls,
    )


def run(
    settings: MigrationSettings,
    store: AbstractNetworkStore,
    notifier: AbstractNotifier | None = None,
) -> MigrationResult:
    """Detect drift and, when found, rewrite the network to the target domain.

    Args:
        settings: Configuration read once for this run
        store: Backing store holding the network tables
        notifier: Email capability; notifications are skipped when None

    Returns:
        ``state="skipped"`` with a ``skip_reason`` when nothing needed to
        change, ``state="migrated"`` otherwise

    Raises:
        StorageError: A write failed; remaining steps were not attempted
    """
    ctx = get_trace_context()
    token = trace_context.set({**ctx, "network_id": settings.network_id})
    try:
        return _run_in_span(settings, store, notifier)
    finally:
        trace_context.reset(token)


def _run_in_span(
    settings: MigrationSettings,
    store: AbstractNetworkStore,
    notifier: AbstractNotifier | None,
) -> MigrationResult:
    start = time.perf_counter()
    with (
        track_latency(RUN_LATENCY),
        create_span(
            "domain_sync.run",
            attributes={"domain_sync.target_domain": settings.target_domain},
        ) as span,
    ):
        detector = DomainChangeDetector(settings, store)
        plan = detector.detect()
        if plan is None:
            RUN_COUNT.labels(outcome="skipped").inc()
            span.set_attribute("domain_sync.skip_reason", detector.skip_reason or "")
            return MigrationResult(
                state="skipped",
                network_id=settings.network_id,
                skip_reason=detector.skip_reason,
                duration_s=time.perf_counter() - start,
            )

        span.set_attribute("domain_sync.network_id", plan.network_id)
        span.set_attribute("domain_sync.old_domain", plan.old_domain)
        try:
            summary = DomainRewriteEngine(store).apply(plan)
        except StorageError:
            RUN_COUNT.labels(outcome="failed").inc()
            logger.error("Domain migration for network %s aborted", plan.network_id, exc_info=True)
            raise

        RUN_COUNT.labels(outcome="migrated").inc()
        notified = False
        if settings.notifications_enabled() and notifier is not None:
            dispatcher = NotificationDispatcher(store, notifier)
            notified = dispatcher.dispatch(settings.notify, plan.new_domain) is not None
        elif settings.notifications_enabled():
            logger.info("Notification requested but no notifier is available")

        return MigrationResult(
            state="migrated",
            network_id=plan.network_id,
            old_domain=plan.old_domain,
            new_domain=plan.new_domain,
            tenants_updated=summary.tenants_updated,
            network_url=summary.network_url,
            notified=notified,
            duration_s=time.perf_counter() - start,
        )


def bootstrap(
    store: AbstractNetworkStore,
    settings: MigrationSettings | None = None,
    notifier: AbstractNotifier | None = None,
) -> MigrationResult:
    """Configure logging and tracing from settings, then run the migration once.

    Intended for the host's process start. Settings default to the
    environment; an SMTP notifier is built when notifications are enabled and
    none is supplied.
    """
    settings = settings or MigrationSettings()
    configure_logging(settings.log_level, settings.log_json)
    if settings.observability.enabled:
        configure_trace_exporter(settings.observability, init_tracing())

    if notifier is None and settings.notifications_enabled():
        notifier = notifier_from_settings(settings)

    try:
        result = run(settings, store, notifier)
    finally:
        if settings.metrics_textfile is not None:
            write_metrics_textfile(settings.metrics_textfile)

    logger.info("Domain sync finished: %s", result.state, extra={"result": result.to_dict()})
    return result
