"""Rewrite every stored record that still carries the old network domain."""

import logging
from urllib.parse import urlsplit

from network_domain_sync.adapters.network_store import (
    BLOGS_TABLE,
    NETWORK_OPTIONS,
    SITE_TABLE,
    SITEMETA_TABLE,
    AbstractNetworkStore,
)
from network_domain_sync.domain.model import MigrationPlan, RewriteSummary, SiteRecord
from network_domain_sync.observability.metrics import ROWS_REWRITTEN
from network_domain_sync.utils.domain_names import replace_domain, strip_www
from network_domain_sync.utils.url_scheme import SCHEME_SEPARATOR, set_url_scheme


logger = logging.getLogger(__name__)

URL_OPTION_KEYS = ("home", "siteurl")


def build_network_url(stored_url: str | None, new_domain: str, scheme: str | None) -> str:
    """Rebuild the network's canonical URL around ``new_domain``.

    Scheme, port and path come from the stored URL (``http`` and ``/`` when
    nothing is stored); the host is replaced outright rather than substituted.
    The configured scheme is then enforced and a trailing slash dropped.
    """
    stored_url = (stored_url or "").strip()
    candidate = stored_url if SCHEME_SEPARATOR in stored_url else SCHEME_SEPARATOR + stored_url
    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError:
        logger.debug("Ignoring unparsable network URL %r", stored_url)
        parts, port = urlsplit(SCHEME_SEPARATOR), None

    host = f"{new_domain}:{port}" if port else new_domain
    url = f"{parts.scheme or 'http'}://{host}{parts.path or '/'}"
    return set_url_scheme(scheme, url).rstrip("/")


class DomainRewriteEngine:
    """Apply a migration plan to the backing store.

    Steps run in a fixed order because later steps read what earlier ones
    wrote. Any ``StorageError`` propagates immediately and the remaining steps
    are not attempted; nothing already written is rolled back.
    """

    def __init__(self, store: AbstractNetworkStore) -> None:
        self._store = store

    def apply(self, plan: MigrationPlan) -> RewriteSummary:
        summary = RewriteSummary()

        if plan.admin_email:
            self._store.write_option(NETWORK_OPTIONS, "admin_email", plan.admin_email)
            logger.info("Network admin email set to %s", plan.admin_email)

        self._rewrite_site_domains(plan, summary)
        self._rewrite_site_urls(plan, summary)
        summary.network_url = self._rewrite_network_urls(plan)

        self._store.update_row(SITE_TABLE, {"domain": plan.new_domain}, {"id": plan.network_id})
        ROWS_REWRITTEN.labels(table=SITE_TABLE).inc()

        self._store.update_row(
            SITEMETA_TABLE,
            {"meta_value": summary.network_url},
            {"site_id": plan.network_id, "meta_key": "siteurl"},
        )
        ROWS_REWRITTEN.labels(table=SITEMETA_TABLE).inc()

        logger.info(
            "Rewrote %d site(s) from %s to %s; network URL is now %s",
            summary.tenants_updated,
            plan.old_domain,
            plan.new_domain,
            summary.network_url,
        )
        return summary

    def _rewrite_site_domains(self, plan: MigrationPlan, summary: RewriteSummary) -> None:
        rows = self._store.read_rows(BLOGS_TABLE, {"site_id": plan.network_id})
        for row in rows:
            site = SiteRecord(blog_id=row["blog_id"], domain=row.get("domain") or "")
            domain = strip_www(site.domain) if plan.strip_www else site.domain
            domain = replace_domain(domain, plan.old_domain, plan.new_domain)
            self._store.update_row(
                BLOGS_TABLE,
                {"domain": domain},
                {"site_id": plan.network_id, "blog_id": site.blog_id},
            )
            ROWS_REWRITTEN.labels(table=BLOGS_TABLE).inc()
            summary.tenant_domains[site.blog_id] = domain
            logger.debug("Site %s: %s -> %s", site.blog_id, site.domain, domain)

    def _rewrite_site_urls(self, plan: MigrationPlan, summary: RewriteSummary) -> None:
        for blog_id in summary.tenant_domains:
            current_url = self._store.read_option(blog_id, "siteurl")
            if not current_url:
                logger.warning("Site %s has no siteurl option; leaving its URLs untouched", blog_id)
                continue
            new_url = set_url_scheme(plan.scheme, replace_domain(current_url, plan.old_domain, plan.new_domain))
            for key in URL_OPTION_KEYS:
                self._store.write_option(blog_id, key, new_url)
                ROWS_REWRITTEN.labels(table="options").inc()
            summary.tenant_urls[blog_id] = new_url
            logger.debug("Site %s URL: %s -> %s", blog_id, current_url, new_url)

    def _rewrite_network_urls(self, plan: MigrationPlan) -> str:
        stored_url = self._store.read_option(NETWORK_OPTIONS, "siteurl")
        network_url = build_network_url(stored_url, plan.new_domain, plan.scheme)
        for key in URL_OPTION_KEYS:
            self._store.write_option(NETWORK_OPTIONS, key, network_url)
            ROWS_REWRITTEN.labels(table="options").inc()
        return network_url
