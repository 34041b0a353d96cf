"""Domain service keeping site risk scores in line with their signals."""

import asyncio
import logging
import weakref
from typing import Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from ..errors import DependencyError, DuplicateRecordError, NotFoundError, ValidationError
from ..models.check_result import RiskScore, SiteRiskView
from ..models.site import (
    ReportDraft,
    ReportStatus,
    RiskSignal,
    SignalDraft,
    SignalSource,
    Site,
    UserReport,
    utcnow,
)
from ..ports.signal_store import SignalStore
from .domain_normalizer import normalize_domain
from .risk_scorer import score_signals

logger = logging.getLogger(__name__)

# Severity of the user signal synthesized from a submitted report
REPORT_TYPE_SEVERITY: Dict[str, int] = {
    "non_delivery": 10,
    "fraud": 10,
    "refund_refused": 7,
    "poor_quality": 4,
}
DEFAULT_REPORT_SEVERITY = 3

ADMIN_CONFIRMED_SEVERITY = 5

RECENT_REPORTS_LIMIT = 10

# Allowed report status transitions
REPORT_TRANSITIONS: Mapping[ReportStatus, frozenset] = {
    ReportStatus.NEW: frozenset({ReportStatus.REVIEWED, ReportStatus.DISMISSED, ReportStatus.CONFIRMED}),
    ReportStatus.REVIEWED: frozenset({ReportStatus.DISMISSED, ReportStatus.CONFIRMED}),
    ReportStatus.DISMISSED: frozenset(),
    ReportStatus.CONFIRMED: frozenset(),
}


class RiskSettings(BaseModel):
    """Tunable severities of synthesized signals."""

    report_type_severity: Dict[str, int] = Field(default_factory=lambda: dict(REPORT_TYPE_SEVERITY))
    default_report_severity: int = Field(default=DEFAULT_REPORT_SEVERITY, ge=0, le=10)
    admin_confirmed_severity: int = Field(default=ADMIN_CONFIRMED_SEVERITY, ge=0, le=10)

    def severity_for_report(self, report_type: str) -> int:
        """Severity of the user signal created for a report type."""
        return self.report_type_severity.get(report_type, self.default_report_severity)


class SiteRiskService:
    """Looks up, rescans and reports on sites, recomputing scores on every change.

    A site's stored score is only ever written by ``_recompute``, which reads
    the full signal set right after it changed. Recomputation is serialized
    per site inside this process.
    """

    def __init__(self, store: SignalStore, settings: Optional[RiskSettings] = None):
        """Initialize the service.

        Args:
            store: Signal store port implementation
            settings: Severities of synthesized signals
        """
        self._store = store
        self._settings = settings or RiskSettings()
        # Locks drop out once no task holds or awaits them
        self._site_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    async def lookup_site(self, raw_domain: str) -> SiteRiskView:
        """Get or create the site for a domain and refresh its score.

        Args:
            raw_domain: Domain, host or URL as typed by a user

        Returns:
            The site with its signals and most recent reports
        """
        site = await self._get_or_create_site(raw_domain)
        async with self._lock_for(site.id):
            site = await self._require_site(site.id)
            signals = await self._call("fetch signals", self._store.fetch_signals(site.id))
            site = await self._persist_score(site, signals, touch=False)
        reports = await self._call(
            "list reports", self._store.list_reports(site_id=site.id, limit=RECENT_REPORTS_LIMIT)
        )
        return SiteRiskView(site=site, signals=signals, reports=reports)

    async def rescan_site(self, raw_domain: str, findings: Sequence[SignalDraft]) -> SiteRiskView:
        """Replace a site's system signals with fresh scanner findings.

        User and admin signals are kept. The swap is atomic in the store.

        Args:
            raw_domain: Scanned domain
            findings: Signals produced by the external scanner

        Returns:
            The rescored site with all of its signals
        """
        findings = [f.model_copy(update={"source": SignalSource.SYSTEM}) for f in findings]
        site = await self._get_or_create_site(raw_domain)
        logger.info(f"🔄 Rescanning {site.normalized_domain} with {len(findings)} system signals")

        async with self._lock_for(site.id):
            await self._call(
                "replace system signals", self._store.replace_system_signals(site.id, findings)
            )
            signals = await self._call("fetch signals", self._store.fetch_signals(site.id))
            site = await self._persist_score(site, signals, touch=True)
        return SiteRiskView(site=site, signals=signals)

    async def submit_report(self, site_id: str, report: ReportDraft) -> UserReport:
        """File a user report and add the matching user signal.

        Args:
            site_id: Reported site
            report: Report contents

        Returns:
            The stored report

        Raises:
            NotFoundError: If the site does not exist
        """
        site = await self._require_site(site_id)
        async with self._lock_for(site.id):
            stored = await self._call("create report", self._store.create_report(site.id, report))
            severity = self._settings.severity_for_report(report.report_type)
            await self._call(
                "append signals",
                self._store.append_signals(
                    site.id,
                    [
                        SignalDraft(
                            type=f"user_report_{report.report_type}",
                            dimension="reputation",
                            severity=severity,
                            source=SignalSource.USER,
                            description=f"User report: {report.report_type}",
                        )
                    ],
                ),
            )
            site = await self._require_site(site.id)
            signals = await self._call("fetch signals", self._store.fetch_signals(site.id))
            await self._persist_score(
                site, signals, touch=True, extra={"total_reports": site.total_reports + 1}
            )
        logger.info(f"📝 Report {stored.id} filed against {site.normalized_domain} (severity {severity})")
        return stored

    async def review_report(self, report_id: str, status: ReportStatus) -> UserReport:
        """Move a report to a new review status.

        Confirming a report adds one admin signal and rescores the site.

        Raises:
            NotFoundError: If the report does not exist
            ValidationError: If the transition is not allowed
        """
        report = await self._get_report(report_id)

        async with self._lock_for(report.site_id):
            # Re-read under the site lock so two reviewers cannot both confirm
            report = await self._get_report(report_id)
            if status not in REPORT_TRANSITIONS[report.status]:
                raise ValidationError(
                    f"Cannot move report from {report.status.value} to {status.value}", field="status"
                )

            updated = await self._call(
                "set report status", self._store.set_report_status(report.id, status)
            )
            if status == ReportStatus.CONFIRMED:
                await self._call(
                    "append signals",
                    self._store.append_signals(
                        report.site_id,
                        [
                            SignalDraft(
                                type="admin_confirmed_report",
                                dimension="reputation",
                                severity=self._settings.admin_confirmed_severity,
                                source=SignalSource.ADMIN,
                                description="Admin confirmed user report",
                            )
                        ],
                    ),
                )
                site = await self._require_site(report.site_id)
                signals = await self._call("fetch signals", self._store.fetch_signals(site.id))
                await self._persist_score(site, signals, touch=False)

        logger.info(f"🛡️ Report {report.id}: {report.status.value} -> {status.value}")
        return updated

    async def list_open_reports(self) -> List[UserReport]:
        """Reports awaiting or confirmed by review, newest first."""
        return await self._call(
            "list reports",
            self._store.list_reports(statuses=[ReportStatus.NEW, ReportStatus.CONFIRMED]),
        )

    async def current_score(self, site_id: str) -> RiskScore:
        """Score of a site computed from its current signals."""
        site = await self._require_site(site_id)
        signals = await self._call("fetch signals", self._store.fetch_signals(site.id))
        return score_signals(signals)

    async def _get_or_create_site(self, raw_domain: str) -> Site:
        normalized = normalize_domain(raw_domain or "")
        if not normalized:
            raise ValidationError(f"Not a domain: {raw_domain!r}", field="domain")

        site = await self._call("find site", self._store.find_site_by_domain(normalized))
        if site is not None:
            return site

        try:
            site = await self._call("create site", self._store.create_site(raw_domain.strip(), normalized))
            logger.info(f"🆕 Tracking new site {normalized}")
            return site
        except DuplicateRecordError:
            logger.info(f"🔁 Site {normalized} created concurrently, re-fetching")

        site = await self._call("find site", self._store.find_site_by_domain(normalized))
        if site is None:
            raise DependencyError(f"Site {normalized} reported as duplicate but cannot be found")
        return site

    async def _get_report(self, report_id: str) -> UserReport:
        report = await self._call("get report", self._store.get_report(report_id))
        if report is None:
            raise NotFoundError("report", report_id)
        return report

    async def _require_site(self, site_id: str) -> Site:
        site = await self._call("get site", self._store.get_site(site_id))
        if site is None:
            raise NotFoundError("site", site_id)
        return site

    async def _persist_score(
        self,
        site: Site,
        signals: List[RiskSignal],
        touch: bool,
        extra: Optional[Dict] = None,
    ) -> Site:
        """Write the score of ``signals`` to the site when anything changed."""
        risk = score_signals(signals)
        changes: Dict = dict(extra or {})
        if risk.score != site.risk_score or risk.level != site.risk_level:
            changes.update(risk_score=risk.score, risk_level=risk.level)
        if len(signals) != site.total_signals:
            changes["total_signals"] = len(signals)
        if not changes and not touch:
            return site

        changes.setdefault("risk_score", risk.score)
        changes.setdefault("risk_level", risk.level)
        changes["last_checked_at"] = utcnow()
        updated = await self._call("update site", self._store.update_site(site.id, changes))
        logger.info(f"📈 {updated.normalized_domain}: score {updated.risk_score} ({updated.risk_level.value})")
        return updated

    def _lock_for(self, site_id: str) -> asyncio.Lock:
        lock = self._site_locks.get(site_id)
        if lock is None:
            lock = self._site_locks[site_id] = asyncio.Lock()
        return lock

    @staticmethod
    async def _call(name: str, awaitable):
        try:
            return await awaitable
        except (DependencyError, DuplicateRecordError, NotFoundError):
            raise
        except Exception as e:
            logger.error(f"❌ Signal store step '{name}' failed: {e}")
            raise DependencyError(f"Signal store failed during {name}: {e}") from e
