"""Port for the store holding sites, their risk signals and user reports."""

from typing import Any, Dict, List, Optional, Protocol, Sequence

from ..models.site import ReportDraft, ReportStatus, RiskSignal, SignalDraft, Site, UserReport


class SignalStore(Protocol):
    """Protocol for site/signal/report persistence.

    Implementations raise ``DependencyError`` when the backing store fails and
    ``DuplicateRecordError`` when ``create_site`` hits an existing
    normalized domain.
    """

    async def initialize(self) -> None:
        """Open connections and verify the store is reachable."""
        ...

    async def shutdown(self) -> None:
        """Release resources."""
        ...

    async def get_site(self, site_id: str) -> Optional[Site]:
        """Get a site by id."""
        ...

    async def find_site_by_domain(self, normalized_domain: str) -> Optional[Site]:
        """Find a site by its normalized domain."""
        ...

    async def create_site(self, domain: str, normalized_domain: str) -> Site:
        """Create a site with a zero score."""
        ...

    async def update_site(self, site_id: str, changes: Dict[str, Any]) -> Site:
        """Record a new version of a site and return it."""
        ...

    async def fetch_signals(self, site_id: str) -> List[RiskSignal]:
        """Get every signal of a site, newest first."""
        ...

    async def append_signals(self, site_id: str, signals: Sequence[SignalDraft]) -> List[RiskSignal]:
        """Store new signals for a site."""
        ...

    async def replace_system_signals(
        self, site_id: str, signals: Sequence[SignalDraft]
    ) -> List[RiskSignal]:
        """Atomically swap the site's ``system`` signals for ``signals``.

        Readers never observe the state between delete and insert.
        """
        ...

    async def create_report(self, site_id: str, report: ReportDraft) -> UserReport:
        """Store a new report with status ``new``."""
        ...

    async def get_report(self, report_id: str) -> Optional[UserReport]:
        """Get a report by id."""
        ...

    async def set_report_status(self, report_id: str, status: ReportStatus) -> UserReport:
        """Record a report status transition."""
        ...

    async def list_reports(
        self,
        site_id: Optional[str] = None,
        statuses: Optional[Sequence[ReportStatus]] = None,
        limit: Optional[int] = None,
    ) -> List[UserReport]:
        """List reports, newest first."""
        ...
