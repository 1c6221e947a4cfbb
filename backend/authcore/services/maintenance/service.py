# authcore/services/maintenance/service.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from authcore.services._shared.base import BaseService, ServiceContext
from authcore.services._shared.ports import Clock, RateLimiter, RefreshTokenStore, ResetTokenStore

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PurgeReport:
    """Rows and windows removed by one purge run."""

    refresh_tokens: int
    reset_tokens: int
    rate_limit_windows: int


class SessionMaintenanceService(BaseService):
    """
    Periodic cleanup of expired session state.

    Expired refresh and reset tokens are deleted whatever their status;
    a token is expired once ``expires_at <= now``.
    """

    def __init__(
        self,
        *,
        refresh_store: RefreshTokenStore,
        reset_store: ResetTokenStore,
        rate_limiter: RateLimiter | None = None,
        clock: Clock | None = None,
        ctx: ServiceContext | None = None,
    ) -> None:
        super().__init__(clock=clock, ctx=ctx)
        self.refresh_store = refresh_store
        self.reset_store = reset_store
        self.rate_limiter = rate_limiter

    def purge_expired(self) -> PurgeReport:
        now = self.clock.now()
        report = PurgeReport(
            refresh_tokens=self.refresh_store.delete_expired(now),
            reset_tokens=self.reset_store.delete_expired(now),
            rate_limit_windows=self.rate_limiter.cleanup() if self.rate_limiter is not None else 0,
        )
        log.info(
            "sessions.purged refresh=%s reset=%s windows=%s",
            report.refresh_tokens,
            report.reset_tokens,
            report.rate_limit_windows,
        )
        return report
