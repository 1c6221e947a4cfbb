"""
Named rate-limit rules applied through a :class:`RateLimiter`.

A rule owns a key prefix; the subject (client IP, email ...) is quoted before
it is appended so that subjects can never collide across prefixes.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any
from urllib.parse import quote

from authcore.services._shared.errors import RateLimitExceededError
from authcore.services._shared.ports.rate_limiter import RateLimiter, RateLimitResult

audit_log = logging.getLogger("authcore.audit")


@dataclass(frozen=True, slots=True)
class RateLimitRule:
    """
    :param name: Rule name (``auth``, ``password_reset`` ...).
    :param key_prefix: Namespace of the counters.
    :param limit: Requests allowed per window.
    :param window_ms: Window length in milliseconds.
    """

    name: str
    key_prefix: str
    limit: int
    window_ms: int

    def key_for(self, subject: str) -> str:
        return f"{self.key_prefix}:{quote(subject, safe='')}"

    @classmethod
    def from_mapping(cls, name: str, raw: Mapping[str, Any]) -> RateLimitRule:
        return cls(
            name=name,
            key_prefix=str(raw.get("key_prefix", f"rl:{name}")),
            limit=int(raw["limit"]),
            window_ms=int(raw["window_ms"]),
        )


class RateLimitGuard:
    """
    Count-then-verify helper used by the use cases and the HTTP layer.

    :param limiter: Backend limiter.
    :param rules: Rules by name.
    """

    def __init__(self, limiter: RateLimiter, rules: Mapping[str, RateLimitRule]) -> None:
        self.limiter = limiter
        self.rules = dict(rules)

    @classmethod
    def from_config(cls, limiter: RateLimiter, config: Mapping[str, Mapping[str, Any]]) -> RateLimitGuard:
        return cls(limiter, {name: RateLimitRule.from_mapping(name, raw) for name, raw in config.items()})

    def rule(self, name: str) -> RateLimitRule:
        try:
            return self.rules[name]
        except KeyError:
            raise KeyError(f"unknown rate limit rule: {name}") from None

    def peek(self, rule_name: str, subject: str) -> RateLimitResult:
        """Inspect a subject's budget without counting."""
        rule = self.rule(rule_name)
        return self.limiter.check(rule.key_for(subject), rule.limit, rule.window_ms)

    def hit(self, rule_name: str, subject: str) -> RateLimitResult:
        """
        Admit one request for ``subject`` under ``rule_name``.

        The pre-check rejects exhausted windows without counting. Admission is
        decided by the count ``increment`` returns, so concurrent callers that
        all passed the pre-check cannot exceed the limit together.

        :returns: Budget after admission.
        :raises RateLimitExceededError: When the window is exhausted.
        """
        rule = self.rule(rule_name)
        key = rule.key_for(subject)
        result = self.limiter.check(key, rule.limit, rule.window_ms)
        if not result.allowed:
            self._reject(rule, key, result)
        count = self.limiter.increment(key, rule.window_ms)
        if count > rule.limit:
            self._reject(rule, key, self.limiter.check(key, rule.limit, rule.window_ms))
        return replace(result, remaining=max(0, rule.limit - count))

    def _reject(self, rule: RateLimitRule, key: str, result: RateLimitResult) -> None:
        audit_log.warning(
            "rate_limit.exceeded",
            extra={
                "event": "rate_limit.exceeded",
                "rate_key": key,
                "retry_after_seconds": result.retry_after_seconds,
            },
        )
        raise RateLimitExceededError(result.retry_after_seconds, limit=rule.limit)

    def reset(self, rule_name: str, subject: str) -> None:
        self.limiter.reset(self.rule(rule_name).key_for(subject))
