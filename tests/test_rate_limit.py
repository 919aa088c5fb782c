from unittest.mock import Mock

import pytest

from app.api.middlewares.rate_limit import RateLimiter, RateLimitRule, rules_from_settings


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rule():
    return RateLimitRule(name="auth", limit=2, window_seconds=60, message="slow down", paths=("/api/auth/google",))


def test_requests_over_the_limit_are_rejected_until_the_window_resets(clock, rule):
    limiter = RateLimiter(clock=clock)

    assert limiter.hit(rule, "10.0.0.1") is None
    assert limiter.hit(rule, "10.0.0.1") is None
    clock.now += 15
    assert limiter.hit(rule, "10.0.0.1") == 45

    clock.now += 45
    assert limiter.hit(rule, "10.0.0.1") is None


def test_clients_and_rules_have_separate_budgets(clock, rule):
    limiter = RateLimiter(clock=clock)
    other_rule = RateLimitRule(name="email", limit=1, window_seconds=60, message="", paths=("/api/emails",))

    limiter.hit(rule, "10.0.0.1")
    limiter.hit(rule, "10.0.0.1")

    assert limiter.hit(rule, "10.0.0.2") is None
    assert limiter.hit(other_rule, "10.0.0.1") is None
    assert limiter.hit(rule, "10.0.0.1") is not None


def test_path_matching():
    exact = RateLimitRule(name="email", limit=1, window_seconds=60, message="", paths=("/api/emails",))
    prefix = RateLimitRule(name="api", limit=1, window_seconds=60, message="", paths=("/api/",), prefix=True)

    assert exact.applies_to("/api/emails")
    assert exact.applies_to("/api/emails/")
    assert not exact.applies_to("/api/emails/42")
    assert prefix.applies_to("/api/emails/42")
    assert not prefix.applies_to("/health")


def test_rules_from_settings():
    rate_limit = Mock(
        api_max_requests=100,
        api_window_seconds=900,
        auth_max_requests=5,
        auth_window_seconds=900,
        email_max_requests=30,
        email_window_seconds=60,
    )

    rules = {rule.name: rule for rule in rules_from_settings(rate_limit)}

    assert (rules["api"].limit, rules["api"].window_seconds) == (100, 900)
    assert (rules["auth"].limit, rules["auth"].window_seconds) == (5, 900)
    assert (rules["email"].limit, rules["email"].window_seconds) == (30, 60)
    assert rules["auth"].applies_to("/api/auth/callback")
    assert not rules["auth"].applies_to("/api/auth/me")
    assert rules["email"].applies_to("/api/emails/sync")
    assert not rules["email"].applies_to("/api/emails/stats/overview")
