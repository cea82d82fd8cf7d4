from datetime import datetime, timedelta, timezone as dt_timezone

from django.test import TestCase, override_settings

from . import ratelimit
from .exceptions import RateLimited
from .models import TokenBucket


LIMITS = {"demo": {"capacity": 3, "rate": 2, "period": 60}}
T0 = datetime(2025, 3, 1, 12, 0, tzinfo=dt_timezone.utc)


@override_settings(QUIZFORGE_RATE_LIMITS=LIMITS)
class TokenBucketTests(TestCase):
    def test_fresh_bucket_allows_capacity_then_refuses(self):
        self.assertEqual(ratelimit.check("demo", "alice", now=T0), 2)
        self.assertEqual(ratelimit.check("demo", "alice", now=T0), 1)
        self.assertEqual(ratelimit.check("demo", "alice", now=T0), 0)

        with self.assertRaises(RateLimited) as ctx:
            ratelimit.check("demo", "alice", now=T0)
        self.assertEqual(ctx.exception.retry_after, 30)

    def test_refused_call_consumes_nothing(self):
        for _ in range(3):
            ratelimit.check("demo", "alice", now=T0)
        before = TokenBucket.objects.get(action="demo", identity="alice")

        with self.assertRaises(RateLimited):
            ratelimit.check("demo", "alice", now=T0 + timedelta(seconds=10))

        after = TokenBucket.objects.get(action="demo", identity="alice")
        self.assertEqual(after.tokens, before.tokens)
        self.assertEqual(after.updated_at, before.updated_at)

    def test_refill_is_continuous_and_capped(self):
        for _ in range(3):
            ratelimit.check("demo", "alice", now=T0)

        # 2 tokens per minute, so one token after 30 seconds.
        self.assertEqual(ratelimit.check("demo", "alice", now=T0 + timedelta(seconds=30)), 0)

        # A long idle period refills to capacity, not beyond.
        self.assertEqual(ratelimit.check("demo", "alice", now=T0 + timedelta(hours=1)), 2)

    def test_identities_are_isolated(self):
        for _ in range(3):
            ratelimit.check("demo", "alice", now=T0)
        self.assertEqual(ratelimit.check("demo", "bob", now=T0), 2)
