"""Token-bucket rate limiting keyed by (action, identity).

Buckets live in the database so every worker process shares them. A bucket
refills continuously at ``rate`` tokens per ``period`` seconds, never above
``capacity``, and a fresh bucket starts full.
"""

import logging
import math

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import transaction
from django.utils import timezone

from .exceptions import RateLimited
from .models import TokenBucket

logger = logging.getLogger(__name__)


def _limit_for(action):
    try:
        config = settings.QUIZFORGE_RATE_LIMITS[action]
    except KeyError:
        raise ImproperlyConfigured(f"No rate limit configured for action '{action}'")
    return config["capacity"], config["rate"], config["period"]


def _identity_key(identity):
    return str(getattr(identity, "pk", identity))


def check(action, identity, now=None):
    """Consume one token for ``identity`` under ``action``.

    Raises ``RateLimited`` when the bucket is empty, leaving it untouched.
    Returns the number of whole tokens left.
    """
    capacity, rate, period = _limit_for(action)
    key = _identity_key(identity)
    now = now or timezone.now()

    with transaction.atomic():
        bucket, _ = TokenBucket.objects.select_for_update().get_or_create(
            action=action,
            identity=key,
            defaults={"tokens": float(capacity), "updated_at": now},
        )
        elapsed = max(0.0, (now - bucket.updated_at).total_seconds())
        tokens = min(float(capacity), bucket.tokens + elapsed * rate / period)

        if tokens < 1:
            retry_after = math.ceil((1 - tokens) * period / rate)
            logger.warning(f"Rate limit hit for {action}:{key}, retry in {retry_after}s")
            raise RateLimited(
                "Too many requests. Please try again later.",
                retry_after=retry_after,
            )

        bucket.tokens = tokens - 1
        bucket.updated_at = now
        bucket.save(update_fields=["tokens", "updated_at"])

    return int(bucket.tokens)
