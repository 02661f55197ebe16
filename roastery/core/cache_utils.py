"""
Caching utilities for expensive read-model queries

Keys are scoped per tenant and carry a tenant "version" token. Writes to the
underlying tables replace the token (see cache_signals), which makes every
cached entry of that tenant unreachable without scanning Redis for keys.
"""
import hashlib
import logging
import uuid
from functools import wraps

from django.conf import settings
from django.core.cache import cache
from django.db import transaction

logger = logging.getLogger(__name__)


def _version_key(tenant_id):
    return f"tenant-version:{tenant_id}"


def get_tenant_version(tenant_id):
    version = cache.get(_version_key(tenant_id))
    if version is None:
        cache.add(_version_key(tenant_id), uuid.uuid4().hex[:12], None)
        version = cache.get(_version_key(tenant_id))
    return version


def bump_tenant_version(tenant_id):
    """Invalidate every cached report of a tenant"""
    if tenant_id is None:
        return
    cache.set(_version_key(tenant_id), uuid.uuid4().hex[:12], None)


def invalidate_tenant_reports(tenant_id):
    """Bump the tenant version now and again once the current transaction commits"""
    if tenant_id is None:
        return
    bump_tenant_version(tenant_id)
    # Entries cached by other connections before the commit must not outlive it
    transaction.on_commit(lambda: bump_tenant_version(tenant_id))


def make_cache_key(prefix, tenant_id, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{tenant_id}:v{get_tenant_version(tenant_id)}:{key_hash}"


def cached_report(key_prefix, cache_ttl=None):
    """
    Decorator caching a read-model function whose first argument is a RequestContext

    Usage:
        @cached_report("dashboard")
        def dashboard_summary(ctx):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(ctx, *args, **kwargs):
            tenant_id = ctx.require_tenant().pk
            cache_key = make_cache_key(key_prefix, tenant_id, *args, **kwargs)

            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug("Cache HIT for %s: %s", key_prefix, cache_key)
                return cached_data

            logger.debug("Cache MISS for %s: %s", key_prefix, cache_key)
            result = func(ctx, *args, **kwargs)
            ttl = cache_ttl if cache_ttl is not None else settings.REPORTS_CACHE_TTL
            cache.set(cache_key, result, ttl)
            return result
        return wrapper
    return decorator
