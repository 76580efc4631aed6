from typing import Any

from django.conf import settings
from django.core.cache import caches

from configuration.models import Configuration

CONFIGURATION_KEY_PREFIX = "config"

_MISSING = object()


def configuration_value(key: str, default: Any = _MISSING) -> Any:
    """
    Retrieve a configuration value by key with caching and type casting.

    Behavior:
        - Look up the value in the ``configuration_cache`` using a namespaced
          cache key.
        - If the value is missing, load it from the database, cast it with
          ``Configuration.get_value()`` and cache it.
        - If there is no ``Configuration`` row for the key and a ``default``
          was given, return the default without caching it, so that a row
          created later takes effect immediately.

    Args:
        key (str): The configuration key to resolve.
        default (Any): Value returned when the key is not configured.

    Returns:
        Any: The resolved and type-cast configuration value.

    Raises:
        Configuration.DoesNotExist: If the key is not present in the database
            and no default was provided.
    """
    config_cache = caches["configuration_cache"]
    value = config_cache.get(f"{CONFIGURATION_KEY_PREFIX}_{key}")

    if value is None:
        try:
            value = cache_configuration_value(key)
        except Configuration.DoesNotExist:
            if default is _MISSING:
                raise
            return default

    return value


def cache_configuration_value(key: str, value: Any | None = None) -> Any:
    """
    Populate or refresh the cached value for a configuration key.

    If ``value`` is ``None`` the ``Configuration`` row is loaded and cast via
    ``get_value()``; otherwise ``value`` is cached directly. Entries expire
    after ``settings.CONFIGURATION_CACHE_TIMEOUT`` seconds.

    Raises:
        Configuration.DoesNotExist: If ``value`` is ``None`` and there is no
            ``Configuration`` row with the given key.
    """
    config_cache = caches["configuration_cache"]

    if value is None:
        value = Configuration.objects.get(key=key).get_value()

    config_cache.set(
        f"{CONFIGURATION_KEY_PREFIX}_{key}",
        value,
        timeout=settings.CONFIGURATION_CACHE_TIMEOUT,
    )
    return value


def invalidate_configuration_value(key: str) -> None:
    caches["configuration_cache"].delete(f"{CONFIGURATION_KEY_PREFIX}_{key}")
