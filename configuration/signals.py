from logging import getLogger

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from configuration.models import Configuration
from configuration.utils import (
    cache_configuration_value,
    invalidate_configuration_value,
)

logger = getLogger(__name__)


@receiver(post_save, sender=Configuration)
def update_cached_configuration_value(
    sender: type[Configuration], *, instance: Configuration, **kwargs
) -> None:
    """
    Refresh the cached value whenever a configuration row is saved.

    A value which cannot be parsed for its data type is dropped from the cache
    instead, so readers fall back to the database (and fail loudly there)
    rather than keep using a stale value.
    """
    try:
        value = instance.get_value()
    except ValueError:
        logger.warning(
            "Configuration %s has an invalid %s value and was not cached",
            instance.key,
            instance.data_type,
        )
        invalidate_configuration_value(instance.key)
        return
    cache_configuration_value(instance.key, value)


@receiver(post_delete, sender=Configuration)
def remove_cached_configuration_value(
    sender: type[Configuration], *, instance: Configuration, **kwargs
) -> None:
    invalidate_configuration_value(instance.key)
