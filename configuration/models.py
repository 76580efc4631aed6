import json

from django.core.exceptions import ValidationError
from django.db import models


class Configuration(models.Model):
    """
    A runtime-tunable setting which administrators can change without a
    deployment. Code reads these through ``configuration.utils``.
    """

    class DataType(models.TextChoices):
        TEXT = "text", "Plain text"
        NUMBER = "number", "Number"
        BOOLEAN = "boolean", "Boolean"
        JSON = "json", "JSON"

    key = models.CharField(
        max_length=255,
        unique=True,
        help_text="Unique identifier for the configuration setting",
    )
    data_type = models.CharField(
        max_length=10,
        choices=DataType.choices,
        default=DataType.TEXT,
        help_text="Data type of the value",
    )
    value = models.TextField(help_text="Value of the configuration setting")
    description = models.TextField(
        blank=True, help_text="Optional description of the configuration setting"
    )

    def __str__(self):
        return self.key

    def clean(self):
        try:
            self.get_value()
        except ValueError as exc:
            raise ValidationError(
                {"value": f"Not a valid {self.get_data_type_display()}: {exc}"}
            ) from exc

    def get_value(self):
        """
        Return the stored value cast according to ``data_type``.

        Raises:
            ValueError: If the value cannot be interpreted as the data type.
                ``json.JSONDecodeError`` is a subclass of ``ValueError``.
        """
        if self.data_type == Configuration.DataType.NUMBER:
            try:
                return int(self.value)
            except ValueError:
                return float(self.value)
        elif self.data_type == Configuration.DataType.BOOLEAN:
            return self.value.strip().lower() in ("true", "1", "yes")
        elif self.data_type == Configuration.DataType.JSON:
            return json.loads(self.value)
        else:
            # DataType.TEXT or an unknown type,
            # so just return the value itself
            return self.value
