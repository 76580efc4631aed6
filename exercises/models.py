from django.db import models


class Exercise(models.Model):
    """
    An entry in the exercise reference library.

    Rows are created and updated by the library importer, matched on
    ``external_id``. Only the fields listed in ``IMPORTED_FIELDS`` are ever
    written by an import; everything else (such as ``notes``) belongs to the
    site and survives re-imports.
    """

    #: Fields whose values come from the upstream dataset
    IMPORTED_FIELDS = (
        "name",
        "force",
        "level",
        "mechanic",
        "equipment",
        "category",
        "primary_muscles",
        "secondary_muscles",
        "instructions",
        "images",
    )

    external_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Stable identifier of the exercise in the upstream dataset",
    )
    name = models.CharField(max_length=255)
    force = models.CharField(max_length=50, blank=True, default="")
    level = models.CharField(max_length=50, blank=True, default="")
    mechanic = models.CharField(max_length=50, blank=True, default="")
    equipment = models.CharField(max_length=100, blank=True, default="")
    category = models.CharField(max_length=100, blank=True, default="")
    primary_muscles = models.JSONField(default=list, blank=True)
    secondary_muscles = models.JSONField(default=list, blank=True)
    instructions = models.JSONField(default=list, blank=True)
    images = models.JSONField(
        default=list,
        blank=True,
        help_text="Media references, relative to the dataset's image root",
    )

    notes = models.TextField(
        blank=True,
        default="",
        help_text="Local annotations. Never changed by library imports.",
    )

    created = models.DateTimeField(auto_now_add=True)
    modified = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("name", "external_id")

    def __str__(self):
        return f"Exercise(external_id={self.external_id}, name={self.name})"

    def imported_values(self):
        return {field: getattr(self, field) for field in self.IMPORTED_FIELDS}
