from django.contrib import admin, messages
from django.contrib.humanize.templatetags.humanize import naturaltime
from django.db.models import QuerySet
from django.http import HttpRequest

from .dispatch import deploy_job
from .exceptions import JobAlreadyRunning
from .models import ImportJob


@admin.action(description="Deploy a new job of the same kind")
def deploy_again(
    modeladmin: admin.ModelAdmin,
    request: HttpRequest,
    queryset: QuerySet[ImportJob],
) -> None:
    """
    Deploy one new job for each distinct kind among the selected jobs.

    Kinds which already have a live job are reported and skipped.
    """
    kinds = sorted(set(queryset.values_list("kind", flat=True)))
    for kind in kinds:
        try:
            job = deploy_job(kind)
        except JobAlreadyRunning as exc:
            messages.add_message(request, messages.WARNING, str(exc))
        else:
            messages.add_message(
                request, messages.INFO, f"Deployed {kind} job {job.pk}"
            )


class FinishedFilter(admin.SimpleListFilter):
    """Filter by whether a job has reached a terminal status."""

    title = "Finished"
    parameter_name = "finished"

    def lookups(self, request, model_admin):
        return (("no", "Live"), ("yes", "Finished"))

    def queryset(self, request, queryset):
        if self.value() == "yes":
            return queryset.terminal()
        elif self.value() == "no":
            return queryset.live()
        return queryset


@admin.register(ImportJob)
class ImportJobAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "kind",
        "status",
        "created",
        "display_last_progress",
        "items_fetched",
        "items_upserted",
        "items_skipped",
        "items_failed",
        "failure_reason",
    )
    list_filter = ("status", "kind", FinishedFilter, "failure_reason")
    search_fields = ("id", "source_reference", "error_detail")
    date_hierarchy = "created"
    actions = (deploy_again,)

    def get_readonly_fields(self, request, obj=None):
        return [field.name for field in self.model._meta.fields]

    def has_add_permission(self, request):
        # Jobs are only created by the dispatcher
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.display(description="Last progress", ordering="last_progress_at")
    def display_last_progress(self, obj):
        if obj.last_progress_at is None:
            return "-"
        return naturaltime(obj.last_progress_at)
