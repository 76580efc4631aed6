from ninja import NinjaAPI

from exercises.api import router as exercises_router
from importer.api import router as jobs_router


class CamelCaseAPI(NinjaAPI):
    def add_api_operation(self, path, methods, view_func, **kwargs):
        # Ensure by_alias=True is always set unless explicitly overridden
        if "by_alias" not in kwargs:
            kwargs["by_alias"] = True
        return super().add_api_operation(path, methods, view_func, **kwargs)


api = CamelCaseAPI(title="fitlog", version="1", urls_namespace="api")

api.add_router("/exercises", exercises_router)
api.add_router("/jobs", jobs_router)
