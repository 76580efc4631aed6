from django.core.files.storage import storages
from django.utils.functional import LazyObject

#: Alias in settings.STORAGES holding the exercise library dataset
EXERCISE_LIBRARY_STORAGE_ALIAS = "exercise_library"


class LazyExerciseLibraryStorage(LazyObject):
    def _setup(self):
        self._wrapped = storages[EXERCISE_LIBRARY_STORAGE_ALIAS]


# We use a LazyObject so the value isn't evaluated when the code is loaded,
# which is needed to override the setting during tests
EXERCISE_LIBRARY_STORAGE = LazyExerciseLibraryStorage()
