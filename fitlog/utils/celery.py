from celery import Task

from fitlog.celery import app as fitlog_celery_app


def get_registered_task(name: str) -> Task:
    """
    Retrieve a Celery task by its fully qualified name.

    Looking tasks up in the registry lets callers such as the job dispatcher
    refer to a task by name without importing its module, which avoids
    circular imports between models and task modules. Unlike
    ``app.send_task``, the returned task honors settings such as
    ``CELERY_TASK_ALWAYS_EAGER``.

    Args:
        name (str): Fully qualified task name, for example
            "importer.tasks.library.run_exercise_library_import_task".

    Returns:
        Task: The registered Celery task object.

    Raises:
        RuntimeError: If the task name is not found in the registry.
    """
    try:
        return fitlog_celery_app.tasks[name]
    except KeyError as err:
        raise RuntimeError(f"Task {name} is not registered. Did you typo it?") from err
