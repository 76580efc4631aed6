from typing import Optional

from django.shortcuts import get_object_or_404
from ninja import Router

from fitlog.api.schemas import CamelSchema

from .models import Exercise

router = Router(tags=["exercises"])

#: Upper bound on the page size clients may request
MAX_PAGE_SIZE = 500


class ExerciseOut(CamelSchema):
    external_id: str
    name: str
    force: str
    level: str
    mechanic: str
    equipment: str
    category: str
    primary_muscles: list[str]
    secondary_muscles: list[str]
    instructions: list[str]
    images: list[str]
    notes: str


def serialize_exercise(exercise):
    return ExerciseOut(
        external_id=exercise.external_id,
        notes=exercise.notes,
        **exercise.imported_values(),
    )


@router.get("/", response=list[ExerciseOut], by_alias=True)
def exercise_list(
    request,
    q: Optional[str] = None,
    category: Optional[str] = None,
    limit: int = 100,
    offset: int = 0,
):
    """GET /exercises/: the exercise library, ordered by name."""
    qs = Exercise.objects.all()
    if q:
        qs = qs.filter(name__icontains=q)
    if category:
        qs = qs.filter(category=category)
    limit = min(max(limit, 0), MAX_PAGE_SIZE)
    offset = max(offset, 0)
    return [serialize_exercise(exercise) for exercise in qs[offset : offset + limit]]


@router.get("/{external_id}", response=ExerciseOut, by_alias=True)
def exercise_detail(request, external_id: str):
    exercise = get_object_or_404(Exercise, external_id=external_id)
    return serialize_exercise(exercise)
