from exercises.models import Exercise


def create_exercise(*, external_id="Air_Bike", name="Air Bike", **kwargs):
    exercise = Exercise(external_id=external_id, name=name, **kwargs)
    exercise.full_clean()
    exercise.save()
    return exercise
