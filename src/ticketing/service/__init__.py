import typing as t

from django.db import models, transaction
from ninja import Schema

T = t.TypeVar("T", bound=models.Model)


@transaction.atomic
def update_db_instance(
    instance: T,
    payload: Schema | None = None,
    *,
    exclude_unset: bool = True,
    **kwargs: t.Any,
) -> T:
    """Updates a DB instance given a Schema payload and/or keyword values, safely within a select_for_update lock."""
    instance = instance.__class__.objects.select_for_update().get(pk=instance.pk)  # type: ignore[attr-defined]
    data = payload.model_dump(exclude_unset=exclude_unset) if payload else {}
    data.update(**kwargs)
    for key, value in data.items():
        setattr(instance, key, value)
    instance.save()
    return instance
