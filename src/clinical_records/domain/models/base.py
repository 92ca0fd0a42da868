from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class LocalRecordModel(BaseModel):
    """Base for entities of the local records store.

    Instances are immutable and serialize with the camelCase keys used by the
    persisted snapshot (``birthDate``, ``patientId``, ``createdAt``...).
    Python code reads and writes the snake_case attribute names.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)
