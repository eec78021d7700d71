"""Model-level `objects` manager exposing queryset entry points."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlmodel import col, select

from app.db.queryset import QuerySet

ModelT = TypeVar("ModelT")


class ModelManager(Generic[ModelT]):
    """Entry points for building querysets bound to one model class."""

    def __init__(self, model: type[ModelT]) -> None:
        self.model = model

    def all(self) -> QuerySet[ModelT]:
        return QuerySet(self.model, select(self.model))

    def filter(self, *criteria: Any) -> QuerySet[ModelT]:
        return self.all().filter(*criteria)

    def filter_by(self, **kwargs: Any) -> QuerySet[ModelT]:
        return self.all().filter_by(**kwargs)

    def by_id(self, obj_id: object) -> QuerySet[ModelT]:
        id_column = getattr(self.model, "id")
        return self.filter(col(id_column) == obj_id)


class ManagerDescriptor:
    """Descriptor that builds a manager for the class it is accessed on."""

    def __get__(self, instance: object, owner: type[Any]) -> ModelManager[Any]:
        return ModelManager(owner)
