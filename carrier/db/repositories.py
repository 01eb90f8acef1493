import logging
from typing import Generic, List, Optional, Type, TypeVar, Union

from sqlalchemy import select
from sqlalchemy.orm import Session

from carrier.db.models import AppSetting, Base, PermissionGroup

logger = logging.getLogger("carrier.db")

ModelT = TypeVar("ModelT", bound=Base)


class Repository(Generic[ModelT]):
    """CRUD access to one mapped model through a SQLAlchemy session."""

    model: Type[ModelT]

    def __init__(self, db: Session):
        self.db = db

    def insert(self, entity: ModelT) -> int:
        self.db.add(entity)
        self.db.commit()
        self.db.refresh(entity)
        logger.info("record_inserted", extra={"table": self.model.__tablename__, "id": entity.id})
        return entity.id

    def update(self, entity: ModelT) -> None:
        if entity.id is None or not self.find_by_id(entity.id):
            raise LookupError(f"{self.model.__name__} {entity.id} does not exist.")
        self.db.merge(entity)
        self.db.commit()

    def find_by_id(self, record_id: int) -> bool:
        return self.db.get(self.model, record_id) is not None

    def retrieve_by_id(self, record_id: int) -> ModelT:
        entity = self.db.get(self.model, record_id)
        if entity is None:
            raise LookupError(f"{self.model.__name__} {record_id} does not exist.")
        return entity

    def retrieve_all(self) -> List[ModelT]:
        return list(self.db.scalars(select(self.model).order_by(self.model.id.asc())).all())

    def verify_constraints_by_id(self, record_id: int) -> Union[bool, List[str]]:
        """Return True when the record can be deleted, else the blocking reasons."""
        return True

    def delete_by_id(self, record_id: int) -> None:
        entity = self.retrieve_by_id(record_id)
        constraints = self.verify_constraints_by_id(record_id)
        if constraints is not True:
            raise ValueError(f"{self.model.__name__} {record_id} cannot be deleted: {'; '.join(constraints)}")
        self.db.delete(entity)
        self.db.commit()
        logger.info("record_deleted", extra={"table": self.model.__tablename__, "id": record_id})


class AppSettingRepository(Repository[AppSetting]):
    model = AppSetting

    def retrieve_by_key(self, key: str) -> Optional[AppSetting]:
        return self.db.scalar(select(AppSetting).where(AppSetting.key == key))

    def get_value(self, key: str, default: Optional[str] = None) -> Optional[str]:
        setting = self.retrieve_by_key(key)
        return setting.value if setting else default

    def set_value(self, key: str, value: Optional[str], description: Optional[str] = None) -> AppSetting:
        setting = self.retrieve_by_key(key)
        if not setting:
            setting = AppSetting(key=key)
            self.db.add(setting)
        setting.value = value
        if description is not None:
            setting.description = description
        self.db.commit()
        self.db.refresh(setting)
        return setting


class PermissionGroupRepository(Repository[PermissionGroup]):
    model = PermissionGroup

    def children_of(self, group_id: int) -> List[PermissionGroup]:
        stmt = (
            select(PermissionGroup)
            .where(PermissionGroup.parent_id == group_id)
            .order_by(PermissionGroup.short_name.asc())
        )
        return list(self.db.scalars(stmt).all())

    def verify_constraints_by_id(self, record_id: int) -> Union[bool, List[str]]:
        children = self.children_of(record_id)
        if not children:
            return True
        return [f"Group {child.short_name} depends on it." for child in children]
