# app/core/crud_base.py

"""
공통 CRUD(Create, Read, Delete) 작업을 위한 기본 클래스 모듈입니다.
모든 메서드는 비동기(async) 환경을 전제로 합니다.
"""

from typing import Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import SQLModel, select
from sqlmodel.ext.asyncio.session import AsyncSession

ModelType = TypeVar("ModelType", bound=SQLModel)


class CRUDBase(Generic[ModelType]):
    """
    테이블 모델 하나에 대한 기본 CRUD 작업을 정의합니다.
    도메인별 CRUD 클래스는 이 클래스를 상속하여 조회 조건을 특화합니다.
    """
    def __init__(self, model: Type[ModelType]):
        self.model = model

    async def get(self, db: AsyncSession, id: Any) -> Optional[ModelType]:
        """기본 키로 단일 레코드를 조회합니다."""
        return await db.get(self.model, id)

    async def get_multi(
        self,
        db: AsyncSession,
        *,
        conditions: Sequence[ColumnElement] = (),
        order_by: Optional[ColumnElement] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[ModelType]:
        """
        조건식(where 절)을 만족하는 여러 레코드를 조회합니다.
        - `conditions`: SQLAlchemy 조건식 목록 (AND 결합)
        - `order_by`: 정렬 기준 컬럼 표현식
        """
        query = select(self.model)
        if conditions:
            query = query.where(*conditions)
        if order_by is not None:
            query = query.order_by(order_by)
        query = query.offset(skip).limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())

    async def create(self, db: AsyncSession, *, db_obj: ModelType) -> ModelType:
        """모델 인스턴스를 저장하고 갱신된 객체를 반환합니다."""
        db.add(db_obj)
        await db.commit()
        await db.refresh(db_obj)
        return db_obj

    async def delete(self, db: AsyncSession, *, db_obj: ModelType) -> ModelType:
        """레코드를 삭제합니다."""
        await db.delete(db_obj)
        await db.commit()
        return db_obj
