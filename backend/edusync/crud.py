"""Router factory for the uniform entity endpoints.

`build_crud_router` produces the five routes every entity exposes
(list, get, create, update, delete) for one repository/schema pair, so
the four entity types share a single implementation.
"""

import logging
import uuid
from typing import Callable, List, Optional, Type

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlmodel import Session

from .database import get_session
from .errors import ConcurrencyConflict, DuplicateRecord
from .repositories import EntityRepository
from .schemas import DTO

logger = logging.getLogger("edusync.api")


def build_crud_router(
    entity: str,
    repository_cls: Type[EntityRepository],
    schema: Type[DTO],
    list_route: Optional[Callable] = None,
) -> APIRouter:
    """Return an `APIRouter` mounted at `/api/<entity>`.

    `list_route` replaces the default list handler when an entity needs
    query filters.
    """
    router = APIRouter(prefix=f"/api/{entity}", tags=[entity])
    get_route_name = f"get_{entity}"

    def list_records(db: Session = Depends(get_session)):
        return [schema.model_validate(r) for r in repository_cls(db).list()]

    def get_record(record_id: uuid.UUID, db: Session = Depends(get_session)):
        record = repository_cls(db).get(record_id)
        if record is None:
            raise HTTPException(status_code=404, detail=f"{entity} record not found")
        return schema.model_validate(record)

    def create_record(payload: schema, request: Request, response: Response, db: Session = Depends(get_session)):
        try:
            record = repository_cls(db).create(dict(payload))
        except DuplicateRecord as e:
            raise HTTPException(status_code=409, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        created = schema.model_validate(record)
        response.headers["Location"] = str(request.url_for(get_route_name, record_id=str(created.identifier)))
        return created

    def update_record(record_id: uuid.UUID, payload: schema, db: Session = Depends(get_session)):
        if payload.identifier != record_id:
            raise HTTPException(status_code=400, detail=f"{entity} ID mismatch.")
        try:
            record = repository_cls(db).update(record_id, dict(payload))
        except ConcurrencyConflict:
            logger.exception("concurrency conflict updating %s %s", entity, record_id)
            raise HTTPException(status_code=500, detail="A concurrency error occurred.")
        if record is None:
            raise HTTPException(status_code=404, detail=f"{entity} record not found")
        return Response(status_code=204)

    def delete_record(record_id: uuid.UUID, db: Session = Depends(get_session)):
        if not repository_cls(db).delete(record_id):
            raise HTTPException(status_code=404, detail=f"{entity} record not found")
        return Response(status_code=204)

    router.add_api_route("", list_route or list_records, methods=["GET"], response_model=List[schema], name=f"list_{entity}")
    router.add_api_route("/{record_id}", get_record, methods=["GET"], response_model=schema, name=get_route_name)
    router.add_api_route("", create_record, methods=["POST"], response_model=schema, status_code=201, name=f"create_{entity}")
    router.add_api_route("/{record_id}", update_record, methods=["PUT"], status_code=204, response_class=Response, name=f"update_{entity}")
    router.add_api_route("/{record_id}", delete_record, methods=["DELETE"], status_code=204, response_class=Response, name=f"delete_{entity}")
    return router
