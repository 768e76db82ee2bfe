# app/crud.py
import logging
from contextlib import contextmanager
from typing import Any, Mapping, Union

import pydantic
from sqlalchemy import exc
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .. import errors
from . import models, schemas

logger = logging.getLogger(__name__)

SchemaInput = Union[pydantic.BaseModel, Mapping[str, Any]]


def _validate(schema_cls, data: SchemaInput):
    """Coerces a payload into `schema_cls`, raising the registry's ValidationError."""
    # Schema instances are re-checked too; attribute assignment skips validation
    if isinstance(data, pydantic.BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return schema_cls.model_validate(data)
    except pydantic.ValidationError as e:
        raise errors.ValidationError.from_pydantic(e) from e


@contextmanager
def _transaction(db: Session, action: str):
    """Commits on success; rolls back and raises a typed error otherwise."""
    try:
        yield
        db.commit()
    except exc.IntegrityError as e:
        db.rollback()
        logger.warning(f"{action} rejected by the database: {e.orig}")
        if "foreign key" in str(e.orig).lower():
            raise errors.IntegrityError(str(e.orig)) from e
        raise errors.ConflictError(str(e.orig)) from e
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"{action} hit a concurrent modification: {e}")
        raise errors.ConflictError(str(e)) from e
    except errors.RegistryError as e:
        db.rollback()
        logger.warning(f"{action} failed: {e}")
        raise
    except Exception:
        db.rollback()
        raise


def _find(db: Session, model, record_id: int, include_deleted: bool = False, for_update: bool = False):
    query = db.query(model).filter(model.id == record_id)
    if not include_deleted:
        query = query.filter(model.deleted_at.is_(None))
    if for_update:
        query = query.with_for_update()
    return query.first()


def _get_live(db: Session, model, kind: str, record_id: int):
    record = _find(db, model, record_id, for_update=True)
    if record is None:
        raise errors.NotFoundError(kind, record_id)
    return record


def _get_target_service(db: Session, service_id: int) -> models.Service:
    """Locks the service a gate is about to reference.

    Unknown ids are NotFoundError; soft-deleted services are IntegrityError.
    """
    service = _find(db, models.Service, service_id, include_deleted=True, for_update=True)
    if service is None:
        raise errors.NotFoundError("service", service_id)
    if service.is_deleted:
        raise errors.IntegrityError(f"service {service_id} is deleted and cannot take new gates")
    return service


def _apply_changes(record, changes: dict):
    """Every successful update stamps updated_at, even when no value differs."""
    for field, value in changes.items():
        setattr(record, field, value)
    record.updated_at = models.utcnow()


def _list(db: Session, model, include_deleted: bool, skip: int, limit: int, *criteria):
    query = db.query(model).filter(*criteria)
    if not include_deleted:
        query = query.filter(model.deleted_at.is_(None))
    return query.order_by(model.id).offset(skip).limit(limit).all()


# --- Services ---

def get_service(db: Session, service_id: int, include_deleted: bool = False) -> models.Service:
    """Fetches a service by id; soft-deleted services only with include_deleted."""
    db_service = _find(db, models.Service, service_id, include_deleted=include_deleted)
    if db_service is None:
        logger.debug(f"Service {service_id} not found (include_deleted={include_deleted})")
        raise errors.NotFoundError("service", service_id)
    return db_service

def list_services(db: Session, include_deleted: bool = False, skip: int = 0, limit: int = 100) -> list[models.Service]:
    """Fetches a list of services ordered by id."""
    return _list(db, models.Service, include_deleted, skip, limit)

def create_service(db: Session, service: SchemaInput) -> models.Service:
    """Creates a new service entry in the database."""
    with _transaction(db, "create service"):
        service = _validate(schemas.ServiceCreate, service)
        db_service = models.Service(host=service.host, port=service.port)
        db.add(db_service)
    db.refresh(db_service)
    logger.info(f"Service {db_service.id} created for {db_service.address}")
    return db_service

def update_service(db: Session, service_id: int, fields: SchemaInput) -> models.Service:
    """Changes host and/or port of a live service."""
    with _transaction(db, f"update service {service_id}"):
        changes = _validate(schemas.ServiceUpdate, fields).model_dump(exclude_none=True)
        db_service = _get_live(db, models.Service, "service", service_id)
        _apply_changes(db_service, changes)
    db.refresh(db_service)
    logger.info(f"Service {service_id} updated to {db_service.address}")
    return db_service

def soft_delete_service(db: Session, service_id: int) -> None:
    """Marks a service deleted. Gates referencing it are left as they are."""
    with _transaction(db, f"delete service {service_id}"):
        db_service = _get_live(db, models.Service, "service", service_id)
        db_service.deleted_at = models.utcnow()
    logger.info(f"Service {service_id} soft-deleted")


# --- Gates ---

def get_gate(db: Session, gate_id: int, include_deleted: bool = False) -> models.Gate:
    """Fetches a gate by id; soft-deleted gates only with include_deleted."""
    db_gate = _find(db, models.Gate, gate_id, include_deleted=include_deleted)
    if db_gate is None:
        logger.debug(f"Gate {gate_id} not found (include_deleted={include_deleted})")
        raise errors.NotFoundError("gate", gate_id)
    return db_gate

def list_gates(
    db: Session,
    include_deleted: bool = False,
    service_id: int | None = None,
    skip: int = 0,
    limit: int = 100,
) -> list[models.Gate]:
    """Fetches a list of gates ordered by id, optionally only those of one service."""
    criteria = [] if service_id is None else [models.Gate.service_id == service_id]
    return _list(db, models.Gate, include_deleted, skip, limit, *criteria)

def create_gate(db: Session, gate: SchemaInput) -> models.Gate:
    """Creates a gate in front of an existing, live service."""
    with _transaction(db, "create gate"):
        gate = _validate(schemas.GateCreate, gate)
        db_service = _get_target_service(db, gate.service_id)
        db_gate = models.Gate(service=db_service, host=gate.host, port=gate.port)
        db.add(db_gate)
    db.refresh(db_gate)
    logger.info(f"Gate {db_gate.id} created on {db_gate.address} for service {db_gate.service_id}")
    return db_gate

def update_gate(db: Session, gate_id: int, fields: SchemaInput) -> models.Gate:
    """Changes host, port and/or target service of a live gate."""
    with _transaction(db, f"update gate {gate_id}"):
        changes = _validate(schemas.GateUpdate, fields).model_dump(exclude_none=True)
        db_gate = _get_live(db, models.Gate, "gate", gate_id)
        if changes.get("service_id", db_gate.service_id) != db_gate.service_id:
            _get_target_service(db, changes["service_id"])
        _apply_changes(db_gate, changes)
    db.refresh(db_gate)
    logger.info(f"Gate {gate_id} updated to {db_gate.address} for service {db_gate.service_id}")
    return db_gate

def soft_delete_gate(db: Session, gate_id: int) -> None:
    """Marks a gate deleted."""
    with _transaction(db, f"delete gate {gate_id}"):
        db_gate = _get_live(db, models.Gate, "gate", gate_id)
        db_gate.deleted_at = models.utcnow()
    logger.info(f"Gate {gate_id} soft-deleted")
