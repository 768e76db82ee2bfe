import pytest

from porter_registry import errors
from porter_registry.app import crud, models, schemas


def test_create_service_assigns_fresh_id(db):
    first = crud.create_service(db, {"host": "10.0.0.1", "port": 8080})
    second = crud.create_service(db, schemas.ServiceCreate(host="10.0.0.2", port=9090))

    assert first.id != second.id
    for service in (first, second):
        assert service.created_at is not None
        assert service.updated_at is None
        assert service.deleted_at is None
        assert service.state is models.RecordState.active


@pytest.mark.parametrize(
    "payload",
    [
        {"host": "", "port": 80},
        {"host": "   ", "port": 80},
        {"host": "10.0.0.1", "port": 0},
        {"host": "10.0.0.1", "port": 65536},
        {"host": "10.0.0.1"},
    ],
)
def test_create_service_rejects_invalid_input(db, payload):
    with pytest.raises(errors.ValidationError) as exc_info:
        crud.create_service(db, payload)

    assert exc_info.value.errors
    assert crud.list_services(db, include_deleted=True) == []


def test_port_bounds_are_inclusive(db):
    assert crud.create_service(db, {"host": "h", "port": 1}).port == 1
    assert crud.create_service(db, {"host": "h", "port": 65535}).port == 65535


def test_get_service(db, service):
    assert crud.get_service(db, service.id) is service

    with pytest.raises(errors.NotFoundError) as exc_info:
        crud.get_service(db, 999)
    assert exc_info.value.kind == "service"
    assert exc_info.value.id == 999


def test_update_service_sets_updated_at(db, service):
    updated = crud.update_service(db, service.id, {"port": 9090})
    fetched = crud.get_service(db, service.id)

    assert fetched.port == 9090
    assert fetched.host == "10.0.0.1"
    assert fetched.updated_at > fetched.created_at
    assert updated.state is models.RecordState.updated


def test_update_service_without_changes_still_sets_updated_at(db, service):
    crud.update_service(db, service.id, {"host": "10.0.0.1"})
    fetched = crud.get_service(db, service.id)

    assert fetched.updated_at is not None
    assert fetched.updated_at > fetched.created_at
    first_update = fetched.updated_at

    crud.update_service(db, service.id, {})

    assert crud.get_service(db, service.id).updated_at > first_update
    assert fetched.state is models.RecordState.updated


def test_update_service_validation(db, service):
    with pytest.raises(errors.ValidationError):
        crud.update_service(db, service.id, {"port": 70000})
    with pytest.raises(errors.ValidationError):
        crud.update_service(db, service.id, {"host": ""})

    assert crud.get_service(db, service.id).port == 8080


def test_update_unknown_or_deleted_service(db, service):
    with pytest.raises(errors.NotFoundError):
        crud.update_service(db, 999, {"port": 1})

    crud.soft_delete_service(db, service.id)
    with pytest.raises(errors.NotFoundError):
        crud.update_service(db, service.id, {"port": 1})


def test_soft_delete_service(db, service):
    crud.soft_delete_service(db, service.id)

    with pytest.raises(errors.NotFoundError):
        crud.get_service(db, service.id)
    deleted = crud.get_service(db, service.id, include_deleted=True)
    assert deleted.deleted_at is not None
    assert deleted.state is models.RecordState.deleted


def test_soft_delete_is_terminal(db, service):
    crud.soft_delete_service(db, service.id)

    with pytest.raises(errors.NotFoundError):
        crud.soft_delete_service(db, service.id)
    with pytest.raises(errors.NotFoundError):
        crud.soft_delete_service(db, 999)


def test_list_services(db):
    services = [crud.create_service(db, {"host": f"10.0.0.{i}", "port": 8000 + i}) for i in range(1, 5)]
    crud.soft_delete_service(db, services[1].id)

    assert [s.id for s in crud.list_services(db)] == [services[0].id, services[2].id, services[3].id]
    assert len(crud.list_services(db, include_deleted=True)) == 4
    assert [s.id for s in crud.list_services(db, skip=1, limit=1)] == [services[2].id]


def test_service_schema_reads_from_record(db, service):
    data = schemas.Service.model_validate(service)

    assert data.id == service.id
    assert data.host == "10.0.0.1"
    assert data.state == models.RecordState.active
    assert data.deleted_at is None


def test_schema_changed_after_construction_is_revalidated(db):
    payload = schemas.ServiceCreate(host="10.0.0.1", port=80)
    payload.port = 0
    payload.host = ""

    with pytest.raises(errors.ValidationError):
        crud.create_service(db, payload)
    assert crud.list_services(db, include_deleted=True) == []


def test_updated_schema_changed_after_construction_is_revalidated(db, service):
    fields = schemas.ServiceUpdate(port=9090)
    fields.port = 70000

    with pytest.raises(errors.ValidationError):
        crud.update_service(db, service.id, fields)
    assert crud.get_service(db, service.id).port == 8080


@pytest.mark.parametrize("port", [True, "80", 80.0])
def test_port_must_be_an_integer(db, port):
    with pytest.raises(errors.ValidationError):
        crud.create_service(db, {"host": "10.0.0.1", "port": port})
