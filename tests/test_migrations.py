"""Default startup path: schema comes from the Alembic migrations, not create_all."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import inspect

from conftest import ROUTING_KEY, make_settings, whatsapp_payload
from relay.db import make_engine
from relay.main import create_app


@pytest.fixture
def migrated_settings(tmp_path):
    return make_settings(tmp_path, auto_migrate=True)


@pytest.fixture
def migrated_client(migrated_settings, completion, delivery):
    app = create_app(migrated_settings, completion=completion, delivery=delivery)
    with TestClient(app) as c:
        yield c


def test_migrations_create_the_schema(migrated_client, migrated_settings):
    engine = make_engine(migrated_settings)
    tables = set(inspect(engine).get_table_names())
    engine.dispose()

    assert {"tenants", "messages", "alembic_version"} <= tables


def test_relay_lifecycle_on_migrated_schema(migrated_client, delivery):
    body = {"name": "Acme", "routing_key": ROUTING_KEY, "delivery_credential": "tok"}
    r = migrated_client.post("/admin/projects", json=body)
    assert r.status_code == 201
    project_id = r.json()["id"]

    assert migrated_client.post("/admin/projects", json=dict(body, name="Impostor")).status_code == 409

    r = migrated_client.post("/webhook", json=whatsapp_payload(text="Hi"))
    assert r.status_code == 200
    log = migrated_client.app.state.conversation_log
    assert len(log.list_by_tenant(project_id)) == 2
    assert delivery.calls[0]["credential"] == "tok"

    assert migrated_client.delete(f"/admin/projects/{project_id}").status_code == 200
    assert log.list_all() == []
