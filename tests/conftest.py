"""Shared fixtures: SQLite-backed storage and fake provider clients."""

import pytest
from fastapi.testclient import TestClient

from relay.config import Settings
from relay.conversations import ConversationLog
from relay.db import init_db, make_engine, make_session_factory
from relay.directory import TenantDirectory
from relay.main import create_app
from relay.pipeline import RelayPipeline

ROUTING_KEY = "555000111"
SENDER = "15551234567"


class FakeCompletion:
    model = "fake-model"

    def __init__(self, reply="Hello there!", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def complete(self, system_prompt, user_text):
        self.calls.append((system_prompt, user_text))
        if self.error is not None:
            raise self.error
        return self.reply

    async def aclose(self):
        pass


class FakeDelivery:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    async def send(self, routing_key, recipient, text, credential):
        self.calls.append(
            {"routing_key": routing_key, "to": recipient, "body": text, "credential": credential}
        )
        if self.error is not None:
            raise self.error
        return {"messages": [{"id": "wamid.out"}]}

    async def aclose(self):
        pass


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        whatsapp_verify_token="verify-secret",
        openai_api_key="sk-test",
        whatsapp_token="fallback-token",
        database_url=f"sqlite:///{tmp_path / 'relay.db'}",
        auto_migrate=False,
        _env_file=None,
    )
    values.update(overrides)
    return Settings(**values)


def whatsapp_payload(
    routing_key=ROUTING_KEY, sender=SENDER, text="Hi", message_id="wamid.in.1", timestamp="1700000000"
) -> dict:
    return {
        "object": "whatsapp_business_account",
        "entry": [{
            "id": "WABA_ID",
            "changes": [{
                "field": "messages",
                "value": {
                    "messaging_product": "whatsapp",
                    "metadata": {"display_phone_number": "15550001111", "phone_number_id": routing_key},
                    "messages": [{
                        "from": sender,
                        "id": message_id,
                        "timestamp": timestamp,
                        "type": "text",
                        "text": {"body": text},
                    }],
                },
            }],
        }],
    }


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def session_factory(settings):
    engine = make_engine(settings)
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def directory(session_factory):
    return TenantDirectory(session_factory)


@pytest.fixture
def conversation_log(session_factory):
    return ConversationLog(session_factory)


@pytest.fixture
def completion():
    return FakeCompletion()


@pytest.fixture
def delivery():
    return FakeDelivery()


@pytest.fixture
def tenant(directory):
    return directory.create(name="Acme", routing_key=ROUTING_KEY, system_prompt="")


@pytest.fixture
def pipeline(settings, directory, conversation_log, completion, delivery):
    return RelayPipeline(settings, directory, conversation_log, completion, delivery)


@pytest.fixture
def client(settings, completion, delivery, session_factory):
    # session_factory creates the schema before the app opens its own engine
    app = create_app(settings, completion=completion, delivery=delivery)
    with TestClient(app) as c:
        yield c
