from fastapi import Depends, HTTPException, Request

from relay.config import Settings
from relay.conversations import ConversationLog
from relay.directory import TenantDirectory
from relay.errors import PersistenceError, TenantNotFound
from relay.models import Tenant
from relay.pipeline import RelayPipeline


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_directory(request: Request) -> TenantDirectory:
    return request.app.state.directory


def get_conversation_log(request: Request) -> ConversationLog:
    return request.app.state.conversation_log


def get_pipeline(request: Request) -> RelayPipeline:
    return request.app.state.pipeline


def tenant_by_id(
    tenant_id: int,
    directory: TenantDirectory = Depends(get_directory),
) -> Tenant:
    try:
        return directory.get_by_id(tenant_id)
    except TenantNotFound:
        raise HTTPException(404, "Project not found")
    except PersistenceError:
        raise HTTPException(500, "Internal Server Error")
