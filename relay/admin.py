"""Admin endpoints: projects (tenants), conversation logs, analytics."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from relay.conversations import ConversationLog
from relay.deps import get_conversation_log, get_directory, tenant_by_id
from relay.directory import TenantDirectory
from relay.errors import PersistenceError, RoutingKeyConflict, TenantNotFound
from relay.models import Tenant
from relay.schemas import (
    ConversationOut,
    MessageOut,
    ProjectCreate,
    ProjectDetails,
    ProjectOut,
    ProjectStats,
    ProjectUpdate,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _server_error(e: Exception) -> HTTPException:
    logger.error("Admin storage failure: %s", e)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal Server Error",
    )


@router.post("/projects", response_model=ProjectOut, status_code=status.HTTP_201_CREATED)
def create_project(
    body: ProjectCreate,
    directory: TenantDirectory = Depends(get_directory),
):
    try:
        return directory.create(**body.model_dump())
    except RoutingKeyConflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except PersistenceError as e:
        raise _server_error(e)


@router.get("/projects", response_model=list[ProjectOut])
def list_projects(directory: TenantDirectory = Depends(get_directory)):
    try:
        return directory.list()
    except PersistenceError as e:
        raise _server_error(e)


@router.get("/projects/{tenant_id}", response_model=ProjectOut)
def get_project(tenant: Tenant = Depends(tenant_by_id)):
    return tenant


@router.put("/projects/{tenant_id}", response_model=ProjectOut)
def update_project(
    tenant_id: int,
    body: ProjectUpdate,
    directory: TenantDirectory = Depends(get_directory),
):
    fields = body.model_dump(exclude_unset=True)
    for required in ("name", "routing_key"):
        if required in fields and fields[required] is None:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"{required} cannot be null",
            )
    try:
        return directory.update(tenant_id, **fields)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except TenantNotFound:
        raise HTTPException(status_code=404, detail="Project not found")
    except RoutingKeyConflict as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except PersistenceError as e:
        raise _server_error(e)


@router.delete("/projects/{tenant_id}")
def delete_project(
    tenant_id: int,
    directory: TenantDirectory = Depends(get_directory),
):
    try:
        directory.delete(tenant_id)
    except TenantNotFound:
        raise HTTPException(status_code=404, detail="Project not found")
    except PersistenceError as e:
        raise _server_error(e)
    return {"message": "Project deleted successfully"}


@router.get("/projects/{tenant_id}/details", response_model=ProjectDetails)
def project_details(
    tenant: Tenant = Depends(tenant_by_id),
    log: ConversationLog = Depends(get_conversation_log),
):
    """Project plus its conversation log, newest first."""
    try:
        messages = log.list_by_tenant(tenant.id)
    except PersistenceError as e:
        raise _server_error(e)
    return ProjectDetails(
        project=ProjectOut.model_validate(tenant),
        conversations=[MessageOut.model_validate(m) for m in messages],
    )


@router.get("/conversations", response_model=list[ConversationOut])
def list_conversations(log: ConversationLog = Depends(get_conversation_log)):
    """All messages across projects, newest first."""
    try:
        rows = log.list_all()
    except PersistenceError as e:
        raise _server_error(e)
    return [
        ConversationOut(**MessageOut.model_validate(m).model_dump(), project_name=name)
        for m, name in rows
    ]


@router.get("/analytics", response_model=list[ProjectStats])
def analytics(log: ConversationLog = Depends(get_conversation_log)):
    try:
        rows = log.count_by_tenant()
    except PersistenceError as e:
        raise _server_error(e)
    return [
        ProjectStats(id=tid, project_name=name, message_count=count)
        for tid, name, count in rows
    ]
