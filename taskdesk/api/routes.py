"""
API routes for TaskDesk.

REST endpoints over the workspace, authentication and admin operations.
Every endpoint except register/login/health needs the X-Session-Token
header returned by login.
"""

from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, Depends, Header, Query, Request
from pydantic import BaseModel, Field

from ..access.cascade import CascadeResult
from ..errors import SessionError
from ..identity.auth import AuthResult
from ..services import Services
from ..store.records import (
    Account,
    AgendaEntry,
    AgendaItem,
    Category,
    TaskItem,
    TaskStatusFilter,
)
from ..workspace import Kpis
from .sessions import SESSION_HEADER, SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(tags=["TaskDesk"])


# --- Request/Response Models ---


class RegisterRequest(BaseModel):
    email: str = Field(..., description="Login email")
    password: str = Field(..., description="Password")
    display_name: str | None = Field(None, description="Name shown in the UI")


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    token: str
    account_id: str
    email: str
    display_name: str
    roles: list[str]


class AccountResponse(BaseModel):
    account_id: str
    email: str
    display_name: str
    roles: list[str]
    is_locked: bool
    lockout_until: int | None = None

    @classmethod
    def from_account(cls, account: Account) -> AccountResponse:
        return cls(
            account_id=account.account_id,
            email=account.email,
            display_name=account.display_name,
            roles=sorted(account.roles),
            is_locked=account.is_locked(),
            lockout_until=account.lockout_until,
        )


class NameRequest(BaseModel):
    name: str = Field(..., description="Category name")


class CategoryResponse(BaseModel):
    id: int
    name: str

    @classmethod
    def from_category(cls, category: Category) -> CategoryResponse:
        return cls(id=category.category_id, name=category.name)


class TaskCreateRequest(BaseModel):
    category_id: int
    title: str
    description: str | None = None


class TaskUpdateRequest(BaseModel):
    """Edit title/description, toggle completion, or both.

    Fields left out keep their stored value; an explicit null description clears it.
    """

    title: str | None = None
    description: str | None = None
    is_completed: bool | None = None


class TaskResponse(BaseModel):
    id: int
    category_id: int
    title: str
    description: str | None = None
    is_completed: bool

    @classmethod
    def from_task(cls, task: TaskItem) -> TaskResponse:
        return cls(
            id=task.task_id,
            category_id=task.category_id,
            title=task.title,
            description=task.description,
            is_completed=task.is_completed,
        )


class PlanRequest(BaseModel):
    task_id: int
    day: date


class RescheduleRequest(BaseModel):
    day: date


class AgendaResponse(BaseModel):
    id: int
    task_id: int
    day: date
    task_title: str | None = None
    task_description: str | None = None

    @classmethod
    def from_item(cls, item: AgendaItem) -> AgendaResponse:
        return cls(id=item.agenda_id, task_id=item.task_id, day=item.planned_date)

    @classmethod
    def from_entry(cls, entry: AgendaEntry) -> AgendaResponse:
        return cls(
            id=entry.agenda_id,
            task_id=entry.task_id,
            day=entry.planned_date,
            task_title=entry.task_title,
            task_description=entry.task_description,
        )


class CascadeResponse(BaseModel):
    category_ids: list[int]
    task_ids: list[int]
    agenda_ids: list[int]

    @classmethod
    def from_result(cls, result: CascadeResult) -> CascadeResponse:
        return cls(
            category_ids=result.category_ids,
            task_ids=result.task_ids,
            agenda_ids=result.agenda_ids,
        )


class KpiResponse(BaseModel):
    total_tasks: int
    open_tasks: int
    completed_tasks: int
    agenda_today: int
    agenda_next_7_days: int
    has_data: bool

    @classmethod
    def from_kpis(cls, kpis: Kpis) -> KpiResponse:
        return cls(
            total_tasks=kpis.total_tasks,
            open_tasks=kpis.open_tasks,
            completed_tasks=kpis.completed_tasks,
            agenda_today=kpis.agenda_today,
            agenda_next_7_days=kpis.agenda_next_7_days,
            has_data=kpis.has_data,
        )


class RoleRequest(BaseModel):
    role: str = Field(..., description="Admin, PowerUser or User")


# --- Dependencies ---


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_sessions(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_token(x_session_token: str | None = Header(None, alias=SESSION_HEADER)) -> str:
    if not x_session_token:
        raise SessionError(f"{SESSION_HEADER} header is required")
    return x_session_token


def get_actor(
    token: str = Depends(get_token),
    sessions: SessionRegistry = Depends(get_sessions),
) -> AuthResult:
    actor = sessions.get(token)
    if actor is None:
        raise SessionError("Session expired or unknown")
    return actor


# --- Auth ---


@router.post("/auth/register", response_model=AccountResponse, status_code=201)
async def register(body: RegisterRequest, services: Services = Depends(get_services)):
    account = await services.auth.register(body.email, body.password, body.display_name)
    return AccountResponse.from_account(account)


@router.post("/auth/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    services: Services = Depends(get_services),
    sessions: SessionRegistry = Depends(get_sessions),
):
    result = await services.auth.authenticate(body.email, body.password)
    await services.cascade.ensure_default_categories(result.account_id)
    return LoginResponse(
        token=sessions.open(result),
        account_id=result.account_id,
        email=result.email,
        display_name=result.display_name,
        roles=sorted(result.roles),
    )


@router.post("/auth/logout")
async def logout(token: str = Depends(get_token), sessions: SessionRegistry = Depends(get_sessions)):
    return {"logged_out": sessions.close(token)}


@router.get("/auth/me", response_model=AccountResponse)
async def me(actor: AuthResult = Depends(get_actor), services: Services = Depends(get_services)):
    account = await services.identity.find_active(actor.account_id)
    if account is None:
        raise SessionError("Account no longer active")
    return AccountResponse.from_account(account)


# --- Categories ---


@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(
    actor: AuthResult = Depends(get_actor), services: Services = Depends(get_services)
):
    categories = await services.workspace.list_categories(actor.account_id)
    return [CategoryResponse.from_category(c) for c in categories]


@router.post("/categories", response_model=CategoryResponse, status_code=201)
async def add_category(
    body: NameRequest,
    actor: AuthResult = Depends(get_actor),
    services: Services = Depends(get_services),
):
    category = await services.workspace.add_category(actor.account_id, body.name)
    return CategoryResponse.from_category(category)


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
async def rename_category(
    category_id: int,
    body: NameRequest,
    actor: AuthResult = Depends(get_actor),
    services: Services = Depends(get_services),
):
    category = await services.workspace.rename_category(actor.account_id, category_id, body.name)
    return CategoryResponse.from_category(category)


@router.delete("/categories/{category_id}", response_model=CascadeResponse)
async def delete_category(
    category_id: int,
    actor: AuthResult = Depends(get_actor),
    services: Services = Depends(get_services),
):
    result = await services.workspace.delete_category(actor.account_id, category_id)
    return CascadeResponse.from_result(result)


# --- Tasks ---


@router.get("/tasks", response_model=list[TaskResponse])
async def list_tasks(
    category_id: int | None = Query(None),
    status: TaskStatusFilter = Query(TaskStatusFilter.ALL),
    actor: AuthResult = Depends(get_actor),
    services: Services = Depends(get_services),
):
    tasks = await services.workspace.list_tasks(actor.account_id, category_id, status)
    return [TaskResponse.from_task(t) for t in tasks]


@router.post("/tasks", response_model=TaskResponse, status_code=201)
async def add_task(
    body: TaskCreateRequest,
    actor: AuthResult = Depends(get_actor),
    services: Services = Depends(get_services),
):
    task = await services.workspace.add_task(
        actor.account_id, body.category_id, body.title, body.description
    )
    return TaskResponse.from_task(task)


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    body: TaskUpdateRequest,
    actor: AuthResult = Depends(get_actor),
    services: Services = Depends(get_services),
):
    workspace = services.workspace
    task = await workspace.get_task(actor.account_id, task_id)

    # Fields left out of the body keep their stored value
    sent = body.model_fields_set
    if "title" in sent or "description" in sent:
        title = body.title if "title" in sent else task.title
        description = body.description if "description" in sent else task.description
        task = await workspace.edit_task(actor.account_id, task_id, title, description)
    if body.is_completed is not None:
        task = await workspace.set_task_completed(actor.account_id, task_id, body.is_completed)
    return TaskResponse.from_task(task)


@router.delete("/tasks/{task_id}", response_model=CascadeResponse)
async def delete_task(
    task_id: int,
    actor: AuthResult = Depends(get_actor),
    services: Services = Depends(get_services),
):
    result = await services.workspace.delete_task(actor.account_id, task_id)
    return CascadeResponse.from_result(result)


# --- Agenda ---


@router.get("/agenda", response_model=list[AgendaResponse])
async def list_agenda(
    day: date = Query(..., description="Day to list (YYYY-MM-DD)"),
    actor: AuthResult = Depends(get_actor),
    services: Services = Depends(get_services),
):
    entries = await services.workspace.list_agenda(actor.account_id, day)
    return [AgendaResponse.from_entry(e) for e in entries]


@router.post("/agenda", response_model=AgendaResponse, status_code=201)
async def plan_task(
    body: PlanRequest,
    actor: AuthResult = Depends(get_actor),
    services: Services = Depends(get_services),
):
    item = await services.workspace.plan_task(actor.account_id, body.task_id, body.day)
    return AgendaResponse.from_item(item)


@router.patch("/agenda/{agenda_id}", response_model=AgendaResponse)
async def reschedule(
    agenda_id: int,
    body: RescheduleRequest,
    actor: AuthResult = Depends(get_actor),
    services: Services = Depends(get_services),
):
    item = await services.workspace.reschedule(actor.account_id, agenda_id, body.day)
    return AgendaResponse.from_item(item)


@router.delete("/agenda/{agenda_id}", response_model=CascadeResponse)
async def remove_agenda_item(
    agenda_id: int,
    actor: AuthResult = Depends(get_actor),
    services: Services = Depends(get_services),
):
    result = await services.workspace.remove_agenda_item(actor.account_id, agenda_id)
    return CascadeResponse.from_result(result)


@router.get("/kpis", response_model=KpiResponse)
async def kpis(
    today: date | None = Query(None),
    actor: AuthResult = Depends(get_actor),
    services: Services = Depends(get_services),
):
    return KpiResponse.from_kpis(await services.workspace.kpis(actor.account_id, today))


# --- Admin ---


@router.get("/admin/accounts", response_model=list[AccountResponse])
async def list_accounts(
    actor: AuthResult = Depends(get_actor), services: Services = Depends(get_services)
):
    accounts = await services.roles.list_accounts(actor.account_id)
    return [AccountResponse.from_account(a) for a in accounts]


@router.put("/admin/accounts/{account_id}/role", response_model=AccountResponse)
async def set_role(
    account_id: str,
    body: RoleRequest,
    actor: AuthResult = Depends(get_actor),
    services: Services = Depends(get_services),
):
    account = await services.roles.set_role(account_id, body.role, actor.account_id)
    return AccountResponse.from_account(account)


@router.post("/admin/accounts/{account_id}/block", response_model=AccountResponse)
async def block_account(
    account_id: str,
    actor: AuthResult = Depends(get_actor),
    services: Services = Depends(get_services),
    sessions: SessionRegistry = Depends(get_sessions),
):
    account = await services.roles.block(account_id, actor.account_id)
    sessions.close_account(account_id)
    return AccountResponse.from_account(account)


@router.post("/admin/accounts/{account_id}/unblock", response_model=AccountResponse)
async def unblock_account(
    account_id: str,
    actor: AuthResult = Depends(get_actor),
    services: Services = Depends(get_services),
):
    account = await services.roles.unblock(account_id, actor.account_id)
    return AccountResponse.from_account(account)


@router.delete("/admin/accounts/{account_id}", response_model=AccountResponse)
async def delete_account(
    account_id: str,
    actor: AuthResult = Depends(get_actor),
    services: Services = Depends(get_services),
    sessions: SessionRegistry = Depends(get_sessions),
):
    account = await services.roles.soft_delete_account(account_id, actor.account_id)
    sessions.close_account(account_id)
    return AccountResponse.from_account(account)
