"""FastMCP server for the license keys admin API."""

from collections.abc import Awaitable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import asdict
from datetime import date
from typing import Annotated, Any, TypeVar

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import BaseModel, Field, ValidationError

from core.context import AppContext, build_app_context
from schemas.auth import SignInRequest
from schemas.batch import BatchCreate
from schemas.client import ClientCreate
from schemas.key import KeyCreate
from schemas.key_type import KeyTypeCreate, KeyTypePermissionsUpdate
from services import (
    auth_service,
    batch_service,
    client_service,
    dashboard_service,
    key_login_service,
    key_service,
    key_type_service,
)
from services.dirty_fields import (
    BATCH_EDIT_FORM,
    KEY_TYPE_EDIT_FORM,
    NO_CHANGES,
    NO_CHANGES_MESSAGE,
    EditForm,
    NoChanges,
)
from shared.api_errors import AdminApiError, ServerRejectionError
from stores.client_store import ClientStore
from stores.key_store import KeyStore

from .auth import AuthenticationError, get_request_token

T = TypeVar("T")

mcp = FastMCP(
    name="License Keys Admin",
    instructions="""
Administration of software license keys, the clients they are assigned to,
and the batches they were generated in.

Available tools:
- `list_keys` / `list_inactive_keys`: Browse keys page by page, optionally filtered by text
- `get_key`, `create_key`, `update_key`, `delete_key`, `generate_keys_bulk`: Manage keys
- `list_clients`, `create_client`, `update_client`, `delete_client`: Manage clients
- `list_batches`, `create_batch`, `update_batch`: Manage batches
- `list_key_types`, `list_permissions`: Lookups for key forms
- `get_dashboard_stats`: Totals for the dashboard home
- `get_key_details`, `get_key_by_code`, `list_client_keys`, `list_key_logins`: Key detail views
- `create_key_type`, `update_key_type`, `set_key_type_permissions`: Manage key types
- `get_key_report`: Keys expiring within 30 days, counts by type and by client
- `sign_in` / `sign_out`: Start or end a session when the request carries no bearer token

Lists are cached per page; pass `force_refresh=true` to bypass the cache.
While a `query` is active, results only cover the current page and
`total_pages` is null.

Updates only send the fields that changed. Use `clear_fields` to empty an
optional field (e.g. `due_date`, `client_id`).
""".strip(),
)


# Module-level context, built on first use (can be replaced in tests)
_context: AppContext | None = None


def _get_context() -> AppContext:
    """Get or create the application context (session, API client, stores)."""
    global _context  # noqa: PLW0603
    if _context is None or _context.api.is_closed:
        _context = build_app_context(request_token=get_request_token)
    return _context


def set_app_context(context: AppContext | None) -> None:
    """Install the application context built at startup."""
    global _context  # noqa: PLW0603
    _context = context


def _first_validation_message(e: ValidationError) -> str:
    first = e.errors()[0]
    loc = first.get("loc") or ("unknown",)
    return f"Validación fallida: {loc[0]}: {first['msg']}"


@contextmanager
def _tool_errors() -> Iterator[None]:
    """Translate client errors raised inside the block into ToolErrors."""
    try:
        yield
    except ServerRejectionError as e:
        if e.category == "auth" and not e.server_message:
            raise ToolError("Invalid or expired token") from e
        raise ToolError(e.message) from e
    except AdminApiError as e:
        raise ToolError(e.message) from e
    except AuthenticationError as e:
        raise ToolError(str(e)) from e
    except ValidationError as e:
        raise ToolError(_first_validation_message(e)) from e


async def _run(call: Awaitable[T]) -> T:
    """Await a client call, translating its errors into ToolErrors."""
    with _tool_errors():
        return await call


def _build_patch(
    form: EditForm, original: Mapping[str, Any], submitted: Mapping[str, Any],
) -> dict[str, Any] | NoChanges:
    """Diff an edit form, reporting validation failures like any other tool error."""
    with _tool_errors():
        return form.build_patch(original, submitted)


def _keys() -> KeyStore:
    """Keys store for the caller's token."""
    with _tool_errors():
        return _get_context().keys


def _clients() -> ClientStore:
    """Clients store for the caller's token."""
    with _tool_errors():
        return _get_context().clients


def _validate(model: type[BaseModel], **data: Any) -> Any:
    """Build a request model, reporting the first failing field."""
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ToolError(_first_validation_message(e)) from e


def _submitted(
    original: dict[str, Any],
    changes: dict[str, Any],
    clear_fields: list[str] | None,
) -> dict[str, Any]:
    """Form values at submit time: loaded values, user edits, cleared fields."""
    submitted = dict(original)
    submitted.update({name: value for name, value in changes.items() if value is not None})
    for name in clear_fields or []:
        if name not in original:
            raise ToolError(f"Unknown field: {name}")
        submitted[name] = ""
    return submitted


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


@mcp.tool(
    description="Sign in with email and password; later calls use the session token.",
    annotations={"readOnlyHint": False},
)
async def sign_in(
    email: Annotated[str, Field(description="Account email")],
    password: Annotated[str, Field(description="Account password")],
) -> dict[str, Any]:
    """Exchange credentials for a token stored in the session."""
    ctx = _get_context()
    credentials = _validate(SignInRequest, email=email, password=password)
    session = await _run(auth_service.sign_in(ctx.api, ctx.session, credentials))
    user = session.user
    return {"message": "Sesión iniciada", "user": asdict(user) if user else None}


@mcp.tool(
    description="Sign out of the session; pages cached under its token are discarded.",
    annotations={"readOnlyHint": False},
)
async def sign_out() -> dict[str, Any]:
    """Clear the session token."""
    auth_service.sign_out(_get_context().session)
    return {"message": "Sesión cerrada"}


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


@mcp.tool(
    description=(
        "List license keys one page at a time. Pages are cached; an optional "
        "query filters the current page by code, type, state, client or permission."
    ),
    annotations={"readOnlyHint": True},
)
async def list_keys(
    page: Annotated[int, Field(ge=1, description="Page number (1-based)")] = 1,
    page_size: Annotated[
        int, Field(ge=1, le=100, description="Keys per page (default from settings)"),
    ] | None = None,
    query: Annotated[str | None, Field(description="Case-insensitive text filter")] = None,
    force_refresh: Annotated[bool, Field(description="Bypass the page cache")] = False,
) -> dict[str, Any]:
    """Fetch a page of keys and apply the text filter."""
    keys = _keys()
    size = page_size or keys.page_size
    await _run(keys.fetch_keys(size, (page - 1) * size, force_refresh))
    keys.set_search_query(query or "")
    return keys.view()


@mcp.tool(
    description="List every inactive key (cached for five minutes), optionally filtered by text.",
    annotations={"readOnlyHint": True},
)
async def list_inactive_keys(
    query: Annotated[str | None, Field(description="Case-insensitive text filter")] = None,
    force_refresh: Annotated[bool, Field(description="Bypass the cache")] = False,
) -> dict[str, Any]:
    """Fetch the inactive keys collection and apply the text filter."""
    keys = _keys()
    await _run(keys.fetch_inactive_keys(force_refresh))
    keys.set_search_query(query or "")
    filtered = keys.filtered_inactive_keys()
    return {
        "records": filtered,
        "total_records": len(filtered),
        "filtered": bool(query),
    }


@mcp.tool(
    description="Get the full details of a key, including client, type and permissions.",
    annotations={"readOnlyHint": True},
)
async def get_key(
    key_id: Annotated[str, Field(description="The ID of the key")],
) -> dict[str, Any]:
    """Get a key by ID (never cached)."""
    ctx = _get_context()
    return await _run(key_service.get_key(ctx.api, key_id))


@mcp.tool(
    description="Create a license key. A code is generated when none is given.",
    annotations={"readOnlyHint": False},
)
async def create_key(
    init_date: Annotated[str, Field(description="Start date (YYYY-MM-DD)")],
    due_date: Annotated[str, Field(description="Expiry date (YYYY-MM-DD)")],
    key_type_id: Annotated[str, Field(description="Key type ID")],
    code: Annotated[str | None, Field(description="License code")] = None,
    state: Annotated[str, Field(description="PENDING, ACTIVE, APPROVED, INACTIVE or EXPIRED")] = "PENDING",  # noqa: E501
    client_id: Annotated[str | None, Field(description="Assign to this client")] = None,
    permissions: Annotated[list[str] | None, Field(description="Permission IDs")] = None,
) -> dict[str, Any]:
    """Create a key and invalidate the keys cache."""
    keys = _keys()
    if not code:
        code = await _run(keys.generate_key_code())
    data = _validate(
        KeyCreate,
        code=code,
        init_date=init_date,
        due_date=due_date,
        state=state,
        key_type_id=key_type_id,
        client_id=client_id,
        permissions=permissions or [],
    )
    created = await _run(keys.create_key(data))
    return {"message": "Key creada exitosamente", "key": created}


@mcp.tool(
    description=(
        "Update a key. Only fields that differ from the stored key are sent; "
        "use clear_fields to empty init_date, due_date or client_id."
    ),
    annotations={"readOnlyHint": False},
)
async def update_key(
    key_id: Annotated[str, Field(description="The ID of the key")],
    code: Annotated[str | None, Field(description="New code")] = None,
    state: Annotated[str | None, Field(description="New state")] = None,
    key_type_id: Annotated[str | None, Field(description="New key type ID")] = None,
    init_date: Annotated[str | None, Field(description="New start date (YYYY-MM-DD)")] = None,
    due_date: Annotated[str | None, Field(description="New expiry date (YYYY-MM-DD)")] = None,
    client_id: Annotated[str | None, Field(description="New client ID")] = None,
    clear_fields: Annotated[
        list[str] | None, Field(description="Fields to empty (e.g. ['client_id'])"),
    ] = None,
) -> dict[str, Any]:
    """Diff the edits against the stored key and send the patch."""
    ctx = _get_context()
    key = await _run(key_service.get_key(ctx.api, key_id))
    keys = _keys()
    original = keys.edit_form.initial_values(key)
    submitted = _submitted(
        original,
        {
            "code": code,
            "state": state,
            "key_type_id": key_type_id,
            "init_date": init_date,
            "due_date": due_date,
            "client_id": client_id,
        },
        clear_fields,
    )
    patch = await _run(keys.update_key_from_form(key, submitted))
    if patch is NO_CHANGES:
        return {"message": NO_CHANGES_MESSAGE, "changed": {}}
    return {"message": "Key actualizada exitosamente", "changed": patch}


@mcp.tool(
    description="Delete a key.",
    annotations={"readOnlyHint": False, "destructiveHint": True},
)
async def delete_key(
    key_id: Annotated[str, Field(description="The ID of the key")],
) -> dict[str, Any]:
    """Delete a key and invalidate the keys cache."""
    await _run(_keys().delete_key(key_id))
    return {"message": "Key eliminada correctamente"}


@mcp.tool(
    description="Generate between 1 and 100 unassigned keys in one call.",
    annotations={"readOnlyHint": False},
)
async def generate_keys_bulk(
    quantity: Annotated[int, Field(ge=1, le=100, description="Number of keys to generate")],
) -> dict[str, Any]:
    """Generate keys in bulk and invalidate the keys cache."""
    await _run(_keys().create_bulk_keys(quantity))
    return {"message": f"{quantity} keys generadas correctamente"}


# ---------------------------------------------------------------------------
# Clients
# ---------------------------------------------------------------------------


@mcp.tool(
    description=(
        "List clients one page at a time. Pages are cached; an optional query "
        "filters the current page by name, email or phone."
    ),
    annotations={"readOnlyHint": True},
)
async def list_clients(
    page: Annotated[int, Field(ge=1, description="Page number (1-based)")] = 1,
    page_size: Annotated[
        int, Field(ge=1, le=100, description="Clients per page (default from settings)"),
    ] | None = None,
    query: Annotated[str | None, Field(description="Case-insensitive text filter")] = None,
    force_refresh: Annotated[bool, Field(description="Bypass the page cache")] = False,
) -> dict[str, Any]:
    """Fetch a page of clients and apply the text filter."""
    clients = _clients()
    size = page_size or clients.page_size
    await _run(clients.fetch_clients(size, (page - 1) * size, force_refresh))
    clients.set_search_query(query or "")
    return clients.view()


@mcp.tool(
    description="Create a client.",
    annotations={"readOnlyHint": False},
)
async def create_client(
    name: Annotated[str, Field(description="Client name")],
    email: Annotated[str, Field(description="Contact email")],
    phone: Annotated[str, Field(description="Contact phone")] = "",
) -> dict[str, Any]:
    """Create a client and invalidate the clients cache."""
    data = _validate(ClientCreate, name=name, email=email, phone=phone)
    created = await _run(_clients().create_client(data))
    return {"message": "Cliente creado exitosamente", "client": created}


@mcp.tool(
    description="Update a client. Only fields that differ from the stored client are sent.",
    annotations={"readOnlyHint": False},
)
async def update_client(
    client_id: Annotated[str, Field(description="The ID of the client")],
    name: Annotated[str | None, Field(description="New name")] = None,
    email: Annotated[str | None, Field(description="New email")] = None,
    phone: Annotated[str | None, Field(description="New phone")] = None,
) -> dict[str, Any]:
    """Diff the edits against the stored client and send the patch."""
    ctx = _get_context()
    client = await _run(client_service.get_client(ctx.api, client_id))
    clients = _clients()
    original = clients.edit_form.initial_values(client)
    submitted = _submitted(original, {"name": name, "email": email, "phone": phone}, None)
    patch = await _run(clients.update_client_from_form(client, submitted))
    if patch is NO_CHANGES:
        return {"message": NO_CHANGES_MESSAGE, "changed": {}}
    return {"message": "Cliente actualizado exitosamente", "changed": patch}


@mcp.tool(
    description="Delete a client.",
    annotations={"readOnlyHint": False, "destructiveHint": True},
)
async def delete_client(
    client_id: Annotated[str, Field(description="The ID of the client")],
) -> dict[str, Any]:
    """Delete a client and invalidate the clients cache."""
    await _run(_clients().delete_client(client_id))
    return {"message": "Cliente eliminado exitosamente"}


# ---------------------------------------------------------------------------
# Batches, key types, permissions, dashboard (not cached)
# ---------------------------------------------------------------------------


@mcp.tool(
    description="List batches with their per-state key counts (server-side search).",
    annotations={"readOnlyHint": True},
)
async def list_batches(
    page: Annotated[int, Field(ge=1, description="Page number (1-based)")] = 1,
    page_size: Annotated[int, Field(ge=1, le=100, description="Batches per page")] = 10,
    search: Annotated[str | None, Field(description="Server-side search term")] = None,
) -> dict[str, Any]:
    """Fetch a page of batches straight from the API."""
    ctx = _get_context()
    page_data = await _run(
        batch_service.list_batches(ctx.api, page_size, (page - 1) * page_size, search),
    )
    return page_data.model_dump()


@mcp.tool(
    description="Create a batch of keys of one type for one client.",
    annotations={"readOnlyHint": False},
)
async def create_batch(
    title: Annotated[str, Field(description="Batch title")],
    quantity: Annotated[int, Field(description="Number of keys in the batch")],
    key_type_id: Annotated[str, Field(description="Key type ID")],
    client_id: Annotated[str, Field(description="Client ID")],
    description: Annotated[str | None, Field(description="Batch description")] = None,
) -> dict[str, Any]:
    """Create a batch; its keys appear in the keys list, so that cache is invalidated."""
    ctx = _get_context()
    data = _validate(
        BatchCreate,
        title=title,
        quantity=quantity,
        key_type_id=key_type_id,
        client_id=client_id,
        description=description,
    )
    created = await _run(_keys().cache.run_mutation(batch_service.create_batch(ctx.api, data)))
    return {"message": "Lote creado exitosamente", "batch": created}


@mcp.tool(
    description="Update a batch's title or description (only changed fields are sent).",
    annotations={"readOnlyHint": False},
)
async def update_batch(
    batch_id: Annotated[str, Field(description="The ID of the batch")],
    title: Annotated[str | None, Field(description="New title")] = None,
    description: Annotated[str | None, Field(description="New description")] = None,
) -> dict[str, Any]:
    """Diff the edits against the stored batch and send the patch."""
    ctx = _get_context()
    batch = await _run(batch_service.get_batch(ctx.api, batch_id))
    original = BATCH_EDIT_FORM.initial_values(batch)
    submitted = _submitted(original, {"title": title, "description": description}, None)
    patch = _build_patch(BATCH_EDIT_FORM, original, submitted)
    if patch is NO_CHANGES:
        return {"message": NO_CHANGES_MESSAGE, "changed": {}}
    await _run(batch_service.update_batch(ctx.api, batch_id, patch))
    return {"message": "Lote actualizado exitosamente", "changed": patch}


@mcp.tool(
    description="List key types with their permissions.",
    annotations={"readOnlyHint": True},
)
async def list_key_types() -> dict[str, Any]:
    """Key types for the key and batch forms."""
    key_types = await _run(_keys().fetch_key_types())
    return {"key_types": key_types}


@mcp.tool(
    description="List every permission that can be attached to keys and key types.",
    annotations={"readOnlyHint": True},
)
async def list_permissions() -> dict[str, Any]:
    """All permissions."""
    permissions = await _run(_keys().fetch_permissions())
    return {"permissions": permissions}


@mcp.tool(
    description="Totals for the dashboard: clients, keys by state, recent batches.",
    annotations={"readOnlyHint": True},
)
async def get_dashboard_stats() -> dict[str, Any]:
    """Dashboard counters."""
    stats = await _run(dashboard_service.get_dashboard_stats(_get_context().api))
    return stats.model_dump()


# ---------------------------------------------------------------------------
# Key details, key types, logins and reports
# ---------------------------------------------------------------------------


@mcp.tool(
    description="A key with one page of its change history and every login recorded for it.",
    annotations={"readOnlyHint": True},
)
async def get_key_details(
    key_id: Annotated[str, Field(description="The ID of the key")],
    history_page: Annotated[int, Field(ge=1, description="History page (1-based)")] = 1,
    history_page_size: Annotated[int, Field(ge=1, le=100, description="History entries per page")] = 10,  # noqa: E501
) -> dict[str, Any]:
    """Key detail view (never cached)."""
    api = _get_context().api
    key = await _run(key_service.get_key(api, key_id))
    history = await _run(
        key_service.get_key_history(
            api, key_id, history_page_size, (history_page - 1) * history_page_size,
        ),
    )
    logins = await _run(key_login_service.list_key_logins_for_key(api, key_id))
    return {"key": key, "history": history.model_dump(), "logins": logins}


@mcp.tool(
    description="Look up a key by its license code.",
    annotations={"readOnlyHint": True},
)
async def get_key_by_code(
    code: Annotated[str, Field(min_length=1, description="License code")],
) -> dict[str, Any]:
    """Get a key by code (never cached)."""
    return await _run(key_service.get_key_by_code(_get_context().api, code))


@mcp.tool(
    description="List the keys assigned to one client, one page at a time.",
    annotations={"readOnlyHint": True},
)
async def list_client_keys(
    client_id: Annotated[str, Field(description="The ID of the client")],
    page: Annotated[int, Field(ge=1, description="Page number (1-based)")] = 1,
    page_size: Annotated[int, Field(ge=1, le=100, description="Keys per page")] = 10,
) -> dict[str, Any]:
    """A client's keys straight from the API."""
    page_data = await _run(
        key_service.list_keys_by_client(
            _get_context().api, client_id, page_size, (page - 1) * page_size,
        ),
    )
    return page_data.model_dump()


@mcp.tool(
    description="List key logins across every key, one page at a time.",
    annotations={"readOnlyHint": True},
)
async def list_key_logins(
    page: Annotated[int, Field(ge=1, description="Page number (1-based)")] = 1,
    page_size: Annotated[int, Field(ge=1, le=100, description="Logins per page")] = 10,
) -> dict[str, Any]:
    """Login records straight from the API."""
    page_data = await _run(
        key_login_service.list_key_logins(_get_context().api, page_size, (page - 1) * page_size),
    )
    return page_data.model_dump()


@mcp.tool(
    description="Create a key type, optionally with permissions attached.",
    annotations={"readOnlyHint": False},
)
async def create_key_type(
    name: Annotated[str, Field(description="Key type name")],
    description: Annotated[str | None, Field(description="Key type description")] = None,
    permission_ids: Annotated[list[str] | None, Field(description="Permission IDs")] = None,
) -> dict[str, Any]:
    """Create a key type (key types are not cached)."""
    data = _validate(
        KeyTypeCreate, name=name, description=description, permission_ids=permission_ids or [],
    )
    created = await _run(key_type_service.create_key_type(_get_context().api, data))
    return {"message": "Tipo de key creado exitosamente", "key_type": created}


@mcp.tool(
    description=(
        "Update a key type's name or description (only changed fields are sent); "
        "use clear_fields to empty the description."
    ),
    annotations={"readOnlyHint": False},
)
async def update_key_type(
    key_type_id: Annotated[str, Field(description="The ID of the key type")],
    name: Annotated[str | None, Field(description="New name")] = None,
    description: Annotated[str | None, Field(description="New description")] = None,
    clear_fields: Annotated[
        list[str] | None, Field(description="Fields to empty (e.g. ['description'])"),
    ] = None,
) -> dict[str, Any]:
    """Diff the edits against the stored key type; keys embed its name, so invalidate them."""
    ctx = _get_context()
    key_type = await _run(key_type_service.get_key_type(ctx.api, key_type_id))
    original = KEY_TYPE_EDIT_FORM.initial_values(key_type)
    submitted = _submitted(original, {"name": name, "description": description}, clear_fields)
    patch = _build_patch(KEY_TYPE_EDIT_FORM, original, submitted)
    if patch is NO_CHANGES:
        return {"message": NO_CHANGES_MESSAGE, "changed": {}}
    await _run(
        _keys().cache.run_mutation(
            key_type_service.update_key_type(ctx.api, key_type_id, patch),
        ),
    )
    return {"message": "Tipo de key actualizado exitosamente", "changed": patch}


@mcp.tool(
    description="Attach and detach permissions on a key type.",
    annotations={"readOnlyHint": False},
)
async def set_key_type_permissions(
    key_type_id: Annotated[str, Field(description="The ID of the key type")],
    add: Annotated[list[str] | None, Field(description="Permission IDs to attach")] = None,
    remove: Annotated[list[str] | None, Field(description="Permission IDs to detach")] = None,
) -> dict[str, Any]:
    """Update a key type's permissions and invalidate the keys cache."""
    ctx = _get_context()
    data = _validate(KeyTypePermissionsUpdate, create=add or [], delete=remove or [])
    await _run(
        _keys().cache.run_mutation(
            key_type_service.update_key_type_permissions(ctx.api, key_type_id, data),
        ),
    )
    return {"message": "Permisos actualizados exitosamente"}


@mcp.tool(
    description=(
        "Keys report: keys due within 30 days, counts by key type and the five "
        "clients with most keys. Built from the first keys page and the inactive keys."
    ),
    annotations={"readOnlyHint": True},
)
async def get_key_report(
    page_size: Annotated[int, Field(ge=1, le=100, description="Keys to include")] = 100,
) -> dict[str, Any]:
    """Summarize the cached keys lists."""
    report = await _run(_keys().fetch_report(date.today(), page_size))
    return report.model_dump()
