"""Tests for the per-resource HTTP fetchers."""
import json
from collections.abc import Callable
from typing import Any

import pytest
import respx
from httpx import Response

from core.http_client import ApiClient
from schemas.batch import BatchCreate
from schemas.client import ClientCreate
from schemas.key import BulkKeysCreate, KeyCreate
from schemas.key_type import KeyTypeCreate, KeyTypePermissionsUpdate
from services import (
    batch_service,
    client_service,
    dashboard_service,
    key_login_service,
    key_service,
    key_type_service,
)
from shared.api_errors import ServerRejectionError
from tests.conftest import CLIENT_ID, KEY_TYPE_ID


def sent_json(mock_api: respx.MockRouter, index: int = 0) -> Any:
    return json.loads(mock_api.calls[index].request.content)


class TestKeyService:
    """Tests for key fetchers."""

    @pytest.mark.asyncio
    async def test__list_keys__parses_envelope(
        self,
        mock_api: respx.MockRouter,
        api: ApiClient,
        key_page: Callable[..., dict[str, Any]],
    ) -> None:
        """The paginated envelope is parsed into Paginated."""
        mock_api.get("/keys").mock(return_value=Response(200, json=key_page(10, 0)))

        page = await key_service.list_keys(api, 10, 0)

        assert len(page.data) == 10
        assert page.total == 57
        assert page.pages == 6
        params = mock_api.calls[0].request.url.params
        assert params["limit"] == "10"
        assert params["offset"] == "0"
        assert "search" not in params

    @pytest.mark.asyncio
    async def test__list_keys__server_search(
        self, mock_api: respx.MockRouter, api: ApiClient,
    ) -> None:
        """Server-side search parameters are forwarded when given."""
        mock_api.get("/keys").mock(return_value=Response(200, json={"data": [], "total": 0}))

        await key_service.list_keys(api, 10, 0, search="acme", search_field="client")

        params = mock_api.calls[0].request.url.params
        assert params["search"] == "acme"
        assert params["search_field"] == "client"

    @pytest.mark.asyncio
    async def test__list_keys__fallback_message(
        self, mock_api: respx.MockRouter, api: ApiClient,
    ) -> None:
        """A silent failure carries the list's fallback message."""
        mock_api.get("/keys").mock(return_value=Response(500))

        with pytest.raises(ServerRejectionError, match="Error al obtener las keys"):
            await key_service.list_keys(api, 10, 0)

    @pytest.mark.asyncio
    async def test__list_inactive_keys__returns_records(
        self,
        mock_api: respx.MockRouter,
        api: ApiClient,
        make_key: Callable[..., dict[str, Any]],
    ) -> None:
        """The inactive endpoint's records are returned as a plain list."""
        records = [make_key(i, state="INACTIVE") for i in range(3)]
        mock_api.get("/keys/inactive").mock(
            return_value=Response(200, json={"data": records, "total": 3}),
        )

        assert await key_service.list_inactive_keys(api) == records

    @pytest.mark.asyncio
    async def test__get_key_by_code(self, mock_api: respx.MockRouter, api: ApiClient) -> None:
        mock_api.get("/keys/code/KEY-0001").mock(
            return_value=Response(200, json={"code": "KEY-0001"}),
        )
        assert await key_service.get_key_by_code(api, "KEY-0001") == {"code": "KEY-0001"}

    @pytest.mark.asyncio
    async def test__generate_key_code(self, mock_api: respx.MockRouter, api: ApiClient) -> None:
        """The generator's code is unwrapped."""
        mock_api.post("/keys/generate").mock(
            return_value=Response(200, json={"code": "XK29-PL0Q"}),
        )
        assert await key_service.generate_key_code(api) == "XK29-PL0Q"

    @pytest.mark.asyncio
    async def test__create_key__serializes_dates_and_ids(
        self, mock_api: respx.MockRouter, api: ApiClient,
    ) -> None:
        """Dates and UUIDs are sent as JSON strings."""
        mock_api.post("/keys").mock(return_value=Response(201, json={"id": "new"}))
        data = KeyCreate(
            code="KEY-9",
            init_date="2024-01-01",
            due_date="2025-01-01",
            key_type_id=KEY_TYPE_ID,
        )

        await key_service.create_key(api, data)

        assert sent_json(mock_api) == {
            "code": "KEY-9",
            "init_date": "2024-01-01",
            "due_date": "2025-01-01",
            "state": "PENDING",
            "key_type_id": KEY_TYPE_ID,
            "client_id": None,
            "permissions": [],
        }

    @pytest.mark.asyncio
    async def test__create_bulk_keys(self, mock_api: respx.MockRouter, api: ApiClient) -> None:
        mock_api.post("/keys/bulk").mock(return_value=Response(201, json={"created": 5}))

        await key_service.create_bulk_keys(api, BulkKeysCreate(quantity=5))

        assert sent_json(mock_api) == {"quantity": 5}

    @pytest.mark.asyncio
    async def test__update_key__sends_patch_as_is(
        self, mock_api: respx.MockRouter, api: ApiClient,
    ) -> None:
        """update_key PATCHes exactly the dirty fields it is given."""
        route = mock_api.patch("/keys/abc").mock(return_value=Response(200, json={"id": "abc"}))

        await key_service.update_key(api, "abc", {"client_id": None})

        assert route.called
        assert sent_json(mock_api) == {"client_id": None}

    @pytest.mark.asyncio
    async def test__update_key__rejection_message(
        self, mock_api: respx.MockRouter, api: ApiClient,
    ) -> None:
        """The update fallback is 'Error al actualizar la key'."""
        mock_api.patch("/keys/abc").mock(return_value=Response(400, json={}))

        with pytest.raises(ServerRejectionError) as exc_info:
            await key_service.update_key(api, "abc", {"code": "X"})

        assert exc_info.value.message == "Error al actualizar la key"
        assert exc_info.value.category == "validation"

    @pytest.mark.asyncio
    async def test__delete_key(self, mock_api: respx.MockRouter, api: ApiClient) -> None:
        route = mock_api.delete("/keys/abc").mock(return_value=Response(204))
        assert await key_service.delete_key(api, "abc") is None
        assert route.called

    @pytest.mark.asyncio
    async def test__get_key_history(self, mock_api: respx.MockRouter, api: ApiClient) -> None:
        mock_api.get("/keys/abc/history").mock(
            return_value=Response(200, json={"data": [{"action": "updated"}], "total": 1}),
        )
        page = await key_service.get_key_history(api, "abc", 10, 0)
        assert page.data == [{"action": "updated"}]

    @pytest.mark.asyncio
    async def test__list_keys_by_client(self, mock_api: respx.MockRouter, api: ApiClient) -> None:
        mock_api.get(f"/keys/client/{CLIENT_ID}").mock(
            return_value=Response(200, json={"data": [], "total": 0}),
        )
        page = await key_service.list_keys_by_client(api, CLIENT_ID, 10, 0)
        assert page.total == 0


class TestOtherFetchers:
    """Tests for the client, batch, key type, login and dashboard fetchers."""

    @pytest.mark.asyncio
    async def test__list_clients(
        self,
        mock_api: respx.MockRouter,
        api: ApiClient,
        sample_client_list: dict[str, Any],
    ) -> None:
        mock_api.get("/clients").mock(return_value=Response(200, json=sample_client_list))
        page = await client_service.list_clients(api, 10, 0)
        assert [c["name"] for c in page.data] == ["Acme Corp", "Globex"]

    @pytest.mark.asyncio
    async def test__create_client(self, mock_api: respx.MockRouter, api: ApiClient) -> None:
        mock_api.post("/clients").mock(return_value=Response(201, json={"id": "c"}))

        await client_service.create_client(
            api, ClientCreate(name="Initech", email=" it@initech.test "),
        )

        assert sent_json(mock_api) == {"name": "Initech", "email": "it@initech.test", "phone": ""}

    @pytest.mark.asyncio
    async def test__update_client__rejection_uses_server_message(
        self, mock_api: respx.MockRouter, api: ApiClient,
    ) -> None:
        mock_api.patch(f"/clients/{CLIENT_ID}").mock(
            return_value=Response(409, json={"message": "El email ya está registrado"}),
        )
        with pytest.raises(ServerRejectionError, match="El email ya está registrado"):
            await client_service.update_client(api, CLIENT_ID, {"email": "x@y.z"})

    @pytest.mark.asyncio
    async def test__get_client_and_batch(
        self, mock_api: respx.MockRouter, api: ApiClient, sample_client: dict[str, Any],
    ) -> None:
        """Single records are returned as the backend sends them."""
        mock_api.get(f"/clients/{CLIENT_ID}").mock(return_value=Response(200, json=sample_client))
        mock_api.get("/batches/b1").mock(return_value=Response(404, json={}))

        assert await client_service.get_client(api, CLIENT_ID) == sample_client
        with pytest.raises(ServerRejectionError, match="Error al obtener el lote"):
            await batch_service.get_batch(api, "b1")

    @pytest.mark.asyncio
    async def test__create_batch(self, mock_api: respx.MockRouter, api: ApiClient) -> None:
        mock_api.post("/batches").mock(return_value=Response(201, json={"id": "b"}))
        data = BatchCreate(
            title="Q1", quantity=25, key_type_id=KEY_TYPE_ID, client_id=CLIENT_ID,
        )

        await batch_service.create_batch(api, data)

        assert sent_json(mock_api)["quantity"] == 25
        assert sent_json(mock_api)["client_id"] == CLIENT_ID

    @pytest.mark.asyncio
    async def test__update_key_type_permissions(
        self, mock_api: respx.MockRouter, api: ApiClient,
    ) -> None:
        mock_api.patch(f"/key-types/{KEY_TYPE_ID}/permissions").mock(
            return_value=Response(200, json={}),
        )
        data = KeyTypePermissionsUpdate(create=[CLIENT_ID])

        await key_type_service.update_key_type_permissions(api, KEY_TYPE_ID, data)

        assert sent_json(mock_api) == {"create": [CLIENT_ID], "delete": []}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"data": [{"id": "p1", "name": "export"}]},
            [{"id": "p1", "name": "export"}],
        ],
    )
    async def test__list_permissions__wrapped_or_bare(
        self, mock_api: respx.MockRouter, api: ApiClient, body: Any,
    ) -> None:
        """Permissions come back either wrapped in data or as a bare list."""
        mock_api.get("/permissions").mock(return_value=Response(200, json=body))
        assert await key_type_service.list_permissions(api) == [{"id": "p1", "name": "export"}]

    @pytest.mark.asyncio
    async def test__key_type_crud(self, mock_api: respx.MockRouter, api: ApiClient) -> None:
        """Key types are created, read and patched under /key-types."""
        mock_api.post("/key-types").mock(return_value=Response(201, json={"id": "t9"}))
        mock_api.get("/key-types/t9").mock(
            return_value=Response(200, json={"id": "t9", "name": "Trial"}),
        )
        patch_route = mock_api.patch("/key-types/t9").mock(return_value=Response(200, json={}))

        await key_type_service.create_key_type(api, KeyTypeCreate(name="Trial"))
        fetched = await key_type_service.get_key_type(api, "t9")
        await key_type_service.update_key_type(api, "t9", {"description": "14 days"})

        assert sent_json(mock_api) == {"name": "Trial", "description": None, "permission_ids": []}
        assert fetched["name"] == "Trial"
        assert json.loads(patch_route.calls[0].request.content) == {"description": "14 days"}

    @pytest.mark.asyncio
    async def test__list_key_logins(self, mock_api: respx.MockRouter, api: ApiClient) -> None:
        """The reporting view pages through every login."""
        route = mock_api.get("/key-logins").mock(
            return_value=Response(200, json={"data": [{"ip": "10.0.0.1"}], "total": 1}),
        )

        page = await key_login_service.list_key_logins(api, 20, 40)

        assert page.total == 1
        assert route.calls[0].request.url.params["offset"] == "40"

    @pytest.mark.asyncio
    async def test__list_key_logins_for_key(
        self, mock_api: respx.MockRouter, api: ApiClient,
    ) -> None:
        mock_api.get("/key-logins/key/abc").mock(
            return_value=Response(200, json=[{"ip": "10.0.0.1"}]),
        )
        assert await key_login_service.list_key_logins_for_key(api, "abc") == [{"ip": "10.0.0.1"}]

    @pytest.mark.asyncio
    async def test__get_dashboard_stats__unwraps_data(
        self, mock_api: respx.MockRouter, api: ApiClient,
    ) -> None:
        """Counters are read from the data wrapper; missing ones default to zero."""
        mock_api.get("/dashboard/stats").mock(
            return_value=Response(
                200,
                json={
                    "data": {
                        "total_keys": 57,
                        "keys_by_status": [{"status": "ACTIVE", "count": 40}],
                    },
                },
            ),
        )

        stats = await dashboard_service.get_dashboard_stats(api)

        assert stats.total_keys == 57
        assert stats.total_clients == 0
        assert stats.keys_by_status[0].count == 40
