"""Application wiring: one explicit set of stores per running client."""
import hashlib
import logging
from collections import OrderedDict
from dataclasses import dataclass, field

import httpx

from core.config import Settings, get_settings
from core.http_client import ApiClient, TokenProvider
from core.session import Session
from stores.client_store import ClientStore
from stores.key_store import KeyStore

logger = logging.getLogger(__name__)

# Callers (bearer tokens) whose cached pages are kept at once; least recently
# used is dropped first
MAX_TOKEN_SCOPES = 32


def token_scope_key(token: str | None) -> str:
    """Cache partition for a token (a digest, so raw tokens are never kept as keys)."""
    if not token:
        return "anonymous"
    return hashlib.sha256(token.encode()).hexdigest()[:16]


@dataclass
class StoreScope:
    """The cached stores that belong to one caller's token."""

    keys: KeyStore
    clients: ClientStore


@dataclass
class AppContext:
    """
    Everything a view needs: settings, session, API client and stores.

    Cached pages are partitioned by the token in effect when they are read, so
    a page fetched with one caller's token is never served to another caller
    (or to an anonymous one) without the backend checking that caller.
    """

    settings: Settings
    session: Session
    api: ApiClient
    token_provider: TokenProvider
    _scopes: OrderedDict[str, StoreScope] = field(default_factory=OrderedDict, repr=False)

    def scope(self) -> StoreScope:
        """Stores for the token the next request will carry."""
        key = token_scope_key(self.token_provider())
        scope = self._scopes.get(key)
        if scope is None:
            scope = self._build_scope()
            self._scopes[key] = scope
            logger.debug("store_scope_created scope=%s", key)
            while len(self._scopes) > MAX_TOKEN_SCOPES:
                evicted, _ = self._scopes.popitem(last=False)
                logger.debug("store_scope_evicted scope=%s", evicted)
        else:
            self._scopes.move_to_end(key)
        return scope

    @property
    def keys(self) -> KeyStore:
        return self.scope().keys

    @property
    def clients(self) -> ClientStore:
        return self.scope().clients

    def drop_scope(self, token: str | None) -> None:
        """Forget every cached page read with ``token``."""
        key = token_scope_key(token)
        scope = self._scopes.pop(key, None)
        if scope is not None:
            scope.keys.cache.invalidate()
            scope.clients.cache.invalidate()
            logger.info("store_scope_dropped scope=%s", key)

    def _build_scope(self) -> StoreScope:
        return StoreScope(
            keys=KeyStore(
                self.api,
                page_size=self.settings.default_page_size,
                whole_collection_ttl=self.settings.whole_collection_ttl,
            ),
            clients=ClientStore(self.api, page_size=self.settings.default_page_size),
        )

    async def aclose(self) -> None:
        """Release the HTTP connection pool."""
        await self.api.aclose()


def build_app_context(
    settings: Settings | None = None,
    request_token: TokenProvider | None = None,
    http: httpx.AsyncClient | None = None,
) -> AppContext:
    """
    Construct the stores for one client session.

    Args:
        settings: Defaults to get_settings().
        request_token: Optional per-request token source (e.g. the caller's
            Authorization header) consulted before the session's token.
        http: Pre-built httpx client (tests); defaults to one built from settings.
    """
    settings = settings or get_settings()
    session = Session(settings.api_token)

    def token_provider() -> str | None:
        if request_token is not None:
            token = request_token()
            if token:
                return token
        return session.get_token()

    http = http or httpx.AsyncClient(base_url=settings.api_url, timeout=settings.api_timeout)
    api = ApiClient(http, token_provider)
    context = AppContext(
        settings=settings, session=session, api=api, token_provider=token_provider,
    )
    # Signing in or out retires whatever was cached under the previous token
    session.subscribe(context.drop_scope)
    return context
