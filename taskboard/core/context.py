"""
Application context: the process-wide collaborators, constructed once by
main.py (or by a test) and handed to routes through FastAPI dependencies.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi.requests import HTTPConnection
from supabase import Client

from taskboard.config import Settings
from taskboard.core.file_store import FileStore
from taskboard.core.local_store import LocalStore
from taskboard.core.store import Store
from taskboard.modules.identity.resolver import IdentityResolver


@dataclass
class AppContext:
    settings: Settings
    client: Client
    store: Store
    local_store: LocalStore
    file_store: FileStore
    resolver: IdentityResolver

    def close(self) -> None:
        self.local_store.close()


def create_context(settings: Settings, client: Client, service_client: Optional[Client] = None) -> AppContext:
    """
    Wire the context. ``client`` carries end-user auth calls; ``service_client``
    (defaults to ``client``) backs the record and file stores.
    """
    data_client = service_client or client
    store = Store(data_client, default_limit=settings.store_default_limit)
    return AppContext(
        settings=settings,
        client=client,
        store=store,
        local_store=LocalStore(settings.local_store_path, prefix=settings.local_store_prefix),
        file_store=FileStore(data_client, bucket=settings.storage_bucket),
        resolver=IdentityResolver(store),
    )


def get_context(connection: HTTPConnection) -> AppContext:
    return connection.app.state.context
