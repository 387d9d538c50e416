"""
Service container.

Everything a request handler needs is built once by ``build_services`` and
attached to the application; handlers receive it through FastAPI dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..blob_store import BlobStore, build_blob_store
from ..config import Settings
from ..identity import IdentityResolver, build_identity_resolver
from ..repositories import Repositories
from ..store import RecordStore, build_record_store
from .catalog import CatalogService
from .notifications import NotificationService
from .reports import ReportService
from .users import UserService
from .workflow import GradingWorkflow


@dataclass
class Services:
    settings: Settings
    repos: Repositories
    blob_store: BlobStore
    identity: IdentityResolver
    users: UserService
    notifications: NotificationService
    catalog: CatalogService
    workflow: GradingWorkflow
    reports: ReportService


def build_services(
    settings: Settings,
    store: Optional[RecordStore] = None,
    blob_store: Optional[BlobStore] = None,
    identity: Optional[IdentityResolver] = None,
) -> Services:
    repos = Repositories(store if store is not None else build_record_store(settings))
    blobs = blob_store if blob_store is not None else build_blob_store(settings)
    notifications = NotificationService(repos.notifications)
    return Services(
        settings=settings,
        repos=repos,
        blob_store=blobs,
        identity=identity if identity is not None else build_identity_resolver(settings),
        users=UserService(repos.users),
        notifications=notifications,
        catalog=CatalogService(
            repos,
            blobs,
            notifications,
            materials_bucket=settings.materials_bucket,
            signed_url_ttl=settings.signed_url_ttl_seconds,
        ),
        workflow=GradingWorkflow(
            repos,
            blobs,
            notifications,
            submissions_bucket=settings.submissions_bucket,
            signed_url_ttl=settings.signed_url_ttl_seconds,
        ),
        reports=ReportService(repos),
    )
