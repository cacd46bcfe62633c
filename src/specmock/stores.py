"""In-memory resource stores backing stateful mode.

Each store owns its own lock and key space. Entities are frozen
dataclasses: updates install a new instance with ``dataclasses.replace``
while holding the lock, so readers only ever see complete entities.
Secondary indexes are changed in the same locked step as the primary table.

List methods return snapshots taken under the lock.
"""

import hashlib
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

DEFAULT_HUB_ID = "b.default-hub"
DEFAULT_PROJECT_ID = "b.default-project"

OBJECT_LOCATION_BASE = "https://developer.api.autodesk.com/oss/v2/buckets"


def now_millis() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


# --- Tokens -----------------------------------------------------------------


@dataclass(frozen=True)
class TokenInfo:
    """An issued OAuth access token."""

    access_token: str
    client_id: str
    expires_in: int
    expires_at: int
    token_type: str = "Bearer"
    refresh_token: str | None = None
    scope: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "expires_in": self.expires_in,
        }
        if self.refresh_token:
            result["refresh_token"] = self.refresh_token
        if self.scope:
            result["scope"] = self.scope
        return result


class TokenStore:
    """OAuth tokens keyed by client id, with an access-token index.

    A client holds at most one live token. Validation is a single
    dictionary lookup through the index.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """Initialize the store.

        Args:
            clock: Source of the current time in epoch seconds
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._tokens_by_client: dict[str, TokenInfo] = {}
        # access_token -> client_id
        self._token_index: dict[str, str] = {}

    def generate_token(
        self, client_id: str, expires_in: int = 3600, scope: str | None = None
    ) -> TokenInfo:
        """Issue a new token for a client, invalidating its previous one."""
        now = int(self._clock())
        token = TokenInfo(
            access_token=f"mock_token_{uuid.uuid4().hex}",
            client_id=client_id,
            expires_in=expires_in,
            expires_at=now + expires_in,
            refresh_token=f"mock_refresh_{uuid.uuid4().hex}",
            scope=scope,
        )

        with self._lock:
            old = self._tokens_by_client.get(client_id)
            if old is not None:
                self._token_index.pop(old.access_token, None)
            self._token_index[token.access_token] = client_id
            self._tokens_by_client[client_id] = token
        return token

    def get_token(self, client_id: str) -> TokenInfo | None:
        with self._lock:
            return self._tokens_by_client.get(client_id)

    def validate_token(self, token: str) -> bool:
        """Check that a token is known and not yet expired."""
        now = self._clock()
        with self._lock:
            client_id = self._token_index.get(token)
            if client_id is None:
                return False
            info = self._tokens_by_client.get(client_id)
        return info is not None and info.expires_at > now

    def revoke_token(self, token: str) -> bool:
        """Revoke an access token. Returns True if it was known."""
        with self._lock:
            client_id = self._token_index.pop(token, None)
            if client_id is None:
                return False
            self._tokens_by_client.pop(client_id, None)
            return True


# --- Buckets ----------------------------------------------------------------


@dataclass(frozen=True)
class Permission:
    auth_id: str
    access: str

    def to_dict(self) -> dict[str, Any]:
        return {"authId": self.auth_id, "access": self.access}


@dataclass(frozen=True)
class BucketInfo:
    bucket_key: str
    bucket_owner: str
    created_date: int
    policy_key: str
    permissions: tuple[Permission, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "bucketKey": self.bucket_key,
            "bucketOwner": self.bucket_owner,
            "createdDate": self.created_date,
            "policyKey": self.policy_key,
            "permissions": [p.to_dict() for p in self.permissions],
        }


class BucketStore:
    """OSS buckets keyed by bucket key."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buckets: dict[str, BucketInfo] = {}

    def create_bucket(
        self, bucket_key: str, policy_key: str, owner: str = "mock-owner"
    ) -> BucketInfo:
        """Create (or replace) a bucket."""
        bucket = BucketInfo(
            bucket_key=bucket_key,
            bucket_owner=owner,
            created_date=now_millis(),
            policy_key=policy_key,
            permissions=(Permission(auth_id=owner, access="full"),),
        )
        with self._lock:
            self._buckets[bucket_key] = bucket
        return bucket

    def get_bucket(self, bucket_key: str) -> BucketInfo | None:
        with self._lock:
            return self._buckets.get(bucket_key)

    def list_buckets(self) -> list[BucketInfo]:
        with self._lock:
            return list(self._buckets.values())

    def delete_bucket(self, bucket_key: str) -> bool:
        with self._lock:
            return self._buckets.pop(bucket_key, None) is not None


# --- Objects ----------------------------------------------------------------


@dataclass(frozen=True)
class ObjectInfo:
    bucket_key: str
    object_key: str
    object_id: str
    sha1: str
    size: int
    content_type: str
    location: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "bucketKey": self.bucket_key,
            "objectKey": self.object_key,
            "objectId": self.object_id,
            "sha1": self.sha1,
            "size": self.size,
            "contentType": self.content_type,
            "location": self.location,
        }


class ObjectStore:
    """OSS objects keyed by (bucket key, object key)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._objects: dict[tuple[str, str], ObjectInfo] = {}
        # bucket_key -> object keys
        self._bucket_index: dict[str, set[str]] = {}

    def upload_object(
        self,
        bucket_key: str,
        object_key: str,
        size: int,
        content_type: str | None = None,
        data: bytes | None = None,
    ) -> ObjectInfo:
        """Store (or overwrite) an object.

        Args:
            bucket_key: Owning bucket
            object_key: Object name within the bucket
            size: Object size in bytes
            content_type: MIME type, defaults to ``application/octet-stream``
            data: Object payload. Its SHA-1 becomes the digest; without a
                payload a random digest is synthesized.
        """
        if data is not None:
            sha1 = hashlib.sha1(data).hexdigest()
        else:
            sha1 = hashlib.sha1(uuid.uuid4().bytes).hexdigest()

        obj = ObjectInfo(
            bucket_key=bucket_key,
            object_key=object_key,
            object_id=f"urn:adsk.objects:os.object:{bucket_key}/{object_key}",
            sha1=sha1,
            size=size,
            content_type=content_type or "application/octet-stream",
            location=f"{OBJECT_LOCATION_BASE}/{bucket_key}/objects/{object_key}",
        )
        with self._lock:
            self._objects[(bucket_key, object_key)] = obj
            self._bucket_index.setdefault(bucket_key, set()).add(object_key)
        return obj

    def get_object(self, bucket_key: str, object_key: str) -> ObjectInfo | None:
        with self._lock:
            return self._objects.get((bucket_key, object_key))

    def list_objects(self, bucket_key: str) -> list[ObjectInfo]:
        with self._lock:
            keys = sorted(self._bucket_index.get(bucket_key, ()))
            return [self._objects[(bucket_key, key)] for key in keys]

    def delete_object(self, bucket_key: str, object_key: str) -> bool:
        with self._lock:
            if self._objects.pop((bucket_key, object_key), None) is None:
                return False
            keys = self._bucket_index.get(bucket_key)
            if keys is not None:
                keys.discard(object_key)
                if not keys:
                    del self._bucket_index[bucket_key]
            return True

    def delete_bucket_objects(self, bucket_key: str) -> int:
        """Remove every object of a bucket. Returns the number removed."""
        with self._lock:
            keys = self._bucket_index.pop(bucket_key, set())
            for key in keys:
                self._objects.pop((bucket_key, key), None)
            return len(keys)


# --- Hubs and projects ------------------------------------------------------


@dataclass(frozen=True)
class HubInfo:
    id: str
    name: str
    region: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "hubs",
            "id": self.id,
            "attributes": {"name": self.name, "region": self.region},
        }


@dataclass(frozen=True)
class ProjectInfo:
    id: str
    hub_id: str
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": "projects",
            "id": self.id,
            "attributes": {"name": self.name},
            "relationships": {"hub": {"data": {"type": "hubs", "id": self.hub_id}}},
        }


class ProjectStore:
    """Data Management hubs and projects.

    Seeded with one default hub owning one default project.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hubs: dict[str, HubInfo] = {}
        self._projects: dict[str, ProjectInfo] = {}
        # hub_id -> ordered project ids
        self._hub_projects: dict[str, list[str]] = {}
        self._init_defaults()

    def _init_defaults(self) -> None:
        self.create_hub("Default Hub", region="US", hub_id=DEFAULT_HUB_ID)
        self.create_project(DEFAULT_HUB_ID, "Default Project", project_id=DEFAULT_PROJECT_ID)

    def create_hub(self, name: str, region: str = "US", hub_id: str | None = None) -> HubInfo:
        hub = HubInfo(id=hub_id or f"b.{uuid.uuid4()}", name=name, region=region)
        with self._lock:
            self._hubs[hub.id] = hub
            self._hub_projects.setdefault(hub.id, [])
        return hub

    def list_hubs(self) -> list[HubInfo]:
        with self._lock:
            return list(self._hubs.values())

    def get_hub(self, hub_id: str) -> HubInfo | None:
        with self._lock:
            return self._hubs.get(hub_id)

    def create_project(
        self, hub_id: str, name: str, project_id: str | None = None
    ) -> ProjectInfo | None:
        """Create a project under a hub. Returns None if the hub is unknown."""
        project = ProjectInfo(id=project_id or f"b.{uuid.uuid4()}", hub_id=hub_id, name=name)
        with self._lock:
            if hub_id not in self._hubs:
                return None
            previous = self._projects.get(project.id)
            if previous is not None and previous.hub_id != hub_id:
                previous_ids = self._hub_projects.get(previous.hub_id)
                if previous_ids is not None and project.id in previous_ids:
                    previous_ids.remove(project.id)
            self._projects[project.id] = project
            project_ids = self._hub_projects.setdefault(hub_id, [])
            if project.id not in project_ids:
                project_ids.append(project.id)
        return project

    def list_projects(self, hub_id: str) -> list[ProjectInfo]:
        with self._lock:
            return [
                self._projects[pid]
                for pid in self._hub_projects.get(hub_id, [])
                if pid in self._projects
            ]

    def get_project(self, project_id: str) -> ProjectInfo | None:
        with self._lock:
            return self._projects.get(project_id)

    def delete_project(self, project_id: str) -> bool:
        with self._lock:
            project = self._projects.pop(project_id, None)
            if project is None:
                return False
            project_ids = self._hub_projects.get(project.hub_id)
            if project_ids is not None and project_id in project_ids:
                project_ids.remove(project_id)
            return True


# --- Translation jobs -------------------------------------------------------


class TranslationStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "inprogress"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class TranslationJob:
    urn: str
    status: TranslationStatus
    progress: str
    created_at: int


class TranslationStore:
    """Model Derivative translation jobs keyed by input URN."""

    PROGRESS_STEP = 25

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[str, TranslationJob] = {}

    def create_job(self, urn: str) -> TranslationJob:
        """Create (or restart) a pending job for a URN."""
        job = TranslationJob(
            urn=urn,
            status=TranslationStatus.PENDING,
            progress="0%",
            created_at=now_millis(),
        )
        with self._lock:
            self._jobs[urn] = job
        return job

    def get_job(self, urn: str) -> TranslationJob | None:
        with self._lock:
            return self._jobs.get(urn)

    def update_job_status(self, urn: str, status: TranslationStatus, progress: str) -> bool:
        with self._lock:
            job = self._jobs.get(urn)
            if job is None:
                return False
            self._jobs[urn] = replace(job, status=status, progress=progress)
            return True

    def simulate_progress(self, urn: str) -> TranslationJob | None:
        """Advance a job one step and return its new state.

        pending -> inprogress at 25%; each further step adds 25% until
        100% is exceeded, at which point the job succeeds with progress
        ``complete``. Finished jobs are left untouched.
        """
        with self._lock:
            job = self._jobs.get(urn)
            if job is None:
                return None

            if job.status is TranslationStatus.PENDING:
                job = replace(
                    job, status=TranslationStatus.IN_PROGRESS, progress=f"{self.PROGRESS_STEP}%"
                )
            elif job.status is TranslationStatus.IN_PROGRESS:
                try:
                    percent = int(job.progress.rstrip("%"))
                except ValueError:
                    percent = self.PROGRESS_STEP
                if percent < 100:
                    job = replace(job, progress=f"{percent + self.PROGRESS_STEP}%")
                else:
                    job = replace(job, status=TranslationStatus.SUCCESS, progress="complete")

            self._jobs[urn] = job
            return job

    def delete_job(self, urn: str) -> bool:
        with self._lock:
            return self._jobs.pop(urn, None) is not None


# --- Issues -----------------------------------------------------------------


@dataclass(frozen=True)
class IssueInfo:
    id: str
    project_id: str
    title: str
    created_at: int
    description: str | None = None
    status: str = "open"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "containerId": self.project_id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "createdAt": self.created_at,
        }


class IssueStore:
    """ACC issues keyed by generated id, scoped under a project."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._issues: dict[str, IssueInfo] = {}
        # project_id -> ordered issue ids
        self._project_index: dict[str, list[str]] = {}

    def create_issue(
        self, project_id: str, title: str, description: str | None = None
    ) -> IssueInfo:
        issue = IssueInfo(
            id=str(uuid.uuid4()),
            project_id=project_id,
            title=title,
            description=description,
            created_at=now_millis(),
        )
        with self._lock:
            self._issues[issue.id] = issue
            self._project_index.setdefault(project_id, []).append(issue.id)
        return issue

    def get_issue(self, project_id: str, issue_id: str) -> IssueInfo | None:
        with self._lock:
            issue = self._issues.get(issue_id)
        if issue is None or issue.project_id != project_id:
            return None
        return issue

    def list_issues(self, project_id: str) -> list[IssueInfo]:
        with self._lock:
            return [self._issues[i] for i in self._project_index.get(project_id, [])]

    def update_issue_status(self, project_id: str, issue_id: str, status: str) -> IssueInfo | None:
        """Set an issue's status. Returns the updated issue, or None if unknown."""
        with self._lock:
            issue = self._issues.get(issue_id)
            if issue is None or issue.project_id != project_id:
                return None
            issue = replace(issue, status=status)
            self._issues[issue_id] = issue
            return issue

    def delete_issue(self, project_id: str, issue_id: str) -> bool:
        with self._lock:
            issue = self._issues.get(issue_id)
            if issue is None or issue.project_id != project_id:
                return False
            del self._issues[issue_id]
            self._project_index[project_id].remove(issue_id)
            if not self._project_index[project_id]:
                del self._project_index[project_id]
            return True


# --- Webhooks ---------------------------------------------------------------


@dataclass(frozen=True)
class WebhookScope:
    folder: str | None = None
    project: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"folder": self.folder, "project": self.project}


@dataclass(frozen=True)
class WebhookSubscription:
    hook_id: str
    tenant: str
    callback_url: str
    created_at: int
    scope: WebhookScope = field(default_factory=WebhookScope)
    event: str | None = None
    status: str = "active"

    def to_dict(self) -> dict[str, Any]:
        return {
            "hookId": self.hook_id,
            "tenant": self.tenant,
            "event": self.event,
            "callbackUrl": self.callback_url,
            "status": self.status,
            "scope": self.scope.to_dict(),
            "createdDate": self.created_at,
        }


class WebhookStore:
    """Webhook subscriptions keyed by generated hook id."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: dict[str, WebhookSubscription] = {}

    def create_subscription(
        self,
        tenant: str,
        callback_url: str,
        scope: WebhookScope | None = None,
        event: str | None = None,
    ) -> WebhookSubscription:
        subscription = WebhookSubscription(
            hook_id=str(uuid.uuid4()),
            tenant=tenant,
            callback_url=callback_url,
            created_at=now_millis(),
            scope=scope or WebhookScope(),
            event=event,
        )
        with self._lock:
            self._subscriptions[subscription.hook_id] = subscription
        return subscription

    def get_subscription(self, hook_id: str) -> WebhookSubscription | None:
        with self._lock:
            return self._subscriptions.get(hook_id)

    def list_subscriptions(
        self, tenant: str | None = None, event: str | None = None
    ) -> list[WebhookSubscription]:
        """List subscriptions, optionally filtered by tenant and event."""
        with self._lock:
            subscriptions = list(self._subscriptions.values())
        return [
            s
            for s in subscriptions
            if (tenant is None or s.tenant == tenant) and (event is None or s.event == event)
        ]

    def delete_subscription(self, hook_id: str) -> bool:
        with self._lock:
            return self._subscriptions.pop(hook_id, None) is not None


# --- Manager ----------------------------------------------------------------


@dataclass
class StateManager:
    """One instance of every resource store, shared by all request handlers."""

    auth: TokenStore = field(default_factory=TokenStore)
    buckets: BucketStore = field(default_factory=BucketStore)
    objects: ObjectStore = field(default_factory=ObjectStore)
    projects: ProjectStore = field(default_factory=ProjectStore)
    translations: TranslationStore = field(default_factory=TranslationStore)
    issues: IssueStore = field(default_factory=IssueStore)
    webhooks: WebhookStore = field(default_factory=WebhookStore)
