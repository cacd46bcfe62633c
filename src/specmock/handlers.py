"""Hand-declared stateful endpoints.

These endpoints are registered after the routes synthesized from OpenAPI
documents, so a document that defines the same (method, path) wins. In
stateful mode they read and mutate the resource stores; in stateless mode
they answer with fixed payloads.

Path templates are written in OpenAPI syntax and normalized with the same
function as synthesized routes, so view arguments arrive as snake_case.
"""

import base64
import binascii
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from flask import current_app, jsonify, request

from .config import MockServerConfig
from .models import HttpMethod
from .stores import (
    StateManager,
    TranslationJob,
    TranslationStatus,
    WebhookScope,
    now_millis,
)

logger = logging.getLogger(__name__)

EXTENSION_KEY = "specmock"

JSONAPI_VERSION = {"version": "1.0"}


@dataclass
class MockContext:
    """Per-app context shared by every request handler.

    Attributes:
        state: Resource stores in stateful mode, None in stateless mode
        config: Server configuration
        registered: (method, pattern) pairs in registration order
        skipped: (method, pattern) pairs dropped as duplicates
    """

    state: StateManager | None
    config: MockServerConfig
    registered: list[tuple[str, str]] = field(default_factory=list)
    skipped: list[tuple[str, str]] = field(default_factory=list)


def current_context() -> MockContext:
    return current_app.extensions[EXTENSION_KEY]


def current_state() -> StateManager | None:
    return current_context().state


def request_body() -> dict[str, Any]:
    """JSON body of the current request, falling back to form fields."""
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        return body
    if request.form:
        return request.form.to_dict()
    return {}


def str_field(data: dict[str, Any], key: str, default: str | None = None) -> str | None:
    """A non-empty string field of a request body, else ``default``."""
    value = data.get(key)
    return value if isinstance(value, str) and value else default


def dict_field(data: dict[str, Any], key: str) -> dict[str, Any]:
    """An object field of a request body, else an empty dict."""
    value = data.get(key)
    return value if isinstance(value, dict) else {}


def decode_urn(urn: str) -> str:
    """Decode a base64 (URL-safe or standard) URN, or return it unchanged."""
    normalized = urn.replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)
    try:
        decoded = base64.b64decode(normalized, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return urn
    return decoded if decoded and decoded.isprintable() else urn


def not_found(message: str):
    return jsonify({"reason": message}), 404


def jsonapi_not_found(detail: str):
    return (
        jsonify(
            {
                "jsonapi": JSONAPI_VERSION,
                "errors": [{"status": "404", "title": "Not Found", "detail": detail}],
            }
        ),
        404,
    )


# --- Authentication ---------------------------------------------------------


def issue_token():
    """Issue an access token for ``client_id``."""
    state = current_state()
    if state is None:
        return jsonify({"access_token": "mock-token", "token_type": "Bearer", "expires_in": 3600})

    body = request_body()
    client_id = str_field(body, "client_id", "default-client")
    scope = str_field(body, "scope")
    token = state.auth.generate_token(client_id, expires_in=3600, scope=scope)
    logger.debug(f"Issued token for client {client_id}")
    return jsonify(token.to_dict())


def revoke_token():
    """Revoke the access token named in the body."""
    state = current_state()
    token = str_field(request_body(), "token")
    if state is not None and token:
        state.auth.revoke_token(token)
    return jsonify({})


# --- Object storage ---------------------------------------------------------


def list_buckets():
    state = current_state()
    if state is None:
        return jsonify({"items": []})
    items = [
        {"bucketKey": b.bucket_key, "createdDate": b.created_date, "policyKey": b.policy_key}
        for b in state.buckets.list_buckets()
    ]
    return jsonify({"items": items})


def create_bucket():
    state = current_state()
    if state is None:
        return jsonify(
            {"bucketKey": "mock-bucket", "createdDate": now_millis(), "policyKey": "transient"}
        )

    body = request_body()
    bucket = state.buckets.create_bucket(
        str_field(body, "bucketKey", "default-bucket"),
        str_field(body, "policyKey", "transient"),
    )
    return jsonify(bucket.to_dict())


def get_bucket_details(bucket_key: str):
    state = current_state()
    if state is None:
        return not_found(f"Bucket {bucket_key} not found")
    bucket = state.buckets.get_bucket(bucket_key)
    if bucket is None:
        return not_found(f"Bucket {bucket_key} not found")
    return jsonify(bucket.to_dict())


def delete_bucket(bucket_key: str):
    state = current_state()
    if state is None:
        return jsonify({})
    if not state.buckets.delete_bucket(bucket_key):
        return not_found(f"Bucket {bucket_key} not found")
    removed = state.objects.delete_bucket_objects(bucket_key)
    logger.debug(f"Deleted bucket {bucket_key} with {removed} objects")
    return jsonify({})


def list_objects(bucket_key: str):
    state = current_state()
    if state is None:
        return jsonify({"items": []})
    items = [o.to_dict() for o in state.objects.list_objects(bucket_key)]
    return jsonify({"items": items})


def upload_object(bucket_key: str, object_key: str):
    state = current_state()
    if state is None:
        return jsonify(
            {
                "bucketKey": bucket_key,
                "objectKey": object_key,
                "objectId": f"urn:adsk.objects:os.object:{bucket_key}/{object_key}",
                "size": 0,
            }
        )

    if state.buckets.get_bucket(bucket_key) is None:
        return not_found(f"Bucket {bucket_key} not found")

    data = request.get_data()
    obj = state.objects.upload_object(
        bucket_key,
        object_key,
        size=len(data),
        content_type=request.mimetype or None,
        data=data,
    )
    return jsonify(obj.to_dict())


def get_object_details(bucket_key: str, object_key: str):
    state = current_state()
    obj = state.objects.get_object(bucket_key, object_key) if state is not None else None
    if obj is None:
        return not_found(f"Object {object_key} not found in bucket {bucket_key}")
    return jsonify(obj.to_dict())


def delete_object(bucket_key: str, object_key: str):
    state = current_state()
    if state is None:
        return jsonify({})
    if not state.objects.delete_object(bucket_key, object_key):
        return not_found(f"Object {object_key} not found in bucket {bucket_key}")
    return jsonify({})


# --- Data management --------------------------------------------------------


def list_hubs():
    state = current_state()
    data = [h.to_dict() for h in state.projects.list_hubs()] if state is not None else []
    return jsonify({"jsonapi": JSONAPI_VERSION, "data": data})


def get_hub(hub_id: str):
    state = current_state()
    hub = state.projects.get_hub(hub_id) if state is not None else None
    if hub is None:
        return jsonapi_not_found(f"Hub {hub_id} not found")
    return jsonify({"jsonapi": JSONAPI_VERSION, "data": hub.to_dict()})


def list_projects(hub_id: str):
    state = current_state()
    data = [p.to_dict() for p in state.projects.list_projects(hub_id)] if state is not None else []
    return jsonify({"jsonapi": JSONAPI_VERSION, "data": data})


def get_project(hub_id: str, project_id: str):
    state = current_state()
    project = state.projects.get_project(project_id) if state is not None else None
    if project is None or project.hub_id != hub_id:
        return jsonapi_not_found(f"Project {project_id} not found in hub {hub_id}")
    return jsonify({"jsonapi": JSONAPI_VERSION, "data": project.to_dict()})


# --- Model derivative -------------------------------------------------------


def start_translation():
    state = current_state()
    if state is None:
        return jsonify({"result": "success"})

    body = request_body()
    input_urn = str_field(dict_field(body, "input"), "urn", "")
    formats = dict_field(body, "output").get("formats")
    output_type = "svf2"
    if isinstance(formats, list) and formats and isinstance(formats[0], dict):
        output_type = str_field(formats[0], "type", output_type)

    job = state.translations.create_job(decode_urn(input_urn))
    logger.debug(f"Started translation job for {job.urn}")
    return jsonify(
        {
            "result": "success",
            "urn": input_urn,
            "acceptedJobs": {"output": {"formats": [{"type": output_type}]}},
        }
    )


def build_manifest(urn: str, job: TranslationJob) -> dict[str, Any]:
    succeeded = job.status is TranslationStatus.SUCCESS
    derivatives = []
    if succeeded:
        derivatives.append(
            {"status": "success", "progress": "complete", "outputType": "svf2", "children": []}
        )
    return {
        "type": "manifest",
        "hasThumbnail": succeeded,
        "status": job.status.value,
        "progress": job.progress,
        "region": "US",
        "urn": urn,
        "version": "1.0",
        "derivatives": derivatives,
    }


def get_manifest(urn: str):
    decoded = decode_urn(urn)
    context = current_context()
    if context.state is None:
        return jsonify(
            {
                "type": "manifest",
                "hasThumbnail": False,
                "status": "pending",
                "progress": "0%",
                "region": "US",
                "urn": decoded,
                "derivatives": [],
            }
        )

    job = context.state.translations.get_job(decoded)
    if job is None:
        return not_found(f"Translation job for URN {decoded} not found")

    manifest = build_manifest(decoded, job)
    if context.config.simulate_translations:
        context.state.translations.simulate_progress(decoded)
    return jsonify(manifest)


# --- Issues -----------------------------------------------------------------


def list_issues(project_id: str):
    state = current_state()
    data = [i.to_dict() for i in state.issues.list_issues(project_id)] if state is not None else []
    return jsonify({"data": data})


def create_issue(project_id: str):
    state = current_state()
    if state is None:
        return jsonify({"data": {"id": "mock-issue-id", "title": "Mock Issue", "status": "open"}}), 201

    body = request_body()
    issue = state.issues.create_issue(
        project_id,
        str_field(body, "title", "Untitled Issue"),
        str_field(body, "description"),
    )
    return jsonify({"data": issue.to_dict()}), 201


def get_issue(project_id: str, issue_id: str):
    state = current_state()
    issue = state.issues.get_issue(project_id, issue_id) if state is not None else None
    if issue is None:
        return not_found(f"Issue {issue_id} not found in project {project_id}")
    return jsonify({"data": issue.to_dict()})


def update_issue(project_id: str, issue_id: str):
    state = current_state()
    if state is None:
        return not_found(f"Issue {issue_id} not found in project {project_id}")

    status = str_field(request_body(), "status")
    if status:
        issue = state.issues.update_issue_status(project_id, issue_id, status)
    else:
        issue = state.issues.get_issue(project_id, issue_id)
    if issue is None:
        return not_found(f"Issue {issue_id} not found in project {project_id}")
    return jsonify({"data": issue.to_dict()})


# --- Webhooks ---------------------------------------------------------------


def list_hooks(system: str, event: str):
    state = current_state()
    if state is None:
        return jsonify({"hooks": []})
    hooks = [s.to_dict() for s in state.webhooks.list_subscriptions(tenant=system, event=event)]
    return jsonify({"hooks": hooks})


def create_hook(system: str, event: str):
    state = current_state()
    if state is None:
        return jsonify({"hookId": "mock-hook-id", "status": "active"}), 201

    body = request_body()
    scope = dict_field(body, "scope")
    subscription = state.webhooks.create_subscription(
        tenant=system,
        callback_url=str_field(body, "callbackUrl", "https://example.com/webhook"),
        scope=WebhookScope(folder=str_field(scope, "folder"), project=str_field(scope, "project")),
        event=event,
    )
    return jsonify(subscription.to_dict()), 201


def get_hook(system: str, event: str, hook_id: str):
    state = current_state()
    subscription = state.webhooks.get_subscription(hook_id) if state is not None else None
    if subscription is None:
        return not_found(f"Webhook {hook_id} not found")
    return jsonify(subscription.to_dict())


def delete_hook(system: str, event: str, hook_id: str):
    state = current_state()
    if state is not None and not state.webhooks.delete_subscription(hook_id):
        return not_found(f"Webhook {hook_id} not found")
    return "", 204


@dataclass(frozen=True)
class StatefulEndpoint:
    method: HttpMethod
    path: str
    view: Callable[..., Any]


STATEFUL_ENDPOINTS: tuple[StatefulEndpoint, ...] = (
    StatefulEndpoint(HttpMethod.POST, "/authentication/v2/token", issue_token),
    StatefulEndpoint(HttpMethod.POST, "/authentication/v2/revoke", revoke_token),
    StatefulEndpoint(HttpMethod.GET, "/oss/v2/buckets", list_buckets),
    StatefulEndpoint(HttpMethod.POST, "/oss/v2/buckets", create_bucket),
    StatefulEndpoint(HttpMethod.GET, "/oss/v2/buckets/{bucketKey}/details", get_bucket_details),
    StatefulEndpoint(HttpMethod.DELETE, "/oss/v2/buckets/{bucketKey}", delete_bucket),
    StatefulEndpoint(HttpMethod.GET, "/oss/v2/buckets/{bucketKey}/objects", list_objects),
    StatefulEndpoint(
        HttpMethod.PUT, "/oss/v2/buckets/{bucketKey}/objects/{objectKey}", upload_object
    ),
    StatefulEndpoint(
        HttpMethod.GET,
        "/oss/v2/buckets/{bucketKey}/objects/{objectKey}/details",
        get_object_details,
    ),
    StatefulEndpoint(
        HttpMethod.DELETE, "/oss/v2/buckets/{bucketKey}/objects/{objectKey}", delete_object
    ),
    StatefulEndpoint(HttpMethod.GET, "/project/v1/hubs", list_hubs),
    StatefulEndpoint(HttpMethod.GET, "/project/v1/hubs/{hubId}", get_hub),
    StatefulEndpoint(HttpMethod.GET, "/project/v1/hubs/{hubId}/projects", list_projects),
    StatefulEndpoint(
        HttpMethod.GET, "/project/v1/hubs/{hubId}/projects/{projectId}", get_project
    ),
    StatefulEndpoint(HttpMethod.POST, "/modelderivative/v2/designdata/job", start_translation),
    StatefulEndpoint(
        HttpMethod.GET, "/modelderivative/v2/designdata/{urn}/manifest", get_manifest
    ),
    StatefulEndpoint(
        HttpMethod.GET, "/construction/issues/v1/projects/{projectId}/issues", list_issues
    ),
    StatefulEndpoint(
        HttpMethod.POST, "/construction/issues/v1/projects/{projectId}/issues", create_issue
    ),
    StatefulEndpoint(
        HttpMethod.GET,
        "/construction/issues/v1/projects/{projectId}/issues/{issueId}",
        get_issue,
    ),
    StatefulEndpoint(
        HttpMethod.PATCH,
        "/construction/issues/v1/projects/{projectId}/issues/{issueId}",
        update_issue,
    ),
    StatefulEndpoint(
        HttpMethod.GET, "/webhooks/v1/systems/{system}/events/{event}/hooks", list_hooks
    ),
    StatefulEndpoint(
        HttpMethod.POST, "/webhooks/v1/systems/{system}/events/{event}/hooks", create_hook
    ),
    StatefulEndpoint(
        HttpMethod.GET,
        "/webhooks/v1/systems/{system}/events/{event}/hooks/{hookId}",
        get_hook,
    ),
    StatefulEndpoint(
        HttpMethod.DELETE,
        "/webhooks/v1/systems/{system}/events/{event}/hooks/{hookId}",
        delete_hook,
    ),
)
