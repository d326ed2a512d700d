"""Shared factories for changelog pipeline tests."""

import asyncio
import json
from typing import Any, Dict, Optional

from src.changelog.classifier.models import ClassifiedEvent, EventKind
from src.changelog.webhook.models import InboundEvent
from src.changelog.webhook.signature import compute_signature


SECRET = "It's a Secret to Everybody"


def run_async(coro):
    return asyncio.run(coro)


def release_payload(
    repository: str = "sdk-js",
    tag_name: str = "v1.4.0",
    action: str = "published",
) -> Dict[str, Any]:
    return {
        "action": action,
        "release": {
            "tag_name": tag_name,
            "name": tag_name,
            "prerelease": "-" in tag_name,
            "html_url": f"https://github.com/agentuity/{repository}/releases/tag/{tag_name}",
        },
        "repository": {
            "name": repository,
            "full_name": f"agentuity/{repository}",
            "owner": {"login": "agentuity"},
        },
    }


def tag_payload(repository: str = "cli", tag: str = "v0.9.1") -> Dict[str, Any]:
    return {
        "ref": tag,
        "ref_type": "tag",
        "master_branch": "main",
        "repository": {
            "name": repository,
            "full_name": f"agentuity/{repository}",
        },
    }


def make_signed_event(
    payload: Dict[str, Any],
    secret: str = SECRET,
    signature: Optional[str] = None,
    github_event: str = "release",
    delivery_id: str = "72d3162e-cc78-11e3-81ab-4c9367dc0958",
) -> InboundEvent:
    body = json.dumps(payload).encode("utf-8")
    headers = {
        "X-GitHub-Event": github_event,
        "X-GitHub-Delivery": delivery_id,
        "Content-Type": "application/json",
        "X-Hub-Signature-256": signature or compute_signature(secret, body),
    }
    return InboundEvent(body=body, headers=headers)


def make_classified(
    repository: str = "sdk-js",
    version: str = "v1.4.0",
    event_kind: EventKind = EventKind.RELEASE,
    is_actionable: bool = True,
    is_supported: bool = True,
    rationale: str = "Published release of a supported repository",
) -> ClassifiedEvent:
    return ClassifiedEvent(
        is_actionable=is_actionable,
        event_kind=event_kind,
        repository_name=repository,
        version=version,
        rationale=rationale,
        is_supported_repository=is_supported,
    )
