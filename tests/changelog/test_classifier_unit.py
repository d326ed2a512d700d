"""Unit tests for the EventClassifier.

The extraction capability is stubbed; these tests check the prompt the
classifier builds and how it treats extraction results and failures.
"""

import json
from unittest.mock import AsyncMock

import pytest
from pydantic import ValidationError

from src.changelog.catalog import SUPPORTED_REPOSITORIES, find_repository
from src.changelog.classifier import (
    ClassificationError,
    ClassifiedEvent,
    EventClassifier,
    EventKind,
    build_classification_prompt,
)
from src.changelog.llm import LLMError
from tests.changelog.helpers import make_classified, release_payload, run_async


def test_prompt_embeds_payload_and_catalog():
    payload_text = json.dumps(release_payload(tag_name="v2.3.0"))

    prompt = build_classification_prompt(payload_text, SUPPORTED_REPOSITORIES)

    assert '"tag_name": "v2.3.0"' in prompt
    for repository in SUPPORTED_REPOSITORIES:
        assert repository.name in prompt
        assert repository.url in prompt


def test_prompt_states_decision_policy():
    prompt = build_classification_prompt("{}", SUPPORTED_REPOSITORIES)

    assert '"published"' in prompt
    assert "-next" in prompt
    assert "deletions" in prompt
    assert "refs/tags/" in prompt


def test_prompt_keeps_non_json_payload_verbatim():
    prompt = build_classification_prompt("ref=refs/tags/v1.0.0", [])

    assert "ref=refs/tags/v1.0.0" in prompt
    assert "(none)" in prompt


def test_classify_returns_extracted_event():
    extractor = AsyncMock()
    extractor.extract.return_value = make_classified()
    classifier = EventClassifier(extractor=extractor)

    result = run_async(classifier.classify(json.dumps(release_payload())))

    assert result.event_kind == EventKind.RELEASE
    assert result.should_dispatch
    prompt, schema = extractor.extract.call_args.args
    assert schema is ClassifiedEvent
    assert "sdk-js" in prompt


def test_classify_does_not_override_extractor_decision():
    """The classifier reports what extraction decided, even for a published release."""
    extractor = AsyncMock()
    extractor.extract.return_value = make_classified(
        is_actionable=False, rationale="Pre-release version"
    )
    classifier = EventClassifier(extractor=extractor)

    result = run_async(classifier.classify(json.dumps(release_payload())))

    assert result.is_actionable is False
    assert result.rationale == "Pre-release version"


def test_extraction_failure_raises_classification_error():
    extractor = AsyncMock()
    extractor.extract.side_effect = LLMError("LLM invocation failed: timeout")
    classifier = EventClassifier(extractor=extractor)

    with pytest.raises(ClassificationError) as exc_info:
        run_async(classifier.classify("{}"))

    assert isinstance(exc_info.value.cause, LLMError)


def test_wrong_result_type_raises_classification_error():
    extractor = AsyncMock()
    extractor.extract.return_value = {"is_actionable": True}
    classifier = EventClassifier(extractor=extractor)

    with pytest.raises(ClassificationError):
        run_async(classifier.classify("{}"))


def test_schema_rejects_unknown_event_kind():
    with pytest.raises(ValidationError):
        ClassifiedEvent(
            is_actionable=True,
            event_kind="deployment",
            repository_name="cli",
            version="v1.0.0",
            rationale="",
            is_supported_repository=True,
        )


def test_should_dispatch_requires_both_flags():
    assert make_classified().should_dispatch
    assert not make_classified(is_actionable=False).should_dispatch
    assert not make_classified(is_supported=False).should_dispatch


def test_find_repository_ignores_owner_and_case():
    assert find_repository("agentuity/SDK-PY").name == "sdk-py"
    assert find_repository("sdk-go") is None
