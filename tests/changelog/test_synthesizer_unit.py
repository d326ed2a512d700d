"""Unit tests for TaskPromptSynthesizer."""

import json
from unittest.mock import AsyncMock

import pytest

from src.changelog.llm import LLMError
from src.changelog.synthesizer import (
    UNDETERMINED_VERSION,
    SynthesisError,
    TaskPromptSynthesizer,
    build_synthesis_prompt,
)
from tests.changelog.helpers import make_classified, release_payload, run_async


def test_meta_prompt_carries_event_fields():
    event = make_classified(repository="sdk-py", version="v0.2.0")

    prompt = build_synthesis_prompt(event, json.dumps(release_payload("sdk-py", "v0.2.0")))

    assert "Repository: sdk-py" in prompt
    assert "Version: v0.2.0" in prompt
    assert "Event Type: release" in prompt
    assert '"tag_name": "v0.2.0"' in prompt


def test_meta_prompt_embeds_conventions():
    prompt = build_synthesis_prompt(make_classified(), "{}")

    assert "Keep a Changelog" in prompt
    assert "CHANGELOG.md" in prompt
    assert "https://github.com/agentuity/docs" in prompt
    assert "Don't create a new file or page" in prompt
    assert "Do not delete" in prompt


def test_meta_prompt_uses_configured_docs_repository():
    prompt = build_synthesis_prompt(
        make_classified(), "{}", docs_repository_url="https://github.com/acme/docs"
    )

    assert "https://github.com/acme/docs" in prompt
    assert "https://github.com/agentuity/docs" not in prompt


def test_empty_version_is_marked_undetermined():
    prompt = build_synthesis_prompt(make_classified(version="  "), "{}")

    assert UNDETERMINED_VERSION in prompt


def test_synthesize_returns_stripped_prompt():
    generator = AsyncMock()
    generator.generate.return_value = "\n  Update CHANGELOG.md for sdk-js v1.4.0.  \n"
    synthesizer = TaskPromptSynthesizer(generator=generator)
    event = make_classified()

    spec = run_async(synthesizer.synthesize(event, "{}"))

    assert spec.prompt == "Update CHANGELOG.md for sdk-js v1.4.0."
    assert spec.event == event
    generator.generate.assert_awaited_once()


@pytest.mark.parametrize("output", ["", "   \n\t"])
def test_empty_output_raises(output):
    generator = AsyncMock()
    generator.generate.return_value = output
    synthesizer = TaskPromptSynthesizer(generator=generator)

    with pytest.raises(SynthesisError):
        run_async(synthesizer.synthesize(make_classified(), "{}"))


def test_generation_failure_raises():
    generator = AsyncMock()
    generator.generate.side_effect = LLMError("LLM invocation failed: 503")
    synthesizer = TaskPromptSynthesizer(generator=generator)

    with pytest.raises(SynthesisError) as exc_info:
        run_async(synthesizer.synthesize(make_classified(), "{}"))

    assert isinstance(exc_info.value.cause, LLMError)
