"""Property-based tests for event key derivation.

The event key is the dedup identity: it must depend on repository,
version and event kind only.

Testing Configuration:
- Library: Hypothesis (Python)
- Minimum iterations: 100 per property test
"""

from hypothesis import given, settings, strategies as st

from src.changelog.catalog import canonical_repository_name
from src.changelog.classifier.models import ClassifiedEvent, EventKind
from src.changelog.store.models import event_key_for, generate_event_key


names = st.text(
    alphabet=st.sampled_from("abcdefghijklmnopqrstuvwxyz0123456789-_."),
    min_size=1,
    max_size=40,
)
versions = st.from_regex(r"v?[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}(-[a-z]+)?", fullmatch=True)
kinds = st.sampled_from(list(EventKind))


@settings(max_examples=100)
@given(
    repository=names,
    version=versions,
    kind=kinds,
    rationale_a=st.text(max_size=200),
    rationale_b=st.text(max_size=200),
    actionable_a=st.booleans(),
    actionable_b=st.booleans(),
)
def test_key_ignores_non_identity_fields(
    repository, version, kind, rationale_a, rationale_b, actionable_a, actionable_b
):
    """Events with the same identity triple share a key."""
    first = ClassifiedEvent(
        is_actionable=actionable_a,
        event_kind=kind,
        repository_name=repository,
        version=version,
        rationale=rationale_a,
        is_supported_repository=True,
    )
    second = ClassifiedEvent(
        is_actionable=actionable_b,
        event_kind=kind,
        repository_name=repository,
        version=version,
        rationale=rationale_b,
        is_supported_repository=False,
    )

    assert event_key_for(first) == event_key_for(second)


@settings(max_examples=100)
@given(repository=names, version=versions, kind=kinds)
def test_key_format(repository, version, kind):
    key = generate_event_key(repository, version, kind)

    assert key == f"changelog-event:{repository}:{version}:{kind.value}"


@settings(max_examples=100)
@given(repository=names, version=versions, kind=kinds)
def test_enum_and_string_kinds_agree(repository, version, kind):
    assert generate_event_key(repository, version, kind) == generate_event_key(
        repository, version, kind.value
    )


@settings(max_examples=100)
@given(
    repository=names,
    version=versions,
    kinds_pair=st.tuples(kinds, kinds).filter(lambda pair: pair[0] != pair[1]),
)
def test_different_kinds_produce_different_keys(repository, version, kinds_pair):
    """A release and a tag of the same version are distinct events."""
    first, second = kinds_pair

    assert generate_event_key(repository, version, first) != generate_event_key(
        repository, version, second
    )


def test_release_key_example():
    assert (
        generate_event_key("sdk-js", "v1.4.0", EventKind.RELEASE)
        == "changelog-event:sdk-js:v1.4.0:release"
    )


@settings(max_examples=100)
@given(
    repository=st.sampled_from(["cli", "sdk-js", "sdk-py"]),
    owner=st.sampled_from(["", "agentuity/", "Agentuity/"]),
    upper=st.booleans(),
    version=versions,
    kind=kinds,
)
def test_catalog_name_forms_share_key(repository, owner, upper, version, kind):
    """Owner prefix and case in the reported name do not change the key."""
    reported = owner + (repository.upper() if upper else repository)
    event = ClassifiedEvent(
        is_actionable=True,
        event_kind=kind,
        repository_name=reported,
        version=version,
        rationale="",
        is_supported_repository=True,
    )

    assert event_key_for(event) == generate_event_key(repository, version, kind)


def test_canonical_name_outside_catalog():
    assert canonical_repository_name("agentuity/Website") == "website"
    assert canonical_repository_name("SDK-PY") == "sdk-py"
