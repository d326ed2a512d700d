"""Static catalog of repositories that receive automated changelog updates.

The catalog is process-wide configuration data. Changing it requires a
redeploy; there is no runtime API for it.
"""

from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field


DOCS_REPOSITORY_URL = "https://github.com/agentuity/docs"


class RepositoryDescriptor(BaseModel):
    """A repository whose releases trigger changelog updates.

    Attributes:
        name: Short repository name as it appears in webhook payloads.
        url: Canonical GitHub URL.
        category: Human-readable category (e.g. "JavaScript SDK").
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)

    def describe(self) -> str:
        return f"{self.name} - {self.category} - {self.url}"


SUPPORTED_REPOSITORIES = (
    RepositoryDescriptor(
        name="cli",
        url="https://github.com/agentuity/cli",
        category="CLI Tool",
    ),
    RepositoryDescriptor(
        name="sdk-js",
        url="https://github.com/agentuity/sdk-js",
        category="JavaScript SDK",
    ),
    RepositoryDescriptor(
        name="sdk-py",
        url="https://github.com/agentuity/sdk-py",
        category="Python SDK",
    ),
)


def find_repository(
    name: str,
    catalog: Iterable[RepositoryDescriptor] = SUPPORTED_REPOSITORIES,
) -> Optional[RepositoryDescriptor]:
    """Look up a catalog entry by name, ignoring an ``owner/`` prefix."""
    short_name = _short_name(name)
    for repository in catalog:
        if repository.name.lower() == short_name:
            return repository
    return None


def canonical_repository_name(
    name: str,
    catalog: Iterable[RepositoryDescriptor] = SUPPORTED_REPOSITORIES,
) -> str:
    """Normalize a repository name as reported in a payload or by the LLM.

    Catalog entries resolve to their catalog name; anything else is reduced
    to its lower-cased short name.

    Example:
        >>> canonical_repository_name("agentuity/SDK-JS")
        'sdk-js'
    """
    repository = find_repository(name, catalog)
    if repository is not None:
        return repository.name
    return _short_name(name)


def _short_name(name: str) -> str:
    return name.rsplit("/", 1)[-1].strip().lower()
