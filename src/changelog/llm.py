"""LLM capabilities used by the classifier and the prompt synthesizer.

Two narrow interfaces keep the pipeline independent of any provider:

- StructuredExtractor: ``extract(prompt, schema)`` returns an instance of
  a Pydantic schema or raises.
- TextGenerator: ``generate(prompt)`` returns free text.

LangChainLLM implements both against an OpenAI-compatible endpoint (vLLM
or a hosted API) using LangChain's ChatOpenAI client. Structured output
uses ``with_structured_output`` so the model is constrained to the
schema; anything that still fails validation is raised, never defaulted.
"""

import logging
from typing import Optional, Protocol, Type, TypeVar, runtime_checkable

from langchain_core.messages import HumanMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


SchemaT = TypeVar("SchemaT", bound=BaseModel)


class LLMError(Exception):
    """Raised when an LLM call fails or returns unusable output.

    Attributes:
        message: Human-readable error description.
        cause: The underlying exception, if any.
    """

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


@runtime_checkable
class StructuredExtractor(Protocol):
    """Schema-constrained extraction capability."""

    async def extract(self, prompt: str, schema: Type[SchemaT]) -> SchemaT:
        ...


@runtime_checkable
class TextGenerator(Protocol):
    """Free-form text generation capability."""

    async def generate(self, prompt: str) -> str:
        ...


class LangChainLLM:
    """ChatOpenAI-backed implementation of both LLM capabilities.

    Attributes:
        llm_url: URL of the OpenAI-compatible endpoint.
        model_name: Name of the model to use for inference.
        api_key: API key for the endpoint ("not-needed" for vLLM).
        timeout: Request timeout in seconds.
        temperature: Sampling temperature for the LLM.
    """

    def __init__(
        self,
        llm_url: str,
        model_name: str,
        api_key: str = "not-needed",
        timeout: float = 60.0,
        temperature: float = 0.1,
    ):
        self.llm_url = llm_url
        self.model_name = model_name
        self.api_key = api_key
        self.timeout = timeout
        self.temperature = temperature
        self._llm: Optional[ChatOpenAI] = None

    @property
    def llm(self) -> ChatOpenAI:
        """Get the LLM client, creating it if necessary."""
        if self._llm is None:
            self._llm = ChatOpenAI(
                base_url=self.llm_url,
                model=self.model_name,
                temperature=self.temperature,
                timeout=self.timeout,
                api_key=self.api_key,
            )
        return self._llm

    async def extract(self, prompt: str, schema: Type[SchemaT]) -> SchemaT:
        """Extract a schema instance from the prompt.

        Args:
            prompt: Full extraction prompt.
            schema: Pydantic model the output must conform to.

        Returns:
            A validated instance of ``schema``.

        Raises:
            LLMError: If the call fails or the output does not conform.
        """
        structured = self.llm.with_structured_output(schema)

        try:
            result = await structured.ainvoke([HumanMessage(content=prompt)])
        except ValidationError as e:
            raise LLMError(f"Output did not match schema: {e}", cause=e) from e
        except Exception as e:
            raise LLMError(f"LLM invocation failed: {e}", cause=e) from e

        if isinstance(result, schema):
            return result

        # Some providers hand back a plain dict instead of the model
        if isinstance(result, dict):
            try:
                return schema.model_validate(result)
            except ValidationError as e:
                raise LLMError(
                    f"Output did not match schema: {e}", cause=e
                ) from e

        raise LLMError(f"Unexpected structured output type: {type(result)}")

    async def generate(self, prompt: str) -> str:
        """Generate free text for the prompt.

        Raises:
            LLMError: If the call fails or the response is not text.
        """
        try:
            response = await self.llm.ainvoke([HumanMessage(content=prompt)])
        except Exception as e:
            raise LLMError(f"LLM invocation failed: {e}", cause=e) from e

        content = response.content
        if not isinstance(content, str):
            raise LLMError(f"Unexpected response type: {type(content)}")
        return content

    async def health_check(self) -> bool:
        """Check if the LLM endpoint is accessible."""
        try:
            await self.llm.ainvoke([HumanMessage(content="Hello")])
            return True
        except Exception as e:
            logger.warning(
                "LLM health check failed",
                extra={"error": str(e)},
            )
            return False
