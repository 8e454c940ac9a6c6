"""Domain models — prompt definitions, credentials, provider configs and execution results."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from prompt_arena.core.template import find_variables


class ProviderKind(str, Enum):
    """LLM vendor / wire-protocol family a prompt targets."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    DEEPSEEK = "deepseek"
    OPENROUTER = "openrouter"
    OLLAMA = "ollama"
    AIHUBMIX = "aihubmix"
    CUSTOM = "custom"
    GOOGLE = "google"
    GITHUB = "github"
    AZURE_OPENAI = "azure_openai"


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str


class ModelParameters(BaseModel):
    """Optional sampling parameters."""

    model_config = ConfigDict(frozen=True)

    temperature: float | None = Field(default=None, ge=0, le=2)
    top_p: float | None = Field(default=None, ge=0, le=1)
    max_tokens: int | None = Field(default=None, gt=0)

    def merged_over(self, base: ModelParameters | None) -> ModelParameters:
        """Return these parameters with unset fields filled from ``base``."""
        if base is None:
            return self
        return ModelParameters(
            temperature=self.temperature if self.temperature is not None else base.temperature,
            top_p=self.top_p if self.top_p is not None else base.top_p,
            max_tokens=self.max_tokens if self.max_tokens is not None else base.max_tokens,
        )


class ModelConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    provider: ProviderKind
    model: str = Field(..., min_length=1)
    parameters: ModelParameters | None = None


class EvaluationRule(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    type: str
    ref: str | None = None
    weight: float | None = None


class PromptDefinition(BaseModel):
    """A parsed prompt file. Read-only input to every execution."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_version: str = Field(default="v1", alias="schema")
    name: str = Field(..., min_length=1)
    description: str | None = None
    config: ModelConfig
    messages: list[Message] = Field(..., min_length=1)
    test_data: str | None = None
    evaluation: list[EvaluationRule] | None = None

    def extract_variables(self) -> list[str]:
        """Placeholder names across all messages, in first-seen order."""
        names: list[str] = []
        for message in self.messages:
            names.extend(find_variables(message.content))
        return list(dict.fromkeys(names))

    def with_target(
        self,
        provider: ProviderKind,
        model: str,
        parameters: ModelParameters | None = None,
    ) -> PromptDefinition:
        """Copy of this prompt aimed at another provider/model.

        ``parameters`` override the prompt's own where set.
        """
        merged = self.config.parameters
        if parameters is not None:
            merged = parameters.merged_over(merged)
        config = ModelConfig(provider=provider, model=model, parameters=merged)
        return self.model_copy(update={"config": config})


# --- Credentials ---


class DirectCredential(BaseModel):
    """Secret value held directly in the configuration."""

    model_config = ConfigDict(frozen=True)

    source: Literal["direct"] = "direct"
    value: SecretStr


class EnvCredential(BaseModel):
    """Secret read from a process environment variable at execution time."""

    model_config = ConfigDict(frozen=True)

    source: Literal["env_var"] = "env_var"
    name: str = Field(..., min_length=1)


class SecretStoreCredential(BaseModel):
    """Secret looked up by key in the platform secret store."""

    model_config = ConfigDict(frozen=True)

    source: Literal["secret_store"] = "secret_store"
    key: str = Field(..., min_length=1)


CredentialSource = Annotated[
    Union[DirectCredential, EnvCredential, SecretStoreCredential],
    Field(discriminator="source"),
]


class ProviderConfig(BaseModel):
    """A named provider/model/credential combination (one arena contestant)."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    provider: ProviderKind
    model: str = Field(..., min_length=1)
    base_url: str | None = None
    credential: CredentialSource | None = None
    parameters: ModelParameters | None = None
    is_default: bool = False


# --- Results ---


class Usage(BaseModel):
    """Normalized token accounting, whatever the provider calls its fields."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class ExecutionMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str
    provider: str
    latency_ms: int
    tokens_input: int
    tokens_output: int
    cost_usd: float
    timestamp: int


class ExecutionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    output: str
    metadata: ExecutionMetadata
