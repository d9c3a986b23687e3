"""Model cost registry.

Costs are expressed in credits per invocation, bucketed by prompt length.
1,000,000 credits are sold for one US dollar.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.core.exceptions import ModelNotFound


class PromptLength(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class ModelProvider(str, Enum):
    OPENAI = "openai"
    SONAR = "sonar"


class ModalityType(str, Enum):
    TEXT = "text"
    AUDIO = "audio"
    IMAGE = "image"


CREDITS_PER_DOLLAR = 1_000_000


@dataclass(frozen=True)
class ModelCost:
    short: int
    medium: int
    long: int

    def for_length(self, length: PromptLength) -> int:
        return getattr(self, PromptLength(length).value)


@dataclass(frozen=True)
class ModelDefinition:
    id: str
    provider: ModelProvider
    name: str
    display_name: str
    input_type: ModalityType
    output_type: ModalityType
    cost: ModelCost
    description: str = ""
    is_available: bool = True


MODELS: tuple[ModelDefinition, ...] = (
    # OpenAI
    ModelDefinition(
        id="gpt-4o",
        provider=ModelProvider.OPENAI,
        name="GPT-4o Text",
        display_name="GPT-4o",
        input_type=ModalityType.TEXT,
        output_type=ModalityType.TEXT,
        cost=ModelCost(short=8_500, medium=15_000, long=23_500),
        description="OpenAI's most capable multimodal model",
    ),
    ModelDefinition(
        id="gpt-4o-mini",
        provider=ModelProvider.OPENAI,
        name="GPT-4o Mini Text",
        display_name="GPT-4o Mini",
        input_type=ModalityType.TEXT,
        output_type=ModalityType.TEXT,
        cost=ModelCost(short=1_000, medium=1_800, long=2_800),
        description="Lightweight version of GPT-4o at a reduced cost",
    ),
    ModelDefinition(
        id="gpt-4o-audio",
        provider=ModelProvider.OPENAI,
        name="GPT-4o Audio",
        display_name="GPT-4o Audio",
        input_type=ModalityType.AUDIO,
        output_type=ModalityType.TEXT,
        cost=ModelCost(short=44_000, medium=80_000, long=124_000),
        description="Process audio inputs with GPT-4o",
    ),
    ModelDefinition(
        id="gpt-4o-mini-audio",
        provider=ModelProvider.OPENAI,
        name="GPT-4o Mini Audio",
        display_name="GPT-4o Mini Audio",
        input_type=ModalityType.AUDIO,
        output_type=ModalityType.TEXT,
        cost=ModelCost(short=11_000, medium=20_000, long=31_000),
        description="Process audio at a reduced cost",
    ),
    ModelDefinition(
        id="gpt-image-1-text",
        provider=ModelProvider.OPENAI,
        name="GPT-Image-1 Text",
        display_name="GPT-Image-1 (Text to Image)",
        input_type=ModalityType.TEXT,
        output_type=ModalityType.IMAGE,
        cost=ModelCost(short=5_000, medium=5_000, long=5_000),
        description="Generate images from text prompts",
    ),
    ModelDefinition(
        id="gpt-image-1-image",
        provider=ModelProvider.OPENAI,
        name="GPT-Image-1 Image",
        display_name="GPT-Image-1 (Image to Image)",
        input_type=ModalityType.IMAGE,
        output_type=ModalityType.IMAGE,
        cost=ModelCost(short=17_000, medium=30_000, long=47_000),
        description="Edit or generate based on input images",
    ),
    ModelDefinition(
        id="o3",
        provider=ModelProvider.OPENAI,
        name="OpenAI o3",
        display_name="o3",
        input_type=ModalityType.TEXT,
        output_type=ModalityType.TEXT,
        cost=ModelCost(short=17_000, medium=30_000, long=47_000),
        description="Advanced text generation model",
    ),
    ModelDefinition(
        id="o4-mini",
        provider=ModelProvider.OPENAI,
        name="OpenAI o4-mini",
        display_name="o4-mini",
        input_type=ModalityType.TEXT,
        output_type=ModalityType.TEXT,
        cost=ModelCost(short=1_900, medium=3_300, long=5_200),
        description="Efficient and cost-effective text generation",
    ),
    # Sonar
    ModelDefinition(
        id="sonar-pro-low",
        provider=ModelProvider.SONAR,
        name="Sonar Pro Low",
        display_name="Sonar Pro (Low)",
        input_type=ModalityType.TEXT,
        output_type=ModalityType.TEXT,
        cost=ModelCost(short=3_400, medium=6_000, long=9_400),
        description="Sonar Pro optimized for efficiency",
    ),
    ModelDefinition(
        id="sonar-pro-medium",
        provider=ModelProvider.SONAR,
        name="Sonar Pro Medium",
        display_name="Sonar Pro (Medium)",
        input_type=ModalityType.TEXT,
        output_type=ModalityType.TEXT,
        cost=ModelCost(short=700, medium=1_200, long=1_900),
        description="Balanced performance Sonar model",
    ),
    ModelDefinition(
        id="sonar-pro-high",
        provider=ModelProvider.SONAR,
        name="Sonar Pro High",
        display_name="Sonar Pro (High)",
        input_type=ModalityType.TEXT,
        output_type=ModalityType.TEXT,
        cost=ModelCost(short=200, medium=300, long=500),
        description="Maximum capability Sonar model",
    ),
    ModelDefinition(
        id="sonar-low",
        provider=ModelProvider.SONAR,
        name="Sonar Low",
        display_name="Sonar (Low)",
        input_type=ModalityType.TEXT,
        output_type=ModalityType.TEXT,
        cost=ModelCost(short=17_000, medium=30_000, long=47_000),
        description="Standard Sonar model (low tier)",
    ),
    ModelDefinition(
        id="sonar-medium",
        provider=ModelProvider.SONAR,
        name="Sonar Medium",
        display_name="Sonar (Medium)",
        input_type=ModalityType.TEXT,
        output_type=ModalityType.TEXT,
        cost=ModelCost(short=1_900, medium=3_300, long=5_200),
        description="Standard Sonar model (medium tier)",
    ),
    ModelDefinition(
        id="sonar-high",
        provider=ModelProvider.SONAR,
        name="Sonar High",
        display_name="Sonar (High)",
        input_type=ModalityType.TEXT,
        output_type=ModalityType.TEXT,
        cost=ModelCost(short=8_500, medium=15_000, long=23_500),
        description="Standard Sonar model (high tier)",
    ),
    ModelDefinition(
        id="sonar-reasoning-pro-low",
        provider=ModelProvider.SONAR,
        name="Sonar Reasoning Pro Low",
        display_name="Sonar Reasoning Pro (Low)",
        input_type=ModalityType.TEXT,
        output_type=ModalityType.TEXT,
        cost=ModelCost(short=1_000, medium=1_800, long=2_800),
        description="Enhanced reasoning capabilities (low tier)",
    ),
    ModelDefinition(
        id="sonar-reasoning-pro-medium",
        provider=ModelProvider.SONAR,
        name="Sonar Reasoning Pro Medium",
        display_name="Sonar Reasoning Pro (Medium)",
        input_type=ModalityType.TEXT,
        output_type=ModalityType.TEXT,
        cost=ModelCost(short=44_000, medium=80_000, long=124_000),
        description="Enhanced reasoning capabilities (medium tier)",
    ),
    ModelDefinition(
        id="sonar-reasoning-pro-high",
        provider=ModelProvider.SONAR,
        name="Sonar Reasoning Pro High",
        display_name="Sonar Reasoning Pro (High)",
        input_type=ModalityType.TEXT,
        output_type=ModalityType.TEXT,
        cost=ModelCost(short=11_000, medium=20_000, long=31_000),
        description="Enhanced reasoning capabilities (high tier)",
    ),
    ModelDefinition(
        id="sonar-reasoning-low",
        provider=ModelProvider.SONAR,
        name="Sonar Reasoning Low",
        display_name="Sonar Reasoning (Low)",
        input_type=ModalityType.TEXT,
        output_type=ModalityType.TEXT,
        cost=ModelCost(short=17_000, medium=30_000, long=47_000),
        description="Standard reasoning model (low tier)",
    ),
)

_MODELS_BY_ID: dict[str, ModelDefinition] = {model.id: model for model in MODELS}


def get_model(model_id: str) -> ModelDefinition:
    """Look up a model; unknown ids raise ``ModelNotFound``, never a default."""
    model = _MODELS_BY_ID.get(model_id)
    if model is None:
        raise ModelNotFound(model_id)
    return model


def list_models(available_only: bool = True) -> list[ModelDefinition]:
    return [model for model in MODELS if model.is_available or not available_only]


def list_models_by_provider(provider: ModelProvider | str) -> list[ModelDefinition]:
    return [model for model in MODELS if model.provider == provider]
