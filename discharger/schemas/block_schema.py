"""Block shapes and per-request schema construction.

Every block is ``{id, type, title, isEditable, isRequired, metadata, data}``
where ``type`` decides the shape of ``data``. Generation and translation both
build a schema from only the block types involved in the call, so the model's
JSON output is validated against exactly those shapes.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any, Dict, Iterable, List, Literal, Optional, Sequence, Type, Union

from pydantic import BaseModel, ConfigDict, Field, create_model
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for block payloads; serialised with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----- medication -----

class MedicationItem(CamelModel):
    id: str
    name: str
    dosage: str
    frequency: str
    duration: str
    status: Literal["new", "changed", "unchanged", "stopped"]
    instructions: Optional[str] = None


class MedicationBlockData(CamelModel):
    medications: List[MedicationItem]
    group_by: Optional[Literal["status"]] = None


# ----- task -----

class TaskItem(CamelModel):
    id: str
    title: str
    description: str
    priority: Literal["high", "medium", "low"]
    completed: bool = False
    due_date: Optional[str] = None
    completed_at: Optional[str] = None


class TaskBlockData(CamelModel):
    tasks: List[TaskItem]
    enable_reminders: bool = False
    group_by: Optional[Literal["priority", "dueDate"]] = None


# ----- red flag -----

class RedFlagSymptom(CamelModel):
    id: str
    symptom: str
    description: str


class RedFlagBlockData(CamelModel):
    symptoms: List[RedFlagSymptom]


# ----- appointment -----

class AppointmentItem(CamelModel):
    id: str
    clinic_name: str
    description: str
    status: Literal["patient_to_book", "clinic_will_call", "already_booked"]
    date: Optional[str] = None


class AppointmentBlockData(CamelModel):
    appointments: List[AppointmentItem]


# ----- text -----

class TextBlockData(CamelModel):
    content: str
    format: Literal["plain", "rich"] = "plain"


BLOCK_DATA_MODELS: Dict[str, Type[CamelModel]] = {
    "medication": MedicationBlockData,
    "task": TaskBlockData,
    "redFlag": RedFlagBlockData,
    "appointment": AppointmentBlockData,
    "text": TextBlockData,
}

SUPPORTED_BLOCK_TYPES: tuple[str, ...] = tuple(BLOCK_DATA_MODELS)

# Block types produced by /blocks/generate when the caller does not choose
DEFAULT_GENERATION_BLOCK_TYPES: tuple[str, ...] = ("medication", "task", "redFlag", "appointment")

BLOCK_TYPE_DESCRIPTIONS: Dict[str, str] = {
    "medication": (
        "Medications the patient must take, change or stop after discharge. "
        "status is 'new', 'changed', 'unchanged' or 'stopped'."
    ),
    "task": (
        "Actions the patient must complete at home (wound care, tests, lifestyle changes). "
        "priority is 'high', 'medium' or 'low'."
    ),
    "redFlag": "Warning symptoms that should make the patient seek urgent medical help.",
    "appointment": (
        "Follow-up appointments. status is 'patient_to_book', 'clinic_will_call' or 'already_booked'."
    ),
    "text": "Free-text notes for the patient that do not fit another block.",
}

# Human-readable fields that translation may change. Everything else is copied from the source.
TRANSLATABLE_FIELDS: Dict[str, tuple[Optional[str], frozenset[str]]] = {
    "medication": ("medications", frozenset({"name", "duration", "instructions"})),
    "task": ("tasks", frozenset({"title", "description"})),
    "redFlag": ("symptoms", frozenset({"symptom", "description"})),
    "appointment": ("appointments", frozenset({"clinicName", "description"})),
    "text": (None, frozenset({"content"})),
}


class UnsupportedBlockTypeError(ValueError):
    def __init__(self, invalid_types: Sequence[str]) -> None:
        self.invalid_types = list(invalid_types)
        super().__init__(f"Unsupported block types: {', '.join(self.invalid_types)}")


class BlockMetadata(CamelModel):
    created_at: str
    updated_at: str
    version: str = "1.0"


class GenerationMetadata(CamelModel):
    patient_name: Optional[str] = None
    discharge_date: Optional[str] = None
    primary_diagnosis: Optional[str] = None


class _BlockEnvelope(CamelModel):
    id: str
    title: str
    is_editable: bool = True
    is_required: bool = True
    metadata: BlockMetadata


def validate_block_types(block_types: Iterable[str]) -> List[str]:
    """Return the types de-duplicated in request order, or raise naming the unknown ones."""
    requested = list(dict.fromkeys(block_types))
    invalid = [t for t in requested if t not in BLOCK_DATA_MODELS]
    if invalid:
        raise UnsupportedBlockTypeError(invalid)
    return requested


def _model_suffix(block_type: str) -> str:
    return block_type[0].upper() + block_type[1:]


def _generated_block_model(block_type: str) -> Type[CamelModel]:
    return create_model(
        f"Generated{_model_suffix(block_type)}Block",
        __base__=CamelModel,
        type=(Literal[block_type], ...),
        title=(str, ...),
        data=(BLOCK_DATA_MODELS[block_type], ...),
    )


def _full_block_model(block_type: str) -> Type[_BlockEnvelope]:
    return create_model(
        f"{_model_suffix(block_type)}Block",
        __base__=_BlockEnvelope,
        type=(Literal[block_type], ...),
        data=(BLOCK_DATA_MODELS[block_type], ...),
    )


def _union_of(models: Sequence[Type[BaseModel]]) -> Any:
    # A single member stays a plain object schema instead of a one-item union
    if len(models) == 1:
        return models[0]
    return Annotated[Union[tuple(models)], Field(discriminator="type")]


@lru_cache(maxsize=64)
def _dynamic_block_schema(block_types: tuple[str, ...]) -> Type[CamelModel]:
    item = _union_of([_generated_block_model(t) for t in block_types])
    return create_model(
        "GeneratedBlocks",
        __base__=CamelModel,
        blocks=(List[item], ...),
        metadata=(GenerationMetadata, Field(default_factory=GenerationMetadata)),
    )


@lru_cache(maxsize=64)
def _translation_schema(block_types: tuple[str, ...]) -> Type[CamelModel]:
    item = _union_of([_full_block_model(t) for t in block_types])
    return create_model(
        "TranslatedBlocks",
        __base__=CamelModel,
        translated_blocks=(List[item], ...),
    )


def create_dynamic_block_schema(block_types: Iterable[str]) -> Type[CamelModel]:
    """Schema for model output when generating blocks of ``block_types``."""
    requested = validate_block_types(block_types)
    if not requested:
        raise ValueError("At least one block type is required")
    return _dynamic_block_schema(tuple(requested))


def create_translation_schema(block_types: Iterable[str]) -> Type[CamelModel]:
    """Schema for model output when translating full blocks of ``block_types``."""
    requested = validate_block_types(block_types)
    if not requested:
        raise ValueError("At least one block type is required")
    return _translation_schema(tuple(requested))


def get_block_types_from_blocks(blocks: Iterable[Dict[str, Any]]) -> List[str]:
    return list(dict.fromkeys(
        block.get("type") for block in blocks if block.get("type") in BLOCK_DATA_MODELS
    ))


MedicationBlock = _full_block_model("medication")
TaskBlock = _full_block_model("task")
RedFlagBlock = _full_block_model("redFlag")
AppointmentBlock = _full_block_model("appointment")
TextBlock = _full_block_model("text")

# Any stored block, validated by its type discriminant
Block = Annotated[
    Union[MedicationBlock, TaskBlock, RedFlagBlock, AppointmentBlock, TextBlock],
    Field(discriminator="type"),
]
