"""
Pydantic models for the annotations API.

Entity models define the JSON shape returned to clients; request models
validate incoming payloads. Update requests carry only optional fields so
that ``model_dump(exclude_unset=True)`` yields a sparse patch.
"""

from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
)

from annotation_blocks.common_libraries.errors import SerializationError


class TaskState(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


class Point(BaseModel):
    x: float
    y: float


class PolygonGeometry(BaseModel):
    type: Literal["polygon"]
    points: List[Point]


class BBoxGeometry(BaseModel):
    type: Literal["bbox"]
    start: Point
    end: Point


Geometry = Annotated[
    Union[PolygonGeometry, BBoxGeometry], Field(discriminator="type")
]

_geometry_adapter = TypeAdapter(Geometry)


def serialize_geometry(geometry) -> str:
    """Encode a geometry as the JSON string stored on the annotation row"""
    return _geometry_adapter.dump_json(geometry).decode("utf-8")


def deserialize_geometry(raw: Optional[str]):
    """Decode a stored geometry blob; unknown tags and malformed JSON are rejected"""
    if not raw:
        raise SerializationError("Annotation has no geometry")
    try:
        return _geometry_adapter.validate_json(raw)
    except ValidationError as e:
        raise SerializationError(f"Malformed geometry: {e.error_count()} error(s)")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


class Label(BaseModel):
    label_id: str
    block_id: str
    label_name: str = ""
    label_color: str = ""
    label_properties: Optional[Any] = None
    label_count: int = 0


class Block(BaseModel):
    block_id: str
    block_name: str = ""
    block_type: str = ""
    block_company: Optional[str] = None
    block_state: str = "draft"
    block_locked: bool = False
    image_count: int = 0
    approved_image_count: int = 0
    annotation_count: int = 0
    block_created_at: str = ""
    labels: List[Label] = Field(default_factory=list)


class Image(BaseModel):
    image_id: str
    block_id: str
    task_id: Optional[str] = None
    url: str = ""
    locked: bool = False
    order: Optional[int] = None
    annotation_count: int = 0
    uploaded_at: str = ""
    updated_at: Optional[str] = None


class Task(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task_id: str
    block_id: str
    task_name: str = ""
    task_state: TaskState = TaskState.TODO
    assignee: str = ""
    checked_by: str = Field(default="", serialization_alias="reviewer")
    locked: bool = False
    image_count: int = 0
    created_at: str = ""
    images: List[Image] = Field(default_factory=list)


class Annotation(BaseModel):
    annotation_id: str
    image_id: str
    label_id: str
    geometry: Geometry
    created_by: str = ""
    created_at: str = ""
    updated_at: Optional[str] = None


class User(BaseModel):
    user_id: str
    user_name: str = ""
    user_email: str = ""
    user_company: Optional[str] = None
    user_role: str = ""
    user_created_at: str = ""
    user_last_login: Optional[str] = None


def to_response(entity: BaseModel) -> dict:
    """Render an entity with its public field names"""
    return entity.model_dump(by_alias=True, mode="json")


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateBlockRequest(BaseModel):
    block_name: str = Field(min_length=1)
    block_type: str
    block_company: Optional[str] = None


class UpdateBlockRequest(BaseModel):
    block_name: Optional[str] = None
    block_state: Optional[str] = None
    block_locked: Optional[bool] = None


class CreateLabelRequest(BaseModel):
    label_name: str = Field(min_length=1)
    label_color: str
    label_properties: Optional[Any] = None


class UpdateLabelRequest(BaseModel):
    label_name: Optional[str] = None
    label_color: Optional[str] = None
    label_properties: Optional[Any] = None


class CreateTaskRequest(BaseModel):
    task_name: str = Field(min_length=1)
    assignee: str = ""
    checked_by: str = Field(
        default="", validation_alias=AliasChoices("checked_by", "reviewer")
    )


class UpdateTaskRequest(BaseModel):
    task_name: Optional[str] = None
    task_state: Optional[TaskState] = None
    assignee: Optional[str] = None
    checked_by: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("checked_by", "reviewer")
    )
    locked: Optional[bool] = None


class CreateImageRequest(BaseModel):
    url: str = Field(min_length=1)
    task_id: Optional[str] = None
    order: Optional[int] = None


class CreateTaskImageRequest(BaseModel):
    url: str = Field(min_length=1)
    order: Optional[int] = None


class UpdateImageRequest(BaseModel):
    locked: Optional[bool] = None
    order: Optional[int] = None


class CreateAnnotationRequest(BaseModel):
    label_id: str = Field(min_length=1)
    geometry: Geometry


class CreateAnnotationsBatchRequest(BaseModel):
    annotations: List[CreateAnnotationRequest]


class UpdateAnnotationRequest(BaseModel):
    label_id: Optional[str] = None
    geometry: Optional[Geometry] = None


class CreateUserRequest(BaseModel):
    user_name: str = ""
    user_email: str = Field(min_length=3)
    user_company: Optional[str] = None
    user_role: str = "annotator"


class UpdateUserRequest(BaseModel):
    user_name: Optional[str] = None
    user_company: Optional[str] = None
    user_role: Optional[str] = None


def sparse_fields(request: BaseModel) -> dict:
    """Fields the caller actually sent, minus explicit nulls"""
    return {
        k: v
        for k, v in request.model_dump(exclude_unset=True, mode="json").items()
        if v is not None
    }
