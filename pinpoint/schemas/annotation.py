from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from pinpoint.core.errors import AnnotationValidationError

LABEL_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500


class AnnotationType(str, Enum):
    DOT = "DOT"
    ARROW = "ARROW"


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class Actor(BaseModel):
    """Resolved identity attempting an action."""

    id: int
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class ImageRef(BaseModel):
    id: int
    url: str
    owner_id: int = Field(..., alias="ownerId")
    is_public: bool = Field(default=True, alias="isPublic")
    width: Optional[int] = None
    height: Optional[int] = None

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class CreatedBy(BaseModel):
    """Author summary shown next to an annotation."""

    id: int
    username: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class Annotation(BaseModel):
    id: int
    type: AnnotationType
    x: float
    y: float
    end_x: Optional[float] = Field(default=None, alias="endX")
    end_y: Optional[float] = Field(default=None, alias="endY")
    label: str
    description: Optional[str] = None
    image_id: int = Field(..., alias="imageId")
    user_id: int = Field(..., alias="userId")
    is_hidden: bool = Field(default=False, alias="isHidden")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
    created_by: Optional[CreatedBy] = Field(default=None, alias="createdBy")

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _check_label(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Label is required")
    if len(value) > LABEL_MAX_LENGTH:
        raise ValueError(f"Label must be less than {LABEL_MAX_LENGTH} characters")
    return value


def _check_description(value: Optional[str]) -> Optional[str]:
    if value is not None and len(value) > DESCRIPTION_MAX_LENGTH:
        raise ValueError(f"Description must be less than {DESCRIPTION_MAX_LENGTH} characters")
    return value


class AnnotationCreate(BaseModel):
    type: AnnotationType
    x: float = Field(..., ge=0, le=100)
    y: float = Field(..., ge=0, le=100)
    end_x: Optional[float] = Field(default=None, ge=0, le=100, alias="endX")
    end_y: Optional[float] = Field(default=None, ge=0, le=100, alias="endY")
    label: str
    description: Optional[str] = None
    image_id: int = Field(..., alias="imageId")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("label")
    @classmethod
    def _label_not_blank(cls, value: str) -> str:
        return _check_label(value)

    @field_validator("description")
    @classmethod
    def _description_length(cls, value: Optional[str]) -> Optional[str]:
        return _check_description(value)

    @model_validator(mode="after")
    def _check_endpoints(self) -> "AnnotationCreate":
        if self.type == AnnotationType.ARROW:
            if self.end_x is None or self.end_y is None:
                raise ValueError("End coordinates are required for arrow annotations")
        else:
            self.end_x = None
            self.end_y = None
        return self


class AnnotationUpdate(BaseModel):
    x: Optional[float] = Field(default=None, ge=0, le=100)
    y: Optional[float] = Field(default=None, ge=0, le=100)
    end_x: Optional[float] = Field(default=None, ge=0, le=100, alias="endX")
    end_y: Optional[float] = Field(default=None, ge=0, le=100, alias="endY")
    label: Optional[str] = None
    description: Optional[str] = None
    is_hidden: Optional[bool] = Field(default=None, alias="isHidden")

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    @field_validator("label")
    @classmethod
    def _label_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            raise ValueError("Label is required")
        return _check_label(value)

    @field_validator("description")
    @classmethod
    def _description_length(cls, value: Optional[str]) -> Optional[str]:
        return _check_description(value)

    @field_validator("x", "y", "is_hidden")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("Field cannot be null")
        return value

    def changes(self) -> dict[str, Any]:
        """Only the fields the caller actually set."""
        return self.model_dump(exclude_unset=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


def check_geometry(
    annotation_type: AnnotationType,
    end_x: Optional[float],
    end_y: Optional[float],
) -> None:
    """Raise when endpoint fields disagree with the annotation type."""
    if annotation_type == AnnotationType.ARROW:
        if end_x is None or end_y is None:
            raise AnnotationValidationError("End coordinates are required for arrow annotations")
    elif end_x is not None or end_y is not None:
        raise AnnotationValidationError("Dot annotations cannot have end coordinates")


def _validation_messages(exc: ValidationError) -> list[str]:
    messages = []
    for error in exc.errors():
        message = error.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        location = ".".join(str(part) for part in error.get("loc", ()))
        messages.append(f"{location}: {message}" if location else message)
    return messages


def parse_create(data: "AnnotationCreate | dict[str, Any]") -> AnnotationCreate:
    if isinstance(data, AnnotationCreate):
        return data
    try:
        return AnnotationCreate.model_validate(data)
    except ValidationError as exc:
        raise AnnotationValidationError(_validation_messages(exc)) from exc


def parse_update(data: "AnnotationUpdate | dict[str, Any]") -> AnnotationUpdate:
    if isinstance(data, AnnotationUpdate):
        return data
    try:
        return AnnotationUpdate.model_validate(data)
    except ValidationError as exc:
        raise AnnotationValidationError(_validation_messages(exc)) from exc
