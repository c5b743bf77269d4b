"""Shared pydantic base for every request and response body.

Learn: The browser speaks camelCase (`allowedRoles`, `isActive`), Python
speaks snake_case. An alias generator maps one onto the other: FastAPI
renders responses by alias, request bodies are accepted in either form,
and from_attributes lets read models be built straight from ORM rows.
"""

import enum
from typing import Literal

from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


class FileCategory(str, enum.Enum):
    CHEAT = "cheat"
    LOADER = "loader"
    TOOL = "tool"
    UPDATE = "update"
    OTHER = "other"


Priority = Literal["low", "normal", "high", "urgent"]
NotificationType = Literal["file_upload", "announcement", "system", "file_expiring"]
