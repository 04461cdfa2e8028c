"""Database models and schema bootstrap."""

from .db_models import Base, GenerationJobModel, ModelConfigModel, UserApiKeyModel

__all__ = [
    "Base",
    "GenerationJobModel",
    "ModelConfigModel",
    "UserApiKeyModel",
]
