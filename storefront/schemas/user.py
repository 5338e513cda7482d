# storefront/schemas/user.py
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional


# Пользователь витрины. Колонки удаленной таблицы `users` приходят в snake_case
# (name, points, is_admin, is_socio), внутри используем понятные имена.
class Identity(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True, coerce_numbers_to_str=True)

    id: str
    display_name: str = Field("", alias="name")
    email: Optional[str] = None
    loyalty_points: int = Field(0, ge=0, alias="points")
    is_admin: bool = False
    is_member: bool = Field(False, alias="is_socio")

    @field_validator("display_name", "loyalty_points", "is_admin", "is_member", mode="before")
    @classmethod
    def null_to_default(cls, v, info):
        # Незаполненные колонки приходят как null
        if v is None:
            return cls.model_fields[info.field_name].default
        return v


# Участник клуба в админском списке - та же строка, что и Identity
class Member(Identity):
    pass


class Session(BaseModel):
    """Подтвержденная удаленная сессия (токен + id пользователя)."""
    user_id: str
    access_token: str
    email: Optional[str] = None


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    USER_UPDATED = "USER_UPDATED"


class MemberPointsUpdate(BaseModel):
    points: int = Field(..., ge=0)
