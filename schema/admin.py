from typing import Optional

from pydantic import Field, model_validator

from schema.base import CamelModel


class AdminResetPasswordIn(CamelModel):
    """Accepts either ``password`` or ``newPassword``."""
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    new_password: Optional[str] = Field(None, min_length=8, max_length=128)

    @model_validator(mode="after")
    def _one_password(self):
        if not (self.password or self.new_password):
            raise ValueError("password or newPassword is required")
        return self

    @property
    def value(self) -> str:
        return self.new_password or self.password


class VerifyPasswordIn(CamelModel):
    password: str = Field(..., min_length=1, max_length=128)


class VerifyPasswordOut(CamelModel):
    valid: bool
    user_id: str


class DeleteUserOut(CamelModel):
    success: bool = True
    deleted_user_id: str
