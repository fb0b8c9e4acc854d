from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field


class SignInRequest(BaseModel):
    email: str = ""
    password: str = ""


class RegisterRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str = ""
    password: str = ""
    display_name: str = Field(default="", alias="displayName")


class ResetRequest(BaseModel):
    email: str = ""
