from __future__ import annotations

import json
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, PositiveInt


class Address(BaseModel):
    """Full address. Can be null if not specified."""

    city: str | None = Field(None, description="City.")
    street: str | None = Field(None, description="Street and house number.")
    zipCode: str | None = Field(None, description="Postal code. Can be null if not specified.")


class UserProfile(BaseModel):
    """Complete user profile with all necessary information."""

    name: str | None = Field(None, description="Full user name.")
    age: PositiveInt | None = Field(None, description="User age. Can be null if not specified.")
    email: EmailStr | None = Field(None, description="Email address. Can be null if not specified.")
    role: Literal["admin", "user", "guest"] | None = Field(None, description="User role in the system.")
    hobbies: list[str] | None = Field(None, description="List of hobbies/interests.")
    address: Address | None = Field(None, description="Full address. Can be null if not specified.")


def schema_prompt() -> str:
    schema = json.dumps(UserProfile.model_json_schema(), indent=2, ensure_ascii=False)
    return (
        "As a genius expert, your task is to understand the content and provide the parsed "
        "objects in json that match the following json_schema:\n\n"
        f"{schema}\n\n"
        "Make sure to return an instance of the JSON, not the schema itself."
    )
