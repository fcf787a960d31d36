"""
Pre-session form: the user context collected before a chat or call starts.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict

from courtney_ai.errors import ValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class UserContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    email: str = ""
    issue: str = ""

    def field_errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        if not self.name.strip():
            errors["name"] = "Name is required"
        if not self.email.strip():
            errors["email"] = "Email is required"
        elif not EMAIL_PATTERN.match(self.email):
            errors["email"] = "Invalid email format"
        if not self.issue.strip():
            errors["issue"] = "Please describe your issue"
        return errors

    def validate_fields(self) -> UserContext:
        """Raise ValidationError listing every bad field; return self when valid."""
        errors = self.field_errors()
        if errors:
            raise ValidationError(errors)
        return self

    def to_variable_values(self) -> dict[str, str]:
        """First-turn variables as the assistant backend names them."""
        return {
            "userName": self.name,
            "userEmail": self.email,
            "userIssue": self.issue,
        }
