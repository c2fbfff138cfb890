"""Validation result models."""

from pydantic import BaseModel, Field


class ValidationIssue(BaseModel):
    """A single validation issue found on a draft."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'not_in_roster', 'invalid_format')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )


class ValidationResult(BaseModel):
    """
    Result of checking a draft before submission.

    Issues are never shown as error messages: the form's required-field
    markers are the only feedback. They are kept for logging and tests.
    """

    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    @property
    def fields(self) -> set[str]:
        return {issue.field for issue in self.issues}
