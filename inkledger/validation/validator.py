"""
Draft Validation

DESIGN DECISION: A draft that is missing a required field is simply not
submitted. Nothing is shown as an error: the required-field markers on
the form are the only feedback, so validation returns a result instead
of raising.

Checks:
- client name present
- artist present and in the configured roster
- value present, parseable and non-zero
"""

from typing import Iterable

from inkledger import currency
from inkledger.models.transaction import TransactionDraft
from inkledger.models.validation import ValidationIssue, ValidationResult


class DraftValidator:
    """Validates a transaction draft against the required fields and roster."""

    def __init__(self, artist_roster: Iterable[str]):
        self._roster = {name.strip() for name in artist_roster}

    def validate(self, draft: TransactionDraft) -> ValidationResult:
        issues = []

        if not draft.client_name.strip():
            issues.append(ValidationIssue(
                field="client_name",
                issue_type="missing",
                message="Client name is required",
            ))

        artist = draft.artist.strip()
        if not artist:
            issues.append(ValidationIssue(
                field="artist",
                issue_type="missing",
                message="Artist is required",
            ))
        elif self._roster and artist not in self._roster:
            issues.append(ValidationIssue(
                field="artist",
                issue_type="not_in_roster",
                message=f"Unknown artist: {artist}",
            ))

        if not draft.value.strip():
            issues.append(ValidationIssue(
                field="value",
                issue_type="missing",
                message="Value is required",
            ))
        else:
            try:
                amount = currency.to_numeric(draft.value)
            except ValueError:
                issues.append(ValidationIssue(
                    field="value",
                    issue_type="invalid_format",
                    message=f"Not an amount: {draft.value}",
                ))
            else:
                if amount == 0:
                    issues.append(ValidationIssue(
                        field="value",
                        issue_type="missing",
                        message="Value must not be zero",
                    ))

        return ValidationResult(issues=issues)
