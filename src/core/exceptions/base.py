from typing import Any, Dict, Optional


class StoreError(Exception):
    """
    Technical failure of a persistence collaborator (connectivity, driver errors).
    Domain conditions such as "not found" or "already exists" are never raised as StoreError.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation": self.operation,
            "message": self.message,
            "context": self.context,
        }


class AccountNotFoundError(Exception):
    """No user is registered under the given email."""

    def __init__(self, email: str) -> None:
        super().__init__(f"User not found: {email}")
        self.email = email


class OnboardingIncompleteError(Exception):
    """The operation requires a user who finished onboarding."""

    def __init__(self, email: str) -> None:
        super().__init__(f"User has not completed onboarding: {email}")
        self.email = email
