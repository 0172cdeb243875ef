"""Provisioning-level exceptions."""
from __future__ import annotations


class ProvisioningError(Exception):
    """A resource could not be created or adopted; the run continues without it.

    Attributes:
        resource: Display name of the abandoned resource
        step: Step that failed (e.g. "create application", "create principal")
    """

    def __init__(self, resource: str, step: str, reason: str):
        self.resource = resource
        self.step = step
        self.reason = reason
        super().__init__(f"{resource}: {step} failed: {reason}")

