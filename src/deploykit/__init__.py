"""deploykit: deploy orchestrator with client-bundle churn reporting."""

__version__ = "0.1.0"
