"""Reconcile and deliver gitleaks diff review comments on pull requests."""

__version__ = "0.3.0"
