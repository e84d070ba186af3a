"""Adapters for reading Terraform plan and configuration documents."""

from .plan_loader import LoadedDocument, PlanLoader, PlanLoaderError

__all__ = [
    "LoadedDocument",
    "PlanLoader",
    "PlanLoaderError",
]
