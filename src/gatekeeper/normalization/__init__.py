"""Normalization of Terraform JSON documents into resources."""

from .resource_normalizer import ResourceNormalizer

__all__ = ["ResourceNormalizer"]
