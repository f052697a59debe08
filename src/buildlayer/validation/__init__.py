"""Validation module for build metadata types."""

from buildlayer.validation.metadata import (
    BaseRule,
    CidrRule,
    FolderPathRule,
    FqdnRule,
    Ipv4MaskLengthRule,
    Ipv4Rule,
    MetadataValidator,
    NsxtTransportTypeRule,
    StringRule,
    ValidationResult,
    VcsaAppSizeRule,
    validate,
)

__all__ = [
    "MetadataValidator",
    "ValidationResult",
    "BaseRule",
    "FqdnRule",
    "StringRule",
    "Ipv4Rule",
    "Ipv4MaskLengthRule",
    "CidrRule",
    "NsxtTransportTypeRule",
    "VcsaAppSizeRule",
    "FolderPathRule",
    "validate",
]
