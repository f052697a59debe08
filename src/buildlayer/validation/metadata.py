"""
Type validation for build metadata values.

Each supported dataType maps to one rule. A failed rule is a normal,
reportable outcome returned as a ValidationResult; only an unknown
dataType is fatal (UnsupportedTypeError).

Supported types:
- FQDN, string, ipv4, ipv4MaskLength, CIDR
- nsxtTransportType (OVERLAY, VLAN)
- vcsaAppSize (tiny, small, medium, large)
- folderPath (path must exist)
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from buildlayer.core.errors import UnsupportedTypeError

_OCTET = r"(?:25[0-5]|2[0-4][0-9]|1[0-9][0-9]|[1-9]?[0-9])"
IPV4_PATTERN = re.compile(rf"{_OCTET}(?:\.{_OCTET}){{3}}")
MASK_LENGTH_PATTERN = re.compile(r"(?:3[0-2]|[12]?[0-9])")
FQDN_LABEL = r"(?!-)[A-Za-z0-9-]{1,63}(?<!-)"
FQDN_PATTERN = re.compile(rf"(?=.{{4,253}}\Z){FQDN_LABEL}(?:\.{FQDN_LABEL})+")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of checking one value against its dataType."""

    data_item: str
    data_type: str
    is_valid: bool
    key: str | None = None

    def describe(self) -> str:
        label = f"{self.key}=" if self.key else ""
        return f"{label}'{self.data_item}' is not a valid {self.data_type}"


class BaseRule(ABC):
    """Base class for dataType rules."""

    data_type: str = "base"
    description: str = "Base rule"

    @abstractmethod
    def check(self, value: str) -> bool:
        """Return True when the value satisfies the rule."""
        pass


class FqdnRule(BaseRule):
    data_type = "FQDN"
    description = "Fully qualified domain name"

    def check(self, value: str) -> bool:
        return bool(FQDN_PATTERN.fullmatch(value))


class StringRule(BaseRule):
    data_type = "string"
    description = "Non-empty, non-whitespace string"

    def check(self, value: str) -> bool:
        return bool(value and value.strip())


class Ipv4Rule(BaseRule):
    data_type = "ipv4"
    description = "Dotted-quad IPv4 address"

    def check(self, value: str) -> bool:
        return bool(IPV4_PATTERN.fullmatch(value))


class Ipv4MaskLengthRule(BaseRule):
    data_type = "ipv4MaskLength"
    description = "Prefix length between 0 and 32"

    def check(self, value: str) -> bool:
        return bool(MASK_LENGTH_PATTERN.fullmatch(value))


class CidrRule(BaseRule):
    data_type = "CIDR"
    description = "IPv4 address with prefix length"

    def check(self, value: str) -> bool:
        address, sep, prefix = value.partition("/")
        if not sep:
            return False
        return bool(IPV4_PATTERN.fullmatch(address) and MASK_LENGTH_PATTERN.fullmatch(prefix))


class ChoiceRule(BaseRule):
    """Value must be one of a fixed, case-sensitive set."""

    choices: frozenset[str] = frozenset()

    def check(self, value: str) -> bool:
        return value in self.choices


class NsxtTransportTypeRule(ChoiceRule):
    data_type = "nsxtTransportType"
    description = "NSX-T transport zone type"
    choices = frozenset({"OVERLAY", "VLAN"})


class VcsaAppSizeRule(ChoiceRule):
    data_type = "vcsaAppSize"
    description = "vCenter appliance deployment size"
    choices = frozenset({"tiny", "small", "medium", "large"})


class FolderPathRule(BaseRule):
    data_type = "folderPath"
    description = "Existing filesystem path"

    def check(self, value: str) -> bool:
        return bool(value) and Path(value).exists()


DEFAULT_RULES: tuple[type[BaseRule], ...] = (
    FqdnRule,
    StringRule,
    Ipv4Rule,
    Ipv4MaskLengthRule,
    NsxtTransportTypeRule,
    CidrRule,
    VcsaAppSizeRule,
    FolderPathRule,
)


class MetadataValidator:
    """Validates values against the registered dataType rules."""

    def __init__(self, rules: Iterable[BaseRule] | None = None):
        self._rules: dict[str, BaseRule] = {}
        for rule in rules if rules is not None else (cls() for cls in DEFAULT_RULES):
            self.add_rule(rule)

    def add_rule(self, rule: BaseRule) -> None:
        self._rules[rule.data_type] = rule

    @property
    def supported_types(self) -> list[str]:
        return sorted(self._rules)

    def supports(self, data_type: str) -> bool:
        return data_type in self._rules

    def validate(self, value: str, data_type: str, key: str | None = None) -> ValidationResult:
        """Check one value.

        Raises:
            UnsupportedTypeError: If no rule is registered for data_type
        """
        rule = self._rules.get(data_type)
        if rule is None:
            raise UnsupportedTypeError(
                f"Unsupported dataType '{data_type}'",
                details={"key": key, "value": value, "dataType": data_type},
            )
        return ValidationResult(
            data_item=value,
            data_type=data_type,
            is_valid=rule.check(value if value is not None else ""),
            key=key,
        )


_default_validator = MetadataValidator()


def validate(value: str, data_type: str, key: str | None = None) -> ValidationResult:
    """Validate a value with the default rule set."""
    return _default_validator.validate(value, data_type, key=key)
