# flowcatalog/validation/findings.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

ERROR = "error"
WARNING = "warning"

# Finding codes
MISSING_REQUIRED_PROPERTY = "missing-required-property"
TYPE_MISMATCH = "type-mismatch"
INVALID_OPTION_VALUE = "invalid-option-value"
UNKNOWN_PROPERTY = "unknown-property"
VALUE_OUT_OF_RANGE = "value-out-of-range"
INVALID_CONNECTION = "invalid-connection"
INCOMPATIBLE_PORTS = "incompatible-ports"
UNCONNECTED_REQUIRED_INPUT = "unconnected-required-input"
UNREACHABLE_NODE = "unreachable-node"
CYCLE_DETECTED = "cycle-detected"
DUPLICATE_CONNECTION = "duplicate-connection"

# Assembly notes
EXTRA_TRIGGER = "extra-trigger"
NOT_WIRED = "not-wired"
NEEDS_CONFIGURATION = "needs-configuration"
NEEDS_CREDENTIALS = "needs-credentials"


@dataclass(frozen=True)
class Finding:
    """A single validation error or warning."""
    code: str
    severity: str
    message: str
    node: Optional[str] = None
    prop: Optional[str] = None
    port: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity == ERROR

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"code": self.code, "severity": self.severity, "message": self.message}
        for key, attr in (("node", "node"), ("property", "prop"), ("port", "port")):
            value = getattr(self, attr)
            if value is not None:
                payload[key] = value
        return payload


def error(code: str, message: str, **where: Any) -> Finding:
    return Finding(code=code, severity=ERROR, message=message, **where)


def warning(code: str, message: str, **where: Any) -> Finding:
    return Finding(code=code, severity=WARNING, message=message, **where)


@dataclass
class ValidationResult:
    """Exhaustive findings of one validation run. Empty means valid."""
    findings: List[Finding] = field(default_factory=list)

    def add(self, finding: Finding) -> None:
        self.findings.append(finding)

    def extend(self, findings: List[Finding]) -> None:
        self.findings.extend(findings)

    @property
    def errors(self) -> List[Finding]:
        return [f for f in self.findings if f.severity == ERROR]

    @property
    def warnings(self) -> List[Finding]:
        return [f for f in self.findings if f.severity == WARNING]

    @property
    def valid(self) -> bool:
        return not self.errors

    def codes(self, severity: Optional[str] = None) -> List[str]:
        return [f.code for f in self.findings if severity is None or f.severity == severity]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "error_count": len(self.errors),
            "warning_count": len(self.warnings),
            "findings": [f.to_dict() for f in self.findings],
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ValidationResult":
        findings = []
        for f in payload.get("findings", []):
            findings.append(Finding(
                code=f["code"],
                severity=f["severity"],
                message=f["message"],
                node=f.get("node"),
                prop=f.get("property"),
                port=f.get("port"),
            ))
        return cls(findings)

    def format_report(self) -> str:
        """Human-readable summary, one finding per line."""
        if not self.findings:
            return "VALID: no findings."
        lines = []
        if self.errors:
            lines.append(f"ERRORS ({len(self.errors)}):")
            for i, f in enumerate(self.errors, 1):
                lines.append(f"{i}. [{f.code}] {f.message}")
        if self.warnings:
            lines.append(f"WARNINGS ({len(self.warnings)}):")
            for f in self.warnings:
                lines.append(f"  - [{f.code}] {f.message}")
        return "\n".join(lines)
