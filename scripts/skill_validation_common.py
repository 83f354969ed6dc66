#!/usr/bin/env python3
"""
n8n Skills Validation - Common Module

Shared validation infrastructure for the n8n skill validators.
This module contains:
- Type definitions (Level, Diagnostic, ValidationResult, Summary)
- Exit codes
- Color formatting helpers for terminal output

The rule engine and the validation runner only build these data types;
everything that prints lives in the output helpers at the bottom.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Any, Literal, TextIO

# =============================================================================
# Type Definitions
# =============================================================================

# Diagnostic severity levels
# - ERROR: structural problem, fails the skill and the run
# - WARNING: stylistic problem, always reported, never blocks
Level = Literal["ERROR", "WARNING"]

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_OK = 0  # No ERROR diagnostics (warnings allowed)
EXIT_ERRORS = 1  # ERROR diagnostics found, or skills directory missing
EXIT_USAGE = 2  # Invalid configuration (argparse also exits with 2)

# Conventional file name inside each skill directory
SKILL_FILE_NAME = "SKILL.md"

# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class SkillDocument:
    """A loaded SKILL.md file.

    Attributes:
        name: Skill identifier (the directory name)
        content: Raw text of SKILL.md
    """

    name: str
    content: str


@dataclass(frozen=True)
class SkillMetadata:
    """Summary extracted from a skill's text."""

    title: str = "Unknown"
    description: str = "No description"
    has_tool_references: bool = False
    has_code_examples: bool = False
    has_related_skills: bool = False

    def to_dict(self) -> dict[str, str | bool]:
        """Convert to dictionary for JSON serialization."""
        return {
            "title": self.title,
            "description": self.description,
            "has_tool_references": self.has_tool_references,
            "has_code_examples": self.has_code_examples,
            "has_related_skills": self.has_related_skills,
        }


@dataclass(frozen=True)
class Diagnostic:
    """Single reported issue.

    Attributes:
        level: Severity level (ERROR or WARNING)
        message: Human-readable description of the issue
    """

    level: Level
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"level": self.level, "message": self.message}


def error(message: str) -> Diagnostic:
    """Build an ERROR diagnostic."""
    return Diagnostic("ERROR", message)


def warning(message: str) -> Diagnostic:
    """Build a WARNING diagnostic."""
    return Diagnostic("WARNING", message)


@dataclass(frozen=True)
class ValidationResult:
    """Validation outcome for one skill.

    Validity is derived from the diagnostics and is never stored, so any
    ERROR diagnostic fails the skill and warnings never do.
    """

    skill: str
    diagnostics: tuple[Diagnostic, ...] = ()
    metadata: SkillMetadata | None = None

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.level == "ERROR"]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.level == "WARNING"]

    @property
    def valid(self) -> bool:
        """True iff no ERROR diagnostics exist."""
        return not any(d.level == "ERROR" for d in self.diagnostics)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "skill": self.skill,
            "valid": self.valid,
            "errors": [d.message for d in self.errors],
            "warnings": [d.message for d in self.warnings],
        }
        if self.metadata is not None:
            result["metadata"] = self.metadata.to_dict()
        return result


@dataclass
class Summary:
    """Totals accumulated over every validated skill."""

    total: int = 0
    errors: int = 0
    warnings: int = 0
    failed: list[str] = field(default_factory=list)

    def add(self, result: ValidationResult) -> None:
        """Fold one result into the totals."""
        self.total += 1
        self.errors += len(result.errors)
        self.warnings += len(result.warnings)
        if not result.valid:
            self.failed.append(result.skill)

    @property
    def exit_code(self) -> int:
        """EXIT_ERRORS if any ERROR was seen. Warnings never affect it."""
        return EXIT_ERRORS if self.errors > 0 else EXIT_OK

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "errors": self.errors,
            "warnings": self.warnings,
            "failed": list(self.failed),
        }


# =============================================================================
# Color Formatting (for terminal output)
# =============================================================================

# ANSI color codes
COLORS = {
    "ERROR": "\033[31m",  # Red
    "WARNING": "\033[33m",  # Yellow
    "PASS": "\033[32m",  # Green
    "FAIL": "\033[31m",  # Red
    "INFO": "\033[90m",  # Gray
    "RESET": "\033[0m",  # Reset
    "BOLD": "\033[1m",  # Bold
}

# Labels printed in front of each diagnostic
LEVEL_LABELS: dict[str, str] = {"ERROR": "ERROR", "WARNING": "WARN"}


def use_color(stream: TextIO | None = None) -> bool:
    """Decide whether to emit ANSI colors on the given stream.

    Colors are disabled when NO_COLOR is set or the stream is not a TTY.
    """
    if os.environ.get("NO_COLOR"):
        return False
    stream = stream if stream is not None else sys.stdout
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def colorize(text: str, level: str, enabled: bool = True) -> str:
    """Apply color to text based on level."""
    if not enabled:
        return text
    color = COLORS.get(level, "")
    return f"{color}{text}{COLORS['RESET']}"


def format_status_line(result: ValidationResult, color: bool = False) -> str:
    """Format the `[PASS] name` / `[FAIL] name` line for a skill."""
    status = "PASS" if result.valid else "FAIL"
    return f"[{colorize(status, status, color)}] {result.skill}"


def format_diagnostic(diagnostic: Diagnostic, color: bool = False) -> str:
    """Format one indented diagnostic line."""
    label = LEVEL_LABELS[diagnostic.level]
    return "  " + colorize(f"  {label}: {diagnostic.message}", diagnostic.level, color)


def format_result(result: ValidationResult, color: bool = False, verbose: bool = False) -> list[str]:
    """Format a skill's status line followed by its diagnostics.

    Errors are listed before warnings. In verbose mode the extracted
    metadata is appended as gray info lines.
    """
    lines = [format_status_line(result, color)]
    lines.extend(format_diagnostic(d, color) for d in result.errors)
    lines.extend(format_diagnostic(d, color) for d in result.warnings)

    if verbose and result.metadata is not None:
        meta = result.metadata
        info = [
            f"title: {meta.title}",
            f"description: {meta.description}",
            f"tool references: {'yes' if meta.has_tool_references else 'no'}",
            f"code examples: {'yes' if meta.has_code_examples else 'no'}",
            f"related skills: {'yes' if meta.has_related_skills else 'no'}",
        ]
        lines.extend("    " + colorize(item, "INFO", color) for item in info)

    return lines


def format_summary(summary: Summary) -> list[str]:
    """Format the trailing summary block."""
    return [
        "",
        "=" * 60,
        f"Summary: {summary.total} skills validated",
        f"  Errors: {summary.errors}",
        f"  Warnings: {summary.warnings}",
        "=" * 60,
    ]
