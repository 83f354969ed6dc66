#!/usr/bin/env python3
"""
n8n Skills Validation - Rule Engine

Metadata extraction and the rule checks run against every SKILL.md.

Each rule is a plain function taking (content, metadata, config) and
returning a list of Diagnostic. Rules never look at each other's output,
so any rule can be tested alone against a text fixture. A rule fires at
most once per document no matter how many times its pattern matches.

The rule vocabulary (required sections, title prefix, invalid terms, ...)
lives in a frozen RuleConfig that is passed to RuleEngine, and can be
overridden from a YAML file with load_rule_config().
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Callable

import yaml
from skill_validation_common import Diagnostic, SkillMetadata, error, warning

# =============================================================================
# Patterns
# =============================================================================

TITLE_PATTERN = re.compile(r"^# (.+)$", re.MULTILINE)
DESCRIPTION_PATTERN = re.compile(r"^> \*\*(.+)\*\*$", re.MULTILINE)

# Search-format node types must be used as MCP tool arguments, e.g.
# nodeType: "nodes-base.slack", never nodeType: "n8n-nodes-base.slack"
WORKFLOW_NODE_TYPE_ARGUMENT = re.compile(r"""nodeType:\s*["']n8n-nodes-base\.""")

JAVASCRIPT_BLOCK_PATTERN = re.compile(r"```javascript[\s\S]*?```")
# 'json', "json" or a bare json: key
JSON_WRAPPER_PATTERN = re.compile(r"""(["'])json\1|\bjson\s*:""")

# Markdown links whose target is not an http(s) URL
INTERNAL_LINK_PATTERN = re.compile(r"\[.*?\]\((?!http).*?\)")
LINK_TARGET_PATTERN = re.compile(r"\]\(([^)]+)\)")

CODE_FENCE = "```"
RELATED_SKILLS_MARKER = "## Related Skills"
DESCRIPTION_MARKER = "> **"


# =============================================================================
# Configuration
# =============================================================================


class RuleConfigError(ValueError):
    """Raised when a rules configuration file cannot be used."""


@dataclass(frozen=True)
class RuleConfig:
    """Vocabulary the rules check against.

    Attributes:
        required_sections: Markers that must appear somewhere in the text
        title_prefix: Expected start of every document
        tool_keywords: Substrings that mark a reference to an MCP tool
        invalid_terms: Retired terms mapped to their replacement
    """

    required_sections: tuple[str, ...] = ("## Overview", "---")
    title_prefix: str = "# n8n "
    tool_keywords: tuple[str, ...] = ("search_nodes", "get_node", "validate_")
    invalid_terms: tuple[tuple[str, str], ...] = (("ai_retriever", "ai_textSplitter"),)


DEFAULT_RULE_CONFIG = RuleConfig()


def _string_tuple(key: str, value: Any) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise RuleConfigError(f"'{key}' must be a list of strings")
    return tuple(value)


def _term_pairs(value: Any) -> tuple[tuple[str, str], ...]:
    if not isinstance(value, dict) or not all(isinstance(k, str) and isinstance(v, str) for k, v in value.items()):
        raise RuleConfigError("'invalid_terms' must be a mapping of term to replacement")
    return tuple(value.items())


def parse_rule_config(data: Any, base: RuleConfig = DEFAULT_RULE_CONFIG) -> RuleConfig:
    """Build a RuleConfig from a parsed YAML document.

    Keys that are present replace the corresponding field of ``base``;
    missing keys keep the base value.

    Raises:
        RuleConfigError: If the document is not a mapping, has unknown
            keys, or a value has the wrong type
    """
    if data is None:
        return base
    if not isinstance(data, dict):
        raise RuleConfigError("Rules configuration must be a YAML mapping")

    known = {f.name for f in fields(RuleConfig)}
    unknown = sorted(str(k) for k in data if k not in known)
    if unknown:
        raise RuleConfigError(f"Unknown rules configuration key(s): {', '.join(unknown)}")

    overrides: dict[str, Any] = {}
    for key in ("required_sections", "tool_keywords"):
        if key in data:
            overrides[key] = _string_tuple(key, data[key])
    if "title_prefix" in data:
        if not isinstance(data["title_prefix"], str):
            raise RuleConfigError("'title_prefix' must be a string")
        overrides["title_prefix"] = data["title_prefix"]
    if "invalid_terms" in data:
        overrides["invalid_terms"] = _term_pairs(data["invalid_terms"])

    return replace(base, **overrides)


def load_rule_config(path: Path) -> RuleConfig:
    """Load a rules configuration YAML file.

    Raises:
        RuleConfigError: If the file cannot be read or parsed
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise RuleConfigError(f"Cannot read rules configuration {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise RuleConfigError(f"Invalid YAML in rules configuration {path}: {e}") from e

    return parse_rule_config(data)


# =============================================================================
# Metadata Extraction
# =============================================================================


def extract_title(content: str) -> str | None:
    """Return the first top-level heading without its marker."""
    match = TITLE_PATTERN.search(content)
    return match.group(1) if match else None


def extract_description(content: str) -> str | None:
    """Return the text of the first `> **...**` line."""
    match = DESCRIPTION_PATTERN.search(content)
    return match.group(1) if match else None


def extract_metadata(content: str, config: RuleConfig = DEFAULT_RULE_CONFIG) -> SkillMetadata:
    """Derive SkillMetadata from SKILL.md text. Never fails."""
    title = extract_title(content)
    description = extract_description(content)
    defaults = SkillMetadata()

    return SkillMetadata(
        title=title if title is not None else defaults.title,
        description=description if description is not None else defaults.description,
        has_tool_references=any(keyword in content for keyword in config.tool_keywords),
        has_code_examples=CODE_FENCE in content,
        has_related_skills=RELATED_SKILLS_MARKER in content,
    )


# =============================================================================
# Rules
# =============================================================================

Rule = Callable[[str, SkillMetadata, RuleConfig], list[Diagnostic]]


def check_required_sections(content: str, metadata: SkillMetadata, config: RuleConfig) -> list[Diagnostic]:
    """One ERROR per required section marker missing from the text."""
    return [
        error(f"Missing required section: {section}")
        for section in config.required_sections
        if section not in content
    ]


def check_title_prefix(content: str, metadata: SkillMetadata, config: RuleConfig) -> list[Diagnostic]:
    if content.startswith(config.title_prefix):
        return []
    return [warning(f'Title should start with "{config.title_prefix}"')]


def check_description_blockquote(content: str, metadata: SkillMetadata, config: RuleConfig) -> list[Diagnostic]:
    if DESCRIPTION_MARKER in content:
        return []
    return [warning("Missing description blockquote (> **...**)")]


def check_node_type_format(content: str, metadata: SkillMetadata, config: RuleConfig) -> list[Diagnostic]:
    """Workflow-format node types passed as an MCP tool nodeType argument."""
    if not WORKFLOW_NODE_TYPE_ARGUMENT.search(content):
        return []
    return [error('MCP tools (search_nodes, get_node) should use "nodes-base.X" format, not "n8n-nodes-base.X"')]


def check_invalid_terms(content: str, metadata: SkillMetadata, config: RuleConfig) -> list[Diagnostic]:
    """A single ERROR naming every configured invalid term found in the text."""
    found = [
        f"{term} is not a valid connection type. Use {replacement} instead."
        for term, replacement in config.invalid_terms
        if term in content
    ]
    if not found:
        return []
    return [error(" ".join(found))]


def check_code_block_returns(content: str, metadata: SkillMetadata, config: RuleConfig) -> list[Diagnostic]:
    """JavaScript blocks returning an array without a json wrapper key."""
    for block in JAVASCRIPT_BLOCK_PATTERN.findall(content):
        if "return [" in block and not JSON_WRAPPER_PATTERN.search(block):
            return [warning("JavaScript return may be missing json wrapper")]
    return []


def check_absolute_links(content: str, metadata: SkillMetadata, config: RuleConfig) -> list[Diagnostic]:
    """Internal links whose target starts with a path separator."""
    offending: list[str] = []
    for link in INTERNAL_LINK_PATTERN.findall(content):
        target = LINK_TARGET_PATTERN.search(link)
        if target and target.group(1).startswith("/"):
            offending.append(link)

    if not offending:
        return []
    message = f"Absolute path in link: {offending[0]}"
    if len(offending) > 1:
        message += f" (and {len(offending) - 1} more)"
    return [warning(message)]


def check_code_examples(content: str, metadata: SkillMetadata, config: RuleConfig) -> list[Diagnostic]:
    if metadata.has_code_examples:
        return []
    return [warning("No code examples found")]


# Execution order, which is also the order of the reported diagnostics
DEFAULT_RULES: tuple[Rule, ...] = (
    check_required_sections,
    check_title_prefix,
    check_description_blockquote,
    check_node_type_format,
    check_invalid_terms,
    check_code_block_returns,
    check_absolute_links,
    check_code_examples,
)


class RuleEngine:
    """Runs a fixed, ordered set of rules against one document."""

    def __init__(self, config: RuleConfig = DEFAULT_RULE_CONFIG, rules: tuple[Rule, ...] = DEFAULT_RULES) -> None:
        self.config = config
        self.rules = tuple(rules)

    def extract_metadata(self, content: str) -> SkillMetadata:
        return extract_metadata(content, self.config)

    def run(self, content: str, metadata: SkillMetadata) -> list[Diagnostic]:
        """Run every rule in order and concatenate their diagnostics."""
        diagnostics: list[Diagnostic] = []
        for rule in self.rules:
            diagnostics.extend(rule(content, metadata, self.config))
        return diagnostics
