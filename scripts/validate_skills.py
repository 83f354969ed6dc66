#!/usr/bin/env python3
"""
n8n Skills Validation - Skills Validator

Validates every skill directory under a skills root for consistency with the
n8n skill conventions. Each skill directory must contain a SKILL.md file.

Usage:
    uv run python scripts/validate_skills.py
    uv run python scripts/validate_skills.py path/to/skills/
    uv run python scripts/validate_skills.py path/to/skills/ --skill n8n-code-javascript
    uv run python scripts/validate_skills.py path/to/skills/ --rules rules.yaml --json

The skills root defaults to $N8N_SKILLS_DIR, then to .claude/skills/ in the
repository root.

Exit codes:
    0 - No errors (warnings never affect the exit code)
    1 - Errors found, or the skills directory does not exist
    2 - Invalid command line or rules configuration
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path

from skill_rules import RuleConfigError, RuleEngine, load_rule_config
from skill_validation_common import (
    EXIT_ERRORS,
    EXIT_USAGE,
    SKILL_FILE_NAME,
    SkillDocument,
    Summary,
    ValidationResult,
    error,
    format_result,
    format_summary,
    use_color,
)

SKILLS_DIR_ENV_VAR = "N8N_SKILLS_DIR"


def get_repo_root() -> Path:
    """Get the repository root directory (parent of scripts/)."""
    return Path(__file__).resolve().parent.parent


def default_skills_dir() -> Path:
    """Return the skills root from $N8N_SKILLS_DIR or the repository default."""
    from_env = os.environ.get(SKILLS_DIR_ENV_VAR, "").strip()
    if from_env:
        return Path(from_env)
    return get_repo_root() / ".claude" / "skills"


# =============================================================================
# Document Loading
# =============================================================================


def is_valid_skill_name(name: str) -> bool:
    """A skill name must be a single path component inside the skills root."""
    if name in ("", ".", ".."):
        return False
    return "/" not in name and "\\" not in name and os.sep not in name


def skill_name_arg(value: str) -> str:
    """argparse type for --skill values."""
    if not is_valid_skill_name(value):
        raise argparse.ArgumentTypeError(f"invalid skill name: {value!r} (must be a directory name)")
    return value


def discover_skills(skills_dir: Path) -> list[str]:
    """Return the names of all immediate subdirectories, sorted."""
    return sorted(entry.name for entry in skills_dir.iterdir() if entry.is_dir())


def load_skill(skills_dir: Path, name: str) -> SkillDocument | None:
    """Load <skills_dir>/<name>/SKILL.md.

    Returns:
        The loaded document, or None if the skill has no SKILL.md

    Raises:
        OSError: If SKILL.md exists but cannot be read
    """
    skill_file = skills_dir / name / SKILL_FILE_NAME
    if not skill_file.is_file():
        return None
    # Undecodable bytes are replaced so one bad file cannot abort the run
    content = skill_file.read_text(encoding="utf-8", errors="replace")
    return SkillDocument(name=name, content=content)


# =============================================================================
# Validation
# =============================================================================


def validate_skill(skills_dir: Path, name: str, engine: RuleEngine) -> ValidationResult:
    """Validate a single skill directory.

    Args:
        skills_dir: Path to the skills root
        name: Skill directory name
        engine: Rule engine to run

    Returns:
        ValidationResult with all diagnostics, or a single not-found or
        unreadable error
    """
    if not is_valid_skill_name(name):
        return ValidationResult(skill=name, diagnostics=(error(f"{SKILL_FILE_NAME} not found"),))

    try:
        document = load_skill(skills_dir, name)
    except OSError as e:
        return ValidationResult(skill=name, diagnostics=(error(f"Cannot read {SKILL_FILE_NAME}: {e}"),))
    if document is None:
        return ValidationResult(skill=name, diagnostics=(error(f"{SKILL_FILE_NAME} not found"),))

    metadata = engine.extract_metadata(document.content)
    diagnostics = engine.run(document.content, metadata)
    return ValidationResult(skill=name, diagnostics=tuple(diagnostics), metadata=metadata)


def validate_all(
    skills_dir: Path,
    engine: RuleEngine,
    skills: list[str] | None = None,
    verbose: bool = False,
    as_json: bool = False,
    color: bool = False,
) -> int:
    """Validate every skill under skills_dir and print the report.

    Args:
        skills_dir: Path to the skills root
        engine: Rule engine to run against each skill
        skills: Restrict validation to these skill names
        verbose: Also print extracted metadata
        as_json: Print a JSON document instead of the text report
        color: Use ANSI colors in the text report

    Returns:
        Process exit code
    """
    if not skills_dir.is_dir():
        print(f"Skills directory not found: {skills_dir}", file=sys.stderr)
        return EXIT_ERRORS

    names = sorted(set(skills)) if skills else discover_skills(skills_dir)
    summary = Summary()
    results: list[ValidationResult] = []

    if not as_json:
        print("=" * 60)
        print("n8n Skills Validation Report")
        print("=" * 60)
        print()

    for name in names:
        result = validate_skill(skills_dir, name, engine)
        summary.add(result)
        results.append(result)
        if not as_json:
            for line in format_result(result, color=color, verbose=verbose):
                print(line)

    if as_json:
        output = {
            "skills_dir": str(skills_dir),
            "exit_code": summary.exit_code,
            "summary": summary.to_dict(),
            "skills": [r.to_dict() for r in results],
        }
        print(json.dumps(output, indent=2))
    else:
        for line in format_summary(summary):
            print(line)

    return summary.exit_code


# =============================================================================
# Main
# =============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Validate n8n skill directories (SKILL.md files)")
    parser.add_argument(
        "skills_dir",
        nargs="?",
        help=f"Path to the skills root (default: ${SKILLS_DIR_ENV_VAR} or .claude/skills)",
    )
    parser.add_argument(
        "--skill",
        action="append",
        dest="skills",
        type=skill_name_arg,
        metavar="NAME",
        help="Validate only this skill (repeatable)",
    )
    parser.add_argument("--rules", metavar="PATH", help="YAML file overriding the rule vocabulary")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show extracted metadata for each skill")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--no-color", action="store_true", help="Disable ANSI colors")
    args = parser.parse_args(argv)

    skills_dir = Path(args.skills_dir) if args.skills_dir else default_skills_dir()

    if args.rules:
        try:
            config = load_rule_config(Path(args.rules))
        except RuleConfigError as e:
            print(f"Error: {e}", file=sys.stderr)
            return EXIT_USAGE
        engine = RuleEngine(config)
    else:
        engine = RuleEngine()

    return validate_all(
        skills_dir,
        engine,
        skills=args.skills,
        verbose=args.verbose,
        as_json=args.json,
        color=not args.no_color and use_color(),
    )


if __name__ == "__main__":
    sys.exit(main())
