#!/usr/bin/env python3
"""PII gate for runtime code under src/.

Fails if:
- print( is found in runtime code
- a logger call mentions user contact data (email, name) without going
  through safe_log_context/redact_value/redact_string

The whole logger call (up to its closing parenthesis) is inspected, so
multi-line calls with extra={...} are covered.

Usage:
    python scripts/gate_security_pii.py
"""

import re
import sys
from pathlib import Path

SENSITIVE_KEYWORDS = (
    "email",
    "user_name",
    "user.name",
    "phone",
    "body",
)

PRINT_PATTERN = re.compile(r"\bprint\s*\(")

LOGGER_CALL_PATTERN = re.compile(
    r"logger\.(debug|info|warning|error|critical|exception)\s*\("
)

REDACTION_PATTERNS = (
    "safe_log_context",
    "redact_value",
    "redact_string",
)


def _call_text(lines: list[str], start: int) -> str:
    """Return the text of the call opening on lines[start], up to its close."""
    depth = 0
    collected = []
    for line in lines[start:]:
        code = line.split("#")[0]
        collected.append(code)
        depth += code.count("(") - code.count(")")
        if depth <= 0:
            break
    return "\n".join(collected)


def check_file(filepath: Path) -> list[str]:
    """Check a single file for violations. Returns list of error messages."""
    try:
        content = filepath.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return []

    errors = []
    lines = content.splitlines()

    for index, line in enumerate(lines):
        lineno = index + 1
        code_part = line.split("#")[0]
        if not code_part.strip():
            continue

        if PRINT_PATTERN.search(code_part):
            errors.append(f"{filepath}:{lineno}: print() not allowed in runtime code")

        if LOGGER_CALL_PATTERN.search(code_part):
            call = _call_text(lines, index)
            if any(rp in call for rp in REDACTION_PATTERNS):
                continue
            lowered = call.lower()
            for keyword in SENSITIVE_KEYWORDS:
                if keyword in lowered:
                    errors.append(
                        f"{filepath}:{lineno}: logger call with '{keyword}' "
                        "must use redaction (safe_log_context/redact_value)"
                    )

    return errors


def main() -> int:
    src_dir = Path("src")
    if not src_dir.exists():
        src_dir = Path(__file__).parent.parent / "src"

    if not src_dir.exists():
        sys.stderr.write("Error: src directory not found\n")
        return 1

    all_errors: list[str] = []
    for pyfile in sorted(src_dir.rglob("*.py")):
        all_errors.extend(check_file(pyfile))

    if all_errors:
        sys.stderr.write("PII gate FAILED:\n")
        for err in all_errors:
            sys.stderr.write(f"  {err}\n")
        return 1

    sys.stdout.write("PII gate passed\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
