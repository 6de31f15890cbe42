#!/usr/bin/env python3
"""Gate: customer data must not reach the logs.

Fails if, in runtime code (src/**):
- print( is used
- a logger call mentions customer phones, message text, webhook payloads or
  access tokens without passing them through the redaction helpers

The whole call is inspected, so multi-line `extra=` blocks count.

Usage:
    python scripts/gate_log_privacy.py [SRC_DIR]
"""

import re
import sys
from pathlib import Path

SENSITIVE_KEYWORDS = (
    "from_phone",
    "phone_number",
    "message.text",
    "payload",
    "body",
    "access_token",
)

PRINT_PATTERN = re.compile(r"\bprint\s*\(")

LOGGER_CALL_PATTERN = re.compile(
    r"logger\.(debug|info|warning|error|critical|exception)\s*\("
)

REDACTION_PATTERNS = (
    "safe_log_context",
    "phone_context",
    "hash_identifier",
)


def _call_text(source: str, start: int) -> str:
    """Text of the call whose opening paren is at `start`, up to its match."""
    depth = 0
    for pos in range(start, len(source)):
        char = source[pos]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return source[start:pos + 1]
    return source[start:]


def check_source(source: str, name: str = "<source>") -> list[str]:
    """Check one module's source. Returns a list of error messages."""
    errors = []

    for lineno, line in enumerate(source.splitlines(), start=1):
        code_part = line.split("#")[0]
        if PRINT_PATTERN.search(code_part):
            errors.append(f"{name}:{lineno}: print() not allowed in runtime code")

    for match in LOGGER_CALL_PATTERN.finditer(source):
        call = _call_text(source, match.end() - 1)
        if any(rp in call for rp in REDACTION_PATTERNS):
            continue
        lineno = source.count("\n", 0, match.start()) + 1
        call_lower = call.lower()
        for keyword in SENSITIVE_KEYWORDS:
            if keyword in call_lower:
                errors.append(
                    f"{name}:{lineno}: logger call with '{keyword}' "
                    "must use redaction (safe_log_context/phone_context)"
                )

    return errors


def check_file(filepath: Path) -> list[str]:
    try:
        content = filepath.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return []
    return check_source(content, str(filepath))


def check_tree(src_dir: Path) -> list[str]:
    all_errors: list[str] = []
    for pyfile in sorted(src_dir.rglob("*.py")):
        all_errors.extend(check_file(pyfile))
    return all_errors


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    src_dir = Path(args[0]) if args else Path(__file__).parent.parent / "src"

    if not src_dir.exists():
        sys.stderr.write(f"Error: {src_dir} not found\n")
        return 1

    all_errors = check_tree(src_dir)
    if all_errors:
        sys.stderr.write("Log privacy gate FAILED:\n")
        for err in all_errors:
            sys.stderr.write(f"  {err}\n")
        return 1

    sys.stdout.write("Log privacy gate PASSED\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
