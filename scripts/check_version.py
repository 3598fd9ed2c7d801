#!/usr/bin/env python3
"""Validate version consistency across project files

Checks that version matches in:
- ios_simulator_mcp/__init__.py
- pyproject.toml
"""
import re
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
VERSION_PATTERN = r'^(?:__version__|version)\s*=\s*["\']([^"\']+)["\']'


def read_version(relative_path):
    """Get the first version assignment from a file, or None"""
    path = PROJECT_ROOT / relative_path
    if not path.exists():
        return None

    content = path.read_text(encoding='utf-8')
    match = re.search(VERSION_PATTERN, content, re.MULTILINE)
    return match.group(1) if match else None


def collect_versions():
    return {
        "ios_simulator_mcp/__init__.py": read_version("ios_simulator_mcp/__init__.py"),
        "pyproject.toml": read_version("pyproject.toml"),
    }


def main():
    """Check version consistency across all files"""
    print("=" * 70)
    print("Version Consistency Check")
    print("=" * 70)
    print()

    versions = collect_versions()

    max_file_len = max(len(f) for f in versions.keys())
    for file, version in versions.items():
        print(f"  {file:<{max_file_len}}  ->  {version or '[NOT FOUND]'}")
    print()

    missing = [f for f, v in versions.items() if v is None]
    if missing:
        print("[ERROR] Missing version in files:")
        for f in missing:
            print(f"  - {f}")
        sys.exit(1)

    unique_versions = set(versions.values())
    if len(unique_versions) != 1:
        print("[ERROR] Version mismatch detected!")
        for file, version in versions.items():
            print(f"  {file}: {version}")
        sys.exit(1)

    print(f"[OK] All versions match: {unique_versions.pop()}")
    print()
    print("=" * 70)


if __name__ == "__main__":
    main()
