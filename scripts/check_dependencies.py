"""
Report which of the distributions declared in pyproject.toml are installed.

Usage: python scripts/check_dependencies.py [--extra test]
"""

import argparse
import re
import sys
import tomllib
from importlib import metadata
from pathlib import Path

PYPROJECT = Path(__file__).resolve().parents[1] / "pyproject.toml"

# "uvicorn[standard]>=0.27" -> "uvicorn"
_REQUIREMENT_NAME = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)")


def declared_requirements(extras=()):
    with PYPROJECT.open("rb") as f:
        project = tomllib.load(f)["project"]

    groups = {"runtime": project.get("dependencies", [])}
    optional = project.get("optional-dependencies", {})
    for extra in extras:
        if extra not in optional:
            raise SystemExit(f"Unknown extra {extra!r}; declared: {', '.join(sorted(optional))}")
        groups[extra] = optional[extra]
    return groups


def installed_version(requirement):
    match = _REQUIREMENT_NAME.match(requirement)
    if not match:
        return None
    try:
        return metadata.version(match.group(1))
    except metadata.PackageNotFoundError:
        return None


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--extra", action="append", default=[], help="also check an optional-dependency group")
    args = parser.parse_args()

    missing = []
    for group, requirements in declared_requirements(args.extra).items():
        print(f"\n[{group}]")
        for requirement in requirements:
            version = installed_version(requirement)
            print(f"  {'ok' if version else '--'} {requirement:<28} {version or 'not installed'}")
            if not version:
                missing.append(requirement)

    if missing:
        extras = f"[{','.join(args.extra)}]" if args.extra else ""
        print(f"\n{len(missing)} missing. Install with: pip install -e .{extras}")
        return 1
    print("\nAll declared dependencies are installed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
