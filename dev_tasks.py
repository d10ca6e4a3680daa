#!/usr/bin/env python3
"""
Development tasks for specql: python dev_tasks.py <format|lint|test|clean>
"""

import shutil
import subprocess
import sys
from pathlib import Path

SOURCES = "specql tests"


def run_command(command, check=True):
    print(f"Running: {command}")
    result = subprocess.run(command, shell=True, check=check)
    return result.returncode == 0


def format_code():
    run_command(f"isort {SOURCES}")
    run_command(f"black {SOURCES}")


def lint():
    mypy_ok = run_command("mypy specql", check=False)
    flake8_ok = run_command(f"flake8 {SOURCES}", check=False)
    if not (mypy_ok and flake8_ok):
        sys.exit(1)


def test():
    # pytest picks up testpaths and asyncio_mode from pyproject.toml
    if not run_command("pytest --cov=specql --cov-report=term-missing", check=False):
        sys.exit(1)


def clean():
    for path in [".pytest_cache", ".mypy_cache", ".coverage", "htmlcov", *Path(".").glob("*.egg-info")]:
        path = Path(path)
        if path.is_dir():
            shutil.rmtree(path, ignore_errors=True)
        elif path.exists():
            path.unlink()
    for cache in Path(".").rglob("__pycache__"):
        shutil.rmtree(cache, ignore_errors=True)


COMMANDS = {
    "format": format_code,
    "lint": lint,
    "test": test,
    "clean": clean,
}


def main():
    fn = COMMANDS.get(sys.argv[1]) if len(sys.argv) > 1 else None
    if fn is None:
        print(f"Usage: python dev_tasks.py <{'|'.join(COMMANDS)}>")
        sys.exit(1)
    fn()


if __name__ == "__main__":
    main()
