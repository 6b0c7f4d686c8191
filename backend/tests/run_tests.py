#!/usr/bin/env python3
"""
Image Resizer test runner

Usage:
    python tests/run_tests.py              # run all tests
    python tests/run_tests.py -v           # verbose output
    python tests/run_tests.py -k cache     # only tests matching "cache"
    python tests/run_tests.py --report     # also write an HTML report

Quick start:
    pip install -e ".[test]"
    cd backend
    python tests/run_tests.py
"""

import os
import subprocess
import sys
from pathlib import Path

# Run from the backend directory
backend_dir = Path(__file__).parent.parent
os.chdir(backend_dir)


def main():
    """Run tests"""
    cmd = [sys.executable, "-m", "pytest", "tests/"]

    args = sys.argv[1:]

    if not any(arg.startswith("-v") for arg in args):
        cmd.append("-v")

    if "--report" in args:
        args.remove("--report")
        cmd.extend(["--html=tests/report.html", "--self-contained-html"])

    cmd.extend(args)

    print(f"\n{'='*60}")
    print("Image Resizer tests")
    print(f"{'='*60}")
    print(f"Command: {' '.join(cmd)}")
    print(f"{'='*60}\n")

    result = subprocess.run(cmd)
    sys.exit(result.returncode)


if __name__ == "__main__":
    main()
