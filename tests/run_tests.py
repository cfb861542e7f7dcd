#!/usr/bin/env python3
"""Simple test runner for sfgrid tests."""

import sys
import subprocess
from pathlib import Path

def run_tests():
    """Run all tests and display results."""
    # Get the project root directory
    tests_dir = Path(__file__).parent
    project_root = tests_dir.parent

    print("Running sfgrid tests...")
    print("=" * 60)

    cmd = [
        sys.executable, "-m", "pytest",
        str(tests_dir),
        "-v",  # Verbose output
        "--tb=short",  # Short traceback format
        "-p", "no:warnings",  # Suppress warnings in test output
    ]

    # Coverage is part of the dev extra
    if subprocess.run([sys.executable, "-c", "import pytest_cov"], capture_output=True).returncode == 0:
        cmd.extend(["--cov=sfgrid", "--cov-report=term-missing"])
    else:
        print("Note: Install pytest-cov for coverage reports")

    result = subprocess.run(cmd, cwd=str(project_root))

    return result.returncode

if __name__ == "__main__":
    sys.exit(run_tests())
