"""Setup script for the sfgrid package."""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text()

# Read requirements
def parse_requirements(filename):
    """Parse requirements file, ignoring comments, -r directives, and empty lines."""
    requirements = []
    for line in (this_directory / filename).read_text().splitlines():
        line = line.strip()
        # skip blanks, comments, recursive includes, editable installs, and VCS URLs
        if (
            not line
            or line.startswith("#")
            or line.startswith(("-r", "-e", "git+", "hg+", "svn+", "bzr+"))
        ):
            continue
        requirements.append(line)
    return requirements

requirements = parse_requirements("requirements.txt")
dev_requirements = parse_requirements("requirements-dev.txt")

setup(
    name="sfgrid",
    version="1.0.0",
    author="sfgrid Development Team",
    description="Distributed structure functions of gridded turbulence fields",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["sfgrid", "sfgrid.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Physics",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=requirements,
    extras_require={
        "dev": dev_requirements,
        "mpi": ["mpi4py>=3.1"],
    },
    entry_points={
        "console_scripts": [
            "sfgrid=sfgrid.analysis.batch:main",
        ],
    },
    include_package_data=True,
)
