#!/usr/bin/env python
"""Setup script for blockyard."""

from setuptools import setup, find_packages

setup(
    name="blockyard",
    version="0.1.0",
    description="Build registries of reusable source-code blocks and resolve the blocks a project needs",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    install_requires=[
        "PyYAML>=6.0",
        "pathspec>=0.12",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "blockyard=blockyard.cli.main:main",
        ],
    },
)
