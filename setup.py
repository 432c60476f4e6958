#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Setup script for the GHG Inventory Engine
"""

from pathlib import Path

from setuptools import find_packages, setup

VERSION = "1.0.0"

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
if readme_file.exists():
    long_description = readme_file.read_text(encoding="utf-8")
else:
    long_description = "GHG Inventory Engine - emissions accounting by scope, facility and category"

setup(
    name="ghg-inventory",
    version=VERSION,
    description="Emissions accounting engine: factor catalog, unit conversion and scope aggregation",
    long_description=long_description,
    long_description_content_type="text/markdown",
    python_requires=">=3.9",
    packages=find_packages(include=["ghg_inventory", "ghg_inventory.*"]),
    package_data={"ghg_inventory": ["data/*.yaml"]},
    include_package_data=True,
    install_requires=[
        "pydantic>=2.0",
        "PyYAML>=6.0",
        "prometheus_client>=0.17",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Atmospheric Science",
    ],
)
