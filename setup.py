"""
perfrules - Rule Evaluation for Recorded Performance Runs

Compares two or more recorded runs of performance data and produces
severity-classified findings for a dashboard to display.

Features:
- Data-driven rule sets per data type (single-run and all-run rules)
- Deterministic, lazily evaluated findings with per-rule failure containment
- Interval, collection overhead and collect/print time checks for aperf_run_stats
- Mann-Whitney U test and median thresholds for time comparisons
- CLI and JSON API for the dashboard front end
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else __doc__

setup(
    name="perfrules",
    version="1.0.0",
    description="Rule evaluation engine comparing recorded performance runs",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Shawky",
    python_requires=">=3.8",
    packages=find_packages(exclude=["tests", "*.tests", "*.tests.*", "tests.*"]),
    install_requires=[
        "numpy>=1.20.0",
        "scipy>=1.7.0",
        "PyYAML>=6.0",
        "flask>=2.0.0",
        "flask-cors>=3.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "perfrules=perfrules.cli:main",
            "perfrules-dashboard=perfrules.dashboard.app:main",
        ],
    },
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Testing",
        "Topic :: System :: Benchmark",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    keywords="performance runs comparison rules findings dashboard",
)
