"""Setup configuration for sqlite-to-s3."""

import os
import sys

from setuptools import find_packages, setup

# Get version from package
here = os.path.abspath(os.path.dirname(__file__))
sys.path.insert(0, here)
try:
    from sqlite_to_s3 import __author__, __version__
except ImportError:
    __version__ = "1.0.0"
    __author__ = "sqlite-to-s3 contributors"

# Get the long description from the README file
with open(os.path.join(here, "README.md"), encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="sqlite-to-s3",
    version=__version__,
    description="Scheduled, encrypted SQLite backups to S3-compatible object storage",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author=__author__,
    keywords="sqlite backup restore s3 encryption cron cli",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"sqlite_to_s3": ["templates/*.j2"]},
    python_requires=">=3.8",
    install_requires=[
        "click>=8.0.0",
        "pyyaml>=6.0",
        "jinja2>=3.0.0",
        "cryptography>=3.4.0",
        "jsonschema>=4.0.0",
        "boto3>=1.26.0",
        "requests>=2.28.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.12.0",
            "mypy>=0.991",
        ],
    },
    entry_points={
        "console_scripts": [
            "sqlite-to-s3=sqlite_to_s3.cli:cli",
        ],
    },
)
