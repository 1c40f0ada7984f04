"""
Setup script for Tiered Time-Series - two-tier time-series ingestion and query service.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

setup(
    name="tiered-timeseries",
    version="1.0.0",
    description="Time-series ingestion and query service over Timestream and DynamoDB",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*", "scripts"]),
    python_requires=">=3.11",
    install_requires=[
        # AWS clients
        "aioboto3>=12.1.0",
        "boto3>=1.28.0",
        "botocore>=1.31.0",

        # Data validation
        "pydantic>=2.5.0",

        # HTTP API
        "fastapi>=0.109.0",
        "uvicorn>=0.27.0",
        "httpx>=0.26.0",

        # Task scheduling
        "celery>=5.3.0",

        # Monitoring and observability
        "prometheus-client>=0.19.0",

        # Utilities
        "python-dotenv>=1.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "black>=23.12.0",
            "mypy>=1.7.0",
            "ruff>=0.1.8",
        ],
        "test": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
        ],
        "sqs": [
            "celery[sqs]>=5.3.0",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Database",
    ],
    include_package_data=True,
    zip_safe=False,
)
