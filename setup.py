"""
Setup script for the company-intent-signals project.

Allows development installation with `pip install -e .`
"""

from setuptools import setup, find_namespace_packages

setup(
    name="company-intent-signals",
    version="0.1.0",
    packages=find_namespace_packages(include=["src", "src.*"]),
    python_requires=">=3.11",
    install_requires=[
        "pymongo>=4.6",
        "python-dotenv>=1.0",
        "requests>=2.31",
        "tenacity>=8.2",
        "playwright>=1.40",
        "beautifulsoup4>=4.12",
        "python-dateutil>=2.8",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
)
