"""
Setup script for the traitor-sync package.

Pure-Python src layout; the SQLite schema ships as package data.
"""

from setuptools import setup, find_packages

setup(
    name="traitor-sync",
    version="1.0.0",
    description="Multi-device session sync core for traitor/ally party games",
    author="Course Staff",
    python_requires=">=3.10",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "python-dotenv>=1.0.0",
        "pydantic>=2.5.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "build",
            "wheel",
        ],
    },
    package_data={
        "traitor_sync._store": ["schema.sql"],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
