"""
Setup script for the Mongo_Ops package.
"""

from setuptools import setup, find_packages

setup(
    name="mongo_backup_ops",
    version="0.1.0",
    description="MongoDB Backup and Restore Operations Package",
    author="Shubham Singh",
    author_email="shubh2014shiv@gmail.com",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["mongo_ops_exceptions"],
    install_requires=[
        "pymongo>=4.6.0",
        "pydantic>=2.0.0,<3.0.0",
        "pydantic-settings>=2.0.0",
        "pydantic-yaml>=1.1.0",
        "pyyaml>=6.0",
        "tqdm>=4.64.0",
        "tenacity>=8.0.0",  # For retry logic
        "apscheduler>=3.10.0,<4.0.0",  # Scheduled backup job
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
            "flake8>=6.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "mongo-backup=backup_recovery.cli:main",
            "mongo-backup-scheduler=jobs.database_backup:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.8",
)
