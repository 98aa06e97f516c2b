"""
Setup script for bookmark-recall.

Bookmark Recall turns saved bookmarks into quizzes and keeps them fresh:

1. Answer Evaluation - grade mcq, short, scenario and flashcard answers
2. Revision Scheduling - score-based spaced repetition with a daily review
3. Learning Analytics - averages, trends and rule-based insights

The 'recall' command is the entry point.
"""

from setuptools import find_packages, setup

setup(
    name="bookmark-recall",
    version="1.0.0",
    description="Spaced-repetition quizzes and learning analytics for saved bookmarks",
    long_description=open("README.md", encoding="utf-8").read() if __import__("os").path.exists("README.md") else "",
    long_description_content_type="text/markdown",
    packages=find_packages(include=["recall", "recall.*"]),
    python_requires=">=3.10",
    install_requires=[
        # CLI
        "typer>=0.9.0",
        "rich>=13.0.0",
        # Database
        "sqlalchemy>=2.0.0",
        "psycopg2-binary>=2.9.0",
        # Config & Validation
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        # Logging
        "loguru>=0.7.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "ruff>=0.1.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "recall=recall.cli.main:run",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Console",
        "Intended Audience :: Education",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Education",
        "Topic :: Education :: Computer Aided Instruction (CAI)",
    ],
    keywords="learning spaced-repetition bookmarks quiz analytics cli",
)
