"""
Quarry - hierarchical task planning and execution for a game-playing agent
Requirement decomposition, priority scheduling and resumable execution
"""

from setuptools import find_packages, setup

setup(
    name="quarry",
    version="0.1.0",
    description="Task decomposition, priority queue and resumable executor for game agents",
    author="Quarry Development Team",
    packages=find_packages(exclude=["tests*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.104.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "networkx>=3.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "httpx>=0.25.0",
            "mypy>=1.5.0",
            "black>=23.9.0",
            "ruff>=0.0.290",
        ],
    },
)
