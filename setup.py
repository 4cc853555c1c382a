"""Setup configuration for sprintmetrics"""

from setuptools import setup, find_packages

setup(
    name="sprint-pr-metrics",
    version="0.1.0",
    description=(
        "Sprint-level pull request metrics: review latency, merge counts "
        "and developer throughput."
    ),
    author="Sprint PR Metrics Contributors",
    author_email="",
    python_requires=">=3.10",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    install_requires=[
        "requests>=2.28.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "black>=22.0",
            "flake8>=4.0",
            "mypy>=0.950",
        ],
    },
    entry_points={
        "console_scripts": [
            "sprint-pr-metrics=sprintmetrics.main:main",
        ],
    },
)
