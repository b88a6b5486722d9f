"""Install the ibflog package."""

from setuptools import setup, find_packages

setup(
    name="ibflog",
    version="0.1.0",
    description="Decoder for PDM insulin pump IBF log files",
    package_dir={"": "python"},
    packages=find_packages("python"),
    python_requires=">=3.9",
    install_requires=[
        "numpy",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "ibflog=ibflog.cli:main",
        ],
    },
)
