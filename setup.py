from setuptools import setup, find_packages
from pathlib import Path

# Read the contents of the README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding="utf-8")

setup(
    name="ailog-cli",
    version="0.3.0",
    author="AlphaOneLabs",
    author_email="hello@alphaonelabs.com",
    description="Git hooks that detect AI-generated code in staged changes and record co-authorship.",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/alphaonelabs/ailog",
    packages=find_packages(exclude=["tests", "tests.*"]),
    install_requires=[
        "typer>=0.12.3",
        "rich>=13.7.1",
        "questionary>=2.0.1",
        "gitpython>=3.1.43",
        "plotille>=5.0.0",
        "python-dotenv"
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "ailog=ailog_cli.main:main",
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Environment :: Console",
    ],
    python_requires=">=3.9",
)
