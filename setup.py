from __future__ import annotations

import re
from pathlib import Path

from setuptools import find_packages, setup


def read_version() -> str:
    init_py = Path(__file__).parent / "fightline" / "__init__.py"
    text = init_py.read_text(encoding="utf-8")
    match = re.search(r"^__version__\s*=\s*\"([^\"]+)\"\s*$", text, re.M)
    if not match:
        raise RuntimeError("Unable to find __version__ in fightline/__init__.py")
    return match.group(1)


with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="fightline",
    version=read_version(),
    description="Annotated fight timelines: lanes, items and after-the-fact annotations",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["fightline", "fightline.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Games/Entertainment",
    ],
    python_requires=">=3.8",
    entry_points={
        "console_scripts": [
            "fightline=fightline.cli:main",
        ],
    },
    install_requires=[],
    extras_require={
        "yaml": ["PyYAML"],
        "dev": ["pytest", "ruff", "PyYAML"],
    },
)
