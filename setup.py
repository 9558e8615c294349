"""
Setup script for the repair-vision damage analysis toolkit
"""

from setuptools import find_packages, setup

with open("README.md", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", encoding="utf-8") as fh:
    requirements = [
        line.strip() for line in fh if line.strip() and not line.startswith("#")
    ]

setup(
    name="repair-vision",
    version="0.1.0",
    description=(
        "Vehicle damage analysis, dual-currency repair estimates and spoken "
        "diagnosis on top of Gemini image generation"
    ),
    long_description=long_description,
    long_description_content_type="text/markdown",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    python_requires=">=3.11",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=8", "pytest-asyncio>=0.23"],
    },
    entry_points={
        "console_scripts": ["repair-vision=repair_vision.__main__:main"],
    },
)
