from pathlib import Path
from setuptools import setup, find_packages


def read_readme() -> str:
    readme_path = Path(__file__).resolve().parent / "README.md"
    return readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""


setup(
    name="zfpe",
    version="1.0.0",
    packages=find_packages(include=["zfpe", "zfpe.*"]),
    install_requires=[
        "cryptography>=41.0.0",
        "numpy>=1.24.0",
    ],
    entry_points={
        "console_scripts": ["zfpe=zfpe.main:main"],
    },
    python_requires=">=3.10",
    description="Format-preserving encryption (FE1/FD1) over integer ranges",
    long_description=read_readme(),
    long_description_content_type="text/markdown",
)
