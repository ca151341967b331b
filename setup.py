from pathlib import Path

from setuptools import find_packages, setup

ROOT = Path(__file__).parent
README = (ROOT / "README.md").read_text(encoding="utf-8") if (ROOT / "README.md").exists() else ""

setup(
    name="pyimgnorm",
    version="0.1.0",
    description="Bounded-memory image normalization: sampled decode from heterogeneous sources and byte-budgeted encoding",
    long_description=README,
    long_description_content_type="text/markdown",
    author="pyimgnorm Contributors",
    author_email="pyimgnorm@example.com",
    packages=find_packages(include=("pyimgnorm", "pyimgnorm.*")),
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.19",
        "Pillow>=8.0.0",
    ],
    extras_require={
        "yaml": [
            "PyYAML>=5.4",
        ],
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "pytest-xdist>=3.0.0",
            "black>=23.0.0",
            "isort>=5.12.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
            "pre-commit>=3.0.0",
        ],
        "all": [
            "pyimgnorm[yaml,dev]",
        ],
    },
    include_package_data=True,
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Multimedia :: Graphics :: Graphics Conversion",
        "Topic :: Software Development :: Libraries :: Python Modules",
    ],
    keywords=[
        "image-processing",
        "jpeg",
        "compression",
        "thumbnail",
        "downsampling",
        "pillow",
    ],
    entry_points={
        "console_scripts": [
            "pyimgnorm-normalize=pyimgnorm.normalize_cli:main",
        ],
    },
)
