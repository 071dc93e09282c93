# setup.py
from setuptools import setup, find_packages

setup(
    name="kmertax",
    version="0.1.0",
    description="K-mer taxonomy index construction and top-down classification of 16S sequences",
    author="kmertax Contributors",
    packages=find_packages(exclude=["tests", "tests.*"]),
    entry_points={
        "console_scripts": [
            "kmertax=kmertax.cli:main",
        ],
    },
    install_requires=[
        "numpy>=1.17",
        "pandas>=1.1",
        "scipy>=1.4",
        "biopython",
    ],
    extras_require={
        "test": ["pytest>=6"],
    },
    python_requires=">=3.8",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
    ],
)
