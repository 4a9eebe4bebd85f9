
from setuptools import setup, find_packages

setup(
    name="beadarray",
    version="1.0.0",
    author="Zi-Hao Huang",
    author_email="zh384@cam.ac.uk",
    description="Decoders for Illumina bead-array genotyping files",
    long_description="Readers for Illumina BPM manifests, EGT cluster files and GTC genotype call files",
    packages=find_packages("src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    install_requires=[
    'numpy>=1.24.4',
    'pandas>=2.0.3',
    'click>=8.0',
    'pyyaml>=6.0',
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": ["beadarray = beadarray.cli.main:cli"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: CC BY-NC 4.0",
        "Operating System :: OS Independent",
    ],
    license="Creative Commons Attribution-NonCommercial 4.0",
    )
