#!/usr/bin/env python3
from setuptools import setup, find_packages
setup(
    name="crackspn",
    version="0.1.0",
    description="chosen-target preimage search for byte-oriented substitution-permutation ciphers",
    python_requires=">=3.9",
    package_dir={"": "src"},
    packages=find_packages("src"),
    package_data={"crackspn": ["log_config.json"]},
    install_requires=[
        "numpy",
        "galois",
        "tqdm",
        "click",
        "ipython",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "crackspn = crackspn.main:cli",
        ],
    },
)
