# setup.py

from setuptools import setup, find_packages

setup(
    name="LatticeMin",
    version="1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "scipy",
        "numba",
        "pyyaml",
        "h5py",
        "matplotlib",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "latticemin=latticemin.cli.run:main",
        ],
    },
)
