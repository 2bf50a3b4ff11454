import os
import runpy
from setuptools import setup, find_packages

# Get version
cwd = os.path.abspath(os.path.dirname(__file__))
versionpath = os.path.join(cwd, 'npi_tools', 'version.py')
version = runpy.run_path(versionpath)['__version__']

# Get the documentation
with open(os.path.join(cwd, 'README.md'), "r") as fh:
    long_description = fh.read()

CLASSIFIERS = [
    "Environment :: Console",
    "Intended Audience :: Science/Research",
    "License :: Other/Proprietary License",
    "Operating System :: OS Independent",
    "Programming Language :: Python",
    "Topic :: Scientific/Engineering :: Medical Science Apps.",
    "Development Status :: 4 - Beta",
    "Programming Language :: Python :: 3.8",
]

setup(
    name="npi_tools",
    version=version,
    description="Rapid analysis of non-pharmaceutical intervention scenarios with an age-structured SEIR model",
    long_description=long_description,
    long_description_content_type="text/markdown",
    keywords=["COVID-19", "SEIR", "lockdown", "NPI", "scenarios"],
    platforms=["OS Independent"],
    classifiers=CLASSIFIERS,
    packages=find_packages(include=['npi_tools', 'npi_tools.*', 'seir_model', 'seir_model.*']),
    include_package_data=True,
    install_requires=[
        "numpy",
        "pandas",
        "scipy",
        "matplotlib",
        "seaborn",
        "sciris>=2.0.0",
        "optuna",
        "psutil",
    ],
    extras_require={
        "test": ["pytest"],
    },
)
