import os
import re
from setuptools import find_packages, setup

# Get version
with open(os.path.join("tsne_exact", "_version.py"), "r", encoding="utf-8") as f:
    version_file = f.read()
    version_match = re.search(r"^__version__ = ['\"]([^'\"]*)['\"]", version_file, re.M)
    if version_match:
        version = version_match.group(1)
    else:
        raise RuntimeError("Unable to find version string.")

# Get long description
with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="tsne_exact",
    version=version,
    description="Exact t-SNE with momentum gradient descent and early exaggeration",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*", "examples", "tools"]),
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
    ],
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.19.5",
        "scipy>=1.6.0",
        "scikit-learn>=1.2.0",
        "joblib>=1.3.0",
        "tqdm>=4.64.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
        "examples": ["matplotlib"],
    },
    license="BSD-3-Clause",
)
