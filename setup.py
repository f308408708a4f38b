"""setup.py for lookupodd.

The lookup table itself is not shipped: generate it with
``python -m lookupodd build`` (or the ``lookupodd build`` console script).
"""

from setuptools import find_packages, setup

setup(
    name="lookupodd",
    version="0.1.0",
    description="Parity of 64-bit integers from a layered, competitively compressed lookup table",
    python_requires=">=3.9",
    packages=find_packages(include=["lookupodd", "lookupodd.*"]),
    install_requires=[
        "numpy",
        "zstandard>=0.20",
        "brotli>=1.0.9",
        "rich",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "lookupodd=lookupodd.__main__:main",
        ],
    },
)
