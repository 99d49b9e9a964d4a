"""
Setup file.
"""

import os

from setuptools import find_packages, setup

URL = "https://github.com/gobin-utils/gobin"
KEYWORDS = "go golang cross-compile build matrix goos goarch binary runner subprocess"
HERE = os.path.dirname(os.path.abspath(__file__))


def read_version() -> str:
    about = {}
    with open(os.path.join(HERE, "src", "gobin", "__init__.py"), encoding="utf-8") as f:
        exec(f.read(), about)
    return about["__version__"]


if __name__ == "__main__":
    setup(
        name="gobin-utils",
        version=read_version(),
        description="Cross-compile Go binaries for every platform and run the one for this host",
        keywords=KEYWORDS,
        url=URL,
        package_dir={"": "src"},
        packages=find_packages("src"),
        python_requires=">=3.10",
        install_requires=[
            "psutil",
            "tqdm",
        ],
        extras_require={
            "test": ["pytest"],
        },
        entry_points={
            "console_scripts": [
                "gobin=gobin.cli:main",
            ],
        },
        include_package_data=True)
