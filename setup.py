from setuptools import find_packages, setup

setup(
    name="chainsop",
    version="0.1.0",
    packages=find_packages(
        include=[
            "chainsop",
            "chainsop.*",
            "chainsop_persistence",
            "chainsop_persistence.*",
            "chainsop_cli",
            "chainsop_cli.*",
        ]
    ),
    install_requires=[
        "aiosqlite>=0.19.0",
        "click>=8.1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-xdist>=3.3.0",
        ],
        "docs": [
            "mkdocs>=1.5.0",
            "mkdocstrings[python]>=0.24.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "chainsop=chainsop_cli.cli:cli",
        ],
    },
    python_requires=">=3.11",
)
