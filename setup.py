#!/usr/bin/env python3
"""
Setup script for the Pokémon Showdown protocol client
"""

from setuptools import setup, find_packages

setup(
    name="showdown-client",
    version="0.1.0",
    description="Client for the Pokemon Showdown chat protocol",
    packages=find_packages(include=["showdown", "showdown.*", "shared", "shared.*"]),
    install_requires=[
        "websockets>=15.0",
        "httpx>=0.27",
        "typer>=0.12.3",
        "rich>=13.9.2",
        "aioconsole>=0.8.1",
        "PyYAML>=6.0.1",
    ],
    extras_require={
        "test": [
            "pytest>=8.4.2",
            "pytest-asyncio>=1.2.0",
        ],
    },
    python_requires=">=3.9",
    entry_points={
        'console_scripts': [
            'showdown-client=showdown.cli:main',
        ],
    },
)
