#!/usr/bin/env python3

import setuptools

if __name__ == "__main__":
    setuptools.setup(
        name="chunkstash",
        version="0.1.0",
        description="Store arbitrarily large string values in size limited key-value stores by splitting them into chunks",
        python_requires=">=3.8",
        packages=setuptools.find_packages(include=["chunkstash", "chunkstash.*"]),
        install_requires=[
            "rich>=12.0.0",
            "typer>=0.9.0",
        ],
        extras_require={
            "test": ["pytest>=7.0.0"],
        },
        entry_points={
            "console_scripts": [
                "chunkstash=chunkstash.cli.cli:app",
            ]
        },
    )
